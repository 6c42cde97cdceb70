"""Progress rendering for the copy phase."""

from __future__ import annotations

import logging
from typing import Optional

from tqdm import tqdm

from dumper.models import CopyPlanItem


class CopyProgress:
    """
    Progress reporter for the copy loop.

    With a terminal it drives a tqdm bar; otherwise it logs every
    ``log_every`` files through the run logger.
    """

    def __init__(
        self,
        total: int,
        interactive: bool,
        log: logging.Logger,
        log_every: int = 100,
    ) -> None:
        self.total = total
        self.interactive = interactive
        self.log = log
        self.log_every = max(1, log_every)

        self.count = 0
        self._tqdm: Optional[tqdm] = None

        if self.interactive:
            self._tqdm = tqdm(
                total=self.total,
                desc="Copying",
                unit="file",
                leave=False,
                mininterval=0.2,
            )

    def callback(self, idx: int, total: int, item: CopyPlanItem) -> None:
        self.count = idx
        if self._tqdm is not None:
            self._tqdm.set_postfix_str(item.category.value, refresh=False)
            self._tqdm.update(1)
        elif (idx % self.log_every == 0) or (idx == total):
            pct = (idx / total) * 100 if total > 0 else 0.0
            self.log.info("Copy progress: %d/%d files (%.1f%%)", idx, total, pct)

    def close(self) -> None:
        if self._tqdm is not None:
            self._tqdm.close()
            self._tqdm = None
