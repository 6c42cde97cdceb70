from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from dumper.core.planner import build_copy_plan
from dumper.logs import silent_logger
from dumper.models import CopyPlanItem, RunIssue, RunStats

ProgressCallback = Callable[[int, int, CopyPlanItem], None]


@dataclass(frozen=True)
class CopySummary:
    total: int
    copied: int
    failed: int


def execute_copy(
    plan: List[CopyPlanItem],
    progress_cb: Optional[ProgressCallback] = None,
    log: Optional[logging.Logger] = None,
) -> Tuple[CopySummary, List[RunIssue]]:
    """
    Copy every plan item, best effort.

    Existing destination files are overwritten. A failure on one file is
    recorded and the loop moves on, so copied + failed always equals the plan
    length.
    """
    log = log or silent_logger()
    issues: List[RunIssue] = []

    total = len(plan)
    copied = 0
    failed = 0

    def fail(code: str, message: str, item: CopyPlanItem) -> None:
        nonlocal failed
        failed += 1
        log.error(message)
        issues.append(RunIssue("ERROR", code, message, item.src))

    for idx, item in enumerate(plan, start=1):
        if progress_cb:
            progress_cb(idx, total, item)

        src = Path(item.src)
        dst = Path(item.dst)

        if not src.is_file():
            fail("SRC_MISSING", f"Source missing: {src}", item)
            continue

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            fail("DST_DIR_CREATE_FAILED", f"Failed creating destination folder: {dst.parent} ({e})", item)
            continue

        try:
            # copy2 carries the source mode over, so a read-only copy from an
            # earlier run has to go before it can be replaced.
            if dst.is_symlink() or dst.is_file():
                dst.unlink()
            shutil.copy2(src, dst)
        except OSError as e:
            fail("COPY_FAILED", f"Copy failed: {src} -> {dst} ({e})", item)
            continue

        copied += 1
        log.debug("Copied %s -> %s", src, dst)

    return CopySummary(total=total, copied=copied, failed=failed), issues


def copy_all(
    stats: RunStats,
    source_root: str,
    destination_root: str,
    progress_cb: Optional[ProgressCallback] = None,
    log: Optional[logging.Logger] = None,
) -> CopySummary:
    """Plan and copy every match in stats, recording outcomes back onto stats."""
    log = log or silent_logger()

    plan, plan_issues = build_copy_plan(stats, source_root, destination_root)
    for issue in plan_issues:
        log.warning(issue.message)
    stats.issues.extend(plan_issues)

    summary, issues = execute_copy(plan, progress_cb=progress_cb, log=log)
    stats.issues.extend(issues)

    # Plan-stage rejects never reached the copy loop but still count as failures.
    rejected = sum(1 for i in plan_issues if i.level == "ERROR")
    stats.files_copied += summary.copied
    stats.files_failed += summary.failed + rejected

    return CopySummary(total=summary.total + rejected, copied=summary.copied, failed=summary.failed + rejected)
