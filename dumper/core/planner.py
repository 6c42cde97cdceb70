from __future__ import annotations

import os
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

from dumper.config import RESOURCES_DIRNAME
from dumper.models import CopyPlanItem, RunIssue, RunStats

_MAX_COLLISIONS_SHOWN = 25


def destination_for(destination_root: Path, category_key: str, relpath: str) -> Path:
    return destination_root / RESOURCES_DIRNAME / category_key / relpath


def build_copy_plan(
    stats: RunStats,
    source_root: str,
    destination_root: str,
) -> Tuple[List[CopyPlanItem], List[RunIssue]]:
    """
    Decide the destination of every match:

        <destination>/resources/<category>/<path relative to source root>

    Categories keep their selection order and files keep scan order. A file
    matched by two categories gets one plan item per category.
    """
    issues: List[RunIssue] = []
    src_root = Path(source_root).resolve()
    out_root = Path(destination_root).resolve()

    plan: List[CopyPlanItem] = []
    for key, result in stats.per_category.items():
        for match in result.matches:
            try:
                rel = Path(match.path).relative_to(src_root)
            except ValueError:
                # Scanner only yields paths under the root; guard anyway.
                issues.append(
                    RunIssue(
                        "ERROR",
                        "OUTSIDE_SOURCE",
                        f"Match is outside the source root: {match.path}",
                        match.path,
                    )
                )
                continue

            plan.append(
                CopyPlanItem(
                    src=match.path,
                    relpath=rel.as_posix(),
                    dst=str(destination_for(out_root, key.value, str(rel))),
                    category=key,
                )
            )

    # Collision detection: two sources landing on the same file (e.g. case-only
    # differences on a case-insensitive filesystem). Last copy wins.
    dst_map: Dict[str, List[CopyPlanItem]] = defaultdict(list)
    for item in plan:
        key = os.path.normcase(os.path.normpath(item.dst))
        dst_map[key].append(item)

    collisions = [items for items in dst_map.values() if len(items) > 1]
    for items in collisions[:_MAX_COLLISIONS_SHOWN]:
        sample = items[-1]
        issues.append(
            RunIssue(
                "WARNING",
                "DEST_COLLISION",
                f"{len(items)} files map to the same destination; last one wins: {sample.dst}",
                sample.src,
            )
        )
    if len(collisions) > _MAX_COLLISIONS_SHOWN:
        issues.append(
            RunIssue(
                "WARNING",
                "DEST_COLLISION_MORE",
                f"{len(collisions) - _MAX_COLLISIONS_SHOWN} more destination collisions not shown.",
                None,
            )
        )

    return plan, issues
