from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Mapping, Optional, Set, Tuple

from dumper.config import DEFAULT_MAX_DEPTH
from dumper.core.rules import (
    ResourceCategory,
    ResourceKey,
    SelectedCategories,
    category_matches,
    default_categories,
)
from dumper.errors import InvalidSourceError
from dumper.logs import silent_logger
from dumper.models import CategoryResult, MatchRecord, RunIssue, RunStats


class _Walk:
    """
    One depth-bounded walk of the source tree.

    Uses an explicit stack of (directory, depth) instead of recursion. The root
    is depth 0 and directories deeper than max_depth are never listed.
    """

    def __init__(
        self,
        root: Path,
        max_depth: int,
        follow_symlinks: bool,
        stats: RunStats,
        reported: Set[Tuple[str, str]],
        log: logging.Logger,
    ) -> None:
        self.root = root
        self.max_depth = max_depth
        self.follow_symlinks = follow_symlinks
        self.stats = stats
        self.reported = reported
        self.log = log

    def _warn(self, code: str, message: str, path: str) -> None:
        # Every category walks the same tree; report each bad path once.
        if (code, path) in self.reported:
            return
        self.reported.add((code, path))
        self.log.warning(message)
        self.stats.issues.append(RunIssue("WARNING", code, message, path))

    def files(self) -> Iterator[os.DirEntry]:
        stack = [(str(self.root), 0)]
        while stack:
            directory, depth = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = list(it)
            except OSError as e:
                self._warn("DIR_UNREADABLE", f"Skipping unreadable directory: {directory} ({e})", directory)
                continue

            subdirs = []
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=self.follow_symlinks):
                        if depth + 1 <= self.max_depth:
                            subdirs.append(entry.path)
                        else:
                            self.log.debug("Depth limit reached, not descending: %s", entry.path)
                        continue
                    if not entry.is_file(follow_symlinks=self.follow_symlinks):
                        continue
                except OSError as e:
                    self._warn("FILE_UNREADABLE", f"Skipping unreadable entry: {entry.path} ({e})", entry.path)
                    continue
                yield entry

            # reversed so the first listed subdirectory is walked first
            for path in reversed(subdirs):
                stack.append((path, depth + 1))

    def size_of(self, entry: os.DirEntry) -> Optional[int]:
        try:
            return int(entry.stat(follow_symlinks=self.follow_symlinks).st_size)
        except OSError as e:
            self._warn("FILE_UNREADABLE", f"Skipping unreadable file: {entry.path} ({e})", entry.path)
            return None


def _scan_category(
    walk: _Walk,
    category: ResourceCategory,
    result: CategoryResult,
    count_visits: bool,
) -> None:
    for entry in walk.files():
        if count_visits:
            walk.stats.files_visited += 1

        if not category_matches(category, entry.name):
            continue

        size = walk.size_of(entry)
        if size is None:
            continue

        result.add(MatchRecord(path=entry.path, size_bytes=size))
        walk.log.debug("[%s] matched %s (%d bytes)", category.key.value, entry.path, size)


def scan_resources(
    source_root: str,
    selected: SelectedCategories,
    categories: Optional[Mapping[ResourceKey, ResourceCategory]] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    follow_symlinks: bool = True,
    log: Optional[logging.Logger] = None,
) -> RunStats:
    """
    Scan source_root once per selected category and collect matching files.

    A file may land in several categories; it is recorded under each one.
    Unreadable directories/files are skipped with a warning, and a category
    whose walk blows up keeps whatever it matched before the failure.
    """
    log = log or silent_logger()
    table = categories if categories is not None else default_categories()

    root_path = Path(source_root).resolve()
    if not root_path.is_dir():
        raise InvalidSourceError(f"Source is not a directory: {source_root}")

    stats = RunStats()
    reported: Set[Tuple[str, str]] = set()
    walk = _Walk(root_path, max_depth, follow_symlinks, stats, reported, log)

    for idx, key in enumerate(selected):
        category = table[key]
        result = CategoryResult(category=category)
        stats.per_category[key] = result

        log.info("Scanning for %s...", category.display_name)
        try:
            _scan_category(walk, category, result, count_visits=(idx == 0))
        except Exception as e:
            result.error = str(e)
            msg = f"Scan failed for category '{key.value}': {e}"
            log.error(msg)
            stats.issues.append(RunIssue("ERROR", "CATEGORY_SCAN_FAILED", msg, None))
            continue

        log.info(
            "Found %d %s file(s), %d bytes",
            result.match_count,
            category.display_name,
            result.total_bytes,
        )

    return stats
