from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dumper.core.rules import ResourceCategory, ResourceKey


@dataclass(frozen=True)
class RunIssue:
    level: str  # INFO | WARNING | ERROR
    code: str   # stable short identifier (e.g. COPY_FAILED)
    message: str
    path: Optional[str] = None  # offending file or directory when applicable


@dataclass(frozen=True)
class MatchRecord:
    path: str  # absolute
    size_bytes: int


@dataclass(frozen=True)
class CopyPlanItem:
    src: str
    relpath: str  # relative to source root
    dst: str
    category: ResourceKey


@dataclass
class CategoryResult:
    category: ResourceCategory
    matches: List[MatchRecord] = field(default_factory=list)
    total_bytes: int = 0
    error: Optional[str] = None  # set when the category walk itself failed

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def add(self, record: MatchRecord) -> None:
        self.matches.append(record)
        self.total_bytes += record.size_bytes


@dataclass
class RunStats:
    per_category: Dict[ResourceKey, CategoryResult] = field(default_factory=dict)
    files_visited: int = 0  # distinct regular files seen on disk
    files_copied: int = 0
    files_failed: int = 0
    issues: List[RunIssue] = field(default_factory=list)

    @property
    def total_files_scanned(self) -> int:
        # A file matching several categories counts once per category.
        return sum(r.match_count for r in self.per_category.values())
