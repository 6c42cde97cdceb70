"""
Errors that end a dump run.

Everything else is recorded as a RunIssue and the run carries on. Issue codes:
DIR_UNREADABLE, FILE_UNREADABLE, CATEGORY_SCAN_FAILED (scanner); DEST_COLLISION,
DEST_COLLISION_MORE, OUTSIDE_SOURCE (planner); SRC_MISSING, DST_DIR_CREATE_FAILED,
COPY_FAILED (copier).
"""
from __future__ import annotations


class DumperError(Exception):
    """Base class for errors that end a dump run."""


class InvalidSourceError(DumperError, ValueError):
    """Source root is missing or is not a directory."""


class InvalidDestinationError(DumperError, ValueError):
    """Destination root exists but cannot hold the dump (e.g. it is a file)."""


class RuleFileError(DumperError, ValueError):
    """A custom rule file could not be read or names unknown categories."""


class ReportWriteError(DumperError, OSError):
    """The run report could not be written under the destination root."""
