"""
File watcher type definitions.

This module defines the core value types shared by the watch engine:
- FileEvent enum: notification kinds that trigger a re-validation
- MetaSnapshot: cheap (mtime, size) fingerprint of a file
- DirectoryNotFoundError: registration failure for a missing parent directory
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence, Union

PathLike = Union[str, "os.PathLike[str]"]

# Consumer callbacks
ChangedCallback = Callable[[Sequence[str]], None]
ErrorCallback = Callable[[BaseException], None]

# 1971-01-01T00:00:00Z - older than any file we will ever stat for real
MISSING_MTIME_NS = 365 * 24 * 60 * 60 * 1_000_000_000


class FileEvent(Enum):
    """Notification kinds that cause an entry to be re-validated."""

    CREATED = "created"  # File appeared in the watched directory
    MODIFIED = "modified"  # Content or metadata changed
    DELETED = "deleted"  # File removed
    MOVED = "moved"  # File renamed away or renamed into place
    CLOSED = "closed"  # Writer closed the file
    ERROR = "error"  # Backend could not deliver events reliably


class DirectoryNotFoundError(FileNotFoundError):
    """Raised at registration when the watched file's directory does not exist."""


@dataclass(frozen=True)
class MetaSnapshot:
    """
    Immutable fingerprint of a file's metadata.

    Two snapshots are equal iff both the modification time and the size match.
    Used to decide whether a file changed without reading its content.
    """

    mtime_ns: int
    size: int

    @property
    def last_modified(self) -> datetime:
        """Modification time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.mtime_ns / 1_000_000_000, tz=timezone.utc)

    @property
    def is_missing(self) -> bool:
        return self == MISSING_SNAPSHOT


MISSING_SNAPSHOT = MetaSnapshot(mtime_ns=MISSING_MTIME_NS, size=0)


def snapshot_of(path: PathLike) -> MetaSnapshot:
    """
    Take a metadata snapshot of path.

    A missing file (or missing parent component) is folded into
    MISSING_SNAPSHOT instead of raising. Any other OSError propagates.
    """
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return MISSING_SNAPSHOT
    return MetaSnapshot(mtime_ns=st.st_mtime_ns, size=st.st_size)


def describe_error(error: Optional[BaseException]) -> str:
    """Short one-line rendering of an error for log messages."""
    if error is None:
        return "<none>"
    return f"{type(error).__name__}: {error}"
