"""
linewatch - deliver a file's current lines whenever it settles.

Watches single files through OS notifications plus a periodic metadata poll,
coalesces bursts of writes into one read, and retries reads that fail while a
writer is busy with the file.
"""

__version__ = "0.1.0"

from linewatch.watcher import (
    DirectoryNotFoundError,
    FileLinesWatcher,
    MetaSnapshot,
    WatchEntry,
    watch_file_lines,
)

__all__ = [
    "DirectoryNotFoundError",
    "FileLinesWatcher",
    "MetaSnapshot",
    "WatchEntry",
    "__version__",
    "watch_file_lines",
]
