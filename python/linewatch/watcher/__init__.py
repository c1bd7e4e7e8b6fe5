"""
Single-file watching with coalesced line delivery.

This package watches individual files and hands their current lines to a
consumer callback whenever they settle. It combines OS notifications
(through the watchdog library) with a periodic metadata poll, because
notification backends drop or misfire events on network filesystems and
with editors that atomically replace files.

Typical usage:
--------------
    from linewatch.watcher import FileLinesWatcher

    def on_changed(lines):
        print(f"now {len(lines)} lines")

    def on_error(error):
        print(f"read failed: {error}")

    watcher = FileLinesWatcher()
    watcher.watch_file_lines("app.cfg", on_changed, on_error)
    # ... callbacks arrive on worker threads ...
    watcher.stop()

ERROR CONDITIONS SUMMARY
========================

1. REGISTRATION ERRORS (raised synchronously, no callback invoked):
   - Parent directory missing → DirectoryNotFoundError
   - File missing → FileNotFoundError
   - Callback not callable → TypeError
   - Engine already stopped → RuntimeError

2. READ ERRORS (delivered to on_error, never raised):
   - File deleted → FileNotFoundError, retried every retry_delay until it
     comes back; the entry stays registered
   - File locked / mid-write / permission denied → OSError, retried
   - Undecodable content → UnicodeDecodeError, retried

3. POLL ERRORS:
   - OSError while stat-ing one entry → that entry's on_error, the tick
     continues with the other entries
   - Anything else → logged, the poller keeps running

4. CALLBACK ERRORS:
   - on_changed raises → passed to on_error (if any) and logged, no retry
   - on_error raises → logged

CONCURRENCY SUMMARY
===================

- At most one read in flight per entry (the dedup gate)
- Callbacks for one entry never run concurrently, and an older read is
  never delivered after a newer one. Failed reads take part in the same
  ordering: once a read error is reported, lines from earlier reads are
  dropped
- Nothing is ordered across entries
- File reads only happen on the worker pool, never on the observer or
  poller thread
"""

from linewatch.watcher.core import FileLinesWatcher, get_default_watcher, watch_file_lines
from linewatch.watcher.entry import WatchEntry
from linewatch.watcher.handlers import FileWatcherEventHandler
from linewatch.watcher.poller import MetadataPoller
from linewatch.watcher.reader import read_lines
from linewatch.watcher.registry import WatchRegistry
from linewatch.watcher.scheduler import RefreshScheduler
from linewatch.watcher.types import (
    MISSING_SNAPSHOT,
    DirectoryNotFoundError,
    FileEvent,
    MetaSnapshot,
    snapshot_of,
)

__all__ = [
    "DirectoryNotFoundError",
    "FileEvent",
    "FileLinesWatcher",
    "FileWatcherEventHandler",
    "MISSING_SNAPSHOT",
    "MetaSnapshot",
    "MetadataPoller",
    "RefreshScheduler",
    "WatchEntry",
    "WatchRegistry",
    "get_default_watcher",
    "read_lines",
    "snapshot_of",
    "watch_file_lines",
]
