"""
Event handler bridging watchdog notifications into the refresh scheduler.

One handler is scheduled per watched entry on the entry's directory. Every
accepted event kind takes the same path: re-stat the file, remember the
snapshot, request a refresh. The backend cannot reliably tell us what
changed, so no kind gets special treatment.
"""

import logging
import os

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from linewatch.watcher.entry import WatchEntry
from linewatch.watcher.scheduler import RefreshScheduler
from linewatch.watcher.types import FileEvent, snapshot_of

logger = logging.getLogger(__name__)

# watchdog event_type -> FileEvent. "opened" and "closed_no_write" are
# excluded: our own reads produce them.
_EVENT_KINDS = {
    "created": FileEvent.CREATED,
    "modified": FileEvent.MODIFIED,
    "deleted": FileEvent.DELETED,
    "moved": FileEvent.MOVED,
    "closed": FileEvent.CLOSED,
}


def _normalize(path) -> str:
    return os.path.normcase(os.path.abspath(os.fsdecode(path)))


class FileWatcherEventHandler(FileSystemEventHandler):
    """
    Internal watchdog handler for a single watched file.

    Receives every event for the entry's directory, filters them down to the
    entry's filename and routes them to on_notification().
    """

    def __init__(self, entry: WatchEntry, scheduler: RefreshScheduler) -> None:
        super().__init__()
        self.entry = entry
        self.scheduler = scheduler
        self._target = _normalize(entry.path)

    def dispatch(self, event: FileSystemEvent) -> None:
        """Filter raw watchdog events and forward the ones for our file."""
        if event.is_directory:
            return

        kind = _EVENT_KINDS.get(event.event_type)
        if kind is None:
            return

        # Renames count when either side is our file
        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(dest_path)
        if not any(_normalize(p) == self._target for p in paths):
            return

        self.on_notification(kind)

    def on_notification(self, kind: FileEvent) -> None:
        """Re-validate the entry after a notification of any kind."""
        entry = self.entry
        logger.debug(f"{kind.value} event for {entry.path}")
        with entry.lock:
            try:
                entry.last_meta = snapshot_of(entry.path)
            except OSError as e:
                # The reader hits the same error and reports it
                logger.debug(f"Could not stat {entry.path} after {kind.value} event: {e}")
            self.scheduler.request_refresh(entry)
