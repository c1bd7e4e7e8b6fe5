"""
Process-wide collection of watch entries.

The registry is append-only from the outside. The poller iterates over a copy
taken under the registry lock so slow per-entry work never blocks a
concurrent registration.
"""

import threading
from typing import Iterator

from linewatch.watcher.entry import WatchEntry


class WatchRegistry:
    """Thread-safe, append-only list of WatchEntry objects."""

    def __init__(self) -> None:
        self._entries: list[WatchEntry] = []
        # Never held while touching an entry's own lock
        self._lock = threading.Lock()

    def add(self, entry: WatchEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def snapshot_all(self) -> list[WatchEntry]:
        """Copy of the current entries, safe to iterate without the lock."""
        with self._lock:
            return list(self._entries)

    def __iter__(self) -> Iterator[WatchEntry]:
        return iter(self.snapshot_all())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
