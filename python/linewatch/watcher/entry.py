"""
Per-file watch state.

A WatchEntry bundles everything the engine knows about one watched file:
its path, the consumer callbacks, the dedup flag and the last observed
metadata snapshot.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

from linewatch.watcher.types import ChangedCallback, ErrorCallback, MetaSnapshot


@dataclass(eq=False)
class WatchEntry:
    """
    Mutable state for one watched file.

    Thread Safety:
    --------------
    - `pending`, `last_meta`, `read_generation` and `failures` are only
      touched while holding `lock`. The lock is reentrant: a notification
      handler holds it while calling RefreshScheduler.request_refresh(),
      which takes it again.
    - `delivery_lock` serializes consumer callbacks for this entry and guards
      `delivered_generation`. It is never acquired while holding `lock`.

    Invariants:
    -----------
    - pending is True iff a reader task is queued, running, or waiting on its
      retry timer.
    - last_meta may be stale between an external write and the next
      observation (notification event or poll tick).
    """

    path: str
    notify: bool
    last_meta: MetaSnapshot
    on_changed: Optional[ChangedCallback] = None
    on_error: Optional[ErrorCallback] = None
    pending: bool = False

    # Bumped on every read attempt, failed or not; results older than the
    # last one handed to a callback are dropped.
    read_generation: int = 0
    delivered_generation: int = 0
    # Consecutive failed reads, reset by a successful one
    failures: int = 0

    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    delivery_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __repr__(self) -> str:
        return f"WatchEntry(path={self.path!r}, notify={self.notify}, pending={self.pending})"
