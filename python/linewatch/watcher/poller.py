"""
Periodic metadata poll.

Safety net for notification backends that drop events (network filesystems,
editors that atomically replace files). Every tick compares each entry's
current metadata snapshot to the last one seen and requests a refresh when
they differ.
"""

import logging
import threading
from typing import Optional

from linewatch.config import DEFAULT_POLL_INTERVAL
from linewatch.watcher.registry import WatchRegistry
from linewatch.watcher.scheduler import RefreshScheduler, report_error
from linewatch.watcher.types import snapshot_of

logger = logging.getLogger(__name__)


class MetadataPoller:
    """
    Background thread that polls every registered entry on a fixed period.

    The first tick happens one interval after start(). Ticks never overlap:
    the next wait starts when the previous tick finishes.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        scheduler: RefreshScheduler,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("poll interval must be positive")

        self._registry = registry
        self._scheduler = scheduler
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    def start(self) -> None:
        """
        Start the polling thread.

        Raises:
        -------
        RuntimeError: If already running
        """
        if self.is_running():
            raise RuntimeError("MetadataPoller is already running")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="linewatch-poller", daemon=True
        )
        self._thread.start()
        logger.debug(f"Metadata poller started (interval={self._interval:.1f}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the polling thread. Safe to call when not running."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.debug("Metadata poller stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.poll_once()
            except Exception:
                # Log and keep polling
                logger.exception("Unexpected error during metadata poll")

    def poll_once(self) -> int:
        """
        Run a single poll tick over a copy of the registry.

        An OSError while stat-ing an entry goes to that entry's on_error and
        the tick moves on to the next entry.

        Returns:
        --------
        int: Number of entries whose metadata changed
        """
        changed_count = 0
        for entry in self._registry.snapshot_all():
            try:
                with entry.lock:
                    current = snapshot_of(entry.path)
                    changed = current != entry.last_meta
                    entry.last_meta = current
                    if changed:
                        self._scheduler.request_refresh(entry)
            except OSError as e:
                report_error(entry, e)
                continue

            if changed:
                changed_count += 1
                logger.debug(f"Poll detected change in {entry.path}")
        return changed_count
