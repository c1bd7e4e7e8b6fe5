"""
Watch engine: registration, notification backend and lifecycle.

FileLinesWatcher owns the four moving parts of the engine:
- WatchRegistry with every registered entry
- RefreshScheduler (dedup gate + reader pool + retry timers)
- MetadataPoller (periodic fallback check)
- a watchdog Observer delivering OS notifications (inotify, FSEvents,
  ReadDirectoryChangesW) to one FileWatcherEventHandler per entry

The engine starts lazily on the first registration. A process-wide default
engine backs the module-level watch_file_lines(); it lives until the
process exits.
"""

import logging
import os
import threading
from functools import partial
from typing import Callable, Optional

from linewatch.config import WatchConfig
from linewatch.watcher.entry import WatchEntry
from linewatch.watcher.handlers import FileWatcherEventHandler
from linewatch.watcher.poller import MetadataPoller
from linewatch.watcher.reader import read_lines
from linewatch.watcher.registry import WatchRegistry
from linewatch.watcher.scheduler import LineReader, RefreshScheduler
from linewatch.watcher.types import (
    ChangedCallback,
    DirectoryNotFoundError,
    ErrorCallback,
    FileEvent,
    PathLike,
    snapshot_of,
)

logger = logging.getLogger(__name__)


def _default_observer_factory():
    from watchdog.observers import Observer

    return Observer()


class FileLinesWatcher:
    """
    Watches individual files and delivers their current lines on change.

    Constructor Args:
    -----------------
    config: WatchConfig with poll interval, retry delay, pool size, encoding
    reader: Optional replacement for the line reader, signature (path) -> lines
    observer_factory: Zero-argument callable returning a watchdog observer

    Example Usage:
    --------------
    >>> def on_changed(lines):
    ...     print(f"{len(lines)} lines")
    ...
    >>> watcher = FileLinesWatcher()
    >>> watcher.watch_file_lines("settings.ini", on_changed, on_error=print)
    >>> # ... callbacks arrive on worker threads ...
    >>> watcher.stop()
    """

    def __init__(
        self,
        config: Optional[WatchConfig] = None,
        reader: Optional[LineReader] = None,
        observer_factory: Optional[Callable[[], object]] = None,
    ) -> None:
        self._config = config or WatchConfig()
        self._reader = reader or partial(read_lines, encoding=self._config.encoding)
        self._observer_factory = observer_factory or _default_observer_factory

        self._registry = WatchRegistry()
        self._scheduler: Optional[RefreshScheduler] = None
        self._poller: Optional[MetadataPoller] = None
        self._observer = None

        # Guards start/stop and observer scheduling
        self._lifecycle_lock = threading.Lock()
        self._stopped = False

    @property
    def config(self) -> WatchConfig:
        return self._config

    @property
    def registry(self) -> WatchRegistry:
        return self._registry

    @property
    def scheduler(self) -> Optional[RefreshScheduler]:
        return self._scheduler

    @property
    def poller(self) -> Optional[MetadataPoller]:
        return self._poller

    def is_running(self) -> bool:
        return self._scheduler is not None and not self._stopped

    def _ensure_started(self) -> None:
        """Start scheduler and poller on first use. Caller holds _lifecycle_lock."""
        if self._stopped:
            raise RuntimeError("FileLinesWatcher has been stopped")
        if self._scheduler is not None:
            return

        self._scheduler = RefreshScheduler(
            reader=self._reader,
            retry_delay=self._config.retry_delay,
            max_workers=self._config.max_workers,
        )
        self._poller = MetadataPoller(
            self._registry, self._scheduler, interval=self._config.poll_interval
        )
        self._poller.start()
        logger.info(
            f"Watch engine started (poll={self._config.poll_interval:.1f}s, "
            f"retry={self._config.retry_delay:.3f}s)"
        )

    def _get_observer(self):
        """Create and start the notification observer on first use."""
        if self._observer is None:
            observer = self._observer_factory()
            observer.start()
            self._observer = observer
        return self._observer

    def watch_file_lines(
        self,
        path: PathLike,
        on_changed: Optional[ChangedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        watch: bool = True,
    ) -> WatchEntry:
        """
        Start watching a file and deliver its lines now and on every change.

        The first read is queued immediately; this call never blocks on it.
        Callbacks run on worker threads, never concurrently for one file.

        Args:
        -----
        path: File to watch (absolute or relative to the current directory)
        on_changed: Called with the file's lines after every settled change
        on_error: Called with read errors and poll-time stat errors
        watch: Subscribe to OS notifications in addition to polling

        Returns:
        --------
        WatchEntry: The registered entry (stays registered for the engine's life)

        Raises:
        -------
        DirectoryNotFoundError: If the file's directory does not exist
        FileNotFoundError: If the file does not exist
        TypeError: If a callback is given but not callable
        RuntimeError: If the engine was stopped
        """
        for name, callback in (("on_changed", on_changed), ("on_error", on_error)):
            if callback is not None and not callable(callback):
                raise TypeError(f"{name} must be callable")

        full_path = os.path.abspath(os.fspath(path))
        directory = os.path.dirname(full_path)
        if not os.path.isdir(directory):
            raise DirectoryNotFoundError(f"Directory not found: {directory}")
        if not os.path.isfile(full_path):
            raise FileNotFoundError(f"File not found: {full_path}")

        entry = WatchEntry(
            path=full_path,
            notify=watch,
            last_meta=snapshot_of(full_path),
            on_changed=on_changed,
            on_error=on_error,
        )

        with self._lifecycle_lock:
            self._ensure_started()
            self._registry.add(entry)
            if watch:
                self._subscribe(entry, directory)

        logger.info(f"Watching {full_path} (notify={watch})")
        self._scheduler.request_refresh(entry)
        return entry

    def _subscribe(self, entry: WatchEntry, directory: str) -> None:
        """Schedule an OS notification handler for entry. Caller holds _lifecycle_lock."""
        handler = FileWatcherEventHandler(entry, self._scheduler)
        try:
            self._get_observer().schedule(handler, directory, recursive=False)
        except OSError as e:
            # e.g. inotify watch limit reached: polling still covers the entry
            logger.warning(
                f"OS notifications unavailable for {entry.path}, relying on polling: {e}"
            )
            handler.on_notification(FileEvent.ERROR)

    def refresh(self, entry: WatchEntry) -> bool:
        """Request a re-read of entry (no-op while a read is pending)."""
        if self._scheduler is None:
            return False
        return self._scheduler.request_refresh(entry)

    def poll_now(self) -> int:
        """Run one metadata poll tick immediately. Returns the number of changed entries."""
        if self._poller is None:
            return 0
        return self._poller.poll_once()

    def stop(self) -> None:
        """
        Stop the engine: poller, observer, retry timers and worker pool.

        Callbacks already running are allowed to finish. Safe to call
        multiple times or before anything was registered.
        """
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
            poller, self._poller = self._poller, None
            observer, self._observer = self._observer, None
            scheduler = self._scheduler

        if poller is not None:
            poller.stop()
        if observer is not None:
            logger.info("Stopping notification observer")
            observer.stop()
            observer.join()
        if scheduler is not None:
            scheduler.shutdown(wait=True)
        logger.info("Watch engine stopped")

    def __enter__(self) -> "FileLinesWatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


# Process-wide engine behind watch_file_lines(): created on first use,
# never torn down
_default_watcher: Optional[FileLinesWatcher] = None
_default_watcher_lock = threading.Lock()


def get_default_watcher() -> FileLinesWatcher:
    """Get or create the process-wide engine (configured from the environment)."""
    global _default_watcher
    with _default_watcher_lock:
        if _default_watcher is None:
            _default_watcher = FileLinesWatcher(config=WatchConfig.from_env())
        return _default_watcher


def watch_file_lines(
    path: PathLike,
    on_changed: Optional[ChangedCallback] = None,
    on_error: Optional[ErrorCallback] = None,
    watch: bool = True,
) -> WatchEntry:
    """Watch path on the process-wide engine. See FileLinesWatcher.watch_file_lines."""
    return get_default_watcher().watch_file_lines(
        path, on_changed=on_changed, on_error=on_error, watch=watch
    )
