"""
Refresh scheduling: the dedup gate and the content-reading workers.

Both the notification handlers and the poller funnel into
RefreshScheduler.request_refresh(). The gate makes sure at most one read task
per entry is queued or running, so a burst of events costs one read instead
of one read per event. Reads run on a worker pool and never on the observer
or poller thread.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from linewatch.config import DEFAULT_RETRY_DELAY
from linewatch.watcher.entry import WatchEntry
from linewatch.watcher.reader import read_lines
from linewatch.watcher.types import describe_error

logger = logging.getLogger(__name__)

LineReader = Callable[[str], Sequence[str]]


def report_error(
    entry: WatchEntry,
    error: BaseException,
    generation: Optional[int] = None,
    repeated: bool = False,
) -> None:
    """
    Deliver error to the entry's on_error callback.

    Args:
    -----
    entry: Entry the error belongs to
    error: The exception to report
    generation: Read generation of a failed read. Failed and successful reads
        share one ordering: once an error is reported, older successful reads
        are dropped, and an error older than the last delivery is dropped.
        Poll-time stat errors pass None and are delivered as they come.
    repeated: True for consecutive failures after the first; only changes the
        log level when there is no on_error

    Must not be called while holding entry.lock. Exceptions raised by the
    callback are logged and dropped so they never reach engine threads.
    """
    with entry.delivery_lock:
        if generation is not None:
            if generation <= entry.delivered_generation:
                logger.debug(f"Dropping stale error #{generation} for {entry.path}")
                return
            entry.delivered_generation = generation

        if entry.on_error is None:
            logger.log(
                logging.DEBUG if repeated else logging.WARNING,
                f"Unreported error for {entry.path}: {describe_error(error)}",
            )
            return
        _call_on_error(entry, error)


def _call_on_error(entry: WatchEntry, error: BaseException) -> None:
    try:
        entry.on_error(error)
    except Exception:
        logger.exception(f"on_error callback for {entry.path} raised")


class RefreshScheduler:
    """
    Dedup gate plus worker pool for reading watched files.

    Behavior:
    ---------
    request_refresh(entry):
    1. Under entry.lock, return immediately if a read is already pending
    2. Otherwise mark the entry pending and submit a read task

    Read task:
    1. Under entry.lock, read all lines, clear pending, stamp a generation
    2. Outside entry.lock, hand the lines to on_changed
    3. On failure, stamp a generation too, report to on_error and after
       retry_delay clear pending and request a new refresh. Successful reads
       older than a reported error are never delivered.

    Example:
    --------
    file.txt modified at t=0ms    → read task queued
    file.txt modified at t=5ms    } Dropped: read already pending,
    file.txt modified at t=10ms   } it will see the latest content
    """

    def __init__(
        self,
        reader: Optional[LineReader] = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_workers: Optional[int] = None,
    ) -> None:
        """
        Initialize the scheduler and its worker pool.

        Args:
        -----
        reader: Callable returning the lines of a path (default: read_lines)
        retry_delay: Seconds to wait before retrying a failed read
        max_workers: Worker pool size (default: ThreadPoolExecutor default)

        Raises:
        -------
        ValueError: If retry_delay is not positive
        """
        if retry_delay <= 0:
            raise ValueError("retry_delay must be positive")

        self._reader = reader or read_lines
        self._retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="linewatch-reader"
        )

        # Outstanding retry timers, cancelled on shutdown
        self._timers: set[threading.Timer] = set()
        self._timers_lock = threading.Lock()
        self._closed = False

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    @property
    def is_closed(self) -> bool:
        return self._closed

    def request_refresh(self, entry: WatchEntry) -> bool:
        """
        Queue a read of entry unless one is already pending.

        Never blocks on file I/O; safe to call from the observer thread,
        the poller thread and retry timers.

        Returns:
        --------
        bool: True if a new read task was queued
        """
        with entry.lock:
            if entry.pending:
                return False
            if self._closed:
                logger.debug(f"Scheduler closed, dropping refresh of {entry.path}")
                return False

            entry.pending = True
            try:
                self._executor.submit(self._read_and_deliver, entry)
            except RuntimeError:
                # Pool shut down between the closed check and submit
                entry.pending = False
                return False
            return True

    def _read_and_deliver(self, entry: WatchEntry) -> None:
        """Worker task: read the file, then deliver lines or schedule a retry."""
        try:
            with entry.lock:
                lines = self._reader(entry.path)
                entry.pending = False
                entry.failures = 0
                entry.read_generation += 1
                generation = entry.read_generation
        except Exception as e:
            # pending stays set until the retry fires
            with entry.lock:
                entry.failures += 1
                failures = entry.failures
                entry.read_generation += 1
                generation = entry.read_generation
            logger.debug(
                f"Read #{generation} of {entry.path} failed ({describe_error(e)}), "
                f"retrying in {self._retry_delay:.3f}s"
            )
            report_error(entry, e, generation=generation, repeated=failures > 1)
            self._schedule_retry(entry)
            return

        self._deliver_lines(entry, lines, generation)

    def _deliver_lines(self, entry: WatchEntry, lines: Sequence[str], generation: int) -> None:
        with entry.delivery_lock:
            if generation <= entry.delivered_generation:
                logger.debug(f"Dropping stale read #{generation} of {entry.path}")
                return
            entry.delivered_generation = generation

            if entry.on_changed is None:
                return
            try:
                entry.on_changed(lines)
            except Exception as e:
                logger.error(f"on_changed callback for {entry.path} raised: {e}", exc_info=True)
                if entry.on_error is not None:
                    _call_on_error(entry, e)

    def _schedule_retry(self, entry: WatchEntry) -> None:
        def retry() -> None:
            with self._timers_lock:
                self._timers.discard(timer)
            with entry.lock:
                entry.pending = False
                self.request_refresh(entry)

        with self._timers_lock:
            if self._closed:
                with entry.lock:
                    entry.pending = False
                return
            timer = threading.Timer(self._retry_delay, retry)
            timer.daemon = True
            self._timers.add(timer)
        timer.start()

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting refreshes, cancel retry timers and stop the workers.

        Safe to call more than once.
        """
        with self._timers_lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._executor.shutdown(wait=wait, cancel_futures=True)
