"""
Tests for FileLinesWatcher end to end: registration, delivery, bursts, deletion.

These tests run the real engine (watchdog observer, poller, worker pool)
with fast timings:
1. Registration errors are raised synchronously
2. The first delivery happens right after registration
3. Writes after registration are delivered (notifications and polling)
4. Bursts of writes settle on the final content
5. Deletion is reported through on_error and the watch survives it
"""

import os
import random
import threading
import time

import pytest

from linewatch.watcher import DirectoryNotFoundError, FileLinesWatcher
from linewatch.config import WatchConfig

from tests.fixtures.watcher import CallbackRecorder, wait_until


def random_lines(rng: random.Random) -> list[str]:
    alphabet = "abcdef 0123456789-_!"
    return [
        "".join(rng.choice(alphabet) for _ in range(rng.randint(19, 28)))
        for _ in range(rng.randint(3, 5))
    ]


def write_lines(path, lines) -> None:
    path.write_text("".join(f"{line}\n" for line in lines))


# ============================================================================
# REGISTRATION
# ============================================================================


def test_watch_missing_file_raises(watcher, temp_workspace, recorder):
    """Test: A missing file fails registration and invokes no callback."""
    with pytest.raises(FileNotFoundError) as exc_info:
        watcher.watch_file_lines(
            temp_workspace / "missing.txt", recorder.on_changed, recorder.on_error
        )

    assert not isinstance(exc_info.value, DirectoryNotFoundError)
    time.sleep(0.2)
    assert recorder.deliveries == []
    assert recorder.errors == []
    assert len(watcher.registry) == 0


def test_watch_missing_directory_raises(watcher, temp_workspace, recorder):
    """Test: A missing parent directory fails with DirectoryNotFoundError."""
    with pytest.raises(DirectoryNotFoundError, match="Directory not found"):
        watcher.watch_file_lines(
            temp_workspace / "no_such_dir" / "file.txt", recorder.on_changed, recorder.on_error
        )

    assert recorder.deliveries == []
    assert len(watcher.registry) == 0


def test_watch_directory_instead_of_file_raises(watcher, temp_workspace):
    """Test: Pointing at a directory is treated as a missing file."""
    with pytest.raises(FileNotFoundError):
        watcher.watch_file_lines(temp_workspace)


def test_callback_not_callable_raises(watcher, sample_file):
    with pytest.raises(TypeError, match="on_changed must be callable"):
        watcher.watch_file_lines(sample_file, "not_a_function")  # type: ignore[arg-type]
    with pytest.raises(TypeError, match="on_error must be callable"):
        watcher.watch_file_lines(sample_file, None, 42)  # type: ignore[arg-type]


def test_registration_returns_entry(watcher, sample_file, recorder):
    """Test: The returned entry carries the absolute path and notify flag."""
    entry = watcher.watch_file_lines(sample_file, recorder.on_changed, watch=False)

    assert entry.path == os.path.abspath(sample_file)
    assert entry.notify is False
    assert watcher.registry.snapshot_all() == [entry]
    assert watcher.is_running()


def test_relative_path(watcher, sample_file, recorder, monkeypatch):
    """Test: Relative paths are resolved against the current directory."""
    monkeypatch.chdir(sample_file.parent)

    entry = watcher.watch_file_lines("sample.txt", recorder.on_changed, recorder.on_error)

    assert os.path.samefile(entry.path, sample_file)
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])


# ============================================================================
# DELIVERY
# ============================================================================


def test_initial_content_delivered_promptly(watcher, sample_file, recorder):
    """Test: Registration triggers an immediate read (well under a second)."""
    start = time.monotonic()
    watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)

    assert recorder.wait_for_lines(["alpha", "beta", "gamma"], timeout=1.0)
    assert time.monotonic() - start < 1.0
    assert recorder.errors == []


def test_registration_does_not_block_on_read(sample_file, fast_config):
    """Test: watch_file_lines returns while the first read is still running."""
    release = threading.Event()
    delivered = threading.Event()

    def slow_reader(path):
        release.wait(5)
        return ["late"]

    with FileLinesWatcher(config=fast_config, reader=slow_reader) as watcher:
        watcher.watch_file_lines(sample_file, lambda lines: delivered.set(), watch=False)
        assert not delivered.is_set()
        release.set()
        assert delivered.wait(5)


def test_write_after_registration_is_delivered(watcher, sample_file, recorder):
    """Test: One write after registration ends in a delivery of that content."""
    watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

    write_lines(sample_file, ["one", "two", "three", "four"])

    assert recorder.wait_for_lines(["one", "two", "three", "four"])
    assert recorder.errors == []


def test_notifications_without_polling(slow_poll_watcher, sample_file, recorder):
    """Test: OS notifications alone deliver changes (poller effectively off)."""
    slow_poll_watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])
    time.sleep(0.2)  # let the observer settle its watch

    write_lines(sample_file, ["notified"])

    assert recorder.wait_for_lines(["notified"])


def test_polling_without_notifications(watcher, sample_file, recorder):
    """Test: With watch=False the poller alone picks up changes."""
    entry = watcher.watch_file_lines(
        sample_file, recorder.on_changed, recorder.on_error, watch=False
    )
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

    write_lines(sample_file, ["polled", "content"])

    assert recorder.wait_for_lines(["polled", "content"])
    assert entry.notify is False


def test_poll_now(slow_poll_watcher, sample_file, recorder):
    """Test: poll_now() runs a tick on demand."""
    slow_poll_watcher.watch_file_lines(
        sample_file, recorder.on_changed, recorder.on_error, watch=False
    )
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

    write_lines(sample_file, ["manual", "tick", "content"])

    assert slow_poll_watcher.poll_now() == 1
    assert recorder.wait_for_lines(["manual", "tick", "content"])


def test_refresh_rereads(watcher, sample_file, recorder):
    """Test: refresh() forces a re-read even without a metadata change."""
    entry = watcher.watch_file_lines(sample_file, recorder.on_changed, watch=False)
    assert recorder.wait_for(lambda r: len(r.deliveries) == 1)
    assert wait_until(lambda: not entry.pending)

    assert watcher.refresh(entry) is True
    assert recorder.wait_for(lambda r: len(r.deliveries) >= 2)


def test_burst_settles_on_final_content(watcher, sample_file, recorder):
    """Test: Many rapid rewrites end with the final write delivered."""
    rng = random.Random(1234)
    write_lines(sample_file, random_lines(rng))
    final = random_lines(rng)

    watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)

    for _ in range(100):
        try:
            write_lines(sample_file, random_lines(rng))
        except OSError:
            pass
    time.sleep(0.01)
    for _ in range(100):
        try:
            write_lines(sample_file, random_lines(rng))
        except OSError:
            pass
    # Ensure the final write differs in size from every burst write
    final.append("x" * 64)
    write_lines(sample_file, final)

    assert recorder.wait_for_lines(final)
    # Highly contested files may legitimately produce transient OSErrors
    assert all(isinstance(e, OSError) for e in recorder.errors)


def test_empty_file(watcher, temp_file, recorder):
    path = temp_file("", name="empty.txt")
    watcher.watch_file_lines(path, recorder.on_changed, recorder.on_error)
    assert recorder.wait_for_lines([])


# ============================================================================
# DELETION
# ============================================================================


def test_delete_reports_file_not_found(watcher, sample_file, recorder):
    """Test: Deleting the file reports FileNotFoundError and no stale content."""
    watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

    sample_file.unlink()

    assert recorder.wait_for_error(FileNotFoundError)
    assert all(lines == ["alpha", "beta", "gamma"] for lines in recorder.deliveries)


def test_watch_survives_deletion(watcher, sample_file, recorder):
    """Test: The entry stays registered and delivers once the file is recreated."""
    watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
    assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

    sample_file.unlink()
    assert recorder.wait_for_error(FileNotFoundError)

    write_lines(sample_file, ["back", "again"])

    assert recorder.wait_for_lines(["back", "again"])
    assert len(watcher.registry) == 1


def test_deletion_is_isolated_per_entry(watcher, temp_workspace):
    """Test: One entry's errors never reach another entry's callbacks."""
    doomed_path = temp_workspace / "doomed.txt"
    kept_path = temp_workspace / "kept.txt"
    write_lines(doomed_path, ["doomed"])
    write_lines(kept_path, ["kept"])
    doomed, kept = CallbackRecorder(), CallbackRecorder()

    watcher.watch_file_lines(doomed_path, doomed.on_changed, doomed.on_error)
    watcher.watch_file_lines(kept_path, kept.on_changed, kept.on_error)
    assert doomed.wait_for_lines(["doomed"])
    assert kept.wait_for_lines(["kept"])

    doomed_path.unlink()
    assert doomed.wait_for_error(FileNotFoundError)

    write_lines(kept_path, ["kept", "and", "updated"])
    assert kept.wait_for_lines(["kept", "and", "updated"])
    assert kept.errors == []


# ============================================================================
# LIFECYCLE
# ============================================================================


def test_stop_is_idempotent(fast_config):
    watcher = FileLinesWatcher(config=fast_config)
    watcher.stop()
    watcher.stop()
    assert not watcher.is_running()


def test_watch_after_stop_raises(fast_config, sample_file):
    watcher = FileLinesWatcher(config=fast_config)
    watcher.stop()
    with pytest.raises(RuntimeError, match="stopped"):
        watcher.watch_file_lines(sample_file)


def test_no_callbacks_after_stop(fast_config, sample_file, recorder):
    """Test: Changes after stop() are not delivered."""
    with FileLinesWatcher(config=fast_config) as watcher:
        watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
        assert recorder.wait_for_lines(["alpha", "beta", "gamma"])
    count = len(recorder.deliveries)

    write_lines(sample_file, ["after", "stop"])
    time.sleep(0.3)

    assert len(recorder.deliveries) == count
    assert watcher.refresh(watcher.registry.snapshot_all()[0]) is False


def test_observer_failure_falls_back_to_polling(sample_file, recorder):
    """Test: If OS notifications cannot be scheduled, polling still works."""

    class BrokenObserver:
        def start(self):
            pass

        def schedule(self, *args, **kwargs):
            raise OSError(28, "inotify watch limit reached")

        def stop(self):
            pass

        def join(self, timeout=None):
            pass

    config = WatchConfig(poll_interval=0.1, retry_delay=0.05)
    with FileLinesWatcher(config=config, observer_factory=BrokenObserver) as watcher:
        watcher.watch_file_lines(sample_file, recorder.on_changed, recorder.on_error)
        assert recorder.wait_for_lines(["alpha", "beta", "gamma"])

        write_lines(sample_file, ["still", "polled"])
        assert recorder.wait_for_lines(["still", "polled"])
