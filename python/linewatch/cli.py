"""
Command-line entry point: watch one file and print it whenever it settles.

Usage:
    linewatch notes.txt
    linewatch notes.txt --no-notify --poll-interval 2
    linewatch notes.txt --count 1          # print current content and exit

Or via environment variables:
    LINEWATCH_POLL_INTERVAL=5 LINEWATCH_RETRY_DELAY=0.5 linewatch notes.txt

File content goes to stdout, errors and logs to stderr.
"""

import argparse
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from linewatch import __version__
from linewatch.config import WatchConfig
from linewatch.logging_config import setup_logging
from linewatch.watcher import DirectoryNotFoundError, FileLinesWatcher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linewatch",
        description="Print a file's lines every time its content settles",
    )
    parser.add_argument("path", help="File to watch (must exist)")
    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Disable OS change notifications and rely on polling only",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between metadata polls (default: 30, or LINEWATCH_POLL_INTERVAL)",
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=None,
        help="Seconds before retrying a failed read (default: 0.2, or LINEWATCH_RETRY_DELAY)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Exit after this many deliveries (default: run until interrupted)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Write rotating log files to this directory",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log to stderr (-v info, -vv debug)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


class _Printer:
    """Writes deliveries to stdout and counts them."""

    def __init__(self, out, err, limit: Optional[int]) -> None:
        self._out = out
        self._err = err
        self._limit = limit
        self._count = 0
        self.done = threading.Event()

    def on_changed(self, lines: Sequence[str]) -> None:
        self._count += 1
        stamp = datetime.now().strftime("%H:%M:%S")
        self._out.write(f"--- {stamp} ({len(lines)} lines) ---\n")
        for line in lines:
            self._out.write(f"{line}\n")
        self._out.flush()
        if self._limit is not None and self._count >= self._limit:
            self.done.set()

    def on_error(self, error: BaseException) -> None:
        self._err.write(f"linewatch: {type(error).__name__}: {error}\n")
        self._err.flush()


def main(argv: Optional[Sequence[str]] = None, out=None, err=None) -> int:
    """Run the CLI. Returns the process exit code."""
    out = out or sys.stdout
    err = err or sys.stderr
    args = build_parser().parse_args(argv)

    if args.verbose or args.log_dir:
        level = logging.DEBUG if args.verbose > 1 else logging.INFO
        setup_logging(log_dir=args.log_dir, level=level, console=bool(args.verbose))

    try:
        config = WatchConfig.from_env().with_overrides(
            poll_interval=args.poll_interval, retry_delay=args.retry_delay
        )
    except ValueError as e:
        err.write(f"linewatch: {e}\n")
        return 2

    printer = _Printer(out, err, args.count)
    with FileLinesWatcher(config=config) as watcher:
        try:
            watcher.watch_file_lines(
                args.path,
                on_changed=printer.on_changed,
                on_error=printer.on_error,
                watch=not args.no_notify,
            )
        except (DirectoryNotFoundError, FileNotFoundError) as e:
            err.write(f"linewatch: {e}\n")
            return 1

        try:
            # Event.wait with a timeout keeps Ctrl+C responsive on Windows
            while not printer.done.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
