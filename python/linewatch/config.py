"""
Runtime settings for the watch engine.

Defaults match the reference timings: a 30 second metadata poll and a
200 ms retry after a failed read. Every field can be overridden through
LINEWATCH_* environment variables via WatchConfig.from_env().
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_RETRY_DELAY = 0.2
DEFAULT_ENCODING = "utf-8-sig"

ENV_POLL_INTERVAL = "LINEWATCH_POLL_INTERVAL"
ENV_RETRY_DELAY = "LINEWATCH_RETRY_DELAY"
ENV_MAX_WORKERS = "LINEWATCH_MAX_WORKERS"
ENV_ENCODING = "LINEWATCH_ENCODING"


@dataclass(frozen=True)
class WatchConfig:
    """Settings shared by every entry of one FileLinesWatcher."""

    poll_interval: float = DEFAULT_POLL_INTERVAL  # Seconds between metadata polls
    retry_delay: float = DEFAULT_RETRY_DELAY  # Seconds before re-reading after a failure
    max_workers: Optional[int] = None  # None: ThreadPoolExecutor default
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.retry_delay <= 0:
            raise ValueError(f"retry_delay must be positive, got {self.retry_delay}")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if not self.encoding:
            raise ValueError("encoding must not be empty")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatchConfig":
        """
        Build a config from LINEWATCH_* environment variables.

        Unset or empty variables keep their defaults.

        Raises:
        -------
        ValueError: If a variable is set to something unparseable or out of range
        """
        env = os.environ if environ is None else environ
        overrides: dict = {}

        poll_interval = _parse(env, ENV_POLL_INTERVAL, float)
        if poll_interval is not None:
            overrides["poll_interval"] = poll_interval
        retry_delay = _parse(env, ENV_RETRY_DELAY, float)
        if retry_delay is not None:
            overrides["retry_delay"] = retry_delay
        max_workers = _parse(env, ENV_MAX_WORKERS, int)
        if max_workers is not None:
            overrides["max_workers"] = max_workers
        if env.get(ENV_ENCODING):
            overrides["encoding"] = env[ENV_ENCODING]

        return cls(**overrides)

    def with_overrides(self, **changes) -> "WatchConfig":
        """Copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _parse(env: Mapping[str, str], name: str, kind: type):
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a valid {kind.__name__}, got {raw!r}") from None
