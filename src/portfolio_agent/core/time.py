from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current time as integer seconds since the epoch."""
        ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Controllable clock for tests and replays."""

    def __init__(self, start: int = 0) -> None:
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc(timestamp: int) -> Optional[str]:
    """ISO-8601 for an epoch timestamp; 0 means "never" and maps to None."""
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")
