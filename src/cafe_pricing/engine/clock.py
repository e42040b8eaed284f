"""Clock sources used to price sessions that are still running."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Clock abstraction for deterministic tests."""

    def now(self) -> datetime:
        """Return a timezone-aware wall-clock timestamp."""


class SystemClock:
    """Default implementation backed by the system clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant; can be moved forward by hand."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        """Move the clock forward, e.g. ``clock.advance(minutes=5)``."""
        self._instant = self._instant + timedelta(**delta)
