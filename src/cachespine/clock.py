"""
Injectable clocks.

The expiration policy and every backend read the current instant through
a ``Clock`` so that tests control time deterministically instead of
sleeping.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


class Clock(Protocol):
    """Source of the current instant (timezone-aware UTC)."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return utc_now()

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """A clock that only moves when told to.

    Example:
        clock = ManualClock()
        cache = Cache(InMemoryBackend(clock=clock))
        cache.set("k", "v", ttl=10)
        clock.advance(10)
        cache.get("k")  # None, expired
    """

    def __init__(self, start: datetime | None = None):
        start = start or utc_now()
        if start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, seconds: float = 0, **kwargs: float) -> datetime:
        """Move forward by ``seconds`` (plus any ``timedelta`` keyword arguments)."""
        with self._lock:
            self._now += timedelta(seconds=seconds, **kwargs)
            return self._now

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        with self._lock:
            self._now = instant

    def __repr__(self) -> str:
        return f"ManualClock({self._now.isoformat()})"


__all__ = ["Clock", "SystemClock", "ManualClock", "utc_now"]
