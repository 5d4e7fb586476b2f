"""
Expiration policy: turn heterogeneous TTL inputs into one expiry instant.

Manifesto:
    Callers express lifetimes in whatever shape is handy: seconds, a
    ``timedelta``, an absolute ``datetime``, or "never". Storage only ever
    sees one thing: an absolute UTC instant, or ``None`` for no expiry.

    - **Zero and negative TTLs expire instantly:** the write succeeds, the
      item is unreadable (PSR-16 semantics, negative is not an error)
    - **Inclusive boundary:** ``expiry == now`` already counts as expired
    - **Injected clock:** tests move time, they never sleep

Architecture:
    ::

        TtlInput                         Expiry
        ────────                         ──────
        None / NEVER          ──────►    None            (never expires)
        int seconds > 0       ──────►    now + seconds
        int seconds <= 0      ──────►    now - 1s        (already expired)
        timedelta             ──────►    same rules as seconds
        datetime              ──────►    that instant (naive → UTC)
        past datetime.max     ──────►    None            (never expires)
        NaN                   ──────►    InvalidTtlError

Examples:
    >>> policy = ExpirationPolicy(ManualClock())
    >>> expiry = policy.normalize(3600)
    >>> policy.is_expired(expiry)
    False
    >>> policy.is_expired(policy.normalize(0))
    True

Tags:
    ttl, expiration, psr-16, clock

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Final, TypeAlias

from cachespine.clock import Clock, SystemClock
from cachespine.errors import InvalidTtlError


class _Never:
    """Sentinel TTL meaning "never expires", even when a default TTL is set."""

    _instance: _Never | None = None

    def __new__(cls) -> _Never:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NEVER"

    def __reduce__(self) -> str:
        return "NEVER"


NEVER: Final = _Never()

TtlInput: TypeAlias = "int | float | timedelta | datetime | _Never | None"

EXPIRED_OFFSET = timedelta(seconds=1)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def normalize(ttl: TtlInput, now: datetime) -> datetime | None:
    """Convert ``ttl`` into an absolute expiry relative to ``now``.

    Returns ``None`` for "never expires", including lifetimes so long the
    expiry would fall past ``datetime.max`` (``float("inf")`` among them).

    Raises:
        InvalidTtlError: ``ttl`` is not one of the supported types, or NaN.
    """
    if ttl is None or ttl is NEVER:
        return None

    now = _as_utc(now)

    if isinstance(ttl, datetime):
        return _as_utc(ttl)

    if isinstance(ttl, timedelta):
        delta = ttl
    elif isinstance(ttl, (int, float)) and not isinstance(ttl, bool):
        if isinstance(ttl, float) and math.isnan(ttl):
            raise InvalidTtlError(ttl)
        if ttl <= 0:
            return now - EXPIRED_OFFSET
        try:
            delta = timedelta(seconds=ttl)
        except OverflowError:
            return None
    else:
        raise InvalidTtlError(ttl)

    if delta <= timedelta(0):
        return now - EXPIRED_OFFSET
    try:
        return now + delta
    except OverflowError:
        # Past datetime.max: the entry outlives any representable instant.
        return None


def is_expired(expiry: datetime | None, now: datetime) -> bool:
    """True iff ``expiry`` is set and ``expiry <= now``."""
    if expiry is None:
        return False
    return _as_utc(expiry) <= _as_utc(now)


def to_epoch_micros(expiry: datetime | None) -> int | None:
    """Expiry as integer microseconds since the unix epoch. Round-trips exactly."""
    if expiry is None:
        return None
    return (_as_utc(expiry) - _EPOCH) // _MICROSECOND


def from_epoch_micros(micros: int | None) -> datetime | None:
    if micros is None:
        return None
    return _EPOCH + timedelta(microseconds=micros)


class ExpirationPolicy:
    """Clock-bound wrapper around :func:`normalize` and :func:`is_expired`."""

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    def now(self) -> datetime:
        return self.clock.now()

    def normalize(self, ttl: TtlInput, now: datetime | None = None) -> datetime | None:
        return normalize(ttl, now if now is not None else self.clock.now())

    def is_expired(self, expiry: datetime | None, now: datetime | None = None) -> bool:
        return is_expired(expiry, now if now is not None else self.clock.now())

    def remaining(self, expiry: datetime | None, now: datetime | None = None) -> timedelta | None:
        """Time left before ``expiry``; ``None`` if it never expires, zero if expired."""
        if expiry is None:
            return None
        left = _as_utc(expiry) - _as_utc(now if now is not None else self.clock.now())
        return max(left, timedelta(0))


__all__ = [
    "NEVER",
    "TtlInput",
    "EXPIRED_OFFSET",
    "ExpirationPolicy",
    "normalize",
    "is_expired",
    "to_epoch_micros",
    "from_epoch_micros",
]
