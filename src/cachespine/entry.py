"""The stored unit: key, value and expiry, replaced as a whole on every write."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cachespine.expiration import is_expired


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """An immutable ``(key, value, expires_at)`` triple owned by a backend.

    ``expires_at`` of ``None`` means the entry never expires. A ``None``
    value is a legitimate cached value, distinct from an absent entry.
    """

    key: str
    value: Any
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return is_expired(self.expires_at, now)


__all__ = ["CacheEntry"]
