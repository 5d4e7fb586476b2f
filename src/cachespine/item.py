"""
CacheItem: the value object of the deferred-write API.

Obtained from :meth:`Cache.get_item`, mutated by the caller, then handed
back through :meth:`Cache.save` or :meth:`Cache.save_deferred`. Dropping an
item without saving it has no effect on the cache.

Example:
    item = cache.get_item("user_42")
    if not item.is_hit:
        item.set(load_user(42)).expires_after(3600)
        cache.save_deferred(item)
    cache.commit()
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from cachespine.entry import CacheEntry
from cachespine.expiration import ExpirationPolicy, TtlInput


class CacheItem:
    """A key, its value, hit/miss status and expiry.

    ``is_hit`` reflects the backend state when the item was fetched and is
    not changed by :meth:`set`. Passing ``None`` to :meth:`expires_at` or
    :meth:`expires_after` applies the owning cache's ``default_ttl``
    (never, when the cache has none); pass ``NEVER`` to force no expiry.
    """

    __slots__ = ("_key", "_value", "_is_hit", "_expires_at", "_policy", "_default_ttl")

    def __init__(
        self,
        key: str,
        value: Any = None,
        *,
        is_hit: bool = False,
        expires_at: datetime | None = None,
        policy: ExpirationPolicy | None = None,
        default_ttl: TtlInput = None,
    ):
        self._key = key
        self._value = value
        self._is_hit = is_hit
        self._expires_at = expires_at
        self._policy = policy or ExpirationPolicy()
        self._default_ttl = default_ttl

    @classmethod
    def from_entry(
        cls, entry: CacheEntry, policy: ExpirationPolicy, default_ttl: TtlInput = None
    ) -> CacheItem:
        return cls(
            entry.key,
            entry.value,
            is_hit=True,
            expires_at=entry.expires_at,
            policy=policy,
            default_ttl=default_ttl,
        )

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_hit(self) -> bool:
        return self._is_hit

    @property
    def expiry(self) -> datetime | None:
        return self._expires_at

    def get(self) -> Any:
        """The value, or ``None`` on a miss that was never :meth:`set`."""
        return self._value

    def set(self, value: Any) -> CacheItem:
        self._value = value
        return self

    def expires_at(self, when: datetime | None) -> CacheItem:
        """Expire at an absolute instant; ``None`` means the cache default."""
        self._expires_at = self._resolve(when)
        return self

    def expires_after(self, ttl: TtlInput) -> CacheItem:
        """Expire ``ttl`` from now (seconds or ``timedelta``); ``None`` means the cache default."""
        self._expires_at = self._resolve(ttl)
        return self

    def _resolve(self, ttl: TtlInput) -> datetime | None:
        return self._policy.normalize(self._default_ttl if ttl is None else ttl)

    def to_entry(self) -> CacheEntry:
        return CacheEntry(key=self._key, value=self._value, expires_at=self._expires_at)

    def __repr__(self) -> str:
        state = "hit" if self._is_hit else "miss"
        return f"CacheItem({self._key!r}, {state}, expires_at={self._expires_at!r})"


__all__ = ["CacheItem"]
