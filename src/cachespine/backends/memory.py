"""
In-memory storage backend.

A process-local mapping from key to :class:`CacheEntry`. Fastest backend,
used for tests and single-process caches. Not shared across processes.

Examples:
    >>> backend = InMemoryBackend(max_size=1000)
    >>> backend.write(CacheEntry("user_42", {"name": "Alice"}))
    >>> backend.read("user_42").value
    {'name': 'Alice'}

Performance:
    - O(1) read/write/remove
    - Expired entries are evicted lazily on access

Guardrails:
    ❌ DON'T: Use in multi-process deployments (no sharing)
    ✅ DO: Use FileBackend or RedisBackend when processes must share entries
"""

from __future__ import annotations

import threading
from collections import OrderedDict

from cachespine.clock import Clock, SystemClock
from cachespine.entry import CacheEntry
from cachespine.logging import get_logger

logger = get_logger(__name__)


class InMemoryBackend:
    """Thread-safe in-memory backend with optional LRU bound.

    Every read-check-evict and write sequence runs under one lock, so two
    threads racing on the same key cannot lose an update or resurrect an
    evicted entry.

    Attributes:
        max_size: Maximum number of entries before LRU eviction
            (``None`` → unbounded).
    """

    def __init__(self, *, max_size: int | None = None, clock: Clock | None = None):
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be positive or None")
        self.max_size = max_size
        self.clock = clock or SystemClock()
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

    def read(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._live_entry(key)
            if entry is not None:
                self._store.move_to_end(key)
            return entry

    def write(self, entry: CacheEntry) -> None:
        with self._lock:
            if entry.key in self._store:
                self._store.move_to_end(entry.key)
            self._store[entry.key] = entry

            if self.max_size is not None:
                while len(self._store) > self.max_size:
                    lru_key, _ = self._store.popitem(last=False)
                    logger.debug("entry_evicted", key=lru_key, reason="lru")

    def remove(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def remove_all(self) -> None:
        with self._lock:
            self._store.clear()

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def _live_entry(self, key: str) -> CacheEntry | None:
        # Caller holds the lock.
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock.now()):
            del self._store[key]
            logger.debug("entry_evicted", key=key, reason="expired")
            return None
        return entry

    def __repr__(self) -> str:
        return f"InMemoryBackend(size={len(self._store)}, max_size={self.max_size})"


__all__ = ["InMemoryBackend"]
