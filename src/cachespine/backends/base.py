"""
Storage backend protocol.

Every backend (in-memory, file, Redis) implements the same five
operations with identical semantics, so the :class:`~cachespine.cache.Cache`
façade never needs to know which one it talks to.

Manifesto:
    - **Lazy expiration:** ``read`` and ``exists`` evict an expired entry
      as a side effect and report a miss; no backend ever returns a stale
      entry, and no background sweep is needed
    - **Full replace:** ``write`` is an upsert of value and expiry together
    - **Idempotent removal:** removing an absent key is success
    - **Scoped clear:** ``remove_all`` only touches this instance's entries
    - **Failures are loud:** I/O errors raise ``StorageError``, never a miss

Architecture:
    ::

        StorageBackend (Protocol)
        ├── InMemoryBackend  — process-local dict, thread-safe, optional LRU
        ├── FileBackend      — one file per key, sha256-named, atomic replace
        └── RedisBackend     — remote store, prefix-scoped, timeouts → errors

        API: read(key)      → CacheEntry | None
             write(entry)
             remove(key)
             remove_all()
             exists(key)    → bool
             size()         → int

Tags:
    cache, backend, protocol, lazy-expiration

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cachespine.clock import Clock
from cachespine.entry import CacheEntry


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backend implementations.

    Attributes:
        clock: Clock used for lazy expiration checks. The façade shares it so
            that expiry instants and expiry checks use the same time source.
    """

    clock: Clock

    def read(self, key: str) -> CacheEntry | None:
        """Return the entry if present and unexpired.

        An expired entry is removed before ``None`` is returned.

        Raises:
            StorageError: The backend could not be read.
            SerializationError: Stored data could not be decoded.
        """
        ...

    def write(self, entry: CacheEntry) -> None:
        """Insert or fully replace the entry for ``entry.key``.

        Raises:
            StorageError: The backend could not be written.
            SerializationError: ``entry.value`` could not be encoded.
        """
        ...

    def remove(self, key: str) -> None:
        """Remove ``key``. No-op if absent."""
        ...

    def remove_all(self) -> None:
        """Remove every entry owned by this backend instance."""
        ...

    def exists(self, key: str) -> bool:
        """Same answer as ``read(key) is not None``, applying lazy expiration."""
        ...

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        ...


__all__ = ["StorageBackend"]
