"""
Factory functions that build backends and caches from settings.

The Redis backend is imported lazily so that ``import cachespine`` works
without the ``redis`` extra installed.

Example:
    settings = CacheSettings()          # reads CACHESPINE_* variables
    cache = create_cache(settings)      # built once at start-up
    service = UserService(cache=cache)  # passed explicitly to consumers
"""

from __future__ import annotations

from cachespine.backends.base import StorageBackend
from cachespine.backends.file import FileBackend
from cachespine.backends.memory import InMemoryBackend
from cachespine.cache import Cache
from cachespine.clock import Clock
from cachespine.errors import ConfigError
from cachespine.serialization import get_serializer
from cachespine.settings import BackendKind, CacheSettings


def create_backend(settings: CacheSettings, *, clock: Clock | None = None) -> StorageBackend:
    """Create the storage backend selected by *settings.backend*."""
    serializer = get_serializer(settings.serializer.value)

    match settings.backend:
        case BackendKind.MEMORY:
            return InMemoryBackend(max_size=settings.max_size, clock=clock)
        case BackendKind.FILE:
            return FileBackend(settings.directory, serializer=serializer, clock=clock)
        case BackendKind.REDIS:
            from cachespine.backends.redis import RedisBackend

            return RedisBackend(
                settings.redis_url,
                prefix=settings.redis_prefix,
                timeout_seconds=settings.redis_timeout_seconds,
                serializer=serializer,
                clock=clock,
            )
        case _:
            raise ConfigError(f"Unsupported cache backend: {settings.backend!r}")


def create_cache(settings: CacheSettings | None = None, *, clock: Clock | None = None) -> Cache:
    """Create a :class:`Cache` over the backend selected by *settings*."""
    settings = settings or CacheSettings()
    backend = create_backend(settings, clock=clock)
    return Cache(backend, default_ttl=settings.default_ttl_seconds)


__all__ = ["create_backend", "create_cache"]
