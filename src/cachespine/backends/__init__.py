"""
Storage backends for cache-spine.

``InMemoryBackend`` and ``FileBackend`` have no extra dependencies.
``RedisBackend`` needs the ``redis`` extra and is imported lazily.
"""

from __future__ import annotations

from typing import Any

from cachespine.backends.base import StorageBackend
from cachespine.backends.file import FileBackend
from cachespine.backends.memory import InMemoryBackend


def __getattr__(name: str) -> Any:
    if name == "RedisBackend":
        from cachespine.backends.redis import RedisBackend

        return RedisBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["StorageBackend", "InMemoryBackend", "FileBackend", "RedisBackend"]
