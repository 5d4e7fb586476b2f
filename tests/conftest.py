"""
Shared pytest fixtures for cache-spine tests.

Time is always driven through a ``ManualClock`` so expiry tests never sleep.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from cachespine.backends.file import FileBackend
from cachespine.backends.memory import InMemoryBackend
from cachespine.cache import Cache
from cachespine.clock import ManualClock
from cachespine.entry import CacheEntry
from cachespine.errors import StorageError

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


class SpyBackend(InMemoryBackend):
    """In-memory backend that records every storage call."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.calls: list[tuple[str, Any]] = []

    def read(self, key: str) -> CacheEntry | None:
        self.calls.append(("read", key))
        return super().read(key)

    def write(self, entry: CacheEntry) -> None:
        self.calls.append(("write", entry.key))
        super().write(entry)

    def remove(self, key: str) -> None:
        self.calls.append(("remove", key))
        super().remove(key)

    def remove_all(self) -> None:
        self.calls.append(("remove_all", None))
        super().remove_all()

    def exists(self, key: str) -> bool:
        self.calls.append(("exists", key))
        return super().exists(key)


class FlakyBackend(InMemoryBackend):
    """In-memory backend whose operations fail for chosen keys."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.failing: set[str] = set()

    def _check(self, key: str, operation: str) -> None:
        if key in self.failing:
            raise StorageError(f"simulated {operation} failure").with_context(key=key, operation=operation)

    def read(self, key: str) -> CacheEntry | None:
        self._check(key, "read")
        return super().read(key)

    def write(self, entry: CacheEntry) -> None:
        self._check(entry.key, "write")
        super().write(entry)

    def remove(self, key: str) -> None:
        self._check(key, "remove")
        super().remove(key)

    def exists(self, key: str) -> bool:
        self._check(key, "exists")
        return super().exists(key)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def memory_backend(clock: ManualClock) -> InMemoryBackend:
    return InMemoryBackend(clock=clock)


@pytest.fixture
def file_backend(tmp_path, clock: ManualClock) -> FileBackend:
    return FileBackend(tmp_path / "cache", clock=clock)


@pytest.fixture(params=["memory", "file"])
def backend(request, clock: ManualClock, tmp_path):
    """Every dependency-free backend, for contract tests."""
    if request.param == "memory":
        return InMemoryBackend(clock=clock)
    return FileBackend(tmp_path / "cache", clock=clock)


@pytest.fixture
def cache(backend) -> Cache:
    return Cache(backend)


@pytest.fixture
def spy_backend(clock: ManualClock) -> SpyBackend:
    return SpyBackend(clock=clock)


@pytest.fixture
def flaky_backend(clock: ManualClock) -> FlakyBackend:
    return FlakyBackend(clock=clock)
