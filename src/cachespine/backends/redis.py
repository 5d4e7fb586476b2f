"""
Redis storage backend.

Requires the ``redis`` package (install via ``pip install cache-spine[redis]``).
Process-safe through Redis' own atomic commands: ``SET`` replaces value and
expiry in one step.

Every Redis key this backend writes lives under ``prefix``, and
``remove_all`` deletes only that namespace (``SCAN`` + ``DEL``). It never
issues ``FLUSHDB``, so caches sharing a database stay independent.

Expiry is enforced twice: Redis drops the key itself (``PX``), and reads
still compare the stored expiry against the backend clock so that a
clock-controlled test, or skew between hosts, never yields a stale entry.

Timeouts:
    The client is built with ``socket_timeout`` and
    ``socket_connect_timeout``; a timeout surfaces as
    :class:`~cachespine.errors.StorageTimeoutError` and any other Redis
    failure as :class:`~cachespine.errors.StorageError`. No call blocks
    forever.

Examples:
    >>> backend = RedisBackend("redis://localhost:6379/0", prefix="app:")
    >>> backend.write(CacheEntry("product_123", {"price": 9.99}))
    >>> backend.read("product_123").value
    {'price': 9.99}

Raises:
    ImportError: If ``redis`` package is not installed.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from cachespine.clock import Clock, SystemClock
from cachespine.entry import CacheEntry
from cachespine.errors import SerializationError, StorageError, StorageTimeoutError
from cachespine.expiration import from_epoch_micros, to_epoch_micros
from cachespine.logging import get_logger
from cachespine.serialization import JSONSerializer, Serializer

logger = get_logger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")
_DELETE_BATCH = 500


class RedisBackend:
    """Redis-backed backend scoped to a key prefix.

    Attributes:
        prefix: Namespace prepended to every cache key.
        timeout_seconds: Socket and connect timeout of the client.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "cachespine:",
        timeout_seconds: float = 2.0,
        serializer: Serializer | None = None,
        clock: Clock | None = None,
        client: Any | None = None,
    ):
        try:
            import redis
        except ImportError as exc:
            msg = (
                "Redis backend requires 'redis' package. "
                "Install with: pip install cache-spine[redis]"
            )
            raise ImportError(msg) from exc

        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.prefix = prefix
        self.timeout_seconds = timeout_seconds
        self.serializer = serializer or JSONSerializer()
        self.clock = clock or SystemClock()
        self._timeout_errors = (redis.exceptions.TimeoutError, TimeoutError)
        self._redis_errors = (redis.exceptions.RedisError, ConnectionError, OSError)

        if client is None:
            client = redis.from_url(
                url,
                decode_responses=False,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        self._client = client

    def _name(self, key: str) -> str:
        return f"{self.prefix}{key}"

    # ------------------------------------------------------------------ #
    # StorageBackend
    # ------------------------------------------------------------------ #

    def read(self, key: str) -> CacheEntry | None:
        name = self._name(key)
        with self._guard("read", key):
            raw = self._client.get(name)
        if raw is None:
            return None

        entry = self._decode(key, raw)
        if entry.is_expired(self.clock.now()):
            with self._guard("remove", key):
                self._client.delete(name)
            logger.debug("entry_evicted", key=key, reason="expired")
            return None
        return entry

    def write(self, entry: CacheEntry) -> None:
        name = self._name(entry.key)
        payload = self._encode(entry)

        if entry.expires_at is None:
            with self._guard("write", entry.key):
                self._client.set(name, payload)
            return

        remaining = entry.expires_at - self.clock.now()
        if remaining <= timedelta(0):
            # Already expired: the write succeeds but nothing stays readable.
            with self._guard("write", entry.key):
                self._client.delete(name)
            return

        px = max(1, math.ceil(remaining / timedelta(milliseconds=1)))
        with self._guard("write", entry.key):
            self._client.set(name, payload, px=px)

    def remove(self, key: str) -> None:
        with self._guard("remove", key):
            self._client.delete(self._name(key))

    def remove_all(self) -> None:
        with self._guard("remove_all", None):
            batch: list[bytes | str] = []
            for name in self._client.scan_iter(match=self._pattern()):
                batch.append(name)
                if len(batch) >= _DELETE_BATCH:
                    self._client.delete(*batch)
                    batch.clear()
            if batch:
                self._client.delete(*batch)

    def exists(self, key: str) -> bool:
        return self.read(key) is not None

    def size(self) -> int:
        with self._guard("size", None):
            return sum(1 for _ in self._client.scan_iter(match=self._pattern()))

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _pattern(self) -> str:
        return _GLOB_SPECIAL.sub(r"\\\1", self.prefix) + "*"

    def _encode(self, entry: CacheEntry) -> bytes:
        envelope = {
            "key": entry.key,
            "value": entry.value,
            "expires_at_us": to_epoch_micros(entry.expires_at),
        }
        try:
            return self.serializer.dumps(envelope)
        except SerializationError as exc:
            raise exc.with_context(key=entry.key, backend=type(self).__name__, operation="write")

    def _decode(self, key: str, raw: bytes) -> CacheEntry:
        try:
            envelope = self.serializer.loads(raw)
        except SerializationError as exc:
            raise exc.with_context(key=key, backend=type(self).__name__, operation="read")
        if not isinstance(envelope, dict) or not envelope.keys() >= {"key", "value", "expires_at_us"}:
            raise SerializationError("Redis payload is malformed").with_context(
                key=key, backend=type(self).__name__, operation="read"
            )
        return CacheEntry(
            key=envelope["key"],
            value=envelope["value"],
            expires_at=from_epoch_micros(envelope["expires_at_us"]),
        )

    @contextmanager
    def _guard(self, operation: str, key: str | None) -> Iterator[None]:
        try:
            yield
        except self._timeout_errors as exc:
            raise StorageTimeoutError(
                f"Redis {operation} timed out after {self.timeout_seconds}s", cause=exc
            ).with_context(key=key, backend=type(self).__name__, operation=operation) from exc
        except self._redis_errors as exc:
            raise StorageError(f"Redis {operation} failed: {exc}", cause=exc).with_context(
                key=key, backend=type(self).__name__, operation=operation
            ) from exc

    def __repr__(self) -> str:
        return f"RedisBackend(prefix={self.prefix!r})"


__all__ = ["RedisBackend"]
