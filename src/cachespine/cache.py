"""
Cache façade: the public surface of cache-spine.

``Cache`` composes a :class:`~cachespine.keys.KeyValidator`, an
:class:`~cachespine.expiration.ExpirationPolicy` and exactly one
:class:`~cachespine.backends.base.StorageBackend`. It offers the simple
get/set API, batch variants, and the item-based deferred-write API, all
over the same backend.

Manifesto:
    - **Misses are values, failures are exceptions:** ``get`` returns the
      default on a miss and raises ``StorageError`` when the backend is
      broken; a failure is never disguised as a miss
    - **Fail fast on bad keys:** every key of a call is validated before
      any backend I/O, so a bad key never causes a partial write
    - **Stored ``None`` is a hit:** presence comes from the backend's
      entry, not from comparing the value to ``None``
    - **Explicit construction:** no module-level singleton; start-up code
      builds the ``Cache`` and passes it to its consumers

Architecture:
    ::

        caller
          │
          ▼
        Cache ── KeyValidator.validate(key)          (no I/O)
          │   ── ExpirationPolicy.normalize(ttl)     (clock)
          │
          ├── get / set / delete / has / clear ──────────► StorageBackend
          ├── get_multiple / set_multiple / delete_multiple ──► (per key)
          └── get_item / save_deferred ──► DeferredWriteBuffer
                                commit() ──────────────────► StorageBackend

Examples:
    >>> cache = Cache(InMemoryBackend())
    >>> cache.set("user_42", {"name": "Alice"}, ttl=3600)
    True
    >>> cache.get("user_42")
    {'name': 'Alice'}
    >>> cache.get_multiple(["user_42", "user_7"], default="?")
    {'user_42': {'name': 'Alice'}, 'user_7': '?'}

    Deferred writes:

    >>> item = cache.get_item("report_q1").set([1, 2, 3]).expires_after(600)
    >>> cache.save_deferred(item)
    True
    >>> cache.get("report_q1") is None
    True
    >>> cache.commit().ok
    True
    >>> cache.get("report_q1")
    [1, 2, 3]

Guardrails:
    ❌ DON'T: Catch ``StorageError`` and treat it as a miss
    ✅ DO: Decide at the call site whether to recompute, retry or fail

    ❌ DON'T: Share one ``Cache`` across unrelated data sets to save setup
    ✅ DO: Give each data set its own backend (directory, Redis prefix)

Tags:
    cache, facade, psr-6, psr-16, ttl, deferred-write

Doc-Types:
    - API Reference
    - Usage Guide
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from cachespine.backends.base import StorageBackend
from cachespine.clock import Clock
from cachespine.deferred import DeferredWriteBuffer
from cachespine.entry import CacheEntry
from cachespine.errors import BatchReadError, CacheError, InvalidArgumentError
from cachespine.expiration import ExpirationPolicy, TtlInput
from cachespine.item import CacheItem
from cachespine.keys import KeyValidator
from cachespine.logging import get_logger
from cachespine.result import BatchResult, Result, try_result

logger = get_logger(__name__)

T = TypeVar("T")


class Cache:
    """Key-value cache over a single storage backend.

    Attributes:
        backend: The storage backend, owned by this cache.
        clock: Time source shared with the backend. Expiry is computed and
            checked against the same clock, so a different one is rejected.
        default_ttl: TTL applied when a write passes ``ttl=None``.
            Pass ``NEVER`` explicitly to store without expiry anyway.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        default_ttl: TtlInput = None,
        clock: Clock | None = None,
        validator: KeyValidator | None = None,
    ):
        if clock is not None and clock is not backend.clock:
            raise InvalidArgumentError(
                f"Cache clock {clock!r} differs from the backend clock {backend.clock!r}; "
                "pass the clock to the backend instead"
            )
        self.backend = backend
        self.clock = backend.clock
        self.policy = ExpirationPolicy(self.clock)
        self.validator = validator or KeyValidator()
        self.default_ttl = default_ttl
        self._deferred = DeferredWriteBuffer()

        # Fail on an unusable default now, not on the first write.
        self.policy.normalize(default_ttl)

    # ------------------------------------------------------------------ #
    # Simple API
    # ------------------------------------------------------------------ #

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss."""
        key = self.validator.validate(key)
        entry = self.backend.read(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return default
        logger.debug("cache_hit", key=key)
        return entry.value

    def set(self, key: str, value: Any, ttl: TtlInput = None) -> bool:
        """Store ``value`` under ``key``, replacing any previous entry.

        ``ttl`` of zero or less stores an already-expired entry: the call
        succeeds and the key reads as a miss.
        """
        key = self.validator.validate(key)
        expires_at = self._expiry_for(ttl)
        self.backend.write(CacheEntry(key=key, value=value, expires_at=expires_at))
        logger.debug("cache_write", key=key, expires_at=expires_at)
        return True

    def delete(self, key: str) -> bool:
        """Remove ``key``. Succeeds whether or not it was present."""
        key = self.validator.validate(key)
        self.backend.remove(key)
        return True

    def has(self, key: str) -> bool:
        """True if ``key`` is present and unexpired. Evicts it if expired."""
        key = self.validator.validate(key)
        return self.backend.exists(key)

    def clear(self) -> bool:
        """Remove every entry of the backend. Staged deferred items are kept."""
        self.backend.remove_all()
        logger.info("cache_cleared", backend=type(self.backend).__name__)
        return True

    def remember(self, key: str, producer: Callable[[], T], ttl: TtlInput = None) -> T:
        """Return the cached value, computing and storing it on a miss.

        ``producer`` takes no arguments and runs at most once per call.
        """
        key = self.validator.validate(key)
        entry = self.backend.read(key)
        if entry is not None:
            return entry.value
        value = producer()
        self.set(key, value, ttl)
        return value

    # ------------------------------------------------------------------ #
    # Batch API
    # ------------------------------------------------------------------ #

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """Read several keys; misses map to ``default``.

        Raises:
            InvalidKeyError: Any key is malformed (checked before any I/O).
            BatchReadError: One or more reads failed; carries the partial
                values and the per-key errors.
        """
        keys = self.validator.validate_many(keys)
        values: dict[str, Any] = {}
        failures: dict[str, CacheError] = {}

        for key in keys:
            try:
                entry = self.backend.read(key)
            except CacheError as exc:
                failures[key] = exc
                continue
            values[key] = default if entry is None else entry.value

        if failures:
            raise BatchReadError(values, failures)
        return values

    def set_multiple(self, values: Mapping[str, Any] | Iterable[tuple[str, Any]], ttl: TtlInput = None) -> BatchResult:
        """Write several entries with one shared ``ttl``.

        Every key is validated first; storage failures are reported per key.
        """
        pairs = list(values.items()) if isinstance(values, Mapping) else list(values)
        keys = self.validator.validate_many(key for key, _ in pairs)
        expires_at = self._expiry_for(ttl)

        outcomes: dict[str, Result[None]] = {}
        for key, (_, value) in zip(keys, pairs):
            entry = CacheEntry(key=key, value=value, expires_at=expires_at)
            outcomes[key] = try_result(lambda entry=entry: self.backend.write(entry))
        return self._report("set_multiple", BatchResult(outcomes))

    def delete_multiple(self, keys: Iterable[str]) -> BatchResult:
        """Remove several keys; absent keys count as success."""
        keys = self.validator.validate_many(keys)
        outcomes: dict[str, Result[None]] = {}
        for key in keys:
            outcomes[key] = try_result(lambda key=key: self.backend.remove(key))
        return self._report("delete_multiple", BatchResult(outcomes))

    # ------------------------------------------------------------------ #
    # Item / deferred API
    # ------------------------------------------------------------------ #

    def get_item(self, key: str) -> CacheItem:
        """Fetch a :class:`CacheItem` reflecting the current hit/miss state."""
        key = self.validator.validate(key)
        entry = self.backend.read(key)
        if entry is None:
            return CacheItem(key, policy=self.policy, default_ttl=self.default_ttl)
        return CacheItem.from_entry(entry, self.policy, self.default_ttl)

    def get_items(self, keys: Iterable[str]) -> dict[str, CacheItem]:
        keys = self.validator.validate_many(keys)
        return {key: self.get_item(key) for key in keys}

    def has_item(self, key: str) -> bool:
        return self.has(key)

    def delete_item(self, key: str) -> bool:
        return self.delete(key)

    def delete_items(self, keys: Iterable[str]) -> BatchResult:
        return self.delete_multiple(keys)

    def save(self, item: CacheItem) -> bool:
        """Persist ``item`` immediately."""
        self._check_item(item)
        self.backend.write(item.to_entry())
        return True

    def save_deferred(self, item: CacheItem) -> bool:
        """Stage ``item`` for the next :meth:`commit`. Touches no storage."""
        self._check_item(item)
        self._deferred.stage(item)
        return True

    def commit(self) -> BatchResult:
        """Write all staged items. Failed items stay staged for the next commit."""
        return self._deferred.flush(self.backend)

    def pending_keys(self) -> list[str]:
        """Keys staged by :meth:`save_deferred` and not yet committed."""
        return self._deferred.keys()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _expiry_for(self, ttl: TtlInput) -> datetime | None:
        return self.policy.normalize(self.default_ttl if ttl is None else ttl)

    def _check_item(self, item: CacheItem) -> None:
        if not isinstance(item, CacheItem):
            raise InvalidArgumentError(f"Expected a CacheItem, got {type(item).__name__}")
        self.validator.validate(item.key)

    def _report(self, operation: str, result: BatchResult) -> BatchResult:
        if not result.ok:
            logger.warning(operation + "_partial_failure", failed=sorted(result.failed))
        return result

    def __repr__(self) -> str:
        return f"Cache({self.backend!r}, default_ttl={self.default_ttl!r})"


__all__ = ["Cache"]
