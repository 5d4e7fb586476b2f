"""
Deferred write buffer.

Holds staged :class:`CacheItem` objects until the façade commits them. A
later stage of the same key replaces the earlier one (last write wins).
``flush`` writes every staged item and keeps only the ones that failed, so
a transient storage outage does not lose staged writes: the next commit
retries them.

There is no ordering guarantee between keys of one flush and no rollback;
entries are independent.
"""

from __future__ import annotations

import threading

from cachespine.backends.base import StorageBackend
from cachespine.errors import CacheError
from cachespine.item import CacheItem
from cachespine.logging import get_logger
from cachespine.result import BatchResult, Err, Ok, Result

logger = get_logger(__name__)


class DeferredWriteBuffer:
    """Pending items keyed by cache key."""

    def __init__(self) -> None:
        self._pending: dict[str, CacheItem] = {}
        self._lock = threading.Lock()

    def stage(self, item: CacheItem) -> None:
        with self._lock:
            self._pending[item.key] = item

    def discard(self, key: str) -> None:
        with self._lock:
            self._pending.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self, backend: StorageBackend) -> BatchResult:
        """Write every staged item; succeeded items leave the buffer."""
        with self._lock:
            staged = dict(self._pending)

        outcomes: dict[str, Result[None]] = {}
        for key, item in staged.items():
            try:
                backend.write(item.to_entry())
            except CacheError as exc:
                outcomes[key] = Err(exc)
                continue
            outcomes[key] = Ok(None)
            with self._lock:
                # Only drop the item if it was not re-staged while writing.
                if self._pending.get(key) is item:
                    del self._pending[key]

        result = BatchResult(outcomes)
        if not result.ok:
            logger.warning(
                "commit_partial_failure",
                failed=sorted(result.failed),
                succeeded=len(result.succeeded),
                still_pending=len(self),
            )
        return result


__all__ = ["DeferredWriteBuffer"]
