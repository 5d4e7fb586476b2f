"""
Per-key outcomes for batch operations.

Batch writes (``set_multiple``, ``delete_multiple``, ``commit``) never abort
on the first storage failure: each key gets its own ``Ok`` or ``Err`` and
the caller receives a :class:`BatchResult` describing which keys succeeded
and which failed.

Manifesto:
    - **Partial success is normal:** A batch is an optimization, not a
      transaction; there is no rollback
    - **Complete visibility:** Every failed key keeps its typed error
    - **Caller decides:** Retry the failed keys, log them, or raise

Architecture:
    ::

        {"a": Ok(None), "b": Err(StorageError), "c": Ok(None)}
                            │
                            ▼
        BatchResult.succeeded  →  ["a", "c"]
        BatchResult.failed     →  {"b": StorageError(...)}
        BatchResult.ok         →  False

Examples:
    >>> result = BatchResult({"a": Ok(None), "b": Err(StorageError("disk full"))})
    >>> result.succeeded
    ['a']
    >>> list(result.failed)
    ['b']
    >>> bool(result)
    False

Tags:
    result-pattern, batch-processing, partial-success

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeAlias, TypeVar

from cachespine.errors import CacheError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed outcome carrying the exception."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Re-raise the stored error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, CacheError):
            return {"ok": False, "error": self.error.to_dict()}
        return {"ok": False, "error": {"error_type": type(self.error).__name__, "message": str(self.error)}}

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """Run ``f`` and capture a :class:`CacheError` as ``Err``.

    Only cache errors are captured; anything else is a bug and propagates.
    """
    try:
        return Ok(f())
    except CacheError as exc:
        return Err(exc)


def partition_results(
    results: Mapping[str, Result[Any]],
) -> tuple[list[str], dict[str, Exception]]:
    """Split keyed results into succeeded keys and a key → error mapping."""
    succeeded: list[str] = []
    failed: dict[str, Exception] = {}
    for key, result in results.items():
        match result:
            case Ok():
                succeeded.append(key)
            case Err(error):
                failed[key] = error
    return succeeded, failed


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch operation, one :class:`Result` per key."""

    outcomes: dict[str, Result[Any]] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return partition_results(self.outcomes)[0]

    @property
    def failed(self) -> dict[str, Exception]:
        return partition_results(self.outcomes)[1]

    @property
    def ok(self) -> bool:
        return all(result.is_ok() for result in self.outcomes.values())

    def __bool__(self) -> bool:
        return self.ok

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.outcomes)

    def __getitem__(self, key: str) -> Result[Any]:
        return self.outcomes[key]

    def raise_first(self) -> None:
        """Raise the first failure, if any."""
        for result in self.outcomes.values():
            if isinstance(result, Err):
                raise result.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "succeeded": self.succeeded,
            "failed": {key: Err(error).to_dict()["error"] for key, error in self.failed.items()},
        }


__all__ = ["Ok", "Err", "Result", "try_result", "partition_results", "BatchResult"]
