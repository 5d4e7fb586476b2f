"""
Structured error types for cache-spine.

Every failure the cache can report is a typed ``CacheError`` carrying a
category, a retry hint, structured context and the chained root cause.
Callers can always tell "not cached" (a normal return value) apart from
"cache broken" (an exception).

Manifesto:
    A cache that turns failures into misses hides outages as false
    negatives. This module keeps the three failure families apart:

    - **InvalidKeyError:** Caller bug, fix the key, never retried
    - **StorageError:** Backend I/O failed (disk, permission, network)
    - **SerializationError:** Value could not be encoded or decoded

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        CacheError                            │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  InvalidArgumentError   StorageError      SerializationError │
        │  (VALIDATION)           (STORAGE)         (SERIALIZATION)    │
        │       │                     │                                │
        │  InvalidKeyError       StorageTimeoutError                   │
        │  InvalidTtlError       (NETWORK, retryable)                  │
        │                                                              │
        │  BatchReadError         ConfigError                          │
        │  (partial values)       (CONFIG)                             │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvalidKeyError("a@b", "contains reserved character '@'")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> error.retryable
    False

    >>> try:
    ...     raise PermissionError("read-only filesystem")
    ... except OSError as e:
    ...     err = StorageError("write failed", cause=e).with_context(key="user_42")
    >>> err.context.key
    'user_42'

Guardrails:
    ❌ DON'T: Return the default from ``get`` when the backend raised
    ✅ DO: Let ``StorageError`` propagate to the caller

    ❌ DON'T: Raise bare ``OSError`` / ``redis.RedisError`` from a backend
    ✅ DO: Wrap it with ``cause=`` so the root cause stays chained

Tags:
    error-handling, exception-hierarchy, cache, storage, validation

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"         # Bad key, bad TTL
    STORAGE = "STORAGE"               # Disk, permissions, backend I/O
    NETWORK = "NETWORK"               # Remote backend unreachable / timeout
    SERIALIZATION = "SERIALIZATION"   # Encode / decode failures
    CONFIG = "CONFIG"                 # Missing or invalid settings
    INTERNAL = "INTERNAL"             # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a ``CacheError``.

    Attributes:
        key: Cache key involved in the failing operation
        backend: Backend class name (e.g. ``"FileBackend"``)
        operation: Operation name (``"read"``, ``"write"``, ``"commit"``...)
        path: Filesystem path, for the file backend
        metadata: Additional key-value pairs
    """

    key: str | None = None
    backend: str | None = None
    operation: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["key", "backend", "operation", "path"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CacheError(Exception):
    """
    Base exception for all cache-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    the common case needs nothing but a message.

    Examples:
        >>> error = CacheError("unexpected state")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'CacheError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("write failed").with_context(
                key="user_42",
                backend="FileBackend",
            )
        """
        for name, value in kwargs.items():
            if name != "metadata" and hasattr(self.context, name):
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class InvalidArgumentError(CacheError):
    """
    Caller passed an argument the cache cannot accept.

    Never retryable - the call site must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class InvalidKeyError(InvalidArgumentError):
    """Malformed cache key, rejected before any backend I/O."""

    def __init__(self, key: Any, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(
            f"Invalid cache key {key!r}: {reason}",
            context=ErrorContext(key=key if isinstance(key, str) else repr(key)),
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["reason"] = self.reason
        return result


class InvalidTtlError(InvalidArgumentError):
    """TTL input of an unsupported type."""

    def __init__(self, ttl: Any):
        self.ttl = ttl
        super().__init__(
            f"Unsupported TTL {ttl!r} ({type(ttl).__name__}); expected None, "
            "int seconds, timedelta or datetime"
        )


# =============================================================================
# STORAGE / SERIALIZATION ERRORS
# =============================================================================


class StorageError(CacheError):
    """Backend I/O failure (disk full, permission denied, network)."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class StorageTimeoutError(StorageError):
    """Remote backend did not answer within its timeout."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class SerializationError(CacheError):
    """Value could not be encoded for storage or decoded on read."""

    default_category = ErrorCategory.SERIALIZATION
    default_retryable = False


class BatchReadError(CacheError):
    """
    One or more keys of a ``get_multiple`` call failed to read.

    ``values`` holds what was read successfully (misses already mapped to
    the default) and ``failures`` maps each failed key to its error.
    """

    default_category = ErrorCategory.STORAGE

    def __init__(self, values: dict[str, Any], failures: dict[str, CacheError]):
        self.values = values
        self.failures = failures
        keys = ", ".join(sorted(failures))
        super().__init__(
            f"Failed to read {len(failures)} key(s): {keys}",
            cause=next(iter(failures.values()), None),
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["failed_keys"] = sorted(self.failures)
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CacheError):
    """Invalid or missing cache configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CacheError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CacheError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CacheError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "InvalidTtlError",
    "StorageError",
    "StorageTimeoutError",
    "SerializationError",
    "BatchReadError",
    "ConfigError",
    "is_retryable",
    "categorize_error",
]
