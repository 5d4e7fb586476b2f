"""
cache-spine - key-value cache with pluggable backends.

A ``Cache`` façade over one storage backend (in-memory, file, or Redis)
with key validation, TTL normalization and lazy expiration, batch
operations, and a deferred-write API.

Example:
    from cachespine import Cache, InMemoryBackend

    cache = Cache(InMemoryBackend(), default_ttl=3600)
    cache.set("user_42", {"name": "Alice"})
    cache.get("user_42")
"""

__version__ = "0.1.0"

from cachespine.backends import FileBackend, InMemoryBackend, StorageBackend
from cachespine.cache import Cache
from cachespine.clock import Clock, ManualClock, SystemClock
from cachespine.entry import CacheEntry
from cachespine.errors import (
    BatchReadError,
    CacheError,
    ConfigError,
    ErrorCategory,
    InvalidArgumentError,
    InvalidKeyError,
    InvalidTtlError,
    SerializationError,
    StorageError,
    StorageTimeoutError,
)
from cachespine.expiration import NEVER, ExpirationPolicy
from cachespine.factory import create_backend, create_cache
from cachespine.item import CacheItem
from cachespine.keys import KeyValidator, validate_key
from cachespine.result import BatchResult, Err, Ok
from cachespine.settings import BackendKind, CacheSettings

__all__ = [
    "__version__",
    # Façade
    "Cache",
    "CacheItem",
    "CacheEntry",
    "BatchResult",
    "Ok",
    "Err",
    # Backends
    "StorageBackend",
    "InMemoryBackend",
    "FileBackend",
    # Policies
    "KeyValidator",
    "validate_key",
    "ExpirationPolicy",
    "NEVER",
    "Clock",
    "SystemClock",
    "ManualClock",
    # Errors
    "ErrorCategory",
    "CacheError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "InvalidTtlError",
    "StorageError",
    "StorageTimeoutError",
    "SerializationError",
    "BatchReadError",
    "ConfigError",
    # Configuration
    "BackendKind",
    "CacheSettings",
    "create_backend",
    "create_cache",
]
