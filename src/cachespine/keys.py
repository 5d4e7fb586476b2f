"""
Cache key validation.

Keys are rejected before they reach any backend, so a malformed key can
never cause a partial write.

Manifesto:
    Keys index every backend: a dict, a hashed filename, a Redis key. A
    key that is valid for one backend and not another breaks portability,
    so one validator decides for all of them.

    - **Allowed:** ``A-Z a-z 0-9 _ . -``
    - **Reserved:** ``{ } ( ) / \\ @ :`` are always rejected
    - **Length:** hard limit of 255 UTF-8 bytes, 64 recommended

Examples:
    >>> validate_key("user_42")
    'user_42'
    >>> validate_key("a@b")
    Traceback (most recent call last):
    ...
    cachespine.errors.InvalidKeyError: Invalid cache key 'a@b': contains reserved character '@'

Tags:
    validation, cache-key, psr-16

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from cachespine.errors import InvalidKeyError
from cachespine.logging import get_logger

logger = get_logger(__name__)

RESERVED_CHARACTERS = frozenset("{}()/\\@:")
KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")
MAX_KEY_BYTES = 255
RECOMMENDED_KEY_BYTES = 64


class KeyValidator:
    """Validates cache keys.

    Attributes:
        max_bytes: Hard limit on the UTF-8 encoded key length.
    """

    def __init__(self, *, max_bytes: int = MAX_KEY_BYTES):
        if max_bytes < 1:
            raise ValueError("max_bytes must be positive")
        self.max_bytes = max_bytes

    def validate(self, key: object) -> str:
        """Return ``key`` unchanged or raise :class:`InvalidKeyError`."""
        if not isinstance(key, str):
            raise InvalidKeyError(key, f"must be a string, got {type(key).__name__}")
        if not key:
            raise InvalidKeyError(key, "must not be empty")

        reserved = sorted(RESERVED_CHARACTERS.intersection(key))
        if reserved:
            chars = ", ".join(repr(c) for c in reserved)
            raise InvalidKeyError(key, f"contains reserved character {chars}")

        if not KEY_PATTERN.match(key):
            raise InvalidKeyError(key, "may only contain letters, digits, '_', '.' and '-'")

        size = len(key.encode("utf-8"))
        if size > self.max_bytes:
            raise InvalidKeyError(key, f"is {size} bytes long, limit is {self.max_bytes}")
        if size > RECOMMENDED_KEY_BYTES:
            logger.warning("cache_key_long", key_bytes=size, recommended=RECOMMENDED_KEY_BYTES)

        return key

    def validate_many(self, keys: Iterable[object]) -> list[str]:
        """Validate every key up front; the first bad key aborts the batch."""
        if isinstance(keys, str):
            raise InvalidKeyError(keys, "expected an iterable of keys, got a single string")
        return [self.validate(key) for key in keys]


_default_validator = KeyValidator()


def validate_key(key: object) -> str:
    """Validate ``key`` with the default limits."""
    return _default_validator.validate(key)


__all__ = [
    "KeyValidator",
    "validate_key",
    "RESERVED_CHARACTERS",
    "KEY_PATTERN",
    "MAX_KEY_BYTES",
    "RECOMMENDED_KEY_BYTES",
]
