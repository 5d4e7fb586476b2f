"""
Environment-driven configuration for cache-spine.

``CacheSettings`` reads ``CACHESPINE_*`` environment variables (and a
``.env`` file) and is consumed by :mod:`cachespine.factory` to build a
backend and a :class:`~cachespine.cache.Cache`.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at start-up, not on first write
    - **Environment-driven:** ``CACHESPINE_BACKEND=file`` switches backends
    - **Sensible defaults:** In-memory backend works out of the box

Examples:
    >>> settings = CacheSettings(backend="file", directory="/tmp/cache")
    >>> settings.backend
    <BackendKind.FILE: 'file'>

Tags:
    settings, configuration, pydantic, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendKind(str, Enum):
    """Supported storage backends."""

    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class SerializerKind(str, Enum):
    """Supported value serializers."""

    JSON = "json"
    PICKLE = "pickle"


class CacheSettings(BaseSettings):
    """Cache configuration.

    All fields can be set via ``CACHESPINE_*`` environment variables, e.g.
    ``CACHESPINE_BACKEND=redis`` or ``CACHESPINE_DEFAULT_TTL_SECONDS=600``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHESPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend selection ────────────────────────────────────────
    backend: BackendKind = Field(default=BackendKind.MEMORY)
    serializer: SerializerKind = Field(default=SerializerKind.JSON)

    # ── File backend ─────────────────────────────────────────────
    directory: Path = Field(
        default_factory=lambda: Path.home() / ".cache-spine",
        description="Root directory of the file backend",
    )

    # ── Redis backend ────────────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_prefix: str = Field(default="cachespine:", description="Key namespace owned by this cache")
    redis_timeout_seconds: float = Field(default=2.0, gt=0)

    # ── Cache behaviour ──────────────────────────────────────────
    max_size: int | None = Field(default=None, gt=0, description="LRU bound for the memory backend")
    default_ttl_seconds: int | None = Field(default=None)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return value


__all__ = ["BackendKind", "SerializerKind", "CacheSettings"]
