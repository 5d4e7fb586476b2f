"""
Filesystem storage backend.

One file per key. The filename is the SHA-256 hex digest of the key plus
``.cache``, so keys never need to be filesystem-safe and never hit path
length limits.

On-disk format::

    CSPN1 <serializer>\\n
    <serializer payload of {"key": ..., "value": ..., "expires_at_us": <unix micros | null>}>

The header lets the format evolve without silent misreads: a file with an
unknown magic or a different serializer raises ``SerializationError``.

Manifesto:
    - **Hashed names:** Filesystem-unsafe characters and long keys are a
      non-issue; the original key is stored inside the file and verified
      on read, so a digest collision reads as a miss, never as another
      key's value
    - **Atomic replace:** Writes go to a temp file in the same directory
      and are moved into place with ``os.replace``; readers see either
      the old or the new file, never a torn one
    - **Lazy expiration:** Expired files are deleted when read

Concurrency:
    There is no cross-process locking. Two processes writing the same key
    race at the filesystem level and the last ``os.replace`` wins. This is
    an accepted limitation of the backend: callers that need strict
    cross-process consistency must add external locking or use the Redis
    backend.

Examples:
    >>> backend = FileBackend("/tmp/cache-spine")
    >>> backend.write(CacheEntry("report.2025-01", [1, 2, 3]))
    >>> backend.path_for("report.2025-01").suffix
    '.cache'

Tags:
    cache, filesystem, backend, sha256

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import hashlib
import os
import tempfile
import time
from pathlib import Path
from typing import Any

from cachespine.clock import Clock, SystemClock
from cachespine.entry import CacheEntry
from cachespine.errors import SerializationError, StorageError
from cachespine.expiration import from_epoch_micros, to_epoch_micros
from cachespine.logging import get_logger
from cachespine.serialization import JSONSerializer, Serializer

logger = get_logger(__name__)

MAGIC = b"CSPN1"
SUFFIX = ".cache"
TEMP_SUFFIX = ".tmp"

# Temp files younger than this may belong to a write still in progress.
STALE_TEMP_SECONDS = 300


def key_digest(key: str) -> str:
    """SHA-256 hex digest of ``key``, used as the filename stem."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _is_stale_temp(path: Path) -> bool:
    """A leftover ``.*.tmp`` file from a writer that never finished."""
    if not (path.name.startswith(".") and path.suffix == TEMP_SUFFIX):
        return False
    try:
        age = time.time() - path.stat().st_mtime
    except FileNotFoundError:
        return False
    return age > STALE_TEMP_SECONDS


class FileBackend:
    """One-file-per-key backend rooted at ``directory``.

    The directory is created on the first write. ``remove_all`` only deletes
    ``*.cache`` files inside it, plus temp files older than
    ``STALE_TEMP_SECONDS`` left behind by writers that died mid-write. Younger
    temp files may belong to a concurrent write and are left alone.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        *,
        serializer: Serializer | None = None,
        clock: Clock | None = None,
    ):
        self.directory = Path(directory).expanduser()
        self.serializer = serializer or JSONSerializer()
        self.clock = clock or SystemClock()
        self._header = MAGIC + b" " + self.serializer.name.encode("ascii") + b"\n"

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key_digest(key)}{SUFFIX}"

    # ------------------------------------------------------------------ #
    # StorageBackend
    # ------------------------------------------------------------------ #

    def read(self, key: str) -> CacheEntry | None:
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise self._storage_error("read", key, path, exc) from exc

        entry = self._decode(raw, path)
        if entry.key != key:
            logger.warning("digest_collision", key=key, stored_key=entry.key, path=str(path))
            return None

        if entry.is_expired(self.clock.now()):
            self._unlink(path, key)
            logger.debug("entry_evicted", key=key, reason="expired")
            return None
        return entry

    def write(self, entry: CacheEntry) -> None:
        payload = self._encode(entry)
        path = self.path_for(entry.key)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=TEMP_SUFFIX)
        except OSError as exc:
            raise self._storage_error("write", entry.key, path, exc) from exc

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise self._storage_error("write", entry.key, path, exc) from exc

    def remove(self, key: str) -> None:
        self._unlink(self.path_for(key), key)

    def remove_all(self) -> None:
        if not self.directory.is_dir():
            return
        try:
            for path in self.directory.iterdir():
                if path.suffix == SUFFIX or _is_stale_temp(path):
                    path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to clear {self.directory}", cause=exc).with_context(
                backend=type(self).__name__, operation="remove_all", path=str(self.directory)
            ) from exc

    def exists(self, key: str) -> bool:
        if not self.path_for(key).exists():
            return False
        return self.read(key) is not None

    def size(self) -> int:
        if not self.directory.is_dir():
            return 0
        return sum(1 for _ in self.directory.glob(f"*{SUFFIX}"))

    # ------------------------------------------------------------------ #
    # Encoding
    # ------------------------------------------------------------------ #

    def _encode(self, entry: CacheEntry) -> bytes:
        envelope = {
            "key": entry.key,
            "value": entry.value,
            "expires_at_us": to_epoch_micros(entry.expires_at),
        }
        try:
            body = self.serializer.dumps(envelope)
        except SerializationError as exc:
            raise exc.with_context(key=entry.key, backend=type(self).__name__, operation="write")
        return self._header + body

    def _decode(self, raw: bytes, path: Path) -> CacheEntry:
        header, sep, body = raw.partition(b"\n")
        if not sep or header + b"\n" != self._header:
            raise SerializationError(
                f"Unrecognized cache file header {header[:32]!r}, expected {self._header.strip()!r}"
            ).with_context(backend=type(self).__name__, operation="read", path=str(path))

        try:
            envelope: Any = self.serializer.loads(body)
        except SerializationError as exc:
            raise exc.with_context(backend=type(self).__name__, operation="read", path=str(path))

        if not isinstance(envelope, dict) or not envelope.keys() >= {"key", "value", "expires_at_us"}:
            raise SerializationError("Cache file payload is malformed").with_context(
                backend=type(self).__name__, operation="read", path=str(path)
            )
        return CacheEntry(
            key=envelope["key"],
            value=envelope["value"],
            expires_at=from_epoch_micros(envelope["expires_at_us"]),
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _unlink(self, path: Path, key: str) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise self._storage_error("remove", key, path, exc) from exc

    def _storage_error(self, operation: str, key: str, path: Path, exc: OSError) -> StorageError:
        return StorageError(f"Failed to {operation} cache file for {key!r}: {exc}", cause=exc).with_context(
            key=key, backend=type(self).__name__, operation=operation, path=str(path)
        )

    def __repr__(self) -> str:
        return f"FileBackend({str(self.directory)!r}, serializer={self.serializer.name!r})"


__all__ = ["FileBackend", "key_digest", "MAGIC", "SUFFIX"]
