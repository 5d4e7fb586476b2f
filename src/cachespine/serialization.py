"""
Value serializers used by the file and Redis backends.

JSON is the default: portable, inspectable, safe to load. It refuses
values it would hand back changed (tuples, non-string dict keys) rather
than storing them lossily. Pickle is opt-in for values JSON cannot
represent (tuples, datetimes, sets, custom classes) and must only be used
on storage the application fully trusts.

Examples:
    >>> JSONSerializer().dumps({"name": "Alice"})
    b'{"name":"Alice"}'
"""

from __future__ import annotations

import json
import pickle
from typing import Any, Protocol

from cachespine.errors import ConfigError, SerializationError


class Serializer(Protocol):
    """Encode arbitrary values to bytes and back."""

    name: str

    def dumps(self, value: Any) -> bytes: ...

    def loads(self, data: bytes) -> Any: ...


_JSON_SCALARS = (type(None), bool, int, float, str)


def _check_json_exact(value: Any, path: str = "value") -> None:
    """Raise ``TypeError`` for anything JSON would not give back unchanged.

    ``json`` silently turns tuples into lists and non-string dict keys into
    strings, so such values are refused instead of changing type on read.
    """
    kind = type(value)
    if kind in _JSON_SCALARS:
        return
    if kind is list:
        for index, item in enumerate(value):
            _check_json_exact(item, f"{path}[{index}]")
        return
    if kind is dict:
        for key, item in value.items():
            if type(key) is not str:
                raise TypeError(f"{path} has a {type(key).__name__} key {key!r}; JSON keys are strings")
            _check_json_exact(item, f"{path}[{key!r}]")
        return
    raise TypeError(f"{path} is a {kind.__name__}, which JSON cannot store without changing its type")


class JSONSerializer:
    """Compact UTF-8 JSON, restricted to values that read back equal and of the same type.

    Use :class:`PickleSerializer` for tuples, sets, int-keyed dicts and
    other Python types.
    """

    name = "json"

    def dumps(self, value: Any) -> bytes:
        try:
            _check_json_exact(value)
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Value of type {type(value).__name__} is not JSON serializable: {exc}", cause=exc
            ) from exc

    def loads(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise SerializationError("Stored data is not valid JSON", cause=exc) from exc


class PickleSerializer:
    """Pickle at the highest protocol. Trusted storage only."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def dumps(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            raise SerializationError(
                f"Value of type {type(value).__name__} cannot be pickled", cause=exc
            ) from exc

    def loads(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError) as exc:
            raise SerializationError("Stored data could not be unpickled", cause=exc) from exc


def get_serializer(name: str) -> Serializer:
    """Look up a serializer by name (``"json"`` or ``"pickle"``)."""
    match name:
        case "json":
            return JSONSerializer()
        case "pickle":
            return PickleSerializer()
        case _:
            raise ConfigError(f"Unknown serializer: {name!r}")


__all__ = ["Serializer", "JSONSerializer", "PickleSerializer", "get_serializer"]
