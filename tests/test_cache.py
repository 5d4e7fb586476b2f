"""
Tests for ``cachespine.cache.Cache`` — the public façade.

Covers:
- get/set/delete/has/clear over every dependency-free backend
- TTL handling, including zero/negative TTLs and the default TTL
- Key validation before any backend I/O
- Batch operations and per-key outcomes
- Storage failures surfacing as errors, never as misses
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from cachespine.backends.file import FileBackend
from cachespine.backends.memory import InMemoryBackend
from cachespine.cache import Cache
from cachespine.clock import ManualClock
from cachespine.errors import (
    BatchReadError,
    InvalidArgumentError,
    InvalidKeyError,
    InvalidTtlError,
    SerializationError,
    StorageError,
)
from cachespine.expiration import NEVER
from cachespine.result import Err, Ok
from cachespine.serialization import PickleSerializer

TYPE_SENSITIVE_VALUES = [(1, 2), {1: "a"}, [1, (2, 3)], {"nested": {2: "b"}}]


class TestSimpleApi:
    def test_round_trip(self, cache):
        assert cache.set("user_42", {"name": "Alice"}) is True
        assert cache.get("user_42") == {"name": "Alice"}

    @pytest.mark.parametrize("value", [0, "", [], {}, False, 3.5, "text", [1, "two", None]])
    def test_round_trip_values(self, cache, value):
        cache.set("k", value)
        assert cache.get("k", default="MISSING") == value

    def test_get_miss_returns_default(self, cache):
        assert cache.get("missing") is None
        assert cache.get("missing", default={"theme": "default"}) == {"theme": "default"}

    def test_stored_none_is_not_a_miss(self, cache):
        cache.set("k", None)
        assert cache.get("k", default="MISSING") is None
        assert cache.has("k") is True

    def test_overwrite(self, cache):
        cache.set("k", "v1", ttl=10)
        cache.set("k", "v2", ttl=20)
        assert cache.get("k") == "v2"

    def test_overwrite_replaces_expiry(self, cache, clock):
        cache.set("k", "v1", ttl=10)
        cache.set("k", "v2")
        clock.advance(3600)
        assert cache.get("k") == "v2"

    def test_delete(self, cache):
        cache.set("k", 1)
        assert cache.delete("k") is True
        assert cache.get("k") is None
        assert cache.has("k") is False

    def test_delete_is_idempotent(self, cache):
        assert cache.delete("absent") is True
        assert cache.delete("absent") is True

    def test_has(self, cache):
        assert cache.has("k") is False
        cache.set("k", "v")
        assert cache.has("k") is True

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.clear() is True
        assert cache.backend.size() == 0
        assert cache.get("a") is None

    def test_clock_defaults_to_backend_clock(self, backend):
        assert Cache(backend).clock is backend.clock


class TestExpiration:
    @pytest.mark.parametrize("ttl", [0, -1, -3600, timedelta(0), timedelta(seconds=-1)])
    def test_non_positive_ttl_is_immediate_miss(self, cache, ttl):
        assert cache.set("k", "v", ttl=ttl) is True
        assert cache.get("k") is None
        assert cache.has("k") is False

    def test_positive_ttl_hit_until_elapsed(self, cache, clock):
        cache.set("k", "v", ttl=5)
        clock.advance(4.999)
        assert cache.get("k") == "v"
        clock.advance(0.001)
        assert cache.get("k") is None

    def test_user_scenario(self, cache, clock):
        cache.set("user_42", {"name": "Alice"}, ttl=3600)
        clock.advance(3599)
        assert cache.get("user_42") == {"name": "Alice"}
        clock.advance(1)
        assert cache.get("user_42") is None
        assert cache.has("user_42") is False

    def test_lazy_eviction_through_has(self, cache, clock):
        cache.set("k", "v", ttl=1)
        clock.advance(2)
        assert cache.backend.size() == 1
        assert cache.has("k") is False
        assert cache.backend.size() == 0

    def test_none_ttl_never_expires(self, cache, clock):
        cache.set("k", "v", ttl=None)
        clock.advance(10 * 365 * 24 * 3600)
        assert cache.get("k") == "v"

    def test_timedelta_ttl(self, cache, clock):
        cache.set("k", "v", ttl=timedelta(days=1))
        clock.advance(days=1, seconds=-1)
        assert cache.has("k")
        clock.advance(1)
        assert not cache.has("k")

    def test_absolute_expiry(self, cache, clock):
        cache.set("k", "v", ttl=clock.now() + timedelta(minutes=1))
        clock.advance(60)
        assert cache.get("k") is None

    def test_invalid_ttl_type(self, cache):
        with pytest.raises(InvalidTtlError):
            cache.set("k", "v", ttl="60")
        assert cache.backend.size() == 0

    def test_enormous_ttl_never_expires(self, cache, clock):
        assert cache.set("k", "v", ttl=10**12)
        clock.advance(days=365 * 100)
        assert cache.get("k") == "v"

    def test_nan_ttl_rejected(self, cache):
        with pytest.raises(InvalidTtlError):
            cache.set("k", "v", ttl=float("nan"))
        assert cache.get("k") is None


class TestDefaultTtl:
    def test_default_applies_when_ttl_omitted(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=60)
        cache.set("k", "v")
        clock.advance(60)
        assert cache.get("k") is None

    def test_explicit_ttl_overrides_default(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=60)
        cache.set("k", "v", ttl=120)
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_never_overrides_default(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=60)
        cache.set("k", "v", ttl=NEVER)
        clock.advance(3600)
        assert cache.get("k") == "v"

    def test_invalid_default_rejected_at_construction(self, memory_backend):
        with pytest.raises(InvalidTtlError):
            Cache(memory_backend, default_ttl="soon")


class TestClock:
    def test_uses_backend_clock(self, memory_backend, clock):
        assert Cache(memory_backend).clock is clock
        assert Cache(memory_backend, clock=clock).clock is clock

    def test_foreign_clock_rejected(self, memory_backend):
        other = ManualClock(datetime(2020, 1, 1, tzinfo=UTC))
        with pytest.raises(InvalidArgumentError):
            Cache(memory_backend, clock=other)

    def test_ttl_written_and_checked_on_one_clock(self):
        clock = ManualClock(datetime(2020, 1, 1, tzinfo=UTC))
        cache = Cache(InMemoryBackend(clock=clock), clock=clock)
        cache.set("k", "v", ttl=3600)
        assert cache.get("k") == "v"
        clock.advance(3600)
        assert cache.get("k") is None


class TestValueFidelity:
    @pytest.mark.parametrize("value", TYPE_SENSITIVE_VALUES)
    def test_memory_keeps_types(self, memory_backend, value):
        cache = Cache(memory_backend)
        cache.set("k", value)
        assert cache.get("k") == value
        assert type(cache.get("k")) is type(value)

    @pytest.mark.parametrize("value", TYPE_SENSITIVE_VALUES)
    def test_file_json_refuses_lossy_values(self, file_backend, value):
        cache = Cache(file_backend)
        with pytest.raises(SerializationError):
            cache.set("k", value)
        assert cache.get("k") is None
        assert file_backend.size() == 0

    @pytest.mark.parametrize("value", TYPE_SENSITIVE_VALUES)
    def test_file_pickle_keeps_types(self, tmp_path, clock, value):
        cache = Cache(FileBackend(tmp_path, serializer=PickleSerializer(), clock=clock))
        cache.set("k", value)
        assert cache.get("k") == value
        assert type(cache.get("k")) is type(value)


class TestKeyValidation:
    @pytest.mark.parametrize("key", ["a@b", "a{b", "a}b", "a(b", "a)b", "a/b", "a\\b", "a:b", "bad key!", ""])
    def test_bad_key_never_reaches_backend(self, spy_backend, key):
        cache = Cache(spy_backend)
        for call in (
            lambda: cache.set(key, 1),
            lambda: cache.get(key),
            lambda: cache.has(key),
            lambda: cache.delete(key),
            lambda: cache.get_item(key),
        ):
            with pytest.raises(InvalidKeyError):
                call()
        assert spy_backend.calls == []
        assert spy_backend.size() == 0

    def test_batch_validates_every_key_before_io(self, spy_backend):
        cache = Cache(spy_backend)
        with pytest.raises(InvalidKeyError):
            cache.set_multiple({"good": 1, "also_good": 2, "b@d": 3})
        with pytest.raises(InvalidKeyError):
            cache.get_multiple(["good", "b:d"])
        with pytest.raises(InvalidKeyError):
            cache.delete_multiple(["good", "b/d"])
        assert spy_backend.calls == []


class TestBatchApi:
    def test_get_multiple_partial_default(self, cache):
        cache.set("b", "value")
        assert cache.get_multiple(["a", "b", "c"]) == {"a": None, "b": "value", "c": None}

    def test_get_multiple_custom_default(self, cache):
        assert cache.get_multiple(iter(["x"]), default=0) == {"x": 0}

    def test_set_multiple(self, cache):
        result = cache.set_multiple({"user_1": {"name": "Alice"}, "user_2": {"name": "Bob"}})
        assert result.ok
        assert result.succeeded == ["user_1", "user_2"]
        assert cache.get("user_2") == {"name": "Bob"}

    def test_set_multiple_accepts_pairs(self, cache):
        assert cache.set_multiple([("a", 1), ("b", 2)]).ok
        assert cache.get_multiple(["a", "b"]) == {"a": 1, "b": 2}

    def test_set_multiple_shares_ttl(self, cache, clock):
        cache.set_multiple({"a": 1, "b": 2}, ttl=10)
        clock.advance(10)
        assert cache.get_multiple(["a", "b"], default="gone") == {"a": "gone", "b": "gone"}

    def test_delete_multiple(self, cache):
        cache.set_multiple({"a": 1, "b": 2, "c": 3})
        result = cache.delete_multiple(["a", "b", "never"])
        assert result.ok
        assert cache.get_multiple(["a", "b", "c"]) == {"a": None, "b": None, "c": 3}


class TestStorageFailures:
    def test_get_propagates_storage_error(self, flaky_backend):
        cache = Cache(flaky_backend)
        cache.set("k", "v")
        flaky_backend.failing.add("k")
        with pytest.raises(StorageError):
            cache.get("k", default="fallback")

    def test_set_propagates_storage_error(self, flaky_backend):
        flaky_backend.failing.add("k")
        with pytest.raises(StorageError):
            Cache(flaky_backend).set("k", "v")

    def test_has_propagates_storage_error(self, flaky_backend):
        flaky_backend.failing.add("k")
        with pytest.raises(StorageError):
            Cache(flaky_backend).has("k")

    def test_set_multiple_reports_per_key(self, flaky_backend):
        cache = Cache(flaky_backend)
        flaky_backend.failing.add("b")
        result = cache.set_multiple({"a": 1, "b": 2, "c": 3})
        assert not result.ok
        assert result.succeeded == ["a", "c"]
        assert list(result.failed) == ["b"]
        assert isinstance(result["a"], Ok)
        assert isinstance(result["b"], Err)
        assert cache.get("c") == 3

    def test_delete_multiple_reports_per_key(self, flaky_backend):
        cache = Cache(flaky_backend)
        cache.set_multiple({"a": 1, "b": 2})
        flaky_backend.failing.add("a")
        result = cache.delete_multiple(["a", "b"])
        assert result.succeeded == ["b"]
        assert isinstance(result.failed["a"], StorageError)

    def test_get_multiple_failure_is_not_a_miss(self, flaky_backend):
        cache = Cache(flaky_backend)
        cache.set_multiple({"a": 1, "b": 2})
        flaky_backend.failing.add("b")
        with pytest.raises(BatchReadError) as exc_info:
            cache.get_multiple(["a", "b", "c"])
        err = exc_info.value
        assert err.values == {"a": 1, "c": None}
        assert list(err.failures) == ["b"]
        assert err.to_dict()["failed_keys"] == ["b"]


class TestRemember:
    def test_computes_on_miss_only(self, cache):
        calls = []

        def producer():
            calls.append(1)
            return {"computed": True}

        assert cache.remember("k", producer, ttl=60) == {"computed": True}
        assert cache.remember("k", producer, ttl=60) == {"computed": True}
        assert len(calls) == 1

    def test_recomputes_after_expiry(self, cache, clock):
        values = iter(["first", "second"])
        assert cache.remember("k", lambda: next(values), ttl=5) == "first"
        clock.advance(5)
        assert cache.remember("k", lambda: next(values), ttl=5) == "second"

    def test_cached_none_is_returned(self, cache):
        cache.set("k", None)
        assert cache.remember("k", lambda: "computed") is None


class TestIndependence:
    def test_two_caches_over_two_backends(self, clock):
        first = Cache(InMemoryBackend(clock=clock))
        second = Cache(InMemoryBackend(clock=clock))
        first.set("k", 1)
        first.save_deferred(first.get_item("d").set(1))
        assert second.get("k") is None
        assert second.pending_keys() == []
        second.clear()
        assert first.get("k") == 1
