"""Tests for ``cachespine.item.CacheItem``."""

from __future__ import annotations

from datetime import timedelta

from cachespine.cache import Cache
from cachespine.expiration import EXPIRED_OFFSET, NEVER


class TestCacheItemFromCache:
    def test_miss(self, cache):
        item = cache.get_item("k")
        assert item.key == "k"
        assert item.is_hit is False
        assert item.get() is None
        assert item.expiry is None

    def test_hit(self, cache, clock):
        cache.set("k", {"a": 1}, ttl=60)
        item = cache.get_item("k")
        assert item.is_hit is True
        assert item.get() == {"a": 1}
        assert item.expiry == clock.now() + timedelta(seconds=60)

    def test_hit_with_none_value(self, cache):
        cache.set("k", None)
        assert cache.get_item("k").is_hit is True

    def test_get_item_does_not_write(self, spy_backend):
        Cache(spy_backend).get_item("k")
        assert spy_backend.calls == [("read", "k")]

    def test_set_keeps_hit_state(self, cache):
        item = cache.get_item("k").set("new")
        assert item.is_hit is False
        assert item.get() == "new"

    def test_get_items(self, cache):
        cache.set("a", 1)
        items = cache.get_items(["a", "b"])
        assert items["a"].is_hit and items["a"].get() == 1
        assert not items["b"].is_hit

    def test_has_and_delete_item(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.has_item("a")
        assert cache.delete_item("a")
        assert not cache.has_item("a")
        assert cache.delete_items(["b", "c"]).ok
        assert not cache.has_item("b")


class TestCacheItemExpiry:
    def test_expires_after_seconds(self, cache, clock):
        item = cache.get_item("k").expires_after(30)
        assert item.expiry == clock.now() + timedelta(seconds=30)

    def test_expires_after_is_relative_to_call_time(self, cache, clock):
        item = cache.get_item("k")
        clock.advance(100)
        item.expires_after(30)
        assert item.expiry == clock.now() + timedelta(seconds=30)

    def test_expires_after_zero_is_expired(self, cache, clock):
        item = cache.get_item("k").expires_after(0)
        assert item.expiry == clock.now() - EXPIRED_OFFSET

    def test_expires_at(self, cache, clock):
        when = clock.now() + timedelta(hours=2)
        assert cache.get_item("k").expires_at(when).expiry == when

    def test_expires_at_none_without_default_never_expires(self, cache):
        cache.set("k", 1, ttl=60)
        item = cache.get_item("k").expires_at(None)
        assert item.expiry is None

    def test_none_uses_cache_default_ttl(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=300)
        assert cache.get_item("k").expires_after(None).expiry == clock.now() + timedelta(seconds=300)
        assert cache.get_item("k").expires_at(None).expiry == clock.now() + timedelta(seconds=300)

    def test_none_on_hit_uses_cache_default_ttl(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=300)
        cache.set("k", 1, ttl=NEVER)
        item = cache.get_item("k").expires_after(None)
        assert item.expiry == clock.now() + timedelta(seconds=300)

    def test_never_overrides_cache_default(self, memory_backend):
        cache = Cache(memory_backend, default_ttl=300)
        assert cache.get_item("k").expires_after(NEVER).expiry is None

    def test_saved_default_expiry_applies(self, memory_backend, clock):
        cache = Cache(memory_backend, default_ttl=300)
        cache.save(cache.get_item("k").set("v").expires_after(None))
        clock.advance(299)
        assert cache.get("k") == "v"
        clock.advance(1)
        assert cache.get("k") is None

    def test_chaining_and_entry(self, cache, clock):
        entry = cache.get_item("k").set("v").expires_after(timedelta(minutes=1)).to_entry()
        assert entry.key == "k"
        assert entry.value == "v"
        assert entry.expires_at == clock.now() + timedelta(minutes=1)

    def test_repr(self, cache):
        assert "miss" in repr(cache.get_item("k"))
