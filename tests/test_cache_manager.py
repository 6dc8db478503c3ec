"""Tests for CacheManager and cached_call."""

import asyncio

import pytest

from qwenbot.config import CacheConfig
from qwenbot.constants import CacheNamespace
from qwenbot.services.cache_manager import CacheManager, cached_call


class TestCacheBasics:
    """Tests for get/set/delete and TTL handling."""

    def test_set_and_get(self, cache_manager):
        cache_manager.set("persona", "u1", "maid")
        assert cache_manager.get("persona", "u1") == "maid"

    def test_missing_returns_default(self, cache_manager):
        assert cache_manager.get("persona", "nope", "fallback") == "fallback"

    def test_entry_visible_at_exact_ttl(self, cache_manager, clock):
        cache_manager.set("x", "k", 1, ttl=10)
        clock.advance(10)
        assert cache_manager.get("x", "k") == 1

    def test_entry_expires_after_ttl(self, cache_manager, clock):
        cache_manager.set("x", "k", 1, ttl=10)
        clock.advance(11)
        assert cache_manager.get("x", "k") is None
        assert cache_manager.size() == 0

    def test_namespace_default_ttls(self, cache_manager):
        assert cache_manager.default_ttl(CacheNamespace.PERSONA) == 3600
        assert cache_manager.default_ttl(CacheNamespace.CONVERSATION) == 1800
        assert cache_manager.default_ttl("anything-else") == 300

    def test_delete(self, cache_manager):
        cache_manager.set("x", "k", 1)
        assert cache_manager.delete("x", "k")
        assert not cache_manager.delete("x", "k")


class TestEviction:
    """Tests for capacity handling."""

    def test_evicts_least_accessed(self, cache_manager):
        cache_manager.set("x", "a", 1)
        cache_manager.set("x", "b", 2)
        cache_manager.set("x", "c", 3)
        cache_manager.get("x", "a")
        cache_manager.get("x", "c")
        cache_manager.set("x", "d", 4)
        assert cache_manager.get("x", "b") is None
        assert cache_manager.get("x", "a") == 1
        assert cache_manager.size() == 3

    def test_ties_evict_oldest_insertion(self, cache_manager):
        for key in ("a", "b", "c"):
            cache_manager.set("x", key, key)
        cache_manager.set("x", "d", "d")
        assert cache_manager.get("x", "a") is None

    def test_overwrite_resets_access_count(self, cache_manager):
        cache_manager.set("x", "a", 1)
        cache_manager.set("x", "b", 2)
        cache_manager.set("x", "c", 3)
        cache_manager.get("x", "a")
        cache_manager.get("x", "b")
        cache_manager.get("x", "c")
        cache_manager.set("x", "a", 10)
        cache_manager.set("x", "d", 4)
        assert cache_manager.get("x", "a") is None
        assert cache_manager.get("x", "b") == 2

    def test_overwrite_at_capacity_does_not_evict(self, cache_manager):
        for key in ("a", "b", "c"):
            cache_manager.set("x", key, key)
        cache_manager.set("x", "b", "B")
        assert cache_manager.size() == 3
        assert cache_manager.get("x", "a") == "a"


class TestMaintenance:
    """Tests for sweeps, namespace clears and reporting."""

    def test_cleanup_expired(self, cache_manager, clock):
        cache_manager.set("x", "short", 1, ttl=5)
        cache_manager.set("x", "long", 2, ttl=50)
        clock.advance(10)
        assert cache_manager.cleanup_expired() == 1
        assert cache_manager.get("x", "long") == 2

    def test_clear_namespace(self, cache_manager):
        cache_manager.set("persona", "a", 1)
        cache_manager.set("persona", "b", 2)
        cache_manager.set("conversation", "a", 3)
        assert cache_manager.clear_namespace("persona") == 2
        assert cache_manager.get_stats()["namespaces"] == {"conversation": 1}

    def test_hit_rate_per_namespace(self, cache_manager):
        cache_manager.set("persona", "a", 1)
        cache_manager.get("persona", "a")
        cache_manager.get("persona", "missing")
        cache_manager.get("conversation", "missing")
        rates = cache_manager.get_hit_rate()
        assert rates["persona"] == 50.0
        assert rates["conversation"] == 0.0

    def test_report_lists_namespaces(self, cache_manager):
        cache_manager.set("persona", "a", 1)
        report = cache_manager.get_report()
        assert "Cache Report" in report
        assert "persona: 1" in report

    def test_clear_resets_counters(self, cache_manager):
        cache_manager.set("persona", "a", 1)
        cache_manager.get("persona", "a")
        cache_manager.clear()
        assert cache_manager.size() == 0
        assert cache_manager.get_hit_rate() == {}

    @pytest.mark.asyncio
    async def test_cleanup_task_sweeps(self, clock):
        cache = CacheManager(CacheConfig(cleanup_interval=0.01), clock=clock)
        cache.set("x", "k", 1, ttl=1)
        clock.advance(2)
        cache.start_cleanup_task()
        await asyncio.sleep(0.05)
        await cache.stop_cleanup_task()
        assert cache.size() == 0
        assert cache._cleanup_task is None


class TestCachedCall:
    """Tests for cached_call."""

    @pytest.mark.asyncio
    async def test_sync_factory_called_once(self, cache_manager):
        calls = []

        def factory():
            calls.append(1)
            return "value"

        assert await cached_call(cache_manager, "x", "k", factory) == "value"
        assert await cached_call(cache_manager, "x", "k", factory) == "value"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_async_factory(self, cache_manager):
        async def factory():
            return 42

        assert await cached_call(cache_manager, "x", "k", factory) == 42
        assert cache_manager.get("x", "k") == 42

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self, cache_manager):
        assert await cached_call(cache_manager, "x", "k", lambda: None) is None
        assert cache_manager.size() == 0
