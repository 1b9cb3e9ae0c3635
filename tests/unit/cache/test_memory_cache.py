"""Tests for the in-memory resolution cache."""

from __future__ import annotations

import pytest
from stubs import ManualClock

from omniname.cache.keys import CacheKeys
from omniname.cache.memory import ResolutionCache
from omniname.core.models import ResolutionResult


def _result(address: str = "0xabc") -> ResolutionResult:
    return ResolutionResult(resolved_address=address, source_provider_id="ens")


class TestResolutionCache:
    """Tests for ResolutionCache."""

    def test_rejects_non_positive_size(self, clock: ManualClock):
        with pytest.raises(ValueError):
            ResolutionCache(max_size=0, clock=clock)

    async def test_put_and_get(self, cache: ResolutionCache):
        key = CacheKeys.forward("vitalik.eth")
        value = _result()
        await cache.put(key, value, ttl=60)

        assert await cache.get(key) is value
        assert len(cache) == 1

    async def test_miss(self, cache: ResolutionCache):
        assert await cache.get(CacheKeys.forward("missing.eth")) is None
        stats = await cache.stats()
        assert stats.misses == 1
        assert stats.hits == 0

    async def test_entry_expires(self, cache: ResolutionCache, clock: ManualClock):
        """An entry is served before its deadline and dropped at it."""
        key = CacheKeys.forward("vitalik.eth")
        value = _result()
        await cache.put(key, value, ttl=10)

        clock.advance(9.9)
        assert await cache.get(key) is value

        clock.advance(0.1)
        assert await cache.get(key) is None
        assert len(cache) == 0
        assert (await cache.stats()).expirations == 1

    async def test_non_positive_ttl_not_stored(self, cache: ResolutionCache):
        key = CacheKeys.forward("vitalik.eth")
        await cache.put(key, _result(), ttl=0)
        assert len(cache) == 0

    async def test_lru_eviction(self, clock: ManualClock):
        """At capacity the least recently used entry is evicted."""
        cache = ResolutionCache(max_size=2, clock=clock)
        a, b, c = (CacheKeys.forward(n) for n in ("a.eth", "b.eth", "c.eth"))

        await cache.put(a, "A", ttl=60)
        await cache.put(b, "B", ttl=60)
        assert await cache.get(a) == "A"  # a is now most recent

        await cache.put(c, "C", ttl=60)

        assert await cache.get(b) is None
        assert await cache.get(a) == "A"
        assert await cache.get(c) == "C"
        assert (await cache.stats()).evictions == 1

    async def test_update_existing_does_not_evict(self, clock: ManualClock):
        cache = ResolutionCache(max_size=2, clock=clock)
        a, b = CacheKeys.forward("a.eth"), CacheKeys.forward("b.eth")
        await cache.put(a, "A", ttl=60)
        await cache.put(b, "B", ttl=60)
        await cache.put(a, "A2", ttl=60)

        assert len(cache) == 2
        assert await cache.get(a) == "A2"
        assert await cache.get(b) == "B"

    async def test_invalidate(self, cache: ResolutionCache):
        key = CacheKeys.forward("vitalik.eth")
        await cache.put(key, "x", ttl=60)

        assert await cache.invalidate(key) is True
        assert await cache.invalidate(key) is False
        assert await cache.get(key) is None

    async def test_invalidate_subject(self, cache: ResolutionCache):
        """All kinds and selectors for a subject are dropped together."""
        await cache.put(CacheKeys.forward("vitalik.eth"), "a", ttl=60)
        await cache.put(CacheKeys.forward("vitalik.eth", chain_id=1), "b", ttl=60)
        await cache.put(CacheKeys.records("vitalik.eth"), "c", ttl=60)
        await cache.put(CacheKeys.forward("other.eth"), "d", ttl=60)

        assert await cache.invalidate_subject("vitalik.eth") == 3
        assert len(cache) == 1
        assert await cache.get(CacheKeys.forward("other.eth")) == "d"

    async def test_clear_and_close(self, cache: ResolutionCache):
        await cache.put(CacheKeys.forward("a.eth"), "a", ttl=60)
        await cache.clear()
        assert len(cache) == 0

        await cache.put(CacheKeys.forward("a.eth"), "a", ttl=60)
        await cache.close()
        assert len(cache) == 0

    async def test_stats(self, cache: ResolutionCache):
        key = CacheKeys.forward("a.eth")
        await cache.put(key, "a", ttl=60)
        await cache.get(key)
        await cache.get(key)
        await cache.get(CacheKeys.forward("b.eth"))

        stats = await cache.stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.size == 1
