"""Feed cache tests"""

import json

import pytest
import redis

from adwiser_feed.core.feed import CacheError, FeedCache, MemoryCacheBackend, RedisCacheBackend
from adwiser_feed.core.feed.cache import FEED_CACHE_KEY, CacheEntry


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Minimal dict-backed stand-in for the redis client calls the backend makes."""

    def __init__(self):
        self.data = {}
        self.expiry = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("connection refused")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, key):
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0


class CountingGenerator:
    def __init__(self):
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"<products>{self.calls}</products>"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return CountingGenerator()


class TestFeedCache:

    def test_hit_within_ttl(self, clock, generator):
        cache = FeedCache(clock=clock)

        first = cache.get(generator, ttl=900)
        clock.advance(899)
        second = cache.get(generator, ttl=900)

        assert first == second
        assert generator.calls == 1

    def test_expired_entry_regenerates(self, clock, generator):
        cache = FeedCache(clock=clock)

        cache.get(generator, ttl=900)
        clock.advance(900)
        xml = cache.get(generator, ttl=900)

        assert generator.calls == 2
        assert xml == "<products>2</products>"

    def test_disabled_always_regenerates(self, clock, generator):
        cache = FeedCache(clock=clock)

        cache.get(generator, ttl=900, enabled=False)
        cache.get(generator, ttl=900, enabled=False)

        assert generator.calls == 2
        assert cache.backend.load() is None

    def test_invalidate_forces_regeneration(self, clock, generator):
        cache = FeedCache(clock=clock)

        cache.get(generator, ttl=900)
        cache.invalidate()
        cache.get(generator, ttl=900)

        assert generator.calls == 2

    def test_invalidate_is_idempotent(self, clock):
        cache = FeedCache(clock=clock)

        cache.invalidate()
        cache.invalidate()

        assert cache.backend.load() is None

    def test_generation_error_propagates_and_keeps_cache_empty(self, clock):
        cache = FeedCache(clock=clock)

        def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get(broken, ttl=900)
        assert cache.backend.load() is None

    def test_entry_timestamp_taken_after_generation(self, clock):
        cache = FeedCache(clock=clock)

        def slow():
            clock.advance(30)
            return "<products/>"

        cache.get(slow, ttl=60)
        assert cache.backend.load().stored_at == 1030.0


class TestMemoryBackend:

    def test_store_replaces_entry(self):
        backend = MemoryCacheBackend()
        backend.store(CacheEntry(xml="a", stored_at=1.0, ttl=10))
        backend.store(CacheEntry(xml="b", stored_at=2.0, ttl=10))

        assert backend.load().xml == "b"

    def test_entry_freshness(self):
        entry = CacheEntry(xml="a", stored_at=100.0, ttl=60)

        assert entry.is_fresh(159.9)
        assert not entry.is_fresh(160.0)


class TestRedisBackend:

    def test_round_trip_with_expiry(self, clock, generator):
        client = FakeRedis()
        cache = FeedCache(RedisCacheBackend(client), clock=clock)

        cache.get(generator, ttl=900)
        xml = cache.get(generator, ttl=900)

        assert generator.calls == 1
        assert xml == "<products>1</products>"
        assert client.expiry[FEED_CACHE_KEY] == 900
        assert json.loads(client.data[FEED_CACHE_KEY])["stored_at"] == 1000.0

    def test_read_failure_is_a_miss(self, clock, generator):
        client = FakeRedis()
        client.fail = True
        cache = FeedCache(RedisCacheBackend(client), clock=clock)

        assert cache.get(generator, ttl=900) == "<products>1</products>"
        assert cache.get(generator, ttl=900) == "<products>2</products>"

    def test_corrupt_entry_is_a_miss(self, clock, generator):
        client = FakeRedis()
        client.data[FEED_CACHE_KEY] = "not json"
        cache = FeedCache(RedisCacheBackend(client), clock=clock)

        assert cache.get(generator, ttl=900) == "<products>1</products>"
        assert json.loads(client.data[FEED_CACHE_KEY])["xml"] == "<products>1</products>"

    def test_load_raises_cache_error(self):
        client = FakeRedis()
        client.fail = True

        with pytest.raises(CacheError):
            RedisCacheBackend(client).load()

    def test_invalidate_failure_is_logged(self, caplog):
        client = FakeRedis()
        client.fail = True
        cache = FeedCache(RedisCacheBackend(client))

        cache.invalidate()

        assert "invalidation failed" in caplog.text

    def test_invalidate_deletes_key(self, clock, generator):
        client = FakeRedis()
        cache = FeedCache(RedisCacheBackend(client), clock=clock)

        cache.get(generator, ttl=900)
        cache.invalidate()

        assert FEED_CACHE_KEY not in client.data
