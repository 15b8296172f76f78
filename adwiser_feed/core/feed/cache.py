"""
Time-bounded cache for the generated feed.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis

from .errors import CacheError

logger = logging.getLogger(__name__)

FEED_CACHE_KEY = 'adwiser_feed:xml'


@dataclass
class CacheEntry:
    xml: str
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class MemoryCacheBackend:
    """Process-wide single entry; each write replaces the whole entry."""

    def __init__(self):
        self._entry: Optional[CacheEntry] = None

    def load(self) -> Optional[CacheEntry]:
        return self._entry

    def store(self, entry: CacheEntry) -> None:
        self._entry = entry

    def clear(self) -> None:
        self._entry = None


class RedisCacheBackend:
    """Cache entry stored as JSON in Redis, expiring with the entry's TTL."""

    def __init__(self, redis_client: redis.Redis, key: str = FEED_CACHE_KEY):
        """
        Initialize Redis backend.

        Args:
            redis_client: Redis client (decode_responses=True)
            key: Cache key
        """
        self.redis = redis_client
        self.key = key

    def load(self) -> Optional[CacheEntry]:
        try:
            raw = self.redis.get(self.key)
        except redis.RedisError as e:
            raise CacheError(f"Redis read failed: {e}") from e

        if not raw:
            return None
        try:
            data = json.loads(raw)
            return CacheEntry(xml=data['xml'], stored_at=float(data['stored_at']), ttl=float(data['ttl']))
        except (ValueError, KeyError, TypeError) as e:
            raise CacheError(f"Corrupt cache entry: {e}") from e

    def store(self, entry: CacheEntry) -> None:
        payload = json.dumps({'xml': entry.xml, 'stored_at': entry.stored_at, 'ttl': entry.ttl})
        try:
            self.redis.set(self.key, payload, ex=max(1, int(entry.ttl)))
        except redis.RedisError as e:
            raise CacheError(f"Redis write failed: {e}") from e

    def clear(self) -> None:
        try:
            self.redis.delete(self.key)
        except redis.RedisError as e:
            raise CacheError(f"Redis delete failed: {e}") from e


class FeedCache:
    """
    Memoizes the feed XML for a time-to-live.

    EMPTY -> FRESH on generation, FRESH -> STALE once the TTL elapses,
    STALE -> FRESH on the next regeneration; invalidate() returns to EMPTY.
    Concurrent misses may regenerate independently; the last write wins.
    Backend failures count as a miss and never block the response.
    """

    def __init__(self, backend=None, clock: Callable[[], float] = time.time):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.clock = clock

    def get(self, generator_fn: Callable[[], str], ttl: float, enabled: bool = True) -> str:
        if not enabled:
            return generator_fn()

        now = self.clock()
        try:
            entry = self.backend.load()
        except CacheError as e:
            logger.warning(f"Feed cache read failed, regenerating: {e}")
            entry = None

        if entry is not None and entry.is_fresh(now):
            logger.debug(f"Feed cache hit (age {now - entry.stored_at:.0f}s)")
            return entry.xml

        logger.debug("Feed cache miss, regenerating")
        xml = generator_fn()

        try:
            self.backend.store(CacheEntry(xml=xml, stored_at=self.clock(), ttl=ttl))
        except CacheError as e:
            logger.warning(f"Feed cache write failed: {e}")

        return xml

    def invalidate(self) -> None:
        try:
            self.backend.clear()
        except CacheError as e:
            logger.warning(f"Feed cache invalidation failed: {e}")
        else:
            logger.info("Feed cache cleared")
