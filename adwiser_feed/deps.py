"""
Dependency injection for FastAPI.
"""

import logging
import os
import secrets
from typing import Optional, Tuple

import redis
from fastapi import Header, HTTPException, status

from adwiser_feed.config import get_settings, load_feed_config
from adwiser_feed.core.feed import FeedCache, FeedService, InMemoryCatalog, MemoryCacheBackend, RedisCacheBackend
from adwiser_feed.core.feed.woo_catalog import WooCatalog
from adwiser_feed.core.woo_client import WooClient

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None
_feed_service: Optional[FeedService] = None
_feed_options_stamp: Optional[Tuple[int, int]] = None


def get_redis() -> Optional[redis.Redis]:
    """Get Redis client (singleton) when REDIS_URL is configured."""
    global _redis_client
    settings = get_settings()
    if not settings.redis_url:
        return None
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=1.0,
            socket_timeout=3.0,
            retry_on_timeout=True,
            health_check_interval=30
        )
    return _redis_client


def close_redis():
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        _redis_client.close()
        _redis_client = None


def build_feed_cache() -> FeedCache:
    """Redis-backed cache when configured, otherwise in-process."""
    redis_client = get_redis()
    if redis_client is not None:
        return FeedCache(RedisCacheBackend(redis_client))
    return FeedCache(MemoryCacheBackend())


def build_catalog():
    """
    WooCommerce catalog from the store settings.

    Without store credentials the service still starts and serves an empty
    feed, so the endpoint and access rules can be checked before go-live.
    """
    settings = get_settings()
    if settings.store_url and settings.consumer_key and settings.consumer_secret:
        client = WooClient(
            store_url=settings.store_url,
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
            rate_limit_rps=settings.woo_rate_limit_rps,
            timeout=settings.woo_timeout
        )
        return WooCatalog(client)

    logger.warning("Store credentials not configured (STORE_URL, CONSUMER_KEY, CONSUMER_SECRET); serving an empty catalog")
    return InMemoryCatalog()


def _options_stamp() -> Optional[Tuple[int, int]]:
    """Modification time and size of the feed options file, None when missing."""
    try:
        stat = os.stat(get_settings().feed_options_path)
    except OSError:
        return None
    return (stat.st_mtime_ns, stat.st_size)


def remember_feed_options() -> None:
    """Record the options file as loaded, after this process wrote it itself."""
    global _feed_options_stamp
    _feed_options_stamp = _options_stamp()


def get_feed_service() -> FeedService:
    """
    Get the per-process FeedService (created on first use).

    The options file is shared by all worker processes; when another worker
    rewrites it, this process reloads it and drops its cached feed before
    serving.
    """
    global _feed_service, _feed_options_stamp
    stamp = _options_stamp()
    if _feed_service is None:
        _feed_service = FeedService(
            catalog=build_catalog(),
            config=load_feed_config(),
            cache=build_feed_cache()
        )
        _feed_options_stamp = stamp
    elif stamp != _feed_options_stamp:
        logger.info("Feed options changed on disk, reloading")
        _feed_options_stamp = stamp
        _feed_service.update_config(load_feed_config())
    return _feed_service


def require_admin_token(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """
    Guard for admin endpoints.

    Raises:
        HTTPException: 404 when no admin token is configured, 401 when the
            header is missing, 403 when it does not match.
    """
    expected = get_settings().admin_token
    if not expected:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    if not x_admin_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Admin-Token header required"
        )

    if not secrets.compare_digest(x_admin_token, expected):
        logger.warning("[ADMIN ACCESS] Denied: token mismatch")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token"
        )
