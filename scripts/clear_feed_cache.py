#!/usr/bin/env python3
"""
Clear the cached BuyAdwiser feed.
Meant for the daily cron sweep, e.g.:

    0 3 * * * cd /srv/adwiser-feed && python scripts/clear_feed_cache.py

Only useful with the shared Redis cache (REDIS_URL); the in-process cache
lives and dies with the web server. Exits non-zero when Redis cannot be
reached so cron reports the failure.
"""

import sys
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from adwiser_feed.core.feed import CacheError, RedisCacheBackend
from adwiser_feed.deps import close_redis, get_redis


def main():
    """Delete the feed cache entry."""
    redis_client = get_redis()
    if redis_client is None:
        print("REDIS_URL not set: nothing to clear outside the web process.")
        return

    try:
        RedisCacheBackend(redis_client).clear()
        print("✅ Feed cache cleared.")
    except CacheError as e:
        print(f"❌ Error: {str(e)}", file=sys.stderr)
        sys.exit(1)
    finally:
        close_redis()


if __name__ == "__main__":
    main()
