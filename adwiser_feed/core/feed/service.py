"""
Feed service - one per process, owns the catalog, configuration and cache.
"""

import logging
from typing import Optional

from .cache import FeedCache
from .catalog import ProductCatalog
from .errors import AccessDenied
from .generator import FeedGenerator
from .models import FeedConfig

logger = logging.getLogger(__name__)


class FeedService:
    """Entry point used by the HTTP handlers."""

    def __init__(
        self,
        catalog: ProductCatalog,
        config: FeedConfig,
        cache: Optional[FeedCache] = None
    ):
        self.catalog = catalog
        self.config = config
        self.cache = cache if cache is not None else FeedCache()

    def generate(self) -> str:
        """Generate the feed without touching the cache."""
        return FeedGenerator(self.catalog, self.config).generate()

    def get_cached(self) -> str:
        """Feed XML, served from cache while fresh when caching is enabled."""
        return self.cache.get(
            self.generate,
            ttl=self.config.cache_ttl_seconds,
            enabled=self.config.enable_caching
        )

    def invalidate_cache(self) -> None:
        self.cache.invalidate()

    def update_config(self, config: FeedConfig) -> None:
        """Replace the configuration; the cached feed no longer applies."""
        self.config = config
        self.invalidate_cache()

    def check_access(self, client_ip: Optional[str]) -> None:
        """
        Reject the request before any generation happens.

        Raises:
            AccessDenied: Feed disabled, or address not in a non-empty whitelist
        """
        if not self.config.enabled:
            raise AccessDenied("Feed is disabled")

        whitelist = self.config.ip_whitelist
        if whitelist and (client_ip or '').strip() not in whitelist:
            logger.warning(f"[FEED ACCESS] Denied: ip={client_ip} not whitelisted")
            raise AccessDenied(f"IP address {client_ip or 'unknown'} is not allowed to access this feed")
