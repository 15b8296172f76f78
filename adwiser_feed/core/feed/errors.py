"""
Feed error types.
"""


class FeedError(Exception):
    """Base exception for feed errors."""
    pass


class ConfigurationError(FeedError):
    """Invalid or missing configuration value (never fatal, defaults apply)."""
    pass


class CatalogReadError(FeedError):
    """A product or related taxonomy/media lookup failed."""
    pass


class AccessDenied(FeedError):
    """Caller is not allowed to read the feed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CacheError(FeedError):
    """Cache backend read/write failure."""
    pass
