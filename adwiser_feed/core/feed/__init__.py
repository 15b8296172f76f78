"""
Feed generation core module.
"""

from .models import FeedConfig, Product, ProductAttribute, ProductType, VariationsFormat, PriceAggregation
from .catalog import ProductCatalog, InMemoryCatalog
from .errors import FeedError, ConfigurationError, CatalogReadError, AccessDenied, CacheError
from .generator import FeedGenerator, generate_feed
from .cache import FeedCache, MemoryCacheBackend, RedisCacheBackend
from .service import FeedService
from .xml_writer import write_feed_xml

__all__ = [
    'FeedConfig',
    'Product',
    'ProductAttribute',
    'ProductType',
    'VariationsFormat',
    'PriceAggregation',
    'ProductCatalog',
    'InMemoryCatalog',
    'FeedError',
    'ConfigurationError',
    'CatalogReadError',
    'AccessDenied',
    'CacheError',
    'FeedGenerator',
    'generate_feed',
    'FeedCache',
    'MemoryCacheBackend',
    'RedisCacheBackend',
    'FeedService',
    'write_feed_xml'
]
