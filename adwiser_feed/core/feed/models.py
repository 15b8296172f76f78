"""
Feed data models.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Set, Dict, Any


BRAND_ATTRIBUTE_KEY = 'pa_brand'
EAN_ATTRIBUTE_KEY = 'pa_ean'
BRAND_META_KEY = '_brand'
EAN_META_KEY = '_ean'


class ProductType(str, Enum):
    SIMPLE = 'simple'
    VARIABLE = 'variable'
    VARIANT = 'variation'
    GROUPED = 'grouped'
    EXTERNAL = 'external'


class VariationsFormat(str, Enum):
    SEPARATE = 'separate'  # one top-level <product> per variant
    NESTED = 'nested'  # <variations> block inside the parent


class PriceAggregation(str, Enum):
    MIN = 'min'
    MAX = 'max'


@dataclass
class FeedConfig:
    """Feed generation configuration."""
    enabled: bool = True
    ip_whitelist: Set[str] = field(default_factory=set)  # empty = allow all

    # Selection
    limit_results: bool = False
    results_limit: int = 1000

    # Caching
    enable_caching: bool = True
    cache_time_minutes: int = 15

    # Output
    variations_format: VariationsFormat = VariationsFormat.SEPARATE
    price_aggregation: PriceAggregation = PriceAggregation.MIN

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_time_minutes * 60


@dataclass
class ProductAttribute:
    """
    Normalized product attribute.

    Both the legacy shape (attribute key -> value text) and the object shape
    (taxonomy flag, visibility, option list) are converted into this at the
    catalog boundary.
    """
    key: str  # e.g. 'pa_color' or a free-text attribute name
    display_name: str
    taxonomy_backed: bool = False
    slug: Optional[str] = None
    values: List[str] = field(default_factory=list)
    visible: bool = True

    @property
    def value_text(self) -> str:
        return ', '.join(v for v in self.values if v)


@dataclass
class Product:
    """Read-only view of a catalog product or variant."""
    # Identity
    id: int
    type: ProductType = ProductType.SIMPLE
    sku: str = ''
    parent_id: Optional[int] = None

    # Descriptive
    name: str = ''
    description: str = ''
    short_description: str = ''
    permalink: str = ''

    # Pricing
    regular_price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    price: Optional[Decimal] = None  # tax-adjusted display price
    on_sale: bool = False
    date_on_sale_from: Optional[date] = None
    date_on_sale_to: Optional[date] = None

    # Tax
    tax_status: str = 'taxable'
    tax_class: str = ''

    # Inventory
    stock_status: str = 'instock'
    manage_stock: bool = False
    stock_quantity: Optional[int] = None
    backorders: str = 'no'  # 'no', 'notify', 'yes'
    sold_individually: bool = False

    # Shipping
    weight: str = ''
    length: str = ''
    width: str = ''
    height: str = ''
    shipping_class_id: Optional[int] = None
    shipping_class_name: Optional[str] = None

    # Media
    image_id: Optional[int] = None
    gallery_image_ids: List[int] = field(default_factory=list)

    # Taxonomy
    category_ids: List[int] = field(default_factory=list)  # first is primary
    tags: List[str] = field(default_factory=list)
    brands: List[str] = field(default_factory=list)

    # Selection
    status: str = 'publish'
    catalog_visibility: str = 'visible'  # 'visible', 'catalog', 'search', 'hidden'
    date_created: Optional[datetime] = None

    @property
    def is_variable(self) -> bool:
        return self.type == ProductType.VARIABLE

    @property
    def has_price(self) -> bool:
        """Empty or zero display price counts as unpriced."""
        return self.price is not None and self.price != 0

    @property
    def backorders_allowed(self) -> bool:
        return self.backorders in ('yes', 'notify')

    @property
    def in_catalog(self) -> bool:
        return self.status == 'publish' and self.catalog_visibility in ('visible', 'catalog')


# A FeedRecord is the ordered field mapping built for one emitted product or
# variation; the XML writer serializes it in insertion order.
FeedRecord = Dict[str, Any]


@dataclass
class Cdata:
    """Free-text value written as a CDATA section."""
    text: str


@dataclass
class AttributeValue:
    """One <attribute> element of the attributes block."""
    name: str
    value: str
    taxonomy: Optional[str] = None


@dataclass
class ListField:
    """Wrapper element holding repeated child elements."""
    child_tag: str
    items: List[Any] = field(default_factory=list)
