"""
Product catalog interface and an in-memory implementation.
"""

from datetime import datetime
from typing import Protocol, Optional, List, Dict, Tuple, runtime_checkable

from adwiser_feed.core.category_utils import build_category_index, ancestor_chain
from .errors import CatalogReadError
from .models import Product, ProductAttribute


@runtime_checkable
class ProductCatalog(Protocol):
    """Read-only view of the store catalog consumed by the feed generator."""

    def list_published_visible_products(
        self,
        order_by_created_desc: bool = True,
        limit: Optional[int] = None
    ) -> List[Product]:
        ...

    def list_variants(self, product_id: int) -> List[Product]:
        ...

    def resolve_default_variant(self, product_id: int) -> Optional[Product]:
        ...

    def category_ancestor_chain(self, category_id: int) -> List[str]:
        """Category names from the top-level ancestor down to the category itself."""
        ...

    def attributes_of(self, product_id: int) -> List[ProductAttribute]:
        ...

    def custom_field(self, product_id: int, key: str) -> Optional[str]:
        ...

    def resolve_media_url(self, media_id: int) -> Optional[str]:
        ...


class InMemoryCatalog:
    """
    Dict-backed catalog.

    Categories are given as {category_id: (name, parent_id)} with parent_id 0
    for top-level categories. Default variants map a parent id to the id of
    one of its variants.
    """

    def __init__(
        self,
        products: Optional[List[Product]] = None,
        variants: Optional[Dict[int, List[Product]]] = None,
        categories: Optional[Dict[int, Tuple[str, int]]] = None,
        attributes: Optional[Dict[int, List[ProductAttribute]]] = None,
        custom_fields: Optional[Dict[int, Dict[str, str]]] = None,
        media: Optional[Dict[int, str]] = None,
        default_variants: Optional[Dict[int, int]] = None
    ):
        self.products = list(products or [])
        self.variants = variants or {}
        self.categories = categories or {}
        self.attributes = attributes or {}
        self.custom_fields = custom_fields or {}
        self.media = media or {}
        self.default_variants = default_variants or {}
        self._category_index = build_category_index([
            {"id": cat_id, "name": name, "parent": parent}
            for cat_id, (name, parent) in self.categories.items()
        ])

    def list_published_visible_products(
        self,
        order_by_created_desc: bool = True,
        limit: Optional[int] = None
    ) -> List[Product]:
        products = [p for p in self.products if p.in_catalog]
        if order_by_created_desc:
            # Stable sort keeps insertion order for equal creation dates
            products.sort(key=lambda p: p.date_created or datetime.min, reverse=True)
        if limit is not None:
            products = products[:limit]
        return products

    def list_variants(self, product_id: int) -> List[Product]:
        return list(self.variants.get(product_id, []))

    def resolve_default_variant(self, product_id: int) -> Optional[Product]:
        variant_id = self.default_variants.get(product_id)
        if variant_id is None:
            return None
        for variant in self.variants.get(product_id, []):
            if variant.id == variant_id:
                return variant
        return None

    def category_ancestor_chain(self, category_id: int) -> List[str]:
        chain = ancestor_chain(self._category_index, category_id)
        if chain is None:
            raise CatalogReadError(f"Unknown category {category_id}")
        return chain

    def attributes_of(self, product_id: int) -> List[ProductAttribute]:
        return list(self.attributes.get(product_id, []))

    def custom_field(self, product_id: int, key: str) -> Optional[str]:
        return self.custom_fields.get(product_id, {}).get(key)

    def resolve_media_url(self, media_id: int) -> Optional[str]:
        return self.media.get(media_id)
