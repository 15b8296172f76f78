"""
ProductCatalog backed by the WooCommerce REST API.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from adwiser_feed.core.category_utils import CategoryNode, build_category_index, ancestor_chain
from adwiser_feed.core.utils import sanitize_slug
from adwiser_feed.core.woo_client import WooClient, WooCommerceError
from .errors import CatalogReadError
from .models import Product, ProductAttribute, ProductType
from .pricing import to_decimal

logger = logging.getLogger(__name__)


def _parse_date(value: Any) -> Optional[date]:
    dt = _parse_datetime(value)
    return dt.date() if dt else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None


def _parse_int(value: Any) -> Optional[int]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _names(terms: Any) -> List[str]:
    """Term names from a REST term list ([{id, name, slug}, ...])."""
    if not isinstance(terms, list):
        return []
    return [t.get('name') for t in terms if isinstance(t, dict) and t.get('name')]


def parse_attributes(raw_attributes: Any) -> List[ProductAttribute]:
    """
    Normalize REST attributes.

    Products carry {id, name, slug, visible, options}; variations carry
    {id, name, option}. A non-zero id marks a global (taxonomy) attribute.
    """
    attributes = []
    if not isinstance(raw_attributes, list):
        return attributes

    for raw in raw_attributes:
        if not isinstance(raw, dict) or not raw.get('name'):
            continue

        name = raw['name']
        taxonomy_backed = bool(raw.get('id'))
        slug = None
        if taxonomy_backed:
            slug = raw.get('slug') or f"pa_{sanitize_slug(name)}"

        if 'options' in raw:
            values = [str(o) for o in raw.get('options') or []]
        else:
            values = [str(raw['option'])] if raw.get('option') not in (None, '') else []

        attributes.append(ProductAttribute(
            key=slug if taxonomy_backed else name,
            display_name=name,
            taxonomy_backed=taxonomy_backed,
            slug=slug,
            values=values,
            visible=bool(raw.get('visible', True))
        ))

    return attributes


@dataclass
class _Snapshot:
    """Payloads and lookup tables fetched for one generation."""
    payloads: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    variants: Dict[int, List[Tuple[Product, Dict[str, Any]]]] = field(default_factory=dict)
    attributes: Dict[int, List[ProductAttribute]] = field(default_factory=dict)
    meta: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    media: Dict[int, str] = field(default_factory=dict)
    categories: Optional[Dict[int, CategoryNode]] = None
    shipping_classes: Optional[Dict[int, str]] = None


class WooCatalog:
    """
    Catalog snapshot read from a WooCommerce store.

    Each call to list_published_visible_products() starts a new snapshot;
    lookups made while generating from that listing reuse the payloads and
    lookup tables fetched for it. Snapshots are per thread, so concurrent
    generations sharing one catalog never see each other's tables.

    Prices are taken from the REST `price` field, which is the stored active
    price. Stores that enter prices excluding tax but display them including
    tax get the ex-tax amount in the feed; the REST API does not expose the
    tax-adjusted display price.
    """

    def __init__(self, client: WooClient, per_page: int = 100):
        self.client = client
        self.per_page = per_page
        self._local = threading.local()

    @property
    def _snapshot(self) -> _Snapshot:
        snapshot = getattr(self._local, "snapshot", None)
        if snapshot is None:
            snapshot = self._reset()
        return snapshot

    def _reset(self) -> _Snapshot:
        self._local.snapshot = _Snapshot()
        return self._local.snapshot

    def _call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except WooCommerceError as e:
            raise CatalogReadError(str(e)) from e

    # --- Snapshot listing ---

    def list_published_visible_products(
        self,
        order_by_created_desc: bool = True,
        limit: Optional[int] = None
    ) -> List[Product]:
        self._reset()

        products: List[Product] = []
        page = 1
        order = 'desc' if order_by_created_desc else 'asc'

        while True:
            result = self._call(self.client.get_products, page=page, per_page=self.per_page, order=order)
            items = result['items']

            for payload in items:
                try:
                    product = self._parse_product(payload)
                except CatalogReadError as e:
                    logger.warning(f"Skipping malformed product payload: {e}")
                    continue

                if not product.in_catalog:
                    continue

                products.append(product)
                if limit is not None and len(products) >= limit:
                    return products

            if not items or page >= result['total_pages']:
                break
            page += 1

        logger.info(f"Loaded {len(products)} catalog products from {self.client.store_url}")
        return products

    def _parse_product(self, payload: Any, parent: Optional[Dict[str, Any]] = None) -> Product:
        if not isinstance(payload, dict):
            raise CatalogReadError(f"Product payload is not an object: {type(payload).__name__}")

        product_id = payload.get('id')
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise CatalogReadError(f"Invalid product id {product_id!r}")

        if parent is not None:
            product_type = ProductType.VARIANT
        else:
            try:
                product_type = ProductType(payload.get('type') or 'simple')
            except ValueError:
                raise CatalogReadError(f"Product {product_id}: unsupported type {payload.get('type')!r}")

        source = parent or payload

        # Media: first product image is the featured one, the rest the gallery
        image_id = None
        gallery_ids: List[int] = []
        if parent is not None:
            images = [payload['image']] if isinstance(payload.get('image'), dict) else []
        else:
            images = payload.get('images') if isinstance(payload.get('images'), list) else []
        for index, image in enumerate(images):
            media_id = _parse_int(image.get('id')) if isinstance(image, dict) else None
            if not media_id:
                continue
            if image.get('src'):
                self._snapshot.media[media_id] = image['src']
            if index == 0:
                image_id = media_id
            else:
                gallery_ids.append(media_id)

        manage_stock = payload.get('manage_stock')
        stock_quantity = _parse_int(payload.get('stock_quantity'))
        if manage_stock == 'parent' and parent is not None:
            stock_quantity = _parse_int(parent.get('stock_quantity'))

        dimensions = payload.get('dimensions') if isinstance(payload.get('dimensions'), dict) else {}
        shipping_class_id = _parse_int(payload.get('shipping_class_id')) or None

        name = payload.get('name') or ''
        if parent is not None and not name:
            options = [a.get('option') for a in payload.get('attributes') or [] if isinstance(a, dict) and a.get('option')]
            name = parent.get('name', '')
            if options:
                name = f"{name} - {', '.join(options)}"

        tax_class = payload.get('tax_class') or ''
        if tax_class == 'parent' and parent is not None:
            tax_class = parent.get('tax_class') or ''

        product = Product(
            id=product_id,
            type=product_type,
            sku=payload.get('sku') or '',
            parent_id=parent.get('id') if parent is not None else None,
            name=name,
            description=payload.get('description') or '',
            short_description=payload.get('short_description') or '',
            permalink=payload.get('permalink') or '',
            regular_price=to_decimal(payload.get('regular_price')),
            sale_price=to_decimal(payload.get('sale_price')),
            price=to_decimal(payload.get('price')),
            on_sale=bool(payload.get('on_sale')),
            date_on_sale_from=_parse_date(payload.get('date_on_sale_from')),
            date_on_sale_to=_parse_date(payload.get('date_on_sale_to')),
            tax_status=payload.get('tax_status') or 'taxable',
            tax_class=tax_class,
            stock_status=payload.get('stock_status') or 'instock',
            manage_stock=bool(manage_stock),
            stock_quantity=stock_quantity,
            backorders=payload.get('backorders') or 'no',
            sold_individually=bool(source.get('sold_individually')),
            weight=str(payload.get('weight') or ''),
            length=str(dimensions.get('length') or ''),
            width=str(dimensions.get('width') or ''),
            height=str(dimensions.get('height') or ''),
            shipping_class_id=shipping_class_id,
            shipping_class_name=self._shipping_class_name(shipping_class_id) if shipping_class_id else None,
            image_id=image_id,
            gallery_image_ids=gallery_ids,
            category_ids=[c['id'] for c in source.get('categories') or [] if isinstance(c, dict) and isinstance(c.get('id'), int)],
            tags=_names(source.get('tags')),
            brands=_names(source.get('brands')),
            status=payload.get('status') or 'publish',
            catalog_visibility=source.get('catalog_visibility') or 'visible',
            date_created=_parse_datetime(payload.get('date_created')),
        )

        self._snapshot.payloads[product_id] = payload
        self._snapshot.attributes[product_id] = parse_attributes(payload.get('attributes'))
        self._snapshot.meta[product_id] = {
            m.get('key'): m.get('value')
            for m in payload.get('meta_data') or []
            if isinstance(m, dict) and m.get('key')
        }

        return product

    # --- Lookups ---

    def _shipping_class_name(self, shipping_class_id: int) -> Optional[str]:
        if self._snapshot.shipping_classes is None:
            try:
                classes = self._call(self.client.get_all_shipping_classes)
            except CatalogReadError as e:
                logger.warning(f"Failed to load shipping classes: {e}")
                classes = []
            self._snapshot.shipping_classes = {
                c['id']: c.get('name') or ''
                for c in classes
                if isinstance(c, dict) and isinstance(c.get('id'), int)
            }
        return self._snapshot.shipping_classes.get(shipping_class_id) or None

    def _load_variants(self, product_id: int) -> List[Tuple[Product, Dict[str, Any]]]:
        if product_id in self._snapshot.variants:
            return self._snapshot.variants[product_id]

        parent = self._snapshot.payloads.get(product_id, {'id': product_id})
        variants = []
        for payload in self._call(self.client.get_all_variations, product_id):
            try:
                variant = self._parse_product(payload, parent=parent)
            except CatalogReadError as e:
                logger.warning(f"Skipping malformed variation of product {product_id}: {e}")
                continue
            # Only purchasable variations are listed
            if payload.get('status', 'publish') != 'publish' or payload.get('purchasable') is False:
                continue
            variants.append((variant, payload))

        self._snapshot.variants[product_id] = variants
        return variants

    def list_variants(self, product_id: int) -> List[Product]:
        return [variant for variant, _ in self._load_variants(product_id)]

    def resolve_default_variant(self, product_id: int) -> Optional[Product]:
        parent = self._snapshot.payloads.get(product_id) or {}
        defaults = [d for d in parent.get('default_attributes') or [] if isinstance(d, dict) and d.get('option')]
        if not defaults:
            return None

        def attr_key(attr: Dict[str, Any]) -> str:
            return f"id:{attr['id']}" if attr.get('id') else f"name:{str(attr.get('name', '')).lower()}"

        for variant, payload in self._load_variants(product_id):
            options = {
                attr_key(a): str(a.get('option', '')).lower()
                for a in payload.get('attributes') or []
                if isinstance(a, dict)
            }
            # A variation without an attribute accepts any value for it
            if all(
                options.get(attr_key(d), str(d['option']).lower()) == str(d['option']).lower()
                for d in defaults
            ):
                return variant

        return None

    def category_ancestor_chain(self, category_id: int) -> List[str]:
        if self._snapshot.categories is None:
            self._snapshot.categories = build_category_index(self._call(self.client.get_all_categories))

        chain = ancestor_chain(self._snapshot.categories, category_id)
        if chain is None:
            raise CatalogReadError(f"Unknown category {category_id}")
        return chain

    def attributes_of(self, product_id: int) -> List[ProductAttribute]:
        return list(self._snapshot.attributes.get(product_id, []))

    def custom_field(self, product_id: int, key: str) -> Optional[str]:
        value = self._snapshot.meta.get(product_id, {}).get(key)
        if value is None or value == '' or isinstance(value, (dict, list)):
            return None
        return str(value)

    def resolve_media_url(self, media_id: int) -> Optional[str]:
        if media_id in self._snapshot.media:
            return self._snapshot.media[media_id]

        url = self._call(self.client.get_media_url, media_id)
        if url:
            self._snapshot.media[media_id] = url
        return url
