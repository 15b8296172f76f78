"""
Feed generator - turns catalog products into feed records and XML.
"""

import logging
import re
from typing import Any, Callable, List, Optional

from .catalog import ProductCatalog
from .errors import CatalogReadError
from .models import (
    AttributeValue,
    BRAND_ATTRIBUTE_KEY,
    BRAND_META_KEY,
    Cdata,
    EAN_ATTRIBUTE_KEY,
    EAN_META_KEY,
    FeedConfig,
    FeedRecord,
    ListField,
    Product,
    VariationsFormat,
)
from .pricing import add_pricing, to_decimal
from .xml_writer import write_feed_xml

logger = logging.getLogger(__name__)

CATEGORY_SEPARATOR = ' > '


def strip_html(text: str) -> str:
    """Strip HTML tags (and script/style contents), returning plain text."""
    if not text:
        return ''
    text = re.sub(r'<(script|style)[^>]*?>.*?</\1>', '', text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r'<[^>]+>', '', text)
    return text.strip()


def _is_set(value: str) -> bool:
    """Non-empty and, when numeric, non-zero."""
    if value is None:
        return False
    value = str(value).strip()
    if not value:
        return False
    number = to_decimal(value)
    return number is None or number != 0


class FeedGenerator:
    """
    Builds the product feed for one catalog snapshot and configuration.

    A product whose record cannot be built is skipped; a failed lookup for a
    single field (category chain, media URL, custom field...) only drops that
    field.
    """

    def __init__(self, catalog: ProductCatalog, config: FeedConfig):
        self.catalog = catalog
        self.config = config

    def generate(self) -> str:
        """Generate the full XML document."""
        records = self.build_records()
        return write_feed_xml(records)

    def build_records(self) -> List[FeedRecord]:
        products = self._select_products()
        logger.info(f"Generating feed for {len(products)} products (variations={self.config.variations_format.value})")

        records: List[FeedRecord] = []
        skipped = 0
        for product in products:
            try:
                records.extend(self._product_entries(product))
            except Exception as e:
                skipped += 1
                logger.warning(f"Skipping product {getattr(product, 'id', '?')}: {e}")

        logger.info(f"Feed generated: {len(records)} entries, {skipped} products skipped")
        return records

    def _select_products(self) -> List[Product]:
        limit = self.config.results_limit if self.config.limit_results else None

        try:
            products = self.catalog.list_published_visible_products(
                order_by_created_desc=True,
                limit=limit
            )
        except Exception as e:
            logger.error(f"Failed to list catalog products: {e}")
            return []

        if limit is not None:
            products = products[:limit]

        # Unpriced products are dropped after the limit is applied
        return [p for p in products if p.has_price or p.is_variable]

    def _lookup(self, func: Callable[..., Any], *args, default: Any = None) -> Any:
        try:
            return func(*args)
        except CatalogReadError as e:
            logger.warning(f"Catalog lookup {func.__name__}{args} failed: {e}")
            return default

    def _product_entries(self, product: Product) -> List[FeedRecord]:
        if not product.is_variable:
            return [self._build_record(product)]

        variants = self._lookup(self.catalog.list_variants, product.id, default=[]) or []
        variants = [v for v in variants if v.has_price]
        default_variant = self._lookup(self.catalog.resolve_default_variant, product.id)

        record = self._build_record(product, variants=variants, default_variant=default_variant)

        if self.config.variations_format == VariationsFormat.NESTED:
            variation_records = self._variant_records(variants, include_taxonomy=False)
            if variation_records:
                record['variations'] = ListField('variation', variation_records)
            return [record]

        return [record] + self._variant_records(variants, include_taxonomy=True)

    def _variant_records(self, variants: List[Product], include_taxonomy: bool) -> List[FeedRecord]:
        records = []
        for variant in variants:
            try:
                records.append(self._build_record(variant, include_taxonomy=include_taxonomy))
            except Exception as e:
                logger.warning(f"Skipping variation {getattr(variant, 'id', '?')}: {e}")
        return records

    def _build_record(
        self,
        product: Product,
        variants: Optional[List[Product]] = None,
        default_variant: Optional[Product] = None,
        include_taxonomy: bool = True
    ) -> FeedRecord:
        if not isinstance(product.id, int):
            raise CatalogReadError(f"Invalid product id {product.id!r}")

        record: FeedRecord = {}

        # Identification
        record['internal_id'] = product.id
        if product.sku:
            record['sku'] = product.sku
        record['product_type'] = product.type.value

        # Basic information
        record['name'] = Cdata(product.name or '')
        record['url'] = product.permalink or ''

        description = strip_html(product.description)
        if description:
            record['description'] = Cdata(description)
        short_description = strip_html(product.short_description)
        if short_description:
            record['short_description'] = Cdata(short_description)

        add_pricing(record, product, self.config, variants=variants, default_variant=default_variant)
        self._add_inventory(record, product)
        self._add_shipping(record, product)
        self._add_images(record, product)
        if include_taxonomy:
            self._add_taxonomy(record, product)
        self._add_attributes(record, product)

        return record

    def _add_inventory(self, record: FeedRecord, product: Product) -> None:
        record['stock_status'] = product.stock_status
        record['manage_stock'] = product.manage_stock
        if product.manage_stock:
            record['stock_quantity'] = int(product.stock_quantity or 0)
        record['backorders_allowed'] = product.backorders_allowed
        record['sold_individually'] = product.sold_individually

    def _add_shipping(self, record: FeedRecord, product: Product) -> None:
        for field_name, value in (
            ('weight_kg', product.weight),
            ('length_cm', product.length),
            ('width_cm', product.width),
            ('height_cm', product.height),
        ):
            if _is_set(value):
                record[field_name] = str(value).strip()

        if product.shipping_class_id:
            record['shipping_class_id'] = product.shipping_class_id
            if product.shipping_class_name:
                record['shipping_class_name'] = Cdata(product.shipping_class_name)

    def _add_images(self, record: FeedRecord, product: Product) -> None:
        if product.image_id:
            main_image_url = self._lookup(self.catalog.resolve_media_url, product.image_id)
            if main_image_url:
                record['main_image_url'] = main_image_url

        gallery_urls = []
        for media_id in product.gallery_image_ids:
            url = self._lookup(self.catalog.resolve_media_url, media_id)
            if url:
                gallery_urls.append(url)
        if gallery_urls:
            record['gallery_images'] = ListField('gallery_image_url', gallery_urls)

    def _add_taxonomy(self, record: FeedRecord, product: Product) -> None:
        category_path = ''
        if product.category_ids:
            chain = self._lookup(self.catalog.category_ancestor_chain, product.category_ids[0], default=[])
            category_path = CATEGORY_SEPARATOR.join(name for name in chain or [] if name)
        record['category_path'] = Cdata(category_path)

        if product.tags:
            record['tags'] = ListField('tag', [Cdata(tag) for tag in product.tags])

        if product.brands:
            record['brand_tags'] = ListField('brand', [Cdata(brand) for brand in product.brands])
            record['brand'] = Cdata(product.brands[0])

    def _add_attributes(self, record: FeedRecord, product: Product) -> None:
        attributes = self._lookup(self.catalog.attributes_of, product.id, default=[]) or []

        items = []
        attribute_brand = None
        attribute_ean = None
        for attribute in attributes:
            if attribute.taxonomy_backed and not attribute.visible:
                continue

            value = attribute.value_text
            items.append(AttributeValue(
                name=attribute.display_name or attribute.key,
                value=value,
                taxonomy=(attribute.slug or attribute.key) if attribute.taxonomy_backed else None
            ))

            if attribute.key == BRAND_ATTRIBUTE_KEY and attribute_brand is None and value:
                attribute_brand = value
            if attribute.key == EAN_ATTRIBUTE_KEY and attribute_ean is None and value:
                attribute_ean = value

        if items:
            record['attributes'] = ListField('attribute', items)

        if 'brand' not in record:
            brand = attribute_brand or self._lookup(self.catalog.custom_field, product.id, BRAND_META_KEY)
            if brand:
                record['brand'] = Cdata(brand)

        if 'ean' not in record:
            ean = attribute_ean or self._lookup(self.catalog.custom_field, product.id, EAN_META_KEY)
            if ean:
                record['ean'] = ean


def generate_feed(config: FeedConfig, catalog: ProductCatalog) -> str:
    """Generate the feed XML for a catalog snapshot."""
    return FeedGenerator(catalog, config).generate()
