"""Pytest configuration and shared catalog fixtures."""

import os
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

# Keep tests independent of a developer's .env / environment
os.environ.pop("REDIS_URL", None)
os.environ.pop("ADMIN_TOKEN", None)

from adwiser_feed.core.feed import InMemoryCatalog, Product, ProductAttribute, ProductType


BASE_DATE = datetime(2024, 1, 1, 12, 0, 0)


def _product(product_id, **kwargs) -> Product:
    defaults = {
        "name": f"Product {product_id}",
        "permalink": f"https://shop.example.com/product/p-{product_id}/",
        "regular_price": Decimal("10.00"),
        "price": Decimal("10.00"),
        "date_created": BASE_DATE + timedelta(days=product_id),
    }
    defaults.update(kwargs)
    return Product(id=product_id, **defaults)


@pytest.fixture
def make_product():
    """Factory for catalog products with sensible defaults."""
    return _product


@pytest.fixture
def variable_catalog():
    """One variable product (id 2) with three priced variants and one unpriced."""
    parent = _product(
        2,
        type=ProductType.VARIABLE,
        name="Trail Jacket",
        regular_price=None,
        price=None,
        category_ids=[11],
    )
    variants = [
        _product(201, type=ProductType.VARIANT, parent_id=2, name="Trail Jacket - S",
                 regular_price=Decimal("30"), sale_price=Decimal("25"), price=Decimal("25"), on_sale=True),
        _product(202, type=ProductType.VARIANT, parent_id=2, name="Trail Jacket - M",
                 regular_price=Decimal("20"), price=Decimal("20")),
        _product(203, type=ProductType.VARIANT, parent_id=2, name="Trail Jacket - L",
                 regular_price=Decimal("40"), sale_price=Decimal("15"), price=Decimal("15"), on_sale=True),
        _product(204, type=ProductType.VARIANT, parent_id=2, name="Trail Jacket - XL",
                 regular_price=None, price=None),
    ]
    return InMemoryCatalog(
        products=[parent],
        variants={2: variants},
        categories={10: ("Footwear", 0), 11: ("Shoes", 10)},
    )


@pytest.fixture
def sample_catalog():
    """A small catalog with a fully populated simple product (id 1)."""
    runner = _product(
        1,
        sku="RUN-1",
        name="Runner <Pro> & Co",
        description="<p>Light <strong>running</strong> shoe</p>",
        short_description="<em>Fast</em>",
        regular_price=Decimal("59.99"),
        sale_price=Decimal("49.99"),
        price=Decimal("49.99"),
        on_sale=True,
        date_on_sale_from=date(2024, 5, 1),
        date_on_sale_to=date(2024, 5, 31),
        tax_class="reduced-rate",
        manage_stock=True,
        stock_quantity=7,
        backorders="notify",
        weight="0.8",
        length="30",
        width="0",
        height="",
        shipping_class_id=5,
        shipping_class_name="Small parcels",
        image_id=100,
        gallery_image_ids=[101, 102],
        category_ids=[11],
        tags=["running", "road"],
    )
    attributes = {
        1: [
            ProductAttribute(key="pa_color", display_name="Color", taxonomy_backed=True,
                             slug="pa_color", values=["Red", "Blue"]),
            ProductAttribute(key="pa_season", display_name="Season", taxonomy_backed=True,
                             slug="pa_season", values=["Summer"], visible=False),
            ProductAttribute(key="Material", display_name="Material", values=["Mesh"], visible=False),
            ProductAttribute(key="pa_ean", display_name="EAN", taxonomy_backed=True,
                             slug="pa_ean", values=["4006381333931"]),
        ]
    }
    return InMemoryCatalog(
        products=[runner],
        categories={10: ("Footwear", 0), 11: ("Shoes", 10)},
        attributes=attributes,
        media={
            100: "https://shop.example.com/img/runner.jpg",
            101: "https://shop.example.com/img/runner-1.jpg",
            102: "https://shop.example.com/img/runner-2.jpg",
        },
    )
