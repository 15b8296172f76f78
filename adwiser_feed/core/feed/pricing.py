"""
Price resolution for feed entries.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from .models import FeedConfig, FeedRecord, PriceAggregation, Product


TWO_PLACES = Decimal('0.01')


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a catalog price value to Decimal; empty or unparseable -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip().replace(',', '')
        if not s:
            return None
        try:
            return Decimal(s)
        except InvalidOperation:
            return None
    return None


def format_decimal(value: Decimal) -> str:
    """Fixed two decimal places."""
    return str(value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _aggregate(values: List[Decimal], policy: PriceAggregation) -> Optional[Decimal]:
    if not values:
        return None
    if policy == PriceAggregation.MAX:
        return max(values)
    return min(values)


def _simple_prices(product: Product, record: FeedRecord) -> None:
    if product.regular_price is not None:
        record['regular_price'] = format_decimal(product.regular_price)
    if product.sale_price is not None:
        record['sale_price'] = format_decimal(product.sale_price)
    record['on_sale'] = product.on_sale
    if product.price is not None:
        record['price'] = format_decimal(product.price)


def _aggregated_prices(
    variants: List[Product],
    policy: PriceAggregation,
    record: FeedRecord
) -> None:
    regular_prices = []
    sale_prices = []
    display_prices = []

    for variant in variants:
        if variant.regular_price is not None:
            regular_prices.append(variant.regular_price)
        # Variants without a sale compete with their regular price
        if variant.sale_price is not None:
            sale_prices.append(variant.sale_price)
        elif variant.regular_price is not None:
            sale_prices.append(variant.regular_price)
        if variant.price is not None:
            display_prices.append(variant.price)

    regular = _aggregate(regular_prices, policy)
    sale = _aggregate(sale_prices, policy)
    on_sale = regular is not None and sale is not None and sale < regular

    if regular is not None:
        record['regular_price'] = format_decimal(regular)
    if on_sale:
        record['sale_price'] = format_decimal(sale)
    record['on_sale'] = on_sale

    display = _aggregate(display_prices, policy)
    if display is not None:
        record['price'] = format_decimal(display)


def add_pricing(
    record: FeedRecord,
    product: Product,
    config: FeedConfig,
    variants: Optional[List[Product]] = None,
    default_variant: Optional[Product] = None
) -> None:
    """
    Append the pricing block to a feed record.

    Non-variable products use their own prices and sale window. Variable
    products use the default variant when one is configured, otherwise an
    aggregate over the priced variants; they never carry a sale window.
    Tax status and class are always written.
    """
    if product.is_variable:
        if default_variant is not None:
            _simple_prices(default_variant, record)
        else:
            _aggregated_prices(variants or [], config.price_aggregation, record)
    else:
        _simple_prices(product, record)

        if product.date_on_sale_from:
            record['sale_price_effective_date_start'] = product.date_on_sale_from.strftime('%Y-%m-%d')
        if product.date_on_sale_to:
            record['sale_price_effective_date_end'] = product.date_on_sale_to.strftime('%Y-%m-%d')

    record['tax_status'] = product.tax_status
    record['tax_class'] = product.tax_class
