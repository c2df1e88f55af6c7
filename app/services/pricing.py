"""
Price resolution
Effective unit price of a product given its discount window
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]

def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce a numeric value to Decimal without float artefacts"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))

def round_currency(value: Number) -> Decimal:
    """Round half-up to two decimal places"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

def is_discount_active(
    discount_percentage: Optional[Number],
    valid_until: Optional[datetime],
    now: datetime
) -> bool:
    """A discount applies while it is positive and not past its expiry"""
    if to_decimal(discount_percentage) <= 0:
        return False
    return valid_until is None or now <= valid_until

def resolve_effective_price(
    base_price: Number,
    discount_percentage: Optional[Number],
    valid_until: Optional[datetime],
    now: datetime
) -> Decimal:
    """
    Compute the unit price a shopper pays right now.

    Args:
        base_price: Catalog price
        discount_percentage: Discount in percent, clamped to [0, 100]
        valid_until: Discount expiry, None for open-ended
        now: Reference time supplied by the caller

    Returns:
        Price rounded to cents

    Raises:
        ValueError: If the base price is negative or not finite
    """
    base = to_decimal(base_price)
    if not base.is_finite() or base < 0:
        raise ValueError(f"Invalid base price: {base_price!r}")

    if not is_discount_active(discount_percentage, valid_until, now):
        return round_currency(base)

    percentage = min(max(to_decimal(discount_percentage), Decimal("0")), HUNDRED)
    return round_currency(base * (1 - percentage / HUNDRED))

def resolve_product_price(product, now: datetime) -> Decimal:
    """Effective price for a Product row"""
    return resolve_effective_price(
        product.price,
        product.discount_percentage,
        product.discount_valid_until,
        now
    )
