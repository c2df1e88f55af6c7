"""Services package"""

from .pricing import resolve_effective_price, resolve_product_price, round_currency
from .inventory import InventoryGate
from .coupon_service import CouponQuote, CouponResolver, StaticCouponResolver, get_coupon_resolver

__all__ = [
    "resolve_effective_price",
    "resolve_product_price",
    "round_currency",
    "InventoryGate",
    "CouponQuote",
    "CouponResolver",
    "StaticCouponResolver",
    "get_coupon_resolver",
]
