"""
Coupon resolution
Turns a promo code and cart subtotal into a discount amount
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping, Optional, Protocol

from app.core.exceptions import InvalidCouponException, CouponMinimumNotMetException
from .pricing import round_currency, to_decimal

@dataclass(frozen=True)
class CouponRule:
    discount_type: str  # percentage, fixed
    value: Decimal
    min_order: Decimal = Decimal("0")
    max_discount: Optional[Decimal] = None

@dataclass(frozen=True)
class CouponQuote:
    code: str
    discount_amount: Decimal

class CouponResolver(Protocol):
    """Anything that can price a coupon code against a subtotal"""

    def resolve(self, code: str, subtotal: Decimal) -> CouponQuote:
        ...

DEFAULT_COUPONS: Dict[str, CouponRule] = {
    "FRESH20": CouponRule("percentage", Decimal("20"), min_order=Decimal("30")),
    "SAVE10": CouponRule("fixed", Decimal("10"), min_order=Decimal("50")),
    "FIRST15": CouponRule("percentage", Decimal("15"), min_order=Decimal("20")),
}

def normalize_code(code: str) -> str:
    return code.strip().upper()

class StaticCouponResolver:
    """In-memory coupon table"""

    def __init__(self, coupons: Optional[Mapping[str, CouponRule]] = None):
        table = DEFAULT_COUPONS if coupons is None else coupons
        self.coupons = {normalize_code(code): rule for code, rule in table.items()}

    def resolve(self, code: str, subtotal: Decimal) -> CouponQuote:
        """
        Validate coupon and calculate discount

        Raises:
            InvalidCouponException: Unknown code
            CouponMinimumNotMetException: Subtotal below the coupon floor
        """
        normalized = normalize_code(code)
        rule = self.coupons.get(normalized)
        if rule is None:
            raise InvalidCouponException()

        subtotal = to_decimal(subtotal)
        if subtotal < rule.min_order:
            raise CouponMinimumNotMetException(rule.min_order)

        if rule.discount_type == "percentage":
            discount = subtotal * rule.value / Decimal("100")
        else:
            discount = min(rule.value, subtotal)

        if rule.max_discount is not None:
            discount = min(discount, rule.max_discount)

        return CouponQuote(code=normalized, discount_amount=round_currency(discount))

_default_resolver = StaticCouponResolver()

def get_coupon_resolver() -> CouponResolver:
    """FastAPI dependency; override to plug in persistent coupons"""
    return _default_resolver
