"""Coupon resolution"""

from decimal import Decimal

import pytest

from app.core.exceptions import CouponMinimumNotMetException, InvalidCouponException
from app.services.coupon_service import CouponRule, StaticCouponResolver

@pytest.fixture
def resolver():
    return StaticCouponResolver()

def test_percentage_coupon(resolver):
    quote = resolver.resolve("FRESH20", Decimal("45.50"))
    assert quote.code == "FRESH20"
    assert quote.discount_amount == Decimal("9.10")

def test_codes_are_case_insensitive(resolver):
    assert resolver.resolve("  first15 ", Decimal("20")).discount_amount == Decimal("3.00")

def test_fixed_coupon(resolver):
    assert resolver.resolve("SAVE10", Decimal("50")).discount_amount == Decimal("10.00")

def test_unknown_code(resolver):
    with pytest.raises(InvalidCouponException) as exc_info:
        resolver.resolve("BOGUS", Decimal("100"))
    assert exc_info.value.error_code == "INVALID_COUPON"

def test_minimum_not_met(resolver):
    with pytest.raises(CouponMinimumNotMetException) as exc_info:
        resolver.resolve("SAVE10", Decimal("49.99"))
    assert exc_info.value.error_code == "COUPON_MINIMUM_NOT_MET"
    assert exc_info.value.status_code == 400

def test_fixed_discount_capped_at_subtotal():
    resolver = StaticCouponResolver({"BIG": CouponRule("fixed", Decimal("25"))})
    assert resolver.resolve("big", Decimal("12.34")).discount_amount == Decimal("12.34")

def test_max_discount_cap():
    resolver = StaticCouponResolver({"HALF": CouponRule("percentage", Decimal("50"), max_discount=Decimal("5"))})
    assert resolver.resolve("HALF", Decimal("100")).discount_amount == Decimal("5.00")
