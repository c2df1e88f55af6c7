"""Effective price resolution"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.pricing import (
    is_discount_active,
    resolve_effective_price,
    round_currency,
)
from tests.conftest import FIXED_NOW

def test_no_discount_returns_base_price():
    assert resolve_effective_price(Decimal("12.50"), 0, None, FIXED_NOW) == Decimal("12.50")

def test_open_ended_discount_applies():
    assert resolve_effective_price(Decimal("50"), Decimal("20"), None, FIXED_NOW) == Decimal("40.00")

def test_discount_applies_until_expiry_inclusive():
    expiry = FIXED_NOW
    assert resolve_effective_price(Decimal("50"), 20, expiry, FIXED_NOW) == Decimal("40.00")

def test_expired_discount_is_ignored():
    expiry = FIXED_NOW - timedelta(seconds=1)
    assert resolve_effective_price(Decimal("50"), 20, expiry, FIXED_NOW) == Decimal("50.00")

def test_rounds_half_up_to_cents():
    # 9.99 * 0.85 = 8.4915
    assert resolve_effective_price(Decimal("9.99"), 15, None, FIXED_NOW) == Decimal("8.49")
    # 0.05 * 0.5 = 0.025
    assert resolve_effective_price(Decimal("0.05"), 50, None, FIXED_NOW) == Decimal("0.03")

def test_percentage_is_clamped():
    assert resolve_effective_price(Decimal("10"), 150, None, FIXED_NOW) == Decimal("0.00")
    assert resolve_effective_price(Decimal("10"), -5, None, FIXED_NOW) == Decimal("10.00")

def test_resolution_is_deterministic():
    args = (Decimal("19.99"), Decimal("33"), FIXED_NOW + timedelta(days=1), FIXED_NOW)
    assert resolve_effective_price(*args) == resolve_effective_price(*args)

@pytest.mark.parametrize("base", [Decimal("-1"), Decimal("NaN"), Decimal("Infinity")])
def test_invalid_base_price_rejected(base):
    with pytest.raises(ValueError):
        resolve_effective_price(base, 10, None, FIXED_NOW)

def test_is_discount_active():
    assert is_discount_active(10, None, FIXED_NOW)
    assert not is_discount_active(0, None, FIXED_NOW)
    assert not is_discount_active(10, FIXED_NOW - timedelta(days=1), FIXED_NOW)

def test_round_currency_accepts_floats_without_artefacts():
    assert round_currency(4.99) == Decimal("4.99")
    assert round_currency("2.675") == Decimal("2.68")
