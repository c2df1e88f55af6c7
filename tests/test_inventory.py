"""Stock reservation and release"""

import uuid

import pytest

from app.core.exceptions import (
    ConflictException,
    InsufficientStockException,
    ProductUnavailableException,
    ValidationException,
)
from app.services.inventory import InventoryGate

async def test_reserve_decrements_stock(db, make_product, stock_of):
    product = await make_product(stock=5)
    gate = InventoryGate(db)

    remaining = await gate.reserve(product.id, 2)
    await db.commit()

    assert remaining == 3
    assert await stock_of(product.id) == 3

async def test_reserve_more_than_available_leaves_stock(db, make_product, stock_of):
    product = await make_product(name="Milk", stock=1)
    gate = InventoryGate(db)

    with pytest.raises(InsufficientStockException) as exc_info:
        await gate.reserve(product.id, 2)
    await db.commit()

    assert exc_info.value.data["available"] == 1
    assert exc_info.value.data["product_name"] == "Milk"
    assert await stock_of(product.id) == 1

async def test_reserve_exact_stock_reaches_zero(db, make_product, stock_of):
    product = await make_product(stock=4)
    gate = InventoryGate(db)

    await gate.reserve(product.id, 4)
    await db.commit()

    assert await stock_of(product.id) == 0
    with pytest.raises(InsufficientStockException):
        await gate.reserve(product.id, 1)

async def test_reserve_missing_product(db):
    with pytest.raises(ProductUnavailableException):
        await InventoryGate(db).reserve(uuid.uuid4(), 1)

async def test_release_adds_stock(db, make_product, stock_of):
    product = await make_product(stock=0)
    gate = InventoryGate(db)

    assert await gate.release(product.id, 3) == 3
    await db.commit()
    assert await stock_of(product.id) == 3

async def test_release_missing_product_is_a_noop(db):
    assert await InventoryGate(db).release(uuid.uuid4(), 3) is None

@pytest.mark.parametrize("quantity", [0, -2])
async def test_non_positive_quantity_rejected(db, make_product, quantity):
    product = await make_product()
    gate = InventoryGate(db)
    with pytest.raises(ValidationException):
        await gate.reserve(product.id, quantity)
    with pytest.raises(ValidationException):
        await gate.release(product.id, quantity)

async def test_stock_writes_bump_version(db, make_product):
    product = await make_product(stock=5)
    gate = InventoryGate(db)

    await gate.reserve(product.id, 1)
    await gate.release(product.id, 1)
    await db.commit()

    row = await gate._read(product.id)
    assert row.version == 3
    assert row.stock == 5

async def test_lost_races_retry_then_conflict(db, make_product, stock_of, monkeypatch):
    product = await make_product(stock=5)
    gate = InventoryGate(db, max_retries=3)
    attempts = []

    async def always_lose(product_id, version, delta):
        attempts.append(version)
        return False

    monkeypatch.setattr(gate, "_swap", always_lose)

    with pytest.raises(ConflictException) as exc_info:
        await gate.reserve(product.id, 1)

    assert exc_info.value.error_code == "STOCK_CONFLICT"
    assert len(attempts) == 3
    assert await stock_of(product.id) == 5

async def test_recovers_after_a_lost_race(db, make_product, stock_of, monkeypatch):
    product = await make_product(stock=5)
    gate = InventoryGate(db)
    real_swap = gate._swap
    calls = []

    async def lose_once(product_id, version, delta):
        calls.append(version)
        if len(calls) == 1:
            return False
        return await real_swap(product_id, version, delta)

    monkeypatch.setattr(gate, "_swap", lose_once)

    assert await gate.reserve(product.id, 2) == 3
    await db.commit()
    assert len(calls) == 2
    assert await stock_of(product.id) == 3
