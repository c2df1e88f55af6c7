"""Inventory gate: the only writer of product stock"""

from typing import Optional
import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConflictException,
    InsufficientStockException,
    ProductUnavailableException,
    ValidationException,
)
from app.models import Product

logger = logging.getLogger(__name__)

class InventoryGate:
    """
    Reserve and release product stock.

    Every write is a compare-and-swap on `Product.version`; a lost race
    re-reads the row and tries again up to `max_retries` times.
    """

    def __init__(self, db: AsyncSession, max_retries: Optional[int] = None):
        self.db = db
        self.max_retries = max_retries or settings.STOCK_UPDATE_MAX_RETRIES

    async def _read(self, product_id: uuid.UUID):
        result = await self.db.execute(
            select(Product.name, Product.stock, Product.version)
            .where(Product.id == product_id)
        )
        return result.one_or_none()

    async def _swap(self, product_id: uuid.UUID, version: int, delta: int) -> bool:
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.version == version)
            .values(stock=Product.stock + delta, version=Product.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_stock(self, product_id: uuid.UUID) -> Optional[int]:
        row = await self._read(product_id)
        return row.stock if row else None

    async def reserve(self, product_id: uuid.UUID, quantity: int) -> int:
        """
        Decrement stock for an order line.

        Returns:
            Stock left after the reservation

        Raises:
            ProductUnavailableException: Product no longer exists
            InsufficientStockException: Live stock below quantity; stock unchanged
            ConflictException: Concurrent writers kept winning
        """
        if quantity < 1:
            raise ValidationException("Quantity must be at least 1")

        for attempt in range(1, self.max_retries + 1):
            row = await self._read(product_id)
            if row is None:
                raise ProductUnavailableException(product_id=product_id)

            if row.stock < quantity:
                raise InsufficientStockException(row.name, row.stock, product_id)

            if await self._swap(product_id, row.version, -quantity):
                logger.info(f"Reserved {quantity} of {product_id}; stock now {row.stock - quantity}")
                return row.stock - quantity

            logger.warning(f"Stock version conflict reserving {product_id} (attempt {attempt})")

        raise ConflictException(
            f"Stock for product {product_id} is being updated concurrently, please retry",
            error_code="STOCK_CONFLICT"
        )

    async def release(self, product_id: uuid.UUID, quantity: int) -> Optional[int]:
        """
        Return stock previously reserved.

        A product that no longer exists is skipped and None is returned.

        Raises:
            ConflictException: Concurrent writers kept winning
        """
        if quantity < 1:
            raise ValidationException("Quantity must be at least 1")

        for attempt in range(1, self.max_retries + 1):
            row = await self._read(product_id)
            if row is None:
                logger.warning(f"Cannot release {quantity} of missing product {product_id}; skipping")
                return None

            if await self._swap(product_id, row.version, quantity):
                logger.info(f"Released {quantity} of {product_id}; stock now {row.stock + quantity}")
                return row.stock + quantity

            logger.warning(f"Stock version conflict releasing {product_id} (attempt {attempt})")

        raise ConflictException(
            f"Stock for product {product_id} is being updated concurrently, please retry",
            error_code="STOCK_CONFLICT"
        )
