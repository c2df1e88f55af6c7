"""
Order service layer
Handles order placement, status changes, cancellation and reorder
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as app_settings
from app.core.exceptions import (
    ConflictException,
    EmptyCartException,
    ForbiddenException,
    FreshCartException,
    InsufficientStockException,
    InvalidTransitionException,
    NotFoundException,
    ProductUnavailableException,
    ValidationException,
)
from app.core.security import is_admin
from app.models import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from app.services.inventory import InventoryGate
from app.services.pricing import resolve_product_price, round_currency
from app.api.v1.cart.services import CartService, delivery_fee_for
from app.utils.helpers import generate_order_number, utcnow
from app.utils.pagination import paginate
from .state_machine import OrderStateMachine, order_state_machine

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Order.created_at,
    "total_amount": Order.total_amount,
    "order_number": Order.order_number,
    "status": Order.status,
}

@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal

def calculate_order_totals(
    items: Iterable[Any],
    discount: Optional[Decimal],
    settings: Settings
) -> OrderTotals:
    """
    Monetary breakdown for a set of priced lines.

    Every component is rounded first, so the total is an exact sum of
    the stored figures.
    """
    subtotal = round_currency(sum((item.price * item.quantity for item in items), Decimal("0")))
    delivery_fee = delivery_fee_for(subtotal, settings)
    tax = round_currency(subtotal * settings.TAX_RATE)
    # A coupon never takes more than the goods are worth
    discount = min(round_currency(discount or 0), subtotal)

    return OrderTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        discount=discount,
        total_amount=subtotal + delivery_fee + tax - discount,
    )

class OrderService:
    """Order service for business logic"""

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        state_machine: Optional[OrderStateMachine] = None,
        inventory: Optional[InventoryGate] = None
    ):
        self.db = db
        self.settings = settings or app_settings
        self.clock = clock
        self.state_machine = state_machine or order_state_machine
        self.inventory = inventory or InventoryGate(db, self.settings.STOCK_UPDATE_MAX_RETRIES)
        self.cart_service = CartService(db, settings=self.settings, clock=clock)

    async def _generate_order_number(self, now: datetime) -> str:
        """Random order number checked against existing orders"""
        for attempt in range(1, self.settings.ORDER_NUMBER_MAX_ATTEMPTS + 1):
            candidate = generate_order_number(self.settings.ORDER_NUMBER_PREFIX, now)
            taken = await self.db.scalar(select(Order.id).where(Order.order_number == candidate))
            if taken is None:
                return candidate
            logger.warning(f"Order number {candidate} already taken (attempt {attempt})")

        raise ConflictException(
            "Could not allocate an order number, please retry",
            error_code="ORDER_NUMBER_EXHAUSTED"
        )

    async def _insert_order(
        self,
        lines: List[Dict[str, Any]],
        totals: OrderTotals,
        checkout: Dict[str, Any],
        now: datetime
    ) -> Order:
        """
        Persist a pending order under a fresh order number.

        The pre-check in `_generate_order_number` can race with another
        checkout; a unique-index clash at commit rolls back and retries
        with a new number.

        Raises:
            ConflictException: No free order number within the attempt budget
        """
        for attempt in range(1, self.settings.ORDER_NUMBER_MAX_ATTEMPTS + 1):
            order = Order(
                order_number=await self._generate_order_number(now),
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                subtotal=totals.subtotal,
                delivery_fee=totals.delivery_fee,
                tax=totals.tax,
                discount=totals.discount,
                total_amount=totals.total_amount,
                estimated_delivery=now + timedelta(days=self.settings.ESTIMATED_DELIVERY_DAYS),
                paid_at=None,
                actual_delivery=None,
                cancellation_reason=None,
                items=[OrderItem(**line) for line in lines],
                status_history=[],
                **checkout,
            )
            order.record_status(OrderStatus.PENDING, "Order placed", now)
            self.db.add(order)
            try:
                await self.db.commit()
                return order
            except IntegrityError as exc:
                await self.db.rollback()
                if "order_number" not in str(exc.orig):
                    raise
                logger.warning(f"Order number {order.order_number} taken at commit (attempt {attempt})")

        raise ConflictException(
            "Could not allocate an order number, please retry",
            error_code="ORDER_NUMBER_EXHAUSTED"
        )

    async def _load_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundException("Order not found")
        return order

    async def create_order(
        self,
        user_id: uuid.UUID,
        shipping_address: Dict[str, Any],
        payment_method: PaymentMethod = PaymentMethod.COD,
        notes: Optional[str] = None,
        delivery_slot: Optional[Dict[str, Any]] = None
    ) -> Order:
        """
        Place an order from the user's cart

        The order is committed before stock is reserved. If a reservation
        fails, lines already reserved are released, the order is recorded
        as cancelled and the reservation error is re-raised. The cart is
        only cleared once every line is reserved.

        Raises:
            EmptyCartException: No cart or no items
            ProductUnavailableException: Product removed or inactive
            InsufficientStockException: Live stock below a line's quantity
            ConflictException: Order number or stock write contention
        """
        now = self.clock()

        cart = await self.cart_service.find_cart(user_id)
        if cart is None or not cart.items:
            raise EmptyCartException()

        # Re-validate every line against the live catalog
        products = await self.cart_service.load_products(line.product_id for line in cart.items)
        lines: List[Dict[str, Any]] = []
        for line in cart.items:
            product = products.get(line.product_id)
            if product is None or not product.is_active:
                raise ProductUnavailableException(product.name if product else None, line.product_id)
            if product.stock < line.quantity:
                raise InsufficientStockException(product.name, product.stock, product.id)

            lines.append({
                "product_id": product.id,
                "name": product.name,
                "sku": product.sku,
                "price": resolve_product_price(product, now),
                "quantity": line.quantity,
                "image": product.image or "",
            })

        totals = calculate_order_totals(
            [OrderItem(**line) for line in lines], cart.coupon_discount, self.settings
        )
        checkout = {
            "user_id": user_id,
            "payment_method": PaymentMethod(payment_method),
            "coupon_code": cart.coupon_code or "",
            "shipping_address": dict(shipping_address),
            "delivery_slot": delivery_slot,
            "notes": notes or "",
        }

        order = await self._insert_order(lines, totals, checkout, now)
        logger.info(f"Order {order.order_number} created for user {user_id}: total {order.total_amount}")

        reserved: List[OrderItem] = []
        try:
            for item in order.items:
                await self.inventory.reserve(item.product_id, item.quantity)
                await self.db.commit()
                reserved.append(item)
        except FreshCartException as exc:
            await self._compensate_failed_checkout(order, reserved, exc)
            raise

        cart = await self.cart_service.find_cart(user_id)
        if cart is not None:
            self.cart_service.clear_cart(cart)
        await self.db.commit()

        return order

    async def _compensate_failed_checkout(
        self,
        order: Order,
        reserved: List[OrderItem],
        error: FreshCartException
    ) -> None:
        """Undo a partially reserved checkout and cancel the order"""
        logger.warning(
            f"Stock reservation failed for order {order.order_number} "
            f"after {len(reserved)} line(s): {error.detail}"
        )

        await self._release_lines(order, reversed(reserved))

        reason = f"Stock reservation failed: {error.detail}"
        order.cancellation_reason = reason
        self.state_machine.transition(order, OrderStatus.CANCELLED, reason, self.clock())
        await self.db.commit()
        logger.info(f"Order {order.order_number} cancelled after failed reservation")

    async def get_order(self, order_id: uuid.UUID, actor: Dict[str, Any]) -> Order:
        """
        Get order details

        Raises:
            NotFoundException: If order not found
            ForbiddenException: If actor is neither the owner nor an admin
        """
        order = await self._load_order(order_id)

        if order.user_id != actor["id"] and not is_admin(actor):
            raise ForbiddenException("Not authorized to view this order")

        return order

    async def list_user_orders(
        self,
        user_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """The user's orders, newest first"""
        query = select(Order).where(Order.user_id == user_id)
        if status:
            query = query.where(Order.status == OrderStatus(status))

        query = query.order_by(Order.created_at.desc(), Order.id)
        return await paginate(self.db, query, page, limit)

    async def list_all_orders(
        self,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> Dict[str, Any]:
        """Every order, for administrators"""
        column = SORT_FIELDS.get(sort_by)
        if column is None:
            raise ValidationException(f"Cannot sort orders by '{sort_by}'")

        query = select(Order)
        if status:
            query = query.where(Order.status == OrderStatus(status))

        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = query.order_by(ordering, Order.id)
        return await paginate(self.db, query, page, limit)

    async def update_status(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        note: Optional[str] = None
    ) -> Order:
        """
        Move an order along its lifecycle (admin)

        A move to cancelled goes through the cancellation path so that
        reserved stock is returned.

        Raises:
            NotFoundException: If order not found
            InvalidTransitionException: If the move is not allowed
        """
        order = await self._load_order(order_id)
        new_status = OrderStatus(new_status)

        if not self.state_machine.can_transition(order.status, new_status):
            raise InvalidTransitionException(order.status, new_status)

        if new_status == OrderStatus.CANCELLED:
            return await self._cancel(order, note or "Cancelled by admin")

        previous = order.status
        self.state_machine.transition(order, new_status, note, self.clock())
        await self.db.commit()

        logger.info(f"Order {order.order_number}: {previous.value} -> {new_status.value}")
        return order

    async def cancel_order(
        self,
        order_id: uuid.UUID,
        actor: Dict[str, Any],
        reason: Optional[str] = None
    ) -> Order:
        """
        Cancel order and return its stock

        Raises:
            NotFoundException: If order not found
            ForbiddenException: If actor is neither the owner nor an admin
            UncancellableStateException: Out for delivery, delivered or cancelled
        """
        order = await self._load_order(order_id)

        if order.user_id != actor["id"] and not is_admin(actor):
            raise ForbiddenException("Not authorized to cancel this order")

        return await self._cancel(order, reason or "Cancelled by user")

    async def _cancel(self, order: Order, reason: str) -> Order:
        self.state_machine.cancel(order, reason, self.clock())

        await self._release_lines(order, order.items)

        await self.db.commit()
        logger.info(f"Order {order.order_number} cancelled: {reason}")
        return order

    async def _release_lines(self, order: Order, items: Iterable[OrderItem]) -> None:
        """Return each line's stock; one line failing does not stop the others"""
        for item in items:
            try:
                async with self.db.begin_nested():
                    await self.inventory.release(item.product_id, item.quantity)
            except ConflictException:
                logger.warning(
                    f"Skipped restoring {item.quantity} of {item.product_id} "
                    f"for order {order.order_number}"
                )
            except SQLAlchemyError:
                logger.exception(
                    f"Store error restoring {item.quantity} of {item.product_id} "
                    f"for order {order.order_number}"
                )

    async def reorder(self, order_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, Any]:
        """
        Copy a past order's items into the user's cart at current prices

        Unavailable products are skipped and reported, never fatal.

        Raises:
            NotFoundException: If order not found
            ForbiddenException: If the order belongs to someone else
        """
        order = await self._load_order(order_id)
        if order.user_id != user_id:
            raise ForbiddenException("Not authorized")

        cart = await self.cart_service.get_cart(user_id)
        products = await self.cart_service.load_products(item.product_id for item in order.items)
        now = self.clock()

        added_count = 0
        unavailable_items = []
        for item in order.items:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                unavailable_items.append({
                    "product_id": item.product_id,
                    "name": item.name,
                    "reason": "no longer available",
                })
                continue

            quantity = min(item.quantity, product.stock)
            if quantity <= 0:
                unavailable_items.append({
                    "product_id": item.product_id,
                    "name": item.name,
                    "reason": "out of stock",
                })
                continue

            self.cart_service.add_or_merge(cart, product, quantity, now)
            added_count += 1

        await self.db.commit()
        logger.info(
            f"Reorder of {order.order_number}: {added_count} added, "
            f"{len(unavailable_items)} unavailable"
        )

        return {"added_count": added_count, "unavailable_items": unavailable_items}
