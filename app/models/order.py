"""Order model with status history"""

from sqlalchemy import Column, String, Numeric, Integer, Enum, ForeignKey, Index, Text, DateTime, JSON, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .base import Base, TimestampedModel, UUIDModel, ReprMixin

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

class PaymentMethod(str, enum.Enum):
    CARD = "card"
    UPI = "upi"
    COD = "cod"
    WALLET = "wallet"

DELIVERY_PROGRESS = {
    OrderStatus.PENDING: 10,
    OrderStatus.CONFIRMED: 25,
    OrderStatus.PROCESSING: 40,
    OrderStatus.SHIPPED: 60,
    OrderStatus.OUT_FOR_DELIVERY: 85,
    OrderStatus.DELIVERED: 100,
    OrderStatus.CANCELLED: 0,
}

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Order(Base, TimestampedModel, UUIDModel, ReprMixin):
    """Customer order; line items and totals are frozen at creation"""

    __tablename__ = "orders"

    # Order identification
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # Status
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        default=PaymentStatus.PENDING,
        nullable=False
    )

    # Payment
    payment_method = Column(
        Enum(PaymentMethod, name="payment_method", values_callable=_enum_values),
        nullable=False
    )
    paid_at = Column(DateTime, nullable=True)

    # Amounts
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    coupon_code = Column(String(50), nullable=False, default="")
    total_amount = Column(Numeric(10, 2), nullable=False)

    # Shipping snapshot
    shipping_address = Column(JSON, nullable=False)
    delivery_slot = Column(JSON, nullable=True)

    # Delivery
    estimated_delivery = Column(DateTime, nullable=True)
    actual_delivery = Column(DateTime, nullable=True)

    # Additional info
    notes = Column(Text, nullable=False, default="")
    cancellation_reason = Column(String(500), nullable=True)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderStatusHistory.position"
    )

    __table_args__ = (
        Index("idx_orders_user_status", "user_id", "status"),
        Index("idx_orders_created_status", "created_at", "status"),
    )

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def delivery_progress(self) -> int:
        return DELIVERY_PROGRESS.get(self.status, 0)

    def record_status(self, status: OrderStatus, note: str, at: datetime) -> "OrderStatusHistory":
        """
        Move to status and append a history entry.

        Callers are responsible for validating the transition; see
        OrderStateMachine.transition.
        """
        self.status = status
        entry = OrderStatusHistory(
            status=status,
            note=note or "",
            timestamp=at,
            position=len(self.status_history)
        )
        self.status_history.append(entry)

        if status == OrderStatus.DELIVERED:
            self.actual_delivery = at
            if self.payment_method == PaymentMethod.COD:
                self._mark_paid(at)
        elif status == OrderStatus.CONFIRMED:
            self._settle_prepaid_on_confirmation(at)

        return entry

    def _settle_prepaid_on_confirmation(self, at: datetime) -> None:
        # No gateway callback exists yet: non-COD orders count as paid once confirmed.
        if self.payment_method != PaymentMethod.COD:
            self._mark_paid(at)

    def _mark_paid(self, at: datetime) -> None:
        self.payment_status = PaymentStatus.PAID
        self.paid_at = at

class OrderItem(Base, UUIDModel, ReprMixin):
    """Individual items within an order (snapshot at time of order)"""

    __tablename__ = "order_items"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), nullable=False)

    name = Column(String(255), nullable=False)
    sku = Column(String(50), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(500), nullable=False, default="")

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_positive_order_quantity"),
        Index("idx_order_items_order_product", "order_id", "product_id"),
    )

    @property
    def line_total(self):
        return self.price * self.quantity

class OrderStatusHistory(Base, UUIDModel, ReprMixin):
    """Append-only log of order status changes"""

    __tablename__ = "order_status_history"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False
    )
    note = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False)
    position = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="status_history")

    __table_args__ = (
        Index("idx_order_status_history_order", "order_id", "position"),
    )
