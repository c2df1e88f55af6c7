"""
Shopping cart model
One cart per user; items reference products by id only
"""

from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, Index, UniqueConstraint, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal

from .base import Base, TimestampedModel, UUIDModel, ReprMixin

class Cart(Base, TimestampedModel, UUIDModel, ReprMixin):
    """Per-user shopping cart"""

    __tablename__ = "carts"

    user_id = Column(Uuid(as_uuid=True), nullable=False, unique=True, index=True)

    # Applied coupon
    coupon_code = Column(String(50), nullable=True)
    coupon_discount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.created_at"
    )

    def find_item(self, product_id):
        """Return the line for product_id, if any"""
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def remove_coupon(self) -> None:
        self.coupon_code = None
        self.coupon_discount = Decimal("0")

    def clear(self) -> None:
        """Empty all lines and drop any applied coupon"""
        self.items.clear()
        self.remove_coupon()

class CartItem(Base, TimestampedModel, UUIDModel, ReprMixin):
    """Shopping cart items"""

    __tablename__ = "cart_items"

    cart_id = Column(Uuid(as_uuid=True), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)

    # Weak reference into the catalog
    product_id = Column(Uuid(as_uuid=True), nullable=False)

    # Quantity and price
    quantity = Column(Integer, nullable=False, default=1)
    price_at_add = Column(Numeric(10, 2), nullable=False)  # Price at time of adding

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_product"),
        CheckConstraint("quantity > 0", name="check_positive_cart_quantity"),
        Index("idx_cart_items_product", "product_id"),
    )
