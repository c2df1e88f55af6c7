"""Product model referenced by carts and orders"""

from sqlalchemy import Column, String, Numeric, Integer, Boolean, DateTime, CheckConstraint, Index

from .base import Base, TimestampedModel, UUIDModel, VersionedModel, ReprMixin

class Product(Base, TimestampedModel, UUIDModel, VersionedModel, ReprMixin):
    """
    Catalog product

    Owned by the catalog service; the checkout engine only reads it and
    writes `stock` through the inventory gate, bumping `version` on every
    write.
    """

    __tablename__ = "products"

    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    discount_valid_until = Column(DateTime, nullable=True)

    # Inventory
    stock = Column(Integer, nullable=False, default=0)

    image = Column(String(500), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_non_negative_price"),
        CheckConstraint("stock >= 0", name="check_non_negative_stock"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="check_discount_percentage_range"
        ),
        Index("idx_products_active_stock", "is_active", "stock"),
    )

    @property
    def is_in_stock(self) -> bool:
        return self.stock > 0
