"""
Cart schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional, List
import uuid

from app.schemas.base import BaseSchema, Money

class CartItemAdd(BaseModel):
    """Schema for adding item to cart"""
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)

class CartItemUpdate(BaseModel):
    """Schema for updating cart item; zero removes the line"""
    product_id: uuid.UUID
    quantity: int = Field(..., ge=0)

class ApplyCouponRequest(BaseModel):
    """Request to apply coupon to cart"""
    code: str = Field(..., min_length=3, max_length=50)

class CartProductInfo(BaseSchema):
    id: uuid.UUID
    name: str
    sku: str
    price: Money
    discount_percentage: Money
    stock: int
    image: str
    in_stock: bool

class CartLineResponse(BaseSchema):
    id: uuid.UUID
    product: CartProductInfo
    quantity: int
    price_at_add: Money
    current_price: Money
    subtotal: Money

class CartResponse(BaseSchema):
    """Schema for complete cart response"""
    id: uuid.UUID
    items: List[CartLineResponse]
    total_items: int
    subtotal: Money
    coupon_code: Optional[str] = None
    coupon_discount: Money
    delivery_fee: Money
    amount_to_free_delivery: Money
    estimated_total: Money

class CouponResponse(BaseModel):
    coupon_code: str
    discount: Money

class CartCountResponse(BaseModel):
    count: int
