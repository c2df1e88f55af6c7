"""
Order schemas for request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
import datetime as dt
import uuid

from app.models.order import OrderStatus, PaymentMethod, PaymentStatus
from app.schemas.base import BaseSchema, Money, Pagination

class ShippingAddress(BaseModel):
    """Delivery address captured with the order"""
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., pattern=r"^\+?[0-9\-\s()]{7,20}$")
    street: str = Field(..., min_length=3, max_length=200)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=100)
    zip_code: str = Field(..., pattern=r"^[0-9A-Za-z\- ]{3,10}$")
    country: str = Field("USA", max_length=100)

    @field_validator("full_name", "street", "city", "state")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class DeliverySlot(BaseModel):
    date: dt.date
    time_slot: str = Field(..., min_length=3, max_length=50)

class OrderCreate(BaseModel):
    """Schema for placing an order from the current cart"""
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD
    delivery_slot: Optional[DeliverySlot] = None
    notes: str = Field("", max_length=500)

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=200)

class OrderCancelRequest(BaseModel):
    """Request to cancel order"""
    reason: Optional[str] = Field(None, max_length=300)

class OrderItemResponse(BaseSchema):
    """Line item snapshot taken when the order was placed"""
    product_id: uuid.UUID
    name: str
    sku: str
    price: Money
    quantity: int
    image: str
    line_total: Money

class StatusHistoryResponse(BaseSchema):
    status: OrderStatus
    note: str
    timestamp: datetime

class OrderResponse(BaseSchema):
    """Schema for order response"""
    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID

    # Status
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    paid_at: Optional[datetime] = None

    # Amounts
    subtotal: Money
    delivery_fee: Money
    tax: Money
    discount: Money
    coupon_code: str
    total_amount: Money

    # Shipping
    shipping_address: Dict[str, Any]
    delivery_slot: Optional[Dict[str, Any]] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None

    # Additional
    notes: str
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    items: List[OrderItemResponse]
    status_history: List[StatusHistoryResponse]
    total_items: int
    delivery_progress: int

class OrderSummaryResponse(BaseSchema):
    """Compact order view returned right after checkout"""
    id: uuid.UUID
    order_number: str
    total_amount: Money
    status: OrderStatus
    estimated_delivery: Optional[datetime] = None

class OrderListResponse(BaseModel):
    """Schema for paginated order list"""
    orders: List[OrderResponse]
    pagination: Pagination

class UnavailableItem(BaseModel):
    product_id: uuid.UUID
    name: str
    reason: str

class ReorderResponse(BaseModel):
    added_count: int
    unavailable_items: List[UnavailableItem]
