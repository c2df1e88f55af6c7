"""Cart router: line management and coupon application"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Any
import uuid

from app.core.database import get_db
from app.core.security import get_current_user
from app.services.coupon_service import CouponResolver, get_coupon_resolver
from app.schemas.base import ApiResponse, ok
from .schemas import (
    ApplyCouponRequest,
    CartCountResponse,
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    CouponResponse,
)
from .services import CartService

router = APIRouter()

def get_cart_service(
    db: AsyncSession = Depends(get_db),
    coupon_resolver: CouponResolver = Depends(get_coupon_resolver)
) -> CartService:
    return CartService(db, coupon_resolver=coupon_resolver)

async def _cart_payload(service: CartService, user_id: uuid.UUID) -> CartResponse:
    return CartResponse.model_validate(await service.get_cart_view(user_id))

@router.get("", response_model=ApiResponse[CartResponse])
async def get_cart(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Get the current user's cart, creating it if needed"""
    return ok(await _cart_payload(service, current_user["id"]))

@router.get("/count", response_model=ApiResponse[CartCountResponse])
async def get_cart_count(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Badge count for the storefront header; never creates a cart"""
    return ok(CartCountResponse(count=await service.count_items(current_user["id"])))

@router.post("/add", response_model=ApiResponse[CartResponse])
async def add_to_cart(
    item_data: CartItemAdd,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    await service.add_item(current_user["id"], item_data.product_id, item_data.quantity)
    return ok(await _cart_payload(service, current_user["id"]), "Item added to cart")

@router.put("/update", response_model=ApiResponse[CartResponse])
async def update_cart_item(
    update_data: CartItemUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Update cart item quantity (0 removes the item)"""
    await service.update_quantity(current_user["id"], update_data.product_id, update_data.quantity)
    return ok(await _cart_payload(service, current_user["id"]), "Cart updated")

@router.delete("/remove/{product_id}", response_model=ApiResponse[CartResponse])
async def remove_from_cart(
    product_id: uuid.UUID,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    await service.remove_item(current_user["id"], product_id)
    return ok(await _cart_payload(service, current_user["id"]), "Item removed from cart")

@router.delete("/clear", response_model=ApiResponse[CartResponse])
async def clear_cart(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove every item and any applied coupon"""
    await service.clear(current_user["id"])
    return ok(await _cart_payload(service, current_user["id"]), "Cart cleared")

@router.post("/apply-coupon", response_model=ApiResponse[CouponResponse])
async def apply_coupon(
    coupon_data: ApplyCouponRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    quote = await service.apply_coupon(current_user["id"], coupon_data.code)
    return ok(
        CouponResponse(coupon_code=quote.code, discount=quote.discount_amount),
        "Coupon applied successfully"
    )

@router.delete("/remove-coupon", response_model=ApiResponse[CartResponse])
async def remove_coupon(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    await service.remove_coupon(current_user["id"])
    return ok(await _cart_payload(service, current_user["id"]), "Coupon removed")
