"""
Order API routes
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Literal, Optional
import uuid

from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_user, require_admin
from app.models.order import OrderStatus
from app.schemas.base import ApiResponse, Pagination, ok
from .schemas import (
    OrderCancelRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummaryResponse,
    ReorderResponse,
)
from .services import OrderService

router = APIRouter()

def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)

def _order_list(result: Dict[str, Any]) -> OrderListResponse:
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in result["items"]],
        pagination=Pagination(
            current_page=result["page"],
            total_pages=result["pages"],
            total_orders=result["total"],
        ),
    )

@router.post(
    "",
    response_model=ApiResponse[OrderSummaryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Place order",
    description="Create an order from the current cart"
)
async def create_order(
    order_data: OrderCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    order = await service.create_order(
        user_id=current_user["id"],
        shipping_address=order_data.shipping_address.model_dump(),
        payment_method=order_data.payment_method,
        notes=order_data.notes,
        delivery_slot=order_data.delivery_slot.model_dump(mode="json") if order_data.delivery_slot else None
    )
    return ok(OrderSummaryResponse.model_validate(order), "Order placed successfully")

@router.get("/my", response_model=ApiResponse[OrderListResponse], summary="List my orders")
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=50),
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    result = await service.list_user_orders(current_user["id"], status=status, page=page, limit=limit)
    return ok(_order_list(result))

@router.get("/all", response_model=ApiResponse[OrderListResponse], summary="List all orders")
async def list_all_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: Literal["created_at", "total_amount", "order_number", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    admin: Dict[str, Any] = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """Admin view over every order"""
    result = await service.list_all_orders(
        status=status,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order
    )
    return ok(_order_list(result))

@router.get("/{order_id}", response_model=ApiResponse[OrderResponse], summary="Get order")
async def get_order(
    order_id: uuid.UUID,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    order = await service.get_order(order_id, current_user)
    return ok(OrderResponse.model_validate(order))

@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse], summary="Update order status")
async def update_order_status(
    order_id: uuid.UUID,
    update_data: OrderStatusUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    order = await service.update_status(order_id, update_data.status, update_data.note)
    return ok(OrderResponse.model_validate(order), "Order status updated")

@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderResponse], summary="Cancel order")
async def cancel_order(
    order_id: uuid.UUID,
    cancel_data: Optional[OrderCancelRequest] = None,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """Cancel an order that has not left for delivery; stock is returned"""
    reason = cancel_data.reason if cancel_data else None
    order = await service.cancel_order(order_id, current_user, reason)
    return ok(OrderResponse.model_validate(order), "Order cancelled successfully")

@router.post("/{order_id}/reorder", response_model=ApiResponse[ReorderResponse], summary="Reorder")
async def reorder(
    order_id: uuid.UUID,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    result = await service.reorder(order_id, current_user["id"])
    message = (
        f"{result['added_count']} item(s) added to cart"
        if result["added_count"] > 0
        else "No items could be added"
    )
    return ok(ReorderResponse(**result), message)
