"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

class FreshCartException(HTTPException):
    """Base exception class for FreshCart application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.data = data

class BadRequestException(FreshCartException):
    """400 Bad Request"""

    def __init__(
        self,
        detail: str,
        error_code: str = "BAD_REQUEST",
        data: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
            data=data
        )

class UnauthorizedException(FreshCartException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(FreshCartException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(FreshCartException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(FreshCartException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(FreshCartException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

# Business logic exceptions
class InsufficientStockException(BadRequestException):
    """Product stock insufficient"""

    def __init__(self, product_name: str, available: int, product_id: Any = None):
        super().__init__(
            detail=f'Insufficient stock for "{product_name}". Only {available} available.',
            error_code="INSUFFICIENT_STOCK",
            data={
                "product_id": str(product_id) if product_id is not None else None,
                "product_name": product_name,
                "available": available,
            }
        )
        self.product_name = product_name
        self.available = available

class ProductUnavailableException(BadRequestException):
    """Product inactive or removed from the catalog"""

    def __init__(self, product_name: Optional[str] = None, product_id: Any = None):
        super().__init__(
            detail=f'Product "{product_name or "Unknown"}" is no longer available',
            error_code="PRODUCT_UNAVAILABLE",
            data={
                "product_id": str(product_id) if product_id is not None else None,
                "product_name": product_name,
            }
        )

class EmptyCartException(BadRequestException):
    """Checkout or coupon attempted on an empty cart"""

    def __init__(self, detail: str = "Your cart is empty"):
        super().__init__(detail=detail, error_code="EMPTY_CART")

class InvalidCouponException(BadRequestException):
    """Coupon code not recognised"""

    def __init__(self, detail: str = "Invalid coupon code"):
        super().__init__(detail=detail, error_code="INVALID_COUPON")

class CouponMinimumNotMetException(BadRequestException):
    """Cart subtotal below the coupon floor"""

    def __init__(self, minimum: Any):
        super().__init__(
            detail=f"Minimum order amount of ${minimum} required for this coupon",
            error_code="COUPON_MINIMUM_NOT_MET",
            data={"minimum_order": str(minimum)}
        )

class InvalidTransitionException(BadRequestException):
    """Order status change not permitted"""

    def __init__(self, current_status: Any, requested_status: Any):
        current = getattr(current_status, "value", current_status)
        requested = getattr(requested_status, "value", requested_status)
        super().__init__(
            detail=f"Cannot change status from '{current}' to '{requested}'",
            error_code="INVALID_TRANSITION",
            data={"current_status": current, "requested_status": requested}
        )

class UncancellableStateException(BadRequestException):
    """Order cannot be cancelled"""

    def __init__(self, current_status: Any):
        current = getattr(current_status, "value", current_status)
        super().__init__(
            detail=f"Cannot cancel order with status '{current}'",
            error_code="UNCANCELLABLE_STATE",
            data={"current_status": current}
        )

# Response envelope handlers
def error_response(
    status_code: int,
    message: str,
    code: str,
    data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Build the uniform error envelope"""
    content: Dict[str, Any] = {"success": False, "message": message, "code": code}
    if data:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content, headers=headers)

async def freshcart_exception_handler(request: Request, exc: FreshCartException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.detail}")
    return error_response(
        exc.status_code,
        exc.detail,
        exc.error_code or "ERROR",
        data=exc.data,
        headers=exc.headers
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    codes = {
        status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    }
    return error_response(
        exc.status_code,
        str(exc.detail),
        codes.get(exc.status_code, "HTTP_ERROR"),
        headers=getattr(exc, "headers", None)
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ". ".join(messages) or "Validation failed",
        "VALIDATION_ERROR"
    )

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Server Error",
        "SERVER_ERROR"
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Attach envelope handlers for domain, HTTP and validation errors"""
    app.add_exception_handler(FreshCartException, freshcart_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
