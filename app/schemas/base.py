"""Shared schema building blocks and the response envelope"""

from pydantic import BaseModel, ConfigDict, PlainSerializer
from typing import Annotated, Generic, Optional, TypeVar
from decimal import Decimal

T = TypeVar("T")

# Decimal internally, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope"""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    code: Optional[str] = None

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int

def ok(data=None, message: Optional[str] = None) -> dict:
    """Successful envelope as a plain dict"""
    return {"success": True, "message": message, "data": data}
