"""Utilities package"""

from .helpers import utcnow, generate_order_number, total_pages
from .pagination import paginate, PaginationParams

__all__ = [
    "utcnow",
    "generate_order_number",
    "total_pages",
    "paginate",
    "PaginationParams",
]
