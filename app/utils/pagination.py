"""
Pagination utilities
"""

from typing import Any, Dict
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from .helpers import total_pages

class PaginationParams(BaseModel):
    """Pagination parameters"""
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(10, ge=1, le=100, description="Page size")

    @property
    def offset(self) -> int:
        """Calculate offset"""
        return (self.page - 1) * self.limit

async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    limit: int = 10
) -> Dict[str, Any]:
    """
    Paginate query results

    Args:
        db: Database session
        query: SQLAlchemy query, already filtered and ordered
        page: Page number (1-indexed)
        limit: Page size

    Returns:
        Dictionary with items and pagination data
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    params = PaginationParams(page=page, limit=limit)
    result = await db.execute(query.offset(params.offset).limit(params.limit))
    items = result.scalars().all()

    return {
        "items": items,
        "total": total,
        "page": params.page,
        "limit": params.limit,
        "pages": total_pages(total, params.limit)
    }
