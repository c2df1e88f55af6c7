"""
Helper utilities
"""

import secrets
from datetime import datetime, timezone

def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime

    All timestamps are stored naive-UTC so SQLite and PostgreSQL
    round-trip them identically.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)

def generate_order_number(prefix: str, now: datetime) -> str:
    """
    Generate a human-readable order number

    Args:
        prefix: Store prefix, e.g. "FC-"
        now: Creation time

    Returns:
        Order number such as FC-20261004271593
    """
    suffix = str(secrets.randbelow(10 ** 8)).zfill(8)
    return f"{prefix}{now.year}{now.month:02d}{suffix}"

def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for total items"""
    return (total + limit - 1) // limit if limit > 0 else 0
