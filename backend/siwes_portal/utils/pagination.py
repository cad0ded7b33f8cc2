"""
Pagination helpers shared by the list endpoints.
"""
from typing import Any, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


def page_offset(page: int, limit: int) -> int:
    return (max(1, page) - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if total > 0 else 1


async def count_rows(db: AsyncSession, query: Select) -> int:
    """Count the rows a query would return, ignoring ordering/paging"""
    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    return (await db.scalar(count_stmt)) or 0


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    limit: int = 10,
    count_query: Optional[Select] = None
) -> dict:
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        Dictionary with items, total, page, limit, total_pages, has_next, has_previous
    """
    page = max(1, page)
    limit = max(1, min(MAX_PAGE_SIZE, limit))

    if count_query is not None:
        total = (await db.scalar(count_query)) or 0
    else:
        total = await count_rows(db, query)

    result = await db.execute(query.offset(page_offset(page, limit)).limit(limit))
    items = result.scalars().all()

    return create_paginated_response(items, total, page, limit)


def create_paginated_response(items: List[Any], total: int, page: int, limit: int) -> dict:
    pages = total_pages(total, limit)
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": pages,
        "has_next": page < pages,
        "has_previous": page > 1
    }
