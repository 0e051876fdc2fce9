"""
Offset pagination for the list endpoints.

Every paginated route returns the same envelope: ``items`` plus
``total``, ``page``, ``page_size``, ``total_pages``, ``has_next`` and
``has_previous``.
"""
from typing import Any, Dict, Optional, Sequence, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


def clamp_page(page: int, page_size: int) -> Tuple[int, int, int]:
    """Return (page, page_size, offset) with both inputs forced into range"""
    page = max(1, page)
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    return page, page_size, (page - 1) * page_size


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 10,
    count_query: Optional[Select] = None
) -> Dict[str, Any]:
    """
    Run one page of ``query``.

    ``count_query`` should carry the same filters as ``query``; when it is
    omitted the total is counted over ``query`` itself with ordering removed.
    """
    page, page_size, offset = clamp_page(page, page_size)

    if count_query is None:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    result = await db.execute(query.offset(offset).limit(page_size))
    return create_paginated_response(result.scalars().all(), total, page, page_size)


def create_paginated_response(items: Sequence[Any], total: int, page: int, page_size: int) -> Dict[str, Any]:
    # An empty result still reports one (empty) page
    total_pages = max(1, -(-total // page_size))
    return {
        "items": list(items),
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
