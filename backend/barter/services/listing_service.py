"""
Public listing of bookable items.

An item is listed iff it is approved and has no active booking. The
"no active booking" half is a correlated NOT EXISTS rather than a join,
so items with a long booking history do not fan out the row count.
"""

import math
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from barter.models.booking import Booking
from barter.models.item import Item
from barter.services.item_service import item_query


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def bookable_filter():
    has_active_booking = (
        select(Booking.id)
        .where(Booking.item_id == Item.id, Booking.is_active.is_(True))
        .exists()
    )
    return Item.is_approved.is_(True) & ~has_active_booking


async def list_approved_items(
    db: AsyncSession,
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Item], int, int]:
    """
    Returns (items, total_count, total_pages). Counts are taken over the
    filtered set before paging.
    """
    query = item_query().where(bookable_filter())

    if category_id is not None:
        query = query.where(Item.category_id == category_id)

    if search and search.strip():
        pattern = _like_pattern(search.strip())
        query = query.where(
            or_(
                Item.name.ilike(pattern, escape="\\"),
                Item.description.ilike(pattern, escape="\\"),
                Item.request.ilike(pattern, escape="\\"),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    items_query = (
        query
        .order_by(Item.created_at.desc(), Item.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(items_query)
    items = list(result.scalars().all())

    return items, total, math.ceil(total / page_size)
