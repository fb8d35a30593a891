"""
Item endpoints: public listing (Redis-cached), owner CRUD and admin moderation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.schemas.item import ItemCreate, ItemUpdate, ItemResponse, ItemListResponse
from barter.services import item_service
from barter.services.listing_service import list_approved_items
from barter.services.cache_service import (
    get_listing_generation,
    make_listing_key,
    get_cached_listing,
    set_cached_listing,
    invalidate_listing_cache,
)
from barter.core.config import get_settings
from barter.core.security import Actor, get_current_actor, get_optional_actor, require_admin
from barter.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/items", tags=["Items"])


@router.get("/", response_model=ItemListResponse)
async def list_items_endpoint(
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
):
    """
    Browse bookable items: approved and not currently booked.
    Results are cached in Redis and invalidated on any item or booking change.
    """
    # Taken before the query so a page built from pre-change data is
    # stored under a generation that is already retired
    generation = await get_listing_generation()
    key = None if generation is None else make_listing_key(generation, category_id, search, page, page_size)

    cached = await get_cached_listing(key) if key else None
    if cached:
        logger.info("items_list_cache_hit", page=page)
        cached["cached"] = True
        return ItemListResponse(**cached)

    items, total, total_pages = await list_approved_items(db, category_id, search, page, page_size)

    response_data = {
        "items": [ItemResponse.model_validate(i).model_dump() for i in items],
        "page": page,
        "page_size": page_size,
        "total_count": total,
        "total_pages": total_pages,
        "cached": False,
    }
    if key:
        await set_cached_listing(key, response_data)

    return ItemListResponse(**response_data)


@router.get("/mine", response_model=list[ItemResponse])
async def list_my_items(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """All of the caller's items, approved or pending."""
    return await item_service.list_user_items(db, actor.user_id)


@router.get("/pending", response_model=list[ItemResponse])
async def list_pending_items(
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Moderation queue. Admin only."""
    return await item_service.list_pending_items(db)


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item_endpoint(
    item_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    return await item_service.get_item(db, item_id, actor)


@router.post("/", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item_endpoint(
    item_data: ItemCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """List a new item. Costs points; the item stays hidden until an admin approves it."""
    item = await item_service.create_item(db, actor.user_id, item_data)
    await invalidate_listing_cache()
    return item


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item_endpoint(
    item_id: int,
    item_data: ItemUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit an item. Edits by anyone but an admin send the item back to moderation."""
    item = await item_service.update_item(db, item_id, actor, item_data)
    await invalidate_listing_cache()
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item_endpoint(
    item_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await item_service.delete_item(db, item_id, actor)
    await invalidate_listing_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{item_id}/approve", response_model=ItemResponse)
async def approve_item_endpoint(
    item_id: int,
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await item_service.approve_item(db, item_id)
    await invalidate_listing_cache()
    return item
