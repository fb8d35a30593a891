"""
Item registry: create, edit, moderate and delete listings.

Listing an item costs points. The debit and the insert share one
transaction, so an item never exists without its point having been
spent, and a failed insert never eats a point.
"""

from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from barter.models.booking import Booking
from barter.models.category import Category
from barter.models.item import Item
from barter.models.media import Media
from barter.models.user import User
from barter.schemas.item import ItemCreate, ItemUpdate
from barter.core.config import get_settings
from barter.core.exceptions import NotFoundError, InvalidOperationError
from barter.core.metrics import record_item_event
from barter.core.security import Actor
from barter.core.logging import get_logger
from barter.services.authorization import ensure_capability
from barter.services.points_service import debit_points
from barter.services import storage

logger = get_logger(__name__)
settings = get_settings()


def item_query():
    """
    Base SELECT for items with the relationships every response needs.
    Bookings are loaded for `is_booked`; populate_existing keeps them fresh
    for items already in the session.
    """
    return (
        select(Item)
        .options(
            selectinload(Item.owner),
            selectinload(Item.category),
            selectinload(Item.media),
            selectinload(Item.bookings),
        )
        .execution_options(populate_existing=True)
    )


async def load_item(db: AsyncSession, item_id: int) -> Item:
    result = await db.execute(item_query().where(Item.id == item_id))
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    return item


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    if await db.get(Category, category_id) is None:
        raise NotFoundError(f"Category {category_id} not found")


async def create_item(db: AsyncSession, owner_id: int, item_data: ItemCreate) -> Item:
    """List a new item, debiting the owner's points. New items await approval."""
    if await db.get(User, owner_id) is None:
        raise NotFoundError("User not found")
    await _ensure_category(db, item_data.category_id)

    if not await debit_points(db, owner_id, settings.ITEM_LISTING_COST):
        logger.warning("item_create_refused", owner_id=owner_id, reason="insufficient_points")
        raise InvalidOperationError("Insufficient points to list an item")

    item = Item(
        owner_id=owner_id,
        category_id=item_data.category_id,
        name=item_data.name,
        description=item_data.description,
        request=item_data.request,
        is_approved=False,
    )
    db.add(item)
    try:
        await db.flush()
        await db.commit()
    except SQLAlchemyError:
        # Takes the uncommitted debit down with the failed insert
        await db.rollback()
        logger.error("item_create_failed", owner_id=owner_id, reason="insert_failed")
        raise

    record_item_event("created")
    logger.info("item_created", item_id=item.id, owner_id=owner_id, category_id=item.category_id)
    return await load_item(db, item.id)


async def get_item(db: AsyncSession, item_id: int, actor: Optional[Actor]) -> Item:
    """Approved items are public; pending ones only to their owner and admins."""
    item = await load_item(db, item_id)
    if not item.is_approved:
        ensure_capability(actor, item.owner_id)
    return item


async def update_item(db: AsyncSession, item_id: int, actor: Actor, item_data: ItemUpdate) -> Item:
    item = await load_item(db, item_id)
    ensure_capability(actor, item.owner_id)

    changes = item_data.model_dump(exclude_unset=True, exclude_none=True)
    if "category_id" in changes and changes["category_id"] != item.category_id:
        await _ensure_category(db, changes["category_id"])

    for field, value in changes.items():
        setattr(item, field, value)

    # Edits by the owner go back through moderation
    was_approved = item.is_approved
    if not actor.is_admin:
        item.is_approved = False

    await db.commit()

    record_item_event("updated")
    if was_approved and not item.is_approved:
        record_item_event("resubmitted")
    logger.info(
        "item_updated",
        item_id=item.id,
        fields=sorted(changes),
        by_admin=actor.is_admin,
        is_approved=item.is_approved,
    )
    return await load_item(db, item.id)


async def approve_item(db: AsyncSession, item_id: int) -> Item:
    """Admin approval. Approving an approved item is a successful no-op."""
    item = await load_item(db, item_id)
    if item.is_approved:
        logger.info("item_already_approved", item_id=item_id)
        return item

    item.is_approved = True
    await db.commit()

    record_item_event("approved")
    logger.info("item_approved", item_id=item_id)
    return await load_item(db, item_id)


async def delete_item(db: AsyncSession, item_id: int, actor: Actor) -> None:
    """
    Delete an item with its bookings and media.
    Dependents go first, explicitly, in one transaction; files are removed
    only after the rows are gone.
    """
    item = await load_item(db, item_id)
    ensure_capability(actor, item.owner_id)
    file_paths = [m.file_path for m in item.media]

    await db.execute(delete(Booking).where(Booking.item_id == item_id))
    await db.execute(delete(Media).where(Media.item_id == item_id))
    await db.execute(delete(Item).where(Item.id == item_id))
    await db.commit()

    for path in file_paths:
        await storage.delete_file(path)

    record_item_event("deleted")
    logger.info("item_deleted", item_id=item_id, media_removed=len(file_paths), by_admin=actor.is_admin)


async def list_user_items(db: AsyncSession, owner_id: int) -> list[Item]:
    result = await db.execute(
        item_query()
        .where(Item.owner_id == owner_id)
        .order_by(Item.created_at.desc(), Item.id.desc())
    )
    return list(result.scalars().all())


async def list_pending_items(db: AsyncSession) -> list[Item]:
    """Moderation queue, oldest first."""
    result = await db.execute(
        item_query()
        .where(Item.is_approved.is_(False))
        .order_by(Item.created_at.asc(), Item.id.asc())
    )
    return list(result.scalars().all())
