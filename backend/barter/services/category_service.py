"""
Category CRUD. Deletion is restricted while any item references the category.
"""

from typing import Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from barter.models.category import Category
from barter.models.item import Item
from barter.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from barter.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORIES = (
    "Electronics",
    "Furniture",
    "Books",
    "Clothing",
    "Sports & Outdoors",
    "Toys & Games",
    "Home & Garden",
    "Other",
)


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name.asc()))
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError("Category already exists")


async def create_category(db: AsyncSession, name: str) -> Category:
    name = name.strip()
    await _ensure_unique_name(db, name)

    category = Category(name=name)
    db.add(category)
    await db.flush()
    await db.commit()

    logger.info("category_created", category_id=category.id, name=name)
    return category


async def rename_category(db: AsyncSession, category_id: int, name: str) -> Category:
    category = await get_category(db, category_id)
    name = name.strip()
    await _ensure_unique_name(db, name, exclude_id=category_id)

    category.name = name
    await db.commit()

    logger.info("category_renamed", category_id=category_id, name=name)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await get_category(db, category_id)

    in_use = await db.execute(select(func.count(Item.id)).where(Item.category_id == category_id))
    item_count = in_use.scalar() or 0
    if item_count:
        raise InvalidOperationError("Cannot delete category with associated items")

    await db.execute(delete(Category).where(Category.id == category_id))
    await db.commit()
    logger.info("category_deleted", category_id=category_id)


async def seed_categories(db: AsyncSession) -> int:
    """Insert any missing default categories. Returns how many were added."""
    existing = {name for (name,) in (await db.execute(select(Category.name))).all()}
    missing = [name for name in DEFAULT_CATEGORIES if name not in existing]
    for name in missing:
        db.add(Category(name=name))
    if missing:
        await db.commit()
        logger.info("categories_seeded", added=len(missing))
    return len(missing)
