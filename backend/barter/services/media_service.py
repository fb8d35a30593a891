"""
Media attachments and the single-primary rule.

Every item with media has exactly one primary:
  - an upload becomes primary when asked to, or when the item has no primary yet
  - an explicit primary upload clears the old primary in the same transaction
  - deleting the primary promotes the oldest remaining attachment

The partial unique index on (item_id) WHERE is_primary rejects the
losing side of a concurrent swap. The short transaction is retried a few
times before giving up with 409.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from barter.models.item import Item
from barter.models.media import Media, ALLOWED_EXTENSIONS, VIDEO_EXTENSIONS
from barter.core.config import get_settings
from barter.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from barter.core.metrics import media_uploads
from barter.core.security import Actor
from barter.core.logging import get_logger
from barter.services.authorization import ensure_capability
from barter.services import storage

logger = get_logger(__name__)
settings = get_settings()

MAX_RETRY_ATTEMPTS = 3
PRIMARY_MEDIA_INDEX = "uq_media_item_primary"


def _is_primary_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # PostgreSQL names the index; SQLite names the column
    return PRIMARY_MEDIA_INDEX in message or "media.item_id" in message


def media_type_for(extension: str) -> str:
    return "Video" if extension in VIDEO_EXTENSIONS else "Image"


async def _get_item(db: AsyncSession, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    return item


async def _attach(
    db: AsyncSession,
    item_id: int,
    file_name: str,
    file_path: str,
    content_type: str,
    file_size: int,
    media_type: str,
    is_primary: bool,
) -> Media:
    if is_primary:
        await db.execute(
            update(Media)
            .where(Media.item_id == item_id, Media.is_primary.is_(True))
            .values(is_primary=False)
        )
        make_primary = True
    else:
        current = await db.execute(
            select(Media.id).where(Media.item_id == item_id, Media.is_primary.is_(True)).limit(1)
        )
        make_primary = current.first() is None

    media = Media(
        item_id=item_id,
        file_name=file_name,
        file_path=file_path,
        content_type=content_type,
        file_size=file_size,
        media_type=media_type,
        is_primary=make_primary,
    )
    db.add(media)
    await db.flush()
    return media


async def upload_media(
    db: AsyncSession,
    item_id: int,
    actor: Actor,
    file_name: str,
    content_type: Optional[str],
    content: bytes,
    is_primary: bool = False,
) -> Media:
    item = await _get_item(db, item_id)
    ensure_capability(actor, item.owner_id)

    if not content:
        raise InvalidOperationError("File is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise InvalidOperationError("File is too large")
    extension = Path(file_name or "").suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise InvalidOperationError("Invalid file type")

    media_type = media_type_for(extension)
    file_path = await storage.save_file(item_id, extension, content)

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        try:
            media = await _attach(
                db,
                item_id,
                file_name=file_name,
                file_path=file_path,
                content_type=content_type or "application/octet-stream",
                file_size=len(content),
                media_type=media_type,
                is_primary=is_primary,
            )
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if not _is_primary_violation(e):
                await storage.delete_file(file_path)
                raise
            # Another upload claimed primary between our check and insert
            logger.info("media_primary_retry", item_id=item_id, attempt=attempt)
            continue
        except SQLAlchemyError:
            await db.rollback()
            await storage.delete_file(file_path)
            raise

        media_uploads.labels(media_type=media_type).inc()
        logger.info(
            "media_uploaded",
            media_id=media.id,
            item_id=item_id,
            media_type=media_type,
            is_primary=media.is_primary,
            attempt=attempt,
        )
        return media

    await storage.delete_file(file_path)
    logger.warning("media_upload_conflict", item_id=item_id)
    raise ConflictError("Media was changed concurrently, please retry")


async def delete_media(db: AsyncSession, media_id: int, actor: Actor) -> None:
    result = await db.execute(
        select(Media).options(selectinload(Media.item)).where(Media.id == media_id)
    )
    media = result.scalar_one_or_none()
    if not media:
        raise NotFoundError("Media not found")
    ensure_capability(actor, media.item.owner_id)

    item_id, file_path, was_primary = media.item_id, media.file_path, media.is_primary
    await db.execute(delete(Media).where(Media.id == media_id))

    promoted_id = None
    if was_primary:
        successor = (
            await db.execute(
                select(Media)
                .where(Media.item_id == item_id)
                .order_by(Media.uploaded_at.asc(), Media.id.asc())
                .limit(1)
            )
        ).scalar_one_or_none()
        if successor:
            successor.is_primary = True
            promoted_id = successor.id

    await db.commit()
    await storage.delete_file(file_path)

    logger.info("media_deleted", media_id=media_id, item_id=item_id, promoted_media_id=promoted_id)


async def list_item_media(db: AsyncSession, item_id: int, actor: Optional[Actor]) -> list[Media]:
    item = await _get_item(db, item_id)
    if not item.is_approved:
        ensure_capability(actor, item.owner_id)

    result = await db.execute(
        select(Media)
        .where(Media.item_id == item_id)
        .order_by(Media.is_primary.desc(), Media.uploaded_at.asc(), Media.id.asc())
    )
    return list(result.scalars().all())
