"""
Media endpoints: multipart upload, listing and removal of item attachments.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.schemas.media import MediaResponse
from barter.services import media_service
from barter.services.cache_service import invalidate_listing_cache
from barter.core.config import get_settings
from barter.core.exceptions import InvalidOperationError
from barter.core.security import Actor, get_current_actor, get_optional_actor

settings = get_settings()
router = APIRouter(prefix="/media", tags=["Media"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


async def read_upload(file: UploadFile, limit: int) -> bytes:
    """Read an upload, giving up as soon as it exceeds `limit` bytes."""
    if file.size is not None and file.size > limit:
        raise InvalidOperationError("File is too large")

    chunks = []
    received = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        received += len(chunk)
        if received > limit:
            raise InvalidOperationError("File is too large")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/items/{item_id}", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def upload_media_endpoint(
    item_id: int,
    file: UploadFile = File(...),
    is_primary: bool = Form(False),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Attach an image or video to an item. The first upload becomes primary;
    `is_primary=true` moves the primary flag to this upload.
    """
    content = await read_upload(file, settings.MAX_UPLOAD_SIZE)
    media = await media_service.upload_media(
        db,
        item_id,
        actor,
        file_name=file.filename or "",
        content_type=file.content_type,
        content=content,
        is_primary=is_primary,
    )
    await invalidate_listing_cache()
    return media


@router.get("/items/{item_id}", response_model=list[MediaResponse])
async def list_media_endpoint(
    item_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    """Attachments of an item, primary first."""
    return await media_service.list_item_media(db, item_id, actor)


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media_endpoint(
    media_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await media_service.delete_media(db, media_id, actor)
    await invalidate_listing_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
