"""
Category endpoints. Reads are public; writes are admin only.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from barter.services import category_service
from barter.core.security import Actor, require_admin

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("/", response_model=list[CategoryResponse])
async def list_categories_endpoint(db: AsyncSession = Depends(get_db)):
    return await category_service.list_categories(db)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category_endpoint(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.get_category(db, category_id)


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    data: CategoryCreate,
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.create_category(db, data.name)


@router.put("/{category_id}", response_model=CategoryResponse)
async def rename_category_endpoint(
    category_id: int,
    data: CategoryUpdate,
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.rename_category(db, category_id, data.name)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_endpoint(
    category_id: int,
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Refused with 400 while any item still uses the category."""
    await category_service.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
