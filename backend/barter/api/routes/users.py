"""
Admin user management.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.services import user_service
from barter.core.security import Actor, require_admin

router = APIRouter(prefix="/users", tags=["Users"])


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(
    user_id: int,
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Refused with 400 while the user owns items or has bookings on record."""
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
