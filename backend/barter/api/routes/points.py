"""
Points endpoints: balance and package purchase.

Payment itself happens at the external gateway; this endpoint only applies
the credit for a package id the gateway has confirmed.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.schemas.points import PointsBalance, BuyPointsRequest, BuyPointsResponse
from barter.services import points_service
from barter.core.security import get_current_user_id

router = APIRouter(prefix="/points", tags=["Points"])


@router.get("/balance", response_model=PointsBalance)
async def get_balance_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return PointsBalance(points=await points_service.get_balance(db, user_id))


@router.post("/buy", response_model=BuyPointsResponse)
async def buy_points_endpoint(
    request: BuyPointsRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    credited, balance = await points_service.buy_package(db, user_id, request.package_id)
    return BuyPointsResponse(message="Points added successfully", credited=credited, new_balance=balance)
