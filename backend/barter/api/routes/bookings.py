"""
Booking endpoints. Exclusivity (one active booking per item) is enforced
by the database; a lost race surfaces here as 409, never 500.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from barter.db.session import get_db
from barter.schemas.booking import BookingCreate, BookingDetails, BookingCancelResponse
from barter.services import booking_service
from barter.services.booking_service import booking_details
from barter.services.cache_service import invalidate_listing_cache
from barter.core.security import Actor, get_current_actor, require_admin

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingDetails, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Book an approved item owned by someone else.
    The response carries the owner's contact details for arranging the trade.
    """
    booking = await booking_service.create_booking(db, booking_data.item_id, actor.user_id)
    # The item just left the public listing
    await invalidate_listing_cache()
    return booking_details(booking)


@router.get("/mine", response_model=list[BookingDetails])
async def list_my_bookings(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Bookings the caller made, active and cancelled."""
    bookings = await booking_service.list_bookings_as_booker(db, actor.user_id)
    return [booking_details(b) for b in bookings]


@router.get("/on-my-items", response_model=list[BookingDetails])
async def list_bookings_on_my_items(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Bookings other users made on the caller's items."""
    bookings = await booking_service.list_bookings_as_owner(db, actor.user_id)
    return [booking_details(b) for b in bookings]


@router.get("/", response_model=list[BookingDetails])
async def list_all_bookings(
    active: Optional[bool] = Query(None),
    _admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every booking in the system. Admin only."""
    bookings = await booking_service.list_all_bookings(db, active_only=active)
    return [booking_details(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingDetails)
async def get_booking_endpoint(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking(db, booking_id, actor)
    return booking_details(booking)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking. Allowed for the booker, the item's owner and admins."""
    booking = await booking_service.cancel_booking(db, booking_id, actor)
    # The item is bookable again
    await invalidate_listing_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        is_active=booking.is_active,
        cancelled_at=booking.cancelled_at,
    )
