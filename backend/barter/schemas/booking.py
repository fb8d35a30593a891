"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from barter.schemas.user import BookerProfile, UserContact


class BookingCreate(BaseModel):
    item_id: int


class BookingResponse(BaseModel):
    id: int
    item_id: int
    booker_id: int
    is_active: bool
    booked_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingDetails(BookingResponse):
    """Booking joined with what each party needs to arrange the trade."""
    item_name: str
    booker: BookerProfile
    item_owner: UserContact


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    is_active: bool
    cancelled_at: Optional[datetime]
