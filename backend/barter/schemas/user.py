"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from barter.models.user import Role


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=50)
    phone_number: str = Field(..., min_length=3, max_length=20)


class UserLogin(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: Role
    points: int
    registered_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserContact(BaseModel):
    """What a booker gets to see of an item's owner: enough to arrange the trade."""
    id: int
    name: str
    email: str
    phone_number: str

    model_config = {"from_attributes": True}


class BookerProfile(BaseModel):
    id: int
    username: str
    email: str
    name: str
    address: str
    phone_number: str
    registered_at: datetime

    model_config = {"from_attributes": True}


class ProfileResponse(BookerProfile):
    role: Role
    points: int
    items_count: int
    active_bookings_count: int


class ProfileUpdate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=50)
    phone_number: str = Field(..., min_length=3, max_length=20)
