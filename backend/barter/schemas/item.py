"""
Pydantic schemas for item listing request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from barter.schemas.category import CategoryResponse
from barter.schemas.media import MediaResponse


class ItemOwner(BaseModel):
    """Who posted the item, as shown on its page."""
    id: int
    username: str
    name: str

    model_config = {"from_attributes": True}


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=500)
    category_id: int
    request: str = Field(..., min_length=1, max_length=500)


class ItemUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    category_id: Optional[int] = None
    request: Optional[str] = Field(None, min_length=1, max_length=500)


class ItemResponse(BaseModel):
    id: int
    owner_id: int
    category_id: int
    name: str
    description: str
    request: str
    is_approved: bool
    is_booked: bool = False
    created_at: datetime
    owner: Optional[ItemOwner] = None
    category: Optional[CategoryResponse] = None
    media: list[MediaResponse] = []

    model_config = {"from_attributes": True}


class ItemListResponse(BaseModel):
    items: list[ItemResponse]
    page: int
    page_size: int
    total_count: int
    total_pages: int
    cached: bool = False
