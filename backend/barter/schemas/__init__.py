from barter.schemas.user import (
    UserCreate, UserResponse, UserLogin, Token, UserContact, BookerProfile,
    ProfileResponse, ProfileUpdate,
)
from barter.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from barter.schemas.media import MediaResponse
from barter.schemas.item import ItemCreate, ItemUpdate, ItemOwner, ItemResponse, ItemListResponse
from barter.schemas.booking import BookingCreate, BookingResponse, BookingDetails, BookingCancelResponse
from barter.schemas.points import PointsBalance, BuyPointsRequest, BuyPointsResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token", "UserContact", "BookerProfile",
    "ProfileResponse", "ProfileUpdate",
    "CategoryCreate", "CategoryUpdate", "CategoryResponse",
    "MediaResponse",
    "ItemCreate", "ItemUpdate", "ItemOwner", "ItemResponse", "ItemListResponse",
    "BookingCreate", "BookingResponse", "BookingDetails", "BookingCancelResponse",
    "PointsBalance", "BuyPointsRequest", "BuyPointsResponse",
]
