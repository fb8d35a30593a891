"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from barter.api.routes import auth, items, bookings, media, points, categories, profile, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(items.router)
api_router.include_router(bookings.router)
api_router.include_router(media.router)
api_router.include_router(points.router)
api_router.include_router(categories.router)
api_router.include_router(profile.router)
api_router.include_router(users.router)
