"""
User service: registration, login, profile and admin removal.
"""

from typing import Optional

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from barter.models.booking import Booking
from barter.models.item import Item
from barter.models.user import User, Role
from barter.schemas.user import UserCreate, UserLogin, ProfileResponse, ProfileUpdate, BookerProfile
from barter.core.config import get_settings
from barter.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from barter.core.security import hash_password, verify_password, create_access_token
from barter.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def register_user(db: AsyncSession, user_data: UserCreate, role: Role = Role.USER) -> User:
    """
    Register a new user with hashed password and the starting points balance.
    Raises 409 if username, email or phone number is already in use.
    """
    result = await db.execute(
        select(User).where(
            or_(
                User.username == user_data.username,
                User.email == user_data.email,
                User.phone_number == user_data.phone_number,
            )
        )
    )
    existing = result.scalars().first()
    if existing:
        if existing.username == user_data.username:
            reason, detail = "username_exists", "Username already taken"
        elif existing.email == user_data.email:
            reason, detail = "email_exists", "Email already registered"
        else:
            reason, detail = "phone_exists", "Phone number already registered"
        logger.warning("registration_failed", reason=reason, username=user_data.username)
        raise ConflictError(detail)

    user = User(
        username=user_data.username,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        name=user_data.name,
        address=user_data.address,
        phone_number=user_data.phone_number,
        role=role,
        points=settings.INITIAL_POINTS,
    )
    db.add(user)
    await db.flush()
    await db.commit()

    logger.info("user_registered", user_id=user.id, username=user.username, role=role.value)
    return user


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role.value})


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.username == login_data.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", username=login_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = issue_token(user)
    logger.info("user_logged_in", user_id=user.id)
    return token


async def get_profile(db: AsyncSession, user_id: int) -> ProfileResponse:
    user = await get_user(db, user_id)

    items_count = (
        await db.execute(select(func.count(Item.id)).where(Item.owner_id == user_id))
    ).scalar() or 0
    active_bookings_count = (
        await db.execute(
            select(func.count(Booking.id)).where(
                Booking.booker_id == user_id, Booking.is_active.is_(True)
            )
        )
    ).scalar() or 0

    return ProfileResponse(
        **BookerProfile.model_validate(user).model_dump(),
        role=user.role,
        points=user.points,
        items_count=items_count,
        active_bookings_count=active_bookings_count,
    )


async def update_profile(db: AsyncSession, user_id: int, profile_data: ProfileUpdate) -> ProfileResponse:
    user = await get_user(db, user_id)

    taken = await db.execute(
        select(User.email, User.phone_number).where(
            User.id != user_id,
            or_(User.email == profile_data.email, User.phone_number == profile_data.phone_number),
        )
    )
    clash = taken.first()
    if clash:
        if clash.email == profile_data.email:
            raise ConflictError("Email is already in use by another account")
        raise ConflictError("Phone number is already in use by another account")

    user.email = profile_data.email
    user.name = profile_data.name
    user.address = profile_data.address
    user.phone_number = profile_data.phone_number
    await db.commit()

    logger.info("profile_updated", user_id=user_id)
    return await get_profile(db, user_id)


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Remove a user. Refused while the user still owns items or appears as
    booker on any booking, since booking history is kept for both parties.
    """
    await get_user(db, user_id)

    owns_items = (
        await db.execute(select(Item.id).where(Item.owner_id == user_id).limit(1))
    ).first() is not None
    if owns_items:
        raise InvalidOperationError("User still owns items")

    has_bookings = (
        await db.execute(select(Booking.id).where(Booking.booker_id == user_id).limit(1))
    ).first() is not None
    if has_bookings:
        raise InvalidOperationError("User has bookings on record")

    await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    logger.info("user_deleted", user_id=user_id)


async def ensure_admin(
    db: AsyncSession,
    username: Optional[str],
    password: Optional[str],
    email: Optional[str],
) -> Optional[User]:
    """Create the bootstrap admin account if configured and absent."""
    if not (username and password and email):
        return None

    result = await db.execute(select(User).where(User.username == username))
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    admin = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        name="Administrator",
        address="-",
        phone_number=f"admin-{username}"[:20],
        role=Role.ADMIN,
        points=settings.INITIAL_POINTS,
    )
    db.add(admin)
    await db.commit()
    logger.info("admin_bootstrapped", user_id=admin.id, username=username)
    return admin
