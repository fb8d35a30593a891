"""
Points ledger.

Balances are only ever changed with single conditional UPDATE statements,
never read-modify-write in Python, so concurrent debits cannot overdraw.
debit_points/credit_points do not commit: the caller bundles them with the
state change they pay for and commits once.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from barter.models.user import User
from barter.core.config import get_settings
from barter.core.exceptions import NotFoundError, InvalidOperationError
from barter.core.metrics import record_points, points_debit_refused
from barter.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def get_balance(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(User.points).where(User.id == user_id))
    points = result.scalar_one_or_none()
    if points is None:
        raise NotFoundError("User not found")
    return points


async def debit_points(db: AsyncSession, user_id: int, amount: int = settings.ITEM_LISTING_COST) -> bool:
    """
    Debit `amount` points if the balance covers it.
    Returns False (and changes nothing) when it does not.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.points >= amount)
        .values(points=User.points - amount)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        points_debit_refused.inc()
        logger.info("points_debit_refused", user_id=user_id, amount=amount)
        return False

    record_points("debit", amount)
    logger.info("points_debited", user_id=user_id, amount=amount)
    return True


async def credit_points(db: AsyncSession, user_id: int, amount: int) -> None:
    if amount <= 0:
        raise InvalidOperationError("Credit amount must be positive")

    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + amount)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        raise NotFoundError("User not found")

    record_points("credit", amount)
    logger.info("points_credited", user_id=user_id, amount=amount)


async def buy_package(db: AsyncSession, user_id: int, package_id: str) -> tuple[int, int]:
    """
    Apply a points package confirmed by the purchase gateway.
    Returns (credited, new_balance).
    """
    amount = settings.POINT_PACKAGES.get(package_id)
    if amount is None:
        raise InvalidOperationError("Invalid package ID")

    await credit_points(db, user_id, amount)
    await db.commit()

    return amount, await get_balance(db, user_id)
