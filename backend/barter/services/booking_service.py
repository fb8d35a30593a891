"""
Booking engine: at most one active booking per item.

CONCURRENCY STRATEGY: Database-enforced exclusivity
===================================================

Problem:
  Two users try to book the same item at the same moment.
  Both read "no active booking", both insert, both succeed.
  Result: the item is promised to two people.

Solution:
  A partial unique index on bookings(item_id) WHERE is_active.

  1. Check the item is approved and not the booker's own (cheap, ordered errors)
  2. Check for an active booking (fast path: most conflicts stop here)
  3. INSERT the booking and COMMIT
  4. If the INSERT violates uq_bookings_item_active, somebody won the race
     between steps 2 and 3 -> roll back and answer 409, never 500

  The pre-check in step 2 is only an optimisation. Correctness rests
  entirely on the index, so no row locks or SERIALIZABLE isolation are
  needed and readers are never blocked.

Cancellation is a conditional UPDATE ... WHERE is_active, so two racing
cancels cannot both "succeed" and stamp two different cancelled_at values.
"""

import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from barter.db.base import utcnow
from barter.models.booking import Booking
from barter.models.item import Item
from barter.schemas.booking import BookingDetails
from barter.schemas.user import BookerProfile, UserContact
from barter.core.exceptions import NotFoundError, InvalidOperationError, ConflictError
from barter.core.metrics import record_booking_attempt, record_cancellation, booking_latency
from barter.core.security import Actor
from barter.core.logging import get_logger
from barter.services.authorization import ensure_capability, BOOKING_PARTIES

logger = get_logger(__name__)

ACTIVE_BOOKING_INDEX = "uq_bookings_item_active"


def _booking_query():
    return select(Booking).options(
        selectinload(Booking.item).selectinload(Item.owner),
        selectinload(Booking.booker),
    )


def _is_active_booking_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # PostgreSQL names the index; SQLite names the column
    return ACTIVE_BOOKING_INDEX in message or "bookings.item_id" in message


def booking_details(booking: Booking) -> BookingDetails:
    return BookingDetails(
        id=booking.id,
        item_id=booking.item_id,
        booker_id=booking.booker_id,
        is_active=booking.is_active,
        booked_at=booking.booked_at,
        cancelled_at=booking.cancelled_at,
        item_name=booking.item.name,
        booker=BookerProfile.model_validate(booking.booker),
        item_owner=UserContact.model_validate(booking.item.owner),
    )


async def load_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        _booking_query()
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


async def create_booking(db: AsyncSession, item_id: int, booker_id: int) -> Booking:
    """
    Book an item for `booker_id`.

    Errors, in order: 404 item missing or unapproved, 400 own item,
    409 item already actively booked (pre-check or lost race).
    """
    started = time.perf_counter()

    result = await db.execute(
        select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()

    if not item or not item.is_approved:
        record_booking_attempt("not_found")
        raise NotFoundError("Item not available for booking")

    if item.owner_id == booker_id:
        record_booking_attempt("own_item")
        raise InvalidOperationError("You cannot book your own item")

    active = await db.execute(
        select(Booking.id)
        .where(Booking.item_id == item_id, Booking.is_active.is_(True))
        .limit(1)
    )
    if active.first() is not None:
        record_booking_attempt("conflict")
        logger.info("booking_conflict", item_id=item_id, booker_id=booker_id, reason="already_booked")
        raise ConflictError("Item is already booked")

    booking = Booking(
        item_id=item_id,
        booker_id=booker_id,
        booked_at=utcnow(),
        is_active=True,
    )
    db.add(booking)
    try:
        await db.flush()
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not _is_active_booking_violation(e):
            raise
        record_booking_attempt("race_conflict")
        logger.warning("booking_conflict", item_id=item_id, booker_id=booker_id, reason="lost_race")
        raise ConflictError("Item is already booked")

    booking_latency.observe(time.perf_counter() - started)
    record_booking_attempt("success")
    logger.info("booking_created", booking_id=booking.id, item_id=item_id, booker_id=booker_id)
    return await load_booking(db, booking.id)


async def cancel_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    """
    Cancel an active booking. The booker, the item's owner and admins may cancel.
    Errors, in order: 404 missing, 400 already cancelled, 403 not a party.
    """
    booking = await load_booking(db, booking_id)

    if not booking.is_active:
        raise InvalidOperationError("Booking is already cancelled")

    cap = ensure_capability(
        actor,
        booking.item.owner_id,
        booking.booker_id,
        allowed=BOOKING_PARTIES,
    )

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.is_active.is_(True))
        .values(is_active=False, cancelled_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Cancelled by someone else since we loaded it
        raise InvalidOperationError("Booking is already cancelled")
    await db.commit()

    record_cancellation(cap.value)
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        item_id=booking.item_id,
        cancelled_by=actor.user_id,
        capability=cap.value,
    )
    return await load_booking(db, booking_id)


async def get_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    """Visible to the same parties who may cancel it."""
    booking = await load_booking(db, booking_id)
    ensure_capability(actor, booking.item.owner_id, booking.booker_id, allowed=BOOKING_PARTIES)
    return booking


async def list_bookings_as_booker(db: AsyncSession, user_id: int) -> list[Booking]:
    """Everything the user has booked, active or not."""
    result = await db.execute(
        _booking_query()
        .where(Booking.booker_id == user_id)
        .order_by(Booking.booked_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_bookings_as_owner(db: AsyncSession, user_id: int) -> list[Booking]:
    """Bookings placed on items the user owns."""
    result = await db.execute(
        _booking_query()
        .join(Item, Booking.item_id == Item.id)
        .where(Item.owner_id == user_id)
        .order_by(Booking.booked_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_all_bookings(db: AsyncSession, active_only: Optional[bool] = None) -> list[Booking]:
    query = _booking_query()
    if active_only is not None:
        query = query.where(Booking.is_active.is_(active_only))
    result = await db.execute(query.order_by(Booking.booked_at.desc(), Booking.id.desc()))
    return list(result.scalars().all())
