"""
Authorization guard shared by items, media and bookings.

Every read and write check in the service layer goes through `capability`,
so "who may view a booking" and "who may cancel a booking" cannot drift
apart. The guard is pure: callers pass in ids they already loaded.

Precedence when a caller matches several roles: OWNER, then BOOKER, then ADMIN.
"""

import enum
from typing import Iterable, Optional

from barter.core.exceptions import ForbiddenError
from barter.core.logging import get_logger
from barter.core.security import Actor

logger = get_logger(__name__)


class Capability(str, enum.Enum):
    OWNER = "owner"
    BOOKER = "booker"
    ADMIN = "admin"
    NONE = "none"


# Who may act on a resource owned by someone else
OWNER_OR_ADMIN = frozenset({Capability.OWNER, Capability.ADMIN})
BOOKING_PARTIES = frozenset({Capability.OWNER, Capability.BOOKER, Capability.ADMIN})


def capability(
    actor_id: Optional[int],
    actor_is_admin: bool,
    resource_owner_id: int,
    secondary_party_id: Optional[int] = None,
) -> Capability:
    if actor_id is not None and actor_id == resource_owner_id:
        return Capability.OWNER
    if actor_id is not None and secondary_party_id is not None and actor_id == secondary_party_id:
        return Capability.BOOKER
    if actor_is_admin:
        return Capability.ADMIN
    return Capability.NONE


def capability_of(
    actor: Optional[Actor],
    resource_owner_id: int,
    secondary_party_id: Optional[int] = None,
) -> Capability:
    if actor is None:
        return Capability.NONE
    return capability(actor.user_id, actor.is_admin, resource_owner_id, secondary_party_id)


def ensure_capability(
    actor: Optional[Actor],
    resource_owner_id: int,
    secondary_party_id: Optional[int] = None,
    allowed: Iterable[Capability] = OWNER_OR_ADMIN,
) -> Capability:
    """Return the caller's capability, or raise ForbiddenError if it is not in `allowed`."""
    cap = capability_of(actor, resource_owner_id, secondary_party_id)
    if cap not in allowed:
        logger.warning(
            "authorization_denied",
            actor_id=actor.user_id if actor else None,
            resource_owner_id=resource_owner_id,
            secondary_party_id=secondary_party_id,
        )
        raise ForbiddenError()
    return cap
