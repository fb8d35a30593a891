"""
Identity plumbing: password hashing, JWT issuance and the request-level
dependencies that turn a bearer token into an Actor.

The core trusts the token's claims (user id and role) and never goes back
to the credential store to re-validate them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from barter.core.config import get_settings
from barter.core.exceptions import ForbiddenError
from barter.core.logging import bind_actor
from barter.models.user import Role

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as asserted by the identity provider."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Actor:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = int(payload["sub"])
        role = Role(payload.get("role", Role.USER.value))
    except (jwt.PyJWTError, KeyError, ValueError, TypeError):
        raise _unauthorized()
    return Actor(user_id=user_id, role=role)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    actor = decode_access_token(credentials.credentials)
    bind_actor(actor.user_id, actor.role.value)
    return actor


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Actor]:
    """Like get_current_actor, but anonymous callers get None instead of a 401."""
    if credentials is None:
        return None
    actor = decode_access_token(credentials.credentials)
    bind_actor(actor.user_id, actor.role.value)
    return actor


async def get_current_user_id(actor: Actor = Depends(get_current_actor)) -> int:
    return actor.user_id


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError()
    return actor
