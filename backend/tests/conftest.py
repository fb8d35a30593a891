"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite file (or TEST_DATABASE_URL when set) with
the schema created from the models and dropped afterwards. The HTTP
client shares the test's session, so fixtures and requests see the same
data. Concurrency tests open their own sessions from `session_factory`.
"""

import os
import tempfile
from dataclasses import dataclass
from typing import AsyncGenerator

# Must be set before the app (and its cached settings) is imported
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="barter-uploads-"))

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from barter.main import app
from barter.db.base import Base
from barter.db.session import get_db
from barter.core.security import Actor, create_access_token, hash_password
from barter.models.category import Category
from barter.models.item import Item
from barter.models.user import User, Role

TEST_PASSWORD = "testpassword123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@dataclass
class Account:
    """A seeded user. Plain values only, so they survive session rollbacks."""

    id: int
    username: str
    role: Role
    headers: dict

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role)


def auth_headers_for(user_id: int, role: Role = Role.USER) -> dict:
    token = create_access_token(data={"sub": str(user_id), "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    engine = create_async_engine(url, echo=False, poolclass=NullPool, connect_args=connect_args)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_account(
    db: AsyncSession,
    username: str,
    role: Role = Role.USER,
    points: int = 2,
) -> Account:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=TEST_PASSWORD_HASH,
        name=username.title(),
        address="1 Test Street",
        phone_number=f"555-{username}"[:20],
        role=role,
        points=points,
    )
    db.add(user)
    await db.commit()
    return Account(id=user.id, username=username, role=role, headers=auth_headers_for(user.id, role))


async def create_item(
    db: AsyncSession,
    owner_id: int,
    category_id: int,
    name: str = "Road bike",
    description: str = "Steel frame, 21 gears",
    request: str = "A guitar",
    approved: bool = True,
) -> int:
    item = Item(
        owner_id=owner_id,
        category_id=category_id,
        name=name,
        description=description,
        request=request,
        is_approved=approved,
    )
    db.add(item)
    await db.commit()
    return item.id


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> Account:
    return await create_account(db_session, "owner")


@pytest_asyncio.fixture
async def booker(db_session: AsyncSession) -> Account:
    return await create_account(db_session, "booker")


@pytest_asyncio.fixture
async def stranger(db_session: AsyncSession) -> Account:
    return await create_account(db_session, "stranger")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Account:
    return await create_account(db_session, "admin", role=Role.ADMIN)


@pytest_asyncio.fixture
async def category_id(db_session: AsyncSession) -> int:
    category = Category(name="Sports & Outdoors")
    db_session.add(category)
    await db_session.commit()
    return category.id


@pytest_asyncio.fixture
async def approved_item(db_session: AsyncSession, owner: Account, category_id: int) -> int:
    return await create_item(db_session, owner.id, category_id)


@pytest_asyncio.fixture
async def pending_item(db_session: AsyncSession, owner: Account, category_id: int) -> int:
    return await create_item(db_session, owner.id, category_id, name="Tent", approved=False)
