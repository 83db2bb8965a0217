"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite file (aiosqlite). The HTTP client opens one
session per request, like production, so concurrent requests really do
race each other through the reservation store.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LISTING_LOCK_BACKEND", "local")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from stayhub.main import app
from stayhub.db.base import Base
from stayhub.db.session import get_db
from stayhub.core.security import hash_password
from stayhub.models.user import User
from stayhub.models.listing import Listing
from stayhub.services.auth_service import issue_token


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh database file per test; NullPool gives every session its own connection."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'stayhub_test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose DB dependency opens a fresh test session per request."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, name: str, is_host: bool) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password("testpassword123"),
        is_host=is_host,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def host_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "host@example.com", "Hannah Host", is_host=True)


@pytest_asyncio.fixture
async def other_host(db_session: AsyncSession) -> User:
    """A host who owns no listings."""
    return await _create_user(db_session, "newhost@example.com", "Nico Newhost", is_host=True)


@pytest_asyncio.fixture
async def guest_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "guest@example.com", "Gary Guest", is_host=False)


@pytest_asyncio.fixture
async def other_guest(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", "Olive Other", is_host=False)


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def host_headers(host_user: User) -> dict:
    return bearer(host_user)


@pytest.fixture
def guest_headers(guest_user: User) -> dict:
    return bearer(guest_user)


@pytest.fixture
def other_guest_headers(other_guest: User) -> dict:
    return bearer(other_guest)


@pytest.fixture
def other_host_headers(other_host: User) -> dict:
    return bearer(other_host)


async def _create_listing(db: AsyncSession, host: User, **overrides) -> Listing:
    fields = dict(
        title="Seaside Cottage",
        description="A quiet cottage a short walk from the beach.",
        price=Decimal("100.00"),
        address="1 Harbour Road",
        city="Lisbon",
        country="Portugal",
        images=["https://img.example.com/cottage-1.jpg", "https://img.example.com/cottage-2.jpg"],
        amenities=["wifi", "kitchen"],
        max_guests=4,
        bedrooms=2,
        bathrooms=1,
        host_id=host.id,
    )
    fields.update(overrides)
    listing = Listing(**fields)
    db.add(listing)
    await db.commit()
    await db.refresh(listing)
    return listing


@pytest_asyncio.fixture
async def listing(db_session: AsyncSession, host_user: User) -> Listing:
    """Listing priced at 100 per night, owned by host_user."""
    return await _create_listing(db_session, host_user)


@pytest_asyncio.fixture
async def second_listing(db_session: AsyncSession, host_user: User) -> Listing:
    return await _create_listing(
        db_session,
        host_user,
        title="Mountain Cabin",
        description="Wood-fired cabin with a view over the valley.",
        price=Decimal("250.00"),
        address="Alpine Way 7",
        city="Chamonix",
        country="France",
        max_guests=8,
    )


@pytest.fixture
def base_day() -> date:
    """A check-in day safely in the future regardless of timezone."""
    return date.today() + timedelta(days=30)
