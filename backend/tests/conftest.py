"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own SQLite database file and Redis is disabled, so the
suite needs no external services. Settings are read once at import time,
hence the environment is set before anything from `ticketing` is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_bootstrap.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from ticketing.main import app
from ticketing.db.base import Base
from ticketing.db.session import get_db
from ticketing.core.security import Identity, create_token_for_user, hash_password
from ticketing.models import Category, Event, User


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh SQLite file per test; NullPool so no connection outlives its loop."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ticketing_test.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Independent sessions, one per simulated worker."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


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


async def make_user(db: AsyncSession, email: str, role: str) -> User:
    user = User(
        email=email,
        hashed_password=hash_password("testpassword123"),
        first_name=role.capitalize(),
        last_name="Tester",
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "test@example.com", "user")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other@example.com", "user")


@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await make_user(db_session, "organizer@example.com", "organizer")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", "admin")


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}


def identity_of(user: User) -> Identity:
    return Identity(id=user.id, email=user.email, role=user.role)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest.fixture
def organizer_headers(organizer: User) -> dict:
    return headers_for(organizer)


@pytest.fixture
def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> Category:
    category = Category(name="Concerts", description="Live music")
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


async def make_event(
    db: AsyncSession,
    category: Category,
    organizer: User,
    *,
    title: str = "Test Concert",
    available_tickets: int = 100,
    price: str = "50.00",
    status: str = "active",
    days_ahead: int = 30,
    is_featured: bool = False,
) -> Event:
    event = Event(
        title=title,
        description=f"{title} description",
        location="Test Venue",
        event_date=datetime.now(timezone.utc) + timedelta(days=days_ahead),
        price=Decimal(price),
        available_tickets=available_tickets,
        status=status,
        is_featured=is_featured,
        category_id=category.id,
        organizer_id=organizer.id,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, category: Category, organizer: User) -> Event:
    """Active event: 100 tickets at 50.00."""
    return await make_event(db_session, category, organizer)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, category: Category, organizer: User) -> Event:
    """Active event with only 10 tickets left."""
    return await make_event(db_session, category, organizer, title="Small Club Night", available_tickets=10)


@pytest_asyncio.fixture
async def cancelled_event(db_session: AsyncSession, category: Category, organizer: User) -> Event:
    return await make_event(db_session, category, organizer, title="Called Off", status="cancelled")


async def available_tickets(session_factory, event_id: int) -> int:
    """Read the counter through a fresh session, bypassing any identity map."""
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        return event.available_tickets
