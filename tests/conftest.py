# File: tests/conftest.py
"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from peachrecon.api.auth import Actor, get_current_actor
from peachrecon.core.db import Base, get_db
from peachrecon.main import create_app

# Import all models
import peachrecon.models  # noqa: F401
from tests.factories import PropertyFactory, PropertyOwnerFactory

# In-memory sqlite by default; point at Postgres to exercise the asyncpg path
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

TEST_USER_ID = "7d9f5c1e-test-user"


def _create_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        return create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DATABASE_URL, echo=False)


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create fresh DB session for each test."""
    engine = _create_engine()
    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Provide session
    async with async_session_maker() as session:
        yield session
        await session.rollback()

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_actor() -> Actor:
    return Actor(user_id=TEST_USER_ID, email="reviewer@peachhaus.test", role="authenticated")


@pytest_asyncio.fixture
async def client(db_session, test_actor):
    """Create async test client with overridden DB and auth dependencies."""
    app = create_app()

    async def override_get_db():
        yield db_session

    async def override_get_current_actor():
        return test_actor

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = override_get_current_actor

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ac.test_actor = test_actor
        ac.db_session = db_session
        yield ac


@pytest_asyncio.fixture
async def unauthenticated_client(db_session: AsyncSession):
    """AsyncClient without the auth override (for testing bearer token handling)."""
    app = create_app()

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ac.db_session = db_session
        yield ac


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession):
    return await PropertyOwnerFactory.create(db_session)


@pytest_asyncio.fixture
async def live_property(db_session: AsyncSession, owner):
    """A live property billed at the default 15%."""
    return await PropertyFactory.create(db_session, owner=owner)
