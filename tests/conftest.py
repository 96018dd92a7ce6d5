"""Pytest fixtures for testing."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from bookapp.core.codes import now_ms
from bookapp.core.config import Settings
from bookapp.core.database import Database, get_db
from bookapp.main import create_app
from bookapp.models.base import Base
from bookapp.models.invitation import Invitation

DAY_MS = 86_400_000


@pytest.fixture()
def database_url(tmp_path) -> str:
    """Database for one test.

    TEST_DATABASE_URL points the suite at a real server (e.g. Postgres);
    otherwise each test gets its own SQLite file.
    """
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture()
def settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        database_url=database_url,
        environment="development",
        internal_api_token=None,
    )


@pytest_asyncio.fixture(scope="function")
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create all tables before each test and drop them after."""
    test_engine = create_async_engine(database_url, echo=False, poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture()
def database(engine: AsyncEngine) -> Database:
    return Database(engine)


@pytest_asyncio.fixture(scope="function")
async def db(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Test database session."""
    async with database.sessionmaker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(
    settings: Settings, database: Database, db: AsyncSession
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client sharing the test session with the app.

    Args:
        db: Test database session

    Yields:
        AsyncClient configured for testing
    """
    app = create_app(settings, database=database)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def pending_invitation(db: AsyncSession) -> Invitation:
    """Invitation for org-A that expires a day from now."""
    now = now_ms()
    invitation = Invitation(
        code="pend1234",
        org_id="org-A",
        expires=now + DAY_MS,
        created_by="admin-1",
        created_at=now,
    )
    db.add(invitation)
    await db.commit()
    return invitation


@pytest_asyncio.fixture
async def expired_invitation(db: AsyncSession) -> Invitation:
    """Invitation for org-A that expired a second ago and was never used."""
    now = now_ms()
    invitation = Invitation(
        code="expd1234",
        org_id="org-A",
        expires=now - 1000,
        created_by="admin-1",
        created_at=now - DAY_MS,
    )
    db.add(invitation)
    await db.commit()
    return invitation
