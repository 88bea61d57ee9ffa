"""
Test configuration and fixtures for the QuickLink API.

Every test gets its own in-memory SQLite database. Rate limiting, remote
GeoIP lookups and the background reconciler are switched off through the
environment before the application is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["GEOIP_API_ENABLED"] = "false"
os.environ["RECONCILE_ENABLED"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import quicklink.models  # noqa: E402, F401
from quicklink.core.database import Base, build_engine, get_async_session  # noqa: E402
from quicklink.main import app  # noqa: E402
from factories import FakeGeoIP  # noqa: E402


@pytest.fixture
async def engine():
    """Fresh in-memory database with all tables created."""
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory):
    """A database session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """
    HTTP client bound to the app with the session dependency overridden.
    Each request gets its own session on the test database.
    """

    async def override_get_async_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def fake_geoip():
    return FakeGeoIP(country="NO", city="Oslo")
