"""
Pytest configuration and fixtures.
"""

import os

# Settings are read at import time; provide test secrets before the app loads.
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.config import get_settings
from backend.app.core.database import Base, get_db
from backend.app.core.security import Profile, TokenPayload, get_token_service
from backend.app.services import user_service
from backend.app.services.password_service import hash_password

# Import all models to register them with Base.metadata
import backend.app.models  # noqa: F401

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory bound to a fresh in-memory database for a test.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database dependency overridden.
    """
    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def token_service():
    return get_token_service()


@pytest.fixture
async def seeded_admin(db_session: AsyncSession, settings):
    """The startup administrator (admin@mecone.com / admin123)."""
    await user_service.seed_admin_user(db_session, settings)
    return await user_service.get_user_by_email(db_session, settings.seed_admin_email)


@pytest.fixture
def make_user(db_session: AsyncSession, settings):
    """Factory creating an active user with a known password."""
    counter = {"n": 0}

    async def _make(profile: Profile = Profile.COORDINATOR, password: str = DEFAULT_PASSWORD, **fields):
        counter["n"] += 1
        defaults = {
            "email": f"{profile.value.lower()}{counter['n']}@mecone.com",
            "first_name": profile.value.title(),
            "last_name": f"Tester{counter['n']}",
            "profile": profile.value,
            "must_change_password": False,
        }
        defaults.update(fields)
        return await user_service.create_user(
            db_session,
            hashed_password=await hash_password(password, settings.bcrypt_rounds),
            **defaults,
        )

    return _make


@pytest.fixture
def auth_headers(token_service):
    """Bearer headers for an existing user, minted without a login round-trip."""
    def _headers(user) -> dict:
        tokens = token_service.issue_token_pair(
            TokenPayload(user_id=user.id, email=user.email, profile=user.profile)
        )
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _headers
