"""Test configuration and fixtures."""

import os

from cryptography.fernet import Fernet

# Configure the app for tests before any social_accounts module reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTP_SECRET"] = Fernet.generate_key().decode()
os.environ["BCRYPT_ROUNDS"] = "4"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import StaticPool  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from social_accounts.api.deps import SESSION_COOKIE_NAME, create_session_token  # noqa: E402
from social_accounts.api.main import app  # noqa: E402
from social_accounts.database import get_db  # noqa: E402
from social_accounts.models import Account, Base, User  # noqa: E402
from social_accounts.models.base import utcnow  # noqa: E402
from social_accounts.users.service import save_or_raise  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"

# Create test engine with static pool to share connection
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for tests."""
    async with TestSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Override the dependency
app.dependency_overrides[get_db] = override_get_db

UserFactory = Callable[..., Awaitable[User]]


async def create_user(
    session: AsyncSession,
    email: str = "alice@example.com",
    username: str = "alice",
    confirmed: bool = True,
    locked: bool = False,
    **attrs: object,
) -> User:
    """Create and commit a user with an account."""
    user = User(
        email=email,
        password=TEST_PASSWORD,
        account=Account(username=username, locked=locked),
        **attrs,
    )
    if confirmed:
        user.confirmed_at = utcnow()
    await save_or_raise(session, user)
    await session.commit()
    return user


@pytest.fixture(autouse=True)
async def setup_database() -> AsyncGenerator[None, None]:
    """Set up and tear down database for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return TestSessionLocal


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_factory(db_session: AsyncSession) -> UserFactory:
    """Create committed users in the test session."""

    async def factory(**kwargs: Any) -> User:
        return await create_user(db_session, **kwargs)

    return factory


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a confirmed test user."""
    return await create_user(db_session)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create a confirmed administrator."""
    return await create_user(db_session, email="admin@example.com", username="admin", admin=True)


@pytest.fixture
def auth_cookies(test_user: User) -> dict[str, str]:
    """Get authentication cookies for test user."""
    return {SESSION_COOKIE_NAME: create_session_token(test_user.id)}


@pytest.fixture
def admin_cookies(admin_user: User) -> dict[str, str]:
    """Get authentication cookies for the administrator."""
    return {SESSION_COOKIE_NAME: create_session_token(admin_user.id)}
