"""
Pytest configuration and fixtures.
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace.auth.jwt import COOKIE_NAME, create_access_token
from marketplace.db import get_db
from marketplace.main import app
from marketplace.models import Base, Service, User, UserRole
from marketplace.utils.password import hash_password


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Hashing is slow; one real hash shared by the login tests
PASSWORD = "correct-horse"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


async def create_user(db: AsyncSession, username: str, role: UserRole, **kwargs) -> User:
    user = User(
        username=username,
        password_hash=kwargs.pop("password_hash", PASSWORD_HASH),
        role=role,
        display_name=kwargs.pop("display_name", username.title()),
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


async def create_service(db: AsyncSession, manager: User, title: str = "Logo design") -> Service:
    service = Service(
        manager_id=manager.id,
        title=title,
        base_price=Decimal("100.00"),
    )
    db.add(service)
    await db.commit()
    return service


@pytest.fixture
def password():
    """Plain-text password of every user created by these fixtures."""
    return PASSWORD


@pytest_asyncio.fixture
async def admin(db_session):
    return await create_user(db_session, "admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def manager(db_session):
    return await create_user(db_session, "manager", UserRole.MANAGER)


@pytest_asyncio.fixture
async def other_manager(db_session):
    return await create_user(db_session, "other_manager", UserRole.MANAGER)


@pytest_asyncio.fixture
async def service(db_session, manager):
    return await create_service(db_session, manager)


@pytest_asyncio.fixture
async def make_service(db_session):
    async def make(owner: User, title: str = "Extra service") -> Service:
        return await create_service(db_session, owner, title)

    return make


@pytest_asyncio.fixture
async def make_user(db_session):
    async def make(username: str, role: UserRole, **kwargs) -> User:
        return await create_user(db_session, username, role, **kwargs)

    return make


@pytest_asyncio.fixture
async def app_client(db_session):
    """
    Factory for HTTP clients bound to the test session.

    Usage:
        client = await app_client(user)   # authenticated as user
        client = await app_client()       # anonymous
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    clients = []

    async def make(user: User = None) -> AsyncClient:
        headers = {}
        if user is not None:
            token = create_access_token(user.id, user.role.value)
            headers["Cookie"] = f"{COOKIE_NAME}={token}"
        client = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers=headers,
        )
        clients.append(client)
        return client

    yield make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()
