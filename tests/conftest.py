"""Shared test fixtures: async in-memory database, mock asset store, API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_asset_store dependencies are overridden for the API client
    - The MockAssetStore instance handed to the client is the one tests inspect
"""

import os

# Must be set before the app package is imported (settings are cached)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("JWT_SECRET", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models import Category, User, UserRole
from app.services.assets import MockAssetStore, get_asset_store


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def asset_store():
    return MockAssetStore()


@pytest.fixture
async def client(session_factory, asset_store):
    """FastAPI test client with DB and asset store dependencies overridden."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_asset_store] = lambda: asset_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


async def _add_user(db, name: str, email: str, role: UserRole) -> User:
    user = User(name=name, email=email, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def staff_user(db):
    return await _add_user(db, "Sam Staff", "staff@example.com", UserRole.STAFF)


@pytest.fixture
async def admin_user(db):
    return await _add_user(db, "Ada Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def customer(db):
    return await _add_user(db, "Casey Customer", "casey@example.com", UserRole.CUSTOMER)


@pytest.fixture
def staff_headers(staff_user):
    return {"Authorization": f"Bearer {create_access_token(staff_user.id)}"}


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {create_access_token(customer.id)}"}


@pytest.fixture
async def category(db):
    category = Category(name="Main Course", description="Main course category")
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category
