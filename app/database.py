"""
Record store connection: one async engine per process, one session per request.
"""

import logging
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# SQLite (used by the test suite) does not accept pool sizing arguments
_engine_options = {"echo": settings.debug}
if not settings.database_url.startswith("sqlite"):
    _engine_options.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

engine = create_async_engine(settings.database_url, **_engine_options)

# Records stay readable after commit; responses are built from them
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session that is closed after the request."""
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    """Create any missing tables. Existing tables are left as they are."""
    import app.models  # noqa: F401  registers the tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Record store ready ({len(Base.metadata.tables)} tables)")
