"""
Database connection module - Async SQLAlchemy engine and session management.

Every service opens its unit of work through get_async_session(); booking
creation and catalog imports rely on the session's single transaction for
all-or-nothing behavior. Connections use the business timezone so that
CURRENT_DATE and month boundaries agree with the API.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import get_settings

settings = get_settings()

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    connect_args={"server_settings": {"timezone": settings.TIMEZONE}},
)

# autoflush is off: services flush explicitly before reading back rows they wrote
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session; any exception raised inside the block rolls it back.

    Usage:
        async with get_async_session() as session:
            brands = (await session.execute(select(Brand))).scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables directly (tests and local experiments; deployments use Alembic)."""
    from database.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine on application shutdown."""
    await engine.dispose()
