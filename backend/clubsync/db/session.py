"""
Database engine and sessions.

Settings hold a sync URL (what alembic uses); the application talks to the
same database through the matching async driver:
    sqlite:///./clubsync.db        -> sqlite+aiosqlite:///./clubsync.db
    postgresql://user@host/db      -> postgresql+asyncpg://user@host/db
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clubsync.config import settings

ASYNC_DRIVERS = {
    "sqlite://": "sqlite+aiosqlite://",
    "postgresql://": "postgresql+asyncpg://",
}


def async_database_url(url: str) -> str:
    """Swap a sync driver prefix for its async counterpart."""
    for sync_prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(sync_prefix):
            return async_prefix + url[len(sync_prefix):]
    return url


def build_engine(url: str) -> AsyncEngine:
    """Async engine with pool options suited to the backend."""
    url = async_database_url(url)
    if url.startswith("sqlite"):
        # Scheduler task and request handlers share the file
        return create_async_engine(url, connect_args={"check_same_thread": False})
    if url.startswith("postgresql"):
        return create_async_engine(
            url,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
        )
    return create_async_engine(url)


async_engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


# =============================================================================
# Lifecycle
# =============================================================================

async def init_db() -> None:
    """Create missing tables (clubs, events, hidden_events)."""
    from clubsync.models import Base, register_models

    register_models()
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await async_engine.dispose()
