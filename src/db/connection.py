"""Database connection management for Taskboard.

Provides asynchronous database access using SQLAlchemy. PostgreSQL
(asyncpg) is the production target; SQLite (aiosqlite) is supported for
local development and tests.

Usage:
    from src.db.connection import get_async_db, async_init_db

    await async_init_db()
    async for db in get_async_db():
        # ... use async db session
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.db.models import Base

_DEFAULT_DATABASE_URL = "sqlite:///./taskboard.db"


# Configuration
def get_database_url() -> str:
    """Get database URL from environment or use default SQLite.

    Precedence:
    1. DATABASE_URL
    2. sqlite:///./taskboard.db
    """
    database_url = os.environ.get("DATABASE_URL", "").strip()
    return database_url or _DEFAULT_DATABASE_URL


def get_async_database_url() -> str:
    """Derive the async driver URL from the configured URL.

    Converts sqlite:/// to sqlite+aiosqlite:/// and postgresql:// (or
    postgres://) to postgresql+asyncpg://. URLs that already name a
    driver are returned unchanged.
    """
    url = get_database_url()
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


# Engine creation
ASYNC_DATABASE_URL = get_async_database_url()

async_engine = create_async_engine(
    ASYNC_DATABASE_URL,
    echo=os.environ.get("SQL_ECHO", "").lower() == "true",
)

# Session factories
AsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# Dependency functions for FastAPI


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for request handlers.

    Intended for use with FastAPI's Depends().

    Yields:
        AsyncSession: Async SQLAlchemy session that will be closed after use.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def get_async_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Async context manager for sessions outside of FastAPI.

    Commits on success, rolls back on error.

    Usage:
        async with get_async_db_context() as db:
            result = await db.execute(select(Task))
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Initialization functions


async def async_init_db() -> None:
    """Create all database tables asynchronously.

    Safe to call multiple times - will not recreate existing tables.
    """
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_async_db() -> None:
    """Close the async engine and dispose of connection pool."""
    await async_engine.dispose()
