"""Root-level pytest fixtures for all tests.

Provides shared fixtures including:
- Async database fixtures (in-memory SQLite via aiosqlite)
- A controllable clock for FilterCache tests
- Filter cache environment isolation
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.db.models import Base

# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests that take a long time to run"
    )


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _filter_cache_env(monkeypatch):
    """Keep cache tuning from the developer's shell out of tests."""
    monkeypatch.delenv("FILTER_CACHE_TTL_SECONDS", raising=False)
    monkeypatch.delenv("FILTER_CACHE_SWEEP_SECONDS", raising=False)
    monkeypatch.delenv("TASKBOARD_API_KEY", raising=False)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory SQLite session factory with all tables created.

    StaticPool keeps one connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """One async session on the in-memory database."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A FakeClock starting at t=1000s."""
    return FakeClock()
