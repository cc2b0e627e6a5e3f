"""Global pytest configuration and fixtures.

Store fixtures run against SQLite (aiosqlite) on a temporary file so the
real upsert statement is exercised without a database server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from sqlelect.config import Settings
from sqlelect.persistence.store import ElectionStore

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Timestamp ``seconds`` after T0."""
    return T0 + timedelta(seconds=seconds)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: requires Docker (PostgreSQL container)")


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'elections.db'}"


@pytest.fixture
def sqlite_settings(sqlite_url: str) -> Settings:
    return Settings(database_url=sqlite_url, enable_metrics=False)


@pytest_asyncio.fixture
async def store(sqlite_url: str) -> AsyncIterator[ElectionStore]:
    """Election store with a provisioned table and a 60s lease."""
    engine = create_async_engine(sqlite_url)
    election_store = ElectionStore(engine, lease_duration=60)
    await election_store.init_schema()
    yield election_store
    await election_store.close()
