"""Integration test fixtures using Docker.

Provides a containerized PostgreSQL so the campaign upsert runs against
the production dialect and driver (asyncpg).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterator
from urllib.parse import urlparse

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sqlelect.persistence.store import ElectionStore
from sqlelect.persistence.tables import Base


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        import docker

        client = docker.from_env()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


def _published_host(client) -> str:
    base_url = client.api.base_url
    if base_url.startswith(("unix://", "npipe://", "http+docker://")):
        return "localhost"
    return urlparse(base_url).hostname or "localhost"


@pytest.fixture(scope="session")
def database_url(docker_client) -> Iterator[str]:
    """Start PostgreSQL for the test session and yield its URL."""
    container = docker_client.containers.run(
        "postgres:16-alpine",
        detach=True,
        environment={
            "POSTGRES_USER": "sqlelect",
            "POSTGRES_PASSWORD": "sqlelect",
            "POSTGRES_DB": "sqlelect",
        },
        ports={"5432/tcp": None},
    )
    try:
        container.reload()
        port = int(container.attrs["NetworkSettings"]["Ports"]["5432/tcp"][0]["HostPort"])
        host = _published_host(docker_client)
        yield f"postgresql+asyncpg://sqlelect:sqlelect@{host}:{port}/sqlelect"
    finally:
        container.remove(force=True, v=True)


@pytest_asyncio.fixture
async def pg_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    """Engine with a fresh election table per test."""
    engine = create_async_engine(database_url)
    await _wait_for_engine(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def pg_store(pg_engine: AsyncEngine) -> ElectionStore:
    return ElectionStore(pg_engine, lease_duration=60)


async def _wait_for_engine(engine: AsyncEngine, timeout: float = 30.0) -> None:
    """Wait for the database to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            async with engine.connect():
                return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
