"""Async database engine construction and schema provisioning.

Engines come from SQLAlchemy 2.0's asyncio extension. PostgreSQL (asyncpg)
is the production store; SQLite (aiosqlite) serves tests and single-host
setups.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sqlelect.config import Settings
from sqlelect.errors import ElectionStoreError, SchemaError, StoreConnectionError

logger = logging.getLogger(__name__)

# Driver failures that mean the store could not be reached
CONNECTION_ERRORS = (OperationalError, InterfaceError, OSError)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured store.

    Pool limits apply to server databases only; SQLite picks its own pool.
    """
    url = settings.store_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.echo_sql)

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,  # Verify connection health
        echo=settings.echo_sql,
    )


@contextmanager
def store_errors(
    operation: str,
    election_name: str | None = None,
    error_class: type[ElectionStoreError] = ElectionStoreError,
) -> Iterator[None]:
    """Translate driver exceptions into sqlelect store errors.

    Connection failures become StoreConnectionError, anything else raised
    by SQLAlchemy becomes ``error_class``. Cancellation passes through.
    """
    try:
        yield
    except CONNECTION_ERRORS as e:
        raise StoreConnectionError(operation, election_name, str(e)) from e
    except SQLAlchemyError as e:
        raise error_class(operation, election_name, str(e)) from e


async def init_db(engine: AsyncEngine, election_name: str | None = None) -> None:
    """Create the election table if it does not exist.

    For managed deployments, use the Alembic migration instead.
    """
    from sqlelect.persistence.tables import Base

    with store_errors("create election_records", election_name, error_class=SchemaError):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.debug("Election table ready")
