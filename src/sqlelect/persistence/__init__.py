"""Persistence layer for sqlelect.

This module provides:
- Async engine construction (SQLAlchemy 2.0 asyncio)
- The election_records ORM model
- ElectionStore with the single-statement claim-or-renew upsert
- An Alembic migration for managed schemas
"""

from sqlelect.persistence.db import create_engine, init_db
from sqlelect.persistence.store import ElectionStore
from sqlelect.persistence.tables import ElectionRecord, ElectionRecordTable

__all__ = [
    # DB
    "create_engine",
    "init_db",
    # Tables
    "ElectionRecord",
    "ElectionRecordTable",
    # Store
    "ElectionStore",
]
