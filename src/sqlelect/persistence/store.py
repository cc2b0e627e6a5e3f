"""Election store: the shared table every candidate campaigns against.

The campaign is a single upsert statement. The database serializes
concurrent upserts on the unique election_name index, so two candidates
that both see an expired lease cannot both win: the second one's
conflict update re-evaluates the WHERE clause against the row the first
one just wrote.

    INSERT INTO election_records (election_name, leader_name, last_update)
    VALUES (:election, :candidate, :now)
    ON CONFLICT (election_name) DO UPDATE
        SET leader_name = excluded.leader_name,
            last_update = excluded.last_update
        WHERE election_records.leader_name = excluded.leader_name
           OR election_records.last_update < :cutoff

The affected-row count is the result. PostgreSQL and SQLite count a
conflict update whose WHERE matched even if no value changed, so a
self-renewal always reports as claimed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import Table, func, inspect, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql.dml import Insert

from sqlelect.errors import ElectionStoreError
from sqlelect.persistence.db import init_db, store_errors
from sqlelect.persistence.tables import ElectionRecord, ElectionRecordTable, as_utc

logger = logging.getLogger(__name__)

DEFAULT_LEASE_DURATION = 60.0  # Seconds

SUPPORTED_DIALECTS = ("postgresql", "sqlite")

election_records: Table = ElectionRecordTable.__table__  # type: ignore[assignment]


class ElectionStore:
    """Conditional claim/renew against the election_records table.

    The store is shared by everything in one process; the engine's pool
    makes it safe for concurrent use.

    Args:
        engine: Async engine bound to the shared database
        lease_duration: Seconds after the last renewal before a lease
            can be taken over (default 60)
    """

    def __init__(self, engine: AsyncEngine, lease_duration: float = DEFAULT_LEASE_DURATION):
        dialect = engine.dialect.name
        if dialect not in SUPPORTED_DIALECTS:
            raise ElectionStoreError(
                "open store", detail=f"unsupported database dialect '{dialect}'"
            )
        self.engine = engine
        self.dialect = dialect
        self.lease_duration = lease_duration

    async def init_schema(self, election_name: str | None = None) -> None:
        """Create the election table if missing. Raises SchemaError on failure."""
        await init_db(self.engine, election_name)

    async def has_schema(self) -> bool:
        """Whether the election table exists. Never creates it."""
        with store_errors("inspect schema"):
            async with self.engine.connect() as conn:
                return await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(election_records.name)
                )

    def claim_statement(self, election_name: str, candidate_name: str, now: datetime) -> Insert:
        """Build the single-statement claim-or-renew upsert."""
        now = as_utc(now)
        cutoff = now - timedelta(seconds=self.lease_duration)
        values: dict[str, object] = {
            "election_name": election_name,
            "leader_name": candidate_name,
            "last_update": now,
        }
        insert = pg_insert if self.dialect == "postgresql" else sqlite_insert
        stmt = insert(election_records).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[election_records.c.election_name],
            set_={
                "leader_name": stmt.excluded.leader_name,
                "last_update": stmt.excluded.last_update,
            },
            where=or_(
                election_records.c.leader_name == stmt.excluded.leader_name,
                election_records.c.last_update < cutoff,
            ),
        )

    async def campaign(self, election_name: str, candidate_name: str, now: datetime) -> bool:
        """Claim or renew the lease on ``election_name`` for ``candidate_name``.

        Returns True if the row was inserted, renewed by its holder, or
        taken over after the lease expired. Returns False if another
        candidate holds a live lease; nothing is written in that case.
        """
        stmt = self.claim_statement(election_name, candidate_name, now)
        with store_errors("campaign", election_name):
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                claimed = result.rowcount > 0
        logger.debug(
            f"Campaign by {candidate_name} in '{election_name}': "
            f"{'claimed' if claimed else 'not claimed'}"
        )
        return claimed

    async def verify_leader(self, election_name: str, candidate_name: str) -> bool:
        """Check that ``candidate_name`` is the recorded leader. Read-only."""
        stmt = (
            select(func.count())
            .select_from(election_records)
            .where(
                election_records.c.election_name == election_name,
                election_records.c.leader_name == candidate_name,
            )
        )
        with store_errors("verify leader", election_name):
            async with self.engine.connect() as conn:
                count = (await conn.execute(stmt)).scalar_one()
        return count > 0

    async def get_record(self, election_name: str) -> ElectionRecord | None:
        """Read the current row for ``election_name``, if any."""
        stmt = select(election_records).where(election_records.c.election_name == election_name)
        with store_errors("read record", election_name):
            async with self.engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        if row is None:
            return None
        return ElectionRecord.from_row(row)

    async def close(self) -> None:
        """Dispose of the engine's connections."""
        await self.engine.dispose()
