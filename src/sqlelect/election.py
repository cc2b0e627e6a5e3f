"""Election: one candidate's handle on one named election.

Binds an election name and a candidate name to an ElectionStore. No
retries happen here; the election loop owns retry policy.

Example:
    election = await new_election("job-x", worker_name())
    async with election:
        if await election.campaign():
            ...
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from types import TracebackType
from typing import Callable

from sqlelect.config import Settings, settings as default_settings
from sqlelect.errors import ElectionError
from sqlelect.observability.metrics import MetricsRegistry, get_metrics
from sqlelect.persistence.db import create_engine, store_errors
from sqlelect.persistence.store import ElectionStore
from sqlelect.persistence.tables import ElectionRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Election:
    """A candidate's participation in a named election.

    Args:
        election_name: Name of the contested resource
        candidate_name: Identity this process campaigns as
        store: Shared election store
        clock: Source of "now" for campaigns (UTC)
        metrics: Collectors for campaigns and transitions (default: global registry)
    """

    def __init__(
        self,
        election_name: str,
        candidate_name: str,
        store: ElectionStore,
        clock: Clock = utcnow,
        metrics: MetricsRegistry | None = None,
    ):
        self.election_name = election_name
        self.candidate_name = candidate_name
        self.store = store
        self.clock = clock
        self.metrics = metrics or get_metrics()

    async def campaign(self) -> bool:
        """Try to claim or renew the lease. True if this candidate holds it."""
        metrics = self.metrics
        start = time.perf_counter()
        try:
            claimed = await self.store.campaign(
                self.election_name, self.candidate_name, self.clock()
            )
        finally:
            metrics.campaign_duration_seconds.labels(election=self.election_name).observe(
                time.perf_counter() - start
            )
        metrics.campaigns_total.labels(
            election=self.election_name,
            result="claimed" if claimed else "not_claimed",
        ).inc()
        return claimed

    async def is_leader(self) -> bool:
        """Point-in-time check that the store names this candidate as leader."""
        return await self.store.verify_leader(self.election_name, self.candidate_name)

    async def current_leader(self) -> str | None:
        """Name of the recorded leader, or None if nobody ever claimed."""
        record = await self.record()
        return record.leader_name if record else None

    async def record(self) -> ElectionRecord | None:
        return await self.store.get_record(self.election_name)

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> "Election":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Election({self.election_name!r}, candidate={self.candidate_name!r})"


async def new_election(
    name: str,
    candidate: str,
    settings: Settings | None = None,
    clock: Clock = utcnow,
) -> Election:
    """Connect to the configured store and join election ``name``.

    The election table is created if it does not exist.

    Raises:
        StoreConnectionError: The store is unreachable
        SchemaError: The table could not be created
    """
    settings = settings or default_settings
    with store_errors("open store", name):
        engine = create_engine(settings)
    try:
        store = ElectionStore(engine, lease_duration=settings.lease_duration)
        await store.init_schema(name)
    except ElectionError:
        await engine.dispose()
        raise
    logger.debug(f"Joined election '{name}' as {candidate}")
    return Election(
        name, candidate, store, clock=clock, metrics=get_metrics(settings.enable_metrics)
    )
