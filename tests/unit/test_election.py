"""Tests for the Election binding and new_election."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import REGISTRY, generate_latest

from sqlelect import election as election_module
from sqlelect.config import Settings
from sqlelect.election import Election, new_election, utcnow
from sqlelect.errors import ElectionStoreError, StoreConnectionError
from sqlelect.loop import leader_only
from sqlelect.observability.metrics import NoOpMetric
from sqlelect.persistence.store import ElectionStore
from tests.conftest import at

H1 = "worker/h1/abc"
H2 = "worker/h2/def"


class Clock:
    """Settable clock for deterministic campaigns."""

    def __init__(self, seconds: float = 0) -> None:
        self.seconds = seconds

    def __call__(self):
        return at(self.seconds)


class TestElection:
    """Tests for Election against a real store."""

    @pytest.mark.asyncio
    async def test_campaign_uses_clock(self, store: ElectionStore) -> None:
        """Campaign stamps the lease with the election's clock."""
        election = Election("job-x", H1, store, clock=Clock(15))

        assert await election.campaign() is True

        record = await election.record()
        assert record is not None
        assert record.last_update == at(15)

    @pytest.mark.asyncio
    async def test_is_leader(self, store: ElectionStore) -> None:
        clock = Clock(0)
        first = Election("job-x", H1, store, clock=clock)
        second = Election("job-x", H2, store, clock=clock)

        assert await first.is_leader() is False
        await first.campaign()

        assert await first.is_leader() is True
        assert await second.is_leader() is False
        assert await second.current_leader() == H1

    @pytest.mark.asyncio
    async def test_takeover_between_candidates(self, store: ElectionStore) -> None:
        """The scripted job-x timeline through two Election handles."""
        clock = Clock()
        h1 = Election("job-x", H1, store, clock=clock)
        h2 = Election("job-x", H2, store, clock=clock)

        assert await h1.campaign() is True
        clock.seconds = 10
        assert await h2.campaign() is False
        clock.seconds = 15
        assert await h1.campaign() is True
        clock.seconds = 90
        assert await h2.campaign() is True

        assert await h2.is_leader() is True
        assert await h1.is_leader() is False

    @pytest.mark.asyncio
    async def test_no_retry_on_store_error(self) -> None:
        """Store errors propagate after a single attempt."""
        failing = MagicMock()
        failing.campaign = AsyncMock(side_effect=StoreConnectionError("campaign", "job-x"))
        election = Election("job-x", H1, failing)

        with pytest.raises(StoreConnectionError):
            await election.campaign()
        assert failing.campaign.await_count == 1

    def test_utcnow_is_aware(self) -> None:
        assert utcnow().tzinfo is not None


class TestNewElection:
    """Tests for new_election."""

    @pytest.mark.asyncio
    async def test_provisions_table(self, sqlite_settings: Settings) -> None:
        """A fresh database gets its table and the election works."""
        election = await new_election("job-x", H1, sqlite_settings)
        async with election:
            assert election.store.lease_duration == sqlite_settings.lease_duration
            assert await election.campaign() is True
            assert await election.is_leader() is True

    @pytest.mark.asyncio
    async def test_unreachable_store(self, tmp_path: Path) -> None:
        """A store that cannot be opened raises StoreConnectionError."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'elections.db'}"
        settings = Settings(database_url=url, enable_metrics=False)

        with pytest.raises(StoreConnectionError, match="for election 'job-x'") as exc_info:
            await new_election("job-x", H1, settings)

        assert exc_info.value.election_name == "job-x"
        assert exc_info.value.operation == "create election_records"

    @pytest.mark.asyncio
    async def test_unsupported_dialect_disposes_engine(
        self, sqlite_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A rejected engine is disposed before the error propagates."""
        engine = MagicMock()
        engine.dialect.name = "mysql"
        engine.dispose = AsyncMock()
        monkeypatch.setattr(election_module, "create_engine", lambda settings: engine)

        with pytest.raises(ElectionStoreError, match="unsupported database dialect 'mysql'"):
            await new_election("job-x", H1, sqlite_settings)

        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_metrics_are_not_collected(self, sqlite_settings: Settings) -> None:
        """enable_metrics=False on the passed settings keeps campaigns out of Prometheus."""
        assert sqlite_settings.enable_metrics is False

        election = await new_election("quiet-job", H1, sqlite_settings)
        async with election:
            assert await election.campaign() is True

        assert isinstance(election.metrics.campaigns_total, NoOpMetric)
        assert 'election="quiet-job"' not in generate_latest(REGISTRY).decode()


class TestLeaderOnly:
    """Tests for the leader_only decorator."""

    @pytest.mark.asyncio
    async def test_runs_when_claimed(self, sqlite_settings: Settings) -> None:
        @leader_only("report", settings=sqlite_settings, candidate_name=H1)
        async def report(value: int) -> int:
            return value * 2

        assert await report(21) == 42
        # Renewal by the same candidate still runs
        assert await report(1) == 2

    @pytest.mark.asyncio
    async def test_skips_when_other_leader(self, sqlite_settings: Settings) -> None:
        @leader_only("report", settings=sqlite_settings, candidate_name=H1)
        async def first() -> str:
            return "h1"

        @leader_only("report", settings=sqlite_settings, candidate_name=H2)
        async def second() -> str:
            return "h2"

        assert await first() == "h1"
        assert await second() is None
        assert second.__name__ == "second"
