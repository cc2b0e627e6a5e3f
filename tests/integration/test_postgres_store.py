"""Campaign semantics against PostgreSQL."""

import asyncio

import pytest

from sqlelect.election import Election
from sqlelect.loop import ElectionLoop, LeaderState
from sqlelect.persistence.store import ElectionStore
from tests.conftest import at

pytestmark = pytest.mark.integration

H1 = "worker/h1/abc"
H2 = "worker/h2/def"


class TestPostgresCampaign:
    """The job-x timeline and races on the production dialect."""

    @pytest.mark.asyncio
    async def test_job_x_scenario(self, pg_store: ElectionStore) -> None:
        assert await pg_store.campaign("job-x", H1, at(0)) is True
        assert await pg_store.campaign("job-x", H2, at(10)) is False
        assert await pg_store.campaign("job-x", H1, at(15)) is True
        assert await pg_store.campaign("job-x", H2, at(90)) is True

        record = await pg_store.get_record("job-x")
        assert record is not None
        assert record.leader_name == H2
        assert record.last_update == at(90)

    @pytest.mark.asyncio
    async def test_renewal_with_same_timestamp_is_claimed(self, pg_store: ElectionStore) -> None:
        """PostgreSQL reports a matched no-op conflict update as one row."""
        assert await pg_store.campaign("job-x", H1, at(0))
        assert await pg_store.campaign("job-x", H1, at(0)) is True

    @pytest.mark.asyncio
    async def test_racing_takeover_has_one_winner(self, pg_store: ElectionStore) -> None:
        await pg_store.campaign("job-x", "worker/h0/old", at(0))

        candidates = [f"worker/h{i}/racer" for i in range(1, 9)]
        results = await asyncio.gather(
            *(pg_store.campaign("job-x", name, at(100)) for name in candidates)
        )

        assert results.count(True) == 1
        winner = candidates[results.index(True)]
        assert await pg_store.verify_leader("job-x", winner)

    @pytest.mark.asyncio
    async def test_two_loops_one_leader(self, pg_store: ElectionStore) -> None:
        """Two loops sharing the store: exactly one ends up leader."""
        first = ElectionLoop(Election("job-x", H1, pg_store), renewal_interval=0.05)
        second = ElectionLoop(Election("job-x", H2, pg_store), renewal_interval=0.05)

        await first.start()
        await second.start()
        await asyncio.sleep(0.3)

        states = {first.state, second.state}
        await first.stop()
        await second.stop()

        assert states == {LeaderState.LEADER, LeaderState.CANDIDATE}
