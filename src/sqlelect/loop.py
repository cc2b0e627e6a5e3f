"""Election loop: the candidate/leader state machine.

Each iteration campaigns once and reacts to the result:

1. Campaign not claimed: if we were leader, we lost the lease. Wait the
   idle retry interval (60s) and campaign again.
2. Campaign claimed: double check with a read. A failed check means
   another candidate's takeover landed in between; campaign again right
   away without touching state. Otherwise, if we were a candidate, we
   won. Wait the renewal interval (15s, a quarter of the lease) and renew.

Listeners are notified on edges only. The leader/candidate state lives in
a single LeadershipFlag changed by compare-and-set, so a transition is
reported exactly once however many iterations stay in the same role.

A store error stops the loop with ElectionAborted: without the store the
process cannot know whether it still leads.

Example:
    async def main():
        await run_election_loop("job-x", start_jobs, stop_jobs)

    # Or embedded, with a background task
    loop = ElectionLoop(election, [MyListener()])
    await loop.start()
    ...
    await loop.stop()
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    ParamSpec,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from sqlelect.config import Settings, settings as default_settings
from sqlelect.election import Election, new_election
from sqlelect.errors import ElectionAborted, ElectionStoreError
from sqlelect.identity import worker_name
from sqlelect.observability.logging import ElectionLogContext

logger = logging.getLogger(__name__)

RENEWAL_INTERVAL = 15.0  # Seconds, well inside the 60s lease
IDLE_RETRY_INTERVAL = 60.0


class LeaderState(str, Enum):
    """Role of this process in an election."""

    CANDIDATE = "candidate"
    LEADER = "leader"


class LeadershipFlag:
    """Single authoritative leader/candidate state.

    Changed only through compare_and_set, so concurrent observers of the
    same transition agree on which one of them reports it.
    """

    def __init__(self, initial: LeaderState = LeaderState.CANDIDATE):
        self._state = initial
        self._lock = threading.Lock()

    @property
    def state(self) -> LeaderState:
        return self._state

    def compare_and_set(self, expected: LeaderState, new: LeaderState) -> bool:
        """Set ``new`` if the current state is ``expected``. True if it was set."""
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True


Callback = Callable[[], Any]


@runtime_checkable
class LeadershipListener(Protocol):
    """Receives leadership transitions. Methods may be plain or async."""

    def on_become_leader(self) -> Any: ...

    def on_lose_leadership(self) -> Any: ...


class CallbackListener:
    """Listener built from two plain callables (either may be omitted)."""

    def __init__(
        self,
        on_become_leader: Callback | None = None,
        on_lose_leadership: Callback | None = None,
    ):
        self._on_become_leader = on_become_leader
        self._on_lose_leadership = on_lose_leadership

    def on_become_leader(self) -> Any:
        if self._on_become_leader is not None:
            return self._on_become_leader()
        return None

    def on_lose_leadership(self) -> Any:
        if self._on_lose_leadership is not None:
            return self._on_lose_leadership()
        return None


class ElectionLoop:
    """Drives one candidate through an election until cancelled or aborted.

    Args:
        election: The election this loop campaigns in (owned by the loop)
        listeners: Receivers of leadership transitions
        renewal_interval: Seconds between renewals while leader
        idle_retry_interval: Seconds between campaigns while candidate
    """

    def __init__(
        self,
        election: Election,
        listeners: Iterable[LeadershipListener] = (),
        renewal_interval: float = RENEWAL_INTERVAL,
        idle_retry_interval: float = IDLE_RETRY_INTERVAL,
    ):
        self.election = election
        self.renewal_interval = renewal_interval
        self.idle_retry_interval = idle_retry_interval

        self._listeners: list[LeadershipListener] = list(listeners)
        self._flag = LeadershipFlag()
        self._task: asyncio.Task[None] | None = None

        # Waiters for the next election win
        self._on_elected: list[asyncio.Future[None]] = []

    @property
    def state(self) -> LeaderState:
        return self._flag.state

    @property
    def is_leader(self) -> bool:
        """Whether this process believes it holds the lease."""
        return self._flag.state is LeaderState.LEADER

    def add_listener(self, listener: LeadershipListener) -> None:
        self._listeners.append(listener)

    async def step(self) -> float:
        """Run one iteration. Returns the delay before the next one.

        Raises:
            ElectionAborted: The store failed
        """
        claimed = await self._call_store(self.election.campaign)

        if not claimed:
            await self._handle_demotion()
            logger.info(
                f"{self.election.candidate_name} did not acquire leadership "
                f"of '{self.election.election_name}', will reattempt"
            )
            return self.idle_retry_interval

        verified = await self._call_store(self.election.is_leader)
        if not verified:
            # Another candidate took over between our claim and the read
            logger.info(
                f"Failed to verify leadership of {self.election.candidate_name} in "
                f"'{self.election.election_name}', will reattempt"
            )
            return 0.0

        await self._handle_election()
        return self.renewal_interval

    async def run(self) -> None:
        """Campaign until cancelled.

        Raises:
            ElectionAborted: The store failed; leadership state is unknown
        """
        with ElectionLogContext(
            election_name=self.election.election_name,
            candidate=self.election.candidate_name,
        ):
            logger.info(
                f"Starting as candidate {self.election.candidate_name} "
                f"in election '{self.election.election_name}'"
            )
            try:
                while True:
                    delay = await self.step()
                    # Zero still yields so an immediate retry stays cancellable
                    await asyncio.sleep(delay)
            except ElectionAborted:
                await self._handle_demotion()
                raise

    async def start(self) -> None:
        """Run the loop in a background task."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run())
        logger.info(
            f"Started election loop for '{self.election.election_name}' "
            f"as {self.election.candidate_name}"
        )

    async def stop(self) -> None:
        """Cancel the background task.

        Leadership is not released: the lease simply expires. Listeners
        still hear about the loss if we were leader.

        Raises:
            ElectionAborted: The loop had already stopped on a store error
        """
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._handle_demotion()
        logger.info(f"Stopped election loop for '{self.election.election_name}'")

    async def wait_for_leadership(self, timeout: float | None = None) -> bool:
        """Wait until this process becomes leader.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if leadership was acquired, False on timeout
        """
        if self.is_leader:
            return True

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._on_elected.append(future)

        try:
            await asyncio.wait_for(future, timeout=timeout)
            return True
        except asyncio.TimeoutError:
            self._on_elected.remove(future)
            return False

    async def _call_store(self, operation: Callable[[], Awaitable[bool]]) -> bool:
        try:
            return await operation()
        except ElectionStoreError as e:
            logger.error(f"Election store failed, stopping: {e}", exc_info=True)
            raise ElectionAborted(
                self.election.election_name, self.election.candidate_name, str(e)
            ) from e

    async def _handle_election(self) -> None:
        """Handle the candidate -> leader edge."""
        if not self._flag.compare_and_set(LeaderState.CANDIDATE, LeaderState.LEADER):
            return

        logger.info(
            f"{self.election.candidate_name} won and is the leader "
            f"of '{self.election.election_name}'"
        )
        self._record_transition("elected", 1)

        for future in self._on_elected:
            if not future.done():
                future.set_result(None)
        self._on_elected.clear()

        await self._notify("on_become_leader")

    async def _handle_demotion(self) -> None:
        """Handle the leader -> candidate edge."""
        if not self._flag.compare_and_set(LeaderState.LEADER, LeaderState.CANDIDATE):
            return

        logger.warning(
            f"{self.election.candidate_name} lost leadership "
            f"of '{self.election.election_name}'"
        )
        self._record_transition("demoted", 0)
        await self._notify("on_lose_leadership")

    def _record_transition(self, transition: str, leader: int) -> None:
        metrics = self.election.metrics
        metrics.leader.labels(election=self.election.election_name).set(leader)
        metrics.leadership_transitions_total.labels(
            election=self.election.election_name, transition=transition
        ).inc()

    async def _notify(self, method: str) -> None:
        for listener in list(self._listeners):
            try:
                result = getattr(listener, method)()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Leadership listener {listener!r} failed in {method}")


async def run_election_loop(
    election_name: str,
    on_become_leader: Callback | None = None,
    on_lose_leadership: Callback | None = None,
    settings: Settings | None = None,
    candidate_name: str | None = None,
) -> None:
    """Join ``election_name`` and campaign until cancelled.

    The candidate name defaults to this process's worker name; intervals
    come from ``settings``.

    Raises:
        StoreConnectionError: The store is unreachable at startup
        SchemaError: The election table could not be created
        ElectionAborted: The store failed while campaigning
    """
    settings = settings or default_settings
    candidate_name = candidate_name or worker_name()

    election = await new_election(election_name, candidate_name, settings)
    async with election:
        loop = ElectionLoop(
            election,
            [CallbackListener(on_become_leader, on_lose_leadership)],
            renewal_interval=settings.renewal_interval,
            idle_retry_interval=settings.idle_retry_interval,
        )
        await loop.run()


def elect_leader(
    election_name: str,
    on_become_leader: Callback | None = None,
    on_lose_leadership: Callback | None = None,
    settings: Settings | None = None,
) -> None:
    """Blocking entry point: campaign for the lifetime of the process."""
    asyncio.run(run_election_loop(election_name, on_become_leader, on_lose_leadership, settings))


P = ParamSpec("P")
R = TypeVar("R")


def leader_only(
    election_name: str,
    settings: Settings | None = None,
    candidate_name: str | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R | None]]]:
    """Decorator that runs a coroutine only if this process wins one campaign.

    Each call campaigns once (claiming or renewing the lease) and skips
    the function if another candidate holds a live lease.

    Example:
        @leader_only("daily-report")
        async def generate_daily_report():
            # Only runs on the leader instance
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R | None]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            election = await new_election(
                election_name, candidate_name or worker_name(), settings
            )
            async with election:
                if await election.campaign() and await election.is_leader():
                    return await func(*args, **kwargs)
            logger.debug(f"Skipping {func.__name__} - not leader for '{election_name}'")
            return None

        return wrapper

    return decorator
