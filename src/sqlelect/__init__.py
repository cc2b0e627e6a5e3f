"""Leader election over a shared SQL table.

Candidates campaign for a named election by upserting one row; the row's
leader holds a lease that must be renewed or it expires and another
candidate takes over.

Example:
    from sqlelect import run_election_loop

    # Campaign for the process lifetime
    await run_election_loop("job-x", start_jobs, stop_jobs)

    # Or one campaign at a time
    election = await new_election("job-x", worker_name())
    if await election.campaign():
        ...
"""

from sqlelect.election import Election, new_election
from sqlelect.errors import (
    ElectionAborted,
    ElectionError,
    ElectionStoreError,
    IdentityDerivationWarning,
    SchemaError,
    StoreConnectionError,
)
from sqlelect.identity import worker_name
from sqlelect.loop import (
    CallbackListener,
    ElectionLoop,
    LeadershipListener,
    LeaderState,
    elect_leader,
    leader_only,
    run_election_loop,
)
from sqlelect.persistence.store import ElectionStore

__all__ = [
    # Election
    "Election",
    "ElectionStore",
    "new_election",
    "worker_name",
    # Loop
    "ElectionLoop",
    "LeaderState",
    "LeadershipListener",
    "CallbackListener",
    "run_election_loop",
    "elect_leader",
    "leader_only",
    # Errors
    "ElectionError",
    "ElectionStoreError",
    "StoreConnectionError",
    "SchemaError",
    "ElectionAborted",
    "IdentityDerivationWarning",
]
