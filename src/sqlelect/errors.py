"""Error types for sqlelect.

Store failures carry the operation and election name they happened in and
are chained to the underlying driver error. The election loop converts any
store failure into ElectionAborted so the embedding application decides
what to do with the process.
"""

from __future__ import annotations


class ElectionError(Exception):
    """Base class for all sqlelect errors."""


class ElectionStoreError(ElectionError):
    """A store operation failed.

    Args:
        operation: Store operation that failed (e.g. "campaign")
        election_name: Election the operation was issued for
        detail: Optional extra detail for the message
    """

    def __init__(self, operation: str, election_name: str | None = None, detail: str = ""):
        self.operation = operation
        self.election_name = election_name
        message = f"{operation} failed"
        if election_name is not None:
            message += f" for election '{election_name}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class StoreConnectionError(ElectionStoreError):
    """The store was unreachable."""


class SchemaError(ElectionStoreError):
    """Creating the election table failed."""


class ElectionAborted(ElectionError):
    """The election loop stopped because leadership state became unknown."""

    def __init__(self, election_name: str, candidate_name: str, reason: str):
        self.election_name = election_name
        self.candidate_name = candidate_name
        super().__init__(
            f"Election '{election_name}' aborted for candidate {candidate_name}: {reason}"
        )


class IdentityDerivationWarning(UserWarning):
    """Network interfaces could not be read; the worker id falls back to the pid."""
