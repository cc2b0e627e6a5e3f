"""SQLAlchemy ORM model for election records.

One row per election name. The unique index on election_name is what
turns the campaign upsert into a conditional write: a second candidate's
insert always lands on the conflict branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ElectionRecordTable(Base):
    """Current lease holder of a named election."""

    __tablename__ = "election_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    election_name: Mapped[str] = mapped_column(String(256), nullable=False)
    leader_name: Mapped[str] = mapped_column(String(256), nullable=False)

    # Set on insert, renewal and takeover
    last_update: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (Index("uidx_election_name", election_name, unique=True),)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ElectionRecord:
    """Detached snapshot of an election row."""

    election_name: str
    leader_name: str
    last_update: datetime

    @classmethod
    def from_row(cls, row: Any) -> "ElectionRecord":
        return cls(
            election_name=row.election_name,
            leader_name=row.leader_name,
            last_update=as_utc(row.last_update),
        )

    def lease_age(self, now: datetime) -> float:
        """Seconds since the lease was last claimed or renewed."""
        return (as_utc(now) - self.last_update).total_seconds()

    def is_expired(self, now: datetime, lease_duration: float) -> bool:
        return self.lease_age(now) > lease_duration
