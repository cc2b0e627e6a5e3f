"""Election records table.

Revision ID: 001_election_records
Revises:
Create Date: 2026-10-18

Creates election_records with one row per election name. The unique
index on election_name backs the campaign upsert's conflict target.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001_election_records"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "election_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("election_name", sa.String(256), nullable=False),
        sa.Column("leader_name", sa.String(256), nullable=False),
        sa.Column(
            "last_update",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("uidx_election_name", "election_records", ["election_name"], unique=True)


def downgrade() -> None:
    op.drop_index("uidx_election_name", table_name="election_records")
    op.drop_table("election_records")
