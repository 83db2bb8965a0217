"""Exclusion constraint: no overlapping active reservations per listing.

Database-level backstop for the reservation store's commit guard. Two rows
with the same listing_id and overlapping daterange('[)') cannot both be
non-cancelled. The '[)' bounds match the application rule: checkout day ==
next check-in day is not a conflict.

PostgreSQL only; btree_gist provides the equality operator class for
listing_id inside a GiST index.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE reservations
        ADD CONSTRAINT no_overlapping_reservations
        EXCLUDE USING gist (
            listing_id WITH =,
            daterange(start_date, end_date, '[)') WITH &&
        )
        WHERE (status <> 'cancelled')
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_overlapping_reservations")
