"""allow daily entries without a submission timestamp

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.alter_column(
        "daily_entries",
        "timestamp",
        existing_type=sa.DateTime(timezone=True),
        nullable=True,
    )


def downgrade() -> None:
    op.execute(
        'UPDATE daily_entries SET "timestamp" = CAST("date" AS TIMESTAMP WITH TIME ZONE) '
        'WHERE "timestamp" IS NULL'
    )
    op.alter_column(
        "daily_entries",
        "timestamp",
        existing_type=sa.DateTime(timezone=True),
        nullable=False,
    )
