"""initial production tracking schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


tracking_method = postgresql.ENUM("units", "milestones", name="tracking_method", create_type=False)


def upgrade() -> None:
    tracking_method.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "sub_categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("tracking_method", tracking_method, nullable=False, server_default="units"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sub_categories_category_id", "sub_categories", ["category_id"])

    op.create_table(
        "weekly_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "sub_category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sub_categories.id"),
            nullable=False,
        ),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("target", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("target >= 0", name="ck_weekly_targets_target_non_negative"),
        sa.UniqueConstraint("sub_category_id", "week_start_date", name="uq_weekly_targets_sub_category_week"),
    )
    op.create_index("ix_weekly_targets_sub_category_id", "weekly_targets", ["sub_category_id"])

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "sub_category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sub_categories.id"),
            nullable=False,
        ),
        sa.Column("standard_time", sa.Numeric(10, 3), nullable=False, server_default="0"),
        sa.Column("department", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("milestones", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("standard_time >= 0", name="ck_tasks_standard_time_non_negative"),
    )
    op.create_index("ix_tasks_sub_category_id", "tasks", ["sub_category_id"])

    op.create_table(
        "team_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("department", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "daily_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("member_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("team_members.id"), nullable=False),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("actual_time", sa.Numeric(10, 3), nullable=False, server_default="0"),
        sa.Column("units_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_id", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("completed_milestone", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("notes", sa.String(length=4000), nullable=False, server_default=""),
        sa.Column("submitted_by", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("actual_time >= 0", name="ck_daily_entries_actual_time_non_negative"),
        sa.CheckConstraint("units_completed >= 0", name="ck_daily_entries_units_non_negative"),
    )
    op.create_index("ix_daily_entries_date", "daily_entries", ["date"])
    op.create_index("ix_daily_entries_member_id", "daily_entries", ["member_id"])
    op.create_index("ix_daily_entries_task_id", "daily_entries", ["task_id"])


def downgrade() -> None:
    op.drop_index("ix_daily_entries_task_id", table_name="daily_entries")
    op.drop_index("ix_daily_entries_member_id", table_name="daily_entries")
    op.drop_index("ix_daily_entries_date", table_name="daily_entries")
    op.drop_table("daily_entries")

    op.drop_table("team_members")

    op.drop_index("ix_tasks_sub_category_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_weekly_targets_sub_category_id", table_name="weekly_targets")
    op.drop_table("weekly_targets")

    op.drop_index("ix_sub_categories_category_id", table_name="sub_categories")
    op.drop_table("sub_categories")

    op.drop_table("categories")

    tracking_method.drop(op.get_bind(), checkfirst=True)
