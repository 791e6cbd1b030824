"""ORM entities for the production tracking schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from prodtrack.db.base import Base

# Largest values the numeric columns hold.
MAX_HOURS = Decimal("9999999.999")
MAX_TARGET = Decimal("9999999999.99")
MAX_UNITS = 2_147_483_647


class TrackingMethod(str, enum.Enum):
    UNITS = "units"
    MILESTONES = "milestones"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class SubCategory(Base):
    __tablename__ = "sub_categories"
    __table_args__ = (Index("ix_sub_categories_category_id", "category_id"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("categories.id"), nullable=False
    )
    tracking_method: Mapped[TrackingMethod] = mapped_column(
        SQLEnum(
            TrackingMethod,
            name="tracking_method",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=TrackingMethod.UNITS,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class WeeklyTarget(Base):
    __tablename__ = "weekly_targets"
    __table_args__ = (
        CheckConstraint("target >= 0", name="ck_weekly_targets_target_non_negative"),
        UniqueConstraint("sub_category_id", "week_start_date", name="uq_weekly_targets_sub_category_week"),
        Index("ix_weekly_targets_sub_category_id", "sub_category_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sub_category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sub_categories.id"), nullable=False
    )
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    target: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("standard_time >= 0", name="ck_tasks_standard_time_non_negative"),
        Index("ix_tasks_sub_category_id", "sub_category_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sub_category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sub_categories.id"), nullable=False
    )
    standard_time: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))
    department: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    milestones: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class TeamMember(Base):
    __tablename__ = "team_members"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class DailyEntry(Base):
    __tablename__ = "daily_entries"
    __table_args__ = (
        CheckConstraint("actual_time >= 0", name="ck_daily_entries_actual_time_non_negative"),
        CheckConstraint("units_completed >= 0", name="ck_daily_entries_units_non_negative"),
        Index("ix_daily_entries_date", "date"),
        Index("ix_daily_entries_member_id", "member_id"),
        Index("ix_daily_entries_task_id", "task_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Work date, distinct from the submission timestamp.
    work_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("team_members.id"), nullable=False
    )
    task_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tasks.id"), nullable=False)
    actual_time: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False, default=Decimal("0.000"))
    units_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    completed_milestone: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    notes: Mapped[str] = mapped_column(String(4000), nullable=False, default="")
    submitted_by: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # Null when an imported row carried no readable submission time.
    timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
