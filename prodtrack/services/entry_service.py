"""Application service for daily production entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext
from prodtrack.models.entities import (
    MAX_HOURS,
    MAX_UNITS,
    DailyEntry,
    SubCategory,
    Task,
    TeamMember,
    TrackingMethod,
)
from prodtrack.repositories.production_repository import ProductionRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q3 = Decimal("0.001")


@dataclass(slots=True)
class EntryCreateData:
    date: date
    member_id: UUID
    task_id: UUID
    actual_time: Decimal
    units_completed: int = 0
    unit_id: str = ""
    completed_milestone: str = ""
    notes: str = ""


@dataclass(slots=True)
class EntryUpdateData:
    date: date | None = None
    member_id: UUID | None = None
    task_id: UUID | None = None
    actual_time: Decimal | None = None
    units_completed: int | None = None
    unit_id: str | None = None
    completed_milestone: str | None = None
    notes: str | None = None


@dataclass(slots=True)
class EntryFilters:
    member_id: UUID | None = None
    category_id: UUID | None = None
    sub_category_id: UUID | None = None
    task_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None


def _unprocessable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class EntryService:
    """Service implementing entry submission and administration."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProductionRepository(db)

    @staticmethod
    def serialize_entry(entry: DailyEntry) -> dict[str, object]:
        return {
            "id": str(entry.id),
            "date": entry.work_date.isoformat(),
            "member_id": str(entry.member_id),
            "task_id": str(entry.task_id),
            "actual_time": str(entry.actual_time),
            "units_completed": entry.units_completed,
            "unit_id": entry.unit_id,
            "completed_milestone": entry.completed_milestone,
            "notes": entry.notes,
            "submitted_by": entry.submitted_by,
            "timestamp": entry.timestamp.isoformat() if entry.timestamp is not None else None,
        }

    def _get_entry_or_404(self, entry_id: UUID) -> DailyEntry:
        entry = self.repo.get_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found.")
        return entry

    def _resolve_references(self, member_id: UUID, task_id: UUID) -> tuple[TeamMember, Task, SubCategory]:
        member = self.repo.get_team_member(member_id)
        if member is None:
            raise _unprocessable("Unknown member_id.")
        task = self.repo.get_task(task_id)
        if task is None:
            raise _unprocessable("Unknown task_id.")
        sub_category = self.repo.get_sub_category(task.sub_category_id)
        if sub_category is None:
            raise _unprocessable("Task references an unknown sub-category.")
        return member, task, sub_category

    def _validate_values(
        self,
        *,
        member_id: UUID,
        task_id: UUID,
        actual_time: Decimal,
        units_completed: int,
        unit_id: str,
        completed_milestone: str,
    ) -> None:
        _, task, sub_category = self._resolve_references(member_id, task_id)

        if actual_time > MAX_HOURS:
            raise _unprocessable(f"actual_time must be less than or equal {MAX_HOURS}.")
        if actual_time <= ZERO or actual_time.quantize(Q3) <= ZERO:
            raise _unprocessable("actual_time must be greater than zero.")
        if units_completed < 0:
            raise _unprocessable("units_completed must be greater or equal zero.")
        if units_completed > MAX_UNITS:
            raise _unprocessable(f"units_completed must be less than or equal {MAX_UNITS}.")

        if sub_category.tracking_method is TrackingMethod.MILESTONES:
            if not unit_id:
                raise _unprocessable("unit_id is required for milestone-tracked tasks.")
            if not completed_milestone:
                raise _unprocessable("completed_milestone is required for milestone-tracked tasks.")
            if completed_milestone not in (task.milestones or []):
                raise _unprocessable(f"Milestone '{completed_milestone}' is not defined for task '{task.name}'.")

    def create_entries(self, *, context: RequestUserContext, items: list[EntryCreateData]) -> list[DailyEntry]:
        """Persist a submission queue as a single all-or-nothing batch.

        Timestamps increase by one microsecond per queued entry, so queue order
        settles which entry is the latest for a unit.
        """

        if not items:
            raise _unprocessable("Submit at least one entry.")

        now = datetime.now(timezone.utc)
        entries: list[DailyEntry] = []
        for position, item in enumerate(items):
            unit_id = item.unit_id.strip()
            completed_milestone = item.completed_milestone.strip()
            try:
                self._validate_values(
                    member_id=item.member_id,
                    task_id=item.task_id,
                    actual_time=item.actual_time,
                    units_completed=item.units_completed,
                    unit_id=unit_id,
                    completed_milestone=completed_milestone,
                )
            except HTTPException as exc:
                raise _unprocessable(f"Entry {position + 1}: {exc.detail}") from exc

            entries.append(
                DailyEntry(
                    work_date=item.date,
                    member_id=item.member_id,
                    task_id=item.task_id,
                    actual_time=item.actual_time.quantize(Q3),
                    units_completed=item.units_completed,
                    unit_id=unit_id,
                    completed_milestone=completed_milestone,
                    notes=item.notes.strip(),
                    submitted_by=context.display_name,
                    timestamp=now + timedelta(microseconds=position),
                )
            )

        self.repo.add_entries(entries)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Entries violate data constraints.",
            ) from exc

        for entry in entries:
            self.db.refresh(entry)
        logger.info("Stored %d entries submitted by %s", len(entries), context.display_name)
        return entries

    def list_entries(self, filters: EntryFilters) -> list[DailyEntry]:
        if filters.date_from and filters.date_to and filters.date_to < filters.date_from:
            raise _unprocessable("date_to must be greater than or equal to date_from.")
        return self.repo.list_entries_filtered(
            member_id=filters.member_id,
            category_id=filters.category_id,
            sub_category_id=filters.sub_category_id,
            task_id=filters.task_id,
            date_from=filters.date_from,
            date_to=filters.date_to,
        )

    def update_entry(self, entry_id: UUID, data: EntryUpdateData) -> DailyEntry:
        entry = self._get_entry_or_404(entry_id)

        member_id = data.member_id or entry.member_id
        task_id = data.task_id or entry.task_id
        actual_time = data.actual_time if data.actual_time is not None else entry.actual_time
        units_completed = data.units_completed if data.units_completed is not None else entry.units_completed
        unit_id = data.unit_id.strip() if data.unit_id is not None else entry.unit_id
        completed_milestone = (
            data.completed_milestone.strip() if data.completed_milestone is not None else entry.completed_milestone
        )

        self._validate_values(
            member_id=member_id,
            task_id=task_id,
            actual_time=actual_time,
            units_completed=units_completed,
            unit_id=unit_id,
            completed_milestone=completed_milestone,
        )

        entry.member_id = member_id
        entry.task_id = task_id
        entry.actual_time = actual_time.quantize(Q3)
        entry.units_completed = units_completed
        entry.unit_id = unit_id
        entry.completed_milestone = completed_milestone
        if data.date is not None:
            entry.work_date = data.date
        if data.notes is not None:
            entry.notes = data.notes.strip()

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Entry violates data constraints.",
            ) from exc
        self.db.refresh(entry)
        return entry

    def delete_entry(self, entry_id: UUID) -> None:
        entry = self._get_entry_or_404(entry_id)
        self.repo.delete_entry(entry)
        self.db.commit()
        logger.info("Deleted entry %s", entry_id)
