"""Migration of spreadsheet-store rows into the relational schema."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prodtrack.models.entities import (
    MAX_HOURS,
    MAX_TARGET,
    MAX_UNITS,
    Category,
    DailyEntry,
    SubCategory,
    Task,
    TeamMember,
    TrackingMethod,
    WeeklyTarget,
)
from prodtrack.repositories.production_repository import ProductionRepository
from prodtrack.services.aggregation import (
    parse_date,
    parse_milestones,
    parse_targets,
    parse_timestamp,
    to_decimal,
)
from prodtrack.services.ingestion import classify_sheet_rows, stable_uuid

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q2 = Decimal("0.01")
Q3 = Decimal("0.001")

ENTITY_KEYS = ("categories", "sub_categories", "tasks", "team_members", "entries")


class ImportService:
    """Copies tagged spreadsheet rows into the relational tables.

    Spreadsheet ids that are not UUIDs are mapped with ``stable_uuid`` so the
    references between rows survive and re-running an import is harmless: rows
    whose id already exists are skipped.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProductionRepository(db)

    def _existing(self, model: type, ids: Iterable[UUID]) -> set[UUID]:
        return self.repo.existing_ids(model, set(ids))

    def import_sheet_rows(self, rows: list[object]) -> dict[str, object]:
        snapshot = classify_sheet_rows(rows)
        counts = {key: {"created": 0, "skipped": 0} for key in ENTITY_KEYS}
        now = datetime.now(timezone.utc)

        # ---------- Categories ----------
        category_ids = {stable_uuid(record.id) for record in snapshot.categories}
        known_categories = self._existing(Category, category_ids)
        for record in snapshot.categories:
            category_id = stable_uuid(record.id)
            if category_id in known_categories:
                counts["categories"]["skipped"] += 1
                continue
            self.db.add(Category(id=category_id, name=record.name, is_active=record.is_active, created_at=now))
            known_categories.add(category_id)
            counts["categories"]["created"] += 1
        self.db.flush()

        # ---------- Sub-categories and their targets ----------
        all_categories = self._existing(
            Category, {stable_uuid(record.category_id) for record in snapshot.sub_categories}
        )
        known_sub_categories = self._existing(
            SubCategory, {stable_uuid(record.id) for record in snapshot.sub_categories}
        )
        for record in snapshot.sub_categories:
            sub_category_id = stable_uuid(record.id)
            category_id = stable_uuid(record.category_id)
            if sub_category_id in known_sub_categories or category_id not in all_categories:
                counts["sub_categories"]["skipped"] += 1
                continue
            self.db.add(
                SubCategory(
                    id=sub_category_id,
                    name=record.name,
                    category_id=category_id,
                    tracking_method=TrackingMethod(record.tracking_method),
                    is_active=record.is_active,
                    created_at=now,
                )
            )
            for target in parse_targets(record.targets):
                week_start_date = parse_date(target.week_start_date)
                amount = to_decimal(target.target)
                if week_start_date is None or not ZERO <= amount <= MAX_TARGET:
                    continue
                self.db.add(
                    WeeklyTarget(
                        sub_category_id=sub_category_id,
                        week_start_date=week_start_date,
                        target=amount.quantize(Q2),
                    )
                )
            known_sub_categories.add(sub_category_id)
            counts["sub_categories"]["created"] += 1
        self.db.flush()

        # ---------- Tasks ----------
        tracking_by_sub_category = {
            row.id: row.tracking_method
            for row in self.repo.list_sub_categories()
        }
        known_tasks = self._existing(Task, {stable_uuid(record.id) for record in snapshot.tasks})
        for record in snapshot.tasks:
            task_id = stable_uuid(record.id)
            sub_category_id = stable_uuid(record.sub_category_id)
            tracking_method = tracking_by_sub_category.get(sub_category_id)
            standard_time = to_decimal(record.standard_time)
            if task_id in known_tasks or tracking_method is None or standard_time > MAX_HOURS:
                counts["tasks"]["skipped"] += 1
                continue
            milestones = parse_milestones(record.milestones) if tracking_method is TrackingMethod.MILESTONES else []
            self.db.add(
                Task(
                    id=task_id,
                    name=record.name,
                    sub_category_id=sub_category_id,
                    standard_time=max(standard_time, ZERO).quantize(Q3),
                    department=record.department,
                    milestones=list(dict.fromkeys(milestones)),
                    is_active=record.is_active,
                    created_at=now,
                )
            )
            known_tasks.add(task_id)
            counts["tasks"]["created"] += 1
        self.db.flush()

        # ---------- Team members ----------
        known_members = self._existing(TeamMember, {stable_uuid(record.id) for record in snapshot.team_members})
        for record in snapshot.team_members:
            member_id = stable_uuid(record.id)
            if member_id in known_members:
                counts["team_members"]["skipped"] += 1
                continue
            self.db.add(
                TeamMember(
                    id=member_id,
                    name=record.name,
                    role=record.role,
                    department=record.department,
                    is_active=record.is_active,
                    created_at=now,
                )
            )
            known_members.add(member_id)
            counts["team_members"]["created"] += 1
        self.db.flush()

        # ---------- Daily entries ----------
        all_members = self._existing(TeamMember, {stable_uuid(record.member_id) for record in snapshot.entries})
        all_tasks = self._existing(Task, {stable_uuid(record.task_id) for record in snapshot.entries})
        known_entries = self._existing(DailyEntry, {stable_uuid(record.id) for record in snapshot.entries})
        for record in snapshot.entries:
            entry_id = stable_uuid(record.id)
            member_id = stable_uuid(record.member_id)
            task_id = stable_uuid(record.task_id)
            work_date = parse_date(record.date)
            actual_time = to_decimal(record.actual_time)
            units_completed = int(to_decimal(record.units_completed))
            if (
                entry_id in known_entries
                or member_id not in all_members
                or task_id not in all_tasks
                or work_date is None
                or not ZERO <= actual_time <= MAX_HOURS
                or not 0 <= units_completed <= MAX_UNITS
            ):
                counts["entries"]["skipped"] += 1
                continue
            self.db.add(
                DailyEntry(
                    id=entry_id,
                    work_date=work_date,
                    member_id=member_id,
                    task_id=task_id,
                    actual_time=actual_time.quantize(Q3),
                    units_completed=units_completed,
                    unit_id=record.unit_id or "",
                    completed_milestone=record.completed_milestone or "",
                    notes=record.notes or "",
                    submitted_by=record.submitted_by or "",
                    timestamp=parse_timestamp(record.timestamp),
                )
            )
            known_entries.add(entry_id)
            counts["entries"]["created"] += 1

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Imported rows violate data constraints.",
            ) from exc

        logger.info(
            "Imported spreadsheet rows: %s",
            ", ".join(f"{key}={value['created']}" for key, value in counts.items()),
        )
        return {**counts, "unclassified_rows": snapshot.skipped_rows}
