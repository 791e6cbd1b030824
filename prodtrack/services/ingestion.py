"""Boundary between stored rows and aggregation records.

Two sources feed the aggregation engine: ORM rows from the relational store and
generic spreadsheet rows that carry a ``type`` tag. Both are converted here into
typed record collections so the engine never dispatches on row shape itself.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from prodtrack.models.entities import Category, DailyEntry, SubCategory, Task, TeamMember, WeeklyTarget
from prodtrack.services.aggregation import (
    MILESTONES,
    UNITS,
    CategoryRecord,
    EntryRecord,
    SubCategoryRecord,
    TargetRecord,
    TaskRecord,
    TeamMemberRecord,
    parse_date,
    parse_milestones,
    parse_targets,
    to_decimal,
    week_start,
)

logger = logging.getLogger(__name__)

# Fixed namespace so spreadsheet ids map to the same UUID on every import.
SHEET_ID_NAMESPACE = uuid.UUID("6f1c2b8e-3d4a-5e6f-8a9b-0c1d2e3f4a5b")

ROW_TYPE_CATEGORY = "category"
ROW_TYPE_SUB_CATEGORY = "subcategory"
ROW_TYPE_TASK = "task"
ROW_TYPE_TEAM_MEMBER = "teammember"
ROW_TYPE_DAILY_ENTRY = "dailyentry"

_TRUE_STRINGS = {"true", "1", "yes", "y"}
_FALSE_STRINGS = {"false", "0", "no", "n", ""}


@dataclass(slots=True)
class ProductionSnapshot:
    """Typed entity collections handed to the aggregation engine."""

    categories: list[CategoryRecord] = field(default_factory=list)
    sub_categories: list[SubCategoryRecord] = field(default_factory=list)
    tasks: list[TaskRecord] = field(default_factory=list)
    team_members: list[TeamMemberRecord] = field(default_factory=list)
    entries: list[EntryRecord] = field(default_factory=list)
    skipped_rows: int = 0


def stable_uuid(value: object) -> uuid.UUID:
    """UUID for an external id; non-UUID ids map deterministically."""

    text = str(value).strip()
    try:
        return uuid.UUID(text)
    except ValueError:
        return uuid.uuid5(SHEET_ID_NAMESPACE, text)


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _flag(value: object, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    normalized = str(value).strip().lower()
    if normalized in _TRUE_STRINGS:
        return True
    if normalized in _FALSE_STRINGS:
        return False
    return default


def normalize_targets(value: object) -> tuple[TargetRecord, ...]:
    """Parsed targets keyed by Monday; undated rows dropped, first week wins."""

    normalized: dict[date, TargetRecord] = {}
    for target in parse_targets(value):
        parsed = parse_date(target.week_start_date)
        if parsed is None:
            continue
        monday = week_start(parsed)
        if monday in normalized:
            continue
        normalized[monday] = TargetRecord(week_start_date=monday, target=to_decimal(target.target))
    return tuple(normalized.values())


def _tracking_method(value: object) -> str:
    normalized = _text(value).lower()
    if normalized == MILESTONES:
        return MILESTONES
    return UNITS


def _require(row: Mapping[str, object], *keys: str) -> bool:
    return all(_text(row.get(key)) for key in keys)


def classify_sheet_rows(rows: Iterable[object]) -> ProductionSnapshot:
    """Split tagged spreadsheet rows into typed records.

    Rows without a known ``type`` or without their identifying fields are
    skipped and counted in ``skipped_rows``.
    """

    snapshot = ProductionSnapshot()
    for row in rows:
        if not isinstance(row, Mapping) or not _text(row.get("type")):
            snapshot.skipped_rows += 1
            continue

        row_type = _text(row.get("type")).lower()
        if row_type == ROW_TYPE_CATEGORY and _require(row, "id", "name"):
            snapshot.categories.append(
                CategoryRecord(id=_text(row["id"]), name=_text(row["name"]), is_active=_flag(row.get("isActive")))
            )
        elif row_type == ROW_TYPE_SUB_CATEGORY and _require(row, "id", "name", "categoryId"):
            snapshot.sub_categories.append(
                SubCategoryRecord(
                    id=_text(row["id"]),
                    name=_text(row["name"]),
                    category_id=_text(row["categoryId"]),
                    tracking_method=_tracking_method(row.get("trackingMethod")),
                    targets=normalize_targets(row.get("targets")),
                    is_active=_flag(row.get("isActive")),
                )
            )
        elif row_type == ROW_TYPE_TASK and _require(row, "id", "name", "subCategoryId"):
            snapshot.tasks.append(
                TaskRecord(
                    id=_text(row["id"]),
                    name=_text(row["name"]),
                    sub_category_id=_text(row["subCategoryId"]),
                    standard_time=to_decimal(row.get("standardTime")),
                    department=_text(row.get("department")),
                    milestones=tuple(parse_milestones(row.get("milestones"))),
                    is_active=_flag(row.get("isActive")),
                )
            )
        elif row_type == ROW_TYPE_TEAM_MEMBER and _require(row, "id", "name"):
            snapshot.team_members.append(
                TeamMemberRecord(
                    id=_text(row["id"]),
                    name=_text(row["name"]),
                    role=_text(row.get("role")),
                    department=_text(row.get("department")),
                    is_active=_flag(row.get("isActive")),
                )
            )
        elif row_type == ROW_TYPE_DAILY_ENTRY and _require(row, "id", "memberId", "taskId"):
            snapshot.entries.append(
                EntryRecord(
                    id=_text(row["id"]),
                    date=row.get("date") if isinstance(row.get("date"), str) else None,
                    member_id=_text(row["memberId"]),
                    task_id=_text(row["taskId"]),
                    actual_time=row.get("actualTime"),
                    units_completed=row.get("unitsCompleted"),
                    unit_id=_text(row.get("unitId")),
                    completed_milestone=_text(row.get("completedMilestone")),
                    notes=_text(row.get("notes")),
                    submitted_by=_text(row.get("submittedBy")),
                    timestamp=row.get("timestamp") if isinstance(row.get("timestamp"), str) else None,
                )
            )
        else:
            snapshot.skipped_rows += 1

    if snapshot.skipped_rows:
        logger.warning("Skipped %d unclassifiable spreadsheet rows", snapshot.skipped_rows)
    return snapshot


# ---------- ORM rows ----------
def category_record(row: Category) -> CategoryRecord:
    return CategoryRecord(id=str(row.id), name=row.name, is_active=row.is_active)


def sub_category_record(row: SubCategory, targets: Iterable[WeeklyTarget] = ()) -> SubCategoryRecord:
    return SubCategoryRecord(
        id=str(row.id),
        name=row.name,
        category_id=str(row.category_id),
        tracking_method=row.tracking_method.value,
        targets=tuple(
            TargetRecord(week_start_date=target.week_start_date, target=target.target)
            for target in sorted(targets, key=lambda item: item.week_start_date)
        ),
        is_active=row.is_active,
    )


def task_record(row: Task) -> TaskRecord:
    return TaskRecord(
        id=str(row.id),
        name=row.name,
        sub_category_id=str(row.sub_category_id),
        standard_time=row.standard_time,
        department=row.department,
        milestones=tuple(parse_milestones(row.milestones)),
        is_active=row.is_active,
    )


def team_member_record(row: TeamMember) -> TeamMemberRecord:
    return TeamMemberRecord(
        id=str(row.id),
        name=row.name,
        role=row.role,
        department=row.department,
        is_active=row.is_active,
    )


def entry_record(row: DailyEntry) -> EntryRecord:
    return EntryRecord(
        id=str(row.id),
        date=row.work_date,
        member_id=str(row.member_id),
        task_id=str(row.task_id),
        actual_time=row.actual_time,
        units_completed=row.units_completed,
        unit_id=row.unit_id,
        completed_milestone=row.completed_milestone,
        notes=row.notes,
        submitted_by=row.submitted_by,
        timestamp=row.timestamp,
    )


def snapshot_from_models(
    *,
    categories: Iterable[Category],
    sub_categories: Iterable[SubCategory],
    targets: Iterable[WeeklyTarget],
    tasks: Iterable[Task],
    team_members: Iterable[TeamMember],
    entries: Iterable[DailyEntry],
) -> ProductionSnapshot:
    targets_by_sub_category: dict[uuid.UUID, list[WeeklyTarget]] = {}
    for target in targets:
        targets_by_sub_category.setdefault(target.sub_category_id, []).append(target)

    return ProductionSnapshot(
        categories=[category_record(row) for row in categories],
        sub_categories=[
            sub_category_record(row, targets_by_sub_category.get(row.id, [])) for row in sub_categories
        ],
        tasks=[task_record(row) for row in tasks],
        team_members=[team_member_record(row) for row in team_members],
        entries=[entry_record(row) for row in entries],
    )
