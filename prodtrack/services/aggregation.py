"""Pure aggregation over production tracking snapshots.

Every function in this module works on in-memory value records and returns
freshly allocated results; inputs are never mutated and no I/O happens here.
Records may carry dirty values coming from loosely typed stores (unparsable
dates, JSON-encoded lists, non-numeric counts). Those degrade to "exclude the
record" or "treat as empty" instead of raising, so a single bad row cannot take
the dashboard down.
"""

from __future__ import annotations

import calendar
import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q2 = Decimal("0.01")

UNITS = "units"
MILESTONES = "milestones"
NOT_AVAILABLE = "N/A"

CSV_HEADER = (
    "ID",
    "Date",
    "Member",
    "Category",
    "SubCategory",
    "Task",
    "Time (hrs)",
    "Units",
    "Unit ID",
    "Milestone",
    "Notes",
    "Submitted By",
    "Timestamp",
)
# Member, Category, SubCategory, Task, Unit ID, Milestone, Notes, Submitted By
QUOTED_CSV_COLUMNS = frozenset({2, 3, 4, 5, 8, 9, 10, 11})


# ---------- Records ----------
@dataclass(frozen=True, slots=True)
class CategoryRecord:
    id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class TargetRecord:
    week_start_date: date | str | None
    target: Decimal | int | float | str | None


@dataclass(frozen=True, slots=True)
class SubCategoryRecord:
    id: str
    name: str
    category_id: str
    tracking_method: str = UNITS
    # Parsed targets or the raw JSON text a spreadsheet row carries.
    targets: Sequence[TargetRecord] | str | None = ()
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class TaskRecord:
    id: str
    name: str
    sub_category_id: str
    standard_time: Decimal | int | float | str | None = ZERO
    department: str = ""
    milestones: Sequence[str] | str | None = ()
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class TeamMemberRecord:
    id: str
    name: str
    role: str = ""
    department: str = ""
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class EntryRecord:
    id: str
    date: date | str | None
    member_id: str
    task_id: str
    actual_time: Decimal | int | float | str | None = ZERO
    units_completed: Decimal | int | float | str | None = 0
    unit_id: str | None = ""
    completed_milestone: str | None = ""
    notes: str | None = ""
    submitted_by: str | None = ""
    timestamp: datetime | str | None = None


# ---------- Results ----------
@dataclass(frozen=True, slots=True)
class TargetVsActualRow:
    name: str
    target: Decimal
    actual: Decimal


@dataclass(frozen=True, slots=True)
class TimeEfficiencyRow:
    name: str
    standard_time: Decimal
    average_actual_time: Decimal


@dataclass(frozen=True, slots=True)
class FunnelRow:
    name: str
    completed_units: int


@dataclass(frozen=True, slots=True)
class CurrentWeekTarget:
    category_name: str | None
    sub_category_name: str
    target: Decimal


@dataclass(frozen=True, slots=True)
class DateRange:
    date_from: date
    date_to: date


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    date_from: date
    date_to: date
    filename_stem: str


class DateRangePreset(str, Enum):
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_YEAR = "this_year"
    CUSTOM = "custom"


class ReportPeriodKind(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


# ---------- Parsing helpers ----------
def parse_date(value: object) -> date | None:
    """Return the calendar date carried by ``value`` or ``None``."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_timestamp(value: object) -> datetime | None:
    """Return an aware instant; naive values are read as UTC."""

    parsed: datetime | None = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_decimal(value: object) -> Decimal:
    """Coerce a loosely typed number; anything non-numeric becomes zero."""

    if value is None:
        return ZERO
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not number.is_finite():
        return ZERO
    return number


def _load_json_list(value: str) -> list[object]:
    try:
        loaded = json.loads(value)
    except ValueError:
        logger.debug("Ignoring unparsable JSON list value: %r", value)
        return []
    if not isinstance(loaded, list):
        return []
    return loaded


def parse_targets(value: object) -> list[TargetRecord]:
    """Normalize targets given as records, mappings or a JSON string."""

    if isinstance(value, str):
        items: Iterable[object] = _load_json_list(value) if value.strip() else []
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []

    targets: list[TargetRecord] = []
    for item in items:
        if isinstance(item, TargetRecord):
            targets.append(item)
        elif isinstance(item, Mapping):
            targets.append(
                TargetRecord(
                    week_start_date=item.get("weekStartDate", item.get("week_start_date")),
                    target=item.get("target", 0),
                )
            )
    return targets


def parse_milestones(value: object) -> list[str]:
    """Normalize an ordered milestone list given natively or as JSON."""

    if isinstance(value, str):
        items: Iterable[object] = _load_json_list(value) if value.strip() else []
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [item for item in items if isinstance(item, str) and item]


def week_start(value: date) -> date:
    """Monday of the week containing ``value``."""

    return value - timedelta(days=value.weekday())


def _within(value: date | None, date_from: date, date_to: date) -> bool:
    return value is not None and date_from <= value <= date_to


# ---------- Aggregations ----------
def filter_entries_in_range(
    entries: Iterable[EntryRecord],
    date_from: date,
    date_to: date,
) -> list[EntryRecord]:
    """Entries whose work date lies in ``[date_from, date_to]``, order kept."""

    selected: list[EntryRecord] = []
    for entry in entries:
        if _within(parse_date(entry.date), date_from, date_to):
            selected.append(entry)
    return selected


def target_vs_actual(
    sub_categories: Sequence[SubCategoryRecord],
    tasks: Sequence[TaskRecord],
    entries: Sequence[EntryRecord],
    date_from: date,
    date_to: date,
) -> list[TargetVsActualRow]:
    """Summed weekly targets against completed units per sub-category.

    Only active sub-categories with at least one target week inside the
    interval produce a row.
    """

    in_range = filter_entries_in_range(entries, date_from, date_to)
    rows: list[TargetVsActualRow] = []
    for sub_category in sub_categories:
        if not sub_category.is_active:
            continue

        relevant = [
            target
            for target in parse_targets(sub_category.targets)
            if _within(parse_date(target.week_start_date), date_from, date_to)
        ]
        if not relevant:
            continue

        total_target = sum((to_decimal(target.target) for target in relevant), ZERO)
        task_ids = {task.id for task in tasks if task.sub_category_id == sub_category.id}
        actual_units = sum(
            (to_decimal(entry.units_completed) for entry in in_range if entry.task_id in task_ids),
            ZERO,
        )
        rows.append(TargetVsActualRow(name=sub_category.name, target=total_target, actual=actual_units))
    return rows


def time_efficiency(tasks: Sequence[TaskRecord], entries: Sequence[EntryRecord]) -> list[TimeEfficiencyRow]:
    """Standard time against the mean recorded time of each task.

    ``entries`` is expected to be already restricted to the reporting
    interval. Zero and unparsable times are not counted.
    """

    rows: list[TimeEfficiencyRow] = []
    for task in tasks:
        times = [to_decimal(entry.actual_time) for entry in entries if entry.task_id == task.id]
        positive = [value for value in times if value > ZERO]
        if not positive:
            continue

        average = (sum(positive, ZERO) / len(positive)).quantize(Q2, rounding=ROUND_HALF_UP)
        rows.append(
            TimeEfficiencyRow(
                name=task.name,
                standard_time=to_decimal(task.standard_time),
                average_actual_time=average,
            )
        )
    return rows


def milestone_funnel(
    tasks: Sequence[TaskRecord],
    sub_categories: Sequence[SubCategoryRecord],
    entries: Sequence[EntryRecord],
) -> list[FunnelRow]:
    """Distinct units that reached each milestone of milestone-tracked tasks.

    A unit's progress is the milestone of its most recent entry by submission
    timestamp; on equal timestamps the entry appearing later in ``entries``
    wins. Reaching milestone ``i`` counts the unit for every milestone up to
    and including ``i``, so counts never grow along a task's milestone list.
    """

    tracking_by_sub_category = {sub_category.id: sub_category.tracking_method for sub_category in sub_categories}

    milestone_tasks: list[tuple[TaskRecord, list[str]]] = []
    for task in tasks:
        if tracking_by_sub_category.get(task.sub_category_id) != MILESTONES:
            continue
        milestones = parse_milestones(task.milestones)
        if milestones:
            milestone_tasks.append((task, milestones))
    if not milestone_tasks:
        return []

    task_ids = {task.id for task, _ in milestone_tasks}
    unit_entries = [entry for entry in entries if entry.task_id in task_ids and entry.unit_id]

    rows: list[FunnelRow] = []
    for task, milestones in milestone_tasks:
        latest_by_unit: dict[str, tuple[datetime, str]] = {}
        for entry in unit_entries:
            if entry.task_id != task.id or not entry.completed_milestone:
                continue
            submitted_at = parse_timestamp(entry.timestamp)
            if submitted_at is None:
                logger.debug("Skipping entry %s with unparsable timestamp in funnel", entry.id)
                continue
            unit_key = str(entry.unit_id)
            current = latest_by_unit.get(unit_key)
            if current is None or submitted_at >= current[0]:
                latest_by_unit[unit_key] = (submitted_at, entry.completed_milestone)

        reached = [0] * len(milestones)
        for _, milestone in latest_by_unit.values():
            if milestone not in milestones:
                continue
            for position in range(milestones.index(milestone) + 1):
                reached[position] += 1

        rows.extend(
            FunnelRow(name=f"{task.name} - {milestone}", completed_units=reached[position])
            for position, milestone in enumerate(milestones)
        )
    return rows


def current_week_targets(
    categories: Sequence[CategoryRecord],
    sub_categories: Sequence[SubCategoryRecord],
    today: date,
) -> list[CurrentWeekTarget]:
    monday = week_start(today)
    category_names = {category.id: category.name for category in categories}

    rows: list[CurrentWeekTarget] = []
    for sub_category in sub_categories:
        if not sub_category.is_active:
            continue
        match = next(
            (
                target
                for target in parse_targets(sub_category.targets)
                if parse_date(target.week_start_date) == monday
            ),
            None,
        )
        if match is None or to_decimal(match.target) == ZERO:
            continue
        rows.append(
            CurrentWeekTarget(
                category_name=category_names.get(sub_category.category_id),
                sub_category_name=sub_category.name,
                target=to_decimal(match.target),
            )
        )
    return rows


def years_with_entries(entries: Iterable[EntryRecord], today: date) -> list[int]:
    """Distinct entry years, newest first; undated entries count as this year."""

    years: set[int] = set()
    for entry in entries:
        parsed = parse_date(entry.date)
        years.add(parsed.year if parsed is not None else today.year)
    return sorted(years, reverse=True)


# ---------- Periods ----------
def resolve_date_range(
    preset: DateRangePreset,
    *,
    today: date,
    custom_from: date | None = None,
    custom_to: date | None = None,
) -> DateRange:
    if preset is DateRangePreset.THIS_WEEK:
        monday = week_start(today)
        return DateRange(date_from=monday, date_to=monday + timedelta(days=6))
    if preset is DateRangePreset.THIS_MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateRange(date_from=today.replace(day=1), date_to=today.replace(day=last_day))
    if preset is DateRangePreset.THIS_YEAR:
        return DateRange(date_from=date(today.year, 1, 1), date_to=date(today.year, 12, 31))
    return custom_range(custom_from, custom_to)


def custom_range(date_from: date | None, date_to: date | None) -> DateRange:
    if date_from is None or date_to is None:
        raise ValueError("custom range requires both date_from and date_to.")
    if date_to < date_from:
        raise ValueError("date_to must be greater than or equal to date_from.")
    return DateRange(date_from=date_from, date_to=date_to)


def week_bounds(year: int, week: int) -> DateRange:
    """Monday-started week ``week`` of ``year``.

    Week 1 is the week containing January 1. A trailing week that already
    contains January 1 of the next year belongs to that year instead.
    """

    if week < 1:
        raise ValueError("week must be greater or equal 1.")
    start = week_start(date(year, 1, 1)) + timedelta(weeks=week - 1)
    end = start + timedelta(days=6)
    if end.year != year:
        raise ValueError(f"week {week} does not exist in {year}.")
    return DateRange(date_from=start, date_to=end)


def report_period(
    kind: ReportPeriodKind,
    *,
    year: int | None = None,
    week: int | None = None,
    month: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> ReportPeriod:
    """Interval and download file name for an export period."""

    if kind is ReportPeriodKind.CUSTOM:
        span = custom_range(date_from, date_to)
        return ReportPeriod(
            date_from=span.date_from,
            date_to=span.date_to,
            filename_stem=f"custom_report_{span.date_from.isoformat()}_to_{span.date_to.isoformat()}",
        )

    if year is None:
        raise ValueError(f"{kind.value} report requires year.")

    if kind is ReportPeriodKind.WEEKLY:
        if week is None:
            raise ValueError("weekly report requires week.")
        span = week_bounds(year, week)
        return ReportPeriod(span.date_from, span.date_to, f"weekly_report_{year}_w{week}")

    if kind is ReportPeriodKind.MONTHLY:
        if month is None or not 1 <= month <= 12:
            raise ValueError("monthly report requires month between 1 and 12.")
        last_day = calendar.monthrange(year, month)[1]
        return ReportPeriod(date(year, month, 1), date(year, month, last_day), f"monthly_report_{year}_{month:02d}")

    return ReportPeriod(date(year, 1, 1), date(year, 12, 31), f"yearly_report_{year}")


# ---------- CSV ----------
@dataclass(frozen=True, slots=True)
class CsvLookups:
    """Name joins used to render entry rows."""

    member_names: Mapping[str, str]
    tasks: Mapping[str, TaskRecord]
    sub_categories: Mapping[str, SubCategoryRecord]
    category_names: Mapping[str, str]

    @classmethod
    def build(
        cls,
        *,
        members: Iterable[TeamMemberRecord],
        categories: Iterable[CategoryRecord],
        sub_categories: Iterable[SubCategoryRecord],
        tasks: Iterable[TaskRecord],
    ) -> CsvLookups:
        return cls(
            member_names={member.id: member.name for member in members},
            tasks={task.id: task for task in tasks},
            sub_categories={sub_category.id: sub_category for sub_category in sub_categories},
            category_names={category.id: category.name for category in categories},
        )


def _export_number(value: object) -> int | Decimal:
    number = to_decimal(value)
    if number == number.to_integral_value():
        return int(number)
    return number.normalize()


def _export_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def csv_rows(entries: Iterable[EntryRecord], lookups: CsvLookups) -> list[list[object]]:
    """Export rows in input order; text cells are strings, quantities numbers."""

    rows: list[list[object]] = []
    for entry in entries:
        task = lookups.tasks.get(entry.task_id)
        sub_category = lookups.sub_categories.get(task.sub_category_id) if task is not None else None
        category_name = (
            lookups.category_names.get(sub_category.category_id, NOT_AVAILABLE)
            if sub_category is not None
            else NOT_AVAILABLE
        )
        rows.append(
            [
                _export_text(entry.id),
                _export_text(entry.date),
                lookups.member_names.get(entry.member_id, NOT_AVAILABLE),
                category_name,
                sub_category.name if sub_category is not None else NOT_AVAILABLE,
                task.name if task is not None else NOT_AVAILABLE,
                _export_number(entry.actual_time),
                _export_number(entry.units_completed),
                _export_text(entry.unit_id),
                _export_text(entry.completed_milestone),
                _export_text(entry.notes),
                _export_text(entry.submitted_by),
                _export_text(entry.timestamp),
            ]
        )
    return rows


def _csv_cell(index: int, value: object) -> str:
    text = str(value)
    if index in QUOTED_CSV_COLUMNS or any(char in text for char in ',"\r\n'):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(entries: Iterable[EntryRecord], lookups: CsvLookups) -> str:
    """Serialize entries with the fixed export header.

    Name, unit, milestone, note and submitter cells are always quoted; ids,
    dates, quantities and timestamps are written bare unless they contain a
    separator or quote.
    """

    lines = [",".join(CSV_HEADER)]
    for row in csv_rows(entries, lookups):
        lines.append(",".join(_csv_cell(index, value) for index, value in enumerate(row)))
    return "\n".join(lines) + "\n"
