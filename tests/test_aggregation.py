from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from prodtrack.services.aggregation import (
    CSV_HEADER,
    CategoryRecord,
    CsvLookups,
    CurrentWeekTarget,
    DateRange,
    DateRangePreset,
    EntryRecord,
    FunnelRow,
    ReportPeriodKind,
    SubCategoryRecord,
    TargetRecord,
    TargetVsActualRow,
    TaskRecord,
    TeamMemberRecord,
    TimeEfficiencyRow,
    current_week_targets,
    filter_entries_in_range,
    milestone_funnel,
    parse_milestones,
    parse_targets,
    report_period,
    resolve_date_range,
    target_vs_actual,
    time_efficiency,
    to_csv,
    to_decimal,
    week_bounds,
    years_with_entries,
)

JAN_1 = date(2024, 1, 1)
JAN_7 = date(2024, 1, 7)


def _entry(
    entry_id: str,
    work_date: object,
    task_id: str = "t-assembly",
    *,
    member_id: str = "m-1",
    actual_time: object = Decimal("1"),
    units: object = 0,
    unit_id: str = "",
    milestone: str = "",
    timestamp: object = "2024-01-02T10:00:00Z",
    notes: str = "",
) -> EntryRecord:
    return EntryRecord(
        id=entry_id,
        date=work_date,
        member_id=member_id,
        task_id=task_id,
        actual_time=actual_time,
        units_completed=units,
        unit_id=unit_id,
        completed_milestone=milestone,
        notes=notes,
        submitted_by="Team Lead",
        timestamp=timestamp,
    )


def _assembly(targets: object = (TargetRecord(JAN_1, 50),), *, is_active: bool = True) -> SubCategoryRecord:
    return SubCategoryRecord(
        id="sc-assembly",
        name="Assembly",
        category_id="c-production",
        tracking_method="units",
        targets=targets,
        is_active=is_active,
    )


ASSEMBLY_TASK = TaskRecord(id="t-assembly", name="Assemble Frame", sub_category_id="sc-assembly", standard_time=2)
WIDGET_SUB_CATEGORY = SubCategoryRecord(
    id="sc-widgets",
    name="Widgets",
    category_id="c-production",
    tracking_method="milestones",
)
WIDGET_TASK = TaskRecord(
    id="t-widget",
    name="Build Widget",
    sub_category_id="sc-widgets",
    standard_time=Decimal("4.5"),
    milestones=("Frame", "Wire", "QA"),
)


# ---------- Date range filtering ----------
def test_filter_keeps_order_and_bounds() -> None:
    entries = [
        _entry("e1", "2024-01-07"),
        _entry("e2", "2023-12-31"),
        _entry("e3", date(2024, 1, 1)),
        _entry("e4", "2024-01-08"),
        _entry("e5", "2024-01-03"),
    ]

    selected = filter_entries_in_range(entries, JAN_1, JAN_7)

    assert [entry.id for entry in selected] == ["e1", "e3", "e5"]
    assert all(JAN_1 <= date.fromisoformat(str(entry.date)) <= JAN_7 for entry in selected)


def test_filter_excludes_unparsable_dates() -> None:
    entries = [
        _entry("e1", None),
        _entry("e2", "not a date"),
        _entry("e3", ""),
        _entry("e4", "2024-01-02T08:30:00Z"),
    ]

    assert [entry.id for entry in filter_entries_in_range(entries, JAN_1, JAN_7)] == ["e4"]


# ---------- Target vs actual ----------
def test_target_vs_actual_assembly_scenario() -> None:
    entries = [
        _entry("e1", "2024-01-02", units=20),
        _entry("e2", "2024-01-05", units="17"),
        _entry("e3", "2024-01-08", units=100),
        _entry("e4", "2024-01-03", task_id="t-other", units=9),
    ]

    rows = target_vs_actual([_assembly()], [ASSEMBLY_TASK], entries, JAN_1, JAN_7)

    assert rows == [TargetVsActualRow(name="Assembly", target=Decimal("50"), actual=Decimal("37"))]


def test_target_vs_actual_excludes_sub_categories_without_targets_in_range() -> None:
    outside = _assembly((TargetRecord(date(2024, 1, 8), 50), TargetRecord(date(2023, 12, 25), 40)))

    assert target_vs_actual([outside], [ASSEMBLY_TASK], [_entry("e1", "2024-01-02", units=5)], JAN_1, JAN_7) == []


def test_target_vs_actual_skips_inactive_and_tolerates_dirty_values() -> None:
    json_targets = _assembly('[{"weekStartDate": "2024-01-01", "target": 30}, {"weekStartDate": "bad", "target": 5}]')
    broken = SubCategoryRecord(id="sc-broken", name="Broken", category_id="c", targets="{not json")
    inactive = _assembly(is_active=False)
    entries = [_entry("e1", "2024-01-02", units="abc"), _entry("e2", "2024-01-02", units=4)]

    rows = target_vs_actual([json_targets, broken, inactive], [ASSEMBLY_TASK], entries, JAN_1, JAN_7)

    assert rows == [TargetVsActualRow(name="Assembly", target=Decimal("30"), actual=Decimal("4"))]


def test_target_vs_actual_sums_every_target_week_in_range() -> None:
    sub_category = _assembly((TargetRecord(JAN_1, 50), TargetRecord(date(2024, 1, 8), 25)))

    rows = target_vs_actual([sub_category], [ASSEMBLY_TASK], [], JAN_1, date(2024, 1, 31))

    assert rows == [TargetVsActualRow(name="Assembly", target=Decimal("75"), actual=Decimal("0"))]


# ---------- Time efficiency ----------
def test_time_efficiency_averages_positive_times() -> None:
    entries = [
        _entry("e1", "2024-01-02", actual_time="1.00"),
        _entry("e2", "2024-01-02", actual_time=Decimal("1.01")),
        _entry("e3", "2024-01-02", actual_time=0),
        _entry("e4", "2024-01-02", actual_time="n/a"),
    ]

    rows = time_efficiency([ASSEMBLY_TASK], entries)

    assert rows == [
        TimeEfficiencyRow(name="Assemble Frame", standard_time=Decimal("2"), average_actual_time=Decimal("1.01"))
    ]


def test_time_efficiency_omits_tasks_without_positive_times() -> None:
    entries = [_entry("e1", "2024-01-02", task_id="t-widget", actual_time=0)]

    assert time_efficiency([ASSEMBLY_TASK, WIDGET_TASK], entries) == []


# ---------- Milestone funnel ----------
def test_funnel_build_widget_scenario() -> None:
    entries = [
        _entry("e1", "2024-01-02", "t-widget", unit_id="U1", milestone="Frame", timestamp="2024-01-02T08:00:00Z"),
        _entry("e2", "2024-01-03", "t-widget", unit_id="U1", milestone="Wire", timestamp="2024-01-03T08:00:00Z"),
    ]

    rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)

    assert rows == [
        FunnelRow(name="Build Widget - Frame", completed_units=1),
        FunnelRow(name="Build Widget - Wire", completed_units=1),
        FunnelRow(name="Build Widget - QA", completed_units=0),
    ]


def test_funnel_latest_timestamp_wins_regardless_of_input_order() -> None:
    entries = [
        _entry("e1", "2024-01-03", "t-widget", unit_id="U1", milestone="QA", timestamp="2024-01-03T08:00:00Z"),
        _entry("e2", "2024-01-02", "t-widget", unit_id="U1", milestone="Frame", timestamp="2024-01-02T08:00:00Z"),
    ]

    rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)

    assert [row.completed_units for row in rows] == [1, 1, 1]


def test_funnel_equal_timestamps_last_in_input_wins() -> None:
    same_time = "2024-01-02T08:00:00Z"
    entries = [
        _entry("e1", "2024-01-02", "t-widget", unit_id="U1", milestone="QA", timestamp=same_time),
        _entry("e2", "2024-01-02", "t-widget", unit_id="U1", milestone="Frame", timestamp=same_time),
    ]

    rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)
    reversed_rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], list(reversed(entries)))

    assert [row.completed_units for row in rows] == [1, 0, 0]
    assert [row.completed_units for row in reversed_rows] == [1, 1, 1]


def test_funnel_reads_naive_timestamps_as_utc() -> None:
    entries = [
        _entry("e1", "2024-01-02", "t-widget", unit_id="U1", milestone="Wire", timestamp="2024-01-02T10:00:00"),
        _entry(
            "e2", "2024-01-02", "t-widget", unit_id="U1", milestone="QA", timestamp="2024-01-02T11:00:00+02:00"
        ),
    ]

    rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)

    assert [row.completed_units for row in rows] == [1, 1, 0]


def test_funnel_ignores_unusable_entries() -> None:
    entries = [
        _entry("e1", "2024-01-02", "t-widget", unit_id="", milestone="QA"),
        _entry("e2", "2024-01-02", "t-widget", unit_id="U2", milestone="QA", timestamp="yesterday"),
        _entry("e3", "2024-01-02", "t-widget", unit_id="U3", milestone=""),
        _entry("e4", "2024-01-02", "t-widget", unit_id="U4", milestone="Painting"),
    ]

    rows = milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)

    assert [row.completed_units for row in rows] == [0, 0, 0]


def test_funnel_selects_only_milestone_tasks_with_milestones() -> None:
    json_task = TaskRecord(id="t-json", name="Paint", sub_category_id="sc-widgets", milestones='["Prime", "Coat"]')
    empty_task = TaskRecord(id="t-empty", name="Empty", sub_category_id="sc-widgets", milestones="[]")
    broken_task = TaskRecord(id="t-broken", name="Broken", sub_category_id="sc-widgets", milestones="[oops")
    units_task = TaskRecord(
        id="t-units", name="Counted", sub_category_id="sc-assembly", milestones=("Should", "Not", "Appear")
    )
    entries = [_entry("e1", "2024-01-02", "t-json", unit_id="P1", milestone="Coat")]

    rows = milestone_funnel(
        [json_task, empty_task, broken_task, units_task, WIDGET_TASK],
        [_assembly(), WIDGET_SUB_CATEGORY],
        entries,
    )

    assert [row.name for row in rows] == [
        "Paint - Prime",
        "Paint - Coat",
        "Build Widget - Frame",
        "Build Widget - Wire",
        "Build Widget - QA",
    ]
    assert [row.completed_units for row in rows[:2]] == [1, 1]


def test_funnel_counts_are_non_increasing() -> None:
    progress = {"U1": "Frame", "U2": "Wire", "U3": "QA", "U4": "Wire", "U5": "Frame"}
    entries = [
        _entry(f"e-{unit}", "2024-01-02", "t-widget", unit_id=unit, milestone=milestone)
        for unit, milestone in progress.items()
    ]

    counts = [row.completed_units for row in milestone_funnel([WIDGET_TASK], [WIDGET_SUB_CATEGORY], entries)]

    assert counts == [5, 3, 1]
    assert all(earlier >= later for earlier, later in zip(counts, counts[1:]))


# ---------- Purity ----------
def test_aggregations_are_idempotent() -> None:
    sub_categories = [_assembly(), WIDGET_SUB_CATEGORY]
    tasks = [ASSEMBLY_TASK, WIDGET_TASK]
    entries = [
        _entry("e1", "2024-01-02", units=3, actual_time="2.25"),
        _entry("e2", "2024-01-03", "t-widget", unit_id="U1", milestone="Wire"),
    ]

    first = (
        target_vs_actual(sub_categories, tasks, entries, JAN_1, JAN_7),
        time_efficiency(tasks, entries),
        milestone_funnel(tasks, sub_categories, entries),
    )
    second = (
        target_vs_actual(sub_categories, tasks, entries, JAN_1, JAN_7),
        time_efficiency(tasks, entries),
        milestone_funnel(tasks, sub_categories, entries),
    )

    assert first == second
    assert [entry.id for entry in entries] == ["e1", "e2"]


# ---------- CSV ----------
def _lookups() -> CsvLookups:
    return CsvLookups.build(
        members=[TeamMemberRecord(id="m-1", name="Alice")],
        categories=[CategoryRecord(id="c-production", name="Production")],
        sub_categories=[_assembly()],
        tasks=[ASSEMBLY_TASK],
    )


def test_csv_header_and_row_shape() -> None:
    entries = [
        _entry("e1", "2024-01-02", actual_time=Decimal("2.500"), units=3, notes="hello, world"),
        _entry("e2", "2024-01-03", actual_time="1", units=0, notes='said "done"'),
    ]

    text = to_csv(entries, _lookups())
    lines = text.splitlines()

    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[1] == (
        'e1,2024-01-02,"Alice","Production","Assembly","Assemble Frame",2.5,3,"","",'
        '"hello, world","Team Lead",2024-01-02T10:00:00Z'
    )
    assert lines[2].endswith('"said ""done""","Team Lead",2024-01-02T10:00:00Z')

    parsed = list(csv.reader(io.StringIO(text)))
    assert all(len(row) == len(CSV_HEADER) for row in parsed)
    assert parsed[1][10] == "hello, world"
    assert parsed[2][10] == 'said "done"'
    assert parsed[2][6] == "1"


def test_csv_renders_missing_joins_as_not_available() -> None:
    orphan = _entry("e9", "2024-01-02", task_id="t-missing", member_id="m-missing")

    parsed = list(csv.reader(io.StringIO(to_csv([orphan], _lookups()))))

    assert parsed[1][2:6] == ["N/A", "N/A", "N/A", "N/A"]


def test_csv_keeps_input_order_and_empty_input() -> None:
    entries = [_entry("e3", "2024-01-05"), _entry("e1", "2024-01-01"), _entry("e2", "2024-01-03")]

    parsed = list(csv.reader(io.StringIO(to_csv(entries, _lookups()))))

    assert [row[0] for row in parsed[1:]] == ["e3", "e1", "e2"]
    assert to_csv([], _lookups()) == ",".join(CSV_HEADER) + "\n"


def test_csv_bare_columns_are_quoted_only_when_needed() -> None:
    entries = [_entry("legacy,1", "2024-01-02", timestamp=None, unit_id="U1", milestone="Frame")]

    line = to_csv(entries, _lookups()).splitlines()[1]

    assert line.startswith('"legacy,1",2024-01-02,"Alice"')
    assert line.endswith('"U1","Frame","","Team Lead",')


# ---------- Supplemented operations ----------
def test_parsers_never_raise() -> None:
    assert parse_targets('[{"weekStartDate": "2024-01-01", "target": 10}]') == [TargetRecord("2024-01-01", 10)]
    assert parse_targets([{"week_start_date": "2024-01-08", "target": "5"}]) == [TargetRecord("2024-01-08", "5")]
    assert parse_targets("{bad") == []
    assert parse_targets(42) == []
    assert parse_milestones('["A", 3, "", "B"]') == ["A", "B"]
    assert parse_milestones("nope") == []
    assert to_decimal("nan") == Decimal("0")
    assert to_decimal(True) == Decimal("1")


def test_resolve_date_range_presets() -> None:
    today = date(2024, 5, 15)

    assert resolve_date_range(DateRangePreset.THIS_WEEK, today=today) == DateRange(date(2024, 5, 13), date(2024, 5, 19))
    assert resolve_date_range(DateRangePreset.THIS_MONTH, today=today) == DateRange(
        date(2024, 5, 1), date(2024, 5, 31)
    )
    assert resolve_date_range(DateRangePreset.THIS_YEAR, today=today) == DateRange(
        date(2024, 1, 1), date(2024, 12, 31)
    )
    assert resolve_date_range(
        DateRangePreset.CUSTOM, today=today, custom_from=date(2024, 2, 1), custom_to=date(2024, 2, 10)
    ) == DateRange(date(2024, 2, 1), date(2024, 2, 10))


def test_resolve_custom_range_validation() -> None:
    with pytest.raises(ValueError):
        resolve_date_range(DateRangePreset.CUSTOM, today=JAN_1, custom_from=JAN_1)
    with pytest.raises(ValueError):
        resolve_date_range(DateRangePreset.CUSTOM, today=JAN_1, custom_from=JAN_7, custom_to=JAN_1)


def test_week_bounds() -> None:
    assert week_bounds(2024, 1) == DateRange(JAN_1, JAN_7)
    assert week_bounds(2023, 1) == DateRange(date(2022, 12, 26), date(2023, 1, 1))
    assert week_bounds(2023, 53) == DateRange(date(2023, 12, 25), date(2023, 12, 31))
    with pytest.raises(ValueError):
        week_bounds(2024, 53)
    with pytest.raises(ValueError):
        week_bounds(2024, 0)


def test_report_periods_and_file_names() -> None:
    weekly = report_period(ReportPeriodKind.WEEKLY, year=2024, week=2)
    monthly = report_period(ReportPeriodKind.MONTHLY, year=2024, month=2)
    yearly = report_period(ReportPeriodKind.YEARLY, year=2024)
    custom = report_period(ReportPeriodKind.CUSTOM, date_from=JAN_1, date_to=date(2024, 1, 31))

    assert (weekly.date_from, weekly.date_to, weekly.filename_stem) == (
        date(2024, 1, 8),
        date(2024, 1, 14),
        "weekly_report_2024_w2",
    )
    assert (monthly.date_from, monthly.date_to, monthly.filename_stem) == (
        date(2024, 2, 1),
        date(2024, 2, 29),
        "monthly_report_2024_02",
    )
    assert (yearly.date_from, yearly.date_to, yearly.filename_stem) == (JAN_1, date(2024, 12, 31), "yearly_report_2024")
    assert custom.filename_stem == "custom_report_2024-01-01_to_2024-01-31"

    with pytest.raises(ValueError):
        report_period(ReportPeriodKind.MONTHLY, year=2024, month=13)
    with pytest.raises(ValueError):
        report_period(ReportPeriodKind.YEARLY)
    with pytest.raises(ValueError):
        report_period(ReportPeriodKind.CUSTOM, date_from=JAN_7, date_to=JAN_1)


def test_years_with_entries_newest_first() -> None:
    entries = [_entry("e1", "2023-06-01"), _entry("e2", "2024-02-01"), _entry("e3", "garbage"), _entry("e4", "2023-01-01")]

    assert years_with_entries(entries, date(2026, 10, 19)) == [2026, 2024, 2023]
    assert years_with_entries([], date(2026, 10, 19)) == []


def test_current_week_targets() -> None:
    categories = [CategoryRecord(id="c-production", name="Production")]
    zero = SubCategoryRecord(id="sc-zero", name="Zero", category_id="c-production", targets=(TargetRecord(JAN_1, 0),))
    orphan = SubCategoryRecord(id="sc-orphan", name="Orphan", category_id="c-gone", targets=(TargetRecord(JAN_1, 8),))

    rows = current_week_targets(categories, [_assembly(), zero, orphan, _assembly(is_active=False)], date(2024, 1, 3))

    assert rows == [
        CurrentWeekTarget(category_name="Production", sub_category_name="Assembly", target=Decimal("50")),
        CurrentWeekTarget(category_name=None, sub_category_name="Orphan", target=Decimal("8")),
    ]
