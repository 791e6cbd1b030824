"""Dashboard analytics and entry exports built on the aggregation engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from io import BytesIO

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from prodtrack.repositories.production_repository import ProductionRepository
from prodtrack.services.aggregation import (
    CSV_HEADER,
    CsvLookups,
    DateRangePreset,
    ReportPeriodKind,
    csv_rows,
    current_week_targets,
    filter_entries_in_range,
    milestone_funnel,
    report_period,
    resolve_date_range,
    target_vs_actual,
    time_efficiency,
    to_csv,
    years_with_entries,
)
from prodtrack.services.ingestion import ProductionSnapshot, snapshot_from_models

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {"csv", "xlsx"}
NO_DATA_DETAIL = "No data found for the selected period."


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


class ReportingService:
    """Read-only reporting over the relational store."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProductionRepository(db)

    def _snapshot(self, *, date_from: date | None = None, date_to: date | None = None) -> ProductionSnapshot:
        if date_from is not None and date_to is not None:
            entries = self.repo.list_entries_in_range(date_from=date_from, date_to=date_to)
        else:
            entries = self.repo.list_entries()
        return snapshot_from_models(
            categories=self.repo.list_categories(),
            sub_categories=self.repo.list_sub_categories(),
            targets=self.repo.list_targets(),
            tasks=self.repo.list_tasks(),
            team_members=self.repo.list_team_members(),
            entries=entries,
        )

    def analytics(
        self,
        *,
        preset: DateRangePreset,
        date_from: date | None = None,
        date_to: date | None = None,
        today: date | None = None,
    ) -> dict[str, object]:
        try:
            span = resolve_date_range(
                preset,
                today=today or date.today(),
                custom_from=date_from,
                custom_to=date_to,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

        snapshot = self._snapshot(date_from=span.date_from, date_to=span.date_to)
        in_range = filter_entries_in_range(snapshot.entries, span.date_from, span.date_to)

        return {
            "date_from": span.date_from.isoformat(),
            "date_to": span.date_to.isoformat(),
            "target_vs_actual": [
                {"name": row.name, "target": str(row.target), "actual": str(row.actual)}
                for row in target_vs_actual(
                    snapshot.sub_categories, snapshot.tasks, in_range, span.date_from, span.date_to
                )
            ],
            "time_efficiency": [
                {
                    "name": row.name,
                    "standard_time": str(row.standard_time),
                    "average_actual_time": str(row.average_actual_time),
                }
                for row in time_efficiency(snapshot.tasks, in_range)
            ],
            "milestone_funnel": [
                {"name": row.name, "completed_units": row.completed_units}
                for row in milestone_funnel(snapshot.tasks, snapshot.sub_categories, in_range)
            ],
        }

    def current_week_targets(self, *, today: date | None = None) -> list[dict[str, object]]:
        snapshot = self._snapshot()
        rows = current_week_targets(snapshot.categories, snapshot.sub_categories, today or date.today())
        return [
            {
                "category_name": row.category_name,
                "sub_category_name": row.sub_category_name,
                "target": str(row.target),
            }
            for row in rows
        ]

    def report_years(self, *, today: date | None = None) -> list[int]:
        snapshot = self._snapshot()
        return years_with_entries(snapshot.entries, today or date.today())

    def export_entries(
        self,
        *,
        period: ReportPeriodKind,
        format_name: str,
        year: int | None = None,
        week: int | None = None,
        month: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in EXPORT_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        try:
            selected = report_period(
                period,
                year=year,
                week=week,
                month=month,
                date_from=date_from,
                date_to=date_to,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

        snapshot = self._snapshot(date_from=selected.date_from, date_to=selected.date_to)
        entries = filter_entries_in_range(snapshot.entries, selected.date_from, selected.date_to)
        if not entries:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_DATA_DETAIL)

        lookups = CsvLookups.build(
            members=snapshot.team_members,
            categories=snapshot.categories,
            sub_categories=snapshot.sub_categories,
            tasks=snapshot.tasks,
        )
        logger.info("Exporting %d entries as %s (%s)", len(entries), normalized_format, selected.filename_stem)

        if normalized_format == "csv":
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{selected.filename_stem}.csv",
                content=to_csv(entries, lookups).encode("utf-8"),
            )

        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "entries"
        sheet.append(list(CSV_HEADER))
        for row in csv_rows(entries, lookups):
            sheet.append(row)

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{selected.filename_stem}.xlsx",
            content=output.getvalue(),
        )
