"""Export endpoint for production entries."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin
from prodtrack.db.dependencies import get_db_session
from prodtrack.services.aggregation import ReportPeriodKind
from prodtrack.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/entries")
def export_entries(
    period: ReportPeriodKind = Query(...),
    format: str = Query(default="csv"),
    year: int | None = Query(default=None),
    week: int | None = Query(default=None),
    month: int | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_entries(
        period=period,
        format_name=format,
        year=year,
        week=week,
        month=month,
        date_from=date_from,
        date_to=date_to,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
