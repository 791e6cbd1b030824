"""Dashboard endpoints for production analytics."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin, require_any_role
from prodtrack.db.dependencies import get_db_session
from prodtrack.services.aggregation import DateRangePreset
from prodtrack.services.reporting_service import ReportingService

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/analytics")
def get_analytics(
    preset: DateRangePreset = DateRangePreset.THIS_WEEK,
    date_from: date | None = None,
    date_to: date | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).analytics(preset=preset, date_from=date_from, date_to=date_to)


@router.get("/current-week-targets")
def get_current_week_targets(
    _: RequestUserContext = Depends(require_any_role),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": _service(db).current_week_targets()}
