"""Reporting helper endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin
from prodtrack.db.dependencies import get_db_session
from prodtrack.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/years")
def list_report_years(
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[int]]:
    """Years that have production entries, newest first."""

    return {"items": ReportingService(db).report_years()}
