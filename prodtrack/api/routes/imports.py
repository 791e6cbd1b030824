"""Import endpoint for rows exported from the spreadsheet store."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin
from prodtrack.db.dependencies import get_db_session
from prodtrack.services.import_service import ImportService

router = APIRouter(prefix="/imports", tags=["imports"])


class SheetRowsPayload(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)


@router.post("/sheet-rows")
def import_sheet_rows(
    payload: SheetRowsPayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ImportService(db).import_sheet_rows(list(payload.rows))
