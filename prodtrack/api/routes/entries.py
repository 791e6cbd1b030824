"""Daily entry submission and administration endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin, require_any_role
from prodtrack.db.dependencies import get_db_session
from prodtrack.models.entities import MAX_HOURS, MAX_UNITS
from prodtrack.services.entry_service import EntryCreateData, EntryFilters, EntryService, EntryUpdateData

router = APIRouter(prefix="/entries", tags=["entries"])


class EntryCreatePayload(BaseModel):
    work_date: date = Field(alias="date")
    member_id: UUID
    task_id: UUID
    actual_time: Decimal = Field(le=MAX_HOURS)
    units_completed: int = Field(default=0, le=MAX_UNITS)
    unit_id: str = Field(default="", max_length=255)
    completed_milestone: str = Field(default="", max_length=255)
    notes: str = Field(default="", max_length=4000)


class EntryBulkPayload(BaseModel):
    entries: list[EntryCreatePayload] = Field(default_factory=list)


class EntryUpdatePayload(BaseModel):
    work_date: date | None = Field(default=None, alias="date")
    member_id: UUID | None = None
    task_id: UUID | None = None
    actual_time: Decimal | None = Field(default=None, le=MAX_HOURS)
    units_completed: int | None = Field(default=None, le=MAX_UNITS)
    unit_id: str | None = Field(default=None, max_length=255)
    completed_milestone: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=4000)


def _service(db: Session) -> EntryService:
    return EntryService(db)


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def submit_entries(
    payload: EntryBulkPayload,
    context: RequestUserContext = Depends(require_any_role),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.create_entries(
        context=context,
        items=[
            EntryCreateData(
                date=item.work_date,
                member_id=item.member_id,
                task_id=item.task_id,
                actual_time=item.actual_time,
                units_completed=item.units_completed,
                unit_id=item.unit_id,
                completed_milestone=item.completed_milestone,
                notes=item.notes,
            )
            for item in payload.entries
        ],
    )
    return {"items": [service.serialize_entry(row) for row in rows]}


@router.get("")
def list_entries(
    member_id: UUID | None = None,
    category_id: UUID | None = None,
    sub_category_id: UUID | None = None,
    task_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_entries(
        EntryFilters(
            member_id=member_id,
            category_id=category_id,
            sub_category_id=sub_category_id,
            task_id=task_id,
            date_from=date_from,
            date_to=date_to,
        )
    )
    return {"items": [service.serialize_entry(row) for row in rows]}


@router.patch("/{entry_id}")
def update_entry(
    entry_id: UUID,
    payload: EntryUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.update_entry(
        entry_id,
        EntryUpdateData(
            date=payload.work_date,
            member_id=payload.member_id,
            task_id=payload.task_id,
            actual_time=payload.actual_time,
            units_completed=payload.units_completed,
            unit_id=payload.unit_id,
            completed_milestone=payload.completed_milestone,
            notes=payload.notes,
        ),
    )
    return service.serialize_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
