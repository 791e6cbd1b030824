"""Category, sub-category, weekly target and task endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin, require_any_role
from prodtrack.db.dependencies import get_db_session
from prodtrack.models.entities import MAX_HOURS, MAX_TARGET, TrackingMethod
from prodtrack.services.structure_service import (
    CategoryCreateData,
    CategoryUpdateData,
    StructureService,
    SubCategoryCreateData,
    SubCategoryUpdateData,
    TaskCreateData,
    TaskUpdateData,
    WeeklyTargetInput,
)

router = APIRouter(tags=["structure"])


class CategoryCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = True


class CategoryUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None


class SubCategoryCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category_id: UUID
    tracking_method: TrackingMethod = TrackingMethod.UNITS
    is_active: bool = True


class SubCategoryUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category_id: UUID | None = None
    tracking_method: TrackingMethod | None = None
    is_active: bool | None = None


class WeeklyTargetPayload(BaseModel):
    week_start_date: date
    target: Decimal = Field(ge=0, le=MAX_TARGET)


class WeeklyTargetsReplacePayload(BaseModel):
    targets: list[WeeklyTargetPayload] = Field(default_factory=list)


class TaskCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sub_category_id: UUID
    standard_time: Decimal = Field(ge=0, le=MAX_HOURS)
    department: str = Field(default="", max_length=255)
    milestones: list[str] = Field(default_factory=list)
    is_active: bool = True


class TaskUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sub_category_id: UUID | None = None
    standard_time: Decimal | None = Field(default=None, ge=0, le=MAX_HOURS)
    department: str | None = Field(default=None, max_length=255)
    milestones: list[str] | None = None
    is_active: bool | None = None


class TaskCopyPayload(BaseModel):
    source_sub_category_id: UUID
    task_ids: list[UUID] = Field(default_factory=list)


def _service(db: Session) -> StructureService:
    return StructureService(db)


@router.get("/structure")
def get_active_structure(
    _: RequestUserContext = Depends(require_any_role),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    """Active hierarchy and team members for the entry form."""

    return _service(db).active_structure()


# ---------- Categories ----------
@router.get("/categories")
def list_categories(
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_category(row) for row in service.list_categories()]}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    category = service.create_category(CategoryCreateData(name=payload.name, is_active=payload.is_active))
    return service.serialize_category(category)


@router.patch("/categories/{category_id}")
def update_category(
    category_id: UUID,
    payload: CategoryUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    category = service.update_category(
        category_id,
        CategoryUpdateData(name=payload.name, is_active=payload.is_active),
    )
    return service.serialize_category(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_category(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Sub-categories ----------
@router.get("/sub-categories")
def list_sub_categories(
    category_id: UUID | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_sub_categories(category_id=category_id)
    return {"items": [service.serialize_sub_category(row) for row in rows]}


@router.post("/sub-categories", status_code=status.HTTP_201_CREATED)
def create_sub_category(
    payload: SubCategoryCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    sub_category = service.create_sub_category(
        SubCategoryCreateData(
            name=payload.name,
            category_id=payload.category_id,
            tracking_method=payload.tracking_method,
            is_active=payload.is_active,
        )
    )
    return service.serialize_sub_category(sub_category)


@router.patch("/sub-categories/{sub_category_id}")
def update_sub_category(
    sub_category_id: UUID,
    payload: SubCategoryUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    sub_category = service.update_sub_category(
        sub_category_id,
        SubCategoryUpdateData(
            name=payload.name,
            category_id=payload.category_id,
            tracking_method=payload.tracking_method,
            is_active=payload.is_active,
        ),
    )
    return service.serialize_sub_category(sub_category)


@router.delete("/sub-categories/{sub_category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sub_category(
    sub_category_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_sub_category(sub_category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sub-categories/{sub_category_id}/targets")
def list_weekly_targets(
    sub_category_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_target(row) for row in service.list_targets(sub_category_id)]}


@router.put("/sub-categories/{sub_category_id}/targets")
def replace_weekly_targets(
    sub_category_id: UUID,
    payload: WeeklyTargetsReplacePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.replace_targets(
        sub_category_id,
        [WeeklyTargetInput(week_start_date=item.week_start_date, target=item.target) for item in payload.targets],
    )
    return {"items": [service.serialize_target(row) for row in rows]}


@router.post("/sub-categories/{sub_category_id}/tasks/copy", status_code=status.HTTP_201_CREATED)
def copy_tasks(
    sub_category_id: UUID,
    payload: TaskCopyPayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    copies = service.copy_tasks(
        source_sub_category_id=payload.source_sub_category_id,
        destination_sub_category_id=sub_category_id,
        task_ids=payload.task_ids,
    )
    return {"items": [service.serialize_task(row) for row in copies]}


# ---------- Tasks ----------
@router.get("/tasks")
def list_tasks(
    sub_category_id: UUID | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_task(row) for row in service.list_tasks(sub_category_id=sub_category_id)]}


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    task = service.create_task(
        TaskCreateData(
            name=payload.name,
            sub_category_id=payload.sub_category_id,
            standard_time=payload.standard_time,
            department=payload.department,
            milestones=payload.milestones,
            is_active=payload.is_active,
        )
    )
    return service.serialize_task(task)


@router.patch("/tasks/{task_id}")
def update_task(
    task_id: UUID,
    payload: TaskUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    task = service.update_task(
        task_id,
        TaskUpdateData(
            name=payload.name,
            sub_category_id=payload.sub_category_id,
            standard_time=payload.standard_time,
            department=payload.department,
            milestones=payload.milestones,
            is_active=payload.is_active,
        ),
    )
    return service.serialize_task(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
