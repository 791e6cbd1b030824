"""Team member administration endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from prodtrack.core.auth import RequestUserContext, require_admin
from prodtrack.db.dependencies import get_db_session
from prodtrack.services.structure_service import StructureService, TeamMemberCreateData, TeamMemberUpdateData

router = APIRouter(prefix="/team-members", tags=["team-members"])


class TeamMemberCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    role: str = Field(min_length=1, max_length=255)
    department: str = Field(min_length=1, max_length=255)
    is_active: bool = True


class TeamMemberUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: str | None = Field(default=None, min_length=1, max_length=255)
    department: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None


def _service(db: Session) -> StructureService:
    return StructureService(db)


@router.get("")
def list_team_members(
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_team_member(row) for row in service.list_team_members()]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_team_member(
    payload: TeamMemberCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    member = service.create_team_member(
        TeamMemberCreateData(
            name=payload.name,
            role=payload.role,
            department=payload.department,
            is_active=payload.is_active,
        )
    )
    return service.serialize_team_member(member)


@router.patch("/{member_id}")
def update_team_member(
    member_id: UUID,
    payload: TeamMemberUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    member = service.update_team_member(
        member_id,
        TeamMemberUpdateData(
            name=payload.name,
            role=payload.role,
            department=payload.department,
            is_active=payload.is_active,
        ),
    )
    return service.serialize_team_member(member)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team_member(
    member_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_team_member(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
