"""Application service for the Category -> SubCategory -> Task hierarchy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prodtrack.models.entities import (
    MAX_HOURS,
    MAX_TARGET,
    Category,
    SubCategory,
    Task,
    TeamMember,
    TrackingMethod,
    WeeklyTarget,
)
from prodtrack.repositories.production_repository import ProductionRepository
from prodtrack.services.aggregation import week_start

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q2 = Decimal("0.01")
Q3 = Decimal("0.001")


def _standard_time(value: Decimal) -> Decimal:
    if value < ZERO or value > MAX_HOURS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"standard_time must be between 0 and {MAX_HOURS}.",
        )
    return value.quantize(Q3)


@dataclass(slots=True)
class CategoryCreateData:
    name: str
    is_active: bool = True


@dataclass(slots=True)
class CategoryUpdateData:
    name: str | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class SubCategoryCreateData:
    name: str
    category_id: UUID
    tracking_method: TrackingMethod
    is_active: bool = True


@dataclass(slots=True)
class SubCategoryUpdateData:
    name: str | None = None
    category_id: UUID | None = None
    tracking_method: TrackingMethod | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class WeeklyTargetInput:
    week_start_date: date
    target: Decimal


@dataclass(slots=True)
class TaskCreateData:
    name: str
    sub_category_id: UUID
    standard_time: Decimal
    department: str
    milestones: list[str]
    is_active: bool = True


@dataclass(slots=True)
class TaskUpdateData:
    name: str | None = None
    sub_category_id: UUID | None = None
    standard_time: Decimal | None = None
    department: str | None = None
    milestones: list[str] | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class TeamMemberCreateData:
    name: str
    role: str
    department: str
    is_active: bool = True


@dataclass(slots=True)
class TeamMemberUpdateData:
    name: str | None = None
    role: str | None = None
    department: str | None = None
    is_active: bool | None = None


def normalize_milestones(values: list[str]) -> list[str]:
    """Strip names and drop blanks; names must stay distinct."""

    milestones = [value.strip() for value in values if value and value.strip()]
    if len(set(milestones)) != len(milestones):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Task milestones must be distinct.",
        )
    return milestones


def _required_text(value: str, field_name: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{field_name} must not be blank.",
        )
    return normalized


class StructureService:
    """Service implementing hierarchy, target and team member management."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProductionRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_category(category: Category) -> dict[str, object]:
        return {
            "id": str(category.id),
            "name": category.name,
            "is_active": category.is_active,
            "created_at": category.created_at.isoformat(),
        }

    @staticmethod
    def serialize_target(target: WeeklyTarget) -> dict[str, object]:
        return {
            "week_start_date": target.week_start_date.isoformat(),
            "target": str(target.target),
        }

    def serialize_sub_category(
        self,
        sub_category: SubCategory,
        targets: list[WeeklyTarget] | None = None,
    ) -> dict[str, object]:
        if targets is None:
            targets = self.repo.list_targets(sub_category_id=sub_category.id)
        return {
            "id": str(sub_category.id),
            "name": sub_category.name,
            "category_id": str(sub_category.category_id),
            "tracking_method": sub_category.tracking_method.value,
            "targets": [self.serialize_target(target) for target in targets],
            "is_active": sub_category.is_active,
            "created_at": sub_category.created_at.isoformat(),
        }

    @staticmethod
    def serialize_task(task: Task) -> dict[str, object]:
        return {
            "id": str(task.id),
            "name": task.name,
            "sub_category_id": str(task.sub_category_id),
            "standard_time": str(task.standard_time),
            "department": task.department,
            "milestones": list(task.milestones or []),
            "is_active": task.is_active,
            "created_at": task.created_at.isoformat(),
        }

    @staticmethod
    def serialize_team_member(member: TeamMember) -> dict[str, object]:
        return {
            "id": str(member.id),
            "name": member.name,
            "role": member.role,
            "department": member.department,
            "is_active": member.is_active,
            "created_at": member.created_at.isoformat(),
        }

    # ---------- Lookups ----------
    def _get_category_or_404(self, category_id: UUID) -> Category:
        category = self.repo.get_category(category_id)
        if category is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found.")
        return category

    def _get_sub_category_or_404(self, sub_category_id: UUID) -> SubCategory:
        sub_category = self.repo.get_sub_category(sub_category_id)
        if sub_category is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sub-category not found.")
        return sub_category

    def _get_task_or_404(self, task_id: UUID) -> Task:
        task = self.repo.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task

    def _get_team_member_or_404(self, member_id: UUID) -> TeamMember:
        member = self.repo.get_team_member(member_id)
        if member is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team member not found.")
        return member

    def _require_category_reference(self, category_id: UUID) -> Category:
        category = self.repo.get_category(category_id)
        if category is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Unknown category_id.",
            )
        return category

    def _require_sub_category_reference(self, sub_category_id: UUID) -> SubCategory:
        sub_category = self.repo.get_sub_category(sub_category_id)
        if sub_category is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Unknown sub_category_id.",
            )
        return sub_category

    # ---------- Categories ----------
    def list_categories(self) -> list[Category]:
        return self.repo.list_categories()

    def create_category(self, data: CategoryCreateData) -> Category:
        category = Category(
            name=_required_text(data.name, "name"),
            is_active=data.is_active,
            created_at=datetime.utcnow(),
        )
        self.repo.add_category(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info("Created category %s (%s)", category.id, category.name)
        return category

    def update_category(self, category_id: UUID, data: CategoryUpdateData) -> Category:
        category = self._get_category_or_404(category_id)
        if data.name is not None:
            category.name = _required_text(data.name, "name")
        if data.is_active is not None:
            category.is_active = data.is_active

        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: UUID) -> None:
        category = self._get_category_or_404(category_id)
        if self.repo.sub_category_count_for_category(category.id) > 0:
            logger.warning("Refused to delete category %s with sub-categories", category.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete category with existing sub-categories.",
            )

        self.repo.delete_category(category)
        self.db.commit()
        logger.info("Deleted category %s", category_id)

    # ---------- Sub-categories ----------
    def list_sub_categories(self, *, category_id: UUID | None = None) -> list[SubCategory]:
        return self.repo.list_sub_categories(category_id=category_id)

    def create_sub_category(self, data: SubCategoryCreateData) -> SubCategory:
        self._require_category_reference(data.category_id)
        sub_category = SubCategory(
            name=_required_text(data.name, "name"),
            category_id=data.category_id,
            tracking_method=data.tracking_method,
            is_active=data.is_active,
            created_at=datetime.utcnow(),
        )
        self.repo.add_sub_category(sub_category)
        self.db.commit()
        self.db.refresh(sub_category)
        logger.info("Created sub-category %s (%s)", sub_category.id, sub_category.name)
        return sub_category

    def update_sub_category(self, sub_category_id: UUID, data: SubCategoryUpdateData) -> SubCategory:
        sub_category = self._get_sub_category_or_404(sub_category_id)
        if data.category_id is not None:
            self._require_category_reference(data.category_id)
            sub_category.category_id = data.category_id
        if data.name is not None:
            sub_category.name = _required_text(data.name, "name")
        if data.tracking_method is not None:
            sub_category.tracking_method = data.tracking_method
        if data.is_active is not None:
            sub_category.is_active = data.is_active

        self.db.commit()
        self.db.refresh(sub_category)
        return sub_category

    def delete_sub_category(self, sub_category_id: UUID) -> None:
        sub_category = self._get_sub_category_or_404(sub_category_id)
        if self.repo.task_count_for_sub_category(sub_category.id) > 0:
            logger.warning("Refused to delete sub-category %s with tasks", sub_category.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete sub-category with existing tasks.",
            )

        self.repo.delete_sub_category(sub_category)
        self.db.commit()
        logger.info("Deleted sub-category %s", sub_category_id)

    # ---------- Weekly targets ----------
    def list_targets(self, sub_category_id: UUID) -> list[WeeklyTarget]:
        self._get_sub_category_or_404(sub_category_id)
        return self.repo.list_targets(sub_category_id=sub_category_id)

    def replace_targets(self, sub_category_id: UUID, targets: list[WeeklyTargetInput]) -> list[WeeklyTarget]:
        """Replace the weekly target set; every week is keyed by its Monday."""

        sub_category = self._get_sub_category_or_404(sub_category_id)

        by_week: dict[date, Decimal] = {}
        for item in targets:
            if item.target < ZERO:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="target must be greater or equal zero.",
                )
            if item.target > MAX_TARGET:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"target must be less than or equal {MAX_TARGET}.",
                )
            monday = week_start(item.week_start_date)
            if monday in by_week:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Duplicate target for week starting {monday.isoformat()}.",
                )
            by_week[monday] = item.target.quantize(Q2)

        self.repo.delete_targets_for_sub_category(sub_category.id)
        for monday in sorted(by_week):
            self.repo.add_target(
                WeeklyTarget(sub_category_id=sub_category.id, week_start_date=monday, target=by_week[monday])
            )

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Weekly targets violate target constraints.",
            ) from exc

        logger.info("Replaced %d weekly targets for sub-category %s", len(by_week), sub_category.id)
        return self.repo.list_targets(sub_category_id=sub_category.id)

    # ---------- Tasks ----------
    def list_tasks(self, *, sub_category_id: UUID | None = None) -> list[Task]:
        return self.repo.list_tasks(sub_category_id=sub_category_id)

    @staticmethod
    def _milestones_for(sub_category: SubCategory, milestones: list[str]) -> list[str]:
        if sub_category.tracking_method is not TrackingMethod.MILESTONES:
            return []
        return normalize_milestones(milestones)

    def create_task(self, data: TaskCreateData) -> Task:
        sub_category = self._require_sub_category_reference(data.sub_category_id)
        task = Task(
            name=_required_text(data.name, "name"),
            sub_category_id=sub_category.id,
            standard_time=_standard_time(data.standard_time),
            department=data.department.strip(),
            milestones=self._milestones_for(sub_category, data.milestones),
            is_active=data.is_active,
            created_at=datetime.utcnow(),
        )
        self.repo.add_task(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info("Created task %s (%s)", task.id, task.name)
        return task

    def update_task(self, task_id: UUID, data: TaskUpdateData) -> Task:
        task = self._get_task_or_404(task_id)

        target_sub_category_id = data.sub_category_id or task.sub_category_id
        sub_category = self._require_sub_category_reference(target_sub_category_id)
        task.sub_category_id = sub_category.id

        if data.name is not None:
            task.name = _required_text(data.name, "name")
        if data.standard_time is not None:
            task.standard_time = _standard_time(data.standard_time)
        if data.department is not None:
            task.department = data.department.strip()
        milestones = data.milestones if data.milestones is not None else list(task.milestones or [])
        task.milestones = self._milestones_for(sub_category, milestones)
        if data.is_active is not None:
            task.is_active = data.is_active

        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, task_id: UUID) -> None:
        task = self._get_task_or_404(task_id)
        if self.repo.entry_count_for_task(task.id) > 0:
            logger.warning("Refused to delete task %s with entries", task.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete task with existing production entries.",
            )

        self.repo.delete_task(task)
        self.db.commit()
        logger.info("Deleted task %s", task_id)

    def copy_tasks(
        self,
        *,
        source_sub_category_id: UUID,
        destination_sub_category_id: UUID,
        task_ids: list[UUID],
    ) -> list[Task]:
        """Copy selected tasks of one sub-category into another."""

        destination = self._get_sub_category_or_404(destination_sub_category_id)
        source = self._require_sub_category_reference(source_sub_category_id)
        if source.id == destination.id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Source and destination sub-categories must differ.",
            )
        if not task_ids:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Select at least one task to copy.",
            )

        selected = self.repo.list_tasks_by_ids(set(task_ids))
        found_ids = {task.id for task in selected if task.sub_category_id == source.id}
        unknown = [str(task_id) for task_id in set(task_ids) if task_id not in found_ids]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown task_id values for source sub-category: {', '.join(sorted(unknown))}",
            )

        now = datetime.utcnow()
        copies = [
            Task(
                name=task.name,
                sub_category_id=destination.id,
                standard_time=task.standard_time,
                department=task.department,
                milestones=self._milestones_for(destination, list(task.milestones or [])),
                is_active=task.is_active,
                created_at=now,
            )
            for task in selected
        ]
        for copy in copies:
            self.repo.add_task(copy)
        self.db.commit()
        for copy in copies:
            self.db.refresh(copy)

        logger.info("Copied %d tasks from %s to %s", len(copies), source.id, destination.id)
        return copies

    # ---------- Team members ----------
    def list_team_members(self) -> list[TeamMember]:
        return self.repo.list_team_members()

    def create_team_member(self, data: TeamMemberCreateData) -> TeamMember:
        member = TeamMember(
            name=_required_text(data.name, "name"),
            role=_required_text(data.role, "role"),
            department=_required_text(data.department, "department"),
            is_active=data.is_active,
            created_at=datetime.utcnow(),
        )
        self.repo.add_team_member(member)
        self.db.commit()
        self.db.refresh(member)
        logger.info("Created team member %s (%s)", member.id, member.name)
        return member

    def update_team_member(self, member_id: UUID, data: TeamMemberUpdateData) -> TeamMember:
        member = self._get_team_member_or_404(member_id)
        if data.name is not None:
            member.name = _required_text(data.name, "name")
        if data.role is not None:
            member.role = _required_text(data.role, "role")
        if data.department is not None:
            member.department = _required_text(data.department, "department")
        if data.is_active is not None:
            member.is_active = data.is_active

        self.db.commit()
        self.db.refresh(member)
        return member

    def delete_team_member(self, member_id: UUID) -> None:
        member = self._get_team_member_or_404(member_id)
        if self.repo.entry_count_for_member(member.id) > 0:
            logger.warning("Refused to delete team member %s with entries", member.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete team member with existing production entries.",
            )

        self.repo.delete_team_member(member)
        self.db.commit()
        logger.info("Deleted team member %s", member_id)

    # ---------- Entry form structure ----------
    def active_structure(self) -> dict[str, list[object]]:
        """Active hierarchy and members offered by the entry form."""

        categories = [row for row in self.repo.list_categories() if row.is_active]
        sub_categories = [row for row in self.repo.list_sub_categories() if row.is_active]
        tasks = [row for row in self.repo.list_tasks() if row.is_active]
        members = [row for row in self.repo.list_team_members() if row.is_active]
        targets = self.repo.list_targets()

        targets_by_sub_category: dict[UUID, list[WeeklyTarget]] = {}
        for target in targets:
            targets_by_sub_category.setdefault(target.sub_category_id, []).append(target)

        return {
            "categories": [self.serialize_category(row) for row in categories],
            "sub_categories": [
                self.serialize_sub_category(row, targets_by_sub_category.get(row.id, [])) for row in sub_categories
            ],
            "tasks": [self.serialize_task(row) for row in tasks],
            "team_members": [self.serialize_team_member(row) for row in members],
        }
