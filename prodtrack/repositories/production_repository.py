"""Repository helpers for the production structure and entry domain."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from prodtrack.models.entities import (
    Category,
    DailyEntry,
    SubCategory,
    Task,
    TeamMember,
    WeeklyTarget,
)


class ProductionRepository:
    """Persistence operations used by structure, entry and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Categories ----------
    def list_categories(self) -> list[Category]:
        return self.db.scalars(select(Category).order_by(Category.name.asc())).all()

    def get_category(self, category_id: UUID) -> Category | None:
        return self.db.scalar(select(Category).where(Category.id == category_id))

    def add_category(self, category: Category) -> Category:
        self.db.add(category)
        self.db.flush()
        return category

    def delete_category(self, category: Category) -> None:
        self.db.delete(category)
        self.db.flush()

    def sub_category_count_for_category(self, category_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count()).select_from(SubCategory).where(SubCategory.category_id == category_id))
            or 0
        )

    # ---------- Sub-categories ----------
    def list_sub_categories(self, *, category_id: UUID | None = None) -> list[SubCategory]:
        query = select(SubCategory)
        if category_id is not None:
            query = query.where(SubCategory.category_id == category_id)
        return self.db.scalars(query.order_by(SubCategory.name.asc())).all()

    def get_sub_category(self, sub_category_id: UUID) -> SubCategory | None:
        return self.db.scalar(select(SubCategory).where(SubCategory.id == sub_category_id))

    def add_sub_category(self, sub_category: SubCategory) -> SubCategory:
        self.db.add(sub_category)
        self.db.flush()
        return sub_category

    def delete_sub_category(self, sub_category: SubCategory) -> None:
        self.delete_targets_for_sub_category(sub_category.id)
        self.db.delete(sub_category)
        self.db.flush()

    def task_count_for_sub_category(self, sub_category_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count()).select_from(Task).where(Task.sub_category_id == sub_category_id))
            or 0
        )

    # ---------- Weekly targets ----------
    def list_targets(self, *, sub_category_id: UUID | None = None) -> list[WeeklyTarget]:
        query = select(WeeklyTarget)
        if sub_category_id is not None:
            query = query.where(WeeklyTarget.sub_category_id == sub_category_id)
        return self.db.scalars(
            query.order_by(WeeklyTarget.sub_category_id.asc(), WeeklyTarget.week_start_date.asc())
        ).all()

    def delete_targets_for_sub_category(self, sub_category_id: UUID) -> None:
        self.db.execute(delete(WeeklyTarget).where(WeeklyTarget.sub_category_id == sub_category_id))
        self.db.flush()

    def add_target(self, target: WeeklyTarget) -> WeeklyTarget:
        self.db.add(target)
        self.db.flush()
        return target

    # ---------- Tasks ----------
    def list_tasks(self, *, sub_category_id: UUID | None = None) -> list[Task]:
        query = select(Task)
        if sub_category_id is not None:
            query = query.where(Task.sub_category_id == sub_category_id)
        return self.db.scalars(query.order_by(Task.name.asc())).all()

    def list_tasks_by_ids(self, task_ids: set[UUID]) -> list[Task]:
        if not task_ids:
            return []
        return self.db.scalars(select(Task).where(Task.id.in_(task_ids)).order_by(Task.name.asc())).all()

    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    def entry_count_for_task(self, task_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count()).select_from(DailyEntry).where(DailyEntry.task_id == task_id)) or 0
        )

    # ---------- Team members ----------
    def list_team_members(self) -> list[TeamMember]:
        return self.db.scalars(select(TeamMember).order_by(TeamMember.name.asc())).all()

    def get_team_member(self, member_id: UUID) -> TeamMember | None:
        return self.db.scalar(select(TeamMember).where(TeamMember.id == member_id))

    def add_team_member(self, member: TeamMember) -> TeamMember:
        self.db.add(member)
        self.db.flush()
        return member

    def delete_team_member(self, member: TeamMember) -> None:
        self.db.delete(member)
        self.db.flush()

    def entry_count_for_member(self, member_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count()).select_from(DailyEntry).where(DailyEntry.member_id == member_id))
            or 0
        )

    # ---------- Daily entries ----------
    def list_entries(self) -> list[DailyEntry]:
        return self.db.scalars(
            select(DailyEntry).order_by(DailyEntry.timestamp.asc().nulls_first(), DailyEntry.id.asc())
        ).all()

    def list_entries_filtered(
        self,
        *,
        member_id: UUID | None = None,
        category_id: UUID | None = None,
        sub_category_id: UUID | None = None,
        task_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[DailyEntry]:
        conditions = []
        if member_id is not None:
            conditions.append(DailyEntry.member_id == member_id)
        if task_id is not None:
            conditions.append(DailyEntry.task_id == task_id)
        if date_from is not None:
            conditions.append(DailyEntry.work_date >= date_from)
        if date_to is not None:
            conditions.append(DailyEntry.work_date <= date_to)

        query = select(DailyEntry)
        if category_id is not None or sub_category_id is not None:
            query = query.join(Task, Task.id == DailyEntry.task_id)
            if sub_category_id is not None:
                conditions.append(Task.sub_category_id == sub_category_id)
            if category_id is not None:
                query = query.join(SubCategory, SubCategory.id == Task.sub_category_id)
                conditions.append(SubCategory.category_id == category_id)

        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(
            query.order_by(DailyEntry.timestamp.desc().nulls_last(), DailyEntry.id.asc())
        ).all()

    def list_entries_in_range(self, *, date_from: date, date_to: date) -> list[DailyEntry]:
        return self.db.scalars(
            select(DailyEntry)
            .where(and_(DailyEntry.work_date >= date_from, DailyEntry.work_date <= date_to))
            .order_by(DailyEntry.work_date.asc(), DailyEntry.timestamp.asc().nulls_first(), DailyEntry.id.asc())
        ).all()

    def get_entry(self, entry_id: UUID) -> DailyEntry | None:
        return self.db.scalar(select(DailyEntry).where(DailyEntry.id == entry_id))

    def add_entries(self, entries: list[DailyEntry]) -> list[DailyEntry]:
        self.db.add_all(entries)
        self.db.flush()
        return entries

    def delete_entry(self, entry: DailyEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    # ---------- Existence checks used by imports ----------
    def existing_ids(self, model: type, ids: set[UUID]) -> set[UUID]:
        if not ids:
            return set()
        return set(self.db.scalars(select(model.id).where(model.id.in_(ids))).all())
