"""ORM model package."""

from prodtrack.models.entities import (
    Category,
    DailyEntry,
    SubCategory,
    Task,
    TeamMember,
    TrackingMethod,
    WeeklyTarget,
)

__all__ = [
    "Category",
    "DailyEntry",
    "SubCategory",
    "Task",
    "TeamMember",
    "TrackingMethod",
    "WeeklyTarget",
]
