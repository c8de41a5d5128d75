"""Domain models and DTOs."""

from campus_planner.domain.changes import ChangeRecord, ChangeType, Intent, StateSnapshot
from campus_planner.domain.settings import (
    DateFormat,
    FilterOption,
    SearchMode,
    SortOption,
    TimeUnit,
    UIPreferences,
    UIState,
    UserSettings,
    ViewMode,
)
from campus_planner.domain.task import Task, TaskStatus


__all__ = [
    "ChangeRecord",
    "ChangeType",
    "DateFormat",
    "FilterOption",
    "Intent",
    "SearchMode",
    "SortOption",
    "StateSnapshot",
    "Task",
    "TaskStatus",
    "TimeUnit",
    "UIPreferences",
    "UIState",
    "UserSettings",
    "ViewMode",
]
