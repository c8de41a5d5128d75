"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, replacing the loose
dictionaries the planner used to pass between its layers.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from campus_planner.domain.task import Task


class ValidationResult(BaseModel):
    """Outcome of validating a single field."""

    ok: bool
    value: Any = None
    error: str | None = None


class SearchMatch(BaseModel):
    """One occurrence of a search query inside a piece of text."""

    text: str
    index: int = Field(..., description="Offset of the match in the searched text")
    length: int


class MergeMode(StrEnum):
    """How imported tasks combine with existing ones."""

    MERGE = "merge"
    REPLACE = "replace"
    APPEND = "append"


class ImportOptions(BaseModel):
    """Options for a full import."""

    merge_mode: MergeMode = MergeMode.MERGE
    include_settings: bool = True
    include_ui: bool = True


class ImportSummary(BaseModel):
    """Result of a successful import."""

    ok: bool = True
    imported_tasks: int
    total_tasks: int
    imported_settings: bool
    imported_ui: bool
    merge_mode: MergeMode
    message: str


class BackupInfo(BaseModel):
    """Backup ring entry."""

    key: str
    date: str
    timestamp: int = Field(..., description="Epoch milliseconds parsed from backupDate")


class RestoreResult(BaseModel):
    """Result of restoring a backup."""

    ok: bool = True
    key: str
    backup_date: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict, repr=False, description="Restored state triple")


class ClearResult(BaseModel):
    """Result of clearing all data."""

    ok: bool
    backup_key: str | None
    message: str


class StorageInfo(BaseModel):
    """Storage usage overview."""

    main_data_size: int
    backup_count: int
    total_backup_size: int
    total_size: int
    auto_backup_enabled: bool
    last_backup: str | None = None


class TaskStats(BaseModel):
    """Dashboard statistics over a task snapshot."""

    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    total_hours_planned: float
    completed_hours: float
    top_tag: str | None
    top_tag_count: int
    upcoming_this_week: int
    overdue_tasks: int
    completion_rate: float
    average_task_duration: float


class WeeklyProgress(BaseModel):
    """Progress towards the weekly hour target."""

    week_start: datetime
    week_end: datetime
    completed_hours: float
    planned_hours: float
    progress_percentage: float
    actual_percentage: float
    is_over_target: bool
    is_under_target: bool
    remaining_hours: float
    current_day: str
    days_into_week: int
    expected_hours_by_now: float
    weekly_target: float
    weekly_tasks: int


class TaskView(BaseModel):
    """Processed task list with counts and search metadata."""

    tasks: list[Task]
    total_count: int
    filtered_count: int
    has_search: bool
    search_query: str | None = None
    regex_fallback: bool = False
