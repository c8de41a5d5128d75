"""Change records emitted by the state hub and the intent vocabulary."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from campus_planner.domain.settings import UIState, UserSettings
from campus_planner.domain.task import Task


class ChangeType(StrEnum):
    """Kinds of state change delivered to subscribers."""

    TASK_ADDED = "TASK_ADDED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    SETTINGS_UPDATED = "SETTINGS_UPDATED"
    UI_STATE_UPDATED = "UI_STATE_UPDATED"
    STATE_RESET = "STATE_RESET"
    DATA_IMPORTED = "DATA_IMPORTED"
    STATE_INITIALIZED = "STATE_INITIALIZED"


class Intent(StrEnum):
    """User intents a presentation layer maps onto hub operations."""

    ADD_TASK = "add-task"
    EDIT_TASK = "edit-task"
    DELETE_TASK = "delete-task"
    TOGGLE_TASK_STATUS = "toggle-task-status"
    BULK_COMPLETE = "bulk-complete"
    BULK_PENDING = "bulk-pending"
    BULK_DELETE = "bulk-delete"
    SEARCH_TASKS = "search-tasks"
    FILTER_TASKS = "filter-tasks"
    SORT_TASKS = "sort-tasks"
    SET_VIEW_MODE = "set-view-mode"
    TOGGLE_SEARCH_MODE = "toggle-search-mode"
    UPDATE_SETTING = "update-setting"
    EXPORT_DATA = "export-data"
    EXPORT_SETTINGS = "export-settings"
    IMPORT_DATA = "import-data"
    CLEAR_DATA = "clear-data"
    NAVIGATE = "navigate"


class StateSnapshot(BaseModel):
    """Deep copy of the hub state handed to subscribers and readers."""

    tasks: list[Task] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)
    ui: UIState = Field(default_factory=UIState)

    def to_record(self) -> dict[str, Any]:
        """Persisted form: tasks, settings and the persisted UI subset."""
        return {
            "tasks": [task.to_record() for task in self.tasks],
            "settings": self.settings.to_record(),
            "ui": self.ui.preferences().to_record(),
        }


class ChangeRecord(BaseModel):
    """Describes one state change."""

    type: ChangeType
    task: Task | None = Field(default=None, description="Affected task for single-task events")
    tasks: list[Task] | None = Field(default=None, description="Affected tasks for bulk events")
    settings: UserSettings | None = None
    previous_settings: UserSettings | None = None
    ui_state: UIState | None = None
    previous_ui_state: UIState | None = None
    import_summary: dict[str, Any] | None = None
