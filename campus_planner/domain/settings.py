"""User settings and UI state models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from campus_planner.core.config import Constants


class TimeUnit(StrEnum):
    """How durations are displayed."""

    MINUTES = "minutes"
    HOURS = "hours"
    BOTH = "both"


class SortOption(StrEnum):
    """Task list orderings."""

    DATE_NEWEST = "date-newest"
    DATE_OLDEST = "date-oldest"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"
    DURATION_ASC = "duration-asc"
    DURATION_DESC = "duration-desc"


class DateFormat(StrEnum):
    """Display format for due dates."""

    ISO = "YYYY-MM-DD"
    US = "MM/DD/YYYY"
    EU = "DD/MM/YYYY"


class FilterOption(StrEnum):
    """Task list filters."""

    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"
    TODAY = "today"
    WEEK = "week"
    OVERDUE = "overdue"


class SearchMode(StrEnum):
    """How the search query is interpreted."""

    TEXT = "text"
    REGEX = "regex"


class ViewMode(StrEnum):
    """Task list layout."""

    TABLE = "table"
    CARD = "card"


class UserSettings(BaseModel):
    """User preferences. Always complete: missing keys take their defaults."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    time_unit: TimeUnit = Field(default=TimeUnit.BOTH, alias="timeUnit", description="Duration display unit")
    weekly_hour_target: float = Field(
        default=40,
        ge=0,
        le=Constants.MAX_WEEKLY_HOUR_TARGET,
        alias="weeklyHourTarget",
        description="Hours the user aims to complete each week",
    )
    default_tag: str = Field(
        default="General",
        max_length=Constants.MAX_DEFAULT_TAG_LENGTH,
        alias="defaultTag",
        description="Tag given to new tasks without one",
    )
    sort_preference: SortOption = Field(
        default=SortOption.DATE_NEWEST, alias="sortPreference", description="Preferred task ordering"
    )
    search_case_sensitive: StrictBool = Field(
        default=False, alias="searchCaseSensitive", description="Whether search matches case"
    )
    date_format: DateFormat = Field(default=DateFormat.ISO, alias="dateFormat", description="Due date display format")
    first_day_of_week: int = Field(
        default=0, ge=0, le=6, alias="firstDayOfWeek", description="First day of the week (0 = Sunday)"
    )

    @field_validator("weekly_hour_target", "first_day_of_week", mode="before")
    @classmethod
    def reject_booleans(cls, v: object) -> object:
        """Reject booleans for numeric settings."""
        if isinstance(v, bool):
            raise ValueError("Must be a number")
        return v

    @field_validator("default_tag")
    @classmethod
    def require_default_tag(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Default tag cannot be empty")
        return v

    def to_record(self) -> dict[str, object]:
        """Wire representation with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# Wire key -> model field name, accepting either spelling
SETTINGS_KEYS: dict[str, str] = {}
for _name, _field in UserSettings.model_fields.items():
    SETTINGS_KEYS[_name] = _name
    if _field.alias:
        SETTINGS_KEYS[_field.alias] = _name

SETTING_OPTION_LABELS: dict[str, dict[str, str]] = {
    "time_unit": {
        TimeUnit.MINUTES: "Minutes only",
        TimeUnit.HOURS: "Hours only",
        TimeUnit.BOTH: "Both minutes and hours",
    },
    "sort_preference": {
        SortOption.DATE_NEWEST: "Date (newest first)",
        SortOption.DATE_OLDEST: "Date (oldest first)",
        SortOption.TITLE_ASC: "Title (A-Z)",
        SortOption.TITLE_DESC: "Title (Z-A)",
        SortOption.DURATION_ASC: "Duration (shortest first)",
        SortOption.DURATION_DESC: "Duration (longest first)",
    },
    "date_format": {
        DateFormat.ISO: "YYYY-MM-DD (2025-01-15)",
        DateFormat.US: "MM/DD/YYYY (01/15/2025)",
        DateFormat.EU: "DD/MM/YYYY (15/01/2025)",
    },
}


def resolve_setting_key(key: str) -> str | None:
    """Map a camelCase or snake_case settings key to its field name."""
    return SETTINGS_KEYS.get(key)


class UIPreferences(BaseModel):
    """Persisted subset of the UI state."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sort_by: SortOption = Field(default=SortOption.DATE_NEWEST, alias="sortBy")
    filter_by: FilterOption = Field(default=FilterOption.ALL, alias="filterBy")
    search_mode: SearchMode = Field(default=SearchMode.TEXT, alias="searchMode")
    view_mode: ViewMode = Field(default=ViewMode.TABLE, alias="viewMode")

    def to_record(self) -> dict[str, object]:
        """Wire representation with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class UIState(UIPreferences):
    """Full UI state: persisted preferences plus transient fields."""

    current_page: str = Field(default="about", alias="currentPage")
    search_query: str = Field(default="", alias="searchQuery")
    selected_tasks: list[str] = Field(default_factory=list, alias="selectedTasks")
    modal_open: str | None = Field(default=None, alias="modalOpen")
    toast_message: str | None = Field(default=None, alias="toastMessage")

    def preferences(self) -> UIPreferences:
        """The persisted subset of this state."""
        return UIPreferences.model_validate(self.model_dump(include=set(PERSISTED_UI_FIELDS)))


PERSISTED_UI_FIELDS: tuple[str, ...] = tuple(UIPreferences.model_fields)

# Wire key -> field name for every UI state key
UI_KEYS: dict[str, str] = {}
for _name, _field in UIState.model_fields.items():
    UI_KEYS[_name] = _name
    if _field.alias:
        UI_KEYS[_field.alias] = _name
