"""Task domain model, status enum and field rules."""

import re
import secrets
import string
import time
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from campus_planner.core.config import Constants


DATE_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
TAG_PATTERN = re.compile(r"^[A-Za-z]+(?:[ -][A-Za-z]+)*$")

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


class TaskStatus(StrEnum):
    """Task completion status."""

    PENDING = "Pending"
    COMPLETE = "Complete"


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (Z or offset) into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def mint_task_id(now_ms: int | None = None) -> str:
    """Mint a task id of the form task_<epochMs>_<9 base36 chars>."""
    timestamp = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(Constants.TASK_ID_RANDOM_LENGTH))
    return f"task_{timestamp}_{suffix}"


def normalize_title(value: object) -> str:
    """Return the canonical (trimmed) title or raise ValueError."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Title is required")
    return value.strip()


def parse_due_date(value: object) -> date:
    """Parse a YYYY-MM-DD due date, rejecting impossible calendar days."""
    if not isinstance(value, str) or not value:
        raise ValueError("Due date is required")
    if not DATE_PATTERN.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format (e.g., 2025-01-15)")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValueError("Invalid date (check month and day values)") from e


def check_duration(value: object) -> int | float:
    """Validate a duration in minutes: non-negative, at most 1440, at most 2 decimals."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("Duration must be a number")
    if value != value:  # NaN
        raise ValueError("Duration must be a number")
    if value < 0:
        raise ValueError("Duration cannot be negative")
    if value > Constants.MAX_DURATION_MINUTES:
        raise ValueError("Duration cannot exceed 24 hours (1440 minutes)")
    if isinstance(value, float):
        exponent = Decimal(str(value)).normalize().as_tuple().exponent
        if isinstance(exponent, int) and -exponent > Constants.MAX_DURATION_DECIMALS:
            raise ValueError("Duration can have at most 2 decimal places")
    return value


def check_tag(value: object, *, strict: bool = False) -> str:
    """Validate a tag. Strict mode applies the form rules (length and character set)."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Tag is required")
    if strict:
        if len(value) > Constants.MAX_TAG_LENGTH:
            raise ValueError(f"Tag must be at most {Constants.MAX_TAG_LENGTH} characters")
        if not TAG_PATTERN.match(value):
            raise ValueError("Tag can only contain letters, spaces, and hyphens")
    return value


class Task(BaseModel):
    """Planning entry with a title, due date, duration, tag and status."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Opaque task id, unique within the store")
    title: str = Field(..., description="Task title, stored trimmed")
    due_date: str = Field(..., alias="dueDate", description="Due date (YYYY-MM-DD, local calendar)")
    duration: int | float = Field(default=0, description="Estimated duration in minutes")
    tag: str = Field(..., description="Category tag")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Completion status")
    created_at: str = Field(..., alias="createdAt", description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., alias="updatedAt", description="Last update timestamp (ISO format)")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str:
        """Trim the title and reject empty values."""
        return normalize_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: object) -> str:
        """Validate the due date is a real YYYY-MM-DD date."""
        parse_due_date(v)
        return v  # type: ignore[return-value]

    @field_validator("duration", mode="before")
    @classmethod
    def validate_duration(cls, v: object) -> int | float:
        """Validate the duration is within 0..1440 minutes."""
        return check_duration(v)

    @field_validator("tag", mode="before")
    @classmethod
    def validate_tag(cls, v: object) -> str:
        """Validate the tag is a non-empty string."""
        return check_tag(v)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def validate_timestamp(cls, v: object) -> str:
        """Validate timestamps parse as ISO-8601."""
        if not isinstance(v, str):
            raise ValueError("Timestamp must be an ISO-8601 string")
        try:
            parse_timestamp(v)
        except ValueError as e:
            raise ValueError("Timestamp must be an ISO-8601 string") from e
        return v

    @model_validator(mode="after")
    def validate_timestamp_order(self) -> "Task":
        """Ensure updatedAt is not earlier than createdAt."""
        if parse_timestamp(self.updated_at) < parse_timestamp(self.created_at):
            raise ValueError("updatedAt cannot be earlier than createdAt")
        return self

    @property
    def due(self) -> date:
        """Due date as a date object."""
        return date.fromisoformat(self.due_date)

    def to_record(self) -> dict[str, object]:
        """Wire representation with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
