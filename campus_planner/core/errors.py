"""Error types and classification utilities for the planner engine."""

from enum import Enum, StrEnum
from typing import Any

from pydantic import BaseModel


class ErrorKind(StrEnum):
    """Stable machine-readable kinds carried by every planner failure."""

    NOT_FOUND = "NotFound"
    INVALID_TASK = "InvalidTask"
    INVALID_SETTINGS = "InvalidSettings"
    INVALID_FORMAT = "InvalidFormat"
    PERSISTENCE_WARNING = "PersistenceWarning"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_BACKUP_NOT_FOUND = "ERR_BACKUP_NOT_FOUND"
    ERR_INVALID_TASK = "ERR_INVALID_TASK"
    ERR_INVALID_SETTINGS = "ERR_INVALID_SETTINGS"
    ERR_INVALID_FORMAT = "ERR_INVALID_FORMAT"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class PlannerError(Exception):
    """Base class for failures surfaced to callers of the engine."""

    kind: ErrorKind = ErrorKind.INVALID_FORMAT

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for presenters."""
        return {"kind": str(self.kind), "message": self.message, "details": self.details}


class NotFoundError(PlannerError):
    """Raised when a task id (or backup key) does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, *, key: str) -> None:
        super().__init__(message, details={"key": key})
        self.key = key


class InvalidTaskError(PlannerError):
    """Raised when task data fails validation. Carries per-field errors."""

    kind = ErrorKind.INVALID_TASK

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        summary = ", ".join(f"{field}: {error}" for field, error in errors.items())
        super().__init__(message or f"Invalid task: {summary}", details={"errors": errors})
        self.errors = errors


class InvalidSettingsError(PlannerError):
    """Raised when a settings write contains an invalid value. Carries per-key errors."""

    kind = ErrorKind.INVALID_SETTINGS

    def __init__(self, errors: dict[str, str]) -> None:
        summary = ", ".join(f"{key}: {error}" for key, error in errors.items())
        super().__init__(f"Invalid settings: {summary}", details={"errors": errors})
        self.errors = errors


class InvalidFormatError(PlannerError):
    """Raised when imported or restored data cannot be parsed or fails the schema."""

    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


class PersistenceWarning(BaseModel):
    """Non-fatal storage failure, reported out-of-band instead of raised."""

    kind: ErrorKind = ErrorKind.PERSISTENCE_WARNING
    operation: str
    key: str
    store: str
    message: str


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    kind: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised by an engine operation

    Returns:
        ErrorResponse with code, kind, message, suggestion, and severity
    """
    if isinstance(exception, NotFoundError):
        is_backup = "backup" in exception.message.lower()
        return ErrorResponse(
            code=ErrorCode.ERR_BACKUP_NOT_FOUND if is_backup else ErrorCode.ERR_TASK_NOT_FOUND,
            kind=exception.kind,
            message=exception.message,
            suggestion="Refresh the list and try again." if not is_backup else "Pick a backup from the list.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidTaskError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_TASK,
            kind=exception.kind,
            message=exception.message,
            suggestion="Check the highlighted fields and submit again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidSettingsError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_SETTINGS,
            kind=exception.kind,
            message=exception.message,
            suggestion="Use a value within the allowed range.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidFormatError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_FORMAT,
            kind=exception.kind,
            message=exception.message,
            suggestion="Make sure the file is a JSON export from this planner.",
            severity=ErrorSeverity.MEDIUM,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        kind="Unknown",
        message="An unexpected error occurred.",
        suggestion="Please try again. If the problem persists, export your data and reload.",
        severity=ErrorSeverity.MEDIUM,
    )
