"""Validation service for task fields and user settings.

Field validators return a ValidationResult instead of raising, so callers can
collect every problem at once. Task rules live on the domain model; settings
rules are the constraints declared on UserSettings.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from campus_planner.core.errors import InvalidSettingsError
from campus_planner.core.logging import log_with_context
from campus_planner.domain.settings import UserSettings, resolve_setting_key
from campus_planner.domain.task import (
    TaskStatus,
    check_duration,
    check_tag,
    normalize_title,
    parse_due_date,
)
from campus_planner.models.service_models import ValidationResult


logger = logging.getLogger(__name__)

DUPLICATE_WORDS_PATTERN = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)

_VALUE_ERROR_PREFIX = "Value error, "


def _result(rule: Any, value: Any, **kwargs: Any) -> ValidationResult:
    try:
        return ValidationResult(ok=True, value=rule(value, **kwargs))
    except ValueError as e:
        return ValidationResult(ok=False, error=str(e))


def validate_title(value: Any) -> ValidationResult:
    """Validate a title; the result value is the trimmed title."""
    return _result(normalize_title, value)


def validate_due_date(value: Any) -> ValidationResult:
    """Validate a YYYY-MM-DD due date that exists on the calendar."""
    result = _result(parse_due_date, value)
    if result.ok:
        result.value = value
    return result


def validate_duration(value: Any) -> ValidationResult:
    """Validate a duration in minutes."""
    return _result(check_duration, value)


def validate_tag(value: Any, *, strict: bool = True) -> ValidationResult:
    """Validate a tag. Non-strict mode only requires a non-empty string."""
    return _result(check_tag, value, strict=strict)


def validate_status(value: Any) -> ValidationResult:
    """Validate a task status."""
    try:
        return ValidationResult(ok=True, value=TaskStatus(value))
    except ValueError:
        allowed = ", ".join(status.value for status in TaskStatus)
        return ValidationResult(ok=False, error=f"Status must be one of: {allowed}")


def check_duplicate_words(text: Any) -> ValidationResult:
    """Reject text containing the same word twice in a row ("the the")."""
    if not isinstance(text, str):
        return ValidationResult(ok=True, value=text)
    if DUPLICATE_WORDS_PATTERN.search(text):
        return ValidationResult(ok=False, error="Text contains duplicate words")
    return ValidationResult(ok=True, value=text)


def validate_task(
    data: Mapping[str, Any],
    *,
    strict_tag: bool = True,
    check_duplicates: bool = False,
) -> dict[str, str]:
    """Validate a task record keyed by its wire names.

    Args:
        data: Task fields (title, dueDate, duration, tag, status)
        strict_tag: Apply the form rules to the tag (length and character set)
        check_duplicates: Reject titles with repeated consecutive words

    Returns:
        Mapping of field name to error message; empty when the task is valid
    """
    errors: dict[str, str] = {}

    title = validate_title(data.get("title"))
    if not title.ok:
        errors["title"] = title.error or "Invalid title"
    elif check_duplicates:
        duplicates = check_duplicate_words(title.value)
        if not duplicates.ok:
            errors["title"] = duplicates.error or "Invalid title"

    checks = {
        "dueDate": validate_due_date(data.get("dueDate")),
        "duration": validate_duration(data.get("duration", 0)),
        "tag": validate_tag(data.get("tag"), strict=strict_tag),
        "status": validate_status(data.get("status", TaskStatus.PENDING)),
    }
    for field, result in checks.items():
        if not result.ok:
            errors[field] = result.error or f"Invalid {field}"

    return errors


def errors_from_validation_error(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic ValidationError into field -> message."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        field = str(loc[0])
        errors.setdefault(field, _friendly_message(error))
    return errors


def _friendly_message(error: Mapping[str, Any]) -> str:
    ctx = error.get("ctx") or {}
    error_type = error.get("type", "")
    if error_type == "greater_than_equal":
        return f"Must be at least {ctx.get('ge')}"
    if error_type == "less_than_equal":
        return f"Must be at most {ctx.get('le')}"
    if error_type == "string_too_long":
        return f"Must be at most {ctx.get('max_length')} characters"
    if error_type == "enum":
        return f"Must be one of: {ctx.get('expected')}"
    if error_type in ("bool_type", "bool_parsing"):
        return "Must be a boolean"
    if error_type in ("float_parsing", "float_type", "int_parsing", "int_type", "int_from_float"):
        return "Must be a number"
    if error_type == "string_type":
        return "Must be a string"
    message = str(error.get("msg", "Invalid value"))
    return message.removeprefix(_VALUE_ERROR_PREFIX)


def validate_setting(key: str, value: Any) -> ValidationResult:
    """Validate one settings value against its rule."""
    field = resolve_setting_key(key)
    if field is None:
        return ValidationResult(ok=False, error=f"Unknown setting: {key}")
    try:
        validated = UserSettings.model_validate({field: value})
    except ValidationError as e:
        return ValidationResult(ok=False, error=next(iter(errors_from_validation_error(e).values())))
    return ValidationResult(ok=True, value=getattr(validated, field))


def validate_settings_patch(current: UserSettings, patch: Mapping[str, Any]) -> UserSettings:
    """Apply a settings patch, all or nothing.

    Unknown keys are dropped with a warning. Any invalid value rejects the
    whole patch.

    Raises:
        InvalidSettingsError: If any known key carries an invalid value
    """
    updates: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for key, value in patch.items():
        field = resolve_setting_key(key)
        if field is None:
            log_with_context(logger, "warning", "Ignoring unknown setting", setting=key)
            continue
        result = validate_setting(field, value)
        if result.ok:
            updates[field] = result.value
        else:
            errors[key] = result.error or "Invalid value"

    if errors:
        raise InvalidSettingsError(errors)

    return current.model_copy(update=updates)


def sanitize_settings(data: Any, base: UserSettings | None = None) -> UserSettings:
    """Build complete settings from untrusted data without raising.

    Unknown keys are dropped and invalid values keep the value from base
    (defaults when base is None), each with a logged warning.
    """
    base = base or UserSettings()
    if not isinstance(data, Mapping):
        if data is not None:
            logger.warning("Settings data is not an object, ignoring it")
        return base.model_copy()

    updates: dict[str, Any] = {}
    for key, value in data.items():
        field = resolve_setting_key(key)
        if field is None:
            log_with_context(logger, "warning", "Dropping unknown setting", setting=key)
            continue
        result = validate_setting(field, value)
        if result.ok:
            updates[field] = result.value
        else:
            log_with_context(
                logger,
                "warning",
                "Replacing invalid setting value",
                setting=key,
                error=result.error,
            )

    return base.model_copy(update=updates)
