"""Minute/hour conversion, formatting and parsing for task durations."""

import math
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

from campus_planner.core.config import Constants


class DurationValidation(BaseModel):
    """Result of validating a duration typed by the user."""

    ok: bool
    minutes: int | None = None
    error: str | None = None


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _to_float(text: Any) -> float | None:
    """Parse a leading number the way form inputs are read ("1.5h" -> 1.5)."""
    if _is_number(text):
        return float(text)
    if not isinstance(text, str):
        return None
    stripped = text.strip()
    end = 0
    seen_dot = False
    for index, char in enumerate(stripped):
        if char.isdigit():
            end = index + 1
        elif char == "." and not seen_dot:
            seen_dot = True
        elif char in "+-" and index == 0:
            continue
        else:
            break
    if end == 0:
        return None
    try:
        return float(stripped[:end])
    except ValueError:
        return None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_number(value: float) -> str:
    """Render 1.0 as "1" and 1.5 as "1.5"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def minutes_to_hours(minutes: Any) -> float:
    """Convert minutes to hours rounded to 2 decimal places."""
    if not _is_number(minutes) or minutes < 0:
        return 0
    return _round_half_up(minutes / Constants.MINUTES_PER_HOUR * 100) / 100


def hours_to_minutes(hours: Any) -> int:
    """Convert hours to whole minutes."""
    if not _is_number(hours) or hours < 0:
        return 0
    return _round_half_up(hours * Constants.MINUTES_PER_HOUR)


def format_duration(minutes: Any, time_unit: str = "both", show_unit: bool = True) -> str:
    """Format a duration in minutes according to the user's time unit.

    Args:
        minutes: Duration in minutes
        time_unit: "minutes", "hours" or "both"
        show_unit: Whether to append unit labels

    Returns:
        "90 min", "1.5 hr", "1 hr 30 min" (or "1:30" without units)
    """
    if not _is_number(minutes) or minutes < 0:
        return "0 min" if show_unit else "0"

    if time_unit == "minutes":
        text = _format_number(minutes)
        return f"{text} min" if show_unit else text

    if time_unit == "hours":
        text = _format_number(minutes_to_hours(minutes))
        return f"{text} hr" if show_unit else text

    if minutes < Constants.MINUTES_PER_HOUR:
        text = _format_number(minutes)
        return f"{text} min" if show_unit else text

    hours = int(minutes // Constants.MINUTES_PER_HOUR)
    remaining = minutes % Constants.MINUTES_PER_HOUR
    if remaining == 0:
        return f"{hours} hr" if show_unit else str(hours)
    if show_unit:
        return f"{hours} hr {_format_number(remaining)} min"
    return f"{hours}:{int(remaining):02d}"


def format_duration_for_input(minutes: Any, time_unit: str = "both") -> float:
    """Numeric value to pre-fill a duration input with."""
    if not _is_number(minutes) or minutes < 0:
        return 0
    if time_unit == "hours":
        return minutes_to_hours(minutes)
    return minutes


def parse_duration_input(text: Any, time_unit: str = "both") -> int:
    """Parse user input into whole minutes. Invalid or negative input yields 0."""
    value = _to_float(text)
    if value is None or value < 0:
        return 0
    if time_unit == "hours":
        return hours_to_minutes(value)
    return _round_half_up(value)


def validate_duration_input(text: Any, time_unit: str = "both") -> DurationValidation:
    """Validate user input for a duration field, capped at 24 hours."""
    value = _to_float(text)
    if value is None:
        return DurationValidation(ok=False, error="Duration must be a valid number")
    if value < 0:
        return DurationValidation(ok=False, error="Duration cannot be negative")

    if time_unit == "hours":
        if value > Constants.MAX_DURATION_HOURS:
            return DurationValidation(ok=False, error="Duration cannot exceed 24 hours")
        return DurationValidation(ok=True, minutes=hours_to_minutes(value))

    if value > Constants.MAX_DURATION_MINUTES:
        return DurationValidation(ok=False, error="Duration cannot exceed 24 hours (1440 minutes)")
    return DurationValidation(ok=True, minutes=_round_half_up(value))


def get_unit_label(time_unit: str, abbreviated: bool = True) -> str:
    """Label for the configured time unit."""
    if time_unit == "minutes":
        return "min" if abbreviated else "minutes"
    if time_unit == "hours":
        return "hr" if abbreviated else "hours"
    return "min/hr" if abbreviated else "minutes/hours"


def calculate_total_duration(durations: Iterable[Any], time_unit: str = "both", show_unit: bool = True) -> str:
    """Format the sum of several durations (missing or invalid entries count as 0)."""
    total = sum(value for value in durations if _is_number(value) and value > 0)
    return format_duration(total, time_unit, show_unit)
