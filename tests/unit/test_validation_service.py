"""Unit tests for task and settings validation."""

import pytest

from campus_planner.core.errors import InvalidSettingsError
from campus_planner.domain.settings import TimeUnit, UserSettings
from campus_planner.domain.task import TaskStatus
from campus_planner.services.validation_service import (
    check_duplicate_words,
    sanitize_settings,
    validate_due_date,
    validate_duration,
    validate_setting,
    validate_settings_patch,
    validate_status,
    validate_tag,
    validate_task,
    validate_title,
)


@pytest.mark.unit
class TestFieldValidators:
    """Tests for the single-field task validators."""

    def test_title_is_trimmed(self):
        result = validate_title("  Essay  ")

        assert result.ok
        assert result.value == "Essay"

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_title_required(self, value):
        result = validate_title(value)

        assert not result.ok
        assert result.error == "Title is required"

    def test_due_date_valid(self):
        assert validate_due_date("2024-02-29").ok

    def test_due_date_impossible_day(self):
        """Test a well-formed but impossible date is rejected."""
        result = validate_due_date("2025-02-30")

        assert result.error == "Invalid date (check month and day values)"

    def test_due_date_bad_format(self):
        assert validate_due_date("2025-13-01").error == "Date must be in YYYY-MM-DD format (e.g., 2025-01-15)"
        assert validate_due_date("14/03/2025").error == "Date must be in YYYY-MM-DD format (e.g., 2025-01-15)"
        assert validate_due_date("").error == "Due date is required"

    @pytest.mark.parametrize("value", [0, 90, 1440, 1.25, 1440.0])
    def test_duration_valid(self, value):
        assert validate_duration(value).ok

    @pytest.mark.parametrize(
        ("value", "error"),
        [
            (-1, "Duration cannot be negative"),
            (1441, "Duration cannot exceed 24 hours (1440 minutes)"),
            (1.234, "Duration can have at most 2 decimal places"),
            (True, "Duration must be a number"),
            ("90", "Duration must be a number"),
            (float("nan"), "Duration must be a number"),
        ],
    )
    def test_duration_invalid(self, value, error):
        assert validate_duration(value).error == error

    def test_tag_strict_rules(self):
        assert validate_tag("Data Science").ok
        assert validate_tag("Self-Study").ok
        assert validate_tag("C++").error == "Tag can only contain letters, spaces, and hyphens"
        assert validate_tag("A" * 51).error == "Tag must be at most 50 characters"

    def test_tag_lenient_mode_only_requires_text(self):
        """Test non-strict tags accept any non-empty string."""
        assert validate_tag("C++", strict=False).ok
        assert validate_tag("A" * 80, strict=False).ok
        assert validate_tag("", strict=False).error == "Tag is required"

    def test_status(self):
        assert validate_status("Complete").value == TaskStatus.COMPLETE
        assert validate_status("Done").error == "Status must be one of: Pending, Complete"

    def test_duplicate_words(self):
        assert not check_duplicate_words("Read the the chapter").ok
        assert not check_duplicate_words("Study study").ok
        assert check_duplicate_words("Read the chapter").ok


@pytest.mark.unit
class TestValidateTask:
    """Tests for validate_task."""

    def test_valid_task_has_no_errors(self, essay):
        assert validate_task(essay) == {}

    def test_collects_every_field_error(self):
        errors = validate_task({"title": "", "dueDate": "bad", "duration": -1, "tag": "C++", "status": "Done"})

        assert set(errors) == {"title", "dueDate", "duration", "tag", "status"}

    def test_lenient_tag(self):
        task = {"title": "Lab", "dueDate": "2025-03-14", "duration": 30, "tag": "C++"}

        assert validate_task(task, strict_tag=False) == {}

    def test_duplicate_word_check_is_opt_in(self, essay):
        essay["title"] = "Study study"

        assert validate_task(essay) == {}
        assert validate_task(essay, check_duplicates=True) == {"title": "Text contains duplicate words"}


@pytest.mark.unit
class TestValidateSetting:
    """Tests for single settings validation."""

    def test_coerces_numeric_strings(self):
        result = validate_setting("weeklyHourTarget", "20")

        assert result.ok
        assert result.value == 20.0

    def test_accepts_snake_case_keys(self):
        assert validate_setting("time_unit", "hours").value == TimeUnit.HOURS

    @pytest.mark.parametrize(
        ("key", "value", "error"),
        [
            ("weeklyHourTarget", 200, "Must be at most 168"),
            ("weeklyHourTarget", -1, "Must be at least 0"),
            ("firstDayOfWeek", 9, "Must be at most 6"),
            ("firstDayOfWeek", True, "Must be a number"),
            ("searchCaseSensitive", "yes", "Must be a boolean"),
            ("defaultTag", "x" * 51, "Must be at most 50 characters"),
            ("defaultTag", "  ", "Default tag cannot be empty"),
            ("theme", "dark", "Unknown setting: theme"),
        ],
    )
    def test_rejections(self, key, value, error):
        result = validate_setting(key, value)

        assert not result.ok
        assert result.error == error

    def test_enum_rejection_lists_choices(self):
        result = validate_setting("timeUnit", "days")

        assert result.error.startswith("Must be one of:")
        assert "minutes" in result.error


@pytest.mark.unit
class TestSettingsPatch:
    """Tests for validate_settings_patch and sanitize_settings."""

    def test_patch_applies_valid_values(self):
        updated = validate_settings_patch(UserSettings(), {"weeklyHourTarget": 20, "theme": "dark"})

        assert updated.weekly_hour_target == 20
        assert "theme" not in updated.to_record()

    def test_patch_is_all_or_nothing(self):
        """Test one invalid value rejects the whole patch."""
        current = UserSettings()

        with pytest.raises(InvalidSettingsError) as exc_info:
            validate_settings_patch(current, {"weeklyHourTarget": 20, "firstDayOfWeek": 9})

        assert set(exc_info.value.errors) == {"firstDayOfWeek"}
        assert current.weekly_hour_target == 40

    def test_sanitize_keeps_base_value_for_invalid_entries(self):
        settings = sanitize_settings({"weeklyHourTarget": 500, "timeUnit": "hours", "bogus": 1})

        assert settings.weekly_hour_target == 40
        assert settings.time_unit == TimeUnit.HOURS

    def test_sanitize_uses_given_base(self):
        base = UserSettings(weekly_hour_target=12)

        settings = sanitize_settings({"weeklyHourTarget": "lots"}, base)

        assert settings.weekly_hour_target == 12

    def test_sanitize_non_object_returns_base(self):
        assert sanitize_settings("nope") == UserSettings()
        assert sanitize_settings(None) == UserSettings()
