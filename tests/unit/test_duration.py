"""Unit tests for duration conversion, formatting and parsing."""

import pytest

from campus_planner.core.duration import (
    calculate_total_duration,
    format_duration,
    format_duration_for_input,
    get_unit_label,
    hours_to_minutes,
    minutes_to_hours,
    parse_duration_input,
    validate_duration_input,
)


@pytest.mark.unit
class TestConversions:
    """Tests for minutes_to_hours and hours_to_minutes."""

    def test_minutes_to_hours_rounds_to_two_decimals(self):
        assert minutes_to_hours(90) == 1.5
        assert minutes_to_hours(1) == 0.02
        assert minutes_to_hours(100) == 1.67

    def test_minutes_to_hours_rejects_negative_and_non_numbers(self):
        assert minutes_to_hours(-5) == 0
        assert minutes_to_hours("90") == 0
        assert minutes_to_hours(float("nan")) == 0
        assert minutes_to_hours(float("inf")) == 0

    def test_hours_to_minutes(self):
        assert hours_to_minutes(1.5) == 90
        assert hours_to_minutes(0.01) == 1
        assert hours_to_minutes(-1) == 0
        assert hours_to_minutes(None) == 0


@pytest.mark.unit
class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (45, "45 min"),
            (60, "1 hr"),
            (90, "1 hr 30 min"),
            (1440, "24 hr"),
            (0, "0 min"),
        ],
    )
    def test_both_units(self, minutes, expected):
        assert format_duration(minutes) == expected

    def test_compact_form_without_units(self):
        assert format_duration(90, show_unit=False) == "1:30"
        assert format_duration(65, show_unit=False) == "1:05"
        assert format_duration(60, show_unit=False) == "1"

    def test_minutes_only(self):
        assert format_duration(90, "minutes") == "90 min"

    def test_hours_only(self):
        assert format_duration(90, "hours") == "1.5 hr"
        assert format_duration(120, "hours") == "2 hr"

    def test_invalid_values_format_as_zero(self):
        assert format_duration(-5) == "0 min"
        assert format_duration(float("nan")) == "0 min"
        assert format_duration(-5, show_unit=False) == "0"

    def test_infinite_values_format_as_zero(self):
        assert format_duration(float("inf")) == "0 min"
        assert format_duration(float("-inf"), "hours") == "0 min"
        assert hours_to_minutes(float("inf")) == 0


@pytest.mark.unit
class TestParseAndValidateInput:
    """Tests for parsing and validating typed durations."""

    def test_parse_minutes(self):
        assert parse_duration_input("90") == 90
        assert parse_duration_input("  45  ") == 45

    def test_parse_hours(self):
        assert parse_duration_input("1.5", "hours") == 90
        assert parse_duration_input("2h", "hours") == 120

    def test_parse_invalid_input_is_zero(self):
        assert parse_duration_input("abc") == 0
        assert parse_duration_input("-3") == 0
        assert parse_duration_input(None) == 0

    def test_validate_accepts_upper_bound(self):
        result = validate_duration_input("1440")
        assert result.ok
        assert result.minutes == 1440

    def test_validate_rejects_over_a_day_in_minutes(self):
        result = validate_duration_input("1500")
        assert not result.ok
        assert result.error == "Duration cannot exceed 24 hours (1440 minutes)"

    def test_validate_rejects_over_a_day_in_hours(self):
        result = validate_duration_input("25", "hours")
        assert not result.ok
        assert result.error == "Duration cannot exceed 24 hours"

    def test_validate_rejects_non_numbers(self):
        result = validate_duration_input("abc")
        assert not result.ok
        assert result.error == "Duration must be a valid number"

    def test_validate_rejects_negative(self):
        result = validate_duration_input("-1")
        assert not result.ok
        assert result.error == "Duration cannot be negative"

    def test_validate_converts_hours(self):
        result = validate_duration_input("1.5", "hours")
        assert result.ok
        assert result.minutes == 90


@pytest.mark.unit
class TestHelpers:
    """Tests for labels, input pre-fill and totals."""

    def test_unit_labels(self):
        assert get_unit_label("minutes") == "min"
        assert get_unit_label("hours", abbreviated=False) == "hours"
        assert get_unit_label("both") == "min/hr"

    def test_format_for_input(self):
        assert format_duration_for_input(90, "hours") == 1.5
        assert format_duration_for_input(90, "minutes") == 90
        assert format_duration_for_input(-1) == 0

    def test_total_duration_ignores_invalid_entries(self):
        assert calculate_total_duration([30, 60, None, -5]) == "1 hr 30 min"
        assert calculate_total_duration([], "minutes") == "0 min"
