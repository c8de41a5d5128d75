"""Unit tests for the settings store."""

import pytest

from campus_planner.core.errors import InvalidSettingsError
from campus_planner.domain.settings import TimeUnit, UserSettings
from campus_planner.services.settings_store import SettingsStore, get_setting_options


@pytest.mark.unit
class TestSettingsStore:
    """Tests for SettingsStore writes and resets."""

    def test_defaults(self):
        settings = SettingsStore().get()

        assert settings.to_record() == {
            "timeUnit": "both",
            "weeklyHourTarget": 40,
            "defaultTag": "General",
            "sortPreference": "date-newest",
            "searchCaseSensitive": False,
            "dateFormat": "YYYY-MM-DD",
            "firstDayOfWeek": 0,
        }

    def test_out_of_range_target_is_rejected(self):
        """Test an invalid weekly target raises and leaves settings unchanged."""
        store = SettingsStore()

        with pytest.raises(InvalidSettingsError) as exc_info:
            store.update({"weeklyHourTarget": 200})

        assert exc_info.value.errors == {"weeklyHourTarget": "Must be at most 168"}
        assert store.get().weekly_hour_target == 40

    def test_partial_failure_rejects_whole_patch(self):
        store = SettingsStore()

        with pytest.raises(InvalidSettingsError):
            store.update({"timeUnit": "hours", "dateFormat": "YYYY/MM/DD"})

        assert store.get().time_unit == TimeUnit.BOTH

    def test_update_returns_new_settings(self):
        store = SettingsStore()

        updated = store.update({"timeUnit": "hours", "firstDayOfWeek": 1})

        assert updated.time_unit == TimeUnit.HOURS
        assert store.get().first_day_of_week == 1

    def test_get_returns_copy(self):
        store = SettingsStore()

        store.get().default_tag = "Changed"

        assert store.get().default_tag == "General"

    def test_reset_key(self):
        store = SettingsStore(UserSettings(weekly_hour_target=10, default_tag="Lab"))

        store.reset_key("weeklyHourTarget")

        assert store.get().weekly_hour_target == 40
        assert store.get().default_tag == "Lab"

    def test_reset_unknown_key_is_ignored(self):
        store = SettingsStore(UserSettings(default_tag="Lab"))

        assert store.reset_key("theme").default_tag == "Lab"

    def test_reset(self):
        store = SettingsStore(UserSettings(weekly_hour_target=10))

        store.reset()

        assert store.get() == UserSettings()

    def test_modified_settings(self):
        store = SettingsStore()
        assert not store.has_modified_settings()

        store.update({"searchCaseSensitive": True})

        assert store.has_modified_settings()
        assert store.get_modified_settings() == {"searchCaseSensitive": {"current": True, "default": False}}


@pytest.mark.unit
class TestSettingOptions:
    """Tests for get_setting_options."""

    def test_enum_setting_lists_labelled_values(self):
        options = get_setting_options("timeUnit")

        assert options["type"] == "string"
        assert options["default"] == "both"
        assert options["values"][0] == {"value": "minutes", "label": "Minutes only"}
        assert len(options["values"]) == 3

    def test_numeric_bounds(self):
        options = get_setting_options("weeklyHourTarget")

        assert options["type"] == "number"
        assert options["default"] == 40
        assert options["min"] == 0
        assert options["max"] == 168

    def test_string_length(self):
        assert get_setting_options("default_tag")["max_length"] == 50

    def test_unknown_setting(self):
        assert get_setting_options("theme") is None
