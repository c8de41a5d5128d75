"""User settings store with all-or-nothing validated writes."""

import logging
from collections.abc import Mapping
from typing import Any

from campus_planner.core.logging import log_with_context
from campus_planner.domain.settings import SETTING_OPTION_LABELS, UserSettings, resolve_setting_key
from campus_planner.services.validation_service import validate_settings_patch


logger = logging.getLogger(__name__)

_OPTION_TYPES: dict[Any, str] = {bool: "boolean", int: "number", float: "number", str: "string"}


class SettingsStore:
    """Holds the current UserSettings. Every write is validated first."""

    def __init__(self, initial: UserSettings | None = None) -> None:
        self._settings = (initial or UserSettings()).model_copy()

    def get(self) -> UserSettings:
        return self._settings.model_copy()

    def update(self, patch: Mapping[str, Any]) -> UserSettings:
        """Apply a patch and return the new settings.

        Raises:
            InvalidSettingsError: If any value is invalid; state is left unchanged
        """
        updated = validate_settings_patch(self._settings, patch)
        self._settings = updated
        log_with_context(logger, "info", "Settings updated", keys=sorted(patch))
        return updated.model_copy()

    def replace(self, settings: UserSettings) -> None:
        """Swap in already validated settings (load and import paths)."""
        self._settings = settings.model_copy()

    def reset(self) -> UserSettings:
        """Restore every setting to its default."""
        self._settings = UserSettings()
        logger.info("Settings reset to defaults")
        return self._settings.model_copy()

    def reset_key(self, key: str) -> UserSettings:
        """Restore a single setting to its default. Unknown keys are ignored."""
        field = resolve_setting_key(key)
        if field is None:
            log_with_context(logger, "warning", "Ignoring reset of unknown setting", setting=key)
            return self.get()
        default = UserSettings.model_fields[field].default
        self._settings = self._settings.model_copy(update={field: default})
        return self.get()

    def has_modified_settings(self) -> bool:
        return bool(self.get_modified_settings())

    def get_modified_settings(self) -> dict[str, dict[str, Any]]:
        """Settings that differ from defaults, keyed by wire name."""
        current = self._settings.to_record()
        defaults = UserSettings().to_record()
        return {
            key: {"current": value, "default": defaults[key]}
            for key, value in current.items()
            if value != defaults[key]
        }


def get_setting_options(key: str) -> dict[str, Any] | None:
    """Describe a setting for a settings form: type, default, choices and bounds.

    Returns:
        None for unknown keys
    """
    field_name = resolve_setting_key(key)
    if field_name is None:
        return None

    field = UserSettings.model_fields[field_name]
    default = field.default
    options: dict[str, Any] = {
        "type": _OPTION_TYPES.get(field.annotation, "string"),
        "default": getattr(default, "value", default),
    }

    labels = SETTING_OPTION_LABELS.get(field_name)
    enum_type = field.annotation
    if isinstance(enum_type, type) and hasattr(enum_type, "__members__"):
        options["values"] = [
            {"value": member.value, "label": (labels or {}).get(member, member.value)}
            for member in enum_type  # type: ignore[attr-defined]
        ]

    for constraint in field.metadata:
        for attr, option in (("ge", "min"), ("le", "max"), ("max_length", "max_length")):
            value = getattr(constraint, attr, None)
            if value is not None:
                options[option] = value

    return options

