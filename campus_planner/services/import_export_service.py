"""Import/export codec for the planner's JSON envelope.

Exports wrap the state in ``{version, exportDate, application, data}`` with
2-space indentation. Imports accept that envelope or the bare inner ``data``
object and combine imported tasks with existing ones in one of three modes:

- merge: keep existing tasks; imported tasks without an id, or whose id is
  already taken, get a fresh id.
- append: keep existing tasks and imported ids as-is; ids are only minted
  when missing, so collisions are possible and are logged.
- replace: drop existing tasks.
"""

import json
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from campus_planner.core.config import Constants, Settings, settings
from campus_planner.core.errors import InvalidFormatError
from campus_planner.core.logging import log_with_context, span
from campus_planner.domain.changes import StateSnapshot
from campus_planner.domain.settings import UI_KEYS, UIPreferences, UIState, UserSettings
from campus_planner.domain.task import Task, TaskStatus, mint_task_id, utc_timestamp
from campus_planner.models.service_models import ImportOptions, ImportSummary, MergeMode
from campus_planner.services.task_store import epoch_ms, to_wire_keys
from campus_planner.services.validation_service import (
    errors_from_validation_error,
    sanitize_settings,
    validate_task,
)


logger = logging.getLogger(__name__)

IdFactory = Callable[[int], str]

_UNASSIGNED_ID = "__unassigned__"


def _dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=Constants.EXPORT_INDENT, ensure_ascii=False)


def export_all(state: StateSnapshot, *, now: datetime, config: Settings | None = None) -> str:
    """Serialize tasks, settings and UI preferences into an export envelope."""
    config = config or settings
    with span("import_export_service.export_all"):
        record = state.to_record()
        payload = {
            "version": Constants.EXPORT_VERSION,
            "exportDate": utc_timestamp(now),
            "application": config.application_name,
            "data": {
                **record,
                "metadata": {
                    "totalTasks": len(record["tasks"]),
                    "settingsCount": len(record["settings"]),
                    "exportedBy": config.application_name,
                    "format": Constants.EXPORT_FORMAT,
                    "dataVersion": Constants.EXPORT_VERSION,
                },
            },
        }
        log_with_context(logger, "info", "Exported data", task_count=len(record["tasks"]))
        return _dump(payload)


def export_settings(state: StateSnapshot, *, now: datetime, config: Settings | None = None) -> str:
    """Serialize only the user settings."""
    config = config or settings
    record = state.settings.to_record()
    return _dump(
        {
            "version": Constants.EXPORT_VERSION,
            "exportDate": utc_timestamp(now),
            "settings": record,
            "metadata": {
                "exportedBy": f"{config.application_name} Settings Manager",
                "settingsCount": len(record),
            },
        }
    )


def export_filename(app_slug: str | None = None, today: date | None = None) -> str:
    """File name for a download, e.g. campus-life-planner-2025-03-14.json."""
    slug = app_slug or settings.app_slug
    day = today or date.today()
    return f"{slug}-{day.isoformat()}.json"


def _load_json(source: str | bytes | Mapping[str, Any]) -> Any:
    if not isinstance(source, str | bytes):
        return source
    try:
        return json.loads(source)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidFormatError("Invalid JSON format. Please check your file and try again.") from e


def parse_payload(source: str | bytes | Mapping[str, Any]) -> dict[str, Any]:
    """Parse import text and unwrap the export envelope.

    Raises:
        InvalidFormatError: If the text is not JSON or not an object
    """
    payload = _load_json(source)

    if not isinstance(payload, Mapping):
        raise InvalidFormatError("Data must be a valid object")

    inner = payload.get("data")
    return dict(inner) if isinstance(inner, Mapping) else dict(payload)


def _prepare_task(raw: Any, *, default_tag: str, timestamp: str) -> tuple[dict[str, Any], list[str]]:
    """Fill defaults into an imported task and validate it."""
    if not isinstance(raw, Mapping):
        return {}, ["must be an object"]

    record = to_wire_keys(raw)
    for key, default in (("status", TaskStatus.PENDING.value), ("tag", default_tag), ("duration", 0)):
        if record.get(key) is None:
            record[key] = default
    for key in ("createdAt", "updatedAt"):
        if not record.get(key):
            record[key] = timestamp
    if not isinstance(record.get("id"), str) or not record["id"]:
        record.pop("id", None)

    errors = validate_task(record, strict_tag=False)
    if errors:
        return record, [f"{field}: {message}" for field, message in errors.items()]

    try:
        Task.model_validate({**record, "id": record.get("id", _UNASSIGNED_ID)})
    except ValidationError as e:
        return record, [f"{field}: {message}" for field, message in errors_from_validation_error(e).items()]
    return record, []


def _format_errors(errors: list[str]) -> str:
    detailed = errors[: Constants.MAX_DETAILED_IMPORT_ERRORS]
    remaining = len(errors) - len(detailed)
    if remaining > 0:
        detailed.append(f"...and {remaining} more errors")
    return "Invalid data format: " + "; ".join(detailed)


def _assign_ids(
    records: list[dict[str, Any]],
    existing: list[Task],
    mode: MergeMode,
    *,
    now: datetime,
    id_factory: IdFactory,
) -> list[Task]:
    existing_ids = {task.id for task in existing}
    taken = set() if mode == MergeMode.REPLACE else set(existing_ids)

    def mint() -> str:
        while True:
            candidate = id_factory(epoch_ms(now))
            if candidate not in taken and candidate not in existing_ids:
                return candidate

    tasks: list[Task] = []
    for record in records:
        task_id = record.get("id")
        if task_id is None:
            task_id = mint()
        elif task_id in taken:
            if mode == MergeMode.APPEND:
                log_with_context(logger, "warning", "Appending task with colliding id", task_id=task_id)
            else:
                task_id = mint()
        taken.add(task_id)
        tasks.append(Task.model_validate({**record, "id": task_id}))
    return tasks


def merge_ui_preferences(current: UIState, raw: Mapping[str, Any]) -> UIState:
    """Apply valid persisted UI keys over current preferences; transient fields reset."""
    updates: dict[str, Any] = {}
    for key, value in raw.items():
        field = UI_KEYS.get(key)
        if field not in UIPreferences.model_fields:
            log_with_context(logger, "warning", "Dropping non-persisted UI key", ui_key=key)
            continue
        try:
            updates[field] = getattr(UIPreferences.model_validate({field: value}), field)
        except ValidationError:
            log_with_context(logger, "warning", "Dropping invalid UI value", ui_key=key)

    preferences = current.preferences().model_copy(update=updates)
    return UIState.model_validate(preferences.model_dump())


def import_all(
    source: str | bytes | Mapping[str, Any],
    state: StateSnapshot,
    options: ImportOptions | None = None,
    *,
    now: datetime,
    id_factory: IdFactory = mint_task_id,
) -> tuple[StateSnapshot, ImportSummary]:
    """Validate an import and combine it with the current state.

    Nothing is changed unless every imported task is valid.

    Returns:
        The new state and a summary of what was imported

    Raises:
        InvalidFormatError: If the payload cannot be parsed or any task is invalid
    """
    options = options or ImportOptions()
    with span("import_export_service.import_all"):
        data = parse_payload(source)

        raw_tasks = data.get("tasks") or []
        if not isinstance(raw_tasks, list):
            raise InvalidFormatError("Invalid data format: Tasks must be an array")
        raw_settings = data.get("settings")
        if raw_settings is not None and not isinstance(raw_settings, Mapping):
            raise InvalidFormatError("Invalid data format: Settings must be an object")
        raw_ui = data.get("ui")

        timestamp = utc_timestamp(now)
        records: list[dict[str, Any]] = []
        errors: list[str] = []
        for index, raw in enumerate(raw_tasks, start=1):
            record, task_errors = _prepare_task(raw, default_tag=state.settings.default_tag, timestamp=timestamp)
            if task_errors:
                errors.append(f"Task {index}: {', '.join(task_errors)}")
            records.append(record)

        if errors:
            log_with_context(logger, "warning", "Import rejected", error_count=len(errors))
            raise InvalidFormatError(_format_errors(errors), errors=errors)

        existing = [] if options.merge_mode == MergeMode.REPLACE else state.tasks
        imported = _assign_ids(records, existing, options.merge_mode, now=now, id_factory=id_factory)

        new_settings: UserSettings = state.settings
        imported_settings = options.include_settings and isinstance(raw_settings, Mapping)
        if imported_settings:
            new_settings = sanitize_settings(raw_settings, base=state.settings)

        imported_ui = options.include_ui and isinstance(raw_ui, Mapping)
        if imported_ui:
            new_ui = merge_ui_preferences(state.ui, raw_ui)  # type: ignore[arg-type]
        else:
            new_ui = UIState.model_validate(state.ui.preferences().model_dump())

        new_state = StateSnapshot(
            tasks=[task.model_copy(deep=True) for task in existing] + imported,
            settings=new_settings,
            ui=new_ui,
        )
        summary = ImportSummary(
            imported_tasks=len(imported),
            total_tasks=len(new_state.tasks),
            imported_settings=imported_settings,
            imported_ui=imported_ui,
            merge_mode=options.merge_mode,
            message=f"Successfully imported {len(imported)} tasks",
        )
        log_with_context(
            logger,
            "info",
            "Import completed",
            imported_tasks=summary.imported_tasks,
            total_tasks=summary.total_tasks,
            merge_mode=str(options.merge_mode),
        )
        return new_state, summary


def import_settings(source: str | bytes | Mapping[str, Any], current: UserSettings) -> UserSettings:
    """Import settings from a settings export or a bare settings object.

    Unknown keys are dropped and invalid values keep the current value.

    Raises:
        InvalidFormatError: If the payload is not a JSON object
    """
    payload = _load_json(source)

    if not isinstance(payload, Mapping):
        raise InvalidFormatError("Invalid settings format")
    inner = payload.get("settings")
    return sanitize_settings(inner if isinstance(inner, Mapping) else payload, base=current)
