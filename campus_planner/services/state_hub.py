"""Observable state hub: the single owner of tasks, settings and UI state.

Every mutation runs to completion, persists the result, then notifies
subscribers in registration order with a ChangeRecord and a fresh snapshot.
A mutation requested from inside a subscriber callback is queued and runs
once the current fan-out has finished.
"""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from campus_planner.core.config import Settings, settings
from campus_planner.core.errors import InvalidFormatError, InvalidTaskError
from campus_planner.core.logging import log_with_context, span
from campus_planner.core.persistence import PersistenceAdapter
from campus_planner.domain.changes import ChangeRecord, ChangeType, StateSnapshot
from campus_planner.domain.settings import UI_KEYS, UIState, UserSettings
from campus_planner.domain.task import Task, TaskStatus, mint_task_id
from campus_planner.models.service_models import (
    BackupInfo,
    ClearResult,
    ImportOptions,
    ImportSummary,
    MergeMode,
    RestoreResult,
    SearchMatch,
    StorageInfo,
    TaskStats,
    TaskView,
    WeeklyProgress,
)
from campus_planner.services import analytics_service, import_export_service, query_service
from campus_planner.services.backup_service import BackupService
from campus_planner.services.seed_loader import SeedLoader, make_seed_loader
from campus_planner.services.settings_store import SettingsStore
from campus_planner.services.task_store import IdFactory, TaskStore
from campus_planner.services.validation_service import sanitize_settings, validate_status


logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[ChangeRecord, StateSnapshot], None]
Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class StateHub:
    """Holds {tasks, settings, ui} and fans every change out to subscribers.

    Persistence is injected; nothing here is a module-level singleton.
    Construction loads the persisted state synchronously; ``initialize()``
    optionally adopts a seed when the store is empty and marks the hub ready.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        *,
        backups: BackupService | None = None,
        config: Settings | None = None,
        clock: Clock = _local_now,
        id_factory: IdFactory = mint_task_id,
    ) -> None:
        self.config = config or settings
        self.persistence = persistence
        self.backups = backups or BackupService(persistence, config=self.config, clock=clock)
        self.ready = False

        self._clock = clock
        self._id_factory = id_factory
        self._tasks = TaskStore(id_factory=id_factory)
        self._settings = SettingsStore()
        self._ui = UIState()

        self._subscribers: list[Subscriber] = []
        self._notifying = False
        self._draining = False
        self._pending: deque[tuple[str, Callable[[], Any]]] = deque()
        self._last_auto_backup: datetime | None = None

        self._load_persisted()

    # =============================================================================
    # Loading
    # =============================================================================

    def _load_persisted(self) -> None:
        raw = self.persistence.load(self.config.state_key, None)
        if raw is None:
            logger.info("No persisted state, starting with defaults")
            return
        self._apply_record(raw)

    def _apply_record(self, raw: Any) -> None:
        """Replace in-memory state with a persisted record, dropping what is invalid."""
        if not isinstance(raw, Mapping):
            logger.warning("Persisted state is not an object, using defaults")
            raw = {}

        tasks: list[Task] = []
        raw_tasks = raw.get("tasks")
        for item in raw_tasks if isinstance(raw_tasks, list) else []:
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as e:
                item_id = item.get("id") if isinstance(item, Mapping) else None
                log_with_context(
                    logger,
                    "warning",
                    "Dropping invalid persisted task",
                    task_id=item_id,
                    error_count=e.error_count(),
                )

        self._tasks.replace_all(tasks)
        self._settings.replace(sanitize_settings(raw.get("settings"), base=UserSettings()))
        raw_ui = raw.get("ui")
        self._ui = import_export_service.merge_ui_preferences(
            UIState(), raw_ui if isinstance(raw_ui, Mapping) else {}
        )
        log_with_context(logger, "info", "State loaded", task_count=len(tasks))

    async def initialize(self, seed_loader: SeedLoader | None = None) -> None:
        """Adopt a seed when no tasks exist, then mark the hub ready.

        A missing, unreachable or invalid seed leaves the current state in place.
        """
        with span("state_hub.initialize"):
            if seed_loader is None and self.config.seed_source:
                seed_loader = make_seed_loader(self.config.seed_source)

            if len(self._tasks) == 0 and seed_loader is not None:
                try:
                    payload = await seed_loader()
                except Exception as e:
                    log_with_context(logger, "warning", "Seed loader failed", error=str(e))
                    payload = None
                if payload is not None:
                    self._adopt_seed(payload)

            self.ready = True
            self._emit(ChangeRecord(type=ChangeType.STATE_INITIALIZED))

    def _adopt_seed(self, payload: Mapping[str, Any]) -> None:
        try:
            state, summary = import_export_service.import_all(
                payload,
                self.get_state(),
                ImportOptions(merge_mode=MergeMode.REPLACE),
                now=self._clock(),
                id_factory=self._id_factory,
            )
        except InvalidFormatError as e:
            log_with_context(logger, "warning", "Ignoring invalid seed data", error=e.message)
            return

        self._replace_state(state)
        self._persist()
        log_with_context(logger, "info", "Seed data adopted", task_count=summary.total_tasks)

    # =============================================================================
    # Reading
    # =============================================================================

    def get_tasks(self) -> list[Task]:
        return self._tasks.get_tasks()

    def get_task(self, task_id: str) -> Task:
        """Raises NotFoundError when the id is unknown."""
        return self._tasks.get_task(task_id)

    def get_settings(self) -> UserSettings:
        return self._settings.get()

    def get_ui_state(self) -> UIState:
        return self._ui.model_copy(deep=True)

    def get_state(self) -> StateSnapshot:
        """Deep copy of the whole state."""
        return StateSnapshot(tasks=self.get_tasks(), settings=self.get_settings(), ui=self.get_ui_state())

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it.

        Subscribers only see changes made after they subscribe.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # =============================================================================
    # Mutation plumbing
    # =============================================================================

    def _run(self, name: str, operation: Callable[[], T]) -> T | None:
        if self._notifying:
            logger.debug("Queueing mutation requested during notification: %s", name)
            self._pending.append((name, operation))
            return None
        return operation()

    def _emit(self, record: ChangeRecord) -> None:
        snapshot = self.get_state()
        self._notifying = True
        try:
            for callback in list(self._subscribers):
                try:
                    callback(record, snapshot)
                except Exception as e:
                    log_with_context(
                        logger, "error", "Subscriber failed", change_type=str(record.type), error=str(e)
                    )
        finally:
            self._notifying = False
        self._drain()

    def _drain(self) -> None:
        if self._draining:
            return
        self._draining = True
        try:
            while self._pending:
                name, operation = self._pending.popleft()
                try:
                    operation()
                except Exception as e:
                    log_with_context(logger, "error", "Queued mutation failed", operation=name, error=str(e))
        finally:
            self._draining = False

    def _persisted_record(self) -> dict[str, Any]:
        return self.get_state().to_record()

    def _persist(self) -> None:
        """Write the state triple (minus transient UI). Failures are reported, never raised."""
        record = self._persisted_record()
        if not self.persistence.save(self.config.state_key, record):
            logger.warning("State could not be persisted to any store")
            return
        self._maybe_auto_backup(record)

    def _maybe_auto_backup(self, record: dict[str, Any]) -> None:
        if not self.backups.is_auto_backup_enabled():
            return
        now = self._clock()
        if self._last_auto_backup is not None:
            elapsed = (now - self._last_auto_backup).total_seconds()
            if elapsed < self.config.auto_backup_throttle_seconds:
                return
        if self.backups.create_backup(record):
            self._last_auto_backup = now

    def _replace_state(self, state: StateSnapshot) -> None:
        self._tasks.replace_all(state.tasks)
        self._settings.replace(state.settings)
        self._ui = state.ui.model_copy(deep=True)

    # =============================================================================
    # Tasks
    # =============================================================================

    def add_task(self, data: Mapping[str, Any]) -> Task | None:
        """Add a task. Raises InvalidTaskError before any change."""

        def operation() -> Task:
            with span("state_hub.add_task"):
                task = self._tasks.add_task(data, default_tag=self._settings.get().default_tag, now=self._clock())
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.TASK_ADDED, task=task))
                return task

        return self._run("add_task", operation)

    def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Task | None:
        """Patch a task. Raises NotFoundError or InvalidTaskError before any change."""

        def operation() -> Task:
            with span("state_hub.update_task"):
                task = self._tasks.update_task(task_id, patch, now=self._clock())
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.TASK_UPDATED, task=task))
                return task

        return self._run("update_task", operation)

    def delete_task(self, task_id: str) -> Task | None:
        """Delete a task and return it. Raises NotFoundError when missing."""

        def operation() -> Task:
            with span("state_hub.delete_task"):
                task = self._tasks.delete_task(task_id)
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.TASK_DELETED, task=task))
                return task

        return self._run("delete_task", operation)

    def toggle_task_status(self, task_id: str) -> Task | None:
        """Flip a task between Pending and Complete."""
        current = self._tasks.get_task(task_id)
        status = TaskStatus.PENDING if current.status == TaskStatus.COMPLETE else TaskStatus.COMPLETE
        return self.update_task(task_id, {"status": status})

    def bulk_update_status(self, task_ids: Iterable[str], status: str) -> list[Task] | None:
        """Set the status of several tasks in one change. All ids must exist."""
        task_ids = list(dict.fromkeys(task_ids))

        def operation() -> list[Task]:
            with span("state_hub.bulk_update_status"):
                result = validate_status(status)
                if not result.ok:
                    raise InvalidTaskError({"status": result.error or "Invalid status"})
                for task_id in task_ids:
                    self._tasks.get_task(task_id)

                now = self._clock()
                staged = TaskStore(self._tasks.get_tasks())
                updated = [staged.update_task(task_id, {"status": result.value}, now=now) for task_id in task_ids]
                self._tasks.replace_all(staged.get_tasks())
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.TASK_UPDATED, tasks=updated))
                return updated

        return self._run("bulk_update_status", operation)

    def bulk_delete(self, task_ids: Iterable[str]) -> list[Task] | None:
        """Delete several tasks in one change. All ids must exist."""
        task_ids = list(dict.fromkeys(task_ids))

        def operation() -> list[Task]:
            with span("state_hub.bulk_delete"):
                for task_id in task_ids:
                    self._tasks.get_task(task_id)
                staged = TaskStore(self._tasks.get_tasks())
                deleted = [staged.delete_task(task_id) for task_id in task_ids]
                self._tasks.replace_all(staged.get_tasks())
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.TASK_DELETED, tasks=deleted))
                return deleted

        return self._run("bulk_delete", operation)

    # =============================================================================
    # Settings
    # =============================================================================

    def _settings_change(self, name: str, change: Callable[[], UserSettings]) -> UserSettings | None:
        def operation() -> UserSettings:
            with span(f"state_hub.{name}"):
                previous = self._settings.get()
                updated = change()
                self._persist()
                self._emit(
                    ChangeRecord(type=ChangeType.SETTINGS_UPDATED, settings=updated, previous_settings=previous)
                )
                return updated

        return self._run(name, operation)

    def update_settings(self, patch: Mapping[str, Any]) -> UserSettings | None:
        """Apply a settings patch. Raises InvalidSettingsError before any change."""
        return self._settings_change("update_settings", lambda: self._settings.update(patch))

    def reset_settings(self) -> UserSettings | None:
        return self._settings_change("reset_settings", self._settings.reset)

    def reset_setting(self, key: str) -> UserSettings | None:
        return self._settings_change("reset_setting", lambda: self._settings.reset_key(key))

    def import_settings(self, source: str | bytes | Mapping[str, Any]) -> UserSettings | None:
        """Import a settings export. Raises InvalidFormatError for non-object payloads."""

        def change() -> UserSettings:
            imported = import_export_service.import_settings(source, self._settings.get())
            self._settings.replace(imported)
            return self._settings.get()

        return self._settings_change("import_settings", change)

    def has_modified_settings(self) -> bool:
        return self._settings.has_modified_settings()

    def get_modified_settings(self) -> dict[str, dict[str, Any]]:
        return self._settings.get_modified_settings()

    # =============================================================================
    # UI state
    # =============================================================================

    def update_ui_state(self, patch: Mapping[str, Any]) -> UIState | None:
        """Update UI fields. Unknown keys and invalid values are dropped with a warning.

        Only changes to persisted preferences are written to storage.
        """

        def operation() -> UIState:
            with span("state_hub.update_ui_state"):
                previous = self.get_ui_state()
                merged = previous.model_dump()
                for key, value in patch.items():
                    field = UI_KEYS.get(key)
                    if field is None:
                        log_with_context(logger, "warning", "Ignoring unknown UI key", ui_key=key)
                        continue
                    try:
                        merged[field] = getattr(UIState.model_validate({**merged, field: value}), field)
                    except ValidationError:
                        log_with_context(logger, "warning", "Ignoring invalid UI value", ui_key=key)

                self._ui = UIState.model_validate(merged)
                if self._ui.preferences() != previous.preferences():
                    self._persist()
                self._emit(
                    ChangeRecord(
                        type=ChangeType.UI_STATE_UPDATED,
                        ui_state=self.get_ui_state(),
                        previous_ui_state=previous,
                    )
                )
                return self.get_ui_state()

        return self._run("update_ui_state", operation)

    # =============================================================================
    # Import / export and backups
    # =============================================================================

    def import_all(
        self,
        source: str | bytes | Mapping[str, Any],
        options: ImportOptions | None = None,
    ) -> ImportSummary | None:
        """Import an export envelope. Raises InvalidFormatError before any change."""

        def operation() -> ImportSummary:
            with span("state_hub.import_all"):
                state, summary = import_export_service.import_all(
                    source, self.get_state(), options, now=self._clock(), id_factory=self._id_factory
                )
                self._replace_state(state)
                self._persist()
                self._emit(
                    ChangeRecord(
                        type=ChangeType.DATA_IMPORTED,
                        tasks=self.get_tasks(),
                        import_summary=summary.model_dump(mode="json"),
                    )
                )
                return summary

        return self._run("import_all", operation)

    def export_all(self) -> str:
        return import_export_service.export_all(self.get_state(), now=self._clock(), config=self.config)

    def export_settings(self) -> str:
        return import_export_service.export_settings(self.get_state(), now=self._clock(), config=self.config)

    def export_filename(self) -> str:
        return import_export_service.export_filename(self.config.app_slug, self._clock().date())

    def create_manual_backup(self) -> str | None:
        """Back up the current state into the ring."""
        return self.backups.create_backup(self._persisted_record())

    def list_backups(self) -> list[BackupInfo]:
        return self.backups.list_backups()

    def restore_from_backup(self, key: str) -> RestoreResult | None:
        """Restore a backup. Raises NotFoundError or InvalidFormatError before any change."""

        def operation() -> RestoreResult:
            with span("state_hub.restore_from_backup"):
                result = self.backups.restore_from_backup(key)
                self._apply_record(result.data)
                self._emit(
                    ChangeRecord(
                        type=ChangeType.DATA_IMPORTED,
                        tasks=self.get_tasks(),
                        import_summary={"source": "backup", "key": key, "backupDate": result.backup_date},
                    )
                )
                return result

        return self._run("restore_from_backup", operation)

    def set_auto_backup(self, enabled: bool) -> None:
        self.backups.set_auto_backup(enabled)

    def get_storage_info(self) -> StorageInfo:
        return self.backups.get_storage_info()

    def clear_all_data(self) -> ClearResult | None:
        """Back up, remove the persisted state and return to defaults."""

        def operation() -> ClearResult:
            with span("state_hub.clear_all_data"):
                result = self.backups.clear_all(self._persisted_record())
                self._replace_state(StateSnapshot())
                self._emit(ChangeRecord(type=ChangeType.STATE_RESET))
                return result

        return self._run("clear_all_data", operation)

    def reset(self) -> None:
        """Return to defaults and persist them."""

        def operation() -> None:
            with span("state_hub.reset"):
                self._replace_state(StateSnapshot())
                self._persist()
                self._emit(ChangeRecord(type=ChangeType.STATE_RESET))

        self._run("reset", operation)

    # =============================================================================
    # Derived views
    # =============================================================================

    def get_view(self, **overrides: Any) -> TaskView:
        """Current UI filter, search and sort applied to the tasks.

        Keyword overrides (filter_by, query, search_mode, sort_by) replace the
        values taken from the UI state.
        """
        current = self._settings.get()
        options: dict[str, Any] = {
            "filter_by": self._ui.filter_by,
            "query": self._ui.search_query,
            "search_mode": self._ui.search_mode,
            "sort_by": self._ui.sort_by,
        }
        options.update(overrides)
        return query_service.get_task_view(
            self._tasks.get_tasks(),
            today=self._clock().date(),
            first_day_of_week=current.first_day_of_week,
            case_sensitive=current.search_case_sensitive,
            max_regex_length=self.config.max_regex_length,
            **options,
        )

    def get_filter_counts(self) -> dict[str, int]:
        return query_service.get_filter_counts(
            self._tasks.get_tasks(),
            today=self._clock().date(),
            first_day_of_week=self._settings.get().first_day_of_week,
        )

    def get_search_suggestions(self, query: str) -> list[str]:
        return query_service.get_search_suggestions(self._tasks.get_tasks(), query)

    def find_matches(self, text: str) -> list[SearchMatch]:
        """Occurrences of the current search query in text, using the current search mode."""
        return query_service.find_matches(
            text,
            self._ui.search_query,
            self._ui.search_mode,
            case_sensitive=self._settings.get().search_case_sensitive,
            max_regex_length=self.config.max_regex_length,
        )

    def get_tag_suggestions(self) -> list[str]:
        return query_service.get_tag_suggestions(self._tasks.get_tasks())

    def get_stats(self) -> TaskStats:
        return analytics_service.calculate_task_stats(
            self._tasks.get_tasks(),
            today=self._clock().date(),
            first_day_of_week=self._settings.get().first_day_of_week,
        )

    def get_weekly_progress(self) -> WeeklyProgress:
        current = self._settings.get()
        return analytics_service.calculate_weekly_progress(
            self._tasks.get_tasks(),
            current.weekly_hour_target,
            now=self._clock(),
            first_day_of_week=current.first_day_of_week,
        )
