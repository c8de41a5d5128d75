"""In-memory task collection with id minting, timestamps and validation."""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from campus_planner.core.errors import InvalidTaskError, NotFoundError
from campus_planner.core.logging import log_with_context
from campus_planner.domain.task import Task, TaskStatus, mint_task_id, parse_timestamp, utc_timestamp
from campus_planner.services.validation_service import errors_from_validation_error, validate_task


logger = logging.getLogger(__name__)

IdFactory = Callable[[int], str]

# Fields callers may never set directly
_PROTECTED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})

_WIRE_NAMES: dict[str, str] = {
    name: (field.alias or name) for name, field in Task.model_fields.items()
}


def to_wire_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize snake_case task keys to their camelCase wire names."""
    return {_WIRE_NAMES.get(key, key): value for key, value in data.items()}


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the epoch for an aware datetime."""
    return int(moment.timestamp() * 1000)


class TaskStore:
    """Ordered task collection enforcing unique ids and the Task schema.

    Readers always receive deep copies, so callers can never mutate stored
    tasks behind the store's back.
    """

    def __init__(self, tasks: Iterable[Task] = (), *, id_factory: IdFactory = mint_task_id) -> None:
        self._tasks: list[Task] = []
        self._id_factory = id_factory
        self.replace_all(tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def get_tasks(self) -> list[Task]:
        return [task.model_copy(deep=True) for task in self._tasks]

    def has_id(self, task_id: str) -> bool:
        return any(task.id == task_id for task in self._tasks)

    def _index_of(self, task_id: str) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        raise NotFoundError(f"Task not found: {task_id}", key=task_id)

    def get_task(self, task_id: str) -> Task:
        """Return a copy of one task.

        Raises:
            NotFoundError: If no task has this id
        """
        return self._tasks[self._index_of(task_id)].model_copy(deep=True)

    def mint_id(self, now: datetime, taken: set[str] | None = None) -> str:
        """Mint an id not used by any stored task (nor in taken)."""
        taken = taken or set()
        while True:
            candidate = self._id_factory(epoch_ms(now))
            if candidate not in taken and not self.has_id(candidate):
                return candidate

    def add_task(self, partial: Mapping[str, Any], *, default_tag: str, now: datetime) -> Task:
        """Validate and append a new task.

        Missing status, tag and duration take their defaults. The id and both
        timestamps are always assigned here.

        Raises:
            InvalidTaskError: If the task fails validation
        """
        data = to_wire_keys(partial)
        tag_supplied = data.get("tag") not in (None, "")
        record: dict[str, Any] = {"status": TaskStatus.PENDING, "duration": 0}
        record.update({key: value for key, value in data.items() if key not in _PROTECTED_FIELDS})
        if not tag_supplied:
            record["tag"] = default_tag

        errors = validate_task(record, strict_tag=tag_supplied)
        if errors:
            raise InvalidTaskError(errors)

        timestamp = utc_timestamp(now)
        record.update({"id": self.mint_id(now), "createdAt": timestamp, "updatedAt": timestamp})
        task = self._build(record)
        self._tasks.append(task)

        log_with_context(logger, "info", "Task added", task_id=task.id, tag=task.tag)
        return task.model_copy(deep=True)

    def update_task(self, task_id: str, patch: Mapping[str, Any], *, now: datetime) -> Task:
        """Merge a patch into a task and refresh updatedAt.

        Raises:
            NotFoundError: If no task has this id
            InvalidTaskError: If the merged task fails validation
        """
        index = self._index_of(task_id)
        current = self._tasks[index]

        changes = to_wire_keys(patch)
        ignored = sorted(_PROTECTED_FIELDS.intersection(changes))
        if ignored:
            log_with_context(
                logger, "warning", "Ignoring protected task fields in update", task_id=task_id, fields=ignored
            )
        record = current.to_record()
        record.update({key: value for key, value in changes.items() if key not in _PROTECTED_FIELDS})

        errors = validate_task(record, strict_tag="tag" in changes)
        if errors:
            raise InvalidTaskError(errors)

        # updatedAt never moves backwards, even if the clock does
        timestamp = utc_timestamp(now)
        if parse_timestamp(timestamp) < parse_timestamp(current.updated_at):
            timestamp = current.updated_at
        record["updatedAt"] = timestamp

        task = self._build(record)
        self._tasks[index] = task

        log_with_context(logger, "info", "Task updated", task_id=task_id, fields=sorted(changes))
        return task.model_copy(deep=True)

    def delete_task(self, task_id: str) -> Task:
        """Remove a task and return it.

        Raises:
            NotFoundError: If no task has this id
        """
        task = self._tasks.pop(self._index_of(task_id))
        log_with_context(logger, "info", "Task deleted", task_id=task_id)
        return task

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Replace the whole collection.

        Duplicate ids (only produced by append imports) are kept and logged;
        lookups by id then resolve to the first occurrence.
        """
        seen: set[str] = set()
        replacement: list[Task] = []
        for task in tasks:
            if task.id in seen:
                logger.warning("Keeping task with duplicate id: %s", task.id)
            seen.add(task.id)
            replacement.append(task.model_copy(deep=True))
        self._tasks = replacement

    def _build(self, record: Mapping[str, Any]) -> Task:
        try:
            return Task.model_validate(record)
        except ValidationError as e:
            raise InvalidTaskError(errors_from_validation_error(e)) from e
