"""Backup ring: timestamped snapshots of the persisted state with bounded retention."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from campus_planner.core.config import Settings, settings
from campus_planner.core.errors import InvalidFormatError, NotFoundError
from campus_planner.core.logging import log_with_context, span
from campus_planner.core.persistence import PersistenceAdapter
from campus_planner.domain.task import parse_timestamp, utc_timestamp
from campus_planner.models.service_models import BackupInfo, ClearResult, RestoreResult, StorageInfo


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class BackupService:
    """Creates, lists, restores and evicts backups of the main state key.

    Backups live under ``{prefix}Backup_{epochMs}`` next to the state key and
    hold ``{originalKey, backupDate, data}``. Only the newest
    ``backup_retention`` backups (by backupDate) are kept.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        *,
        config: Settings | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        self.persistence = persistence
        self.config = config or settings
        self._clock = clock

    def _backup_key(self, moment: datetime) -> str:
        millis = int(moment.timestamp() * 1000)
        existing = set(self.persistence.keys(self.config.backup_prefix))
        # Two backups in the same millisecond get consecutive keys
        while f"{self.config.backup_prefix}{millis}" in existing:
            millis += 1
        return f"{self.config.backup_prefix}{millis}"

    def create_backup(self, state: dict[str, Any] | None = None) -> str | None:
        """Snapshot state (or the persisted main key) into a new backup.

        Returns:
            The backup key, or None if nothing could be written
        """
        with span("backup_service.create_backup"):
            data = state if state is not None else self.persistence.load(self.config.state_key, {})
            moment = self._clock()
            key = self._backup_key(moment)
            envelope = {
                "originalKey": self.config.state_key,
                "backupDate": utc_timestamp(moment),
                "data": data,
            }

            if not self.persistence.save(key, envelope):
                logger.error("Failed to create backup %s", key)
                return None

            log_with_context(logger, "info", "Backup created", key=key)
            self._enforce_retention()
            return key

    def _enforce_retention(self) -> None:
        backups = self.list_backups()
        for backup in backups[self.config.backup_retention :]:
            # remove() ignores keys that have already gone
            self.persistence.remove(backup.key)
            log_with_context(logger, "info", "Evicted old backup", key=backup.key)

    def list_backups(self) -> list[BackupInfo]:
        """Readable backups, newest first."""
        backups: list[BackupInfo] = []
        for key in self.persistence.keys(self.config.backup_prefix):
            envelope = self.persistence.load(key)
            if not isinstance(envelope, dict) or not isinstance(envelope.get("backupDate"), str):
                logger.warning("Skipping unreadable backup: %s", key)
                continue
            try:
                moment = parse_timestamp(envelope["backupDate"])
            except ValueError:
                logger.warning("Skipping backup with invalid date: %s", key)
                continue
            backups.append(
                BackupInfo(key=key, date=envelope["backupDate"], timestamp=int(moment.timestamp() * 1000))
            )

        backups.sort(key=lambda backup: (backup.timestamp, _key_millis(backup.key)), reverse=True)
        return backups

    def read_backup(self, key: str) -> dict[str, Any]:
        """Load and check a backup envelope.

        Raises:
            NotFoundError: If the key does not hold a backup
            InvalidFormatError: If the envelope is malformed
        """
        if not key.startswith(self.config.backup_prefix):
            raise NotFoundError(f"Backup not found: {key}", key=key)
        envelope = self.persistence.load(key)
        if envelope is None:
            raise NotFoundError(f"Backup not found: {key}", key=key)
        if not isinstance(envelope, dict) or not isinstance(envelope.get("data"), dict):
            raise InvalidFormatError(f"Invalid backup data in {key}")
        return envelope

    def restore_from_backup(self, key: str) -> RestoreResult:
        """Overwrite the main state key with a backup's data.

        Raises:
            NotFoundError: If the key does not hold a backup
            InvalidFormatError: If the envelope is malformed
        """
        with span("backup_service.restore_from_backup"):
            envelope = self.read_backup(key)
            if not self.persistence.save(self.config.state_key, envelope["data"]):
                logger.error("Restored backup %s could not be persisted", key)

            log_with_context(logger, "info", "Backup restored", key=key)
            return RestoreResult(
                key=key,
                backup_date=str(envelope.get("backupDate", "")),
                message="Data successfully restored from backup",
                data=envelope["data"],
            )

    def clear_all(self, state: dict[str, Any] | None = None) -> ClearResult:
        """Back up the current state, then remove the main key."""
        with span("backup_service.clear_all"):
            backup_key = self.create_backup(state)
            self.persistence.remove(self.config.state_key)
            logger.info("All data cleared")
            return ClearResult(
                ok=True,
                backup_key=backup_key,
                message=(
                    "All data cleared. Backup created for recovery."
                    if backup_key
                    else "All data cleared. No backup could be created."
                ),
            )

    def is_auto_backup_enabled(self) -> bool:
        """Auto-backup is off unless explicitly enabled."""
        value = self.persistence.load(self.config.auto_backup_key, False)
        return value is True or value == "true"

    def set_auto_backup(self, enabled: bool) -> None:
        self.persistence.save(self.config.auto_backup_key, bool(enabled))
        log_with_context(logger, "info", "Auto-backup toggled", enabled=bool(enabled))

    def get_storage_info(self) -> StorageInfo:
        """Sizes of the main state blob and of every backup."""
        backups = self.list_backups()
        main_size = self.persistence.size_of(self.config.state_key)
        backup_size = sum(self.persistence.size_of(backup.key) for backup in backups)
        return StorageInfo(
            main_data_size=main_size,
            backup_count=len(backups),
            total_backup_size=backup_size,
            total_size=main_size + backup_size,
            auto_backup_enabled=self.is_auto_backup_enabled(),
            last_backup=backups[0].date if backups else None,
        )


def _key_millis(key: str) -> int:
    suffix = key.rsplit("_", 1)[-1]
    return int(suffix) if suffix.isdigit() else 0
