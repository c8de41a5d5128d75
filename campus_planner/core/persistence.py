"""Persistence adapter: JSON values over a primary store with a transient fallback."""

import json
import logging
from collections.abc import Callable
from typing import Any

from campus_planner.core.errors import PersistenceWarning
from campus_planner.core.kv_store import InMemoryKVStore, KVStore
from campus_planner.core.logging import log_with_context


logger = logging.getLogger(__name__)

WarningObserver = Callable[[PersistenceWarning], None]


class PersistenceAdapter:
    """Save and load JSON values, falling back to a secondary store on failure.

    Writes go to the primary store; if that fails (quota, I/O) the value is
    written to the secondary transient store instead and a PersistenceWarning
    is reported. Reads try the primary first, then the secondary, and return
    the caller's default when both fail.
    """

    def __init__(
        self,
        primary: KVStore,
        secondary: KVStore | None = None,
        *,
        on_warning: WarningObserver | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary if secondary is not None else InMemoryKVStore(name="session")
        self._observers: list[WarningObserver] = [on_warning] if on_warning else []
        self.warnings: list[PersistenceWarning] = []

    def add_warning_observer(self, observer: WarningObserver) -> None:
        """Register a callback receiving every PersistenceWarning."""
        self._observers.append(observer)

    def _warn(self, *, operation: str, key: str, store: KVStore, error: Exception | str) -> None:
        warning = PersistenceWarning(operation=operation, key=key, store=store.name, message=str(error))
        self.warnings.append(warning)
        log_with_context(
            logger,
            "warning",
            f"Storage {operation} failed on {store.name} store",
            key=key,
            store=store.name,
            error=str(error),
        )
        for observer in self._observers:
            try:
                observer(warning)
            except Exception as e:
                logger.error("Persistence warning observer failed: %s", e)

    def save(self, key: str, value: Any) -> bool:
        """Serialize and store a value.

        Returns:
            True if at least one store accepted the write
        """
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            self._warn(operation="serialize", key=key, store=self.primary, error=e)
            return False

        try:
            self.primary.put(key, serialized)
            return True
        except (OSError, ValueError) as e:
            self._warn(operation="write", key=key, store=self.primary, error=e)

        try:
            self.secondary.put(key, serialized)
            logger.warning("Fallback: %s saved to %s store instead of %s", key, self.secondary.name, self.primary.name)
            return True
        except (OSError, ValueError) as e:
            self._warn(operation="write", key=key, store=self.secondary, error=e)
            return False

    def _read(self, store: KVStore, key: str) -> tuple[bool, Any]:
        """Return (found, value); raises on I/O or parse failures."""
        raw = store.get(key)
        if raw is None:
            return False, None
        return True, json.loads(raw)

    def load(self, key: str, default: Any = None) -> Any:
        """Load and deserialize a value, returning default when unavailable."""
        try:
            found, value = self._read(self.primary, key)
            if found:
                return value
        except (OSError, ValueError) as e:
            self._warn(operation="read", key=key, store=self.primary, error=e)

        try:
            found, value = self._read(self.secondary, key)
            if found:
                return value
        except (OSError, ValueError) as e:
            self._warn(operation="read", key=key, store=self.secondary, error=e)

        return default

    def remove(self, key: str) -> None:
        """Remove a key from both stores. Failures are reported, not raised."""
        for store in (self.primary, self.secondary):
            try:
                store.remove(key)
            except (OSError, ValueError) as e:
                self._warn(operation="remove", key=key, store=store, error=e)

    def keys(self, prefix: str = "") -> list[str]:
        """Keys from both stores, optionally restricted to a prefix."""
        found: dict[str, None] = {}
        for store in (self.primary, self.secondary):
            try:
                for key in store.keys():
                    if key.startswith(prefix):
                        found[key] = None
            except OSError as e:
                self._warn(operation="list", key=prefix or "*", store=store, error=e)
        return list(found)

    def size_of(self, key: str) -> int:
        """Size in bytes of the raw stored value (0 when absent)."""
        for store in (self.primary, self.secondary):
            try:
                raw = store.get(key)
            except OSError:
                continue
            if raw is not None:
                return len(raw.encode("utf-8"))
        return 0
