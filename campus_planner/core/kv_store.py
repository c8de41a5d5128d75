"""Key/value store backends for persisted planner state."""

import logging
import os
import re
import threading
import time
from pathlib import Path
from typing import Any, Protocol


logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageQuotaExceededError(OSError):
    """Raised when a write would exceed the store's capacity."""


class KVStore(Protocol):
    """String-keyed store holding serialized values."""

    @property
    def name(self) -> str:
        """Human-readable store name used in warnings."""
        ...

    def get(self, key: str) -> str | None:
        """Return the stored string or None when the key is absent."""
        ...

    def put(self, key: str, value: str) -> None:
        """Store a string, raising OSError on failure."""
        ...

    def remove(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        ...

    def keys(self) -> list[str]:
        """Return every key currently stored."""
        ...


def _validate_key(key: str) -> None:
    """Validate that a key only contains characters safe for file names."""
    if not _KEY_PATTERN.match(key):
        msg = f"Invalid storage key: {key}. Only letters, digits, '.', '-' and '_' are allowed."
        raise ValueError(msg)


class InMemoryKVStore:
    """Thread-safe in-memory store, optionally bounded by a byte quota."""

    def __init__(self, *, name: str = "memory", quota_bytes: int | None = None) -> None:
        """Initialize in-memory store."""
        self._name = name
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self._lock = threading.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._total_operations = 0

    @property
    def name(self) -> str:
        return self._name

    def get_health_status(self) -> dict[str, Any]:
        """Get store health status.

        Returns:
            Dict with last successful operation, total operations and entry count
        """
        return {
            "store": self._name,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "entries": len(self._data),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    def _used_bytes(self, *, excluding: str | None = None) -> int:
        return sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != excluding)

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._data.get(key)
            self._record_success()
            return value

    def put(self, key: str, value: str) -> None:
        with self._lock:
            if self._quota_bytes is not None:
                needed = self._used_bytes(excluding=key) + len(value.encode("utf-8"))
                if needed > self._quota_bytes:
                    msg = f"Quota of {self._quota_bytes} bytes exceeded writing {key}"
                    raise StorageQuotaExceededError(msg)
            self._data[key] = value
            self._record_success()
            logger.debug("Stored key: %s", key)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self._record_success()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._data.clear()


class FileKVStore:
    """Directory-backed store keeping one JSON file per key."""

    def __init__(self, directory: Path | str, *, name: str = "file") -> None:
        """Initialize the store, creating the directory if needed."""
        self._name = name
        self._directory = Path(directory).expanduser().resolve()
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return self._name

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        _validate_key(key)
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, key: str, value: str) -> None:
        path = self._path_for(key)
        # Write to a sibling temp file first so readers never see a torn value
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def remove(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(path.stem for path in self._directory.glob("*.json"))
