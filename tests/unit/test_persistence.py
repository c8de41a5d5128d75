"""Unit tests for key/value stores and the persistence adapter."""

import json
from pathlib import Path

import pytest

from campus_planner.core.errors import PersistenceWarning
from campus_planner.core.kv_store import FileKVStore, InMemoryKVStore, StorageQuotaExceededError
from campus_planner.core.persistence import PersistenceAdapter
from tests.unit.mocks import FailingKVStore


def _broken_observer(warning: PersistenceWarning) -> None:
    raise RuntimeError("observer bug")


@pytest.mark.unit
class TestInMemoryKVStore:
    """Tests for the in-memory store."""

    def test_put_get_remove(self):
        store = InMemoryKVStore()

        store.put("a", "1")
        assert store.get("a") == "1"
        assert store.keys() == ["a"]

        store.remove("a")
        assert store.get("a") is None
        store.remove("a")  # absent keys are ignored

    def test_quota_exceeded(self):
        """Test writes beyond the byte quota raise StorageQuotaExceededError."""
        store = InMemoryKVStore(quota_bytes=10)
        store.put("a", "12345")

        with pytest.raises(StorageQuotaExceededError):
            store.put("b", "123456")

        assert store.get("b") is None

    def test_overwrite_does_not_count_old_value(self):
        store = InMemoryKVStore(quota_bytes=10)
        store.put("a", "1234567890")

        store.put("a", "0987654321")

        assert store.get("a") == "0987654321"

    def test_health_status_counts_operations(self):
        store = InMemoryKVStore(name="primary")
        store.put("a", "1")
        store.get("a")

        status = store.get_health_status()

        assert status["store"] == "primary"
        assert status["total_operations"] == 2
        assert status["entries"] == 1


@pytest.mark.unit
class TestFileKVStore:
    """Tests for the directory-backed store."""

    def test_round_trip(self, tmp_path: Path):
        store = FileKVStore(tmp_path / "data")

        store.put("campusLifePlannerState", '{"tasks": []}')

        assert store.get("campusLifePlannerState") == '{"tasks": []}'
        assert (tmp_path / "data" / "campusLifePlannerState.json").exists()
        assert store.keys() == ["campusLifePlannerState"]

    def test_missing_key_returns_none(self, tmp_path: Path):
        store = FileKVStore(tmp_path)

        assert store.get("absent") is None

    def test_remove(self, tmp_path: Path):
        store = FileKVStore(tmp_path)
        store.put("k", "v")

        store.remove("k")
        store.remove("k")

        assert store.keys() == []

    def test_rejects_path_traversal_keys(self, tmp_path: Path):
        """Test keys that would escape the directory are rejected."""
        store = FileKVStore(tmp_path)

        with pytest.raises(ValueError, match="Invalid storage key"):
            store.put("../outside", "v")


@pytest.mark.unit
class TestPersistenceAdapter:
    """Tests for save/load with fallback."""

    def test_save_and_load_json(self, persistence: PersistenceAdapter, primary_store: InMemoryKVStore):
        assert persistence.save("k", {"tasks": [1, 2]}) is True

        assert json.loads(primary_store.get("k")) == {"tasks": [1, 2]}
        assert persistence.load("k") == {"tasks": [1, 2]}
        assert persistence.warnings == []

    def test_load_missing_returns_default(self, persistence: PersistenceAdapter):
        assert persistence.load("absent") is None
        assert persistence.load("absent", {"fallback": True}) == {"fallback": True}

    def test_write_failure_falls_back_to_secondary(self, session_store: InMemoryKVStore):
        """Test a failed primary write lands in the secondary store with a warning."""
        primary = FailingKVStore(fail_reads=False)
        adapter = PersistenceAdapter(primary, session_store)

        assert adapter.save("k", [1]) is True

        assert session_store.get("k") == "[1]"
        assert adapter.load("k") == [1]
        assert len(adapter.warnings) == 1
        assert adapter.warnings[0].operation == "write"
        assert adapter.warnings[0].store == "broken"

    def test_both_stores_failing_never_raises(self):
        """Test total storage failure reports warnings and returns defaults."""
        adapter = PersistenceAdapter(FailingKVStore(), FailingKVStore(name="also-broken"))

        assert adapter.save("k", {"a": 1}) is False
        assert adapter.load("k", "default") == "default"
        assert {w.store for w in adapter.warnings} == {"broken", "also-broken"}

    def test_corrupt_json_returns_default(self, persistence: PersistenceAdapter, primary_store: InMemoryKVStore):
        primary_store.put("k", "{not json")

        assert persistence.load("k", {}) == {}
        assert persistence.warnings[0].operation == "read"

    def test_unserializable_value_is_reported(self, persistence: PersistenceAdapter):
        assert persistence.save("k", {"bad": object()}) is False
        assert persistence.warnings[0].operation == "serialize"

    def test_warning_observers_are_notified(self, session_store: InMemoryKVStore):
        received: list[PersistenceWarning] = []
        adapter = PersistenceAdapter(FailingKVStore(fail_reads=False), session_store, on_warning=received.append)
        adapter.add_warning_observer(_broken_observer)

        adapter.save("k", 1)

        assert len(received) == 1
        assert received[0].key == "k"

    def test_keys_merges_both_stores(
        self, persistence: PersistenceAdapter, primary_store: InMemoryKVStore, session_store: InMemoryKVStore
    ):
        primary_store.put("appBackup_1", "{}")
        primary_store.put("other", "{}")
        session_store.put("appBackup_2", "{}")
        session_store.put("appBackup_1", "{}")

        assert sorted(persistence.keys("appBackup_")) == ["appBackup_1", "appBackup_2"]

    def test_remove_clears_both_stores(
        self, persistence: PersistenceAdapter, primary_store: InMemoryKVStore, session_store: InMemoryKVStore
    ):
        primary_store.put("k", "1")
        session_store.put("k", "2")

        persistence.remove("k")

        assert persistence.load("k") is None

    def test_size_of(self, persistence: PersistenceAdapter):
        persistence.save("k", {"a": "é"})

        assert persistence.size_of("k") == len(json.dumps({"a": "é"}).encode("utf-8"))
        assert persistence.size_of("absent") == 0
