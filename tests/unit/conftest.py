"""Pytest configuration and fixtures for unit tests."""

import pytest

from campus_planner.core.config import Settings
from campus_planner.core.kv_store import InMemoryKVStore
from campus_planner.core.persistence import PersistenceAdapter
from campus_planner.services.backup_service import BackupService
from campus_planner.services.state_hub import StateHub
from tests.unit.mocks import FIXED_NOW, FixedClock, SequentialIds


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at Thursday 2025-03-20 10:00 UTC."""
    return FixedClock(FIXED_NOW)


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def primary_store() -> InMemoryKVStore:
    return InMemoryKVStore(name="primary")


@pytest.fixture
def session_store() -> InMemoryKVStore:
    return InMemoryKVStore(name="session")


@pytest.fixture
def persistence(primary_store: InMemoryKVStore, session_store: InMemoryKVStore) -> PersistenceAdapter:
    """Adapter over two in-memory stores."""
    return PersistenceAdapter(primary_store, session_store)


@pytest.fixture
def backups(persistence: PersistenceAdapter, test_settings: Settings, clock: FixedClock) -> BackupService:
    return BackupService(persistence, config=test_settings, clock=clock)


@pytest.fixture
def hub(
    persistence: PersistenceAdapter,
    backups: BackupService,
    test_settings: Settings,
    clock: FixedClock,
    ids: SequentialIds,
) -> StateHub:
    """StateHub over in-memory storage with a fixed clock and predictable ids."""
    return StateHub(persistence, backups=backups, config=test_settings, clock=clock, id_factory=ids)


@pytest.fixture
def essay() -> dict:
    """Valid task input."""
    return {"title": "Essay", "dueDate": "2025-03-14", "duration": 90, "tag": "Writing"}
