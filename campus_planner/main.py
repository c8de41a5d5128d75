"""campus_planner - composition root wiring storage, backups and the state hub."""

import logging

from campus_planner.core.config import Settings, settings
from campus_planner.core.kv_store import FileKVStore, InMemoryKVStore
from campus_planner.core.logging import configure_logfire
from campus_planner.core.persistence import PersistenceAdapter
from campus_planner.services.backup_service import BackupService
from campus_planner.services.seed_loader import make_seed_loader
from campus_planner.services.state_hub import StateHub


logger = logging.getLogger(__name__)


def build_state_hub(config: Settings | None = None) -> StateHub:
    """Create a StateHub backed by the file store with an in-memory fallback.

    The hub has loaded persisted state but is not initialized yet; await
    ``start()`` (or ``hub.initialize()``) before use.
    """
    config = config or settings
    primary = FileKVStore(config.data_dir, name="file")
    secondary = InMemoryKVStore(name="session")
    persistence = PersistenceAdapter(primary, secondary)
    backups = BackupService(persistence, config=config)
    return StateHub(persistence, backups=backups, config=config)


async def start(config: Settings | None = None) -> StateHub:
    """Configure logging, build the hub and run its initialization (seed included)."""
    config = config or settings
    configure_logfire(config)

    hub = build_state_hub(config)
    seed_loader = make_seed_loader(config.seed_source) if config.seed_source else None
    await hub.initialize(seed_loader)

    logger.info("startup", extra={"tasks": len(hub.get_tasks()), "data_dir": str(config.data_dir)})
    return hub
