import logging
import os
from dataclasses import dataclass

from swade.application.services.advance_journal import AdvanceJournal, register_advance_journal_handlers
from swade.application.services.advancement_service import AdvancementService
from swade.application.services.character_loader import CharacterLoader
from swade.application.services.character_service import CharacterService
from swade.application.services.event_bus import EventBus
from swade.infrastructure.db.inmemory.repos import InMemoryCatalogRepository, InMemoryCharacterRepository
from swade.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from swade.infrastructure.inmemory.catalog_seed import build_core_catalog, build_demo_character

logger = logging.getLogger(__name__)


@dataclass
class SwadeApp:
    advancement: AdvancementService
    characters: CharacterService
    event_bus: EventBus
    journal: AdvanceJournal


def _assemble(character_repo, catalog_repo, atomic_persistor) -> SwadeApp:
    event_bus = EventBus()
    journal = register_advance_journal_handlers(event_bus)
    loader = CharacterLoader(character_repo, catalog_repo)
    return SwadeApp(
        advancement=AdvancementService(loader, atomic_persistor, event_publisher=event_bus.publish),
        characters=CharacterService(loader, atomic_persistor),
        event_bus=event_bus,
        journal=journal,
    )


def _build_inmemory_app() -> SwadeApp:
    demo = build_demo_character()
    character_repo = InMemoryCharacterRepository({demo.id: demo})
    catalog_repo = InMemoryCatalogRepository(build_core_catalog())
    return _assemble(character_repo, catalog_repo, create_inmemory_atomic_persistor(character_repo))


def _build_sql_app() -> SwadeApp:
    from swade.infrastructure.db.sql.atomic_persistence import persist_change_set_atomic
    from swade.infrastructure.db.sql.repos import SqlCatalogRepository, SqlCharacterRepository

    character_repo = SqlCharacterRepository()
    catalog_repo = SqlCatalogRepository()
    app = _assemble(character_repo, catalog_repo, persist_change_set_atomic)

    # Fail early so a broken database URL is reported before any command runs.
    try:
        app.characters.list_characters()
    except Exception as exc:
        raise RuntimeError(f"Database bootstrap check failed: {exc}") from exc
    return app


def create_app() -> SwadeApp:
    if os.getenv("SWADE_DATABASE_URL"):
        logger.info("Using SQL repositories")
        return _build_sql_app()
    logger.info("Using in-memory repositories with the demo character")
    return _build_inmemory_app()
