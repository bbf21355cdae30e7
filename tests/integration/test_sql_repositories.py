import sys
from pathlib import Path
import unittest
from unittest import mock

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade.application.services.advancement_service import AdvancementService
from swade.application.services.character_loader import CharacterLoader
from swade.application.services.character_service import CharacterService
from swade.domain.errors import StorageFailureError
from swade.domain.models.change_set import CHARACTER_ATTRIBUTE, CHARACTER_HINDRANCE, ChangeSet
from swade.domain.models.die import Die
from swade.domain.services.modifier_aggregation import build_character_view
from swade.infrastructure.db.inmemory.repos import InMemoryCatalogRepository, InMemoryCharacterRepository
from swade.infrastructure.db.sql import atomic_persistence, repos
from swade.infrastructure.db.sql.atomic_persistence import persist_change_set_atomic
from swade.infrastructure.db.sql.repos import SqlCatalogRepository, SqlCharacterRepository
from swade.infrastructure.db.sql.schema import create_schema, seed_catalog
from swade.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from swade.infrastructure.inmemory.catalog_seed import (
    FIGHTING,
    SHOOTING,
    SPELLCASTING,
    VIGOR,
    build_core_catalog,
    build_demo_character,
)

BRAVE, QUICK, TRADEMARK_WEAPON = 9, 10, 7
WANTED = 10


class SqlRepositoryIntegrationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite:///:memory:", future=True)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False)
        create_schema(self.engine)
        self.catalog = build_core_catalog()
        with self.SessionLocal.begin() as session:
            seed_catalog(session, self.catalog)

        patches = [
            mock.patch.object(repos, "SessionLocal", self.SessionLocal),
            mock.patch.object(atomic_persistence, "SessionLocal", self.SessionLocal),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

        self.character_repo = SqlCharacterRepository()
        self.character_id = self.character_repo.create(build_demo_character()).id
        self.loader = CharacterLoader(self.character_repo, SqlCatalogRepository())
        self.advancement = AdvancementService(self.loader, persist_change_set_atomic)

    def _inmemory_view(self):
        return build_character_view(build_demo_character(), self.catalog)

    def test_catalog_round_trips_through_rows(self) -> None:
        loaded = SqlCatalogRepository().load()

        self.assertEqual(
            [(row.id, row.name, row.min_advances, row.max_advances) for row in self.catalog.ranks],
            [(row.id, row.name, row.min_advances, row.max_advances) for row in loaded.ranks],
        )
        self.assertEqual(sorted(self.catalog.edges), sorted(loaded.edges))
        for edge_id, edge in self.catalog.edges.items():
            self.assertEqual(edge.name, loaded.edges[edge_id].name)
            self.assertEqual(edge.can_take_multiple_times, loaded.edges[edge_id].can_take_multiple_times)
            self.assertEqual(len(edge.modifiers), len(loaded.edges[edge_id].modifiers))
        self.assertEqual(
            {row.id: row.companion_hindrance_id for row in self.catalog.hindrances.values()},
            {row.id: row.companion_hindrance_id for row in loaded.hindrances.values()},
        )

    def test_created_character_reads_back_with_the_same_view(self) -> None:
        stored = self.character_repo.get(self.character_id)
        view = self.loader.view(self.character_id)
        expected = self._inmemory_view()

        self.assertEqual("Red Harlan", stored.name)
        self.assertEqual(expected.derived_stats, view.derived_stats)
        self.assertEqual(expected.encumbrance, view.encumbrance)
        self.assertEqual(expected.points, view.points)
        self.assertEqual(
            [(row.skill.name, row.die) for row in expected.skills],
            [(row.skill.name, row.die) for row in view.skills],
        )
        self.assertEqual([row.edge.name for row in expected.edges], [row.edge.name for row in view.edges])
        self.assertEqual(
            [row.hindrance.name for row in expected.hindrances],
            [row.hindrance.name for row in view.hindrances],
        )

    def test_requirement_trees_evaluate_the_same_after_loading(self) -> None:
        inmemory_repo = InMemoryCharacterRepository({1: build_demo_character()})
        inmemory = AdvancementService(
            CharacterLoader(inmemory_repo, InMemoryCatalogRepository(self.catalog)),
            create_inmemory_atomic_persistor(inmemory_repo),
        )

        sql_options = self.advancement.get_advancement_options(self.character_id)
        inmemory_options = inmemory.get_advancement_options(1)

        self.assertEqual(
            [row.name for row in inmemory_options.edge_options],
            [row.name for row in sql_options.edge_options],
        )
        self.assertEqual(
            [(row.id, row.action) for row in inmemory_options.hindrance_options],
            [(row.id, row.action) for row in sql_options.hindrance_options],
        )

    def test_advances_persist_and_undo(self) -> None:
        self.advancement.apply_edge_advance(self.character_id, TRADEMARK_WEAPON, "Long Sword")
        self.advancement.apply_attribute_advance(self.character_id, VIGOR)
        self.advancement.apply_cheap_skill_advance(self.character_id, SHOOTING, SPELLCASTING)
        self.advancement.apply_expensive_skill_advance(self.character_id, FIGHTING)
        self.advancement.apply_hindrance_advance(self.character_id, WANTED, "remove_major_half")

        reloaded = SqlCharacterRepository().get(self.character_id)
        self.assertEqual([1, 2, 3, 4, 5], [row.advance_number for row in reloaded.advances])
        self.assertEqual("remove_major_half", reloaded.advances[-1].hindrance_action)
        self.assertEqual("chosen", reloaded.advances[-1].notes)
        self.assertEqual(1, reloaded.attribute(VIGOR).steps_incremented)
        self.assertEqual(Die.d10(), reloaded.skill(FIGHTING).die)
        self.assertEqual(Die.d4(), reloaded.skill(SPELLCASTING).die)
        trademark = next(row for row in reloaded.edges if row.edge_id == TRADEMARK_WEAPON)
        self.assertEqual((1, "advancement", "Long Sword"), (trademark.advance_taken, trademark.source, trademark.notes))
        self.assertEqual("Seasoned", self.loader.view(self.character_id).rank.name)

        for _ in range(5):
            self.advancement.undo_advance(self.character_id)

        reloaded = SqlCharacterRepository().get(self.character_id)
        self.assertEqual([], reloaded.advances)
        self.assertEqual(0, reloaded.attribute(VIGOR).steps_incremented)
        self.assertEqual(Die.d8(), reloaded.skill(FIGHTING).die)
        self.assertIsNone(reloaded.skill(SPELLCASTING).die)
        self.assertFalse(reloaded.owns_edge(TRADEMARK_WEAPON))
        self.assertIsNotNone(reloaded.hindrance(WANTED))

    def test_draft_edits_persist(self) -> None:
        service = CharacterService(self.loader, persist_change_set_atomic)
        service.set_gear_equipped(self.character_id, 3, True)
        result = service.update_skill(self.character_id, SHOOTING, True, bypass_validation=True)

        self.assertEqual(7, result.character.derived_stats.parry)
        self.assertEqual(Die.d6(), result.character.skill_value(SHOOTING).die)
        self.assertEqual(13, SqlCharacterRepository().get(self.character_id).skill_points_spent)

    def test_arcane_gear_and_ancestry_edits_persist(self) -> None:
        service = CharacterService(self.loader, persist_change_set_atomic)
        service.add_draft_arcane_background(self.character_id, 1)
        service.add_draft_power(self.character_id, 1)
        service.purchase_gear(self.character_id, 5, 2)
        service.sell_gear(self.character_id, 3)
        service.update_draft_ancestry(self.character_id, 2)

        reloaded = SqlCharacterRepository().get(self.character_id)
        self.assertEqual([1], [row.arcane_background_id for row in reloaded.arcane_backgrounds])
        self.assertEqual([(1, 1)], [(row.power_id, row.arcane_background_id) for row in reloaded.powers])
        self.assertEqual(2, reloaded.gear_item(5).quantity)
        self.assertIsNone(reloaded.gear_item(3))
        self.assertEqual(92, reloaded.wealth)
        self.assertEqual(2, reloaded.ancestry_id)

        service.remove_draft_arcane_background(self.character_id, 1)
        reloaded = SqlCharacterRepository().get(self.character_id)
        self.assertEqual([], reloaded.arcane_backgrounds)
        self.assertEqual([], reloaded.powers)

    def test_failed_change_set_rolls_back_the_transaction(self) -> None:
        change_set = (
            ChangeSet(character_id=self.character_id)
            .update(CHARACTER_ATTRIBUTE, attribute_id=VIGOR, steps_incremented=3)
            .delete(CHARACTER_HINDRANCE, hindrance_id=3)
        )

        with self.assertLogs("swade.infrastructure.db.sql.atomic_persistence", level="ERROR"):
            with self.assertRaises(StorageFailureError):
                persist_change_set_atomic(change_set)

        with self.engine.connect() as conn:
            steps = conn.execute(
                text(
                    "SELECT steps_incremented FROM character_attribute "
                    "WHERE character_id = :cid AND attribute_id = :aid"
                ),
                {"cid": self.character_id, "aid": VIGOR},
            ).scalar()
        self.assertIn(steps, (None, 0))


if __name__ == "__main__":
    unittest.main()
