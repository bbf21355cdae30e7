import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade.application.services.character_loader import CharacterLoader
from swade.application.services.character_service import CharacterService
from swade.domain.errors import NotFoundError, ValidationFailedError
from swade.domain.models.character import Character
from swade.domain.models.die import Die
from swade.infrastructure.db.inmemory.repos import InMemoryCatalogRepository, InMemoryCharacterRepository
from swade.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from swade.infrastructure.inmemory.catalog_seed import (
    AGILITY,
    ATHLETICS,
    COMMON_KNOWLEDGE,
    FIGHTING,
    SHOOTING,
    SMARTS,
    SPIRIT,
    VIGOR,
    build_core_catalog,
    build_demo_character,
)

ALERTNESS, BRAWNY, FLEET_FOOTED, RICH, TRADEMARK_WEAPON, POWER_POINTS, QUICK = 1, 2, 5, 6, 7, 8, 10
LOYAL, CLUELESS, WANTED = 4, 6, 10
LONG_SWORD, SMALL_SHIELD, ROPE, BEDROLL = 1, 3, 5, 6
HUMAN, DWARF = 1, 2
MAGIC, MIRACLES = 1, 2
BOLT, HEALING, PROTECTION, SMITE = 1, 2, 3, 4


class CharacterServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.character_repo = InMemoryCharacterRepository(
            {
                1: build_demo_character(),
                2: Character(id=2, name="Draft", ancestry_id=1),
            }
        )
        loader = CharacterLoader(self.character_repo, InMemoryCatalogRepository(build_core_catalog()))
        self.service = CharacterService(loader, create_inmemory_atomic_persistor(self.character_repo))

    def test_list_characters_returns_views_in_id_order(self) -> None:
        self.assertEqual(["Red Harlan", "Draft"], [row.name for row in self.service.list_characters()])

    def test_attribute_points_are_spent_and_refunded(self) -> None:
        result = self.service.update_attribute(2, AGILITY, True)
        self.assertEqual(Die.d6(), result.character.attribute_value(AGILITY).die)
        self.assertEqual(4, result.character.points.attribute_points_available)

        result = self.service.update_attribute(2, AGILITY, False)
        self.assertEqual(Die.d4(), result.character.attribute_value(AGILITY).die)
        self.assertEqual(5, result.character.points.attribute_points_available)

    def test_attribute_cannot_drop_below_base(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.update_attribute(2, AGILITY, False)
        self.assertFalse(ctx.exception.bypassable)

    def test_overspending_attribute_points_needs_a_bypass(self) -> None:
        for _ in range(4):
            self.service.update_attribute(2, AGILITY, True)
        self.service.update_attribute(2, SMARTS, True)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.update_attribute(2, SPIRIT, True)
        self.assertTrue(ctx.exception.bypassable)

        result = self.service.update_attribute(2, SPIRIT, True, bypass_validation=True)
        self.assertEqual("point_limit_exceeded", result.warnings[0].warning_type)
        self.assertEqual(-1, result.character.points.attribute_points_available)

    def test_unknown_attribute_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.update_attribute(2, 99, True)

    def test_skill_costs_double_above_the_linked_attribute(self) -> None:
        result = self.service.update_skill(2, ATHLETICS, True)
        self.assertEqual(Die.d6(), result.character.skill_value(ATHLETICS).die)
        self.assertEqual(10, result.character.points.skill_points_available)

        result = self.service.update_skill(2, FIGHTING, True)
        self.assertEqual(Die.d4(), result.character.skill_value(FIGHTING).die)
        self.assertEqual(9, result.character.points.skill_points_available)

        result = self.service.update_skill(2, ATHLETICS, False)
        self.assertEqual(Die.d4(), result.character.skill_value(ATHLETICS).die)
        self.assertEqual(11, result.character.points.skill_points_available)

        result = self.service.update_skill(2, FIGHTING, False)
        self.assertIsNone(result.character.skill_value(FIGHTING).die)
        self.assertEqual(12, result.character.points.skill_points_available)

    def test_core_skills_never_drop_below_d4(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.service.update_skill(2, ATHLETICS, False)
        with self.assertRaises(ValidationFailedError):
            self.service.update_skill(2, FIGHTING, False)

    def test_hindrance_points_are_capped(self) -> None:
        self.service.add_hindrance(2, WANTED)
        result = self.service.add_hindrance(2, CLUELESS)
        self.assertEqual(4, result.character.points.hindrance_points_earned)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.add_hindrance(2, LOYAL)
        self.assertTrue(ctx.exception.bypassable)

        result = self.service.add_hindrance(2, LOYAL, bypass_validation=True)
        self.assertEqual(5, result.character.points.hindrance_points_earned)
        self.assertEqual(1, len(result.warnings))

    def test_duplicate_hindrance_is_rejected(self) -> None:
        self.service.add_hindrance(2, WANTED)
        with self.assertRaises(ValidationFailedError):
            self.service.add_hindrance(2, WANTED, bypass_validation=True)

    def test_creation_edge_spends_allocated_points(self) -> None:
        self.service.add_hindrance(2, WANTED)
        result = self.service.allocate_hindrance_points(2, "edges", 2)
        self.assertEqual(2, result.character.points.edge_points_available)
        self.assertEqual(0, result.character.points.hindrance_points_available)

        result = self.service.add_edge(2, ALERTNESS)
        self.assertEqual(0, result.character.points.edge_points_available)
        edge = result.character.edges[0]
        self.assertEqual("hindrance_points", edge.source)
        self.assertEqual(0, edge.advance_taken)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.add_edge(2, RICH)
        self.assertTrue(ctx.exception.bypassable)

    def test_edges_must_be_allocated_in_pairs(self) -> None:
        self.service.add_hindrance(2, WANTED)
        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "edges", 1)

    def test_rich_adds_wealth(self) -> None:
        self.service.add_hindrance(2, WANTED)
        self.service.allocate_hindrance_points(2, "edges", 2)
        result = self.service.add_edge(2, RICH)
        self.assertEqual(1500, result.character.wealth)

    def test_wealth_bucket_adds_starting_funds(self) -> None:
        self.service.add_hindrance(2, LOYAL)
        result = self.service.allocate_hindrance_points(2, "wealth", 1)
        self.assertEqual(1000, result.character.wealth)

        result = self.service.allocate_hindrance_points(2, "wealth", -1)
        self.assertEqual(500, result.character.wealth)

    def test_attribute_bucket_costs_two_points(self) -> None:
        self.service.add_hindrance(2, WANTED)
        result = self.service.allocate_hindrance_points(2, "attributes", 1)
        self.assertEqual(6, result.character.points.attribute_points_available)
        self.assertEqual(0, result.character.points.hindrance_points_available)

        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "attributes", 1)

    def test_deallocation_of_spent_points_is_refused(self) -> None:
        self.service.add_hindrance(2, WANTED)
        self.service.allocate_hindrance_points(2, "edges", 2)
        self.service.add_edge(2, ALERTNESS)

        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "edges", -2)
        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "skills", -1)

    def test_unknown_bucket_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "powers", 1)
        with self.assertRaises(ValidationFailedError):
            self.service.allocate_hindrance_points(2, "skills", 0)

    def test_lowering_an_attribute_drops_edges_that_no_longer_qualify(self) -> None:
        self.service.add_hindrance(2, WANTED)
        self.service.allocate_hindrance_points(2, "edges", 2)
        self.service.update_attribute(2, AGILITY, True)
        self.service.add_edge(2, FLEET_FOOTED)

        with self.assertLogs("swade.application.services.character_service", level="INFO"):
            result = self.service.update_attribute(2, AGILITY, False)

        self.assertEqual(["Removed Fleet-Footed: requirements no longer met"], result.messages)
        self.assertEqual((), result.character.edges)
        self.assertEqual(0, self.character_repo.get(2).hindrance_points_to_edges)
        self.assertEqual(2, result.character.points.hindrance_points_available)
        self.assertEqual(6, result.character.derived_stats.pace)

    def test_gear_can_be_equipped(self) -> None:
        result = self.service.set_gear_equipped(1, SMALL_SHIELD, True)
        self.assertEqual(7, result.character.derived_stats.parry)

        result = self.service.set_gear_equipped(1, SMALL_SHIELD, False)
        self.assertEqual(6, result.character.derived_stats.parry)

        with self.assertRaises(NotFoundError):
            self.service.set_gear_equipped(2, SMALL_SHIELD, True)

    def test_removing_a_chosen_hindrance_gives_back_its_points(self) -> None:
        result = self.service.remove_draft_hindrance(1, WANTED)
        self.assertIsNone(self.character_repo.get(1).hindrance(WANTED))
        self.assertEqual(2, result.character.points.hindrance_points_earned)
        self.assertEqual(0, result.character.points.hindrance_points_available)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.remove_draft_hindrance(1, LOYAL)
        self.assertIn("Deallocate them first", ctx.exception.message)
        with self.assertRaises(ValidationFailedError):
            self.service.remove_draft_hindrance(1, CLUELESS)
        with self.assertRaises(NotFoundError):
            self.service.remove_draft_hindrance(1, 99)

    def test_removing_a_creation_edge_frees_its_points_and_wealth(self) -> None:
        result = self.service.remove_draft_edge(1, ALERTNESS)
        self.assertFalse(self.character_repo.get(1).owns_edge(ALERTNESS))
        self.assertEqual(2, result.character.points.edge_points_available)

        result = self.service.add_edge(1, RICH)
        self.assertEqual(1100, result.character.wealth)
        result = self.service.remove_draft_edge(1, RICH)
        self.assertEqual(100, result.character.wealth)
        self.assertEqual(2, result.character.points.edge_points_available)

        with self.assertRaises(ValidationFailedError):
            self.service.remove_draft_edge(1, QUICK)

    def test_changing_ancestry_swaps_modifiers_and_drops_unqualified_edges(self) -> None:
        result = self.service.update_draft_ancestry(1, DWARF)
        self.assertEqual("Dwarf", result.character.ancestry.name)
        self.assertEqual(Die.d6(), result.character.attribute_value(VIGOR).effective_die)
        self.assertEqual(5, result.character.derived_stats.pace)

        self.service.allocate_hindrance_points(1, "edges", 2)
        self.service.add_edge(1, BRAWNY)
        result = self.service.update_draft_ancestry(1, HUMAN)

        self.assertEqual(["Removed Brawny: requirements no longer met"], result.messages)
        self.assertFalse(self.character_repo.get(1).owns_edge(BRAWNY))
        self.assertEqual(2, self.character_repo.get(1).hindrance_points_to_edges)
        self.assertEqual(6, result.character.derived_stats.pace)

        result = self.service.update_draft_ancestry(1, None)
        self.assertIsNone(result.character.ancestry)
        with self.assertRaises(NotFoundError):
            self.service.update_draft_ancestry(1, 99)

    def test_arcane_backgrounds_are_gated_by_requirements(self) -> None:
        result = self.service.add_draft_arcane_background(1, MAGIC)
        self.assertEqual(["Magic"], [row.arcane_background.name for row in result.character.arcane_backgrounds])
        with self.assertRaises(ValidationFailedError):
            self.service.add_draft_arcane_background(1, MAGIC)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.add_draft_arcane_background(1, MIRACLES)
        self.assertTrue(ctx.exception.bypassable)
        self.assertIn("Spirit d8+", ctx.exception.message)

        with self.assertLogs("swade.application.services.character_service", level="WARNING"):
            result = self.service.add_draft_arcane_background(1, MIRACLES, bypass_validation=True)
        self.assertEqual(["requirement_not_met"], [row.warning_type for row in result.warnings])
        self.assertEqual(2, len(result.character.arcane_backgrounds))

    def test_powers_need_an_arcane_background_and_a_free_slot(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.add_draft_power(1, BOLT)
        self.assertFalse(ctx.exception.bypassable)

        self.service.add_draft_arcane_background(1, MAGIC)
        for power_id in (BOLT, HEALING, PROTECTION):
            result = self.service.add_draft_power(1, power_id)
        self.assertEqual(["Bolt", "Healing", "Protection"], [row.power.name for row in result.character.powers])
        self.assertEqual({MAGIC}, {row.arcane_background_id for row in self.character_repo.get(1).powers})

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.add_draft_power(1, SMITE)
        self.assertEqual("requirement_not_met", ctx.exception.warning_type)
        with self.assertLogs("swade.application.services.character_service", level="WARNING"):
            result = self.service.add_draft_power(1, SMITE, bypass_validation=True)
        self.assertEqual(
            ["requirement_not_met", "slot_limit_exceeded"],
            [row.warning_type for row in result.warnings],
        )

    def test_removing_powers_and_arcane_backgrounds(self) -> None:
        self.service.add_draft_arcane_background(1, MAGIC)
        self.service.add_draft_power(1, BOLT)
        self.service.add_draft_power(1, HEALING)

        result = self.service.remove_draft_power(1, HEALING)
        self.assertEqual(["Bolt"], [row.power.name for row in result.character.powers])
        with self.assertRaises(ValidationFailedError):
            self.service.remove_draft_power(1, HEALING)

        self.service.allocate_hindrance_points(1, "edges", 2)
        self.service.add_edge(1, POWER_POINTS, "Magic")
        result = self.service.remove_draft_arcane_background(1, MAGIC)

        self.assertEqual(
            ["Removed Bolt: Magic removed", "Removed Power Points: requirements no longer met"],
            result.messages,
        )
        stored = self.character_repo.get(1)
        self.assertEqual([], stored.arcane_backgrounds)
        self.assertEqual([], stored.powers)
        self.assertFalse(stored.owns_edge(POWER_POINTS))
        self.assertEqual(2, stored.hindrance_points_to_edges)
        with self.assertRaises(ValidationFailedError):
            self.service.remove_draft_arcane_background(1, MAGIC)

    def test_gear_purchase_and_sale_track_wealth(self) -> None:
        self.service.purchase_gear(1, ROPE, 2)
        result = self.service.purchase_gear(1, ROPE)
        self.assertEqual(70, result.character.wealth)
        self.assertEqual(3, self.character_repo.get(1).gear_item(ROPE).quantity)

        with self.assertRaises(ValidationFailedError) as ctx:
            self.service.purchase_gear(1, LONG_SWORD)
        self.assertEqual("Insufficient funds. Need $300, have $70", ctx.exception.message)

        result = self.service.sell_gear(1, ROPE, 2)
        self.assertEqual(80, result.character.wealth)
        self.assertEqual(1, self.character_repo.get(1).gear_item(ROPE).quantity)
        with self.assertRaises(ValidationFailedError):
            self.service.sell_gear(1, ROPE, 5)

        result = self.service.sell_gear(1, ROPE)
        self.assertEqual(85, result.character.wealth)
        self.assertIsNone(self.character_repo.get(1).gear_item(ROPE))
        with self.assertRaises(NotFoundError):
            self.service.sell_gear(1, BEDROLL)

    def test_decrement_impact_names_edges_that_would_be_lost(self) -> None:
        self.service.allocate_hindrance_points(1, "edges", 2)
        self.service.add_edge(1, QUICK)
        with self.assertLogs("swade.application.services.character_service", level="WARNING"):
            self.service.add_edge(1, TRADEMARK_WEAPON, "Long Sword", bypass_validation=True)

        self.assertEqual(["Quick"], self.service.check_attribute_decrement_impact(1, AGILITY))
        self.assertEqual([], self.service.check_attribute_decrement_impact(1, VIGOR))
        self.assertEqual(2, self.character_repo.get(1).attribute(AGILITY).steps_incremented)

        self.assertEqual(["Trademark Weapon"], self.service.check_skill_decrement_impact(1, FIGHTING))
        self.assertEqual([], self.service.check_skill_decrement_impact(1, SHOOTING))
        self.assertEqual([], self.service.check_skill_decrement_impact(1, COMMON_KNOWLEDGE))
        self.assertEqual(Die.d8(), self.character_repo.get(1).skill(FIGHTING).die)



if __name__ == "__main__":
    unittest.main()
