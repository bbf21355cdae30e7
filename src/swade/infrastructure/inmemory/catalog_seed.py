from __future__ import annotations

from swade.domain.constants import SOURCE_CHOSEN, SOURCE_HINDRANCE_POINTS
from swade.domain.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Catalog,
    Edge,
    Gear,
    Hindrance,
    Power,
    Rank,
    Skill,
)
from swade.domain.models.character import (
    Character,
    CharacterAttribute,
    CharacterEdge,
    CharacterGear,
    CharacterHindrance,
    CharacterSkill,
)
from swade.domain.models.die import Die
from swade.domain.models.modifier import Modifier
from swade.domain.models.requirement import Leaf, Requirement, all_of, any_of

AGILITY, SMARTS, SPIRIT, STRENGTH, VIGOR = 1, 2, 3, 4, 5
NOVICE, SEASONED, VETERAN, HEROIC, LEGENDARY = 1, 2, 3, 4, 5

ATHLETICS, COMMON_KNOWLEDGE, NOTICE, PERSUASION, STEALTH = 1, 2, 3, 4, 5
FIGHTING, SHOOTING, SPELLCASTING, FAITH, INTIMIDATION = 6, 7, 8, 9, 10
HEALING, SURVIVAL, RIDING, REPAIR = 11, 12, 13, 14

_RANK_NAMES = {NOVICE: "Novice", SEASONED: "Seasoned", VETERAN: "Veteran", HEROIC: "Heroic", LEGENDARY: "Legendary"}
_ATTRIBUTE_NAMES = {AGILITY: "Agility", SMARTS: "Smarts", SPIRIT: "Spirit", STRENGTH: "Strength", VIGOR: "Vigor"}


class _RequirementFactory:
    """Hands out requirement leaves with stable ids, mirroring catalog requirement rows."""

    def __init__(self) -> None:
        self._next_id = 1
        self._skill_names: dict[int, str] = {}

    def _leaf(self, kind: str, target_id, value, description: str) -> Leaf:
        requirement = Requirement(
            id=self._next_id,
            requirement_type=kind,
            target_id=target_id,
            value=value,
            description=description,
        )
        self._next_id += 1
        return Leaf(requirement)

    def name_skills(self, skills) -> None:
        self._skill_names = {row.id: row.name for row in skills}

    def rank(self, rank_id: int) -> Leaf:
        return self._leaf("rank", rank_id, None, _RANK_NAMES[rank_id])

    def attribute(self, attribute_id: int, size: int) -> Leaf:
        return self._leaf("attribute", attribute_id, size, f"{_ATTRIBUTE_NAMES[attribute_id]} d{size}+")

    def skill(self, skill_id: int, size: int) -> Leaf:
        return self._leaf("skill", skill_id, size, f"{self._skill_names[skill_id]} d{size}+")

    def arcane_skill(self, skill_id: int, size: int) -> Leaf:
        return self._leaf("arcane_skill", skill_id, size, f"{self._skill_names[skill_id]} d{size}+")

    def edge(self, edge_id: int, name: str) -> Leaf:
        return self._leaf("edge", edge_id, None, name)

    def arcane_background(self, arcane_background_id=None, name: str = "Arcane Background") -> Leaf:
        return self._leaf("arcane_background", arcane_background_id, None, name)

    def wild_card(self) -> Leaf:
        return self._leaf("wild_card", None, None, "Wild Card")

    def gm(self, description: str) -> Leaf:
        return self._leaf("description", None, None, description)


class _ModifierFactory:
    def __init__(self) -> None:
        self._next_id = 1

    def __call__(self, value_type: str, target_type=None, target_identifier=None, value=None, description="") -> Modifier:
        modifier = Modifier(
            id=self._next_id,
            value_type=value_type,
            target_type=target_type,
            target_identifier=target_identifier,
            value=value,
            description=description,
        )
        self._next_id += 1
        return modifier


def build_core_catalog() -> Catalog:
    """A compact slice of the core rules, enough to drive creation and advancement end to end."""
    req = _RequirementFactory()
    mod = _ModifierFactory()

    attributes = [Attribute(id=attribute_id, name=name) for attribute_id, name in _ATTRIBUTE_NAMES.items()]
    skills = [
        Skill(id=ATHLETICS, name="Athletics", linked_attribute_id=AGILITY, is_core_skill=True),
        Skill(id=COMMON_KNOWLEDGE, name="Common Knowledge", linked_attribute_id=SMARTS, is_core_skill=True),
        Skill(id=NOTICE, name="Notice", linked_attribute_id=SMARTS, is_core_skill=True),
        Skill(id=PERSUASION, name="Persuasion", linked_attribute_id=SPIRIT, is_core_skill=True),
        Skill(id=STEALTH, name="Stealth", linked_attribute_id=AGILITY, is_core_skill=True),
        Skill(id=FIGHTING, name="Fighting", linked_attribute_id=AGILITY),
        Skill(id=SHOOTING, name="Shooting", linked_attribute_id=AGILITY),
        Skill(id=SPELLCASTING, name="Spellcasting", linked_attribute_id=SMARTS),
        Skill(id=FAITH, name="Faith", linked_attribute_id=SPIRIT),
        Skill(id=INTIMIDATION, name="Intimidation", linked_attribute_id=SPIRIT),
        Skill(id=HEALING, name="Healing", linked_attribute_id=SMARTS),
        Skill(id=SURVIVAL, name="Survival", linked_attribute_id=SMARTS),
        Skill(id=RIDING, name="Riding", linked_attribute_id=AGILITY),
        Skill(id=REPAIR, name="Repair", linked_attribute_id=SMARTS),
    ]
    req.name_skills(skills)

    ranks = [
        Rank(id=NOVICE, name="Novice", min_advances=0, max_advances=3),
        Rank(id=SEASONED, name="Seasoned", min_advances=4, max_advances=7),
        Rank(id=VETERAN, name="Veteran", min_advances=8, max_advances=11),
        Rank(id=HEROIC, name="Heroic", min_advances=12, max_advances=15),
        Rank(id=LEGENDARY, name="Legendary", min_advances=16, max_advances=None),
    ]

    edges = [
        Edge(id=1, name="Alertness", category="Background", requirements=req.rank(NOVICE),
             modifiers=(mod("roll_bonus", "skill", "Notice", 2, "+2 to Notice rolls"),)),
        Edge(id=2, name="Brawny", category="Background",
             requirements=all_of(req.rank(NOVICE), req.attribute(STRENGTH, 6), req.attribute(VIGOR, 6)),
             modifiers=(mod("flat_bonus", "derived_stat", "toughness", 1, "Toughness +1"),)),
        Edge(id=3, name="Block", category="Combat",
             requirements=all_of(req.rank(SEASONED), req.skill(FIGHTING, 8)),
             modifiers=(mod("flat_bonus", "derived_stat", "parry", 1, "Parry +1"),)),
        Edge(id=4, name="Improved Block", category="Combat",
             requirements=all_of(req.rank(VETERAN), req.edge(3, "Block")),
             modifiers=(mod("flat_bonus", "derived_stat", "parry", 1, "Parry +1"),)),
        Edge(id=5, name="Fleet-Footed", category="Background",
             requirements=all_of(req.rank(NOVICE), req.attribute(AGILITY, 6)),
             modifiers=(mod("flat_bonus", "derived_stat", "pace", 2, "Pace +2"),)),
        Edge(id=6, name="Rich", category="Background", requirements=req.rank(NOVICE),
             modifiers=(mod("flat_bonus", "wealth", None, 1000, "Triple starting funds"),)),
        Edge(id=7, name="Trademark Weapon", category="Combat", can_take_multiple_times=True,
             requirements=all_of(req.rank(NOVICE), any_of(req.skill(FIGHTING, 8), req.skill(SHOOTING, 8))),
             modifiers=(mod("roll_bonus", "skill", "Fighting", 1, "+1 with the chosen weapon"),)),
        Edge(id=8, name="Power Points", category="Power", can_take_multiple_times=True,
             requirements=all_of(req.rank(NOVICE), req.arcane_background())),
        Edge(id=9, name="Brave", category="Background",
             requirements=all_of(req.rank(NOVICE), req.attribute(SPIRIT, 6))),
        Edge(id=10, name="Quick", category="Background",
             requirements=all_of(req.rank(NOVICE), req.attribute(AGILITY, 8))),
        Edge(id=11, name="Champion", category="Professional",
             requirements=all_of(
                 req.rank(NOVICE),
                 req.arcane_background(2, "Arcane Background (Miracles)"),
                 req.attribute(SPIRIT, 8),
                 req.skill(FIGHTING, 6),
                 req.gm("Dedicated to a cause of good"),
             )),
        Edge(id=12, name="Marksman", category="Combat",
             requirements=all_of(req.rank(SEASONED), any_of(req.skill(ATHLETICS, 8), req.skill(SHOOTING, 8)))),
        Edge(id=13, name="Command", category="Leadership",
             requirements=all_of(req.rank(SEASONED), req.wild_card(), req.attribute(SMARTS, 6))),
        Edge(id=14, name="Wizard", category="Power",
             requirements=all_of(req.rank(SEASONED), req.arcane_background(1, "Arcane Background (Magic)"),
                                 req.arcane_skill(SPELLCASTING, 6))),
        Edge(id=15, name="Brawler", category="Combat",
             requirements=all_of(req.rank(NOVICE), req.attribute(STRENGTH, 8), req.attribute(VIGOR, 8))),
    ]

    hindrances = [
        Hindrance(id=1, name="Bad Eyes", severity="minor",
                  modifiers=(mod("description", None, None, None, "-1 to Trait rolls beyond 5\""),)),
        Hindrance(id=2, name="Bad Eyes", severity="major", companion_hindrance_id=1,
                  modifiers=(mod("description", None, None, None, "-2 to Trait rolls beyond 5\""),)),
        Hindrance(id=3, name="Cautious", severity="minor"),
        Hindrance(id=4, name="Loyal", severity="minor"),
        Hindrance(id=5, name="Mean", severity="minor",
                  modifiers=(mod("roll_bonus", "skill", "Persuasion", -1, "-1 to Persuasion rolls"),)),
        Hindrance(id=6, name="Clueless", severity="major",
                  modifiers=(mod("roll_bonus", "skill", "Common Knowledge", -1, "-1 to Common Knowledge"),)),
        Hindrance(id=7, name="Slow", severity="minor",
                  modifiers=(mod("flat_bonus", "derived_stat", "pace", -1, "Pace -1"),)),
        Hindrance(id=8, name="Slow", severity="major", companion_hindrance_id=7,
                  modifiers=(mod("flat_bonus", "derived_stat", "pace", -2, "Pace -2"),)),
        Hindrance(id=9, name="Elderly", severity="major",
                  modifiers=(
                      mod("die_increment", "attribute", "Strength", -1, "Strength -1 die type"),
                      mod("die_increment", "attribute", "Vigor", -1, "Vigor -1 die type"),
                      mod("flat_bonus", "derived_stat", "pace", -1, "Pace -1"),
                      mod("flat_bonus", "skill_points", None, 5, "+5 skill points for Smarts-linked skills"),
                  )),
        Hindrance(id=10, name="Wanted", severity="major"),
    ]

    arcane_backgrounds = [
        ArcaneBackground(id=1, name="Magic", arcane_skill_id=SPELLCASTING, starting_powers=3, starting_power_points=10,
                         requirements=req.attribute(SMARTS, 6)),
        ArcaneBackground(id=2, name="Miracles", arcane_skill_id=FAITH, starting_powers=3, starting_power_points=10,
                         requirements=req.attribute(SPIRIT, 8)),
    ]

    ancestries = [
        Ancestry(id=1, name="Human",
                 modifiers=(mod("bonus_selection", "edge_choice", None, 1, "One free Novice Edge"),)),
        Ancestry(id=2, name="Dwarf",
                 modifiers=(
                     mod("die_increment", "attribute", "Vigor", 1, "Tough: Vigor starts at d6"),
                     mod("flat_bonus", "derived_stat", "pace", -1, "Reduced Pace"),
                 )),
        Ancestry(id=3, name="Half-Giant",
                 modifiers=(
                     mod("die_increment", "attribute", "Strength", 1, "Strength starts at d6"),
                     mod("die_increment", "attribute", "Vigor", 1, "Vigor starts at d6"),
                     mod("flat_bonus", "derived_stat", "size", 1, "Size +1"),
                 )),
    ]

    powers = [
        Power(id=1, name="Bolt", power_points=1, requirements=req.arcane_background()),
        Power(id=2, name="Healing", power_points=3, requirements=req.arcane_background()),
        Power(id=3, name="Protection", power_points=1, requirements=req.arcane_background()),
        Power(id=4, name="Smite", power_points=2,
              requirements=req.arcane_background(2, "Arcane Background (Miracles)")),
    ]

    gear = [
        Gear(id=1, name="Long Sword", weight=3.0, cost=300),
        Gear(id=2, name="Leather Armor", weight=8.0, cost=50,
             modifiers=(mod("flat_bonus", "derived_stat", "toughness", 1, "Armor +1"),)),
        Gear(id=3, name="Small Shield", weight=4.0, cost=25,
             modifiers=(mod("flat_bonus", "derived_stat", "parry", 1, "Parry +1"),)),
        Gear(id=4, name="Backpack", weight=2.0, cost=50),
        Gear(id=5, name="Rope (10\")", weight=5.0, cost=10),
        Gear(id=6, name="Bedroll", weight=4.0, cost=25),
    ]

    return Catalog(
        attributes=attributes,
        skills=skills,
        ranks=ranks,
        edges=edges,
        hindrances=hindrances,
        ancestries=ancestries,
        arcane_backgrounds=arcane_backgrounds,
        powers=powers,
        gear=gear,
    )


def build_demo_character(character_id: int = 1) -> Character:
    """A finished Novice fighter, ready for advancement."""
    return Character(
        id=character_id,
        name="Red Harlan",
        ancestry_id=1,
        attributes=[
            CharacterAttribute(AGILITY, 2),
            CharacterAttribute(SMARTS, 1),
            CharacterAttribute(SPIRIT, 1),
            CharacterAttribute(STRENGTH, 1),
            CharacterAttribute(VIGOR, 0),
        ],
        skills=[
            CharacterSkill(ATHLETICS, Die.d6()),
            CharacterSkill(COMMON_KNOWLEDGE, Die.d4()),
            CharacterSkill(NOTICE, Die.d6()),
            CharacterSkill(PERSUASION, Die.d4()),
            CharacterSkill(STEALTH, Die.d6()),
            CharacterSkill(FIGHTING, Die.d8()),
            CharacterSkill(SHOOTING, Die.d4()),
            CharacterSkill(INTIMIDATION, Die.d6()),
            CharacterSkill(SURVIVAL, Die.d4()),
            CharacterSkill(RIDING, Die.d4()),
            CharacterSkill(HEALING, Die.d4()),
        ],
        edges=[CharacterEdge(1, source=SOURCE_HINDRANCE_POINTS)],
        hindrances=[
            CharacterHindrance(2, source=SOURCE_CHOSEN),
            CharacterHindrance(4, source=SOURCE_CHOSEN),
            CharacterHindrance(10, source=SOURCE_CHOSEN),
        ],
        gear=[
            CharacterGear(1, is_equipped=True),
            CharacterGear(2, is_equipped=True),
            CharacterGear(3, is_equipped=False),
            CharacterGear(4, is_equipped=True),
        ],
        attribute_points_spent=5,
        skill_points_spent=12,
        hindrance_points_earned=4,
        hindrance_points_to_edges=2,
        hindrance_points_to_skills=0,
        wealth=100,
        background="Caravan guard from the southern passes.",
    )
