from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Mapping

from swade.domain.models.advance import Advance
from swade.domain.models.character import (
    Character,
    CharacterArcaneBackground,
    CharacterAttribute,
    CharacterEdge,
    CharacterGear,
    CharacterHindrance,
    CharacterPower,
    CharacterSkill,
)
from swade.domain.models.die import Die

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"

CHARACTER = "character"
CHARACTER_ADVANCE = "character_advance"
CHARACTER_ATTRIBUTE = "character_attribute"
CHARACTER_SKILL = "character_skill"
CHARACTER_EDGE = "character_edge"
CHARACTER_HINDRANCE = "character_hindrance"
CHARACTER_ARCANE_BACKGROUND = "character_arcane_background"
CHARACTER_POWER = "character_power"
CHARACTER_GEAR = "character_gear"

TABLES = (
    CHARACTER,
    CHARACTER_ADVANCE,
    CHARACTER_ATTRIBUTE,
    CHARACTER_SKILL,
    CHARACTER_EDGE,
    CHARACTER_HINDRANCE,
    CHARACTER_ARCANE_BACKGROUND,
    CHARACTER_POWER,
    CHARACTER_GEAR,
)

# Point and wealth counters a draft operation may rewrite on the character row.
CHARACTER_COUNTER_COLUMNS = (
    "attribute_points_spent",
    "skill_points_spent",
    "hindrance_points_earned",
    "hindrance_points_to_edges",
    "hindrance_points_to_attributes",
    "hindrance_points_to_skills",
    "hindrance_points_to_wealth",
    "wealth",
)

# Nullable catalog references on the character row.
CHARACTER_REFERENCE_COLUMNS = ("ancestry_id",)


@dataclass(frozen=True)
class RecordChange:
    action: str
    table: str
    values: Mapping[str, object]

    def __post_init__(self) -> None:
        if self.action not in (INSERT, UPDATE, DELETE):
            raise ValueError(f"Unsupported record action: {self.action}")
        if self.table not in TABLES:
            raise ValueError(f"Unsupported record table: {self.table}")
        object.__setattr__(self, "values", dict(self.values))


@dataclass
class ChangeSet:
    """Every record write one command implies, to be applied in a single transaction."""

    character_id: int
    changes: List[RecordChange] = field(default_factory=list)

    def insert(self, table: str, **values) -> "ChangeSet":
        self.changes.append(RecordChange(INSERT, table, values))
        return self

    def update(self, table: str, **values) -> "ChangeSet":
        self.changes.append(RecordChange(UPDATE, table, values))
        return self

    def delete(self, table: str, **values) -> "ChangeSet":
        self.changes.append(RecordChange(DELETE, table, values))
        return self

    def insert_advance(self, advance: Advance) -> "ChangeSet":
        return self.insert(CHARACTER_ADVANCE, **advance_record(advance))

    def __iter__(self) -> Iterator[RecordChange]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)


def advance_record(advance: Advance) -> dict[str, object]:
    return {
        "advance_number": int(advance.advance_number),
        "advance_type": advance.advance_type.value,
        "edge_id": advance.edge_id,
        "attribute_id": advance.attribute_id,
        "skill_id_1": advance.skill_id_1,
        "skill_id_2": advance.skill_id_2,
        "hindrance_id": advance.hindrance_id,
        "hindrance_action": advance.hindrance_action,
        "notes": advance.notes,
    }


def skill_die_values(die: Die | None) -> dict[str, object]:
    if die is None:
        return {"die_size": None, "die_modifier": 0}
    return {"die_size": int(die.size), "die_modifier": int(die.modifier)}


def skill_die_from_values(die_size, die_modifier=0) -> Die | None:
    if die_size is None:
        return None
    return Die(int(die_size), int(die_modifier or 0))


def apply_change_set(character: Character, change_set: ChangeSet) -> None:
    """Apply ``change_set`` to ``character`` in place, in order."""
    for change in change_set:
        _APPLIERS[change.table](character, change)


def _apply_character(character: Character, change: RecordChange) -> None:
    if change.action != UPDATE:
        raise ValueError("Character rows can only be updated")
    for column, value in change.values.items():
        if column in CHARACTER_REFERENCE_COLUMNS:
            setattr(character, column, None if value is None else int(value))
        elif column in CHARACTER_COUNTER_COLUMNS:
            setattr(character, column, int(value))
        else:
            raise ValueError(f"Unknown character column: {column}")


def _apply_advance(character: Character, change: RecordChange) -> None:
    number = int(change.values["advance_number"])
    if change.action == INSERT:
        if any(int(row.advance_number) == number for row in character.advances):
            raise ValueError(f"Advance {number} already exists")
        character.advances.append(Advance(**change.values))
        character.advances.sort(key=lambda row: int(row.advance_number))
    elif change.action == DELETE:
        character.advances = [row for row in character.advances if int(row.advance_number) != number]
    else:
        raise ValueError("Advances are never updated")


def _apply_attribute(character: Character, change: RecordChange) -> None:
    attribute_id = int(change.values["attribute_id"])
    steps = int(change.values.get("steps_incremented", 0))
    stored = character.attribute(attribute_id)
    if change.action == DELETE:
        character.attributes = [row for row in character.attributes if row.attribute_id != attribute_id]
    elif stored is None:
        character.attributes.append(CharacterAttribute(attribute_id=attribute_id, steps_incremented=steps))
    else:
        stored.steps_incremented = steps


def _apply_skill(character: Character, change: RecordChange) -> None:
    skill_id = int(change.values["skill_id"])
    die = skill_die_from_values(change.values.get("die_size"), change.values.get("die_modifier", 0))
    stored = character.skill(skill_id)
    if change.action == DELETE:
        character.skills = [row for row in character.skills if row.skill_id != skill_id]
    elif stored is None:
        character.skills.append(CharacterSkill(skill_id=skill_id, die=die))
    else:
        stored.die = die


def _apply_edge(character: Character, change: RecordChange) -> None:
    edge_id = int(change.values["edge_id"])
    if change.action == INSERT:
        character.edges.append(
            CharacterEdge(
                edge_id=edge_id,
                advance_taken=int(change.values.get("advance_taken", 0) or 0),
                source=str(change.values.get("source") or ""),
                notes=change.values.get("notes"),
            )
        )
    elif change.action == DELETE:
        advance_taken = change.values.get("advance_taken")
        for index, row in enumerate(character.edges):
            if row.edge_id == edge_id and (advance_taken is None or row.advance_taken == int(advance_taken)):
                del character.edges[index]
                return
        raise ValueError(f"Character does not own edge {edge_id}")
    else:
        raise ValueError("Owned edges are never updated")


def _apply_hindrance(character: Character, change: RecordChange) -> None:
    hindrance_id = int(change.values["hindrance_id"])
    if change.action == INSERT:
        character.hindrances.append(
            CharacterHindrance(hindrance_id=hindrance_id, source=str(change.values.get("source") or ""))
        )
    elif change.action == DELETE:
        if character.hindrance(hindrance_id) is None:
            raise ValueError(f"Character does not have hindrance {hindrance_id}")
        character.hindrances = [row for row in character.hindrances if row.hindrance_id != hindrance_id]
    else:
        raise ValueError("Owned hindrances are never updated")


def _apply_arcane_background(character: Character, change: RecordChange) -> None:
    arcane_background_id = int(change.values["arcane_background_id"])
    owned = any(row.arcane_background_id == arcane_background_id for row in character.arcane_backgrounds)
    if change.action == INSERT:
        if owned:
            raise ValueError(f"Character already has arcane background {arcane_background_id}")
        character.arcane_backgrounds.append(
            CharacterArcaneBackground(
                arcane_background_id=arcane_background_id,
                source=str(change.values.get("source") or ""),
            )
        )
    elif change.action == DELETE:
        if not owned:
            raise ValueError(f"Character does not have arcane background {arcane_background_id}")
        character.arcane_backgrounds = [
            row for row in character.arcane_backgrounds if row.arcane_background_id != arcane_background_id
        ]
    else:
        raise ValueError("Owned arcane backgrounds are never updated")


def _apply_power(character: Character, change: RecordChange) -> None:
    power_id = int(change.values["power_id"])
    known = any(row.power_id == power_id for row in character.powers)
    if change.action == INSERT:
        if known:
            raise ValueError(f"Character already knows power {power_id}")
        linked = change.values.get("arcane_background_id")
        character.powers.append(
            CharacterPower(
                power_id=power_id,
                arcane_background_id=None if linked is None else int(linked),
                source=str(change.values.get("source") or ""),
            )
        )
    elif change.action == DELETE:
        if not known:
            raise ValueError(f"Character does not know power {power_id}")
        character.powers = [row for row in character.powers if row.power_id != power_id]
    else:
        raise ValueError("Known powers are never updated")


def _apply_gear(character: Character, change: RecordChange) -> None:
    gear_id = int(change.values["gear_id"])
    stored = character.gear_item(gear_id)
    if change.action == INSERT:
        if stored is not None:
            raise ValueError(f"Character already carries gear {gear_id}")
        character.gear.append(
            CharacterGear(
                gear_id=gear_id,
                quantity=int(change.values.get("quantity", 1)),
                is_equipped=bool(change.values.get("is_equipped", False)),
            )
        )
        return
    if stored is None:
        raise ValueError(f"Character does not carry gear {gear_id}")
    if change.action == DELETE:
        character.gear = [row for row in character.gear if row.gear_id != gear_id]
        return
    if "quantity" in change.values:
        if int(change.values["quantity"]) < 1:
            raise ValueError("Carried gear quantity must be at least 1")
        stored.quantity = int(change.values["quantity"])
    if "is_equipped" in change.values:
        stored.is_equipped = bool(change.values["is_equipped"])


_APPLIERS = {
    CHARACTER: _apply_character,
    CHARACTER_ADVANCE: _apply_advance,
    CHARACTER_ATTRIBUTE: _apply_attribute,
    CHARACTER_SKILL: _apply_skill,
    CHARACTER_EDGE: _apply_edge,
    CHARACTER_HINDRANCE: _apply_hindrance,
    CHARACTER_ARCANE_BACKGROUND: _apply_arcane_background,
    CHARACTER_POWER: _apply_power,
    CHARACTER_GEAR: _apply_gear,
}
