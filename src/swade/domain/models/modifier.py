from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ModifierTargetType(str, Enum):
    ATTRIBUTE = "attribute"
    SKILL = "skill"
    DERIVED_STAT = "derived_stat"
    WEALTH = "wealth"
    EDGE_CHOICE = "edge_choice"
    HINDRANCE_CHOICE = "hindrance_choice"
    HERITAGE_CHOICE = "heritage_choice"
    SKILL_POINTS = "skill_points"
    ATTRIBUTE_POINTS = "attribute_points"

    @classmethod
    def normalize(cls, value: str | None) -> "ModifierTargetType | None":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid modifier target type: {value}") from exc


class ModifierValueType(str, Enum):
    DIE_INCREMENT = "die_increment"
    FLAT_BONUS = "flat_bonus"
    ROLL_BONUS = "roll_bonus"
    DESCRIPTION = "description"
    BONUS_SELECTION = "bonus_selection"
    MANDATORY_SELECTION = "mandatory_selection"

    @classmethod
    def normalize(cls, value: str | None) -> "ModifierValueType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid modifier value type: {value}") from exc


DERIVED_STAT_NAMES: tuple[str, ...] = ("pace", "parry", "toughness", "size")


@dataclass(frozen=True)
class Modifier:
    id: int
    value_type: ModifierValueType
    target_type: ModifierTargetType | None = None
    target_identifier: str | None = None
    value: int | None = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "value_type", ModifierValueType.normalize(self.value_type))
        object.__setattr__(self, "target_type", ModifierTargetType.normalize(self.target_type))

    def matches(
        self,
        value_type: ModifierValueType,
        target_type: ModifierTargetType,
        target_identifier: str | None = None,
    ) -> bool:
        if self.value_type is not value_type or self.target_type is not target_type:
            return False
        if target_identifier is None:
            return True
        return self.target_identifier == target_identifier

    @property
    def signed_value(self) -> int:
        return int(self.value or 0)
