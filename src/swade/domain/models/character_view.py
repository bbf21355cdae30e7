from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from swade.domain.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Edge,
    Gear,
    Hindrance,
    Power,
    Rank,
    Skill,
)
from swade.domain.models.die import Die
from swade.domain.models.modifier import Modifier
from swade.domain.models.requirement import CharacterSnapshot


@dataclass(frozen=True)
class AttributeValue:
    attribute: Attribute
    die: Die
    effective_die: Die
    base_die: Die
    max_die: Die
    steps_incremented: int = 0
    can_increment: bool = False
    can_decrement: bool = False


@dataclass(frozen=True)
class SkillValue:
    skill: Skill
    die: Optional[Die]
    effective_die: Optional[Die]
    linked_attribute_die: Die
    is_above_attribute: bool = False
    increment_cost: int = 1
    can_increment: bool = False
    can_decrement: bool = False

    @property
    def is_trained(self) -> bool:
        return self.die is not None


@dataclass(frozen=True)
class EdgeValue:
    edge: Edge
    advance_taken: int = 0
    source: str = "chosen"
    notes: Optional[str] = None


@dataclass(frozen=True)
class HindranceValue:
    hindrance: Hindrance
    source: str = "chosen"


@dataclass(frozen=True)
class ArcaneBackgroundValue:
    arcane_background: ArcaneBackground
    source: str = "chosen"


@dataclass(frozen=True)
class PowerValue:
    power: Power
    source: str = "chosen"


@dataclass(frozen=True)
class GearValue:
    gear: Gear
    quantity: int = 1
    is_equipped: bool = False

    @property
    def total_weight(self) -> float:
        return float(self.gear.weight) * int(self.quantity)


@dataclass(frozen=True)
class DerivedStats:
    pace: int
    parry: int
    toughness: int
    size: int


@dataclass(frozen=True)
class EncumbranceInfo:
    current_weight: float
    load_limit: float
    is_encumbered: bool
    encumbrance_penalty: int


@dataclass(frozen=True)
class PointPools:
    attribute_points_available: int
    skill_points_available: int
    hindrance_points_earned: int
    hindrance_points_available: int
    edge_points_available: int


@dataclass(frozen=True)
class CharacterView:
    """Fully computed character: purchased values plus every modifier layer applied."""

    character_id: Optional[int]
    name: str
    is_wild_card: bool
    rank: Rank
    current_advances: int
    ancestry: Optional[Ancestry]
    attributes: tuple[AttributeValue, ...]
    skills: tuple[SkillValue, ...]
    edges: tuple[EdgeValue, ...]
    hindrances: tuple[HindranceValue, ...]
    arcane_backgrounds: tuple[ArcaneBackgroundValue, ...]
    powers: tuple[PowerValue, ...]
    gear: tuple[GearValue, ...]
    modifiers: tuple[Modifier, ...]
    derived_stats: DerivedStats
    encumbrance: EncumbranceInfo
    points: PointPools
    wealth: int = 0

    def attribute_value(self, attribute_id: int) -> Optional[AttributeValue]:
        return next((row for row in self.attributes if row.attribute.id == int(attribute_id)), None)

    def skill_value(self, skill_id: int) -> Optional[SkillValue]:
        return next((row for row in self.skills if row.skill.id == int(skill_id)), None)

    def to_snapshot(self) -> CharacterSnapshot:
        skill_dies = {
            row.skill.id: (row.effective_die.size if row.effective_die is not None else None)
            for row in self.skills
        }
        arcane_skill_ids = {row.arcane_background.arcane_skill_id for row in self.arcane_backgrounds}
        return CharacterSnapshot(
            rank_id=self.rank.id,
            is_wild_card=self.is_wild_card,
            attribute_dies={row.attribute.id: row.effective_die.size for row in self.attributes},
            skill_dies=skill_dies,
            edge_ids=frozenset(row.edge.id for row in self.edges),
            arcane_background_ids=frozenset(row.arcane_background.id for row in self.arcane_backgrounds),
            arcane_skill_dies={
                skill_id: size for skill_id, size in skill_dies.items() if skill_id in arcane_skill_ids
            },
        )
