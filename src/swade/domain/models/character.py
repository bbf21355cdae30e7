from dataclasses import dataclass, field
from typing import List, Optional

from swade.domain.constants import (
    SOURCE_CHOSEN,
    STARTING_ATTRIBUTE_POINTS,
    STARTING_SKILL_POINTS,
    STARTING_WEALTH,
    VALID_SOURCES,
)
from swade.domain.models.advance import Advance
from swade.domain.models.die import Die
from swade.domain.models.modifier import Modifier


def _normalize_source(value: str | None) -> str:
    raw = str(value or "").strip().lower()
    if not raw:
        return SOURCE_CHOSEN
    if raw not in VALID_SOURCES:
        raise ValueError(f"Unknown content source: {value}")
    return raw


@dataclass
class CharacterAttribute:
    attribute_id: int
    steps_incremented: int = 0

    def __post_init__(self) -> None:
        if int(self.steps_incremented) < 0:
            raise ValueError("Attribute steps cannot be negative")


@dataclass
class CharacterSkill:
    skill_id: int
    die: Optional[Die] = None


@dataclass
class CharacterEdge:
    edge_id: int
    advance_taken: int = 0
    source: str = SOURCE_CHOSEN
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        self.source = _normalize_source(self.source)


@dataclass
class CharacterHindrance:
    hindrance_id: int
    source: str = SOURCE_CHOSEN

    def __post_init__(self) -> None:
        self.source = _normalize_source(self.source)


@dataclass
class CharacterArcaneBackground:
    arcane_background_id: int
    source: str = SOURCE_CHOSEN

    def __post_init__(self) -> None:
        self.source = _normalize_source(self.source)


@dataclass
class CharacterPower:
    power_id: int
    arcane_background_id: Optional[int] = None
    source: str = SOURCE_CHOSEN

    def __post_init__(self) -> None:
        self.source = _normalize_source(self.source)


@dataclass
class CharacterGear:
    gear_id: int
    quantity: int = 1
    is_equipped: bool = False

    def __post_init__(self) -> None:
        if int(self.quantity) < 0:
            raise ValueError("Gear quantity cannot be negative")


@dataclass
class Character:
    """Raw stored values for one character, exactly as the persistence layer holds them."""

    id: Optional[int]
    name: str
    is_wild_card: bool = True
    ancestry_id: Optional[int] = None
    attributes: List[CharacterAttribute] = field(default_factory=list)
    skills: List[CharacterSkill] = field(default_factory=list)
    edges: List[CharacterEdge] = field(default_factory=list)
    hindrances: List[CharacterHindrance] = field(default_factory=list)
    arcane_backgrounds: List[CharacterArcaneBackground] = field(default_factory=list)
    powers: List[CharacterPower] = field(default_factory=list)
    gear: List[CharacterGear] = field(default_factory=list)
    modifiers: List[Modifier] = field(default_factory=list)
    advances: List[Advance] = field(default_factory=list)
    attribute_points_earned: int = STARTING_ATTRIBUTE_POINTS
    attribute_points_spent: int = 0
    skill_points_earned: int = STARTING_SKILL_POINTS
    skill_points_spent: int = 0
    hindrance_points_earned: int = 0
    hindrance_points_to_edges: int = 0
    hindrance_points_to_attributes: int = 0
    hindrance_points_to_skills: int = 0
    hindrance_points_to_wealth: int = 0
    wealth: int = STARTING_WEALTH
    background: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        self.advances = sorted(self.advances, key=lambda row: int(row.advance_number))

    def attribute(self, attribute_id: int) -> Optional[CharacterAttribute]:
        return next((row for row in self.attributes if row.attribute_id == int(attribute_id)), None)

    def skill(self, skill_id: int) -> Optional[CharacterSkill]:
        return next((row for row in self.skills if row.skill_id == int(skill_id)), None)

    def hindrance(self, hindrance_id: int) -> Optional[CharacterHindrance]:
        return next((row for row in self.hindrances if row.hindrance_id == int(hindrance_id)), None)

    def gear_item(self, gear_id: int) -> Optional[CharacterGear]:
        return next((row for row in self.gear if row.gear_id == int(gear_id)), None)

    def owns_edge(self, edge_id: int) -> bool:
        return any(row.edge_id == int(edge_id) for row in self.edges)

    @property
    def advance_count(self) -> int:
        return len(self.advances)

    @property
    def latest_advance(self) -> Optional[Advance]:
        return self.advances[-1] if self.advances else None
