from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from swade.domain.models.die import Die
from swade.domain.models.modifier import Modifier
from swade.domain.models.requirement import NO_REQUIREMENTS, RequirementNode


class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"

    @classmethod
    def normalize(cls, value: "str | Severity") -> "Severity":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid hindrance severity: {value}") from exc

    @property
    def point_value(self) -> int:
        return 2 if self is Severity.MAJOR else 1


@dataclass(frozen=True)
class Attribute:
    id: int
    name: str
    description: str = ""
    base_die: Die = field(default_factory=Die.d4)


@dataclass(frozen=True)
class Skill:
    id: int
    name: str
    linked_attribute_id: int
    is_core_skill: bool = False
    max_die: Die = field(default_factory=Die.d12)
    description: str = ""

    @property
    def default_die(self) -> Optional[Die]:
        return Die.d4() if self.is_core_skill else None


@dataclass(frozen=True)
class Rank:
    id: int
    name: str
    min_advances: int
    max_advances: Optional[int] = None
    description: str = ""

    def contains(self, advances: int) -> bool:
        if advances < self.min_advances:
            return False
        return self.max_advances is None or advances <= self.max_advances


@dataclass(frozen=True)
class Edge:
    id: int
    name: str
    category: str = "Background"
    description: str = ""
    can_take_multiple_times: bool = False
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS


@dataclass(frozen=True)
class Hindrance:
    id: int
    name: str
    severity: Severity = Severity.MINOR
    companion_hindrance_id: Optional[int] = None
    description: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", Severity.normalize(self.severity))

    @property
    def is_major(self) -> bool:
        return self.severity is Severity.MAJOR


@dataclass(frozen=True)
class Ancestry:
    id: int
    name: str
    description: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS


@dataclass(frozen=True)
class ArcaneBackground:
    id: int
    name: str
    arcane_skill_id: int
    starting_powers: int = 0
    starting_power_points: int = 0
    description: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS


@dataclass(frozen=True)
class Power:
    id: int
    name: str
    power_points: int = 1
    description: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS


@dataclass(frozen=True)
class Gear:
    id: int
    name: str
    weight: float = 0.0
    cost: int = 0
    description: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementNode = NO_REQUIREMENTS


def _index(rows: Iterable) -> Dict[int, object]:
    return {int(row.id): row for row in rows}


class Catalog:
    """Static rules content, each entity already resolved with its modifiers and requirement tree."""

    def __init__(
        self,
        *,
        attributes: Iterable[Attribute] = (),
        skills: Iterable[Skill] = (),
        ranks: Iterable[Rank] = (),
        edges: Iterable[Edge] = (),
        hindrances: Iterable[Hindrance] = (),
        ancestries: Iterable[Ancestry] = (),
        arcane_backgrounds: Iterable[ArcaneBackground] = (),
        powers: Iterable[Power] = (),
        gear: Iterable[Gear] = (),
    ) -> None:
        self.attributes: Dict[int, Attribute] = _index(attributes)
        self.skills: Dict[int, Skill] = _index(skills)
        self.ranks: List[Rank] = sorted(ranks, key=lambda row: (row.min_advances, row.id))
        self.edges: Dict[int, Edge] = _index(edges)
        self.hindrances: Dict[int, Hindrance] = _index(hindrances)
        self.ancestries: Dict[int, Ancestry] = _index(ancestries)
        self.arcane_backgrounds: Dict[int, ArcaneBackground] = _index(arcane_backgrounds)
        self.powers: Dict[int, Power] = _index(powers)
        self.gear: Dict[int, Gear] = _index(gear)

    def attribute_named(self, name: str) -> Optional[Attribute]:
        key = str(name or "").strip().lower()
        return next((row for row in self.attributes.values() if row.name.lower() == key), None)

    def skill_named(self, name: str) -> Optional[Skill]:
        key = str(name or "").strip().lower()
        return next((row for row in self.skills.values() if row.name.lower() == key), None)

    def rank_by_id(self, rank_id: int) -> Optional[Rank]:
        return next((row for row in self.ranks if row.id == int(rank_id)), None)
