from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Union


class RequirementType(str, Enum):
    RANK = "rank"
    ATTRIBUTE = "attribute"
    SKILL = "skill"
    EDGE = "edge"
    WILD_CARD = "wild_card"
    ARCANE_BACKGROUND = "arcane_background"
    ARCANE_SKILL = "arcane_skill"
    DESCRIPTION = "description"

    @classmethod
    def normalize(cls, value: "str | RequirementType") -> "RequirementType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid requirement type: {value}") from exc


class NodeType(str, Enum):
    REQUIREMENT = "requirement"
    AND = "and"
    OR = "or"
    NOT = "not"

    @classmethod
    def normalize(cls, value: "str | NodeType") -> "NodeType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid node type: {value}") from exc


@dataclass(frozen=True)
class Requirement:
    """A single checkable condition, e.g. "Agility d8+" or "Seasoned"."""

    id: int
    requirement_type: RequirementType
    target_id: int | None = None
    value: int | None = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "requirement_type", RequirementType.normalize(self.requirement_type))


@dataclass(frozen=True)
class And:
    children: tuple["RequirementNode", ...] = ()


@dataclass(frozen=True)
class Or:
    children: tuple["RequirementNode", ...] = ()


@dataclass(frozen=True)
class Not:
    child: "RequirementNode"


@dataclass(frozen=True)
class Leaf:
    requirement: Requirement


RequirementNode = Union[And, Or, Not, Leaf]

NO_REQUIREMENTS = And(())


def all_of(*children: RequirementNode) -> And:
    return And(tuple(children))


def any_of(*children: RequirementNode) -> Or:
    return Or(tuple(children))


def is_empty(tree: RequirementNode) -> bool:
    return isinstance(tree, And) and not tree.children


@dataclass(frozen=True)
class RequirementExpression:
    """Flat storage row for one node of a requirement tree."""

    id: int
    node_type: NodeType
    parent_id: int | None = None
    requirement_id: int | None = None
    position: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "node_type", NodeType.normalize(self.node_type))


@dataclass(frozen=True)
class RequirementStatus:
    description: str
    is_met: bool


@dataclass(frozen=True)
class CharacterSnapshot:
    """Read-only evaluation context, rebuilt from a character view before each check."""

    rank_id: int
    is_wild_card: bool = True
    attribute_dies: Mapping[int, int] = field(default_factory=dict)
    skill_dies: Mapping[int, int | None] = field(default_factory=dict)
    edge_ids: frozenset[int] = frozenset()
    arcane_background_ids: frozenset[int] = frozenset()
    arcane_skill_dies: Mapping[int, int | None] = field(default_factory=dict)
