from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AdvanceType(str, Enum):
    EDGE = "edge"
    ATTRIBUTE = "attribute"
    SKILL_EXPENSIVE = "skill_expensive"
    SKILL_CHEAP = "skill_cheap"
    HINDRANCE = "hindrance"

    @classmethod
    def normalize(cls, value: "str | AdvanceType") -> "AdvanceType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Unsupported advance type: {value}") from exc


class HindranceAction(str, Enum):
    REMOVE_MINOR = "remove_minor"
    REDUCE_MAJOR = "reduce_major"
    REMOVE_MAJOR_HALF = "remove_major_half"
    COMPLETE_MAJOR_REMOVAL = "complete_major_removal"

    @classmethod
    def normalize(cls, value: "str | HindranceAction") -> "HindranceAction":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid hindrance action: {value}") from exc

    @property
    def stored_value(self) -> str:
        # Completing a banked removal is recorded as the second half-removal.
        if self is HindranceAction.COMPLETE_MAJOR_REMOVAL:
            return HindranceAction.REMOVE_MAJOR_HALF.value
        return self.value

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS = {
    HindranceAction.REMOVE_MINOR: "Remove",
    HindranceAction.REDUCE_MAJOR: "Reduce to Minor",
    HindranceAction.REMOVE_MAJOR_HALF: "Begin Removal (requires 2 advances)",
    HindranceAction.COMPLETE_MAJOR_REMOVAL: "Complete Removal (2nd advance)",
}


@dataclass(frozen=True)
class Advance:
    """One completed progression step. Only the latest one may be removed (undo)."""

    advance_number: int
    advance_type: AdvanceType
    edge_id: int | None = None
    attribute_id: int | None = None
    skill_id_1: int | None = None
    skill_id_2: int | None = None
    hindrance_id: int | None = None
    hindrance_action: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if int(self.advance_number) < 1:
            raise ValueError("Advance numbers start at 1")
        object.__setattr__(self, "advance_type", AdvanceType.normalize(self.advance_type))

    @property
    def skill_ids(self) -> tuple[int, ...]:
        return tuple(skill_id for skill_id in (self.skill_id_1, self.skill_id_2) if skill_id is not None)
