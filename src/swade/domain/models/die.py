from __future__ import annotations

import re
from dataclasses import dataclass


DIE_LADDER: tuple[int, ...] = (4, 6, 8, 10, 12)
DIE_CEILING = DIE_LADDER[-1]

_DIE_PATTERN = re.compile(r"^d(\d+)(?:\+(\d+))?$", re.IGNORECASE)


@dataclass(frozen=True, order=True)
class Die:
    """A SWADE trait die: d4 → d6 → d8 → d10 → d12 → d12+1 → d12+2 → ...

    Field order drives the generated comparisons, so ordering is
    lexicographic on ``(size, modifier)``.
    """

    size: int
    modifier: int = 0

    def __post_init__(self) -> None:
        if int(self.size) not in DIE_LADDER:
            raise ValueError(f"Invalid die size: d{self.size}")
        if int(self.modifier) < 0:
            raise ValueError("Die modifier cannot be negative")
        if int(self.size) < DIE_CEILING and int(self.modifier) != 0:
            raise ValueError(f"Only d{DIE_CEILING} can carry a modifier (got d{self.size}+{self.modifier})")

    @classmethod
    def d4(cls) -> "Die":
        return cls(4)

    @classmethod
    def d6(cls) -> "Die":
        return cls(6)

    @classmethod
    def d8(cls) -> "Die":
        return cls(8)

    @classmethod
    def d10(cls) -> "Die":
        return cls(10)

    @classmethod
    def d12(cls) -> "Die":
        return cls(12)

    @classmethod
    def from_steps(cls, steps: int, base: "Die | None" = None) -> "Die":
        """Return ``base`` (d4 by default) raised by ``steps`` increments."""
        return apply_die_increments(base or cls.d4(), max(0, int(steps)))

    @classmethod
    def parse(cls, raw: str) -> "Die":
        match = _DIE_PATTERN.match(str(raw or "").strip())
        if match is None:
            raise ValueError(f"Unrecognised die notation: {raw!r}")
        return cls(int(match.group(1)), int(match.group(2) or 0))

    @property
    def ladder_index(self) -> int:
        return DIE_LADDER.index(self.size) + self.modifier

    @property
    def is_ceiling(self) -> bool:
        return self.size >= DIE_CEILING

    def increment(self) -> "Die":
        if self.size == DIE_CEILING:
            return Die(DIE_CEILING, self.modifier + 1)
        return Die(DIE_LADDER[DIE_LADDER.index(self.size) + 1])

    def decrement(self) -> "Die | None":
        if self.modifier > 0:
            return Die(DIE_CEILING, self.modifier - 1)
        index = DIE_LADDER.index(self.size)
        if index == 0:
            return None
        return Die(DIE_LADDER[index - 1])

    def steps_from(self, other: "Die") -> int:
        """Number of increments needed to reach this die starting at ``other``."""
        return max(0, self.ladder_index - other.ladder_index)

    def __str__(self) -> str:
        if self.modifier:
            return f"d{self.size}+{self.modifier}"
        return f"d{self.size}"


def apply_die_increments(die: Die, increments: int) -> Die:
    current = die
    if increments > 0:
        for _ in range(int(increments)):
            current = current.increment()
    elif increments < 0:
        for _ in range(-int(increments)):
            lowered = current.decrement()
            if lowered is None:
                break
            current = lowered
    return current
