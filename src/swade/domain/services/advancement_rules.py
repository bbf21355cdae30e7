from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence

from swade.domain.errors import NotFoundError
from swade.domain.models.advance import Advance, AdvanceType, HindranceAction
from swade.domain.models.catalog import Hindrance, Rank
from swade.domain.models.die import Die


def _ordered_ranks(ranks: Sequence[Rank]) -> list[Rank]:
    ordered = sorted(ranks, key=lambda row: (row.min_advances, row.id))
    if not ordered:
        raise NotFoundError("No rank table is loaded")
    return ordered


def rank_for_advances(ranks: Sequence[Rank], advances: int) -> Rank:
    """Rank held after ``advances`` completed advances; the highest rank has no upper bound."""
    ordered = _ordered_ranks(ranks)
    top = ordered[-1]
    if int(advances) >= top.min_advances:
        return top
    for rank in reversed(ordered[:-1]):
        if rank.contains(int(advances)):
            return rank
    return ordered[0]


def is_top_rank(ranks: Sequence[Rank], rank: Rank) -> bool:
    return _ordered_ranks(ranks)[-1].id == rank.id


def attribute_advances_taken_at(advances: Sequence[Advance], rank: Rank, *, open_ended: bool = False) -> int:
    """Attribute advances taken while ``rank`` was held.

    Advance number N is taken with N - 1 advances completed, so it belongs to
    the rank whose range contains N - 1.
    """
    upper = None if open_ended else rank.max_advances
    return sum(
        1
        for row in advances
        if row.advance_type is AdvanceType.ATTRIBUTE
        and rank.min_advances <= int(row.advance_number) - 1
        and (upper is None or int(row.advance_number) - 1 <= upper)
    )


def attribute_advance_block_reason(advances: Sequence[Advance], ranks: Sequence[Rank]) -> Optional[str]:
    """Return why an attribute advance is closed right now, or ``None`` when it is open.

    Below the top rank one attribute advance is allowed per rank. At the top
    rank one is allowed for every two advances taken since reaching it.
    """

    completed = len(advances)
    rank = rank_for_advances(ranks, completed)
    if is_top_rank(ranks, rank):
        since_top = completed - rank.min_advances + 1
        taken = attribute_advances_taken_at(advances, rank, open_ended=True)
        if since_top // 2 > taken:
            return None
        return f"Can only increase an attribute every other {rank.name} advance"

    if attribute_advances_taken_at(advances, rank) == 0:
        return None
    return f"Already increased an attribute this rank ({rank.name})"


def is_cheap_skill(skill_die: Optional[Die], linked_attribute_die: Die) -> bool:
    return skill_die is None or skill_die < linked_attribute_die


def half_removal_counts(advances: Sequence[Advance]) -> Counter:
    counts: Counter = Counter()
    for row in advances:
        if (
            row.advance_type is AdvanceType.HINDRANCE
            and row.hindrance_id is not None
            and row.hindrance_action == HindranceAction.REMOVE_MAJOR_HALF.value
        ):
            counts[int(row.hindrance_id)] += 1
    return counts


def banked_hindrance_ids(advances: Sequence[Advance]) -> set[int]:
    return {hindrance_id for hindrance_id, count in half_removal_counts(advances).items() if count % 2 == 1}


def hindrance_action_for(hindrance: Hindrance, *, is_banked: bool) -> HindranceAction:
    """The single action an advance may take on this hindrance next."""
    if is_banked:
        return HindranceAction.COMPLETE_MAJOR_REMOVAL
    if not hindrance.is_major:
        return HindranceAction.REMOVE_MINOR
    if hindrance.companion_hindrance_id is not None:
        return HindranceAction.REDUCE_MAJOR
    return HindranceAction.REMOVE_MAJOR_HALF
