import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade.domain.errors import NotFoundError
from swade.domain.models.advance import Advance, AdvanceType, HindranceAction
from swade.domain.models.catalog import Hindrance, Rank
from swade.domain.models.die import Die
from swade.domain.services.advancement_rules import (
    attribute_advance_block_reason,
    banked_hindrance_ids,
    hindrance_action_for,
    is_cheap_skill,
    rank_for_advances,
)
from swade.infrastructure.inmemory.catalog_seed import build_core_catalog


def _edges(count: int, start: int = 1) -> list[Advance]:
    return [Advance(number, AdvanceType.EDGE, edge_id=1) for number in range(start, start + count)]


class RankTableTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ranks = build_core_catalog().ranks

    def test_rank_boundaries(self) -> None:
        expected = {0: "Novice", 3: "Novice", 4: "Seasoned", 7: "Seasoned", 8: "Veteran", 12: "Heroic", 16: "Legendary"}
        for advances, name in expected.items():
            self.assertEqual(name, rank_for_advances(self.ranks, advances).name, advances)

    def test_top_rank_is_unbounded(self) -> None:
        self.assertEqual("Legendary", rank_for_advances(self.ranks, 250).name)

    def test_gap_in_the_table_falls_back_to_first_rank(self) -> None:
        ranks = [Rank(1, "Low", 2, 3), Rank(2, "High", 10)]
        self.assertEqual("Low", rank_for_advances(ranks, 0).name)
        self.assertEqual("Low", rank_for_advances(ranks, 5).name)
        self.assertEqual("High", rank_for_advances(ranks, 10).name)

    def test_empty_rank_table_raises(self) -> None:
        with self.assertRaises(NotFoundError):
            rank_for_advances([], 0)


class AttributeGatingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ranks = build_core_catalog().ranks

    def test_one_attribute_advance_per_rank(self) -> None:
        self.assertIsNone(attribute_advance_block_reason([], self.ranks))

        history = [Advance(1, AdvanceType.ATTRIBUTE, attribute_id=1)]
        reason = attribute_advance_block_reason(history, self.ranks)
        self.assertEqual("Already increased an attribute this rank (Novice)", reason)

        history += _edges(3, start=2)
        self.assertIsNone(attribute_advance_block_reason(history, self.ranks))

    def test_top_rank_allows_every_other_advance(self) -> None:
        history = _edges(16)
        self.assertIsNotNone(attribute_advance_block_reason(history, self.ranks))

        history += _edges(1, start=17)
        self.assertIsNone(attribute_advance_block_reason(history, self.ranks))

        history.append(Advance(18, AdvanceType.ATTRIBUTE, attribute_id=2))
        self.assertEqual(
            "Can only increase an attribute every other Legendary advance",
            attribute_advance_block_reason(history, self.ranks),
        )

        history += _edges(1, start=19)
        self.assertIsNone(attribute_advance_block_reason(history, self.ranks))

    def test_last_novice_advance_counts_against_novice(self) -> None:
        ranks = [Rank(1, "Novice", 0, 3), Rank(2, "Seasoned", 4, 7), Rank(3, "Veteran", 8)]
        history = _edges(3)
        self.assertIsNone(attribute_advance_block_reason(history, ranks))

        history.append(Advance(4, AdvanceType.ATTRIBUTE, attribute_id=1))
        self.assertIsNone(attribute_advance_block_reason(history, ranks))

        history.append(Advance(5, AdvanceType.ATTRIBUTE, attribute_id=2))
        self.assertEqual(
            "Already increased an attribute this rank (Seasoned)",
            attribute_advance_block_reason(history, ranks),
        )

    def test_advance_taken_before_top_rank_is_not_counted_there(self) -> None:
        history = _edges(15)
        history.append(Advance(16, AdvanceType.ATTRIBUTE, attribute_id=3))
        history += _edges(1, start=17)
        self.assertIsNone(attribute_advance_block_reason(history, self.ranks))


class HindranceRuleTests(unittest.TestCase):
    def test_action_for_each_hindrance_shape(self) -> None:
        minor = Hindrance(1, "Bad Eyes", "minor")
        major_with_minor = Hindrance(2, "Bad Eyes", "major", companion_hindrance_id=1)
        major_only = Hindrance(10, "Wanted", "major")

        self.assertIs(HindranceAction.REMOVE_MINOR, hindrance_action_for(minor, is_banked=False))
        self.assertIs(HindranceAction.REDUCE_MAJOR, hindrance_action_for(major_with_minor, is_banked=False))
        self.assertIs(HindranceAction.REMOVE_MAJOR_HALF, hindrance_action_for(major_only, is_banked=False))
        self.assertIs(HindranceAction.COMPLETE_MAJOR_REMOVAL, hindrance_action_for(major_only, is_banked=True))

    def test_banking_follows_half_removal_parity(self) -> None:
        half = HindranceAction.REMOVE_MAJOR_HALF.value
        history = [Advance(1, AdvanceType.HINDRANCE, hindrance_id=10, hindrance_action=half)]
        self.assertEqual({10}, banked_hindrance_ids(history))

        history.append(Advance(2, AdvanceType.HINDRANCE, hindrance_id=10, hindrance_action=half))
        self.assertEqual(set(), banked_hindrance_ids(history))

    def test_completion_is_stored_as_a_half_removal(self) -> None:
        self.assertEqual("remove_major_half", HindranceAction.COMPLETE_MAJOR_REMOVAL.stored_value)
        self.assertEqual("reduce_major", HindranceAction.REDUCE_MAJOR.stored_value)


class SkillCostTests(unittest.TestCase):
    def test_cheap_means_strictly_below_linked_attribute(self) -> None:
        self.assertTrue(is_cheap_skill(None, Die.d4()))
        self.assertTrue(is_cheap_skill(Die.d4(), Die.d6()))
        self.assertFalse(is_cheap_skill(Die.d6(), Die.d6()))
        self.assertFalse(is_cheap_skill(Die.d8(), Die.d6()))


if __name__ == "__main__":
    unittest.main()
