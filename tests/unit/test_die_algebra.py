import importlib
import importlib.util
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade.domain.models.die import DIE_LADDER, Die, apply_die_increments

hypothesis_module = importlib.util.find_spec("hypothesis")
if hypothesis_module is not None:
    hypothesis = importlib.import_module("hypothesis")
    given = getattr(hypothesis, "given", None)
    settings = getattr(hypothesis, "settings", None)
    st = importlib.import_module("hypothesis.strategies")
    HYPOTHESIS_AVAILABLE = given is not None and settings is not None and st is not None
else:
    HYPOTHESIS_AVAILABLE = False
    given = None
    settings = None
    st = None


class DieAlgebraTests(unittest.TestCase):
    def test_increment_walks_the_ladder_then_extends_past_d12(self) -> None:
        die = Die.d4()
        seen = [str(die)]
        for _ in range(6):
            die = die.increment()
            seen.append(str(die))
        self.assertEqual(["d4", "d6", "d8", "d10", "d12", "d12+1", "d12+2"], seen)

    def test_decrement_below_d4_returns_none(self) -> None:
        self.assertIsNone(Die.d4().decrement())
        self.assertEqual(Die.d12(), Die(12, 1).decrement())
        self.assertEqual(Die.d10(), Die.d12().decrement())

    def test_invalid_dice_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Die(5)
        with self.assertRaises(ValueError):
            Die(8, 1)
        with self.assertRaises(ValueError):
            Die(12, -1)

    def test_ordering_is_size_then_modifier(self) -> None:
        self.assertLess(Die.d6(), Die.d8())
        self.assertLess(Die.d12(), Die(12, 1))
        self.assertLess(Die(12, 1), Die(12, 2))
        self.assertEqual(max([Die.d8(), Die(12, 2), Die.d12()]), Die(12, 2))

    def test_apply_increments_floors_at_d4(self) -> None:
        self.assertEqual(Die.d4(), apply_die_increments(Die.d6(), -3))
        self.assertEqual(Die(12, 2), apply_die_increments(Die.d10(), 3))
        self.assertEqual(Die.d8(), apply_die_increments(Die.d8(), 0))

    def test_from_steps_and_steps_from(self) -> None:
        self.assertEqual(Die.d10(), Die.from_steps(3))
        self.assertEqual(Die.d8(), Die.from_steps(1, Die.d6()))
        self.assertEqual(Die.d4(), Die.from_steps(-2))
        self.assertEqual(5, Die(12, 1).steps_from(Die.d4()))
        self.assertEqual(0, Die.d4().steps_from(Die.d8()))

    def test_parse_round_trips_notation(self) -> None:
        self.assertEqual(Die.d8(), Die.parse("d8"))
        self.assertEqual(Die(12, 3), Die.parse("D12+3"))
        with self.assertRaises(ValueError):
            Die.parse("2d6")

    def test_dice_are_immutable(self) -> None:
        die = Die.d6()
        with self.assertRaises(Exception):
            die.size = 8  # type: ignore[misc]

    @unittest.skipUnless(HYPOTHESIS_AVAILABLE, "hypothesis not installed")
    def test_increment_then_decrement_is_identity_property(self) -> None:
        dice = st.builds(
            lambda size, modifier: Die(size, modifier if size == 12 else 0),
            st.sampled_from(DIE_LADDER),
            st.integers(min_value=0, max_value=6),
        )

        @settings(max_examples=60, deadline=None)
        @given(die=dice)
        def _property(die: Die) -> None:
            self.assertEqual(die, die.increment().decrement())
            self.assertLess(die, die.increment())

        _property()

    @unittest.skipUnless(HYPOTHESIS_AVAILABLE, "hypothesis not installed")
    def test_increments_compose_property(self) -> None:
        @settings(max_examples=60, deadline=None)
        @given(first=st.integers(min_value=0, max_value=8), second=st.integers(min_value=0, max_value=8))
        def _property(first: int, second: int) -> None:
            combined = apply_die_increments(Die.d4(), first + second)
            stepped = apply_die_increments(apply_die_increments(Die.d4(), first), second)
            self.assertEqual(combined, stepped)

        _property()


if __name__ == "__main__":
    unittest.main()
