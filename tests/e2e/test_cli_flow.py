import io
import sys
from pathlib import Path
import unittest

from rich.console import Console

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade import bootstrap
from swade.presentation import cli


class CliFlowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.app = bootstrap._build_inmemory_app()
        self.output = io.StringIO()
        self.console = Console(file=self.output, width=120)

    def _run(self, *argv: str) -> int:
        return cli.main(list(argv), app=self.app, console=self.console)

    def test_list_and_sheet(self) -> None:
        self.assertEqual(0, self._run("list"))
        self.assertEqual(0, self._run("sheet", "1"))

        transcript = self.output.getvalue()
        self.assertIn("[1] Red Harlan (Novice, 0 advances)", transcript)
        self.assertIn("Fighting", transcript)
        self.assertIn("Wanted", transcript)

    def test_options_advance_history_and_undo(self) -> None:
        self.assertEqual(0, self._run("options", "1"))
        self.assertEqual(0, self._run("advance", "edge", "1", "9"))
        self.assertEqual(0, self._run("advance", "skill-cheap", "1", "7", "8"))
        self.assertEqual(0, self._run("history", "1"))
        self.assertEqual(0, self._run("undo", "1"))

        transcript = self.output.getvalue()
        self.assertIn("Advance 1 (Novice)", transcript)
        self.assertIn("Gained edge: Brave", transcript)
        self.assertIn("Increased Shooting to d6 and Spellcasting to d4", transcript)
        self.assertIn("Undid advance 2", transcript)
        self.assertEqual(
            [
                "Advance 1: Gained edge: Brave",
                "Advance 2: Increased Shooting to d6 and Spellcasting to d4",
                "Undid advance 2: Increased Shooting and Spellcasting",
            ],
            [row.summary for row in self.app.journal.entries(1)],
        )

    def test_bypass_flag_reports_the_override(self) -> None:
        self.assertEqual(0, self._run("advance", "edge", "1", "2", "--bypass"))
        self.assertIn("GM override", self.output.getvalue())
        self.assertIn("(GM override)", self.app.journal.entries(1)[-1].summary)

    def test_rule_violations_exit_with_an_error(self) -> None:
        self.assertEqual(1, self._run("advance", "edge", "1", "2"))
        self.assertEqual(1, self._run("undo", "1"))
        self.assertEqual(1, self._run("sheet", "99"))

        transcript = self.output.getvalue()
        self.assertIn("validation: Requirements not met for Brawny", transcript)
        self.assertIn("validation: No advances to undo", transcript)
        self.assertIn("not_found: Character with id 99 does not exist", transcript)

    def test_hindrance_actions_are_parsed(self) -> None:
        self.assertEqual(0, self._run("advance", "hindrance", "1", "10", "remove_major_half"))
        self.assertIn("Banked advance toward removing: Wanted (1 of 2)", self.output.getvalue())

        with self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["advance", "hindrance", "1", "10", "forget"])


class BootstrapTests(unittest.TestCase):
    def test_create_app_defaults_to_the_inmemory_demo(self) -> None:
        app = bootstrap.create_app()

        characters = app.characters.list_characters()
        self.assertEqual(["Red Harlan"], [row.name for row in characters])
        self.assertEqual([], app.journal.entries(1))


if __name__ == "__main__":
    unittest.main()
