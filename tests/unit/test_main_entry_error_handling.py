import io
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import swade.__main__ as runtime_main


class MainEntryErrorHandlingTests(unittest.TestCase):
    def _run(self, **main_kwargs):
        output = io.StringIO()
        with mock.patch.object(runtime_main, "_configure_logging"), mock.patch.object(
            runtime_main, "main", **main_kwargs
        ) as main_mock, mock.patch("sys.stdout", output):
            code = runtime_main.run(["list"])
        return code, output.getvalue(), main_mock

    def test_bootstrap_failure_is_reported_without_traceback(self) -> None:
        code, text, _ = self._run(side_effect=RuntimeError("Database bootstrap check failed: no such table"))

        self.assertEqual(1, code)
        self.assertIn("Could not start the rules engine.", text)
        self.assertIn("no such table", text)
        self.assertIn("SWADE_DATABASE_URL", text)
        self.assertNotIn("Traceback", text)

    def test_keyboard_interrupt_ends_the_session(self) -> None:
        code, text, _ = self._run(side_effect=KeyboardInterrupt)

        self.assertEqual(130, code)
        self.assertIn("Session ended", text)

    def test_command_exit_code_is_passed_through(self) -> None:
        code, _, main_mock = self._run(return_value=1)

        self.assertEqual(1, code)
        main_mock.assert_called_once_with(["list"])


if __name__ == "__main__":
    unittest.main()
