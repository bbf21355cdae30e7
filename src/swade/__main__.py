import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from swade.presentation.cli import main  # noqa: E402


def _configure_logging() -> None:
    level_name = os.getenv("SWADE_LOG_LEVEL", "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_startup_help() -> None:
    print("\nHelp:")
    print("- Run 'swade list' to see stored characters and 'swade options <id>' for the next advance.")
    print("- Startup issues: verify SWADE_DATABASE_URL or unset it to use the in-memory demo.")
    print("- Create tables with 'python -m swade.infrastructure.db.sql.schema --seed-core'.")


def run(argv=None) -> int:
    _configure_logging()
    try:
        return main(argv)
    except KeyboardInterrupt:
        print("\nSession ended.")
        return 130
    except RuntimeError as exc:
        print("Could not start the rules engine.")
        print(f"Reason: {exc}")
        _print_startup_help()
        return 1


if __name__ == "__main__":
    sys.exit(run())
