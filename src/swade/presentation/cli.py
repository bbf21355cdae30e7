from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from rich.console import Console

from swade.bootstrap import SwadeApp
from swade.domain.errors import SwadeError
from swade.presentation.character_sheet import (
    render_advancement_options,
    render_character_sheet,
    render_history,
    render_warnings,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swade", description="Savage Worlds character advancement")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List stored characters")
    for name, help_text in (
        ("sheet", "Show the character sheet"),
        ("options", "Show what the next advance may be"),
        ("history", "Show the advance history"),
        ("undo", "Undo the most recent advance"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("character_id", type=int)

    advance = commands.add_parser("advance", help="Take an advance")
    kinds = advance.add_subparsers(dest="kind", required=True)

    edge = kinds.add_parser("edge", help="Gain a new edge")
    edge.add_argument("character_id", type=int)
    edge.add_argument("edge_id", type=int)
    edge.add_argument("--notes", default=None)
    edge.add_argument("--bypass", action="store_true", help="GM override for unmet requirements")

    attribute = kinds.add_parser("attribute", help="Raise an attribute one die type")
    attribute.add_argument("character_id", type=int)
    attribute.add_argument("attribute_id", type=int)

    cheap = kinds.add_parser("skill-cheap", help="Raise two skills below their linked attribute")
    cheap.add_argument("character_id", type=int)
    cheap.add_argument("skill_id_1", type=int)
    cheap.add_argument("skill_id_2", type=int)

    expensive = kinds.add_parser("skill-expensive", help="Raise one skill at or above its linked attribute")
    expensive.add_argument("character_id", type=int)
    expensive.add_argument("skill_id", type=int)

    hindrance = kinds.add_parser("hindrance", help="Remove, reduce or bank removal of a hindrance")
    hindrance.add_argument("character_id", type=int)
    hindrance.add_argument("hindrance_id", type=int)
    hindrance.add_argument(
        "action",
        choices=["remove_minor", "reduce_major", "remove_major_half", "complete_major_removal"],
    )
    return parser


def _run_advance(args: argparse.Namespace, app: SwadeApp, console: Console) -> None:
    service = app.advancement
    if args.kind == "edge":
        result = service.apply_edge_advance(
            args.character_id, args.edge_id, args.notes, bypass_validation=args.bypass
        )
    elif args.kind == "attribute":
        result = service.apply_attribute_advance(args.character_id, args.attribute_id)
    elif args.kind == "skill-cheap":
        result = service.apply_cheap_skill_advance(args.character_id, args.skill_id_1, args.skill_id_2)
    elif args.kind == "skill-expensive":
        result = service.apply_expensive_skill_advance(args.character_id, args.skill_id)
    else:
        result = service.apply_hindrance_advance(args.character_id, args.hindrance_id, args.action)
    render_warnings(result.warnings, console)
    console.print(f"[green]Advance {result.advance.advance_number}[/green] {result.advance.description}")
    render_character_sheet(result.character, console)


def run(args: argparse.Namespace, app: SwadeApp, console: Console) -> int:
    try:
        if args.command == "list":
            for view in app.characters.list_characters():
                console.print(f"[{view.character_id}] {view.name} ({view.rank.name}, {view.current_advances} advances)")
        elif args.command == "sheet":
            render_character_sheet(app.characters.get_character_view(args.character_id), console)
        elif args.command == "options":
            render_advancement_options(app.advancement.get_advancement_options(args.character_id), console)
        elif args.command == "history":
            render_history(app.advancement.get_advancement_history(args.character_id), console)
        elif args.command == "undo":
            result = app.advancement.undo_advance(args.character_id)
            console.print(f"[yellow]Undid advance {result.undone.advance_number}[/yellow] {result.undone.description}")
            render_character_sheet(result.character, console)
        elif args.command == "advance":
            _run_advance(args, app, console)
    except SwadeError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print(f"[red]{exc.kind}:[/red] {exc.message}")
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None, app: Optional[SwadeApp] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    if app is None:
        from swade.bootstrap import create_app

        app = create_app()
    return run(args, app, console or Console())
