from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from swade.application.dtos import AdvancementOptions, AdvanceView, SkillAdvanceOption, ValidationWarning
from swade.domain.models.character_view import CharacterView
from swade.domain.models.die import Die

_BORDER_SHEET = "yellow"
_BORDER_OPTIONS = "cyan"
_BORDER_HISTORY = "magenta"
_BORDER_WARNING = "red"


def format_die(die: Optional[Die]) -> str:
    return str(die) if die is not None else "untrained"


def _die_cell(purchased: Optional[Die], effective: Optional[Die]) -> str:
    if purchased == effective:
        return format_die(purchased)
    return f"{format_die(effective)} [dim](bought {format_die(purchased)})[/dim]"


def render_character_sheet(view: CharacterView, console: Console) -> None:
    header = Table.grid(padding=(0, 1))
    header.add_column(style="bold yellow", justify="right")
    header.add_column(style="white")
    header.add_row("Rank", f"{view.rank.name} ({view.current_advances} advances)")
    header.add_row("Ancestry", view.ancestry.name if view.ancestry is not None else "-")
    header.add_row("Wild Card", "yes" if view.is_wild_card else "no")
    stats = view.derived_stats
    header.add_row("Pace / Parry / Toughness", f"{stats.pace} / {stats.parry} / {stats.toughness}")
    load = view.encumbrance
    load_line = f"{load.current_weight:g} / {load.load_limit:g} lb"
    if load.is_encumbered:
        load_line += f" [red]encumbered (-{load.encumbrance_penalty})[/red]"
    header.add_row("Load", load_line)
    header.add_row("Wealth", f"${view.wealth}")

    traits = Table(show_header=True, header_style="bold yellow")
    traits.add_column("Attribute")
    traits.add_column("Die")
    for row in view.attributes:
        traits.add_row(row.attribute.name, _die_cell(row.die, row.effective_die))

    skills = Table(show_header=True, header_style="bold yellow")
    skills.add_column("Skill")
    skills.add_column("Die")
    for row in view.skills:
        if row.is_trained:
            skills.add_row(row.skill.name, _die_cell(row.die, row.effective_die))

    features = Table(show_header=True, header_style="bold yellow")
    features.add_column("Edges & Hindrances")
    features.add_column("Detail")
    for row in view.edges:
        label = row.edge.name if not row.notes else f"{row.edge.name} ({row.notes})"
        detail = f"advance {row.advance_taken}" if row.advance_taken else row.source
        features.add_row(label, detail)
    for row in view.hindrances:
        features.add_row(row.hindrance.name, row.hindrance.severity.value.title())

    body = Table.grid(padding=(1, 2))
    body.add_row(header)
    body.add_row(traits, skills, features)
    console.print(Panel.fit(body, title=f"[bold yellow]{view.name}[/bold yellow]", border_style=_BORDER_SHEET))


def _skill_line(option: SkillAdvanceOption) -> str:
    return f"{option.name} {format_die(option.current_die)} -> {format_die(option.next_die)}"


def render_advancement_options(options: AdvancementOptions, console: Console) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Advance")
    table.add_column("Choices")

    table.add_row(
        "Edge",
        "\n".join(f"[{row.id}] {row.name}" for row in options.edge_options) or "[dim]none eligible[/dim]",
    )
    if options.can_increase_attribute:
        attribute_choices = "\n".join(
            f"[{row.id}] {row.name} {row.current_die} -> {row.next_die}" for row in options.attribute_options
        )
    else:
        attribute_choices = f"[dim]{options.attribute_blocked_reason or 'no attribute can rise'}[/dim]"
    table.add_row("Attribute", attribute_choices)
    table.add_row(
        "Skill (one, at or above attribute)",
        "\n".join(f"[{row.id}] {_skill_line(row)}" for row in options.expensive_skill_options)
        or "[dim]none[/dim]",
    )
    table.add_row(
        "Skills (two, below attribute)",
        "\n".join(f"[{row.id}] {_skill_line(row)}" for row in options.cheap_skill_options)
        if options.can_increase_cheap_skills
        else "[dim]needs two skills below their attribute[/dim]",
    )
    table.add_row(
        "Hindrance",
        "\n".join(f"[{row.id}] {row.name}: {row.action_label}" for row in options.hindrance_options)
        or "[dim]none[/dim]",
    )

    title = f"Advance {options.next_advance_number} ({options.current_rank}"
    if options.rank_after_advance != options.current_rank:
        title += f" -> {options.rank_after_advance}"
    title += ")"
    console.print(Panel.fit(table, title=f"[bold cyan]{title}[/bold cyan]", border_style=_BORDER_OPTIONS))


def render_history(history: Iterable[AdvanceView], console: Console) -> None:
    rows = list(history)
    if not rows:
        console.print(Panel.fit("No advances taken yet.", title="History", border_style=_BORDER_HISTORY))
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Description")
    for row in rows:
        table.add_row(str(row.advance_number), row.advance_type, row.description)
    console.print(Panel.fit(table, title="History", border_style=_BORDER_HISTORY))


def render_warnings(warnings: Iterable[ValidationWarning], console: Console) -> None:
    for warning in warnings:
        console.print(f"[{_BORDER_WARNING}]GM override[/{_BORDER_WARNING}] {warning.warning_type}: {warning.message}")
