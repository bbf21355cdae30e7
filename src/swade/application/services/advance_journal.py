from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from swade.application.services.event_bus import EventBus
from swade.domain.events import AdvanceAppliedEvent, AdvanceUndoneEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JournalEntry:
    advance_number: int
    summary: str
    rank_changed: bool = False


class AdvanceJournal:
    """Session log of advances taken and undone, kept per character."""

    def __init__(self) -> None:
        self._entries: Dict[int, List[JournalEntry]] = {}

    def entries(self, character_id: int) -> list[JournalEntry]:
        return list(self._entries.get(int(character_id), ()))

    def on_advance_applied(self, event: AdvanceAppliedEvent) -> None:
        rank_changed = event.rank_before != event.rank_after
        summary = f"Advance {event.advance_number}: {event.description}"
        if event.bypassed:
            summary += " (GM override)"
        if rank_changed:
            summary += f"; promoted to {event.rank_after}"
            logger.info("Character %s reached %s", event.character_id, event.rank_after)
        self._record(event.character_id, JournalEntry(event.advance_number, summary, rank_changed))

    def on_advance_undone(self, event: AdvanceUndoneEvent) -> None:
        summary = f"Undid advance {event.advance_number}: {event.description}"
        self._record(event.character_id, JournalEntry(event.advance_number, summary))

    def _record(self, character_id: int, entry: JournalEntry) -> None:
        self._entries.setdefault(int(character_id), []).append(entry)


def register_advance_journal_handlers(event_bus: EventBus, journal: AdvanceJournal | None = None) -> AdvanceJournal:
    journal = journal or AdvanceJournal()
    event_bus.subscribe(AdvanceAppliedEvent, journal.on_advance_applied, priority=50)
    event_bus.subscribe(AdvanceUndoneEvent, journal.on_advance_undone, priority=50)
    return journal
