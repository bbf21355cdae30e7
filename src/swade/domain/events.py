from dataclasses import dataclass
from typing import Optional


@dataclass
class AdvanceEvent:
    character_id: int
    advance_number: int
    advance_type: str
    description: str


@dataclass
class AdvanceAppliedEvent(AdvanceEvent):
    rank_before: str
    rank_after: str
    bypassed: bool = False


@dataclass
class AdvanceUndoneEvent(AdvanceEvent):
    rank_after: Optional[str] = None
