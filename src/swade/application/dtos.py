from dataclasses import dataclass, field
from typing import List, Optional

from swade.domain.models.advance import HindranceAction
from swade.domain.models.character_view import CharacterView
from swade.domain.models.die import Die


@dataclass
class ValidationWarning:
    warning_type: str
    message: str


@dataclass
class EdgeAdvanceOption:
    id: int
    name: str
    category: str
    can_take_multiple_times: bool = False
    requirements: List[str] = field(default_factory=list)


@dataclass
class AttributeAdvanceOption:
    id: int
    name: str
    current_die: Die
    effective_die: Die
    next_die: Die
    effective_next_die: Die


@dataclass
class SkillAdvanceOption:
    id: int
    name: str
    current_die: Optional[Die]
    effective_die: Optional[Die]
    next_die: Die
    effective_next_die: Die
    linked_attribute_die: Die


@dataclass
class HindranceAdvanceOption:
    id: int
    name: str
    severity: str
    action: HindranceAction
    action_label: str
    is_banked: bool = False
    description: str = ""


@dataclass
class AdvancementOptions:
    next_advance_number: int
    current_rank: str
    rank_after_advance: str
    can_take_edge: bool = True
    edge_options: List[EdgeAdvanceOption] = field(default_factory=list)
    can_increase_attribute: bool = False
    attribute_blocked_reason: Optional[str] = None
    attribute_options: List[AttributeAdvanceOption] = field(default_factory=list)
    can_increase_expensive_skill: bool = False
    expensive_skill_options: List[SkillAdvanceOption] = field(default_factory=list)
    can_increase_cheap_skills: bool = False
    cheap_skill_options: List[SkillAdvanceOption] = field(default_factory=list)
    can_modify_hindrance: bool = False
    hindrance_options: List[HindranceAdvanceOption] = field(default_factory=list)


@dataclass
class AdvanceView:
    advance_number: int
    advance_type: str
    description: str


@dataclass
class AdvanceResult:
    advance: AdvanceView
    character: CharacterView
    warnings: List[ValidationWarning] = field(default_factory=list)


@dataclass
class UndoResult:
    undone: AdvanceView
    character: CharacterView


@dataclass
class CommandResult:
    character: CharacterView
    warnings: List[ValidationWarning] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
