from __future__ import annotations

import logging
from typing import List, Optional

from swade.application.dtos import (
    AdvanceResult,
    AdvanceView,
    AdvancementOptions,
    AttributeAdvanceOption,
    EdgeAdvanceOption,
    HindranceAdvanceOption,
    SkillAdvanceOption,
    UndoResult,
    ValidationWarning,
)
from swade.application.services.character_loader import (
    AtomicPersistor,
    CharacterLoader,
    LoadedCharacter,
    raise_or_warn,
)
from swade.domain.constants import SOURCE_ADVANCEMENT, SOURCE_ADVANCEMENT_REDUCED, SOURCE_CHOSEN
from swade.domain.errors import NotFoundError, ValidationFailedError, requirement_not_met
from swade.domain.events import AdvanceAppliedEvent, AdvanceUndoneEvent
from swade.domain.models.advance import Advance, AdvanceType, HindranceAction
from swade.domain.models.catalog import Catalog
from swade.domain.models.change_set import (
    CHARACTER_ADVANCE,
    CHARACTER_ATTRIBUTE,
    CHARACTER_EDGE,
    CHARACTER_HINDRANCE,
    CHARACTER_SKILL,
    ChangeSet,
    skill_die_values,
)
from swade.domain.models.character_view import SkillValue
from swade.domain.models.die import Die, apply_die_increments
from swade.domain.models.modifier import ModifierTargetType
from swade.domain.services.advancement_rules import (
    attribute_advance_block_reason,
    banked_hindrance_ids,
    half_removal_counts,
    hindrance_action_for,
    is_cheap_skill,
    rank_for_advances,
)
from swade.domain.services.modifier_aggregation import total_die_increments
from swade.domain.services.requirement_evaluator import evaluate, evaluate_detailed, unmet_descriptions

logger = logging.getLogger(__name__)


class AdvancementService:
    """Applies, lists and undoes advances; the advance history is the only source of rank."""

    def __init__(
        self,
        loader: CharacterLoader,
        atomic_persistor: AtomicPersistor,
        event_publisher=None,
    ) -> None:
        self.loader = loader
        self.atomic_persistor = atomic_persistor
        self._event_publisher = event_publisher

    def get_advancement_options(self, character_id: int) -> AdvancementOptions:
        loaded = self.loader.load(character_id)
        view = loaded.view
        catalog = loaded.catalog
        advances = loaded.character.advances
        completed = len(advances)

        block_reason = attribute_advance_block_reason(advances, catalog.ranks)
        attribute_options = [
            AttributeAdvanceOption(
                id=row.attribute.id,
                name=row.attribute.name,
                current_die=row.die,
                effective_die=row.effective_die,
                next_die=row.die.increment(),
                effective_next_die=apply_die_increments(
                    row.die.increment(),
                    total_die_increments(view.modifiers, ModifierTargetType.ATTRIBUTE, row.attribute.name),
                ),
            )
            for row in view.attributes
            if row.die < Die.d12()
        ]

        cheap: list[SkillAdvanceOption] = []
        expensive: list[SkillAdvanceOption] = []
        for row in view.skills:
            if row.die is not None and row.die >= row.skill.max_die:
                continue
            option = self._skill_option(row, view.modifiers)
            if is_cheap_skill(row.effective_die, row.linked_attribute_die):
                cheap.append(option)
            else:
                expensive.append(option)

        banked = banked_hindrance_ids(advances)
        hindrance_options = []
        for row in view.hindrances:
            is_banked = row.hindrance.id in banked
            action = hindrance_action_for(row.hindrance, is_banked=is_banked)
            hindrance_options.append(
                HindranceAdvanceOption(
                    id=row.hindrance.id,
                    name=row.hindrance.name,
                    severity=row.hindrance.severity.value,
                    action=action,
                    action_label=action.label,
                    is_banked=is_banked,
                    description=row.hindrance.description,
                )
            )

        edge_options = self._eligible_edges(loaded)
        return AdvancementOptions(
            next_advance_number=completed + 1,
            current_rank=view.rank.name,
            rank_after_advance=rank_for_advances(catalog.ranks, completed + 1).name,
            can_take_edge=bool(edge_options),
            edge_options=edge_options,
            can_increase_attribute=block_reason is None and bool(attribute_options),
            attribute_blocked_reason=block_reason,
            attribute_options=attribute_options if block_reason is None else [],
            can_increase_expensive_skill=bool(expensive),
            expensive_skill_options=expensive,
            can_increase_cheap_skills=len(cheap) >= 2,
            cheap_skill_options=cheap,
            can_modify_hindrance=bool(hindrance_options),
            hindrance_options=hindrance_options,
        )

    @staticmethod
    def _skill_option(row: SkillValue, modifiers) -> SkillAdvanceOption:
        next_die = Die.d4() if row.die is None else row.die.increment()
        return SkillAdvanceOption(
            id=row.skill.id,
            name=row.skill.name,
            current_die=row.die,
            effective_die=row.effective_die,
            next_die=next_die,
            effective_next_die=apply_die_increments(
                next_die,
                total_die_increments(modifiers, ModifierTargetType.SKILL, row.skill.name),
            ),
            linked_attribute_die=row.linked_attribute_die,
        )

    @staticmethod
    def _eligible_edges(loaded: LoadedCharacter) -> list[EdgeAdvanceOption]:
        snapshot = loaded.view.to_snapshot()
        options = []
        for edge in sorted(loaded.catalog.edges.values(), key=lambda row: row.name):
            if loaded.character.owns_edge(edge.id) and not edge.can_take_multiple_times:
                continue
            if not evaluate(edge.requirements, snapshot):
                continue
            options.append(
                EdgeAdvanceOption(
                    id=edge.id,
                    name=edge.name,
                    category=edge.category,
                    can_take_multiple_times=edge.can_take_multiple_times,
                    requirements=[status.description for status in evaluate_detailed(edge.requirements, snapshot)],
                )
            )
        return options

    def apply_edge_advance(
        self,
        character_id: int,
        edge_id: int,
        notes: Optional[str] = None,
        *,
        bypass_validation: bool = False,
    ) -> AdvanceResult:
        loaded = self.loader.load(character_id)
        edge = loaded.catalog.edges.get(int(edge_id))
        if edge is None:
            raise NotFoundError(f"Edge with id {edge_id} does not exist")
        if loaded.character.owns_edge(edge.id) and not edge.can_take_multiple_times:
            raise ValidationFailedError(f"{edge.name} is already owned and cannot be taken again")

        warnings: List[ValidationWarning] = []
        snapshot = loaded.view.to_snapshot()
        if not evaluate(edge.requirements, snapshot):
            unmet = ", ".join(unmet_descriptions(edge.requirements, snapshot))
            raise_or_warn(
                requirement_not_met(f"Requirements not met for {edge.name}: {unmet}"),
                bypass_validation=bypass_validation,
                warnings=warnings,
                logger=logger,
            )

        advance = Advance(
            advance_number=loaded.character.advance_count + 1,
            advance_type=AdvanceType.EDGE,
            edge_id=edge.id,
            notes=notes,
        )
        change_set = ChangeSet(character_id=int(character_id)).insert_advance(advance)
        change_set.insert(
            CHARACTER_EDGE,
            edge_id=edge.id,
            advance_taken=advance.advance_number,
            source=SOURCE_ADVANCEMENT,
            notes=notes,
        )
        return self._commit(loaded, advance, change_set, f"Gained edge: {edge.name}", warnings)

    def apply_attribute_advance(self, character_id: int, attribute_id: int) -> AdvanceResult:
        loaded = self.loader.load(character_id)
        attribute = loaded.catalog.attributes.get(int(attribute_id))
        if attribute is None:
            raise NotFoundError(f"Attribute with id {attribute_id} does not exist")

        block_reason = attribute_advance_block_reason(loaded.character.advances, loaded.catalog.ranks)
        if block_reason is not None:
            raise ValidationFailedError(block_reason)

        value = loaded.view.attribute_value(attribute.id)
        if value.die >= Die.d12():
            raise ValidationFailedError(f"{attribute.name} is already at maximum (d12)")

        advance = Advance(
            advance_number=loaded.character.advance_count + 1,
            advance_type=AdvanceType.ATTRIBUTE,
            attribute_id=attribute.id,
        )
        change_set = ChangeSet(character_id=int(character_id)).insert_advance(advance)
        change_set.update(
            CHARACTER_ATTRIBUTE,
            attribute_id=attribute.id,
            steps_incremented=value.steps_incremented + 1,
        )
        return self._commit(loaded, advance, change_set, f"Increased {attribute.name} to {value.die.increment()}")

    def _skill_for_advance(self, loaded: LoadedCharacter, skill_id: int) -> SkillValue:
        value = loaded.view.skill_value(int(skill_id))
        if value is None:
            raise NotFoundError(f"Skill with id {skill_id} does not exist")
        if value.die is not None and value.die >= value.skill.max_die:
            raise ValidationFailedError(f"{value.skill.name} is already at maximum ({value.skill.max_die})")
        return value

    def apply_expensive_skill_advance(self, character_id: int, skill_id: int) -> AdvanceResult:
        loaded = self.loader.load(character_id)
        value = self._skill_for_advance(loaded, skill_id)
        if is_cheap_skill(value.effective_die, value.linked_attribute_die):
            current = str(value.effective_die) if value.effective_die is not None else "untrained"
            raise ValidationFailedError(
                f"{value.skill.name} ({current}) is below its linked attribute "
                f"({value.linked_attribute_die}); use a cheap skill advance instead"
            )

        new_die = value.die.increment()
        advance = Advance(
            advance_number=loaded.character.advance_count + 1,
            advance_type=AdvanceType.SKILL_EXPENSIVE,
            skill_id_1=value.skill.id,
        )
        change_set = ChangeSet(character_id=int(character_id)).insert_advance(advance)
        change_set.update(CHARACTER_SKILL, skill_id=value.skill.id, **skill_die_values(new_die))
        return self._commit(loaded, advance, change_set, f"Increased {value.skill.name} to {new_die}")

    def apply_cheap_skill_advance(self, character_id: int, skill_id_1: int, skill_id_2: int) -> AdvanceResult:
        if int(skill_id_1) == int(skill_id_2):
            raise ValidationFailedError("A cheap skill advance needs two different skills")

        loaded = self.loader.load(character_id)
        values = [self._skill_for_advance(loaded, skill_id) for skill_id in (skill_id_1, skill_id_2)]
        for value in values:
            if not is_cheap_skill(value.effective_die, value.linked_attribute_die):
                raise ValidationFailedError(
                    f"{value.skill.name} ({value.effective_die}) is at or above its linked attribute "
                    f"({value.linked_attribute_die}); use an expensive skill advance instead"
                )

        advance = Advance(
            advance_number=loaded.character.advance_count + 1,
            advance_type=AdvanceType.SKILL_CHEAP,
            skill_id_1=values[0].skill.id,
            skill_id_2=values[1].skill.id,
        )
        change_set = ChangeSet(character_id=int(character_id)).insert_advance(advance)
        raised = []
        for value in values:
            new_die = Die.d4() if value.die is None else value.die.increment()
            change_set.update(CHARACTER_SKILL, skill_id=value.skill.id, **skill_die_values(new_die))
            raised.append(f"{value.skill.name} to {new_die}")
        return self._commit(loaded, advance, change_set, "Increased " + " and ".join(raised))

    def apply_hindrance_advance(self, character_id: int, hindrance_id: int, action: str) -> AdvanceResult:
        loaded = self.loader.load(character_id)
        hindrance = loaded.catalog.hindrances.get(int(hindrance_id))
        if hindrance is None:
            raise NotFoundError(f"Hindrance with id {hindrance_id} does not exist")
        try:
            chosen = HindranceAction.normalize(action)
        except ValueError as exc:
            raise ValidationFailedError(f"Invalid hindrance action: {action}") from exc

        owned = loaded.character.hindrance(hindrance.id)
        if owned is None:
            raise ValidationFailedError(f"Character doesn't have {hindrance.name}")

        is_banked = hindrance.id in banked_hindrance_ids(loaded.character.advances)
        advance = Advance(
            advance_number=loaded.character.advance_count + 1,
            advance_type=AdvanceType.HINDRANCE,
            hindrance_id=hindrance.id,
            hindrance_action=chosen.stored_value,
            notes=owned.source,
        )
        change_set = ChangeSet(character_id=int(character_id)).insert_advance(advance)

        if chosen is HindranceAction.REMOVE_MINOR:
            if hindrance.is_major:
                raise ValidationFailedError(f"{hindrance.name} is not a Minor hindrance")
            change_set.delete(CHARACTER_HINDRANCE, hindrance_id=hindrance.id)
            description = f"Removed minor hindrance: {hindrance.name}"
        elif chosen is HindranceAction.REDUCE_MAJOR:
            if not hindrance.is_major:
                raise ValidationFailedError(f"{hindrance.name} is not a Major hindrance")
            if hindrance.companion_hindrance_id is None:
                raise ValidationFailedError(f"{hindrance.name} cannot be reduced (no minor version exists)")
            companion = loaded.catalog.hindrances.get(int(hindrance.companion_hindrance_id))
            if companion is None:
                raise NotFoundError(f"Hindrance with id {hindrance.companion_hindrance_id} does not exist")
            change_set.delete(CHARACTER_HINDRANCE, hindrance_id=hindrance.id)
            change_set.insert(CHARACTER_HINDRANCE, hindrance_id=companion.id, source=SOURCE_ADVANCEMENT_REDUCED)
            description = f"Reduced {hindrance.name} to {companion.name}"
        elif is_banked:
            change_set.delete(CHARACTER_HINDRANCE, hindrance_id=hindrance.id)
            description = f"Removed major hindrance: {hindrance.name} (2nd advance)"
        else:
            if chosen is HindranceAction.COMPLETE_MAJOR_REMOVAL:
                raise ValidationFailedError(f"No banked removal exists for {hindrance.name}")
            if not hindrance.is_major:
                raise ValidationFailedError(f"{hindrance.name} is not a Major hindrance")
            if hindrance.companion_hindrance_id is not None:
                raise ValidationFailedError(f"{hindrance.name} has a minor version; reduce it instead")
            description = f"Banked advance toward removing: {hindrance.name} (1 of 2)"

        return self._commit(loaded, advance, change_set, description)

    def undo_advance(self, character_id: int) -> UndoResult:
        loaded = self.loader.load(character_id)
        character = loaded.character
        latest = character.latest_advance
        if latest is None:
            raise ValidationFailedError("No advances to undo")

        undone = AdvanceView(
            advance_number=latest.advance_number,
            advance_type=latest.advance_type.value,
            description=describe_advance(latest, loaded.catalog),
        )
        change_set = ChangeSet(character_id=int(character_id))
        if latest.advance_type is AdvanceType.EDGE:
            if any(
                row.edge_id == latest.edge_id and row.advance_taken == latest.advance_number
                for row in character.edges
            ):
                change_set.delete(CHARACTER_EDGE, edge_id=latest.edge_id, advance_taken=latest.advance_number)
        elif latest.advance_type is AdvanceType.ATTRIBUTE:
            stored = character.attribute(latest.attribute_id)
            if stored is not None:
                change_set.update(
                    CHARACTER_ATTRIBUTE,
                    attribute_id=stored.attribute_id,
                    steps_incremented=max(0, int(stored.steps_incremented) - 1),
                )
        elif latest.advance_type in (AdvanceType.SKILL_CHEAP, AdvanceType.SKILL_EXPENSIVE):
            for skill_id in latest.skill_ids:
                self._revert_skill(loaded, skill_id, change_set)
        elif latest.advance_type is AdvanceType.HINDRANCE:
            self._revert_hindrance(loaded, latest, change_set)
        change_set.delete(CHARACTER_ADVANCE, advance_number=latest.advance_number)

        self.atomic_persistor(change_set)
        view = self.loader.view(character_id)
        logger.info("Undid advance %s for character %s: %s", latest.advance_number, character_id, undone.description)
        self._publish(
            AdvanceUndoneEvent(
                character_id=int(character_id),
                advance_number=latest.advance_number,
                advance_type=latest.advance_type.value,
                description=undone.description,
                rank_after=view.rank.name,
            )
        )
        return UndoResult(undone=undone, character=view)

    @staticmethod
    def _revert_skill(loaded: LoadedCharacter, skill_id: int, change_set: ChangeSet) -> None:
        stored = loaded.character.skill(skill_id)
        if stored is None or stored.die is None:
            return
        lowered = stored.die.decrement()
        skill = loaded.catalog.skills.get(int(skill_id))
        if lowered is None and skill is not None and skill.is_core_skill:
            lowered = Die.d4()
        change_set.update(CHARACTER_SKILL, skill_id=int(skill_id), **skill_die_values(lowered))

    @staticmethod
    def _revert_hindrance(loaded: LoadedCharacter, latest: Advance, change_set: ChangeSet) -> None:
        hindrance_id = int(latest.hindrance_id)
        source = latest.notes or SOURCE_CHOSEN
        action = latest.hindrance_action
        if action == HindranceAction.REMOVE_MINOR.value:
            change_set.insert(CHARACTER_HINDRANCE, hindrance_id=hindrance_id, source=source)
        elif action == HindranceAction.REDUCE_MAJOR.value:
            hindrance = loaded.catalog.hindrances.get(hindrance_id)
            companion_id = hindrance.companion_hindrance_id if hindrance is not None else None
            if companion_id is not None and loaded.character.hindrance(companion_id) is not None:
                change_set.delete(CHARACTER_HINDRANCE, hindrance_id=int(companion_id))
            change_set.insert(CHARACTER_HINDRANCE, hindrance_id=hindrance_id, source=source)
        elif action == HindranceAction.REMOVE_MAJOR_HALF.value:
            earlier = half_removal_counts(loaded.character.advances[:-1]).get(hindrance_id, 0)
            # An odd count before this advance means this advance completed the removal.
            if earlier % 2 == 1:
                change_set.insert(CHARACTER_HINDRANCE, hindrance_id=hindrance_id, source=source)

    def get_advancement_history(self, character_id: int) -> list[AdvanceView]:
        loaded = self.loader.load(character_id)
        return [
            AdvanceView(
                advance_number=row.advance_number,
                advance_type=row.advance_type.value,
                description=describe_advance(row, loaded.catalog),
            )
            for row in loaded.character.advances
        ]

    def _commit(
        self,
        loaded: LoadedCharacter,
        advance: Advance,
        change_set: ChangeSet,
        description: str,
        warnings: Optional[List[ValidationWarning]] = None,
    ) -> AdvanceResult:
        self.atomic_persistor(change_set)
        view = self.loader.view(change_set.character_id)
        logger.info(
            "Applied advance %s (%s) for character %s: %s",
            advance.advance_number,
            advance.advance_type.value,
            change_set.character_id,
            description,
        )
        self._publish(
            AdvanceAppliedEvent(
                character_id=change_set.character_id,
                advance_number=advance.advance_number,
                advance_type=advance.advance_type.value,
                description=description,
                rank_before=loaded.view.rank.name,
                rank_after=view.rank.name,
                bypassed=bool(warnings),
            )
        )
        return AdvanceResult(
            advance=AdvanceView(
                advance_number=advance.advance_number,
                advance_type=advance.advance_type.value,
                description=description,
            ),
            character=view,
            warnings=list(warnings or []),
        )

    def _publish(self, event: object) -> None:
        if callable(self._event_publisher):
            self._event_publisher(event)


def _name_of(rows, entity_id, fallback: str) -> str:
    row = rows.get(int(entity_id)) if entity_id is not None else None
    return row.name if row is not None else fallback


def describe_advance(advance: Advance, catalog: Catalog) -> str:
    kind = advance.advance_type
    if kind is AdvanceType.EDGE:
        return f"Gained edge: {_name_of(catalog.edges, advance.edge_id, 'Unknown')}"
    if kind is AdvanceType.ATTRIBUTE:
        return f"Increased {_name_of(catalog.attributes, advance.attribute_id, 'attribute')}"
    if kind is AdvanceType.SKILL_EXPENSIVE:
        return f"Increased {_name_of(catalog.skills, advance.skill_id_1, 'skill')} (expensive)"
    if kind is AdvanceType.SKILL_CHEAP:
        first = _name_of(catalog.skills, advance.skill_id_1, "skill 1")
        second = _name_of(catalog.skills, advance.skill_id_2, "skill 2")
        return f"Increased {first} and {second}"

    name = _name_of(catalog.hindrances, advance.hindrance_id, "hindrance")
    if advance.hindrance_action == HindranceAction.REMOVE_MINOR.value:
        return f"Removed minor: {name}"
    if advance.hindrance_action == HindranceAction.REDUCE_MAJOR.value:
        return f"Reduced major: {name}"
    if advance.hindrance_action == HindranceAction.REMOVE_MAJOR_HALF.value:
        return f"Progress toward removing: {name}"
    return f"Modified: {name}"
