from __future__ import annotations

import copy
import logging
from typing import List, Optional

from swade.application.dtos import CommandResult, ValidationWarning
from swade.application.services.character_loader import (
    AtomicPersistor,
    CharacterLoader,
    LoadedCharacter,
    raise_or_warn,
)
from swade.domain.constants import (
    ATTRIBUTE_HINDRANCE_POINT_COST,
    EDGE_HINDRANCE_POINT_COST,
    GEAR_RESALE_DIVISOR,
    MAX_HINDRANCE_POINTS,
    SKILL_HINDRANCE_POINT_RATIO,
    SOURCE_ANCESTRY,
    SOURCE_ARCANE_BACKGROUND,
    SOURCE_CHOSEN,
    SOURCE_HINDRANCE_POINTS,
    WEALTH_PER_HINDRANCE_POINT,
)
from swade.domain.errors import (
    NotFoundError,
    ValidationFailedError,
    point_limit_exceeded,
    requirement_not_met,
    slot_limit_exceeded,
)
from swade.domain.models.change_set import (
    CHARACTER,
    CHARACTER_ARCANE_BACKGROUND,
    CHARACTER_ATTRIBUTE,
    CHARACTER_EDGE,
    CHARACTER_GEAR,
    CHARACTER_HINDRANCE,
    CHARACTER_POWER,
    CHARACTER_SKILL,
    ChangeSet,
    apply_change_set,
    skill_die_values,
)
from swade.domain.models.catalog import Edge
from swade.domain.models.character import CharacterEdge
from swade.domain.models.character_view import CharacterView
from swade.domain.models.die import Die
from swade.domain.models.modifier import ModifierTargetType
from swade.domain.models.requirement import RequirementNode
from swade.domain.services.modifier_aggregation import build_character_view
from swade.domain.services.requirement_evaluator import evaluate, unmet_descriptions

logger = logging.getLogger(__name__)

HINDRANCE_POINT_BUCKETS = ("edges", "attributes", "skills", "wealth")


class CharacterService:
    """Character-creation edits: point-buy traits, creation edges, hindrances and gear."""

    def __init__(self, loader: CharacterLoader, atomic_persistor: AtomicPersistor) -> None:
        self.loader = loader
        self.atomic_persistor = atomic_persistor

    def get_character_view(self, character_id: int) -> CharacterView:
        return self.loader.view(character_id)

    def list_characters(self) -> list[CharacterView]:
        catalog = self.loader.catalog()
        return [build_character_view(character, catalog) for character in self.loader.list_characters()]

    def set_gear_equipped(self, character_id: int, gear_id: int, equipped: bool) -> CommandResult:
        loaded = self.loader.load(character_id)
        if loaded.character.gear_item(gear_id) is None:
            raise NotFoundError(f"Character {character_id} does not carry gear with id {gear_id}")
        change_set = ChangeSet(character_id=int(character_id))
        change_set.update(CHARACTER_GEAR, gear_id=int(gear_id), is_equipped=bool(equipped))
        return self._commit(change_set)

    def update_attribute(
        self,
        character_id: int,
        attribute_id: int,
        increment: bool,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        loaded = self.loader.load(character_id)
        value = loaded.view.attribute_value(attribute_id)
        if value is None:
            raise NotFoundError(f"Attribute with id {attribute_id} does not exist")
        name = value.attribute.name
        warnings: List[ValidationWarning] = []
        spent = int(loaded.character.attribute_points_spent)
        change_set = ChangeSet(character_id=int(character_id))

        if increment:
            if value.die >= Die.d12():
                raise ValidationFailedError(f"{name} is already at maximum (d12)")
            if loaded.view.points.attribute_points_available <= 0:
                raise_or_warn(
                    point_limit_exceeded(f"No attribute points available to raise {name}"),
                    bypass_validation=bypass_validation,
                    warnings=warnings,
                    logger=logger,
                )
            steps, spent = value.steps_incremented + 1, spent + 1
        else:
            if value.steps_incremented <= 0:
                raise ValidationFailedError(f"{name} is already at its base die ({value.attribute.base_die})")
            steps, spent = value.steps_incremented - 1, spent - 1

        change_set.update(CHARACTER_ATTRIBUTE, attribute_id=value.attribute.id, steps_incremented=steps)
        change_set.update(CHARACTER, attribute_points_spent=max(0, spent))
        messages = [] if increment or bypass_validation else self._drop_invalid_edges(loaded, change_set)
        return self._commit(change_set, warnings, messages)

    def update_skill(
        self,
        character_id: int,
        skill_id: int,
        increment: bool,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        loaded = self.loader.load(character_id)
        value = loaded.view.skill_value(skill_id)
        if value is None:
            raise NotFoundError(f"Skill with id {skill_id} does not exist")
        name = value.skill.name
        warnings: List[ValidationWarning] = []
        spent = int(loaded.character.skill_points_spent)
        change_set = ChangeSet(character_id=int(character_id))

        if increment:
            if value.die is not None and value.die >= value.skill.max_die:
                raise ValidationFailedError(f"{name} is already at maximum ({value.skill.max_die})")
            if loaded.view.points.skill_points_available < value.increment_cost:
                raise_or_warn(
                    point_limit_exceeded(
                        f"Not enough skill points to raise {name} "
                        f"(need {value.increment_cost}, have {loaded.view.points.skill_points_available})"
                    ),
                    bypass_validation=bypass_validation,
                    warnings=warnings,
                    logger=logger,
                )
            new_die: Optional[Die] = Die.d4() if value.die is None else value.die.increment()
            spent += value.increment_cost
        else:
            if value.die is None:
                raise ValidationFailedError(f"{name} is untrained")
            if value.skill.is_core_skill and value.die == Die.d4():
                raise ValidationFailedError(f"{name} is a core skill and cannot go below d4")
            new_die = value.die.decrement()
            spent -= 1 if new_die is None or value.die <= value.linked_attribute_die else 2

        change_set.update(CHARACTER_SKILL, skill_id=value.skill.id, **skill_die_values(new_die))
        change_set.update(CHARACTER, skill_points_spent=max(0, spent))
        messages = [] if increment or bypass_validation else self._drop_invalid_edges(loaded, change_set)
        return self._commit(change_set, warnings, messages)

    def add_edge(
        self,
        character_id: int,
        edge_id: int,
        notes: Optional[str] = None,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        loaded = self.loader.load(character_id)
        edge = loaded.catalog.edges.get(int(edge_id))
        if edge is None:
            raise NotFoundError(f"Edge with id {edge_id} does not exist")
        if loaded.character.owns_edge(edge.id) and not edge.can_take_multiple_times:
            raise ValidationFailedError(f"{edge.name} is already taken and cannot be taken multiple times")

        warnings: List[ValidationWarning] = []
        _check_requirements(loaded, edge.name, edge.requirements, bypass_validation, warnings)
        if edge.can_take_multiple_times and not (notes or "").strip():
            raise ValidationFailedError(f"{edge.name} requires notes (e.g. the skill or weapon it applies to)")
        if loaded.view.points.edge_points_available < EDGE_HINDRANCE_POINT_COST:
            raise_or_warn(
                point_limit_exceeded(f"Not enough hindrance points allocated to edges for {edge.name}"),
                bypass_validation=bypass_validation,
                warnings=warnings,
                logger=logger,
            )

        change_set = ChangeSet(character_id=int(character_id))
        change_set.insert(CHARACTER_EDGE, edge_id=edge.id, advance_taken=0, source=SOURCE_HINDRANCE_POINTS, notes=notes)
        wealth_bonus = _wealth_bonus(edge)
        if wealth_bonus > 0:
            change_set.update(CHARACTER, wealth=int(loaded.character.wealth) + wealth_bonus)
        return self._commit(change_set, warnings)

    def allocate_hindrance_points(
        self,
        character_id: int,
        bucket: str,
        points: int,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        bucket = str(bucket or "").strip().lower()
        if bucket not in HINDRANCE_POINT_BUCKETS:
            raise ValidationFailedError(f"Unknown hindrance point bucket: {bucket or '<empty>'}")
        points = int(points)
        if points == 0:
            raise ValidationFailedError("Allocate a non-zero number of points")

        loaded = self.loader.load(character_id)
        character = loaded.character
        column = f"hindrance_points_to_{bucket}"
        current = int(getattr(character, column))
        new_total = current + points
        warnings: List[ValidationWarning] = []
        change_set = ChangeSet(character_id=int(character_id))

        if points < 0:
            self._check_deallocation(loaded, bucket, new_total)
        else:
            if bucket == "edges" and points % EDGE_HINDRANCE_POINT_COST != 0:
                raise ValidationFailedError(
                    f"Hindrance points go to edges in multiples of {EDGE_HINDRANCE_POINT_COST}"
                )
            cost = points * _bucket_cost(bucket)
            available = loaded.view.points.hindrance_points_available
            if cost > available:
                raise_or_warn(
                    point_limit_exceeded(f"Not enough hindrance points for {bucket}: need {cost}, have {available}"),
                    bypass_validation=bypass_validation,
                    warnings=warnings,
                    logger=logger,
                )

        counters = {column: new_total}
        if bucket == "wealth":
            counters["wealth"] = max(0, int(character.wealth) + points * WEALTH_PER_HINDRANCE_POINT)
        change_set.update(CHARACTER, **counters)
        return self._commit(change_set, warnings)

    @staticmethod
    def _check_deallocation(loaded: LoadedCharacter, bucket: str, new_total: int) -> None:
        if new_total < 0:
            raise ValidationFailedError(f"Cannot deallocate more {bucket} points than allocated")
        character = loaded.character
        points = loaded.view.points
        if bucket == "edges":
            in_use = int(character.hindrance_points_to_edges) - points.edge_points_available
            if new_total < in_use:
                raise ValidationFailedError("Cannot deallocate: points already spent on edges. Remove edges first.")
        elif bucket == "attributes":
            released = int(character.hindrance_points_to_attributes) - new_total
            if points.attribute_points_available < released:
                raise ValidationFailedError("Cannot deallocate: attribute points already spent")
        elif bucket == "skills":
            released = int(character.hindrance_points_to_skills) - new_total
            if points.skill_points_available < released:
                raise ValidationFailedError("Cannot deallocate: skill points already spent")

    def add_hindrance(
        self,
        character_id: int,
        hindrance_id: int,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        loaded = self.loader.load(character_id)
        hindrance = loaded.catalog.hindrances.get(int(hindrance_id))
        if hindrance is None:
            raise NotFoundError(f"Hindrance with id {hindrance_id} does not exist")
        if loaded.character.hindrance(hindrance.id) is not None:
            raise ValidationFailedError(f"{hindrance.name} is already added")

        warnings: List[ValidationWarning] = []
        earned = int(loaded.character.hindrance_points_earned) + hindrance.severity.point_value
        if earned > MAX_HINDRANCE_POINTS:
            raise_or_warn(
                point_limit_exceeded(
                    f"Adding {hindrance.name} would earn {earned} hindrance points (maximum {MAX_HINDRANCE_POINTS})"
                ),
                bypass_validation=bypass_validation,
                warnings=warnings,
                logger=logger,
            )

        change_set = ChangeSet(character_id=int(character_id))
        change_set.insert(CHARACTER_HINDRANCE, hindrance_id=hindrance.id, source=SOURCE_CHOSEN)
        change_set.update(CHARACTER, hindrance_points_earned=earned)
        return self._commit(change_set, warnings)

    def remove_draft_hindrance(self, character_id: int, hindrance_id: int) -> CommandResult:
        loaded = self.loader.load(character_id)
        hindrance = loaded.catalog.hindrances.get(int(hindrance_id))
        if hindrance is None:
            raise NotFoundError(f"Hindrance with id {hindrance_id} does not exist")
        owned = loaded.character.hindrance(hindrance.id)
        if owned is None or owned.source != SOURCE_CHOSEN:
            raise ValidationFailedError(f"{hindrance.name} was not chosen at creation and cannot be removed")
        points = hindrance.severity.point_value
        if loaded.view.points.hindrance_points_available < points:
            raise ValidationFailedError(
                f"Cannot remove {hindrance.name}: its hindrance points are already allocated. Deallocate them first."
            )

        change_set = ChangeSet(character_id=int(character_id))
        change_set.delete(CHARACTER_HINDRANCE, hindrance_id=hindrance.id)
        change_set.update(
            CHARACTER,
            hindrance_points_earned=max(0, int(loaded.character.hindrance_points_earned) - points),
        )
        return self._commit(change_set)

    def remove_draft_edge(self, character_id: int, edge_id: int) -> CommandResult:
        """Remove an edge bought with hindrance points; its two points go back to the edge allocation."""
        loaded = self.loader.load(character_id)
        edge = loaded.catalog.edges.get(int(edge_id))
        if edge is None:
            raise NotFoundError(f"Edge with id {edge_id} does not exist")
        owned = next(
            (row for row in loaded.character.edges if row.edge_id == edge.id and row.source == SOURCE_HINDRANCE_POINTS),
            None,
        )
        if owned is None:
            raise ValidationFailedError(f"{edge.name} was not bought with hindrance points and cannot be removed")

        change_set = ChangeSet(character_id=int(character_id))
        change_set.delete(CHARACTER_EDGE, edge_id=edge.id, advance_taken=owned.advance_taken)
        wealth_bonus = _wealth_bonus(edge)
        if wealth_bonus > 0:
            change_set.update(CHARACTER, wealth=max(0, int(loaded.character.wealth) - wealth_bonus))
        messages = self._drop_invalid_edges(loaded, change_set)
        return self._commit(change_set, messages=messages)

    def update_draft_ancestry(
        self,
        character_id: int,
        ancestry_id: Optional[int],
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        """Swap the ancestry, dropping whatever the previous one granted."""
        loaded = self.loader.load(character_id)
        warnings: List[ValidationWarning] = []
        new_id = None
        if ancestry_id is not None:
            ancestry = loaded.catalog.ancestries.get(int(ancestry_id))
            if ancestry is None:
                raise NotFoundError(f"Ancestry with id {ancestry_id} does not exist")
            _check_requirements(loaded, ancestry.name, ancestry.requirements, bypass_validation, warnings)
            new_id = ancestry.id

        change_set = ChangeSet(character_id=int(character_id))
        change_set.update(CHARACTER, ancestry_id=new_id)
        for row in loaded.character.edges:
            if row.source == SOURCE_ANCESTRY:
                change_set.delete(CHARACTER_EDGE, edge_id=row.edge_id, advance_taken=row.advance_taken)
        for row in loaded.character.hindrances:
            if row.source == SOURCE_ANCESTRY:
                change_set.delete(CHARACTER_HINDRANCE, hindrance_id=row.hindrance_id)
        messages = [] if bypass_validation else self._drop_invalid_edges(loaded, change_set)
        return self._commit(change_set, warnings, messages)

    def add_draft_arcane_background(
        self,
        character_id: int,
        arcane_background_id: int,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        loaded = self.loader.load(character_id)
        background = loaded.catalog.arcane_backgrounds.get(int(arcane_background_id))
        if background is None:
            raise NotFoundError(f"Arcane background with id {arcane_background_id} does not exist")
        if background.id in _owned_arcane_background_ids(loaded):
            raise ValidationFailedError(f"{background.name} is already added")

        warnings: List[ValidationWarning] = []
        _check_requirements(loaded, background.name, background.requirements, bypass_validation, warnings)
        change_set = ChangeSet(character_id=int(character_id))
        change_set.insert(CHARACTER_ARCANE_BACKGROUND, arcane_background_id=background.id, source=SOURCE_CHOSEN)
        return self._commit(change_set, warnings)

    def remove_draft_arcane_background(self, character_id: int, arcane_background_id: int) -> CommandResult:
        """Remove an arcane background with its powers, its hindrances and any edge that needed it."""
        loaded = self.loader.load(character_id)
        background = loaded.catalog.arcane_backgrounds.get(int(arcane_background_id))
        if background is None:
            raise NotFoundError(f"Arcane background with id {arcane_background_id} does not exist")
        owned = _owned_arcane_background_ids(loaded)
        if background.id not in owned:
            raise ValidationFailedError(f"Character doesn't have {background.name}")

        change_set = ChangeSet(character_id=int(character_id))
        change_set.delete(CHARACTER_ARCANE_BACKGROUND, arcane_background_id=background.id)
        last_background = len(owned) == 1
        messages = []
        for row in loaded.character.powers:
            if last_background or row.arcane_background_id == background.id:
                change_set.delete(CHARACTER_POWER, power_id=row.power_id)
                messages.append(f"Removed {loaded.catalog.powers[int(row.power_id)].name}: {background.name} removed")
        if last_background:
            for row in loaded.character.hindrances:
                if row.source == SOURCE_ARCANE_BACKGROUND:
                    change_set.delete(CHARACTER_HINDRANCE, hindrance_id=row.hindrance_id)
        messages += self._drop_invalid_edges(loaded, change_set)
        return self._commit(change_set, messages=messages)

    def add_draft_power(
        self,
        character_id: int,
        power_id: int,
        arcane_background_id: Optional[int] = None,
        *,
        bypass_validation: bool = False,
    ) -> CommandResult:
        """Learn a starting power.

        Without ``arcane_background_id`` the power is tied to the character's
        only arcane background, or left untied when there are several.
        """
        loaded = self.loader.load(character_id)
        power = loaded.catalog.powers.get(int(power_id))
        if power is None:
            raise NotFoundError(f"Power with id {power_id} does not exist")
        if any(row.power_id == power.id for row in loaded.character.powers):
            raise ValidationFailedError(f"{power.name} is already known")
        owned = _owned_arcane_background_ids(loaded)
        if not owned:
            raise ValidationFailedError("Character must have an arcane background to select powers")
        if arcane_background_id is None:
            linked = owned[0] if len(owned) == 1 else None
        elif int(arcane_background_id) in owned:
            linked = int(arcane_background_id)
        else:
            raise ValidationFailedError(f"Character doesn't have arcane background {arcane_background_id}")

        warnings: List[ValidationWarning] = []
        _check_requirements(loaded, power.name, power.requirements, bypass_validation, warnings)
        slots = sum(loaded.catalog.arcane_backgrounds[row_id].starting_powers for row_id in owned)
        known = len(loaded.character.powers)
        if known >= slots:
            raise_or_warn(
                slot_limit_exceeded(f"Cannot add more powers: {known} of {slots} starting powers already chosen"),
                bypass_validation=bypass_validation,
                warnings=warnings,
                logger=logger,
            )

        change_set = ChangeSet(character_id=int(character_id))
        change_set.insert(CHARACTER_POWER, power_id=power.id, arcane_background_id=linked, source=SOURCE_CHOSEN)
        return self._commit(change_set, warnings)

    def remove_draft_power(self, character_id: int, power_id: int) -> CommandResult:
        loaded = self.loader.load(character_id)
        power = loaded.catalog.powers.get(int(power_id))
        if power is None:
            raise NotFoundError(f"Power with id {power_id} does not exist")
        if not any(row.power_id == power.id for row in loaded.character.powers):
            raise ValidationFailedError(f"Character doesn't know {power.name}")
        return self._commit(ChangeSet(character_id=int(character_id)).delete(CHARACTER_POWER, power_id=power.id))

    def purchase_gear(self, character_id: int, gear_id: int, quantity: int = 1) -> CommandResult:
        loaded = self.loader.load(character_id)
        gear = loaded.catalog.gear.get(int(gear_id))
        if gear is None:
            raise NotFoundError(f"Gear with id {gear_id} does not exist")
        quantity = int(quantity)
        if quantity < 1:
            raise ValidationFailedError("Buy at least one item")
        total = gear.cost * quantity
        wealth = int(loaded.character.wealth)
        if total > wealth:
            raise ValidationFailedError(f"Insufficient funds. Need ${total}, have ${wealth}")

        change_set = ChangeSet(character_id=int(character_id))
        carried = loaded.character.gear_item(gear.id)
        if carried is None:
            change_set.insert(CHARACTER_GEAR, gear_id=gear.id, quantity=quantity, is_equipped=False)
        else:
            change_set.update(CHARACTER_GEAR, gear_id=gear.id, quantity=int(carried.quantity) + quantity)
        change_set.update(CHARACTER, wealth=wealth - total)
        return self._commit(change_set)

    def sell_gear(self, character_id: int, gear_id: int, quantity: int = 1) -> CommandResult:
        """Sell carried gear for half its listed cost, rounded down."""
        loaded = self.loader.load(character_id)
        carried = loaded.character.gear_item(gear_id)
        if carried is None:
            raise NotFoundError(f"Character {character_id} does not carry gear with id {gear_id}")
        gear = loaded.catalog.gear[int(carried.gear_id)]
        quantity = int(quantity)
        if quantity < 1:
            raise ValidationFailedError("Sell at least one item")
        if quantity > int(carried.quantity):
            raise ValidationFailedError(f"Cannot sell {quantity} {gear.name}, only have {carried.quantity}")

        change_set = ChangeSet(character_id=int(character_id))
        if quantity == int(carried.quantity):
            change_set.delete(CHARACTER_GEAR, gear_id=gear.id)
        else:
            change_set.update(CHARACTER_GEAR, gear_id=gear.id, quantity=int(carried.quantity) - quantity)
        sale = gear.cost * quantity // GEAR_RESALE_DIVISOR
        change_set.update(CHARACTER, wealth=int(loaded.character.wealth) + sale)
        return self._commit(change_set)

    def check_attribute_decrement_impact(self, character_id: int, attribute_id: int) -> list[str]:
        """Names of owned edges that lowering this attribute one step would leave unqualified."""
        loaded = self.loader.load(character_id)
        value = loaded.view.attribute_value(attribute_id)
        if value is None:
            raise NotFoundError(f"Attribute with id {attribute_id} does not exist")
        if value.steps_incremented <= 0:
            return []
        change_set = ChangeSet(character_id=int(character_id))
        change_set.update(
            CHARACTER_ATTRIBUTE,
            attribute_id=value.attribute.id,
            steps_incremented=value.steps_incremented - 1,
        )
        return [edge.name for edge, _ in self._edges_lost_by(loaded, change_set)]

    def check_skill_decrement_impact(self, character_id: int, skill_id: int) -> list[str]:
        loaded = self.loader.load(character_id)
        value = loaded.view.skill_value(skill_id)
        if value is None:
            raise NotFoundError(f"Skill with id {skill_id} does not exist")
        if value.die is None or (value.skill.is_core_skill and value.die == Die.d4()):
            return []
        change_set = ChangeSet(character_id=int(character_id))
        change_set.update(CHARACTER_SKILL, skill_id=value.skill.id, **skill_die_values(value.die.decrement()))
        return [edge.name for edge, _ in self._edges_lost_by(loaded, change_set)]

    @staticmethod
    def _edges_lost_by(loaded: LoadedCharacter, change_set: ChangeSet) -> list[tuple[Edge, CharacterEdge]]:
        """Owned edges that qualify now and would not once ``change_set`` is applied."""
        preview = copy.deepcopy(loaded.character)
        apply_change_set(preview, change_set)
        before = loaded.view.to_snapshot()
        after = build_character_view(preview, loaded.catalog).to_snapshot()

        lost = []
        for row in preview.edges:
            edge = loaded.catalog.edges[int(row.edge_id)]
            if evaluate(edge.requirements, before) and not evaluate(edge.requirements, after):
                lost.append((edge, row))
        return lost

    def _drop_invalid_edges(self, loaded: LoadedCharacter, change_set: ChangeSet) -> list[str]:
        """Queue removal of creation edges whose requirements fail once ``change_set`` is applied."""
        messages = []
        refund = 0
        for edge, row in self._edges_lost_by(loaded, change_set):
            if row.source != SOURCE_HINDRANCE_POINTS:
                continue
            change_set.delete(CHARACTER_EDGE, edge_id=edge.id, advance_taken=row.advance_taken)
            refund += EDGE_HINDRANCE_POINT_COST
            messages.append(f"Removed {edge.name}: requirements no longer met")
        if refund:
            change_set.update(
                CHARACTER,
                hindrance_points_to_edges=max(0, int(loaded.character.hindrance_points_to_edges) - refund),
            )
        return messages

    def _commit(
        self,
        change_set: ChangeSet,
        warnings: Optional[List[ValidationWarning]] = None,
        messages: Optional[List[str]] = None,
    ) -> CommandResult:
        self.atomic_persistor(change_set)
        for message in messages or ():
            logger.info("Character %s: %s", change_set.character_id, message)
        return CommandResult(
            character=self.loader.view(change_set.character_id),
            warnings=list(warnings or []),
            messages=list(messages or []),
        )


def _bucket_cost(bucket: str) -> int:
    if bucket == "attributes":
        return ATTRIBUTE_HINDRANCE_POINT_COST
    if bucket == "skills":
        return SKILL_HINDRANCE_POINT_RATIO
    return 1


def _check_requirements(
    loaded: LoadedCharacter,
    name: str,
    requirements: RequirementNode,
    bypass_validation: bool,
    warnings: List[ValidationWarning],
) -> None:
    snapshot = loaded.view.to_snapshot()
    if evaluate(requirements, snapshot):
        return
    unmet = ", ".join(unmet_descriptions(requirements, snapshot))
    raise_or_warn(
        requirement_not_met(f"Requirements not met for {name}: {unmet}"),
        bypass_validation=bypass_validation,
        warnings=warnings,
        logger=logger,
    )


def _wealth_bonus(edge: Edge) -> int:
    return sum(row.signed_value for row in edge.modifiers if row.target_type is ModifierTargetType.WEALTH)


def _owned_arcane_background_ids(loaded: LoadedCharacter) -> list[int]:
    return [int(row.arcane_background_id) for row in loaded.character.arcane_backgrounds]
