from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, TypeVar

from swade.domain.constants import (
    ATTRIBUTE_HINDRANCE_POINT_COST,
    BASE_PACE,
    BASE_PARRY,
    BASE_TOUGHNESS,
    EDGE_HINDRANCE_POINT_COST,
    ENCUMBRANCE_ATTRIBUTE_NAME,
    ENCUMBRANCE_PENALTY,
    LOAD_LIMIT_BY_STRENGTH,
    LOAD_LIMIT_PER_STEP_ABOVE_CEILING,
    PARRY_SKILL_NAME,
    SKILL_HINDRANCE_POINT_RATIO,
    SOURCE_HINDRANCE_POINTS,
    TOUGHNESS_ATTRIBUTE_NAME,
)
from swade.domain.errors import NotFoundError
from swade.domain.models.catalog import Catalog
from swade.domain.models.character import Character
from swade.domain.models.character_view import (
    ArcaneBackgroundValue,
    AttributeValue,
    CharacterView,
    DerivedStats,
    EdgeValue,
    EncumbranceInfo,
    GearValue,
    HindranceValue,
    PointPools,
    PowerValue,
    SkillValue,
)
from swade.domain.models.die import DIE_CEILING, Die, apply_die_increments
from swade.domain.models.modifier import Modifier, ModifierTargetType, ModifierValueType
from swade.domain.services.advancement_rules import rank_for_advances

T = TypeVar("T")


def _lookup(rows: Mapping[int, T], entity_id: int, label: str) -> T:
    row = rows.get(int(entity_id))
    if row is None:
        raise NotFoundError(f"{label} with id {entity_id} does not exist")
    return row


def collect_modifiers(character: Character, catalog: Catalog) -> list[Modifier]:
    """Every modifier currently in force: the character's own, ancestry, edges, hindrances, equipped gear."""
    modifiers = list(character.modifiers)
    if character.ancestry_id is not None:
        modifiers.extend(_lookup(catalog.ancestries, character.ancestry_id, "Ancestry").modifiers)
    for row in character.edges:
        modifiers.extend(_lookup(catalog.edges, row.edge_id, "Edge").modifiers)
    for row in character.hindrances:
        modifiers.extend(_lookup(catalog.hindrances, row.hindrance_id, "Hindrance").modifiers)
    for row in character.gear:
        gear = _lookup(catalog.gear, row.gear_id, "Gear")
        if row.is_equipped:
            modifiers.extend(gear.modifiers)
    return modifiers


def total_die_increments(
    modifiers: Iterable[Modifier],
    target_type: ModifierTargetType,
    target_name: str,
) -> int:
    return sum(
        row.signed_value
        for row in modifiers
        if row.matches(ModifierValueType.DIE_INCREMENT, target_type, target_name)
    )


def total_flat_bonus(
    modifiers: Iterable[Modifier],
    target_type: ModifierTargetType,
    target_name: Optional[str] = None,
) -> int:
    return sum(
        row.signed_value
        for row in modifiers
        if row.matches(ModifierValueType.FLAT_BONUS, target_type, target_name)
    )


def effective_die(purchased: Optional[Die], increments: int) -> Optional[Die]:
    if purchased is None:
        return None
    return apply_die_increments(purchased, increments)


def compute_derived_stats(
    modifiers: Sequence[Modifier],
    *,
    parry_skill_die: Optional[Die],
    toughness_attribute_die: Optional[Die],
) -> DerivedStats:
    size = total_flat_bonus(modifiers, ModifierTargetType.DERIVED_STAT, "size")
    pace = BASE_PACE + total_flat_bonus(modifiers, ModifierTargetType.DERIVED_STAT, "pace")
    parry = (
        BASE_PARRY
        + (parry_skill_die.size // 2 if parry_skill_die is not None else 0)
        + total_flat_bonus(modifiers, ModifierTargetType.DERIVED_STAT, "parry")
    )
    toughness = (
        BASE_TOUGHNESS
        + (toughness_attribute_die.size // 2 if toughness_attribute_die is not None else 0)
        + size
        + total_flat_bonus(modifiers, ModifierTargetType.DERIVED_STAT, "toughness")
    )
    return DerivedStats(pace=pace, parry=parry, toughness=toughness, size=size)


def load_limit_for(strength_die: Optional[Die]) -> float:
    if strength_die is None:
        return LOAD_LIMIT_BY_STRENGTH[4]
    limit = LOAD_LIMIT_BY_STRENGTH[strength_die.size]
    if strength_die.size == DIE_CEILING:
        limit += LOAD_LIMIT_PER_STEP_ABOVE_CEILING * strength_die.modifier
    return limit


def compute_encumbrance(gear: Sequence[GearValue], strength_die: Optional[Die]) -> EncumbranceInfo:
    current_weight = sum(row.total_weight for row in gear)
    load_limit = load_limit_for(strength_die)
    is_encumbered = current_weight > load_limit
    return EncumbranceInfo(
        current_weight=current_weight,
        load_limit=load_limit,
        is_encumbered=is_encumbered,
        encumbrance_penalty=ENCUMBRANCE_PENALTY if is_encumbered else 0,
    )


def compute_point_pools(character: Character, modifiers: Sequence[Modifier]) -> PointPools:
    # hindrance_points_to_attributes and _to_skills hold the trait points bought, not the hindrance points paid.
    attribute_points = (
        int(character.attribute_points_earned)
        + int(character.hindrance_points_to_attributes)
        + total_flat_bonus(modifiers, ModifierTargetType.ATTRIBUTE_POINTS)
    )
    skill_points = (
        int(character.skill_points_earned)
        + int(character.hindrance_points_to_skills)
        + total_flat_bonus(modifiers, ModifierTargetType.SKILL_POINTS)
    )
    edges_bought = sum(1 for row in character.edges if row.source == SOURCE_HINDRANCE_POINTS)
    return PointPools(
        attribute_points_available=attribute_points - int(character.attribute_points_spent),
        skill_points_available=skill_points - int(character.skill_points_spent),
        hindrance_points_earned=int(character.hindrance_points_earned),
        hindrance_points_available=int(character.hindrance_points_earned) - hindrance_points_allocated(character),
        edge_points_available=int(character.hindrance_points_to_edges) - edges_bought * EDGE_HINDRANCE_POINT_COST,
    )


def hindrance_points_allocated(character: Character) -> int:
    return (
        int(character.hindrance_points_to_edges)
        + int(character.hindrance_points_to_attributes) * ATTRIBUTE_HINDRANCE_POINT_COST
        + int(character.hindrance_points_to_skills) * SKILL_HINDRANCE_POINT_RATIO
        + int(character.hindrance_points_to_wealth)
    )


def skill_increment_cost(purchased: Optional[Die], linked_attribute_die: Die) -> int:
    """Creation points needed to raise a skill one step."""
    if purchased is None:
        return 1
    return 2 if purchased.increment() > linked_attribute_die else 1


def _attribute_values(character: Character, catalog: Catalog, modifiers, points: PointPools) -> list[AttributeValue]:
    for row in character.attributes:
        _lookup(catalog.attributes, row.attribute_id, "Attribute")

    values = []
    for attribute in catalog.attributes.values():
        stored = character.attribute(attribute.id)
        steps = int(stored.steps_incremented) if stored is not None else 0
        increments = total_die_increments(modifiers, ModifierTargetType.ATTRIBUTE, attribute.name)
        purchased = Die.from_steps(steps, attribute.base_die)
        values.append(
            AttributeValue(
                attribute=attribute,
                die=purchased,
                effective_die=apply_die_increments(purchased, increments),
                base_die=apply_die_increments(attribute.base_die, increments),
                max_die=apply_die_increments(Die.d12(), increments),
                steps_incremented=steps,
                can_increment=purchased < Die.d12() and points.attribute_points_available > 0,
                can_decrement=steps > 0,
            )
        )
    return values


def _skill_values(
    character: Character,
    catalog: Catalog,
    modifiers,
    attributes: Sequence[AttributeValue],
    points: PointPools,
) -> list[SkillValue]:
    for row in character.skills:
        _lookup(catalog.skills, row.skill_id, "Skill")

    attribute_dies = {row.attribute.id: row.effective_die for row in attributes}
    values = []
    for skill in catalog.skills.values():
        stored = character.skill(skill.id)
        purchased = stored.die if stored is not None else skill.default_die
        increments = total_die_increments(modifiers, ModifierTargetType.SKILL, skill.name)
        effective = effective_die(purchased, increments)
        linked_die = attribute_dies.get(skill.linked_attribute_id, Die.d4())
        cost = skill_increment_cost(purchased, linked_die)
        values.append(
            SkillValue(
                skill=skill,
                die=purchased,
                effective_die=effective,
                linked_attribute_die=linked_die,
                is_above_attribute=effective is not None and effective > linked_die,
                increment_cost=cost,
                can_increment=(purchased is None or purchased < skill.max_die)
                and points.skill_points_available >= cost,
                can_decrement=purchased is not None and not (skill.is_core_skill and purchased == Die.d4()),
            )
        )
    return values


def build_character_view(character: Character, catalog: Catalog) -> CharacterView:
    """Aggregate every modifier layer over the stored values.

    Pure and idempotent: the same character and catalog always give an
    equal view, so callers simply rebuild after each change.
    """

    modifiers = collect_modifiers(character, catalog)
    points = compute_point_pools(character, modifiers)
    attributes = _attribute_values(character, catalog, modifiers, points)
    skills = _skill_values(character, catalog, modifiers, attributes, points)

    gear = tuple(
        GearValue(gear=catalog.gear[int(row.gear_id)], quantity=int(row.quantity), is_equipped=bool(row.is_equipped))
        for row in character.gear
    )

    parry_skill = next((row for row in skills if row.skill.name == PARRY_SKILL_NAME), None)
    toughness_attribute = next((row for row in attributes if row.attribute.name == TOUGHNESS_ATTRIBUTE_NAME), None)
    strength = next((row for row in attributes if row.attribute.name == ENCUMBRANCE_ATTRIBUTE_NAME), None)

    derived = compute_derived_stats(
        modifiers,
        parry_skill_die=parry_skill.effective_die if parry_skill is not None else None,
        toughness_attribute_die=toughness_attribute.effective_die if toughness_attribute is not None else None,
    )

    ancestry = None
    if character.ancestry_id is not None:
        ancestry = catalog.ancestries[int(character.ancestry_id)]

    current_advances = character.advance_count
    return CharacterView(
        character_id=character.id,
        name=character.name,
        is_wild_card=bool(character.is_wild_card),
        rank=rank_for_advances(catalog.ranks, current_advances),
        current_advances=current_advances,
        ancestry=ancestry,
        attributes=tuple(attributes),
        skills=tuple(skills),
        edges=tuple(
            EdgeValue(
                edge=catalog.edges[int(row.edge_id)],
                advance_taken=int(row.advance_taken),
                source=row.source,
                notes=row.notes,
            )
            for row in character.edges
        ),
        hindrances=tuple(
            HindranceValue(hindrance=catalog.hindrances[int(row.hindrance_id)], source=row.source)
            for row in character.hindrances
        ),
        arcane_backgrounds=tuple(
            ArcaneBackgroundValue(
                arcane_background=_lookup(catalog.arcane_backgrounds, row.arcane_background_id, "Arcane background"),
                source=row.source,
            )
            for row in character.arcane_backgrounds
        ),
        powers=tuple(
            PowerValue(power=_lookup(catalog.powers, row.power_id, "Power"), source=row.source)
            for row in character.powers
        ),
        gear=gear,
        modifiers=tuple(modifiers),
        derived_stats=derived,
        encumbrance=compute_encumbrance(gear, strength.effective_die if strength is not None else None),
        points=points,
        wealth=int(character.wealth),
    )
