from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import text

from swade.domain.models.advance import Advance
from swade.domain.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Catalog,
    Edge,
    Gear,
    Hindrance,
    Power,
    Rank,
    Skill,
)
from swade.domain.models.character import (
    Character,
    CharacterArcaneBackground,
    CharacterAttribute,
    CharacterEdge,
    CharacterGear,
    CharacterHindrance,
    CharacterPower,
    CharacterSkill,
)
from swade.domain.models.change_set import advance_record, skill_die_from_values, skill_die_values
from swade.domain.models.die import Die
from swade.domain.models.modifier import Modifier
from swade.domain.models.requirement import Requirement, RequirementExpression
from swade.domain.repositories import CatalogRepository, CharacterRepository
from swade.domain.services.requirement_evaluator import build_requirement_tree

from .connection import SessionLocal
from .schema import (
    ENTITY_ANCESTRY,
    ENTITY_ARCANE_BACKGROUND,
    ENTITY_EDGE,
    ENTITY_GEAR,
    ENTITY_HINDRANCE,
    ENTITY_POWER,
    character_table,
)


def _dialect(session) -> str:
    return session.bind.dialect.name if session.bind is not None else "sqlite"


def _row_to_modifier(row) -> Modifier:
    return Modifier(
        id=row.modifier_id,
        value_type=row.value_type,
        target_type=row.target_type,
        target_identifier=row.target_identifier,
        value=row.value,
        description=row.description or "",
    )


class SqlCatalogRepository(CatalogRepository):
    def load(self) -> Catalog:
        with SessionLocal() as session:
            modifiers = {
                row.modifier_id: _row_to_modifier(row)
                for row in session.execute(
                    text(
                        "SELECT modifier_id, value_type, target_type, target_identifier, value, description "
                        "FROM modifier"
                    )
                ).all()
            }
            modifiers_by_entity: Dict[tuple, list] = defaultdict(list)
            for row in session.execute(
                text("SELECT entity_type, entity_id, modifier_id FROM entity_modifier ORDER BY modifier_id")
            ).all():
                modifier = modifiers.get(row.modifier_id)
                if modifier is not None:
                    modifiers_by_entity[(row.entity_type, int(row.entity_id))].append(modifier)

            requirements = {
                row.requirement_id: Requirement(
                    id=row.requirement_id,
                    requirement_type=row.requirement_type,
                    target_id=row.target_id,
                    value=row.value,
                    description=row.description or "",
                )
                for row in session.execute(
                    text("SELECT requirement_id, requirement_type, target_id, value, description FROM requirement")
                ).all()
            }
            expressions = [
                RequirementExpression(
                    id=row.expression_id,
                    node_type=row.node_type,
                    parent_id=row.parent_id,
                    requirement_id=row.requirement_id,
                    position=row.position,
                )
                for row in session.execute(
                    text("SELECT expression_id, node_type, parent_id, requirement_id, position FROM requirement_expression")
                ).all()
            ]
            roots_by_entity: Dict[tuple, list] = defaultdict(list)
            for row in session.execute(
                text("SELECT entity_type, entity_id, expression_id FROM entity_requirement ORDER BY expression_id")
            ).all():
                roots_by_entity[(row.entity_type, int(row.entity_id))].append(row.expression_id)

            def extras(entity_type: str, entity_id: int) -> dict:
                key = (entity_type, int(entity_id))
                return {
                    "modifiers": tuple(modifiers_by_entity.get(key, ())),
                    "requirements": build_requirement_tree(roots_by_entity.get(key, ()), expressions, requirements),
                }

            attributes = [
                Attribute(
                    id=row.attribute_id,
                    name=row.name,
                    description=row.description or "",
                    base_die=Die(int(row.base_die_size), int(row.base_die_modifier or 0)),
                )
                for row in session.execute(
                    text("SELECT attribute_id, name, description, base_die_size, base_die_modifier FROM attribute")
                ).all()
            ]
            skills = [
                Skill(
                    id=row.skill_id,
                    name=row.name,
                    linked_attribute_id=row.linked_attribute_id,
                    is_core_skill=bool(row.is_core_skill),
                    max_die=Die(int(row.max_die_size), int(row.max_die_modifier or 0)),
                    description=row.description or "",
                )
                for row in session.execute(
                    text(
                        "SELECT skill_id, name, linked_attribute_id, is_core_skill, max_die_size, max_die_modifier, "
                        "description FROM skill"
                    )
                ).all()
            ]
            ranks = [
                Rank(
                    id=row.rank_id,
                    name=row.name,
                    min_advances=int(row.min_advances),
                    max_advances=row.max_advances,
                    description=row.description or "",
                )
                for row in session.execute(
                    text("SELECT rank_id, name, min_advances, max_advances, description FROM rank_tier")
                ).all()
            ]
            edges = [
                Edge(
                    id=row.edge_id,
                    name=row.name,
                    category=row.category,
                    description=row.description or "",
                    can_take_multiple_times=bool(row.can_take_multiple_times),
                    **extras(ENTITY_EDGE, row.edge_id),
                )
                for row in session.execute(
                    text("SELECT edge_id, name, category, description, can_take_multiple_times FROM edge")
                ).all()
            ]
            hindrances = [
                Hindrance(
                    id=row.hindrance_id,
                    name=row.name,
                    severity=row.severity,
                    companion_hindrance_id=row.companion_hindrance_id,
                    description=row.description or "",
                    **extras(ENTITY_HINDRANCE, row.hindrance_id),
                )
                for row in session.execute(
                    text("SELECT hindrance_id, name, severity, companion_hindrance_id, description FROM hindrance")
                ).all()
            ]
            ancestries = [
                Ancestry(id=row.ancestry_id, name=row.name, description=row.description or "",
                         **extras(ENTITY_ANCESTRY, row.ancestry_id))
                for row in session.execute(text("SELECT ancestry_id, name, description FROM ancestry")).all()
            ]
            arcane_backgrounds = [
                ArcaneBackground(
                    id=row.arcane_background_id,
                    name=row.name,
                    arcane_skill_id=row.arcane_skill_id,
                    starting_powers=int(row.starting_powers),
                    starting_power_points=int(row.starting_power_points),
                    description=row.description or "",
                    **extras(ENTITY_ARCANE_BACKGROUND, row.arcane_background_id),
                )
                for row in session.execute(
                    text(
                        "SELECT arcane_background_id, name, arcane_skill_id, starting_powers, starting_power_points, "
                        "description FROM arcane_background"
                    )
                ).all()
            ]
            powers = [
                Power(id=row.power_id, name=row.name, power_points=int(row.power_points),
                      description=row.description or "", **extras(ENTITY_POWER, row.power_id))
                for row in session.execute(text("SELECT power_id, name, power_points, description FROM power")).all()
            ]
            gear = [
                Gear(id=row.gear_id, name=row.name, weight=float(row.weight), cost=int(row.cost),
                     description=row.description or "", **extras(ENTITY_GEAR, row.gear_id))
                for row in session.execute(text("SELECT gear_id, name, weight, cost, description FROM gear")).all()
            ]

        return Catalog(
            attributes=attributes,
            skills=skills,
            ranks=ranks,
            edges=edges,
            hindrances=hindrances,
            ancestries=ancestries,
            arcane_backgrounds=arcane_backgrounds,
            powers=powers,
            gear=gear,
        )


_CHARACTER_COLUMNS = (
    "name",
    "is_wild_card",
    "ancestry_id",
    "attribute_points_earned",
    "attribute_points_spent",
    "skill_points_earned",
    "skill_points_spent",
    "hindrance_points_earned",
    "hindrance_points_to_edges",
    "hindrance_points_to_attributes",
    "hindrance_points_to_skills",
    "hindrance_points_to_wealth",
    "wealth",
    "background",
    "description",
)

_CHILD_TABLES = (
    "character_attribute",
    "character_skill",
    "character_edge",
    "character_hindrance",
    "character_arcane_background",
    "character_power",
    "character_gear",
    "character_modifier",
    "character_advance",
)


class SqlCharacterRepository(CharacterRepository):
    def get(self, character_id: int) -> Optional[Character]:
        with SessionLocal() as session:
            table = character_table(_dialect(session))
            row = session.execute(
                text(f"SELECT character_id, {', '.join(_CHARACTER_COLUMNS)} FROM {table} WHERE character_id = :cid"),
                {"cid": int(character_id)},
            ).first()
            if not row:
                return None
            return self._load_character(session, row)

    def list_all(self) -> List[Character]:
        with SessionLocal() as session:
            table = character_table(_dialect(session))
            rows = session.execute(
                text(f"SELECT character_id, {', '.join(_CHARACTER_COLUMNS)} FROM {table} ORDER BY character_id")
            ).all()
            return [self._load_character(session, row) for row in rows]

    def save(self, character: Character) -> None:
        """Rewrite every stored row of ``character``; advancement and draft commands use change sets instead."""
        with SessionLocal.begin() as session:
            table = character_table(_dialect(session))
            assignments = ", ".join(f"{column} = :{column}" for column in _CHARACTER_COLUMNS)
            session.execute(
                text(f"UPDATE {table} SET {assignments} WHERE character_id = :cid"),
                {"cid": int(character.id), **self._character_values(character)},
            )
            for child_table in _CHILD_TABLES:
                session.execute(
                    text(f"DELETE FROM {child_table} WHERE character_id = :cid"),
                    {"cid": int(character.id)},
                )
            self._insert_children(session, character)

    def create(self, character: Character) -> Character:
        with SessionLocal.begin() as session:
            table = character_table(_dialect(session))
            result = session.execute(
                text(
                    f"INSERT INTO {table} ({', '.join(_CHARACTER_COLUMNS)}) "
                    f"VALUES ({', '.join(':' + column for column in _CHARACTER_COLUMNS)})"
                ),
                self._character_values(character),
            )
            character.id = int(result.lastrowid)
            self._insert_children(session, character)
        return character

    @staticmethod
    def _character_values(character: Character) -> dict:
        values = {column: getattr(character, column) for column in _CHARACTER_COLUMNS}
        values["is_wild_card"] = int(bool(character.is_wild_card))
        return values

    def _insert_children(self, session, character: Character) -> None:
        cid = int(character.id)
        for row in character.attributes:
            session.execute(
                text(
                    "INSERT INTO character_attribute (character_id, attribute_id, steps_incremented) "
                    "VALUES (:cid, :attribute_id, :steps)"
                ),
                {"cid": cid, "attribute_id": row.attribute_id, "steps": int(row.steps_incremented)},
            )
        for row in character.skills:
            session.execute(
                text(
                    "INSERT INTO character_skill (character_id, skill_id, die_size, die_modifier) "
                    "VALUES (:cid, :skill_id, :die_size, :die_modifier)"
                ),
                {"cid": cid, "skill_id": row.skill_id, **skill_die_values(row.die)},
            )
        for row in character.edges:
            session.execute(
                text(
                    "INSERT INTO character_edge (character_id, edge_id, advance_taken, source, notes) "
                    "VALUES (:cid, :edge_id, :advance_taken, :source, :notes)"
                ),
                {"cid": cid, "edge_id": row.edge_id, "advance_taken": int(row.advance_taken),
                 "source": row.source, "notes": row.notes},
            )
        for row in character.hindrances:
            session.execute(
                text(
                    "INSERT INTO character_hindrance (character_id, hindrance_id, source) "
                    "VALUES (:cid, :hindrance_id, :source)"
                ),
                {"cid": cid, "hindrance_id": row.hindrance_id, "source": row.source},
            )
        for row in character.arcane_backgrounds:
            session.execute(
                text(
                    "INSERT INTO character_arcane_background (character_id, arcane_background_id, source) "
                    "VALUES (:cid, :arcane_background_id, :source)"
                ),
                {"cid": cid, "arcane_background_id": row.arcane_background_id, "source": row.source},
            )
        for row in character.powers:
            session.execute(
                text(
                    "INSERT INTO character_power (character_id, power_id, arcane_background_id, source) "
                    "VALUES (:cid, :power_id, :arcane_background_id, :source)"
                ),
                {"cid": cid, "power_id": row.power_id, "arcane_background_id": row.arcane_background_id,
                 "source": row.source},
            )
        for row in character.gear:
            session.execute(
                text(
                    "INSERT INTO character_gear (character_id, gear_id, quantity, is_equipped) "
                    "VALUES (:cid, :gear_id, :quantity, :is_equipped)"
                ),
                {"cid": cid, "gear_id": row.gear_id, "quantity": int(row.quantity),
                 "is_equipped": int(bool(row.is_equipped))},
            )
        for modifier in character.modifiers:
            session.execute(
                text("INSERT INTO character_modifier (character_id, modifier_id) VALUES (:cid, :modifier_id)"),
                {"cid": cid, "modifier_id": modifier.id},
            )
        for advance in character.advances:
            insert_advance_row(session, cid, advance)

    def _load_character(self, session, row) -> Character:
        cid = int(row.character_id)
        params = {"cid": cid}
        attributes = [
            CharacterAttribute(attribute_id=item.attribute_id, steps_incremented=int(item.steps_incremented))
            for item in session.execute(
                text("SELECT attribute_id, steps_incremented FROM character_attribute WHERE character_id = :cid"),
                params,
            ).all()
        ]
        skills = [
            CharacterSkill(skill_id=item.skill_id, die=skill_die_from_values(item.die_size, item.die_modifier))
            for item in session.execute(
                text("SELECT skill_id, die_size, die_modifier FROM character_skill WHERE character_id = :cid"),
                params,
            ).all()
        ]
        edges = [
            CharacterEdge(edge_id=item.edge_id, advance_taken=int(item.advance_taken), source=item.source,
                          notes=item.notes)
            for item in session.execute(
                text(
                    "SELECT edge_id, advance_taken, source, notes FROM character_edge "
                    "WHERE character_id = :cid ORDER BY character_edge_id"
                ),
                params,
            ).all()
        ]
        hindrances = [
            CharacterHindrance(hindrance_id=item.hindrance_id, source=item.source)
            for item in session.execute(
                text("SELECT hindrance_id, source FROM character_hindrance WHERE character_id = :cid"),
                params,
            ).all()
        ]
        arcane_backgrounds = [
            CharacterArcaneBackground(arcane_background_id=item.arcane_background_id, source=item.source)
            for item in session.execute(
                text(
                    "SELECT arcane_background_id, source FROM character_arcane_background WHERE character_id = :cid"
                ),
                params,
            ).all()
        ]
        powers = [
            CharacterPower(power_id=item.power_id, arcane_background_id=item.arcane_background_id, source=item.source)
            for item in session.execute(
                text("SELECT power_id, arcane_background_id, source FROM character_power WHERE character_id = :cid"),
                params,
            ).all()
        ]
        gear = [
            CharacterGear(gear_id=item.gear_id, quantity=int(item.quantity), is_equipped=bool(item.is_equipped))
            for item in session.execute(
                text("SELECT gear_id, quantity, is_equipped FROM character_gear WHERE character_id = :cid"),
                params,
            ).all()
        ]
        modifiers = [
            _row_to_modifier(item)
            for item in session.execute(
                text(
                    """
                    SELECT m.modifier_id, m.value_type, m.target_type, m.target_identifier, m.value, m.description
                    FROM character_modifier cm
                    JOIN modifier m ON m.modifier_id = cm.modifier_id
                    WHERE cm.character_id = :cid
                    """
                ),
                params,
            ).all()
        ]
        advances = [
            Advance(
                advance_number=int(item.advance_number),
                advance_type=item.advance_type,
                edge_id=item.edge_id,
                attribute_id=item.attribute_id,
                skill_id_1=item.skill_id_1,
                skill_id_2=item.skill_id_2,
                hindrance_id=item.hindrance_id,
                hindrance_action=item.hindrance_action,
                notes=item.notes,
            )
            for item in session.execute(
                text(
                    """
                    SELECT advance_number, advance_type, edge_id, attribute_id, skill_id_1, skill_id_2,
                           hindrance_id, hindrance_action, notes
                    FROM character_advance
                    WHERE character_id = :cid
                    ORDER BY advance_number
                    """
                ),
                params,
            ).all()
        ]
        return Character(
            id=cid,
            name=row.name,
            is_wild_card=bool(row.is_wild_card),
            ancestry_id=row.ancestry_id,
            attributes=attributes,
            skills=skills,
            edges=edges,
            hindrances=hindrances,
            arcane_backgrounds=arcane_backgrounds,
            powers=powers,
            gear=gear,
            modifiers=modifiers,
            advances=advances,
            attribute_points_earned=int(row.attribute_points_earned),
            attribute_points_spent=int(row.attribute_points_spent),
            skill_points_earned=int(row.skill_points_earned),
            skill_points_spent=int(row.skill_points_spent),
            hindrance_points_earned=int(row.hindrance_points_earned),
            hindrance_points_to_edges=int(row.hindrance_points_to_edges),
            hindrance_points_to_attributes=int(row.hindrance_points_to_attributes),
            hindrance_points_to_skills=int(row.hindrance_points_to_skills),
            hindrance_points_to_wealth=int(row.hindrance_points_to_wealth),
            wealth=int(row.wealth),
            background=row.background,
            description=row.description,
        )


def insert_advance_row(session, character_id: int, advance: Advance) -> None:
    session.execute(
        text(
            """
            INSERT INTO character_advance (
                character_id, advance_number, advance_type, edge_id, attribute_id,
                skill_id_1, skill_id_2, hindrance_id, hindrance_action, notes
            ) VALUES (
                :cid, :advance_number, :advance_type, :edge_id, :attribute_id,
                :skill_id_1, :skill_id_2, :hindrance_id, :hindrance_action, :notes
            )
            """
        ),
        {"cid": int(character_id), **advance_record(advance)},
    )
