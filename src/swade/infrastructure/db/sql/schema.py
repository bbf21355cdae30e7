"""Create the rules-catalog and character tables.

Usage:
    set SWADE_DATABASE_URL=sqlite:///swade.db
    python -m swade.infrastructure.db.sql.schema
    python -m swade.infrastructure.db.sql.schema --seed-core --dry-run
"""

from __future__ import annotations

import argparse
import logging
import os

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from swade.domain.models.catalog import Catalog
from swade.domain.models.requirement import And, Leaf, Not, Or, RequirementNode, is_empty

logger = logging.getLogger(__name__)

ENTITY_EDGE = "edge"
ENTITY_HINDRANCE = "hindrance"
ENTITY_ANCESTRY = "ancestry"
ENTITY_ARCANE_BACKGROUND = "arcane_background"
ENTITY_POWER = "power"
ENTITY_GEAR = "gear"


def character_table(dialect: str) -> str:
    return "`character`" if dialect == "mysql" else '"character"'


def _serial(dialect: str) -> str:
    if dialect == "mysql":
        return "INTEGER NOT NULL AUTO_INCREMENT PRIMARY KEY"
    return "INTEGER PRIMARY KEY AUTOINCREMENT"


def schema_statements(dialect: str) -> list[str]:
    serial = _serial(dialect)
    return [
        """
        CREATE TABLE IF NOT EXISTS attribute (
            attribute_id INTEGER PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            description TEXT,
            base_die_size INTEGER NOT NULL DEFAULT 4,
            base_die_modifier INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS skill (
            skill_id INTEGER PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            linked_attribute_id INTEGER NOT NULL,
            is_core_skill INTEGER NOT NULL DEFAULT 0,
            max_die_size INTEGER NOT NULL DEFAULT 12,
            max_die_modifier INTEGER NOT NULL DEFAULT 0,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS rank_tier (
            rank_id INTEGER PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            min_advances INTEGER NOT NULL,
            max_advances INTEGER NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS edge (
            edge_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            category VARCHAR(64) NOT NULL,
            description TEXT,
            can_take_multiple_times INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS hindrance (
            hindrance_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            severity VARCHAR(16) NOT NULL,
            companion_hindrance_id INTEGER NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS ancestry (
            ancestry_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS arcane_background (
            arcane_background_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            arcane_skill_id INTEGER NOT NULL,
            starting_powers INTEGER NOT NULL DEFAULT 0,
            starting_power_points INTEGER NOT NULL DEFAULT 0,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS power (
            power_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            power_points INTEGER NOT NULL DEFAULT 1,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS gear (
            gear_id INTEGER PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            weight DOUBLE PRECISION NOT NULL DEFAULT 0,
            cost INTEGER NOT NULL DEFAULT 0,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS modifier (
            modifier_id INTEGER PRIMARY KEY,
            value_type VARCHAR(32) NOT NULL,
            target_type VARCHAR(32) NULL,
            target_identifier VARCHAR(128) NULL,
            value INTEGER NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS entity_modifier (
            entity_type VARCHAR(32) NOT NULL,
            entity_id INTEGER NOT NULL,
            modifier_id INTEGER NOT NULL,
            PRIMARY KEY (entity_type, entity_id, modifier_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS requirement (
            requirement_id INTEGER PRIMARY KEY,
            requirement_type VARCHAR(32) NOT NULL,
            target_id INTEGER NULL,
            value INTEGER NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS requirement_expression (
            expression_id INTEGER PRIMARY KEY,
            node_type VARCHAR(16) NOT NULL,
            parent_id INTEGER NULL,
            requirement_id INTEGER NULL,
            position INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS entity_requirement (
            entity_type VARCHAR(32) NOT NULL,
            entity_id INTEGER NOT NULL,
            expression_id INTEGER NOT NULL,
            PRIMARY KEY (entity_type, entity_id, expression_id)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {character_table(dialect)} (
            character_id {serial},
            name VARCHAR(128) NOT NULL,
            is_wild_card INTEGER NOT NULL DEFAULT 1,
            ancestry_id INTEGER NULL,
            attribute_points_earned INTEGER NOT NULL DEFAULT 5,
            attribute_points_spent INTEGER NOT NULL DEFAULT 0,
            skill_points_earned INTEGER NOT NULL DEFAULT 12,
            skill_points_spent INTEGER NOT NULL DEFAULT 0,
            hindrance_points_earned INTEGER NOT NULL DEFAULT 0,
            hindrance_points_to_edges INTEGER NOT NULL DEFAULT 0,
            hindrance_points_to_attributes INTEGER NOT NULL DEFAULT 0,
            hindrance_points_to_skills INTEGER NOT NULL DEFAULT 0,
            hindrance_points_to_wealth INTEGER NOT NULL DEFAULT 0,
            wealth INTEGER NOT NULL DEFAULT 500,
            background TEXT,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_attribute (
            character_id INTEGER NOT NULL,
            attribute_id INTEGER NOT NULL,
            steps_incremented INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (character_id, attribute_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_skill (
            character_id INTEGER NOT NULL,
            skill_id INTEGER NOT NULL,
            die_size INTEGER NULL,
            die_modifier INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (character_id, skill_id)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS character_edge (
            character_edge_id {serial},
            character_id INTEGER NOT NULL,
            edge_id INTEGER NOT NULL,
            advance_taken INTEGER NOT NULL DEFAULT 0,
            source VARCHAR(32) NOT NULL,
            notes TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_hindrance (
            character_id INTEGER NOT NULL,
            hindrance_id INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            PRIMARY KEY (character_id, hindrance_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_arcane_background (
            character_id INTEGER NOT NULL,
            arcane_background_id INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            PRIMARY KEY (character_id, arcane_background_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_power (
            character_id INTEGER NOT NULL,
            power_id INTEGER NOT NULL,
            arcane_background_id INTEGER NULL,
            source VARCHAR(32) NOT NULL,
            PRIMARY KEY (character_id, power_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_gear (
            character_id INTEGER NOT NULL,
            gear_id INTEGER NOT NULL,
            quantity INTEGER NOT NULL DEFAULT 1,
            is_equipped INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (character_id, gear_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_modifier (
            character_id INTEGER NOT NULL,
            modifier_id INTEGER NOT NULL,
            PRIMARY KEY (character_id, modifier_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS character_advance (
            character_id INTEGER NOT NULL,
            advance_number INTEGER NOT NULL,
            advance_type VARCHAR(32) NOT NULL,
            edge_id INTEGER NULL,
            attribute_id INTEGER NULL,
            skill_id_1 INTEGER NULL,
            skill_id_2 INTEGER NULL,
            hindrance_id INTEGER NULL,
            hindrance_action VARCHAR(32) NULL,
            notes TEXT,
            PRIMARY KEY (character_id, advance_number)
        )
        """,
    ]


def create_schema(engine) -> int:
    statements = schema_statements(engine.dialect.name)
    with engine.begin() as conn:
        for statement in statements:
            conn.exec_driver_sql(statement)
    return len(statements)


def _flatten_tree(
    tree: RequirementNode,
    parent_id: int | None,
    position: int,
    next_id: list[int],
    rows: list[dict[str, object]],
) -> int:
    expression_id = next_id[0]
    next_id[0] += 1
    row: dict[str, object] = {
        "expression_id": expression_id,
        "parent_id": parent_id,
        "requirement_id": None,
        "position": position,
    }
    rows.append(row)
    if isinstance(tree, Leaf):
        row["node_type"] = "requirement"
        row["requirement_id"] = tree.requirement.id
    elif isinstance(tree, Not):
        row["node_type"] = "not"
        _flatten_tree(tree.child, expression_id, 0, next_id, rows)
    else:
        row["node_type"] = "and" if isinstance(tree, And) else "or"
        for index, child in enumerate(tree.children):
            _flatten_tree(child, expression_id, index, next_id, rows)
    return expression_id


def _collect_requirements(tree: RequirementNode, found: dict) -> None:
    if isinstance(tree, Leaf):
        found[tree.requirement.id] = tree.requirement
    elif isinstance(tree, Not):
        _collect_requirements(tree.child, found)
    elif isinstance(tree, (And, Or)):
        for child in tree.children:
            _collect_requirements(child, found)


def seed_catalog(session, catalog: Catalog) -> None:
    """Write ``catalog`` into empty catalog tables, flattening requirement trees into expression rows."""
    for row in catalog.attributes.values():
        session.execute(
            text(
                "INSERT INTO attribute (attribute_id, name, description, base_die_size, base_die_modifier) "
                "VALUES (:id, :name, :description, :size, :modifier)"
            ),
            {"id": row.id, "name": row.name, "description": row.description,
             "size": row.base_die.size, "modifier": row.base_die.modifier},
        )
    for row in catalog.skills.values():
        session.execute(
            text(
                "INSERT INTO skill (skill_id, name, linked_attribute_id, is_core_skill, max_die_size, "
                "max_die_modifier, description) VALUES (:id, :name, :linked, :core, :size, :modifier, :description)"
            ),
            {"id": row.id, "name": row.name, "linked": row.linked_attribute_id, "core": int(row.is_core_skill),
             "size": row.max_die.size, "modifier": row.max_die.modifier, "description": row.description},
        )
    for row in catalog.ranks:
        session.execute(
            text(
                "INSERT INTO rank_tier (rank_id, name, min_advances, max_advances, description) "
                "VALUES (:id, :name, :min_advances, :max_advances, :description)"
            ),
            {"id": row.id, "name": row.name, "min_advances": row.min_advances,
             "max_advances": row.max_advances, "description": row.description},
        )
    for row in catalog.edges.values():
        session.execute(
            text(
                "INSERT INTO edge (edge_id, name, category, description, can_take_multiple_times) "
                "VALUES (:id, :name, :category, :description, :multiple)"
            ),
            {"id": row.id, "name": row.name, "category": row.category, "description": row.description,
             "multiple": int(row.can_take_multiple_times)},
        )
    for row in catalog.hindrances.values():
        session.execute(
            text(
                "INSERT INTO hindrance (hindrance_id, name, severity, companion_hindrance_id, description) "
                "VALUES (:id, :name, :severity, :companion, :description)"
            ),
            {"id": row.id, "name": row.name, "severity": row.severity.value,
             "companion": row.companion_hindrance_id, "description": row.description},
        )
    for row in catalog.ancestries.values():
        session.execute(
            text("INSERT INTO ancestry (ancestry_id, name, description) VALUES (:id, :name, :description)"),
            {"id": row.id, "name": row.name, "description": row.description},
        )
    for row in catalog.arcane_backgrounds.values():
        session.execute(
            text(
                "INSERT INTO arcane_background (arcane_background_id, name, arcane_skill_id, starting_powers, "
                "starting_power_points, description) VALUES (:id, :name, :skill, :powers, :points, :description)"
            ),
            {"id": row.id, "name": row.name, "skill": row.arcane_skill_id, "powers": row.starting_powers,
             "points": row.starting_power_points, "description": row.description},
        )
    for row in catalog.powers.values():
        session.execute(
            text("INSERT INTO power (power_id, name, power_points, description) VALUES (:id, :name, :pp, :description)"),
            {"id": row.id, "name": row.name, "pp": row.power_points, "description": row.description},
        )
    for row in catalog.gear.values():
        session.execute(
            text("INSERT INTO gear (gear_id, name, weight, cost, description) VALUES (:id, :name, :weight, :cost, :description)"),
            {"id": row.id, "name": row.name, "weight": row.weight, "cost": row.cost, "description": row.description},
        )

    entities = (
        [(ENTITY_EDGE, row) for row in catalog.edges.values()]
        + [(ENTITY_HINDRANCE, row) for row in catalog.hindrances.values()]
        + [(ENTITY_ANCESTRY, row) for row in catalog.ancestries.values()]
        + [(ENTITY_ARCANE_BACKGROUND, row) for row in catalog.arcane_backgrounds.values()]
        + [(ENTITY_POWER, row) for row in catalog.powers.values()]
        + [(ENTITY_GEAR, row) for row in catalog.gear.values()]
    )

    modifiers: dict[int, object] = {}
    requirements: dict[int, object] = {}
    expression_rows: list[dict[str, object]] = []
    next_expression_id = [1]
    for entity_type, entity in entities:
        for modifier in entity.modifiers:
            modifiers[modifier.id] = modifier
            session.execute(
                text("INSERT INTO entity_modifier (entity_type, entity_id, modifier_id) VALUES (:type, :id, :mid)"),
                {"type": entity_type, "id": entity.id, "mid": modifier.id},
            )
        if is_empty(entity.requirements):
            continue
        _collect_requirements(entity.requirements, requirements)
        root_id = _flatten_tree(entity.requirements, None, 0, next_expression_id, expression_rows)
        session.execute(
            text("INSERT INTO entity_requirement (entity_type, entity_id, expression_id) VALUES (:type, :id, :eid)"),
            {"type": entity_type, "id": entity.id, "eid": root_id},
        )

    for modifier in modifiers.values():
        session.execute(
            text(
                "INSERT INTO modifier (modifier_id, value_type, target_type, target_identifier, value, description) "
                "VALUES (:id, :value_type, :target_type, :target_identifier, :value, :description)"
            ),
            {"id": modifier.id, "value_type": modifier.value_type.value,
             "target_type": modifier.target_type.value if modifier.target_type is not None else None,
             "target_identifier": modifier.target_identifier, "value": modifier.value,
             "description": modifier.description},
        )
    for requirement in requirements.values():
        session.execute(
            text(
                "INSERT INTO requirement (requirement_id, requirement_type, target_id, value, description) "
                "VALUES (:id, :type, :target_id, :value, :description)"
            ),
            {"id": requirement.id, "type": requirement.requirement_type.value, "target_id": requirement.target_id,
             "value": requirement.value, "description": requirement.description},
        )
    for row in expression_rows:
        session.execute(
            text(
                "INSERT INTO requirement_expression (expression_id, node_type, parent_id, requirement_id, position) "
                "VALUES (:expression_id, :node_type, :parent_id, :requirement_id, :position)"
            ),
            row,
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the SWADE tables using SQLAlchemy")
    parser.add_argument("--database-url", type=str, default=None, help="Overrides SWADE_DATABASE_URL")
    parser.add_argument("--seed-core", action="store_true", help="Load the bundled core catalog after creating tables")
    parser.add_argument("--dry-run", action="store_true", help="Print the DDL without executing it")
    args = parser.parse_args()

    database_url = args.database_url or os.getenv("SWADE_DATABASE_URL", "sqlite:///swade.db")
    engine = create_engine(database_url, echo=False, future=True)
    if args.dry_run:
        for statement in schema_statements(engine.dialect.name):
            print(statement.strip() + ";")
        return

    try:
        count = create_schema(engine)
        logger.info("Executed %s schema statements", count)
        if args.seed_core:
            from swade.infrastructure.inmemory.catalog_seed import build_core_catalog

            with engine.begin() as conn:
                seed_catalog(conn, build_core_catalog())
            logger.info("Seeded core catalog")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Schema setup failed: {exc}") from exc
    finally:
        engine.dispose()
    print(f"Schema ready at {database_url}")


if __name__ == "__main__":
    main()
