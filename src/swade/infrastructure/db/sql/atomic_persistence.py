from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from swade.domain.errors import StorageFailureError
from swade.domain.models.advance import Advance
from swade.domain.models.change_set import (
    CHARACTER,
    CHARACTER_ADVANCE,
    CHARACTER_ARCANE_BACKGROUND,
    CHARACTER_ATTRIBUTE,
    CHARACTER_COUNTER_COLUMNS,
    CHARACTER_EDGE,
    CHARACTER_GEAR,
    CHARACTER_HINDRANCE,
    CHARACTER_POWER,
    CHARACTER_REFERENCE_COLUMNS,
    CHARACTER_SKILL,
    DELETE,
    INSERT,
    UPDATE,
    ChangeSet,
    RecordChange,
)

from .connection import SessionLocal
from .repos import insert_advance_row
from .schema import character_table

logger = logging.getLogger(__name__)


def _dialect(session) -> str:
    return session.bind.dialect.name if session.bind is not None else "mysql"


def persist_change_set_atomic(change_set: ChangeSet) -> None:
    """Apply every record change of one command in a single DB transaction."""
    try:
        with SessionLocal.begin() as session:
            for change in change_set:
                _WRITERS[change.table](session, int(change_set.character_id), change)
    except (SQLAlchemyError, ValueError) as exc:
        logger.error("Rolled back %s change(s) for character %s: %s", len(change_set), change_set.character_id, exc)
        raise StorageFailureError(f"Failed to persist changes for character {change_set.character_id}: {exc}") from exc


def _upsert(session, table: str, keys: tuple[str, ...], values: dict) -> None:
    columns = list(values)
    updates = [column for column in columns if column not in keys]
    placeholders = ", ".join(f":{column}" for column in columns)
    if _dialect(session) == "mysql":
        assignments = ", ".join(f"{column} = VALUES({column})" for column in updates)
        statement = f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({placeholders})
            ON DUPLICATE KEY UPDATE {assignments}
        """
    else:
        assignments = ", ".join(f"{column} = excluded.{column}" for column in updates)
        statement = f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({placeholders})
            ON CONFLICT({', '.join(keys)}) DO UPDATE SET {assignments}
        """
    session.execute(text(statement), values)


def _write_character(session, character_id: int, change: RecordChange) -> None:
    if change.action != UPDATE:
        raise ValueError("Character rows can only be updated")
    writable = CHARACTER_COUNTER_COLUMNS + CHARACTER_REFERENCE_COLUMNS
    unknown = [column for column in change.values if column not in writable]
    if unknown:
        raise ValueError(f"Unknown character column: {unknown[0]}")
    table = character_table(_dialect(session))
    exists = session.execute(text(f"SELECT character_id FROM {table} WHERE character_id = :cid"), {"cid": character_id}).first()
    if exists is None:
        raise ValueError(f"Character {character_id} does not exist")
    assignments = ", ".join(f"{column} = :{column}" for column in change.values)
    session.execute(
        text(f"UPDATE {table} SET {assignments} WHERE character_id = :cid"),
        {"cid": character_id, **{column: None if value is None else int(value) for column, value in change.values.items()}},
    )


def _write_advance(session, character_id: int, change: RecordChange) -> None:
    if change.action == INSERT:
        insert_advance_row(session, character_id, Advance(**change.values))
    elif change.action == DELETE:
        session.execute(
            text("DELETE FROM character_advance WHERE character_id = :cid AND advance_number = :number"),
            {"cid": character_id, "number": int(change.values["advance_number"])},
        )
    else:
        raise ValueError("Advances are never updated")


def _write_attribute(session, character_id: int, change: RecordChange) -> None:
    attribute_id = int(change.values["attribute_id"])
    if change.action == DELETE:
        session.execute(
            text("DELETE FROM character_attribute WHERE character_id = :cid AND attribute_id = :attribute_id"),
            {"cid": character_id, "attribute_id": attribute_id},
        )
        return
    _upsert(
        session,
        "character_attribute",
        ("character_id", "attribute_id"),
        {
            "character_id": character_id,
            "attribute_id": attribute_id,
            "steps_incremented": int(change.values.get("steps_incremented", 0)),
        },
    )


def _write_skill(session, character_id: int, change: RecordChange) -> None:
    skill_id = int(change.values["skill_id"])
    if change.action == DELETE:
        session.execute(
            text("DELETE FROM character_skill WHERE character_id = :cid AND skill_id = :skill_id"),
            {"cid": character_id, "skill_id": skill_id},
        )
        return
    _upsert(
        session,
        "character_skill",
        ("character_id", "skill_id"),
        {
            "character_id": character_id,
            "skill_id": skill_id,
            "die_size": change.values.get("die_size"),
            "die_modifier": int(change.values.get("die_modifier") or 0),
        },
    )


def _write_edge(session, character_id: int, change: RecordChange) -> None:
    edge_id = int(change.values["edge_id"])
    if change.action == INSERT:
        session.execute(
            text(
                "INSERT INTO character_edge (character_id, edge_id, advance_taken, source, notes) "
                "VALUES (:cid, :edge_id, :advance_taken, :source, :notes)"
            ),
            {
                "cid": character_id,
                "edge_id": edge_id,
                "advance_taken": int(change.values.get("advance_taken", 0) or 0),
                "source": str(change.values.get("source") or "chosen"),
                "notes": change.values.get("notes"),
            },
        )
        return
    if change.action != DELETE:
        raise ValueError("Owned edges are never updated")

    params = {"cid": character_id, "edge_id": edge_id}
    query = "SELECT character_edge_id FROM character_edge WHERE character_id = :cid AND edge_id = :edge_id"
    advance_taken = change.values.get("advance_taken")
    if advance_taken is not None:
        query += " AND advance_taken = :advance_taken"
        params["advance_taken"] = int(advance_taken)
    row = session.execute(text(query + " ORDER BY character_edge_id"), params).first()
    if row is None:
        raise ValueError(f"Character does not own edge {edge_id}")
    session.execute(
        text("DELETE FROM character_edge WHERE character_edge_id = :row_id"),
        {"row_id": row.character_edge_id},
    )


def _write_hindrance(session, character_id: int, change: RecordChange) -> None:
    hindrance_id = int(change.values["hindrance_id"])
    if change.action == INSERT:
        session.execute(
            text(
                "INSERT INTO character_hindrance (character_id, hindrance_id, source) "
                "VALUES (:cid, :hindrance_id, :source)"
            ),
            {"cid": character_id, "hindrance_id": hindrance_id, "source": str(change.values.get("source") or "chosen")},
        )
    elif change.action == DELETE:
        result = session.execute(
            text("DELETE FROM character_hindrance WHERE character_id = :cid AND hindrance_id = :hindrance_id"),
            {"cid": character_id, "hindrance_id": hindrance_id},
        )
        if result.rowcount == 0:
            raise ValueError(f"Character does not have hindrance {hindrance_id}")
    else:
        raise ValueError("Owned hindrances are never updated")


def _write_arcane_background(session, character_id: int, change: RecordChange) -> None:
    params = {"cid": character_id, "arcane_background_id": int(change.values["arcane_background_id"])}
    if change.action == INSERT:
        session.execute(
            text(
                "INSERT INTO character_arcane_background (character_id, arcane_background_id, source) "
                "VALUES (:cid, :arcane_background_id, :source)"
            ),
            {**params, "source": str(change.values.get("source") or "chosen")},
        )
    elif change.action == DELETE:
        result = session.execute(
            text(
                "DELETE FROM character_arcane_background "
                "WHERE character_id = :cid AND arcane_background_id = :arcane_background_id"
            ),
            params,
        )
        if result.rowcount == 0:
            raise ValueError(f"Character does not have arcane background {params['arcane_background_id']}")
    else:
        raise ValueError("Owned arcane backgrounds are never updated")


def _write_power(session, character_id: int, change: RecordChange) -> None:
    params = {"cid": character_id, "power_id": int(change.values["power_id"])}
    if change.action == INSERT:
        linked = change.values.get("arcane_background_id")
        session.execute(
            text(
                "INSERT INTO character_power (character_id, power_id, arcane_background_id, source) "
                "VALUES (:cid, :power_id, :arcane_background_id, :source)"
            ),
            {
                **params,
                "arcane_background_id": None if linked is None else int(linked),
                "source": str(change.values.get("source") or "chosen"),
            },
        )
    elif change.action == DELETE:
        result = session.execute(
            text("DELETE FROM character_power WHERE character_id = :cid AND power_id = :power_id"),
            params,
        )
        if result.rowcount == 0:
            raise ValueError(f"Character does not know power {params['power_id']}")
    else:
        raise ValueError("Known powers are never updated")


def _write_gear(session, character_id: int, change: RecordChange) -> None:
    params = {"cid": character_id, "gear_id": int(change.values["gear_id"])}
    if change.action == INSERT:
        session.execute(
            text(
                "INSERT INTO character_gear (character_id, gear_id, quantity, is_equipped) "
                "VALUES (:cid, :gear_id, :quantity, :is_equipped)"
            ),
            {
                **params,
                "quantity": int(change.values.get("quantity", 1)),
                "is_equipped": int(bool(change.values.get("is_equipped", False))),
            },
        )
        return
    carried = session.execute(
        text("SELECT gear_id FROM character_gear WHERE character_id = :cid AND gear_id = :gear_id"), params
    ).first()
    if carried is None:
        raise ValueError(f"Character does not carry gear {params['gear_id']}")
    if change.action == DELETE:
        session.execute(text("DELETE FROM character_gear WHERE character_id = :cid AND gear_id = :gear_id"), params)
        return

    values = {}
    if "quantity" in change.values:
        if int(change.values["quantity"]) < 1:
            raise ValueError("Carried gear quantity must be at least 1")
        values["quantity"] = int(change.values["quantity"])
    if "is_equipped" in change.values:
        values["is_equipped"] = int(bool(change.values["is_equipped"]))
    if not values:
        return
    assignments = ", ".join(f"{column} = :{column}" for column in values)
    session.execute(
        text(f"UPDATE character_gear SET {assignments} WHERE character_id = :cid AND gear_id = :gear_id"),
        {**params, **values},
    )



_WRITERS = {
    CHARACTER: _write_character,
    CHARACTER_ADVANCE: _write_advance,
    CHARACTER_ATTRIBUTE: _write_attribute,
    CHARACTER_SKILL: _write_skill,
    CHARACTER_EDGE: _write_edge,
    CHARACTER_HINDRANCE: _write_hindrance,
    CHARACTER_ARCANE_BACKGROUND: _write_arcane_background,
    CHARACTER_POWER: _write_power,
    CHARACTER_GEAR: _write_gear,
}
