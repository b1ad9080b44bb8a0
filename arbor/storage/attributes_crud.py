"""Attribute (label/relation) database operations."""

import logging
import sqlite3
from typing import Callable, List

from arbor.types import Attribute

logger = logging.getLogger(__name__)


def save_attribute(connect_fn: Callable, attribute: Attribute, now_fn: Callable[[], str]) -> str:
    """Insert or update an attribute row."""
    attribute.date_modified = now_fn()

    with connect_fn() as conn:
        conn.execute(
            """
            INSERT INTO attributes
            (attribute_id, note_id, type, name, value, position,
             is_inheritable, date_modified, is_deleted)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(attribute_id) DO UPDATE SET
                value = excluded.value, position = excluded.position,
                is_inheritable = excluded.is_inheritable, date_modified = excluded.date_modified,
                is_deleted = excluded.is_deleted
        """,
            (
                attribute.attribute_id,
                attribute.note_id,
                attribute.type,
                attribute.name,
                attribute.value,
                attribute.position,
                1 if attribute.is_inheritable else 0,
                attribute.date_modified,
                1 if attribute.is_deleted else 0,
            ),
        )

    return attribute.attribute_id


def mark_attribute_deleted(
    connect_fn: Callable, attribute_id: str, now_fn: Callable[[], str]
) -> bool:
    """Soft-delete an attribute. Returns True if a live row was affected."""
    with connect_fn() as conn:
        cursor = conn.execute(
            "UPDATE attributes SET is_deleted = 1, date_modified = ? "
            "WHERE attribute_id = ? AND is_deleted = 0",
            (now_fn(), attribute_id),
        )
    return cursor.rowcount > 0


def load_attributes(connect_fn: Callable) -> List[Attribute]:
    """Load every live attribute, ordered by position."""
    with connect_fn() as conn:
        rows = conn.execute(
            "SELECT * FROM attributes WHERE is_deleted = 0 ORDER BY position"
        ).fetchall()
    return [row_to_attribute(row) for row in rows]


def row_to_attribute(row: sqlite3.Row) -> Attribute:
    """Convert a database row to an Attribute dataclass."""
    return Attribute(
        attribute_id=row["attribute_id"],
        note_id=row["note_id"],
        type=row["type"],
        name=row["name"],
        value=row["value"],
        position=row["position"],
        is_inheritable=bool(row["is_inheritable"]),
        date_modified=row["date_modified"],
        is_deleted=bool(row["is_deleted"]),
    )
