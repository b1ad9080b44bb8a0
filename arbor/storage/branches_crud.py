"""Branch database operations."""

import logging
import sqlite3
from typing import Callable, List

from arbor.types import Branch

logger = logging.getLogger(__name__)


def save_branch(connect_fn: Callable, branch: Branch, now_fn: Callable[[], str]) -> str:
    """Insert or update a branch row.

    The partial unique index on (note_id, parent_note_id) makes a second
    live branch for the same pair fail with ``sqlite3.IntegrityError``.
    """
    branch.date_modified = now_fn()

    with connect_fn() as conn:
        conn.execute(
            """
            INSERT INTO branches
            (branch_id, note_id, parent_note_id, note_position, prefix,
             is_expanded, date_modified, is_deleted)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(branch_id) DO UPDATE SET
                parent_note_id = excluded.parent_note_id,
                note_position = excluded.note_position, prefix = excluded.prefix,
                is_expanded = excluded.is_expanded, date_modified = excluded.date_modified,
                is_deleted = excluded.is_deleted
        """,
            (
                branch.branch_id,
                branch.note_id,
                branch.parent_note_id,
                branch.note_position,
                branch.prefix,
                1 if branch.is_expanded else 0,
                branch.date_modified,
                1 if branch.is_deleted else 0,
            ),
        )

    return branch.branch_id


def mark_branch_deleted(connect_fn: Callable, branch_id: str, now_fn: Callable[[], str]) -> bool:
    """Soft-delete a branch. Returns True if a live row was affected."""
    with connect_fn() as conn:
        cursor = conn.execute(
            "UPDATE branches SET is_deleted = 1, date_modified = ? "
            "WHERE branch_id = ? AND is_deleted = 0",
            (now_fn(), branch_id),
        )
    return cursor.rowcount > 0


def load_branches(connect_fn: Callable) -> List[Branch]:
    """Load every live branch, ordered by position."""
    with connect_fn() as conn:
        rows = conn.execute(
            "SELECT * FROM branches WHERE is_deleted = 0 ORDER BY note_position"
        ).fetchall()
    return [row_to_branch(row) for row in rows]


def row_to_branch(row: sqlite3.Row) -> Branch:
    """Convert a database row to a Branch dataclass."""
    return Branch(
        branch_id=row["branch_id"],
        note_id=row["note_id"],
        parent_note_id=row["parent_note_id"],
        note_position=row["note_position"],
        prefix=row["prefix"],
        is_expanded=bool(row["is_expanded"]),
        date_modified=row["date_modified"],
        is_deleted=bool(row["is_deleted"]),
    )
