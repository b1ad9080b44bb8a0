"""Note and note-content database operations.

All functions receive the connection factory explicitly so they can run
inside whatever transaction the caller has open.
"""

import logging
import sqlite3
from typing import Callable, List, Optional

from arbor.types import Content, Note

logger = logging.getLogger(__name__)


def save_note(connect_fn: Callable, note: Note, now_fn: Callable[[], str]) -> str:
    """Insert or update a note row.

    Args:
        connect_fn: Context manager returning a DB connection.
        note: The Note to save.
        now_fn: Returns current UTC timestamp as ISO string.
    """
    now = now_fn()
    if not note.date_created:
        note.date_created = now
    note.date_modified = now

    with connect_fn() as conn:
        conn.execute(
            """
            INSERT INTO notes
            (note_id, title, type, mime, is_protected, date_created, date_modified, is_deleted)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(note_id) DO UPDATE SET
                title = excluded.title, type = excluded.type, mime = excluded.mime,
                is_protected = excluded.is_protected, date_modified = excluded.date_modified,
                is_deleted = excluded.is_deleted
        """,
            (
                note.note_id,
                note.title,
                note.type,
                note.mime,
                1 if note.is_protected else 0,
                note.date_created,
                note.date_modified,
                1 if note.is_deleted else 0,
            ),
        )

    return note.note_id


def save_note_content(
    connect_fn: Callable, note_id: str, content: Content, now_fn: Callable[[], str]
) -> None:
    """Store the content blob of a note."""
    with connect_fn() as conn:
        conn.execute(
            """
            INSERT INTO note_contents (note_id, content, date_modified)
            VALUES (?, ?, ?)
            ON CONFLICT(note_id) DO UPDATE SET
                content = excluded.content, date_modified = excluded.date_modified
        """,
            (note_id, content, now_fn()),
        )


def get_note_content(connect_fn: Callable, note_id: str) -> Optional[Content]:
    """Get the content of a note, or None if it has none stored."""
    with connect_fn() as conn:
        row = conn.execute(
            "SELECT content FROM note_contents WHERE note_id = ?", (note_id,)
        ).fetchone()
    return row["content"] if row else None


def load_notes(connect_fn: Callable) -> List[Note]:
    """Load every live note."""
    with connect_fn() as conn:
        rows = conn.execute("SELECT * FROM notes WHERE is_deleted = 0").fetchall()
    return [row_to_note(row) for row in rows]


def row_to_note(row: sqlite3.Row) -> Note:
    """Convert a database row to a Note dataclass."""
    return Note(
        note_id=row["note_id"],
        title=row["title"],
        type=row["type"],
        mime=row["mime"],
        is_protected=bool(row["is_protected"]),
        date_created=row["date_created"],
        date_modified=row["date_modified"],
        is_deleted=bool(row["is_deleted"]),
    )
