"""Database schema for arbor SQLite storage.

Contains:
- Schema DDL constant (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Database initialization (init_db)
"""

import logging
import os
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

# Allowed table names for SQL queries (security: prevents SQL injection via table names)
ALLOWED_TABLES = frozenset(
    {
        "notes",
        "note_contents",
        "branches",
        "attributes",
        "schema_version",
    }
)


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Args:
        table: Table name to validate

    Returns:
        The validated table name

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Notes (graph vertices)
CREATE TABLE IF NOT EXISTS notes (
    note_id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL DEFAULT 'text',
    mime TEXT NOT NULL DEFAULT 'text/html',
    is_protected INTEGER NOT NULL DEFAULT 0,
    date_created TEXT NOT NULL,
    date_modified TEXT NOT NULL,
    is_deleted INTEGER NOT NULL DEFAULT 0
);

-- Note content, kept apart so the graph can be hydrated without it
CREATE TABLE IF NOT EXISTS note_contents (
    note_id TEXT PRIMARY KEY REFERENCES notes(note_id),
    content BLOB,
    date_modified TEXT NOT NULL
);

-- Branches (note placed under a parent)
CREATE TABLE IF NOT EXISTS branches (
    branch_id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL REFERENCES notes(note_id),
    parent_note_id TEXT NOT NULL REFERENCES notes(note_id),
    note_position INTEGER NOT NULL DEFAULT 0,
    prefix TEXT,
    is_expanded INTEGER NOT NULL DEFAULT 0,
    date_modified TEXT NOT NULL,
    is_deleted INTEGER NOT NULL DEFAULT 0
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_branches_note_parent
    ON branches(note_id, parent_note_id) WHERE is_deleted = 0;
CREATE INDEX IF NOT EXISTS idx_branches_parent ON branches(parent_note_id);

-- Attributes (labels and relations)
CREATE TABLE IF NOT EXISTS attributes (
    attribute_id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL REFERENCES notes(note_id),
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    value TEXT NOT NULL DEFAULT '',
    position INTEGER NOT NULL DEFAULT 0,
    is_inheritable INTEGER NOT NULL DEFAULT 0,
    date_modified TEXT NOT NULL,
    is_deleted INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_attributes_note ON attributes(note_id);
CREATE INDEX IF NOT EXISTS idx_attributes_name ON attributes(type, name);
"""


def init_db(conn: sqlite3.Connection, db_path: Path) -> None:
    """Initialize the database schema.

    Args:
        conn: Database connection.
        db_path: Path to the database file (for permissions).
    """
    # CREATE TABLE IF NOT EXISTS is safe to re-run
    conn.executescript(SCHEMA)

    row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    elif row[0] != SCHEMA_VERSION:
        logger.info(f"Updating schema version {row[0]} -> {SCHEMA_VERSION}")
        conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))

    conn.commit()

    # Set secure file permissions (owner read/write only)
    try:
        os.chmod(db_path, 0o600)
    except OSError as e:
        logger.warning(f"Could not set secure permissions: {e}")
