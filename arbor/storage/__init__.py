"""arbor storage backend.

Local-first persistence of the note graph using SQLite.
"""

from .schema import ALLOWED_TABLES, SCHEMA_VERSION, validate_table_name
from .sqlite import SQLiteStore

__all__ = [
    "SQLiteStore",
    "SCHEMA_VERSION",
    "ALLOWED_TABLES",
    "validate_table_name",
]
