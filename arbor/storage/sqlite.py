"""SQLite storage backend for arbor.

Local-first storage with:
- One connection per outermost transaction, closed on every exit path
- Reentrant transactions: nested scopes on the same thread run as
  savepoints inside the enclosing one
- Rollback listeners so in-memory state can be rebuilt after a failure
"""

import contextlib
import logging
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from arbor.config import get_arbor_home
from arbor.types import Attribute, Branch, Content, Note, utc_now

from . import attributes_crud, branches_crud, notes_crud
from .schema import SCHEMA_VERSION, init_db, validate_table_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteStore:
    """SQLite-backed persistent store for notes, branches and attributes.

    All writes should happen inside :meth:`transactional`. Reads outside a
    transaction get a short-lived connection of their own.
    """

    # Seconds SQLite waits on a locked database before failing
    BUSY_TIMEOUT_MS = 5000

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = self._resolve_db_path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._rollback_listeners: List[Callable[[], None]] = []

        self._init_db()

    def _resolve_db_path(self, db_path: Optional[Path]) -> Path:
        """Resolve the database path, falling back to temp dir if home is not writable."""
        if db_path is not None:
            return Path(db_path).resolve()

        default_path = get_arbor_home() / "document.db"
        try:
            default_path.parent.mkdir(parents=True, exist_ok=True)
            return default_path.resolve()
        except (OSError, PermissionError) as e:
            # Home dir not writable (sandboxed/container/CI environment)
            fallback_dir = Path(tempfile.gettempdir()) / ".arbor"
            logger.warning(
                f"Cannot write to {default_path.parent} ({e}), " f"falling back to {fallback_dir}"
            )
            return (fallback_dir / "document.db").resolve()

    def _get_conn(self) -> sqlite3.Connection:
        """Open a connection in manual transaction mode.

        Callers own the connection; prefer :meth:`transactional`, which
        handles BEGIN/COMMIT/ROLLBACK and close.
        """
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={self.BUSY_TIMEOUT_MS}")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_db(self) -> None:
        """Initialize the database schema. Delegates to schema.init_db()."""
        conn = self._get_conn()
        try:
            init_db(conn, self.db_path)
        finally:
            conn.close()

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "conn", None) is not None

    @contextlib.contextmanager
    def transactional(self) -> Iterator[sqlite3.Connection]:
        """Context manager for a unit of work.

        The outermost scope opens a connection, begins an immediate
        transaction, commits on success and rolls back on any exception.
        The connection is closed in all cases. Scopes opened while one is
        already active on this thread reuse its connection under a
        savepoint, so an inner failure undoes only the inner work even when
        the caller catches it and carries on.
        """
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            with self._savepoint(conn):
                yield conn
            return

        conn = self._get_conn()
        conn.execute("BEGIN IMMEDIATE")
        self._local.conn = conn
        self._local.depth = 0
        rolled_back = False
        try:
            yield conn
            conn.commit()
        except BaseException as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            rolled_back = True
            raise
        finally:
            self._local.conn = None
            conn.close()
            if rolled_back:
                self._fire_rollback_listeners()

    @contextlib.contextmanager
    def _savepoint(self, conn: sqlite3.Connection) -> Iterator[None]:
        self._local.depth += 1
        name = f"sp_{self._local.depth}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException as e:
            logger.debug(f"Nested scope failed, rolling back to {name}: {e}")
            conn.execute(f"ROLLBACK TO {name}")
            conn.execute(f"RELEASE {name}")
            # listeners reload through the still-open outer transaction
            self._fire_rollback_listeners()
            raise
        else:
            conn.execute(f"RELEASE {name}")
        finally:
            self._local.depth -= 1

    def run_in_transaction(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``func`` inside :meth:`transactional` and return its result."""
        with self.transactional():
            return func(*args, **kwargs)

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection for a single statement group.

        Joins the open transaction when there is one; otherwise behaves
        like a one-off transaction of its own.
        """
        with self.transactional() as conn:
            yield conn

    def add_rollback_listener(self, listener: Callable[[], None]) -> None:
        """Register a callable invoked after a transaction or savepoint rolls back."""
        self._rollback_listeners.append(listener)

    def _fire_rollback_listeners(self) -> None:
        for listener in list(self._rollback_listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Rollback listener {listener!r} failed: {e}", exc_info=True)

    def close(self):
        """Close any resources.

        Connections are created per transaction, so this exists for API
        symmetry and explicit cleanup.
        """
        pass  # No persistent connections to close

    # === Notes ===

    def save_note(self, note: Note) -> str:
        return notes_crud.save_note(self._connect, note, utc_now)

    def save_note_content(self, note_id: str, content: Content) -> None:
        notes_crud.save_note_content(self._connect, note_id, content, utc_now)

    def get_note_content(self, note_id: str) -> Optional[Content]:
        return notes_crud.get_note_content(self._connect, note_id)

    def load_notes(self) -> List[Note]:
        return notes_crud.load_notes(self._connect)

    # === Branches ===

    def save_branch(self, branch: Branch) -> str:
        return branches_crud.save_branch(self._connect, branch, utc_now)

    def delete_branch(self, branch_id: str) -> bool:
        return branches_crud.mark_branch_deleted(self._connect, branch_id, utc_now)

    def load_branches(self) -> List[Branch]:
        return branches_crud.load_branches(self._connect)

    # === Attributes ===

    def save_attribute(self, attribute: Attribute) -> str:
        return attributes_crud.save_attribute(self._connect, attribute, utc_now)

    def delete_attribute(self, attribute_id: str) -> bool:
        return attributes_crud.mark_attribute_deleted(self._connect, attribute_id, utc_now)

    def load_attributes(self) -> List[Attribute]:
        return attributes_crud.load_attributes(self._connect)

    # === Stats ===

    def count_rows(self, table: str, include_deleted: bool = False) -> int:
        """Count rows in an allowlisted table."""
        validate_table_name(table)
        query = f"SELECT COUNT(*) FROM {table}"
        if not include_deleted and table in ("notes", "branches", "attributes"):
            query += " WHERE is_deleted = 0"
        with self._connect() as conn:
            return conn.execute(query).fetchone()[0]

    def get_schema_version(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        return row[0] if row else SCHEMA_VERSION
