"""Script API - the object scripts receive as ``api``.

Wraps the entity cache and the core services behind one facade. A script
runs with a *start note* (where execution began) and a *current note*
(where it is executing now); log messages are keyed by the start note.

Example::

    api = ScriptApi(cache, start_note_id="abc123def456", scheduler=scheduler)
    with api.transactional():
        note = api.create_note("root", "Inbox", options={"attributes": [
            {"type": "label", "name": "inbox"},
        ]}).note
        api.ensure_note_is_present_in_parent(note.note_id, "_hidden", prefix="pinned")
    api.log("done")
"""

import html
import logging
import random
import string
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from arbor import __version__
from arbor.cache import EntityCache
from arbor.config import Settings, get_settings
from arbor.core import cloning, launchers, notes, tree
from arbor.logging_config import log_clone_change, log_launcher_reconciled, log_note_created
from arbor.notifications import NotificationScheduler
from arbor.types import Attribute, Branch, Note, NoteAndBranch

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RANDOM_ALPHABET = string.ascii_letters + string.digits


class ScriptApi:
    """Facade over the note graph for scripts."""

    def __init__(
        self,
        cache: EntityCache,
        start_note_id: str,
        current_note_id: Optional[str] = None,
        origin_entity: Any = None,
        scheduler: Optional[NotificationScheduler] = None,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.start_note_id = start_note_id
        self.current_note_id = current_note_id or start_note_id
        # entity whose event triggered this execution, if any
        self.origin_entity = origin_entity
        self.scheduler = scheduler
        self.settings = settings or get_settings()

    @property
    def start_note(self) -> Optional[Note]:
        return self.cache.get_note(self.start_note_id)

    @property
    def current_note(self) -> Optional[Note]:
        return self.cache.get_note(self.current_note_id)

    # === Lookup ===

    def get_note(self, note_id: str) -> Optional[Note]:
        return self.cache.get_note(note_id)

    def get_branch(self, branch_id: str) -> Optional[Branch]:
        return self.cache.get_branch(branch_id)

    def get_attribute(self, attribute_id: str) -> Optional[Attribute]:
        return self.cache.get_attribute(attribute_id)

    def get_notes_with_label(self, name: str, value: Optional[str] = None) -> List[Note]:
        return self.cache.get_notes_with_label(name, value)

    def get_note_with_label(self, name: str, value: Optional[str] = None) -> Optional[Note]:
        found = self.cache.get_notes_with_label(name, value)
        return found[0] if found else None

    # === Cloning ===

    def ensure_note_is_present_in_parent(
        self, note_id: str, parent_note_id: str, prefix: Optional[str] = None
    ) -> Branch:
        """If there's no branch between note and parent, create one. Returns the branch."""
        existed = self.cache.get_branch_from_child_and_parent(note_id, parent_note_id) is not None
        branch = cloning.ensure_note_is_present_in_parent(
            self.cache, note_id, parent_note_id, prefix
        )
        if not existed:
            log_clone_change(note_id, parent_note_id, present=True)
        return branch

    def ensure_note_is_absent_from_parent(self, note_id: str, parent_note_id: str) -> None:
        """If there's a branch between note and parent, remove it."""
        existed = self.cache.get_branch_from_child_and_parent(note_id, parent_note_id) is not None
        cloning.ensure_note_is_absent_from_parent(self.cache, note_id, parent_note_id)
        if existed:
            log_clone_change(note_id, parent_note_id, present=False)

    def toggle_note_in_parent(
        self, present: bool, note_id: str, parent_note_id: str, prefix: Optional[str] = None
    ) -> None:
        """Create or remove the branch between note and parent based on ``present``."""
        if present:
            self.ensure_note_is_present_in_parent(note_id, parent_note_id, prefix)
        else:
            self.ensure_note_is_absent_from_parent(note_id, parent_note_id)

    # === Note creation ===

    def create_text_note(self, parent_note_id: str, title: str, content: str = "") -> NoteAndBranch:
        """Create a text note. See :meth:`create_new_note` for more options."""
        return self.create_new_note(
            {"parent_note_id": parent_note_id, "title": title, "content": content, "type": "text"}
        )

    def create_data_note(
        self, parent_note_id: str, title: str, content: Any = None
    ) -> NoteAndBranch:
        """Create a JSON code note holding ``content``."""
        return self.create_new_note(
            {
                "parent_note_id": parent_note_id,
                "title": title,
                "content": notes.dump_json_content(content),
                "type": "code",
                "mime": "application/json",
            }
        )

    def create_new_note(self, params: Union[notes.NoteParams, dict]) -> NoteAndBranch:
        """Create a note from explicit params (parent, title, content, type, mime, ...)."""
        result = notes.create_new_note(self.cache, params)
        log_note_created(result.note.note_id, result.branch.parent_note_id, result.note.type)
        return result

    def create_note(
        self,
        parent_note_id: str,
        title: str,
        content: Any = "",
        options: Union[notes.NoteOptions, dict, None] = None,
    ) -> NoteAndBranch:
        """Create a note with attributes as one atomic unit.

        Options: ``json``, ``type``, ``mime``, ``prefix``, ``is_expanded`` and
        ``attributes`` (list of ``{type, name, value, is_inheritable}``).
        """
        result = notes.create_composite_note(self.cache, parent_note_id, title, content, options)
        log_note_created(result.note.note_id, parent_note_id, result.note.type)
        return result

    # === Launchers ===

    def create_or_update_launcher(
        self, opts: Union[launchers.LauncherSpec, dict]
    ) -> launchers.LauncherResult:
        """Create a launch bar launcher, or update it if ``al_<id>`` exists."""
        result = launchers.create_or_update_launcher(self.cache, opts)
        if result.created or result.changes:
            log_launcher_reconciled(result.note.note_id, result.created, result.changes)
        return result

    # === Tree ===

    def sort_notes(self, parent_note_id: str, sort_config: Optional[Dict[str, Any]] = None) -> None:
        """Sort children of a note.

        ``sort_config`` keys: ``sort_by`` (``title``, ``dateCreated``,
        ``dateModified`` or a label name), ``reverse``, ``folders_first``.
        """
        sort_config = sort_config or {}
        tree.sort_notes(
            self.cache,
            parent_note_id,
            sort_by=sort_config.get("sort_by") or sort_config.get("sortBy") or "title",
            reverse=bool(sort_config.get("reverse")),
            folders_first=bool(sort_config.get("folders_first", sort_config.get("foldersFirst"))),
        )

    # === Logging ===

    def log(self, message: Any) -> None:
        """Log to the application log and the clients' script log pane.

        Messages are batched per start note and pushed after a short quiet
        period.
        """
        logger.info(message)
        if self.scheduler is not None:
            self.scheduler.notify(self.start_note_id, message)

    # === Utilities ===

    def transactional(self, func: Optional[Callable[[], T]] = None):
        """Run ``func`` in a transaction, or use as ``with api.transactional():``.

        Joins the enclosing transaction if one is already open.
        """
        if func is None:
            return self.cache.store.transactional()
        return self.cache.store.run_in_transaction(func)

    @staticmethod
    def random_string(length: int) -> str:
        """Random alphanumeric string. NOT cryptographically secure."""
        return "".join(random.choice(_RANDOM_ALPHABET) for _ in range(length))

    @staticmethod
    def escape_html(value: str) -> str:
        return html.escape(value)

    @staticmethod
    def unescape_html(value: str) -> str:
        return html.unescape(value)

    def get_instance_name(self) -> Optional[str]:
        return self.settings.instance_name

    def get_app_info(self) -> Dict[str, Any]:
        return {
            "app_version": __version__,
            "db_version": self.cache.store.get_schema_version(),
            "data_directory": str(self.cache.store.db_path.parent),
            "instance_name": self.settings.instance_name,
        }
