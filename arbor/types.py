"""
Shared entity types for arbor.

Notes, branches and attributes are plain dataclasses. The cache owns the
live instances; storage converts them to and from rows. The error
hierarchy used across the package also lives here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


# === Enums ===


class NoteType(str, Enum):
    """Note types known to the knowledge base."""

    TEXT = "text"
    CODE = "code"
    FILE = "file"
    IMAGE = "image"
    SEARCH = "search"
    BOOK = "book"
    RELATION_MAP = "relationMap"
    CANVAS = "canvas"
    LAUNCHER = "launcher"


VALID_NOTE_TYPE_VALUES = frozenset(t.value for t in NoteType)

# Note types whose content is structured JSON rather than text/binary
JSON_NOTE_TYPES = frozenset({"relationMap", "search", "canvas"})


class AttributeType(str, Enum):
    """Attribute kinds: a label carries a value, a relation points at a note."""

    LABEL = "label"
    RELATION = "relation"


VALID_ATTRIBUTE_TYPE_VALUES = frozenset(a.value for a in AttributeType)


class LauncherType(str, Enum):
    """What activating a launcher does."""

    NOTE = "note"  # navigate to target note
    SCRIPT = "script"  # execute script note
    CUSTOM_WIDGET = "customWidget"  # render custom widget


VALID_LAUNCHER_TYPE_VALUES = frozenset(lt.value for lt in LauncherType)


# === Errors ===


class ArborError(Exception):
    """Base exception for arbor operations."""


class ValidationError(ArborError, ValueError):
    """Malformed or missing input. Raised before any mutation happens."""


class EntityReferenceError(ArborError, LookupError):
    """A referenced entity id does not resolve."""


class NoteNotFoundError(ValidationError, EntityReferenceError):
    """Raised when a note id given by the caller does not exist."""

    def __init__(self, note_id: str, role: str = "Note"):
        self.note_id = note_id
        super().__init__(f"{role} '{note_id}' not found")


class ConsistencyError(ArborError, RuntimeError):
    """An internal invariant was violated. Indicates a programming defect."""


# === Entities ===


@dataclass
class Note:
    """A content-bearing vertex of the note graph."""

    note_id: str
    title: str
    type: str = NoteType.TEXT.value
    mime: str = "text/html"
    is_protected: bool = False
    date_created: Optional[str] = None
    date_modified: Optional[str] = None
    is_deleted: bool = False


@dataclass
class Branch:
    """Places a note under a parent note. A note may have several (clones)."""

    branch_id: str
    note_id: str
    parent_note_id: str
    note_position: int = 0
    prefix: Optional[str] = None
    is_expanded: bool = False
    date_modified: Optional[str] = None
    is_deleted: bool = False


@dataclass
class Attribute:
    """A label or relation owned by a note."""

    attribute_id: str
    note_id: str
    type: str
    name: str
    value: str = ""
    position: int = 0
    is_inheritable: bool = False
    date_modified: Optional[str] = None
    is_deleted: bool = False


Content = Union[str, bytes]


@dataclass
class NoteAndBranch:
    """Result of a note creation: the new note and its initial branch."""

    note: Note
    branch: Branch

    def __iter__(self):
        # allows ``note, branch = create_new_note(...)``
        yield self.note
        yield self.branch


@dataclass
class LogEvent:
    """A batch of script log messages pushed to connected clients."""

    note_id: str
    messages: list = field(default_factory=list)
    type: str = "api-log-messages"

    def to_message(self) -> dict:
        return {"type": self.type, "noteId": self.note_id, "messages": list(self.messages)}
