"""Note creation.

``create_new_note`` creates a note together with its initial branch.
``create_composite_note`` builds a note, its branch and a list of
attributes as one atomic unit: either all of it is persisted, or none.
"""

import json
import logging
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from arbor.cache import EntityCache, new_entity_id
from arbor.core.tree import get_end_position
from arbor.core.validation import parse_model
from arbor.types import (
    JSON_NOTE_TYPES,
    VALID_ATTRIBUTE_TYPE_VALUES,
    VALID_NOTE_TYPE_VALUES,
    Attribute,
    Branch,
    Note,
    NoteAndBranch,
    NoteNotFoundError,
    NoteType,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Parent note types that cannot hold child notes
NO_CHILDREN_TYPES = frozenset({NoteType.SEARCH.value, NoteType.LAUNCHER.value})


def _check_note_type(value: str) -> str:
    if value not in VALID_NOTE_TYPE_VALUES:
        raise ValueError(f"Unknown note type '{value}'")
    return value


class AttributeSpec(BaseModel):
    """Declarative attribute to create alongside a note."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: str
    name: str = Field(..., min_length=1)
    value: Optional[str] = ""
    is_inheritable: bool = Field(default=False, alias="isInheritable")

    @field_validator("type")
    @classmethod
    def _valid_type(cls, value: str) -> str:
        if value not in VALID_ATTRIBUTE_TYPE_VALUES:
            raise ValueError(f"Unknown attribute type '{value}'")
        return value


class NoteParams(BaseModel):
    """Everything ``create_new_note`` accepts."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    parent_note_id: str = Field(..., min_length=1, alias="parentNoteId")
    title: str
    content: Union[str, bytes] = ""
    type: str
    mime: Optional[str] = None
    note_id: Optional[str] = Field(default=None, alias="noteId")
    prefix: Optional[str] = None
    is_expanded: bool = Field(default=False, alias="isExpanded")
    note_position: Optional[int] = Field(default=None, alias="notePosition")

    @field_validator("type")
    @classmethod
    def _valid_type(cls, value: str) -> str:
        return _check_note_type(value)


class NoteOptions(BaseModel):
    """Options for ``create_composite_note``; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    json_content: bool = Field(default=False, alias="json")
    type: Optional[str] = None
    mime: Optional[str] = None
    prefix: Optional[str] = None
    is_expanded: bool = Field(default=False, alias="isExpanded")
    attributes: List[AttributeSpec] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def _valid_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_note_type(value) if value is not None else None


def derive_mime(note_type: str, mime: Optional[str] = None) -> str:
    """Default mime for a note type, unless one was given."""
    if mime:
        return mime
    if note_type == NoteType.TEXT.value:
        return "text/html"
    if note_type == NoteType.CODE.value:
        return "text/plain"
    if note_type in JSON_NOTE_TYPES:
        return "application/json"
    if note_type in (NoteType.BOOK.value, NoteType.LAUNCHER.value):
        return ""
    return "application/octet-stream"


def dump_json_content(content: Any) -> str:
    """Serialize data note content with stable key order and tab indent.

    Falsy content such as None or "" becomes ``{}``.
    """
    return json.dumps(content if content else {}, indent="\t", sort_keys=True)


def get_and_validate_parent(cache: EntityCache, parent_note_id: str) -> Note:
    parent_note = cache.get_note(parent_note_id)
    if parent_note is None:
        raise NoteNotFoundError(parent_note_id, role="Parent note")
    if parent_note.type in NO_CHILDREN_TYPES:
        raise ValidationError(
            f"Creating child notes under {parent_note.type} note '{parent_note_id}' is not allowed."
        )
    return parent_note


def create_new_note(cache: EntityCache, params: Union[NoteParams, dict]) -> NoteAndBranch:
    """Create a note and its branch under ``params.parent_note_id``.

    Raises:
        ValidationError: Malformed params or a parent that cannot have children.
        NoteNotFoundError: The parent note does not exist.
    """
    params = parse_model(NoteParams, params)
    get_and_validate_parent(cache, params.parent_note_id)

    note_id = params.note_id or new_entity_id()
    if cache.get_note(note_id) is not None:
        raise ValidationError(f"Note '{note_id}' already exists")

    note = Note(
        note_id=note_id,
        title=params.title,
        type=params.type,
        mime=derive_mime(params.type, params.mime),
    )

    with cache.store.transactional():
        cache.save_note(note, content=params.content)

        note_position = params.note_position
        if note_position is None:
            note_position = get_end_position(cache, params.parent_note_id)

        branch = cache.save_branch(
            Branch(
                branch_id=new_entity_id(),
                note_id=note.note_id,
                parent_note_id=params.parent_note_id,
                note_position=note_position,
                prefix=params.prefix,
                is_expanded=params.is_expanded,
            )
        )

    logger.debug(f"Created note {note.note_id} ({note.type}) under {params.parent_note_id}")
    return NoteAndBranch(note=note, branch=branch)


def create_attribute(
    cache: EntityCache,
    note_id: str,
    type: str,
    name: str,
    value: Optional[str] = "",
    is_inheritable: bool = False,
) -> Attribute:
    """Create one attribute on an existing note."""
    if type not in VALID_ATTRIBUTE_TYPE_VALUES:
        raise ValidationError(f"Unknown attribute type '{type}'")
    if not name:
        raise ValidationError("Attribute name cannot be empty")
    return cache.add_attribute(note_id, type, name, value or "", bool(is_inheritable))


def create_composite_note(
    cache: EntityCache,
    parent_note_id: str,
    title: str,
    content: Any = "",
    options: Union[NoteOptions, dict, None] = None,
) -> NoteAndBranch:
    """Create a note, its branch and its attributes atomically.

    Type and mime follow the parent: children of code notes are code notes
    with the parent's mime, everything else is ``text/html`` text. Explicit
    ``type``/``mime`` options override that, and ``json`` forces a JSON
    code note whose content is serialized with sorted keys.

    If creating any attribute fails, the whole unit is rolled back and the
    error propagates.
    """
    options = parse_model(NoteOptions, options or {})
    parent_note = cache.get_note(parent_note_id)
    if parent_note is None:
        raise NoteNotFoundError(parent_note_id, role="Parent note")

    if parent_note.type == NoteType.CODE.value:
        note_type, mime = NoteType.CODE.value, parent_note.mime
    else:
        note_type, mime = NoteType.TEXT.value, "text/html"

    if options.type:
        note_type = options.type
        mime = options.mime or derive_mime(note_type)
    elif options.mime:
        mime = options.mime

    if options.json_content:
        note_type, mime = NoteType.CODE.value, "application/json"
        content = dump_json_content(content)

    params = NoteParams(
        parent_note_id=parent_note_id,
        title=title,
        content=content if content is not None else "",
        type=note_type,
        mime=mime,
        prefix=options.prefix,
        is_expanded=options.is_expanded,
    )

    with cache.store.transactional():
        result = create_new_note(cache, params)
        for attr in options.attributes:
            create_attribute(
                cache,
                result.note.note_id,
                attr.type,
                attr.name,
                attr.value,
                attr.is_inheritable,
            )

    return result
