"""Launcher reconciliation.

``create_or_update_launcher`` converges a launcher note to a declared
state. The note id is derived from the caller's id, so calling it again
with the same spec finds the same note and changes nothing; calling it
with a different spec applies only the differences.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from arbor.cache import EntityCache
from arbor.core.special_notes import create_launcher, get_launcher_container_id
from arbor.core.tree import move_branch_to_note
from arbor.core.validation import parse_model, validate_entity_id
from arbor.types import (
    VALID_LAUNCHER_TYPE_VALUES,
    ConsistencyError,
    LauncherType,
    Note,
    ValidationError,
)

logger = logging.getLogger(__name__)

LAUNCHER_ID_PREFIX = "al_"
LAUNCHER_ID_MIN_LENGTH = 6
LAUNCHER_ID_MAX_LENGTH = 1000

# Which relation carries the launcher's reference, and which spec field feeds it
LAUNCHER_RELATIONS = {
    LauncherType.NOTE.value: ("target", "target_note_id"),
    LauncherType.SCRIPT.value: ("script", "script_note_id"),
    LauncherType.CUSTOM_WIDGET.value: ("widget", "widget_note_id"),
}


class LauncherSpec(BaseModel):
    """Desired state of a launcher. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str
    type: str
    title: str
    is_visible: bool = Field(default=False, alias="isVisible")
    icon: Optional[str] = None
    keyboard_shortcut: Optional[str] = Field(default=None, alias="keyboardShortcut")
    target_note_id: Optional[str] = Field(default=None, alias="targetNoteId")
    script_note_id: Optional[str] = Field(default=None, alias="scriptNoteId")
    widget_note_id: Optional[str] = Field(default=None, alias="widgetNoteId")

    @field_validator("id")
    @classmethod
    def _valid_id(cls, value: str) -> str:
        return validate_entity_id(
            value, "ID", min_length=LAUNCHER_ID_MIN_LENGTH, max_length=LAUNCHER_ID_MAX_LENGTH
        )

    @field_validator("type")
    @classmethod
    def _valid_type(cls, value: str) -> str:
        if value not in VALID_LAUNCHER_TYPE_VALUES:
            raise ValueError(f"Given launcher type '{value}' is not supported")
        return value

    @field_validator("title")
    @classmethod
    def _valid_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is a mandatory parameter")
        return value

    @model_validator(mode="after")
    def _reference_for_type(self) -> "LauncherSpec":
        relation = LAUNCHER_RELATIONS.get(self.type)
        if relation is not None:
            field_name = relation[1]
            if not getattr(self, field_name):
                alias = type(self).model_fields[field_name].alias
                raise ValueError(f"{alias} is mandatory for launchers of type '{self.type}'")
        return self

    @property
    def note_id(self) -> str:
        return LAUNCHER_ID_PREFIX + self.id


@dataclass
class LauncherResult:
    """The reconciled launcher note and what changed."""

    note: Note
    created: bool = False
    changes: List[str] = field(default_factory=list)


def set_launcher_relation(cache: EntityCache, note_id: str, spec: LauncherSpec) -> bool:
    """Point the kind's relation at the spec's reference. Returns True if it changed."""
    relation = LAUNCHER_RELATIONS.get(spec.type)
    if relation is None:
        raise ConsistencyError(f"Unrecognized launcher type '{spec.type}'")
    name, field_name = relation
    target = getattr(spec, field_name)
    changed = cache.get_relation_target(note_id, name) != target
    cache.set_relation(note_id, name, target)
    return changed


def reconcile_label(cache: EntityCache, note_id: str, name: str, value: Optional[str]) -> bool:
    """Set the label when a value is given, otherwise remove it. Returns True if it changed."""
    current = cache.get_owned_attributes(note_id, "label", name)
    if value:
        if len(current) == 1 and current[0].value == value:
            return False
        if len(current) > 1:
            cache.remove_label(note_id, name)
        cache.set_label(note_id, name, value)
        return True
    return cache.remove_label(note_id, name) > 0


def create_or_update_launcher(
    cache: EntityCache, spec: Union[LauncherSpec, dict]
) -> LauncherResult:
    """Create the launcher ``al_<id>`` or bring the existing one to ``spec``.

    Validation happens before anything is written.

    Raises:
        ValidationError: Invalid id, type, title or missing reference.
    """
    spec = parse_model(LauncherSpec, spec)
    container_id = get_launcher_container_id(spec.is_visible)
    note_id = spec.note_id

    if cache.get_note(container_id) is None:
        raise ValidationError(
            f"Launcher container '{container_id}' is missing; initialize the database first"
        )

    created = False
    changes: List[str] = []

    with cache.store.transactional():
        note = cache.get_note(note_id)
        if note is None:
            note = create_launcher(cache, container_id, spec.type, note_id=note_id).note
            created = True

        if note.title != spec.title:
            note.title = spec.title
            cache.save_note(note)
            changes.append("title")

        parent_branches = cache.get_parent_branches(note_id)
        if len(parent_branches) == 1 and parent_branches[0].parent_note_id != container_id:
            move_branch_to_note(cache, parent_branches[0], container_id)
            changes.append("parent")

        if set_launcher_relation(cache, note_id, spec):
            changes.append(LAUNCHER_RELATIONS[spec.type][0])

        if reconcile_label(cache, note_id, "keyboardShortcut", spec.keyboard_shortcut):
            changes.append("keyboardShortcut")

        icon_class = f"bx {spec.icon}" if spec.icon else None
        if reconcile_label(cache, note_id, "iconClass", icon_class):
            changes.append("iconClass")

    logger.debug(f"Reconciled launcher {note_id}: created={created}, changes={changes}")
    return LauncherResult(note=note, created=created, changes=changes)
