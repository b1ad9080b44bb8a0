"""In-memory entity cache for the note graph.

The cache holds every live note, branch and attribute keyed by id, plus
the indexes needed to walk the graph (parents, children, owned
attributes). It is the single source of truth for "does X exist".

Every mutation goes through the cache, which writes the row inside the
store's transaction and then updates its indexes. If the outermost
transaction rolls back, the store notifies the cache and it rehydrates
from the database so the two never diverge.
"""

import logging
import secrets
import string
from typing import Dict, List, Optional, Tuple

from arbor.storage import SQLiteStore
from arbor.types import (
    Attribute,
    AttributeType,
    Branch,
    Content,
    EntityReferenceError,
    Note,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits


def new_entity_id(length: int = 12) -> str:
    """Random alphanumeric entity id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class EntityCache:
    """Materialized note graph backed by a :class:`SQLiteStore`."""

    def __init__(self, store: SQLiteStore):
        self.store = store
        self.loaded = False

        self.notes: Dict[str, Note] = {}
        self.branches: Dict[str, Branch] = {}
        self.attributes: Dict[str, Attribute] = {}

        self._child_parent_to_branch: Dict[Tuple[str, str], Branch] = {}
        self._parent_branches: Dict[str, List[Branch]] = {}
        self._child_branches: Dict[str, List[Branch]] = {}
        self._owned_attributes: Dict[str, List[Attribute]] = {}

        store.add_rollback_listener(self.load)

    # === Hydration ===

    def _reset(self) -> None:
        self.notes.clear()
        self.branches.clear()
        self.attributes.clear()
        self._child_parent_to_branch.clear()
        self._parent_branches.clear()
        self._child_branches.clear()
        self._owned_attributes.clear()

    def load(self) -> "EntityCache":
        """(Re)hydrate the whole graph from the store."""
        self._reset()

        for note in self.store.load_notes():
            self.notes[note.note_id] = note
        for branch in self.store.load_branches():
            self._index_branch(branch)
        for attribute in self.store.load_attributes():
            self._index_attribute(attribute)

        self.loaded = True
        logger.debug(
            f"Entity cache loaded: {len(self.notes)} notes, {len(self.branches)} branches, "
            f"{len(self.attributes)} attributes"
        )
        return self

    def _index_branch(self, branch: Branch) -> None:
        self.branches[branch.branch_id] = branch
        self._child_parent_to_branch[(branch.note_id, branch.parent_note_id)] = branch
        self._parent_branches.setdefault(branch.note_id, []).append(branch)
        self._child_branches.setdefault(branch.parent_note_id, []).append(branch)

    def _unindex_branch(self, branch: Branch) -> None:
        self.branches.pop(branch.branch_id, None)
        self._child_parent_to_branch.pop((branch.note_id, branch.parent_note_id), None)
        parents = self._parent_branches.get(branch.note_id, [])
        if branch in parents:
            parents.remove(branch)
        children = self._child_branches.get(branch.parent_note_id, [])
        if branch in children:
            children.remove(branch)

    def _index_attribute(self, attribute: Attribute) -> None:
        self.attributes[attribute.attribute_id] = attribute
        self._owned_attributes.setdefault(attribute.note_id, []).append(attribute)

    def _unindex_attribute(self, attribute: Attribute) -> None:
        self.attributes.pop(attribute.attribute_id, None)
        owned = self._owned_attributes.get(attribute.note_id, [])
        if attribute in owned:
            owned.remove(attribute)

    # === Lookup ===

    def get_note(self, note_id: Optional[str]) -> Optional[Note]:
        if not note_id:
            return None
        return self.notes.get(note_id)

    def get_note_or_throw(self, note_id: str) -> Note:
        note = self.get_note(note_id)
        if note is None:
            raise EntityReferenceError(f"Note '{note_id}' doesn't exist.")
        return note

    def get_branch(self, branch_id: Optional[str]) -> Optional[Branch]:
        if not branch_id:
            return None
        return self.branches.get(branch_id)

    def get_attribute(self, attribute_id: Optional[str]) -> Optional[Attribute]:
        if not attribute_id:
            return None
        return self.attributes.get(attribute_id)

    def get_branch_from_child_and_parent(
        self, note_id: str, parent_note_id: str
    ) -> Optional[Branch]:
        return self._child_parent_to_branch.get((note_id, parent_note_id))

    def get_parent_branches(self, note_id: str) -> List[Branch]:
        return list(self._parent_branches.get(note_id, []))

    def get_parent_note_ids(self, note_id: str) -> List[str]:
        return [b.parent_note_id for b in self._parent_branches.get(note_id, [])]

    def get_child_branches(self, parent_note_id: str) -> List[Branch]:
        """Child branches of a note in position order."""
        return sorted(self._child_branches.get(parent_note_id, []), key=lambda b: b.note_position)

    def has_children(self, note_id: str) -> bool:
        return bool(self._child_branches.get(note_id))

    def get_owned_attributes(
        self, note_id: str, type: Optional[str] = None, name: Optional[str] = None
    ) -> List[Attribute]:
        return [
            attr
            for attr in self._owned_attributes.get(note_id, [])
            if (type is None or attr.type == type) and (name is None or attr.name == name)
        ]

    def get_owned_attribute(self, note_id: str, type: str, name: str) -> Optional[Attribute]:
        owned = self.get_owned_attributes(note_id, type, name)
        return owned[0] if owned else None

    def get_label_value(self, note_id: str, name: str) -> Optional[str]:
        label = self.get_owned_attribute(note_id, AttributeType.LABEL.value, name)
        return label.value if label else None

    def get_relation_target(self, note_id: str, name: str) -> Optional[str]:
        relation = self.get_owned_attribute(note_id, AttributeType.RELATION.value, name)
        return relation.value if relation else None

    def get_notes_with_label(self, name: str, value: Optional[str] = None) -> List[Note]:
        """Notes owning a label ``name`` (optionally with exactly ``value``)."""
        seen = set()
        result = []
        for attr in self.attributes.values():
            if attr.type != AttributeType.LABEL.value or attr.name != name:
                continue
            if value is not None and attr.value != value:
                continue
            if attr.note_id in seen or attr.note_id not in self.notes:
                continue
            seen.add(attr.note_id)
            result.append(self.notes[attr.note_id])
        return result

    def is_ancestor(self, ancestor_note_id: str, note_id: str) -> bool:
        """True if ``ancestor_note_id`` is ``note_id`` or above it in any parent path."""
        stack = [note_id]
        visited = set()
        while stack:
            current = stack.pop()
            if current == ancestor_note_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self.get_parent_note_ids(current))
        return False

    def get_content(self, note_id: str) -> Optional[Content]:
        return self.store.get_note_content(note_id)

    # === Mutation ===

    def save_note(self, note: Note, content: Optional[Content] = None) -> Note:
        with self.store.transactional():
            self.store.save_note(note)
            if content is not None:
                self.store.save_note_content(note.note_id, content)
        self.notes[note.note_id] = note
        return note

    def save_branch(self, branch: Branch) -> Branch:
        """Insert or update a branch, keeping the pair and parent/child indexes in sync."""
        with self.store.transactional():
            self.store.save_branch(branch)
        existing = self.branches.get(branch.branch_id)
        if existing is not None:
            self._unindex_branch(existing)
        self._index_branch(branch)
        return branch

    def relocate_branch(self, branch: Branch, new_parent_note_id: str, note_position: int) -> Branch:
        """Point an existing branch at another parent, keeping its id."""
        with self.store.transactional():
            self._unindex_branch(branch)
            branch.parent_note_id = new_parent_note_id
            branch.note_position = note_position
            self.store.save_branch(branch)
        self._index_branch(branch)
        return branch

    def delete_branch(self, branch: Branch) -> None:
        with self.store.transactional():
            self.store.delete_branch(branch.branch_id)
        branch.is_deleted = True
        self._unindex_branch(branch)

    def add_attribute(
        self,
        note_id: str,
        type: str,
        name: str,
        value: str = "",
        is_inheritable: bool = False,
        position: Optional[int] = None,
    ) -> Attribute:
        """Create and persist a new attribute on ``note_id``."""
        self.get_note_or_throw(note_id)
        if position is None:
            owned = self._owned_attributes.get(note_id, [])
            position = max((a.position for a in owned), default=0) + 10
        attribute = Attribute(
            attribute_id=new_entity_id(),
            note_id=note_id,
            type=type,
            name=name,
            value=value or "",
            position=position,
            is_inheritable=is_inheritable,
        )
        with self.store.transactional():
            self.store.save_attribute(attribute)
        self._index_attribute(attribute)
        return attribute

    def save_attribute(self, attribute: Attribute) -> Attribute:
        with self.store.transactional():
            self.store.save_attribute(attribute)
        if attribute.attribute_id not in self.attributes:
            self._index_attribute(attribute)
        return attribute

    def delete_attribute(self, attribute: Attribute) -> None:
        with self.store.transactional():
            self.store.delete_attribute(attribute.attribute_id)
        attribute.is_deleted = True
        self._unindex_attribute(attribute)

    def set_attribute(self, note_id: str, type: str, name: str, value: str) -> Attribute:
        """Update the first owned attribute of this type/name, or create it."""
        existing = self.get_owned_attribute(note_id, type, name)
        if existing is None:
            return self.add_attribute(note_id, type, name, value)
        if existing.value != value:
            existing.value = value
            self.save_attribute(existing)
        return existing

    def set_label(self, note_id: str, name: str, value: str = "") -> Attribute:
        return self.set_attribute(note_id, AttributeType.LABEL.value, name, value)

    def set_relation(self, note_id: str, name: str, target_note_id: str) -> Attribute:
        return self.set_attribute(note_id, AttributeType.RELATION.value, name, target_note_id)

    def remove_attribute(
        self, note_id: str, type: str, name: str, value: Optional[str] = None
    ) -> int:
        """Delete owned attributes by type/name (and value, if given). Returns count."""
        removed = 0
        with self.store.transactional():
            for attr in self.get_owned_attributes(note_id, type, name):
                if value is None or attr.value == value:
                    self.delete_attribute(attr)
                    removed += 1
        return removed

    def remove_label(self, note_id: str, name: str, value: Optional[str] = None) -> int:
        return self.remove_attribute(note_id, AttributeType.LABEL.value, name, value)

    def remove_relation(self, note_id: str, name: str, value: Optional[str] = None) -> int:
        return self.remove_attribute(note_id, AttributeType.RELATION.value, name, value)
