"""Cloning: placing an existing note under additional parents.

A note has at most one branch per parent, so "is the note cloned into
this parent" is a boolean whose state is the presence of that branch.
All three operations here are idempotent.
"""

import logging
from typing import Optional

from arbor.cache import EntityCache, new_entity_id
from arbor.core.tree import get_end_position, validate_parent_child
from arbor.types import Branch, NoteNotFoundError, NoteType, ValidationError

logger = logging.getLogger(__name__)


def ensure_note_is_present_in_parent(
    cache: EntityCache, note_id: str, parent_note_id: str, prefix: Optional[str] = None
) -> Branch:
    """Return the branch between note and parent, creating it if missing.

    An existing branch is returned unchanged (its prefix is not updated).

    Raises:
        NoteNotFoundError: Either note does not exist.
        ValidationError: The parent is a search note, or the clone would
            create a cycle.
    """
    if cache.get_note(note_id) is None:
        raise NoteNotFoundError(note_id)
    parent_note = cache.get_note(parent_note_id)
    if parent_note is None:
        raise NoteNotFoundError(parent_note_id, role="Parent note")

    existing = cache.get_branch_from_child_and_parent(note_id, parent_note_id)
    if existing is not None:
        return existing

    if parent_note.type == NoteType.SEARCH.value:
        raise ValidationError("Can't clone into a search note")
    validate_parent_child(cache, parent_note_id, note_id)

    with cache.store.transactional():
        branch = cache.save_branch(
            Branch(
                branch_id=new_entity_id(),
                note_id=note_id,
                parent_note_id=parent_note_id,
                note_position=get_end_position(cache, parent_note_id),
                prefix=prefix,
                is_expanded=False,
            )
        )

    logger.info(f"Ensured note '{note_id}' is in parent '{parent_note_id}' with prefix '{prefix}'")
    return branch


def ensure_note_is_absent_from_parent(
    cache: EntityCache, note_id: str, parent_note_id: str
) -> None:
    """Remove the branch between note and parent if there is one.

    Raises:
        ValidationError: The branch is the note's only placement; removing
            it would orphan the note.
    """
    branch = cache.get_branch_from_child_and_parent(note_id, parent_note_id)
    if branch is None:
        return

    if len(cache.get_parent_branches(note_id)) <= 1:
        raise ValidationError(
            f"Cannot remove branch {branch.branch_id} between child '{note_id}' and parent "
            f"'{parent_note_id}' because this would delete the note as well."
        )

    with cache.store.transactional():
        cache.delete_branch(branch)

    logger.info(f"Ensured note '{note_id}' is NOT in parent '{parent_note_id}'")


def toggle_note_in_parent(
    cache: EntityCache,
    present: bool,
    note_id: str,
    parent_note_id: str,
    prefix: Optional[str] = None,
) -> None:
    """Make the branch between note and parent exist (``present``) or not."""
    if present:
        ensure_note_is_present_in_parent(cache, note_id, parent_note_id, prefix)
    else:
        ensure_note_is_absent_from_parent(cache, note_id, parent_note_id)
