"""Tree structure operations: parent/child validation, moving and sorting."""

import logging
from typing import Optional

from arbor.cache import EntityCache
from arbor.types import Branch, Note, NoteNotFoundError, ValidationError

logger = logging.getLogger(__name__)

POSITION_STEP = 10

SORT_BY_TITLE = "title"
SORT_BY_DATE_CREATED = "dateCreated"
SORT_BY_DATE_MODIFIED = "dateModified"


def validate_parent_child(cache: EntityCache, parent_note_id: str, child_note_id: str) -> None:
    """Check that ``child_note_id`` may be placed under ``parent_note_id``.

    Raises:
        ValidationError: The child would end up inside its own subtree.
    """
    if child_note_id == "root":
        raise ValidationError("The root note cannot be placed under another note.")
    if cache.is_ancestor(child_note_id, parent_note_id):
        raise ValidationError(
            f"Placing note '{child_note_id}' under '{parent_note_id}' would create a cycle."
        )


def get_end_position(cache: EntityCache, parent_note_id: str) -> int:
    children = cache.get_child_branches(parent_note_id)
    return max((b.note_position for b in children), default=0) + POSITION_STEP


def move_branch_to_note(cache: EntityCache, branch: Branch, new_parent_note_id: str) -> Branch:
    """Relocate an existing branch under another parent, keeping its id.

    The branch is placed after the new parent's last child.
    """
    if branch.parent_note_id == new_parent_note_id:
        return branch

    if cache.get_note(new_parent_note_id) is None:
        raise NoteNotFoundError(new_parent_note_id, role="Parent note")
    validate_parent_child(cache, new_parent_note_id, branch.note_id)
    if cache.get_branch_from_child_and_parent(branch.note_id, new_parent_note_id):
        raise ValidationError(
            f"Note '{branch.note_id}' is already present in '{new_parent_note_id}'."
        )

    old_parent_note_id = branch.parent_note_id
    cache.relocate_branch(branch, new_parent_note_id, get_end_position(cache, new_parent_note_id))

    logger.info(
        f"Moved branch {branch.branch_id} of note '{branch.note_id}' "
        f"from '{old_parent_note_id}' to '{new_parent_note_id}'"
    )
    return branch


def _sort_key(cache: EntityCache, note: Note, sort_by: str):
    if sort_by == SORT_BY_TITLE:
        return (0, note.title.lower())
    if sort_by == SORT_BY_DATE_CREATED:
        return (0, note.date_created or "")
    if sort_by == SORT_BY_DATE_MODIFIED:
        return (0, note.date_modified or "")
    # label name: notes without the label go last
    value = cache.get_label_value(note.note_id, sort_by)
    return (1, "") if value is None else (0, value.lower())


def sort_notes(
    cache: EntityCache,
    parent_note_id: str,
    sort_by: Optional[str] = SORT_BY_TITLE,
    reverse: bool = False,
    folders_first: bool = False,
) -> None:
    """Reorder the children of a note by rewriting their positions.

    Args:
        sort_by: ``title``, ``dateCreated``, ``dateModified`` or a label name.
        reverse: Descending order. Notes missing a sort label stay last.
        folders_first: Notes with children come before leaf notes.
    """
    parent = cache.get_note(parent_note_id)
    if parent is None:
        raise NoteNotFoundError(parent_note_id)
    sort_by = sort_by or SORT_BY_TITLE

    branches = cache.get_child_branches(parent_note_id)
    keyed = []
    for branch in branches:
        note = cache.get_note(branch.note_id)
        if note is None:
            continue
        missing, value = _sort_key(cache, note, sort_by)
        keyed.append((missing, value, branch, note))

    keyed.sort(key=lambda item: item[1], reverse=reverse)
    # stable sorts: missing labels last, then folders first
    keyed.sort(key=lambda item: item[0])
    if folders_first:
        keyed.sort(key=lambda item: 0 if cache.has_children(item[3].note_id) else 1)

    with cache.store.transactional():
        for index, (_, _, branch, _) in enumerate(keyed, start=1):
            position = index * POSITION_STEP
            if branch.note_position != position:
                branch.note_position = position
                cache.save_branch(branch)

    logger.debug(f"Sorted {len(keyed)} children of '{parent_note_id}' by {sort_by}")

