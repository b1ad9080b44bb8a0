"""Well-known notes: the root and the hidden launcher subtree.

Layout::

    root
    └── _hidden
        ├── _lbRoot
        │   ├── _lbVisibleLaunchers
        │   └── _lbAvailableLaunchers
        └── _lbTemplates
            ├── _lbTplLauncherNote
            ├── _lbTplLauncherScript
            └── _lbTplLauncherWidget
"""

import logging
from typing import Optional

from arbor.cache import EntityCache
from arbor.core.notes import NoteParams, create_new_note
from arbor.types import ConsistencyError, LauncherType, Note, NoteAndBranch, NoteType

logger = logging.getLogger(__name__)

ROOT_NOTE_ID = "root"
HIDDEN_NOTE_ID = "_hidden"
LAUNCHER_ROOT_NOTE_ID = "_lbRoot"
VISIBLE_LAUNCHERS_NOTE_ID = "_lbVisibleLaunchers"
AVAILABLE_LAUNCHERS_NOTE_ID = "_lbAvailableLaunchers"
LAUNCHER_TEMPLATES_NOTE_ID = "_lbTemplates"

LAUNCHER_TEMPLATES = {
    LauncherType.NOTE.value: "_lbTplLauncherNote",
    LauncherType.SCRIPT.value: "_lbTplLauncherScript",
    LauncherType.CUSTOM_WIDGET.value: "_lbTplLauncherWidget",
}

DEFAULT_LAUNCHER_TITLES = {
    LauncherType.NOTE.value: "Note Launcher",
    LauncherType.SCRIPT.value: "Script Launcher",
    LauncherType.CUSTOM_WIDGET.value: "Widget Launcher",
}

# (note_id, parent_note_id, title, type)
_HIDDEN_SUBTREE = [
    (HIDDEN_NOTE_ID, ROOT_NOTE_ID, "Hidden Notes", NoteType.BOOK.value),
    (LAUNCHER_ROOT_NOTE_ID, HIDDEN_NOTE_ID, "Launch Bar", NoteType.BOOK.value),
    (VISIBLE_LAUNCHERS_NOTE_ID, LAUNCHER_ROOT_NOTE_ID, "Visible Launchers", NoteType.BOOK.value),
    (
        AVAILABLE_LAUNCHERS_NOTE_ID,
        LAUNCHER_ROOT_NOTE_ID,
        "Available Launchers",
        NoteType.BOOK.value,
    ),
    (LAUNCHER_TEMPLATES_NOTE_ID, HIDDEN_NOTE_ID, "Launch Bar Templates", NoteType.BOOK.value),
    ("_lbTplLauncherNote", LAUNCHER_TEMPLATES_NOTE_ID, "Note Launcher", NoteType.BOOK.value),
    ("_lbTplLauncherScript", LAUNCHER_TEMPLATES_NOTE_ID, "Script Launcher", NoteType.BOOK.value),
    ("_lbTplLauncherWidget", LAUNCHER_TEMPLATES_NOTE_ID, "Widget Launcher", NoteType.BOOK.value),
]


def get_launcher_container_id(is_visible: bool) -> str:
    return VISIBLE_LAUNCHERS_NOTE_ID if is_visible else AVAILABLE_LAUNCHERS_NOTE_ID


def ensure_special_notes(cache: EntityCache) -> int:
    """Create the root note and hidden subtree where missing.

    Returns:
        Number of notes created (0 on an already initialized database).
    """
    created = 0
    with cache.store.transactional():
        if cache.get_note(ROOT_NOTE_ID) is None:
            cache.save_note(
                Note(note_id=ROOT_NOTE_ID, title="root", type=NoteType.TEXT.value), content=""
            )
            created += 1

        for note_id, parent_note_id, title, note_type in _HIDDEN_SUBTREE:
            if cache.get_note(note_id) is not None:
                continue
            create_new_note(
                cache,
                NoteParams(
                    note_id=note_id,
                    parent_note_id=parent_note_id,
                    title=title,
                    type=note_type,
                ),
            )
            created += 1

    if created:
        logger.info(f"Created {created} special notes")
    return created


def create_launcher(
    cache: EntityCache,
    parent_note_id: str,
    launcher_type: str,
    note_id: Optional[str] = None,
) -> NoteAndBranch:
    """Create a blank launcher of the given kind under a launcher container."""
    template_note_id = LAUNCHER_TEMPLATES.get(launcher_type)
    if template_note_id is None:
        raise ConsistencyError(f"Unrecognized launcher type '{launcher_type}'")

    with cache.store.transactional():
        result = create_new_note(
            cache,
            NoteParams(
                note_id=note_id,
                parent_note_id=parent_note_id,
                title=DEFAULT_LAUNCHER_TITLES[launcher_type],
                type=NoteType.LAUNCHER.value,
                content="",
            ),
        )
        cache.set_label(result.note.note_id, "launcherType", launcher_type)
        cache.set_relation(result.note.note_id, "template", template_note_id)

    logger.debug(f"Created {launcher_type} launcher {result.note.note_id} in {parent_note_id}")
    return result
