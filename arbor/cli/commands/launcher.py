"""Launcher commands for arbor CLI."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arbor import ScriptApi

logger = logging.getLogger(__name__)


def cmd_launcher(args, api: "ScriptApi"):
    """Create or update a launch bar launcher."""
    opts = {
        "id": args.id,
        "type": args.type,
        "title": args.title,
        "is_visible": args.visible,
        "icon": args.icon,
        "keyboard_shortcut": args.shortcut,
        "target_note_id": args.target,
        "script_note_id": args.script,
        "widget_note_id": args.widget,
    }
    result = api.create_or_update_launcher(opts)
    if result.created:
        print(f"✓ Launcher created: {result.note.note_id}")
    elif result.changes:
        print(f"✓ Launcher updated: {result.note.note_id} ({', '.join(result.changes)})")
    else:
        print(f"✓ Launcher up to date: {result.note.note_id}")
