"""Clone commands for arbor CLI."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arbor import ScriptApi

logger = logging.getLogger(__name__)


def cmd_clone(args, api: "ScriptApi"):
    """Make sure a note is placed under a parent."""
    branch = api.ensure_note_is_present_in_parent(args.note, args.parent, args.prefix)
    print(f"✓ Note {args.note} is in {args.parent} (branch {branch.branch_id})")


def cmd_unclone(args, api: "ScriptApi"):
    """Make sure a note is not placed under a parent."""
    api.ensure_note_is_absent_from_parent(args.note, args.parent)
    print(f"✓ Note {args.note} is not in {args.parent}")
