"""Note and tree commands for arbor CLI."""

import json
import logging
from typing import TYPE_CHECKING, Optional

from arbor.cli.commands.helpers import print_json, validate_input
from arbor.types import ValidationError

if TYPE_CHECKING:
    from arbor import ScriptApi

logger = logging.getLogger(__name__)


def cmd_note(args, api: "ScriptApi"):
    """Create a note (with attributes) under a parent."""
    title = validate_input(args.title, "title", 500)
    content = args.content or ""
    if args.json:
        try:
            content = json.loads(content) if content else {}
        except json.JSONDecodeError as e:
            raise ValidationError(f"Content is not valid JSON: {e}") from e

    options = {"json": args.json, "attributes": (args.label or []) + (args.relation or [])}
    if args.type:
        options["type"] = args.type
    if args.prefix:
        options["prefix"] = validate_input(args.prefix, "prefix", 200)

    result = api.create_note(args.parent, title, content, options)
    print(f"✓ Note created: {result.note.note_id}")
    print(f"  Type: {result.note.type} ({result.note.mime})")
    print(f"  Branch: {result.branch.branch_id} under {result.branch.parent_note_id}")


def _print_subtree(api: "ScriptApi", note_id: str, depth: int, max_depth: Optional[int], prefix=None):
    note = api.get_note(note_id)
    if note is None:
        return
    label = f"{prefix} - {note.title}" if prefix else note.title
    print(f"{'  ' * depth}{label} [{note.note_id}] ({note.type})")
    if max_depth is not None and depth >= max_depth:
        return
    for branch in api.cache.get_child_branches(note_id):
        _print_subtree(api, branch.note_id, depth + 1, max_depth, branch.prefix)


def cmd_tree(args, api: "ScriptApi"):
    """Print the subtree below a note."""
    if api.get_note(args.note) is None:
        print(f"✗ Note '{args.note}' not found")
        return
    if args.sort:
        api.sort_notes(args.note, {"sort_by": args.sort, "folders_first": args.folders_first})
    _print_subtree(api, args.note, 0, args.depth)


def cmd_show(args, api: "ScriptApi"):
    """Show one note with its placements and attributes."""
    note = api.get_note(args.note)
    if note is None:
        print(f"✗ Note '{args.note}' not found")
        return
    cache = api.cache
    data = {
        "note_id": note.note_id,
        "title": note.title,
        "type": note.type,
        "mime": note.mime,
        "parents": [
            {"branch_id": b.branch_id, "parent_note_id": b.parent_note_id, "prefix": b.prefix}
            for b in cache.get_parent_branches(note.note_id)
        ],
        "attributes": [
            {"type": a.type, "name": a.name, "value": a.value, "inheritable": a.is_inheritable}
            for a in cache.get_owned_attributes(note.note_id)
        ],
    }
    if args.json:
        print_json(data)
        return
    print(f"{note.title} [{note.note_id}] ({note.type}, {note.mime or 'no mime'})")
    for parent in data["parents"]:
        print(f"  in {parent['parent_note_id']}" + (f" as '{parent['prefix']}'" if parent["prefix"] else ""))
    for attr in data["attributes"]:
        sigil = "#" if attr["type"] == "label" else "~"
        print(f"  {sigil}{attr['name']}" + (f"={attr['value']}" if attr["value"] else ""))
