"""
arbor CLI - command-line access to the note graph.

Usage:
    arbor init
    arbor note PARENT TITLE [--content C] [--json] [--type T] [--label L]... [--relation R]...
    arbor show NOTE [--json]
    arbor tree [NOTE] [--depth N] [--sort BY] [--folders-first]
    arbor clone NOTE PARENT [--prefix P]
    arbor unclone NOTE PARENT
    arbor launcher ID --type TYPE --title TITLE [--visible] [--icon I] [--shortcut S]
                   [--target N | --script N | --widget N]
    arbor serve [--host H] [--port P]
"""

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from arbor import ScriptApi, open_cache
from arbor.cli.commands import (
    cmd_clone,
    cmd_launcher,
    cmd_note,
    cmd_serve,
    cmd_show,
    cmd_tree,
    cmd_unclone,
)
from arbor.cli.commands.helpers import parse_label, parse_relation
from arbor.config import get_settings
from arbor.core.special_notes import ROOT_NOTE_ID
from arbor.logging_config import setup_arbor_logging
from arbor.types import VALID_LAUNCHER_TYPE_VALUES, VALID_NOTE_TYPE_VALUES, ArborError

logger = logging.getLogger(__name__)


def cmd_init(args, api: ScriptApi):
    """Report the initialized database."""
    info = api.get_app_info()
    print(f"✓ Database ready in {info['data_directory']} (schema v{info['db_version']})")
    print(f"  Notes: {len(api.cache.notes)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="arbor", description="Scripting access to a note graph")
    parser.add_argument("--db", type=Path, help="Database file (default: configured data dir)")
    parser.add_argument("--log-level", dest="log_level", help="Log level (default from settings)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create the database and well-known notes")

    # note
    p_note = subparsers.add_parser("note", help="Create a note")
    p_note.add_argument("parent", help="Parent note ID")
    p_note.add_argument("title", help="Note title")
    p_note.add_argument("--content", "-c", help="Note content")
    p_note.add_argument("--json", "-j", action="store_true", help="Content is JSON data")
    p_note.add_argument("--type", choices=sorted(VALID_NOTE_TYPE_VALUES), help="Note type")
    p_note.add_argument("--prefix", help="Branch prefix")
    p_note.add_argument(
        "--label", "-l", action="append", type=parse_label, help="Label name[=value] (repeatable)"
    )
    p_note.add_argument(
        "--relation", "-r", action="append", type=parse_relation, help="Relation name=NOTE_ID"
    )

    # show
    p_show = subparsers.add_parser("show", help="Show a note")
    p_show.add_argument("note", help="Note ID")
    p_show.add_argument("--json", "-j", action="store_true")

    # tree
    p_tree = subparsers.add_parser("tree", help="Print a subtree")
    p_tree.add_argument("note", nargs="?", default=ROOT_NOTE_ID, help="Note ID (default: root)")
    p_tree.add_argument("--depth", "-d", type=int, help="Maximum depth")
    p_tree.add_argument("--sort", help="Sort children first: title, dateCreated, dateModified or a label")
    p_tree.add_argument("--folders-first", dest="folders_first", action="store_true")

    # clone / unclone
    p_clone = subparsers.add_parser("clone", help="Place a note under another parent")
    p_clone.add_argument("note", help="Note ID")
    p_clone.add_argument("parent", help="Parent note ID")
    p_clone.add_argument("--prefix", help="Branch prefix")

    p_unclone = subparsers.add_parser("unclone", help="Remove a note from a parent")
    p_unclone.add_argument("note", help="Note ID")
    p_unclone.add_argument("parent", help="Parent note ID")

    # launcher
    p_launcher = subparsers.add_parser("launcher", help="Create or update a launcher")
    p_launcher.add_argument("id", help="Launcher ID (alphanumeric, at least 6 characters)")
    p_launcher.add_argument("--type", "-t", required=True, choices=sorted(VALID_LAUNCHER_TYPE_VALUES))
    p_launcher.add_argument("--title", required=True)
    p_launcher.add_argument("--visible", action="store_true", help="Put in visible launchers")
    p_launcher.add_argument("--icon", help="Boxicon name, e.g. bx-time")
    p_launcher.add_argument("--shortcut", help="Keyboard shortcut, e.g. ctrl+e")
    p_launcher.add_argument("--target", help="Target note ID (type note)")
    p_launcher.add_argument("--script", help="Script note ID (type script)")
    p_launcher.add_argument("--widget", help="Widget note ID (type customWidget)")

    # serve
    p_serve = subparsers.add_parser("serve", help="Run the websocket server")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)

    return parser


COMMANDS = {
    "init": cmd_init,
    "note": cmd_note,
    "show": cmd_show,
    "tree": cmd_tree,
    "clone": cmd_clone,
    "unclone": cmd_unclone,
    "launcher": cmd_launcher,
    "serve": cmd_serve,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_arbor_logging(args.log_level or settings.log_level)

    try:
        cache = open_cache(args.db)
    except (OSError, ValueError, sqlite3.Error) as e:
        logger.error(f"Failed to open database: {e}")
        print(f"✗ Failed to open database: {e}", file=sys.stderr)
        sys.exit(1)

    api = ScriptApi(cache, start_note_id=ROOT_NOTE_ID, settings=settings)

    try:
        COMMANDS[args.command](args, api)
    except ArborError as e:
        logger.error(f"Command failed: {e}")
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
