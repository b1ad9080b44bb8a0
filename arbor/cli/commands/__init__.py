"""CLI command modules for arbor.

Each module contains related command handlers used by __main__.py.
"""

from arbor.cli.commands.cloning import cmd_clone, cmd_unclone
from arbor.cli.commands.launcher import cmd_launcher
from arbor.cli.commands.notes import cmd_note, cmd_show, cmd_tree
from arbor.cli.commands.serve import cmd_serve

__all__ = [
    "cmd_clone",
    "cmd_unclone",
    "cmd_launcher",
    "cmd_note",
    "cmd_show",
    "cmd_tree",
    "cmd_serve",
]
