"""
arbor - scripting facade over a note graph.

Notes, branches (clones) and attributes kept in SQLite with an
in-memory entity cache.
"""

try:
    from importlib.metadata import version

    __version__ = version("arbor")
except Exception:
    __version__ = "0.0.0"

# submodules read __version__ at import time
from .cache import EntityCache  # noqa: E402
from .core import open_cache  # noqa: E402
from .script_api import ScriptApi  # noqa: E402

__all__ = ["EntityCache", "ScriptApi", "open_cache"]
