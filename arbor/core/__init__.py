"""Core note graph operations.

Modules:
- ``notes``: note and composite (note + branch + attributes) creation
- ``cloning``: idempotent branch presence toggles
- ``tree``: parent/child validation, moving and sorting branches
- ``special_notes``: root and hidden launcher subtree
- ``launchers``: launcher reconciliation
"""

import logging
from pathlib import Path
from typing import Optional

from arbor.cache import EntityCache
from arbor.config import get_settings
from arbor.core.special_notes import ensure_special_notes
from arbor.storage import SQLiteStore

logger = logging.getLogger(__name__)


def open_cache(db_path: Optional[Path] = None, initialize: bool = True) -> EntityCache:
    """Open the store, hydrate the entity cache and create the well-known notes.

    Args:
        db_path: Database file; defaults to the configured data directory.
        initialize: Create root and hidden notes when missing.
    """
    store = SQLiteStore(db_path or get_settings().db_path)
    cache = EntityCache(store).load()
    if initialize:
        ensure_special_notes(cache)
    return cache


__all__ = ["open_cache"]
