"""Logging configuration for arbor.

Application logs go to ``<data dir>/logs/local-YYYY-MM-DD.log``. Entity
mutations that are worth auditing (note creation, clone toggles, launcher
reconciliation) are additionally appended to a plain event log,
``entity-events-YYYY-MM-DD.log``.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from arbor.config import get_arbor_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def get_log_dir() -> Path:
    log_dir = get_arbor_home() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_arbor_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure the ``arbor`` logger.

    Safe to call more than once; handlers are only attached the first time.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        log_dir: Override for the log directory.

    Returns:
        The configured ``arbor`` logger.
    """
    level_name = (level or "INFO").upper()
    if level_name not in _VALID_LEVELS:
        level_name = "INFO"
    log_level = getattr(logging, level_name)

    logger = logging.getLogger("arbor")
    logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_dir = log_dir or get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"local-{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    if log_level == logging.DEBUG and not has_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def log_entity_event(event_type: str, details: str, log_dir: Optional[Path] = None) -> None:
    """Append one line to the dated entity event log.

    Line format: ``<timestamp> | <event_type> | <details>``.
    """
    log_dir = log_dir or get_log_dir()
    event_file = log_dir / f"entity-events-{datetime.now().strftime('%Y-%m-%d')}.log"
    timestamp = datetime.now().isoformat(timespec="seconds")
    try:
        with open(event_file, "a", encoding="utf-8") as f:
            f.write(f"{timestamp} | {event_type} | {details}\n")
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not write entity event: {e}")


def log_note_created(note_id: str, parent_note_id: str, note_type: str) -> None:
    log_entity_event("note-created", f"note={note_id}, parent={parent_note_id}, type={note_type}")


def log_clone_change(note_id: str, parent_note_id: str, present: bool) -> None:
    action = "clone" if present else "unclone"
    log_entity_event(action, f"note={note_id}, parent={parent_note_id}")


def log_launcher_reconciled(note_id: str, created: bool, changes: list) -> None:
    summary = ", ".join(changes) if changes else "no changes"
    log_entity_event(
        "launcher-created" if created else "launcher-updated", f"note={note_id}, {summary}"
    )
