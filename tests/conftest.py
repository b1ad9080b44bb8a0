"""
Pytest fixtures and test configuration for arbor tests.
"""

import logging
from typing import List

import pytest

from arbor.cache import EntityCache
from arbor.config import get_settings
from arbor.core.special_notes import ROOT_NOTE_ID, ensure_special_notes
from arbor.script_api import ScriptApi
from arbor.storage import SQLiteStore


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep every test's data dir, logs and settings inside tmp_path."""
    data_dir = tmp_path / "arbor-home"
    monkeypatch.setenv("ARBOR_DATA_DIR", str(data_dir))
    get_settings.cache_clear()
    yield data_dir
    get_settings.cache_clear()
    logger = logging.getLogger("arbor")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def store(tmp_path):
    """SQLite store on a temp file."""
    s = SQLiteStore(db_path=tmp_path / "test.db")
    yield s
    s.close()


@pytest.fixture
def bare_cache(store):
    """Loaded cache with an empty database."""
    return EntityCache(store).load()


@pytest.fixture
def cache(bare_cache):
    """Loaded cache with root and the hidden launcher subtree."""
    ensure_special_notes(bare_cache)
    return bare_cache


class RecordingBroadcaster:
    """Transport double that remembers every broadcast message."""

    def __init__(self):
        self.messages: List[dict] = []

    def broadcast(self, message: dict) -> None:
        self.messages.append(message)


class ManualTimer:
    """Timer double: starts nothing, fires when the test says so."""

    created: List["ManualTimer"] = []

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.fired = False
        ManualTimer.created.append(self)

    def start(self):
        self.started = True

    def fire(self):
        self.fired = True
        self.callback()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def manual_timers():
    """List collecting every ManualTimer created during the test."""
    ManualTimer.created = []
    yield ManualTimer.created
    ManualTimer.created = []


@pytest.fixture
def api(cache):
    """Script API started from the root note, without a scheduler."""
    return ScriptApi(cache, start_note_id=ROOT_NOTE_ID)


@pytest.fixture
def make_note(cache):
    """Factory creating notes through the core service (default parent: root)."""
    from arbor.core.notes import create_new_note

    def _make(parent_note_id=ROOT_NOTE_ID, title="Note", note_type="text", **kwargs):
        params = {"parent_note_id": parent_note_id, "title": title, "type": note_type}
        params.update(kwargs)
        return create_new_note(cache, params).note

    return _make


@pytest.fixture
def timer_factory(manual_timers):
    """Timer factory for SpacedUpdate/NotificationScheduler; see ``manual_timers``."""
    return ManualTimer


@pytest.fixture
def scheduler(broadcaster, timer_factory):
    """Notification scheduler on manual timers, broadcasting to a recorder."""
    from arbor.notifications import NotificationScheduler

    return NotificationScheduler(broadcaster, timer_factory=timer_factory)
