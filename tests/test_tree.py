"""Tests for arbor.core.tree: moving and sorting branches."""

import pytest

from arbor.core.special_notes import ROOT_NOTE_ID
from arbor.core.tree import POSITION_STEP, get_end_position, move_branch_to_note, sort_notes
from arbor.types import NoteNotFoundError, ValidationError


class TestEndPosition:
    def test_empty_parent(self, cache, make_note):
        folder = make_note()
        assert get_end_position(cache, folder.note_id) == POSITION_STEP

    def test_after_last_child(self, cache, make_note):
        folder = make_note()
        make_note(parent_note_id=folder.note_id, note_position=75)
        assert get_end_position(cache, folder.note_id) == 75 + POSITION_STEP


class TestMoveBranch:
    def test_keeps_branch_id(self, cache, make_note):
        note = make_note()
        target = make_note(title="Target")
        branch = cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID)

        moved = move_branch_to_note(cache, branch, target.note_id)

        assert moved.branch_id == branch.branch_id
        assert cache.get_parent_note_ids(note.note_id) == [target.note_id]
        assert cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID) is None
        assert note.note_id not in [b.note_id for b in cache.get_child_branches(ROOT_NOTE_ID)]

    def test_same_parent_is_noop(self, cache, make_note):
        note = make_note()
        branch = cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID)
        position = branch.note_position
        move_branch_to_note(cache, branch, ROOT_NOTE_ID)
        assert branch.note_position == position

    def test_missing_parent(self, cache, make_note):
        note = make_note()
        branch = cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID)
        with pytest.raises(NoteNotFoundError):
            move_branch_to_note(cache, branch, "ghost")

    def test_into_own_subtree(self, cache, make_note):
        parent = make_note()
        child = make_note(parent_note_id=parent.note_id)
        branch = cache.get_branch_from_child_and_parent(parent.note_id, ROOT_NOTE_ID)
        with pytest.raises(ValidationError, match="cycle"):
            move_branch_to_note(cache, branch, child.note_id)

    def test_duplicate_placement(self, cache, make_note):
        from arbor.core.cloning import ensure_note_is_present_in_parent

        note = make_note()
        target = make_note(title="Target")
        ensure_note_is_present_in_parent(cache, note.note_id, target.note_id)
        branch = cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID)
        with pytest.raises(ValidationError, match="already present"):
            move_branch_to_note(cache, branch, target.note_id)


class TestSortNotes:
    def _titles(self, cache, parent_note_id):
        return [cache.get_note(b.note_id).title for b in cache.get_child_branches(parent_note_id)]

    def test_by_title_case_insensitive(self, cache, make_note):
        folder = make_note()
        for title in ["banana", "Apple", "cherry"]:
            make_note(parent_note_id=folder.note_id, title=title)
        sort_notes(cache, folder.note_id)
        assert self._titles(cache, folder.note_id) == ["Apple", "banana", "cherry"]

    def test_reverse(self, cache, make_note):
        folder = make_note()
        for title in ["a", "c", "b"]:
            make_note(parent_note_id=folder.note_id, title=title)
        sort_notes(cache, folder.note_id, reverse=True)
        assert self._titles(cache, folder.note_id) == ["c", "b", "a"]

    def test_by_label_missing_last(self, cache, make_note):
        folder = make_note()
        unlabelled = make_note(parent_note_id=folder.note_id, title="none")
        second = make_note(parent_note_id=folder.note_id, title="second")
        first = make_note(parent_note_id=folder.note_id, title="first")
        cache.set_label(second.note_id, "order", "2")
        cache.set_label(first.note_id, "order", "1")

        sort_notes(cache, folder.note_id, sort_by="order", reverse=True)

        ids = [b.note_id for b in cache.get_child_branches(folder.note_id)]
        assert ids == [second.note_id, first.note_id, unlabelled.note_id]

    def test_folders_first(self, cache, make_note):
        folder = make_note()
        make_note(parent_note_id=folder.note_id, title="a-leaf")
        sub = make_note(parent_note_id=folder.note_id, title="z-folder")
        make_note(parent_note_id=sub.note_id, title="inner")
        sort_notes(cache, folder.note_id, folders_first=True)
        assert self._titles(cache, folder.note_id) == ["z-folder", "a-leaf"]

    def test_positions_persist(self, cache, store, make_note):
        from arbor.cache import EntityCache

        folder = make_note()
        for title in ["b", "a"]:
            make_note(parent_note_id=folder.note_id, title=title)
        sort_notes(cache, folder.note_id)
        fresh = EntityCache(store).load()
        assert self._titles(fresh, folder.note_id) == ["a", "b"]

    def test_missing_parent(self, cache):
        with pytest.raises(NoteNotFoundError):
            sort_notes(cache, "ghost")
