"""Tests for arbor.cache.EntityCache."""

import pytest

from arbor.cache import EntityCache, new_entity_id
from arbor.core.special_notes import ROOT_NOTE_ID
from arbor.types import EntityReferenceError


class TestEntityIds:
    def test_shape(self):
        entity_id = new_entity_id()
        assert len(entity_id) == 12
        assert entity_id.isalnum()

    def test_unique(self):
        assert len({new_entity_id() for _ in range(200)}) == 200


class TestLookup:
    def test_get_note_or_throw(self, cache):
        assert cache.get_note_or_throw(ROOT_NOTE_ID).note_id == ROOT_NOTE_ID
        with pytest.raises(EntityReferenceError):
            cache.get_note_or_throw("missing")

    def test_get_note_none_id(self, cache):
        assert cache.get_note(None) is None
        assert cache.get_branch(None) is None
        assert cache.get_attribute(None) is None

    def test_child_branches_sorted_by_position(self, cache, make_note):
        a = make_note(title="A", note_position=30)
        b = make_note(title="B", note_position=20)
        parent = make_note(title="P")
        c = make_note(parent_note_id=parent.note_id, title="C", note_position=5)
        d = make_note(parent_note_id=parent.note_id, title="D", note_position=1)
        child_ids = [br.note_id for br in cache.get_child_branches(parent.note_id)]
        assert child_ids == [d.note_id, c.note_id]
        root_children = [br.note_id for br in cache.get_child_branches(ROOT_NOTE_ID)]
        assert root_children.index(b.note_id) < root_children.index(a.note_id)

    def test_is_ancestor(self, cache, make_note):
        parent = make_note(title="P")
        child = make_note(parent_note_id=parent.note_id, title="C")
        assert cache.is_ancestor(ROOT_NOTE_ID, child.note_id)
        assert cache.is_ancestor(parent.note_id, child.note_id)
        assert cache.is_ancestor(child.note_id, child.note_id)
        assert not cache.is_ancestor(child.note_id, parent.note_id)


class TestAttributes:
    def test_set_label_updates_in_place(self, cache, make_note):
        note = make_note()
        first = cache.set_label(note.note_id, "color", "red")
        second = cache.set_label(note.note_id, "color", "blue")
        assert first.attribute_id == second.attribute_id
        assert cache.get_label_value(note.note_id, "color") == "blue"

    def test_add_attribute_positions_increase(self, cache, make_note):
        note = make_note()
        a = cache.add_attribute(note.note_id, "label", "a")
        b = cache.add_attribute(note.note_id, "label", "b")
        assert b.position > a.position

    def test_add_attribute_to_missing_note(self, cache):
        with pytest.raises(EntityReferenceError):
            cache.add_attribute("missing", "label", "x")

    def test_remove_label_by_value(self, cache, make_note):
        note = make_note()
        cache.add_attribute(note.note_id, "label", "tag", "one")
        cache.add_attribute(note.note_id, "label", "tag", "two")
        assert cache.remove_label(note.note_id, "tag", "one") == 1
        remaining = cache.get_owned_attributes(note.note_id, "label", "tag")
        assert [a.value for a in remaining] == ["two"]

    def test_relation_target(self, cache, make_note):
        note = make_note()
        target = make_note(title="Target")
        cache.set_relation(note.note_id, "target", target.note_id)
        assert cache.get_relation_target(note.note_id, "target") == target.note_id
        assert cache.remove_relation(note.note_id, "target") == 1
        assert cache.get_relation_target(note.note_id, "target") is None

    def test_notes_with_label(self, cache, make_note):
        a = make_note(title="A")
        b = make_note(title="B")
        cache.set_label(a.note_id, "kind", "x")
        cache.set_label(b.note_id, "kind", "y")
        assert {n.note_id for n in cache.get_notes_with_label("kind")} == {a.note_id, b.note_id}
        assert [n.note_id for n in cache.get_notes_with_label("kind", "y")] == [b.note_id]


class TestReload:
    def test_reload_matches_memory(self, cache, make_note, store):
        note = make_note(title="Persisted", content="<p>x</p>")
        cache.set_label(note.note_id, "k", "v")

        fresh = EntityCache(store).load()
        assert fresh.get_note(note.note_id).title == "Persisted"
        assert fresh.get_label_value(note.note_id, "k") == "v"
        assert fresh.get_parent_note_ids(note.note_id) == [ROOT_NOTE_ID]
        assert fresh.get_content(note.note_id) == "<p>x</p>"

    def test_rollback_rehydrates(self, cache, make_note):
        with pytest.raises(RuntimeError):
            with cache.store.transactional():
                note = make_note(title="Doomed")
                assert cache.get_note(note.note_id) is not None
                raise RuntimeError("abort")
        assert cache.get_note(note.note_id) is None
        assert cache.get_parent_branches(note.note_id) == []

    def test_deleted_branch_not_reloaded(self, cache, make_note, store):
        note = make_note()
        other = make_note(title="Other")
        from arbor.core.cloning import ensure_note_is_present_in_parent

        branch = ensure_note_is_present_in_parent(cache, note.note_id, other.note_id)
        cache.delete_branch(branch)

        fresh = EntityCache(store).load()
        assert fresh.get_branch(branch.branch_id) is None
        assert fresh.get_branch_from_child_and_parent(note.note_id, other.note_id) is None
