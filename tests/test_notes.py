"""Tests for note creation: create_new_note and the composite builder."""

import json

import pytest

import arbor.core.notes as notes_module
from arbor.cache import EntityCache
from arbor.core.notes import (
    create_composite_note,
    create_new_note,
    derive_mime,
    dump_json_content,
)
from arbor.core.special_notes import ROOT_NOTE_ID
from arbor.types import EntityReferenceError, NoteNotFoundError, ValidationError


class TestCreateNewNote:
    def test_creates_note_and_branch(self, cache):
        note, branch = create_new_note(
            cache, {"parent_note_id": ROOT_NOTE_ID, "title": "Hello", "type": "text"}
        )
        assert note.mime == "text/html"
        assert branch.note_id == note.note_id
        assert branch.parent_note_id == ROOT_NOTE_ID
        assert cache.get_branch_from_child_and_parent(note.note_id, ROOT_NOTE_ID) is branch

    def test_camel_case_params(self, cache):
        result = create_new_note(
            cache, {"parentNoteId": ROOT_NOTE_ID, "title": "Camel", "type": "code", "isExpanded": True}
        )
        assert result.note.mime == "text/plain"
        assert result.branch.is_expanded is True

    def test_appends_after_last_child(self, cache):
        first = create_new_note(cache, {"parent_note_id": ROOT_NOTE_ID, "title": "1", "type": "text"})
        second = create_new_note(cache, {"parent_note_id": ROOT_NOTE_ID, "title": "2", "type": "text"})
        assert second.branch.note_position > first.branch.note_position

    def test_unknown_type_rejected(self, cache):
        with pytest.raises(ValidationError, match="Unknown note type"):
            create_new_note(cache, {"parent_note_id": ROOT_NOTE_ID, "title": "x", "type": "bogus"})

    def test_unknown_param_rejected(self, cache):
        with pytest.raises(ValidationError, match="unknown field"):
            create_new_note(
                cache,
                {"parent_note_id": ROOT_NOTE_ID, "title": "x", "type": "text", "color": "red"},
            )

    def test_missing_parent(self, cache):
        with pytest.raises(NoteNotFoundError):
            create_new_note(cache, {"parent_note_id": "nope", "title": "x", "type": "text"})

    def test_search_parent_refuses_children(self, cache, make_note):
        search = make_note(title="Search", note_type="search")
        with pytest.raises(ValidationError, match="not allowed"):
            make_note(parent_note_id=search.note_id)

    def test_explicit_id_must_be_free(self, cache, make_note):
        make_note(note_id="fixedId123")
        with pytest.raises(ValidationError, match="already exists"):
            make_note(note_id="fixedId123")


class TestDeriveMime:
    @pytest.mark.parametrize(
        "note_type, expected",
        [
            ("text", "text/html"),
            ("code", "text/plain"),
            ("relationMap", "application/json"),
            ("canvas", "application/json"),
            ("book", ""),
            ("file", "application/octet-stream"),
        ],
    )
    def test_defaults(self, note_type, expected):
        assert derive_mime(note_type) == expected

    def test_explicit_wins(self):
        assert derive_mime("code", "application/javascript") == "application/javascript"


class TestDumpJsonContent:
    def test_sorted_keys_tab_indent(self):
        assert dump_json_content({"b": 1, "a": 2}) == '{\n\t"a": 2,\n\t"b": 1\n}'

    def test_none_is_empty_object(self):
        assert dump_json_content(None) == "{}"

    @pytest.mark.parametrize("content", ["", [], 0])
    def test_falsy_is_empty_object(self, content):
        assert dump_json_content(content) == "{}"


class TestCompositeNote:
    """Tests for create_composite_note."""

    def test_text_under_text_parent(self, cache):
        result = create_composite_note(cache, ROOT_NOTE_ID, "Child", "<p>hi</p>")
        assert result.note.type == "text"
        assert result.note.mime == "text/html"
        assert cache.get_content(result.note.note_id) == "<p>hi</p>"

    def test_code_parent_propagates_mime(self, cache, make_note):
        parent = make_note(title="Script", note_type="code", mime="application/javascript")
        result = create_composite_note(cache, parent.note_id, "Child", "console.log(1)")
        assert result.note.type == "code"
        assert result.note.mime == "application/javascript"

    def test_explicit_type_and_mime_override(self, cache):
        result = create_composite_note(
            cache, ROOT_NOTE_ID, "Styled", "body {}", {"type": "code", "mime": "text/css"}
        )
        assert (result.note.type, result.note.mime) == ("code", "text/css")

    def test_json_forces_data_note(self, cache, make_note):
        parent = make_note(title="Script", note_type="code", mime="application/javascript")
        result = create_composite_note(
            cache, parent.note_id, "Data", {"z": [1, 2], "a": "x"}, {"json": True}
        )
        assert result.note.type == "code"
        assert result.note.mime == "application/json"
        stored = cache.get_content(result.note.note_id)
        assert json.loads(stored) == {"z": [1, 2], "a": "x"}
        assert stored.index('"a"') < stored.index('"z"')

    def test_attributes_created_in_order(self, cache, make_note):
        target = make_note(title="Target")
        result = create_composite_note(
            cache,
            ROOT_NOTE_ID,
            "With attrs",
            options={
                "attributes": [
                    {"type": "label", "name": "todo"},
                    {"type": "label", "name": "priority", "value": "high", "isInheritable": True},
                    {"type": "relation", "name": "seeAlso", "value": target.note_id},
                ]
            },
        )
        attrs = cache.get_owned_attributes(result.note.note_id)
        assert [a.name for a in attrs] == ["todo", "priority", "seeAlso"]
        assert attrs[1].is_inheritable is True
        assert cache.get_relation_target(result.note.note_id, "seeAlso") == target.note_id

    def test_prefix_and_expanded_on_branch(self, cache):
        result = create_composite_note(
            cache, ROOT_NOTE_ID, "Pref", options={"prefix": "2024", "isExpanded": True}
        )
        assert result.branch.prefix == "2024"
        assert result.branch.is_expanded is True

    def test_missing_parent_is_reference_and_validation_error(self, cache):
        with pytest.raises(NoteNotFoundError) as exc_info:
            create_composite_note(cache, "nope", "Orphan")
        assert isinstance(exc_info.value, ValidationError)
        assert isinstance(exc_info.value, EntityReferenceError)

    def test_unknown_option_rejected_before_mutation(self, cache):
        before = len(cache.notes)
        with pytest.raises(ValidationError, match="unknown field"):
            create_composite_note(cache, ROOT_NOTE_ID, "x", options={"colour": "red"})
        assert len(cache.notes) == before

    def test_bad_attribute_type_rejected_before_mutation(self, cache):
        before = len(cache.notes)
        with pytest.raises(ValidationError):
            create_composite_note(
                cache, ROOT_NOTE_ID, "x", options={"attributes": [{"type": "tag", "name": "a"}]}
            )
        assert len(cache.notes) == before

    def test_attribute_failure_rolls_back_everything(self, cache, store, monkeypatch):
        """A failure on the second attribute leaves no note, branch or attribute behind."""
        real_create_attribute = notes_module.create_attribute
        calls = []

        def failing_create_attribute(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("attribute store exploded")
            return real_create_attribute(*args, **kwargs)

        monkeypatch.setattr(notes_module, "create_attribute", failing_create_attribute)
        notes_before = set(cache.notes)
        branches_before = set(cache.branches)
        attributes_before = set(cache.attributes)

        with pytest.raises(RuntimeError, match="exploded"):
            create_composite_note(
                cache,
                ROOT_NOTE_ID,
                "Half built",
                options={"attributes": [{"type": "label", "name": "a"}, {"type": "label", "name": "b"}]},
            )

        assert set(cache.notes) == notes_before
        assert set(cache.branches) == branches_before
        assert set(cache.attributes) == attributes_before

        fresh = EntityCache(store).load()
        assert set(fresh.notes) == notes_before
        assert set(fresh.branches) == branches_before
        assert set(fresh.attributes) == attributes_before

    def test_json_default_content_is_empty_object(self, cache):
        result = create_composite_note(cache, ROOT_NOTE_ID, "Data", options={"json": True})
        assert json.loads(cache.get_content(result.note.note_id)) == {}

    def test_caught_failure_inside_outer_scope_leaves_nothing(self, cache, store, monkeypatch):
        real_create_attribute = notes_module.create_attribute
        calls = []

        def failing_create_attribute(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("attribute store exploded")
            return real_create_attribute(*args, **kwargs)

        monkeypatch.setattr(notes_module, "create_attribute", failing_create_attribute)
        notes_before = set(cache.notes)
        branches_before = set(cache.branches)
        attributes_before = set(cache.attributes)

        with store.transactional():
            kept = create_composite_note(cache, ROOT_NOTE_ID, "Kept")
            with pytest.raises(RuntimeError, match="exploded"):
                create_composite_note(
                    cache,
                    ROOT_NOTE_ID,
                    "Partial",
                    options={
                        "attributes": [{"type": "label", "name": "a"}, {"type": "label", "name": "b"}]
                    },
                )

        kept_id = kept.note.note_id
        titles = [note.title for note in cache.notes.values()]
        assert "Partial" not in titles
        assert set(cache.notes) == notes_before | {kept_id}
        assert set(cache.branches) - branches_before == {kept.branch.branch_id}
        assert set(cache.attributes) == attributes_before

        fresh = EntityCache(store).load()
        assert set(fresh.notes) == notes_before | {kept_id}
        assert set(fresh.attributes) == attributes_before

    def test_joins_enclosing_transaction(self, cache):
        with pytest.raises(RuntimeError):
            with cache.store.transactional():
                result = create_composite_note(cache, ROOT_NOTE_ID, "Inner")
                raise RuntimeError("outer failure")
        assert cache.get_note(result.note.note_id) is None
