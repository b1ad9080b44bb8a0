"""Tests for arbor.core.validation helpers."""

import pytest
from pydantic import BaseModel, ConfigDict

from arbor.core.validation import parse_model, sanitize_string, validate_entity_id
from arbor.types import ArborError, ValidationError


class _Closed(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    count: int = 0


class TestParseModel:
    def test_valid_dict(self):
        assert parse_model(_Closed, {"name": "x", "count": 2}).count == 2

    def test_instance_passthrough(self):
        instance = _Closed(name="x")
        assert parse_model(_Closed, instance) is instance

    def test_extra_field(self):
        with pytest.raises(ValidationError, match="extra: unknown field"):
            parse_model(_Closed, {"name": "x", "extra": 1})

    def test_missing_field(self):
        with pytest.raises(ValidationError, match="name"):
            parse_model(_Closed, {})

    def test_non_mapping(self):
        with pytest.raises(ValidationError, match="expects a mapping"):
            parse_model(_Closed, "name=x")

    def test_error_hierarchy(self):
        with pytest.raises(ValueError):
            parse_model(_Closed, {})
        with pytest.raises(ArborError):
            parse_model(_Closed, {})


class TestSanitizeString:
    def test_strips_control_characters(self):
        assert sanitize_string("a\x00b\tc\n", "field") == "ab\tc\n"

    def test_required(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            sanitize_string("  ", "title")

    def test_optional_none(self):
        assert sanitize_string(None, "title", required=False) == ""

    def test_too_long(self):
        with pytest.raises(ValidationError, match="too long"):
            sanitize_string("x" * 11, "title", max_length=10)

    def test_not_a_string(self):
        with pytest.raises(ValidationError, match="must be a string"):
            sanitize_string(42, "title")


class TestValidateEntityId:
    @pytest.mark.parametrize("value", ["abcdef", "ABC123xyz", "a" * 1000])
    def test_valid(self, value):
        assert validate_entity_id(value, "ID", min_length=6) == value

    @pytest.mark.parametrize("value", ["abc", "abc de", "abc_def", "abcdef\n", None, 123])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_entity_id(value, "ID", min_length=6)
