"""Input validation helpers for arbor.

Standalone helpers shared by the script API and the CLI:

- ``parse_model``: build a closed pydantic model, re-raising failures
  as :class:`~arbor.types.ValidationError`
- ``sanitize_string``: string validation + control-char stripping
- ``validate_entity_id``: id shape checks
"""

import logging
import re
from typing import Any, Type, TypeVar

import pydantic

from arbor.types import ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)

_ALNUM_ID = re.compile(r"[A-Za-z0-9]+")


def format_pydantic_error(error: pydantic.ValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item.get("loc", ())) or "input"
        message = item.get("msg", "invalid value")
        if item.get("type") == "extra_forbidden":
            message = "unknown field"
        parts.append(f"{location}: {message}")
    return "; ".join(parts)


def parse_model(model: Type[M], data: Any) -> M:
    """Validate ``data`` into ``model``; passes instances through unchanged.

    Raises:
        ValidationError: If the data does not fit the model.
    """
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationError(
            f"{model.__name__} expects a mapping, got {type(data).__name__}"
        )
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {format_pydantic_error(e)}") from e


def sanitize_string(
    value: Any, field_name: str, max_length: int = 1000, required: bool = True
) -> str:
    """Sanitize and validate string inputs.

    Args:
        value: The value to sanitize.
        field_name: Name of the field for error messages.
        max_length: Maximum allowed string length.
        required: If True, empty strings are rejected.

    Returns:
        Sanitized string.

    Raises:
        ValidationError: If validation fails.
    """
    if value is None and not required:
        return ""

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string, got {type(value).__name__}")

    if required and not value.strip():
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} too long (max {max_length} characters, got {len(value)})"
        )

    # Remove null bytes and control characters except newlines and tabs
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


def validate_entity_id(
    value: Any, field_name: str, min_length: int = 1, max_length: int = 1000
) -> str:
    """Require an alphanumeric id of a bounded length."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field_name} is mandatory")
    if not _ALNUM_ID.fullmatch(value) or not (min_length <= len(value) <= max_length):
        raise ValidationError(
            f"{field_name} must be an alphanumeric string at least {min_length} characters long."
        )
    return value
