"""Shared helper functions for CLI commands."""

import argparse
import json
from typing import Any, Dict

from arbor.core.validation import sanitize_string


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    return sanitize_string(value, field_name, max_length=max_length, required=False)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def parse_attribute(value: str, attr_type: str = "label") -> Dict[str, Any]:
    """Parse ``name`` or ``name=value`` (``~name=value`` is inheritable)."""
    is_inheritable = value.startswith("~")
    if is_inheritable:
        value = value[1:]
    name, _, attr_value = value.partition("=")
    if not name:
        raise argparse.ArgumentTypeError(f"Attribute name missing in '{value}'")
    return {
        "type": attr_type,
        "name": name,
        "value": attr_value,
        "is_inheritable": is_inheritable,
    }


def parse_label(value: str) -> Dict[str, Any]:
    return parse_attribute(value, "label")


def parse_relation(value: str) -> Dict[str, Any]:
    attr = parse_attribute(value, "relation")
    if not attr["value"]:
        raise argparse.ArgumentTypeError(f"Relation '{attr['name']}' needs a target note id")
    return attr
