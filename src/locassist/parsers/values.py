"""Typed view of translation values and coercion of edited text.

Every value found at a key path falls in one of the :class:`ValueKind`
variants. Editors work on plain text; :func:`coerce_edit` turns that text
back into a JSON value of the same kind as the value being replaced.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from locassist.parsers import dump_json
from locassist.parsers.keypath import MISSING


class ValueCoercionError(ValueError):
    """Edited text cannot be converted to the kind of the original value."""


class ValueKind(Enum):
    ABSENT = "absent"
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def kind_of(value: Any) -> ValueKind:
    if value is MISSING:
        return ValueKind.ABSENT
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, test it first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def format_for_edit(value: Any) -> str:
    """Text shown in an editor for *value*."""
    kind = kind_of(value)
    if kind in (ValueKind.ABSENT, ValueKind.NULL):
        return ""
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        return dump_json(value)
    if kind is ValueKind.BOOL:
        return "true" if value else "false"
    return str(value)


def _parse_number(text: str) -> int | float:
    stripped = text.strip()
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        number = float(stripped)
    except ValueError:
        raise ValueCoercionError("Invalid number format.") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueCoercionError("Invalid number format.")
    return number


def coerce_edit(text: str, previous: Any) -> Any:
    """Convert edited *text* to a value of the same kind as *previous*."""
    kind = kind_of(previous)
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        try:
            return json.loads(text)
        except ValueError:
            raise ValueCoercionError("Invalid JSON format.") from None
    if kind is ValueKind.NUMBER:
        return _parse_number(text)
    if kind is ValueKind.BOOL:
        lowered = text.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueCoercionError('Must be "true" or "false".')
    # STRING, NULL and ABSENT all take the text as typed
    return text


def display_text(value: Any) -> str:
    """Single-line rendering used in prompts and tables."""
    kind = kind_of(value)
    if kind in (ValueKind.ABSENT, ValueKind.NULL):
        return ""
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        return json.dumps(value, ensure_ascii=False)
    if kind is ValueKind.BOOL:
        return "true" if value else "false"
    return str(value)
