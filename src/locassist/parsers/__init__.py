"""JSON translation tree parsers: key paths, flattening, line lookup and value coercion."""

from __future__ import annotations

import json
from typing import Any

# Indentation of every JSON document the tool writes. Line lookups in
# json_parser assume text produced by dump_json.
JSON_INDENT = 2


def dump_json(obj: Any) -> str:
    """Serialize *obj* the way exported and previewed files are written."""
    return json.dumps(obj, ensure_ascii=False, indent=JSON_INDENT)


def load_json(text: str | bytes) -> Any:
    """Parse JSON text, tolerating a UTF-8 byte order mark."""
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    elif text.startswith("\ufeff"):
        text = text[1:]
    return json.loads(text)
