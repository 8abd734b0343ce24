"""JSON i18n language files: parsing, leaf-key discovery and line lookup."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional

from locassist.parsers import dump_json, load_json
from locassist.parsers.keypath import get_value, join_path, split_path


@dataclass(frozen=True)
class TranslationFile:
    """One language: its identifier and its full JSON tree.

    Instances are immutable; an edit produces a new file through
    :meth:`with_data` so that older references stay valid.
    """
    name: str
    data: Any = field(default_factory=dict)

    def with_data(self, data: Any) -> TranslationFile:
        return replace(self, data=data)

    def value(self, path: str) -> Any:
        return get_value(self.data, path)

    def to_text(self) -> str:
        return dump_json(self.data)


# ── Key discovery ─────────────────────────────────────────────────────

def _is_leaf(value: Any) -> bool:
    """Scalars, null and non-empty lists are leaves; lists are never entered."""
    if isinstance(value, dict):
        return False
    if isinstance(value, list):
        return bool(value)
    return True


def _collect(obj: dict, prefix: str, out: set[str]) -> None:
    for k, v in obj.items():
        full_key = join_path(prefix, str(k))
        if isinstance(v, dict):
            _collect(v, full_key, out)
        elif _is_leaf(v):
            out.add(full_key)


def flatten_leaf_paths(tree: Any) -> set[str]:
    """Return every dotted path in *tree* that ends on a leaf value.

    A malformed (non-object) root yields no paths instead of raising.
    """
    paths: set[str] = set()
    if isinstance(tree, dict):
        _collect(tree, "", paths)
    return paths


def union_keys(files: Iterable[TranslationFile]) -> list[str]:
    """The key universe: all leaf paths of all files, sorted by code point."""
    keys: set[str] = set()
    for f in files:
        keys |= flatten_leaf_paths(f.data)
    return sorted(keys)


# ── Line lookup ───────────────────────────────────────────────────────

def _bracket_delta(line: str) -> int:
    """Net change in nesting depth caused by *line*, ignoring string contents."""
    delta = 0
    in_string = False
    escaped = False
    for ch in line:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            delta += 1
        elif ch in "}]":
            delta -= 1
    return delta


def find_line_number(text: str, path: str) -> Optional[int]:
    """Return the 1-based line where *path*'s value starts in *text*.

    *text* must come from :func:`locassist.parsers.dump_json`. Each segment is
    matched as a property name at the nesting depth it would have in that
    output, and only inside the object of the previously matched segment.
    Returns None when the key cannot be located.
    """
    segments = split_path(path)
    markers = [json.dumps(s, ensure_ascii=False) + ":" for s in segments]
    wanted = 0
    depth = 0
    for lineno, line in enumerate(text.splitlines(), start=1):
        if wanted and depth < wanted + 1:
            # The object holding the last matched segment has closed.
            return None
        if depth == wanted + 1 and line.lstrip().startswith(markers[wanted]):
            if wanted == len(segments) - 1:
                return lineno
            wanted += 1
        depth += _bracket_delta(line)
    return None


def line_number_for(translation_file: TranslationFile, path: str) -> Optional[int]:
    """Line of *path* in the pretty-printed form of *translation_file*."""
    return find_line_number(translation_file.to_text(), path)


# ── IO ────────────────────────────────────────────────────────────────

def parse_json_text(name: str, text: str | bytes) -> TranslationFile:
    """Parse one language file from its text. Raises ``ValueError`` on bad JSON."""
    return TranslationFile(name=name, data=load_json(text))
