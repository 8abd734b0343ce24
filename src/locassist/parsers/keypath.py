"""Dotted key-path addressing inside nested JSON translation trees.

A key path such as ``"buttons.submit"`` names one location in every language
file. Reading a path that a file does not have is not an error: ``get_value``
returns the ``MISSING`` sentinel, which is distinct from a stored JSON
``null`` (``None``).

``set_value`` is copy-on-write. The input tree is never mutated; every dict
on the way from the root to the target is shallow-copied and all other
branches are shared with the original.
"""

from __future__ import annotations

from typing import Any

SEPARATOR = "."


class InvalidPathError(ValueError):
    """Raised for an empty or otherwise unusable key path."""


class _Missing:
    """Sentinel type for "no value at this path"."""

    _instance: _Missing | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Missing, ())


MISSING: Any = _Missing()


def split_path(path: str) -> list[str]:
    """Split a dotted key path into its segments."""
    if not isinstance(path, str) or not path:
        raise InvalidPathError(f"Invalid key path: {path!r}")
    return path.split(SEPARATOR)


def join_path(prefix: str, segment: str) -> str:
    return f"{prefix}{SEPARATOR}{segment}" if prefix else segment


def get_value(tree: Any, path: str) -> Any:
    """Return the value stored at *path* in *tree*, or ``MISSING``."""
    node = tree
    for segment in split_path(path):
        if not isinstance(node, dict) or segment not in node:
            return MISSING
        node = node[segment]
    return node


def has_value(tree: Any, path: str) -> bool:
    return get_value(tree, path) is not MISSING


def set_value(tree: Any, path: str, value: Any) -> dict:
    """Return a copy of *tree* with *value* stored at *path*.

    Missing intermediate nodes are created as empty dicts. An intermediate
    node that exists but is not a dict is replaced by an empty dict, and a
    final segment that points at a nested mapping is overwritten.
    """
    segments = split_path(path)
    root = dict(tree) if isinstance(tree, dict) else {}
    node = root
    for segment in segments[:-1]:
        child = node.get(segment)
        child = dict(child) if isinstance(child, dict) else {}
        node[segment] = child
        node = child
    node[segments[-1]] = value
    return root
