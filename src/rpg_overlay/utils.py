"""Shared utility functions for rpg-overlay."""
from __future__ import annotations

import json
from typing import Any

_MISSING = object()


def safe_json(value, default=None):
    """Deserialize a JSON string if needed, or return default.

    Handles the common pattern where SQLite columns may contain JSON strings,
    Python objects, or NULL values.
    """
    if value is None:
        return default if default is not None else {}
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return default if default is not None else {}
    return value


def split_path(path: str) -> list[str]:
    """Split a dot-delimited state path, dropping empty segments."""
    return [part for part in path.split(".") if part]


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """Walk ``data`` along a dotted path.

    Returns ``default`` as soon as a segment is missing or ``None``.
    Integer segments index into lists.
    """
    value = data
    for key in split_path(path):
        if value is None:
            return default
        if isinstance(value, dict):
            value = value.get(key, _MISSING)
        elif isinstance(value, list) and key.lstrip("-").isdigit():
            idx = int(key)
            value = value[idx] if -len(value) <= idx < len(value) else _MISSING
        else:
            return default
        if value is _MISSING:
            return default
    return default if value is None else value


def set_path(data: dict, path: str, value: Any) -> None:
    """Assign ``value`` at a dotted path, creating intermediate dicts."""
    keys = split_path(path)
    if not keys:
        raise KeyError("empty state path")
    node = data
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def is_meta_key(key: str) -> bool:
    """Host metadata keys (``$meta``) are not character data."""
    return str(key).startswith("$")
