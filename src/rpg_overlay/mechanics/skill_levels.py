"""Skill level ranks and bonus text — pure lookups, no I/O.

Levels are canonical integers everywhere inside the engine. Rank labels
only appear at the display boundary and in stored records.
"""
from __future__ import annotations

import re
from typing import Any

SKILL_RANKS: dict[int, str] = {
    1: "初级",
    2: "中级",
    3: "高级",
    4: "精通",
    5: "大师",
}

_RANK_TO_LEVEL = {rank: level for level, rank in SKILL_RANKS.items()}

# Skills learned outside any tree are capped here
INHERENT_MAX_LEVEL = 5

_BONUS_PATTERN = re.compile(r"\+\d+")


def rank_for_level(level: int) -> str:
    """Return the rank label for a level, ``Lv.N`` beyond the table."""
    return SKILL_RANKS.get(level, f"Lv.{level}")


def bonus_for_level(level: int) -> int:
    """Numeric bonus granted at a level (one per rank)."""
    return max(level, 0)


def level_from_value(value: Any) -> int:
    """Canonicalise a stored level (int, digit string or rank label) to an int."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        if text in _RANK_TO_LEVEL:
            return _RANK_TO_LEVEL[text]
        if text.lower().startswith("lv.") and text[3:].isdigit():
            return int(text[3:])
    return 0


def numeric_skill_level(record: dict | None) -> int:
    """Read the level of a stored skill record, 0 if unlearned."""
    if not record or not isinstance(record, dict):
        return 0
    value = record.get("level")
    if value is None:
        value = record.get("等级")
    return level_from_value(value)


def has_bonus_text(description: str | None) -> bool:
    return bool(description) and _BONUS_PATTERN.search(description) is not None


def patch_bonus_text(description: str, level: int) -> str:
    """Replace the first ``+N`` in a description with the level's bonus.

    Best-effort display convenience; text without a ``+N`` is returned as is.
    """
    if not description or not _BONUS_PATTERN.search(description):
        return description
    return _BONUS_PATTERN.sub(f"+{bonus_for_level(level)}", description, count=1)
