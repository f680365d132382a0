"""Tests for src/rpg_overlay/mechanics/skill_levels.py."""
from __future__ import annotations

import pytest

from rpg_overlay.mechanics.skill_levels import (
    SKILL_RANKS,
    bonus_for_level,
    level_from_value,
    numeric_skill_level,
    patch_bonus_text,
    rank_for_level,
)


class TestRankForLevel:
    @pytest.mark.parametrize("level, expected", [
        (1, "初级"), (2, "中级"), (3, "高级"), (4, "精通"), (5, "大师"),
    ])
    def test_known_ranks(self, level, expected):
        assert rank_for_level(level) == expected

    def test_beyond_table(self):
        assert rank_for_level(6) == "Lv.6"

    def test_table_is_bijective(self):
        assert len(set(SKILL_RANKS.values())) == len(SKILL_RANKS)


class TestBonusForLevel:
    def test_bonus_equals_level(self):
        assert bonus_for_level(3) == 3

    def test_never_negative(self):
        assert bonus_for_level(-2) == 0


class TestLevelFromValue:
    @pytest.mark.parametrize("value, expected", [
        (2, 2), (2.0, 2), ("3", 3), (" 4 ", 4), ("中级", 2), ("大师", 5), ("Lv.7", 7),
    ])
    def test_accepted_forms(self, value, expected):
        assert level_from_value(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "unknown", [], -3])
    def test_unusable_values_are_zero(self, value):
        assert level_from_value(value) == 0


class TestNumericSkillLevel:
    def test_english_key(self):
        assert numeric_skill_level({"level": 3}) == 3

    def test_host_key(self):
        assert numeric_skill_level({"等级": "高级"}) == 3

    def test_english_key_wins(self):
        assert numeric_skill_level({"level": 1, "等级": 4}) == 1

    def test_missing_record(self):
        assert numeric_skill_level(None) == 0
        assert numeric_skill_level({}) == 0


class TestPatchBonusText:
    def test_replaces_first_bonus(self):
        assert patch_bonus_text("攻击+1，防御+1", 3) == "攻击+3，防御+1"

    def test_text_without_bonus_unchanged(self):
        assert patch_bonus_text("辨识足迹", 2) == "辨识足迹"

    def test_empty(self):
        assert patch_bonus_text("", 2) == ""
