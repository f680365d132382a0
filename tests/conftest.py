"""Shared fixtures for the rpg-overlay test suite."""
from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from rpg_overlay.content.loader import DEFAULT_SKILL_TREE, load_json
from rpg_overlay.engine.skill_graph import SkillGraph
from rpg_overlay.models.progression import CharacterProgression, StatePaths
from rpg_overlay.storage.adapter import StoreAdapter
from rpg_overlay.utils import get_path, set_path


SAMPLE_STATE = {
    "主角": {
        "职业点数": 3,
        "职业": {
            "战士": {"当前等级": 1},
            "猎人": {"当前等级": 2, "最大等级": 5},
            "$meta": {"note": "host bookkeeping"},
        },
        "技能列表": {
            "潜行": {"等级": "中级", "description": "隐匿+2", "type": "主动", "cost": 1},
            "$schema": "v1",
        },
    },
}


class MemoryAdapter(StoreAdapter):
    """In-memory store with a durable copy, a working copy and failure hooks."""

    def __init__(self, state: dict | None = None, fail_persist_on: int | None = None) -> None:
        self.durable: dict[str, Any] = copy.deepcopy(state or {})
        self._working: dict[str, Any] = copy.deepcopy(self.durable)
        self.fail_persist_on = fail_persist_on
        self.fail_fetch = False
        self.fetch_count = 0
        self.persist_count = 0
        self.writes: list[tuple[str, Any]] = []

    async def fetch_state(self) -> dict[str, Any]:
        self.fetch_count += 1
        await asyncio.sleep(0)
        if self.fail_fetch:
            raise ConnectionError("store offline")
        self._working = copy.deepcopy(self.durable)
        return copy.deepcopy(self.durable)

    def read_variable(self, path: str, default: Any = None) -> Any:
        return get_path(self._working, path, default)

    async def write_variable(self, path: str, value: Any) -> None:
        self.writes.append((path, value))
        set_path(self._working, path, copy.deepcopy(value))

    async def persist(self) -> None:
        self.persist_count += 1
        await asyncio.sleep(0)
        if self.fail_persist_on == self.persist_count:
            raise ConnectionError("persist failed")
        self.durable = copy.deepcopy(self._working)

    def durable_value(self, path: str, default: Any = None) -> Any:
        return get_path(self.durable, path, default)


@pytest.fixture
def sample_state() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_STATE)


@pytest.fixture
def skill_tree_doc() -> dict[str, Any]:
    return load_json(DEFAULT_SKILL_TREE)


@pytest.fixture
def graph(skill_tree_doc) -> SkillGraph:
    return SkillGraph.build(skill_tree_doc)


@pytest.fixture
def paths() -> StatePaths:
    return StatePaths()


@pytest.fixture
def progression(sample_state, paths) -> CharacterProgression:
    return CharacterProgression.from_reader(
        lambda path, default: get_path(sample_state, path, default), paths,
    )


@pytest.fixture
def memory_adapter(sample_state) -> MemoryAdapter:
    return MemoryAdapter(sample_state)


@pytest.fixture
def make_adapter():
    """Factory for adapters with custom state or failure injection."""
    return MemoryAdapter


@pytest.fixture
def in_memory_db(tmp_path):
    from rpg_overlay.storage.database import Database

    db = Database(str(tmp_path / "test.db"))
    db.initialize()
    yield db
    db.close()
