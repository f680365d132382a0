"""Application bootstrap — wires the store, graph, basket and commit flow."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rpg_overlay.engine.basket import UpgradeBasket
from rpg_overlay.engine.commit import CommitResult
from rpg_overlay.mechanics.eligibility import evaluate_all
from rpg_overlay.mechanics.skill_levels import INHERENT_MAX_LEVEL
from rpg_overlay.models.progression import (
    CharacterProgression,
    IntentType,
    ProgressionView,
    StatePaths,
)

logger = logging.getLogger(__name__)

DEFAULT_CHARACTER_ID = "default"


def _load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load config.toml from project root."""
    import tomllib

    config_path = config_path or Path(__file__).parent.parent.parent / "config.toml"
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    return {}


class OverlayApp:
    """Owns one character's progression session."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        character_id: str | None = None,
    ):
        self.config = config if config is not None else _load_config()
        self.character_id = character_id or self.config.get("storage", {}).get(
            "character_id", DEFAULT_CHARACTER_ID
        )
        self.paths = StatePaths.from_config(self.config.get("state", {}))
        self.inherent_max_level = self.config.get("progression", {}).get(
            "inherent_max_level", INHERENT_MAX_LEVEL
        )

        # Lazy-initialized components
        self._db = None
        self._state_repo = None
        self._journal = None
        self._store = None
        self._path_store = None
        self._graph = None
        self._basket = None
        self._coordinator = None

    # -- Component initialization (lazy) --

    @property
    def db(self):
        if self._db is None:
            from rpg_overlay.storage.database import Database

            db_path = self.config.get("storage", {}).get("db_path", "saves/overlay.db")
            self._db = Database(db_path)
            self._db.initialize()
        return self._db

    @property
    def state_repo(self):
        if self._state_repo is None:
            from rpg_overlay.storage.repos import StateRepo

            self._state_repo = StateRepo(self.db)
        return self._state_repo

    @property
    def journal(self):
        if self._journal is None:
            from rpg_overlay.storage.repos import CommitJournalRepo

            self._journal = CommitJournalRepo(self.db, self.character_id)
        return self._journal

    @property
    def store(self):
        if self._store is None:
            from rpg_overlay.storage.sqlite_store import SqliteStateStore

            self._store = SqliteStateStore(self.state_repo, self.character_id)
        return self._store

    @property
    def path_store(self):
        if self._path_store is None:
            from rpg_overlay.storage.safe_path_store import SafePathStore

            self._path_store = SafePathStore(self.store)
        return self._path_store

    @property
    def graph(self):
        if self._graph is None:
            from rpg_overlay.content.loader import load_skill_tree
            from rpg_overlay.engine.skill_graph import UNIVERSAL_JOB

            content_cfg = self.config.get("content", {})
            self._graph = load_skill_tree(
                content_cfg.get("skill_tree_path"),
                universal_job=content_cfg.get("universal_job", UNIVERSAL_JOB),
            )
        return self._graph

    @property
    def basket(self) -> UpgradeBasket:
        if self._basket is None:
            self._basket = UpgradeBasket()
        return self._basket

    @property
    def coordinator(self):
        if self._coordinator is None:
            from rpg_overlay.engine.commit import CommitCoordinator

            commit_cfg = self.config.get("commit", {})
            self._coordinator = CommitCoordinator(
                self.store,
                self.graph,
                self.path_store,
                paths=self.paths,
                batch_writes=commit_cfg.get("batch_writes", True),
                patch_descriptions=commit_cfg.get("patch_descriptions", True),
                inherent_max_level=self.inherent_max_level,
                journal=self.journal,
            )
        return self._coordinator

    # -- Session operations --

    async def progression(self) -> CharacterProgression:
        await self.path_store.load_all()
        return CharacterProgression.from_reader(self.path_store.get, self.paths)

    async def view(self) -> ProgressionView:
        """Classify every visible node against the current basket."""
        progression = await self.progression()
        return evaluate_all(self.graph, progression, self.basket, self.inherent_max_level)

    async def toggle(self, type: IntentType | str, name: str) -> bool:
        """Stage or unstage a node.

        Staging is refused for nodes that are not currently learnable;
        unstaging always succeeds.
        """
        if not self.basket.is_staged(type, name):
            node = (await self.view()).find(type, name)
            if node is None or not node.is_learnable:
                reason = node.reason.value if node and node.reason else "not available"
                logger.info(f"Refused to stage {IntentType(type).value}:{name} ({reason})")
                return False
        return self.basket.toggle(type, name)

    async def commit(self) -> CommitResult:
        return await self.coordinator.commit(self.basket)

    def cancel(self) -> None:
        self.basket.clear()

    def import_state(self, state: dict[str, Any]) -> None:
        self.store.replace_state(state)
        self.path_store.invalidate()

    async def export_state(self) -> dict[str, Any]:
        return await self.store.fetch_state()

    def shutdown(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
