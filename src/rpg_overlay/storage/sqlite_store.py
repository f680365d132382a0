"""StoreAdapter backed by the local SQLite character_state table."""
from __future__ import annotations

import copy
import logging
import sqlite3
from typing import Any

from rpg_overlay.errors import StoreError
from rpg_overlay.storage.adapter import StoreAdapter
from rpg_overlay.storage.repos.state_repo import StateRepo
from rpg_overlay.utils import get_path, set_path

logger = logging.getLogger(__name__)


class SqliteStateStore(StoreAdapter):
    """One character's state blob, edited through a working copy.

    ``write_variable`` only touches the working copy; ``persist`` writes the
    whole blob back in a single transaction.
    """

    def __init__(self, repo: StateRepo, character_id: str) -> None:
        self.repo = repo
        self.character_id = character_id
        self._working: dict[str, Any] = {}
        self._dirty = False

    @property
    def has_pending_writes(self) -> bool:
        return self._dirty

    async def fetch_state(self) -> dict[str, Any]:
        try:
            state = self.repo.get(self.character_id)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read state for '{self.character_id}': {e}") from e
        if state is None:
            logger.warning(f"No stored state for character '{self.character_id}'")
            state = {}
        if self._dirty:
            logger.warning(f"Discarding unpersisted writes for '{self.character_id}'")
        self._working = state
        self._dirty = False
        return copy.deepcopy(state)

    def read_variable(self, path: str, default: Any = None) -> Any:
        return get_path(self._working, path, default)

    async def write_variable(self, path: str, value: Any) -> None:
        try:
            set_path(self._working, path, copy.deepcopy(value))
        except KeyError as e:
            raise StoreError(f"Invalid state path {path!r}") from e
        self._dirty = True

    async def persist(self) -> None:
        if not self._dirty:
            return
        try:
            revision = self.repo.save(self.character_id, self._working)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to persist state for '{self.character_id}': {e}") from e
        self._dirty = False
        logger.debug(f"Persisted state for '{self.character_id}' (revision {revision})")

    def replace_state(self, state: dict[str, Any]) -> None:
        """Overwrite the stored blob wholesale (used by state import)."""
        try:
            self.repo.save(self.character_id, state)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to import state for '{self.character_id}': {e}") from e
        self._working = copy.deepcopy(state)
        self._dirty = False
