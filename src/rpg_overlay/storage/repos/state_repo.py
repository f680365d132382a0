"""Repository for per-character state blobs."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from rpg_overlay.storage.database import Database
from rpg_overlay.utils import safe_json


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StateRepo:
    """CRUD for character_state rows holding the full state as JSON text."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def save(self, character_id: str, state: dict[str, Any]) -> int:
        """Insert or replace a character's state. Returns the new revision."""
        payload = json.dumps(state, ensure_ascii=False)
        with self.db.transaction(immediate=True) as conn:
            conn.execute(
                "INSERT INTO character_state (id, state, revision, updated_at) "
                "VALUES (?, ?, 1, ?) "
                "ON CONFLICT(id) DO UPDATE SET state = excluded.state, "
                "revision = character_state.revision + 1, updated_at = excluded.updated_at",
                (character_id, payload, _now()),
            )
            row = conn.execute(
                "SELECT revision FROM character_state WHERE id = ?", (character_id,),
            ).fetchone()
        return row["revision"]

    def get(self, character_id: str) -> dict[str, Any] | None:
        """Return the stored state, or None if the character has no row."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT state FROM character_state WHERE id = ?", (character_id,),
            ).fetchone()
        if row is None:
            return None
        return safe_json(row["state"], {})
