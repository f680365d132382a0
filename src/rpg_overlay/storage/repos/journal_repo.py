"""Repository for the upgrade commit journal."""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from rpg_overlay.storage.database import Database

_JSON_FIELDS = ("intents", "applied")


class CommitJournalRepo:
    """Append-only record of commits, including partially applied ones."""

    def __init__(self, db: Database, character_id: str) -> None:
        self.db = db
        self.character_id = character_id

    def record(
        self,
        status: str,
        intents: list[str],
        applied: list[str],
        budget_before: int,
        budget_after: int,
        error: str | None = None,
    ) -> str:
        entry_id = str(uuid.uuid4())
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT INTO commit_journal "
                "(id, character_id, committed_at, status, intents, applied, "
                "budget_before, budget_after, error) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry_id,
                    self.character_id,
                    datetime.now(timezone.utc).isoformat(),
                    status,
                    json.dumps(intents, ensure_ascii=False),
                    json.dumps(applied, ensure_ascii=False),
                    budget_before,
                    budget_after,
                    error,
                ),
            )
        return entry_id

    def list_entries(self, limit: int = 20) -> list[dict[str, Any]]:
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM commit_journal WHERE character_id = ? "
                "ORDER BY committed_at DESC LIMIT ?",
                (self.character_id, limit),
            ).fetchall()
        return [self._row_to_dict(r) for r in rows]

    @staticmethod
    def _row_to_dict(row: Any) -> dict[str, Any]:
        d = dict(row)
        for field in _JSON_FIELDS:
            d[field] = json.loads(d.get(field) or "[]")
        return d
