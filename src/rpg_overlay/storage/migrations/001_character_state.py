"""Migration 001: Character state blobs."""
from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS character_state (
            id TEXT PRIMARY KEY,
            state TEXT NOT NULL DEFAULT '{}',
            revision INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL
        );
    """)
