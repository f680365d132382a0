"""Migration 002: Journal of upgrade commits, kept for manual recovery."""
from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS commit_journal (
            id TEXT PRIMARY KEY,
            character_id TEXT NOT NULL,
            committed_at TEXT NOT NULL,
            status TEXT NOT NULL,
            intents TEXT NOT NULL,
            applied TEXT NOT NULL DEFAULT '[]',
            budget_before INTEGER NOT NULL,
            budget_after INTEGER NOT NULL,
            error TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_commit_journal_character
            ON commit_journal(character_id, committed_at DESC);
    """)
