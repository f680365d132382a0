from __future__ import annotations

import contextlib
import importlib
import logging
import pathlib
import sqlite3
from typing import Generator

logger = logging.getLogger(__name__)

_MIGRATIONS = [
    "001_character_state",
    "002_commit_journal",
]

MEMORY_PATH = ":memory:"


class Database:
    """SQLite database holding character state blobs and the commit journal."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._connection: sqlite3.Connection | None = None
        if db_path != MEMORY_PATH:
            pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """Apply pending migrations in order, recording each in schema_version."""
        conn = self._get_raw_connection()
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY)"
        )
        applied = {
            r[0] for r in conn.execute("SELECT version FROM schema_version").fetchall()
        }
        for version, name in enumerate(_MIGRATIONS, 1):
            if version in applied:
                continue
            mod = importlib.import_module(f"rpg_overlay.storage.migrations.{name}")
            mod.upgrade(conn)
            conn.execute("INSERT INTO schema_version VALUES (?)", (version,))
            logger.info(f"Applied migration {version:03d} ({name}) to {self.db_path}")
        conn.commit()

    def _get_raw_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            # Autocommit mode; transactions are opened explicitly below
            self._connection = sqlite3.connect(self.db_path, isolation_level=None)
            self._connection.row_factory = sqlite3.Row
            if self.db_path != MEMORY_PATH:
                self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA foreign_keys=ON")
        return self._connection

    @contextlib.contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield the connection inside a transaction.

        Commits on success, rolls back on exception.
        """
        with self.transaction() as conn:
            yield conn

    @contextlib.contextmanager
    def transaction(self, immediate: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """Run a block as one transaction.

        ``immediate`` takes the write lock up front so a read-modify-write
        cannot interleave with another writer.
        """
        conn = self._get_raw_connection()
        if conn.in_transaction:
            # Nested use joins the outer transaction
            yield conn
            return
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield conn
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
