"""SQLite connection shared by the message store and the agent store (thread-safe)."""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Sequence

from .errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL,
    description   TEXT NOT NULL DEFAULT '',
    type          TEXT NOT NULL DEFAULT 'openai',
    system_prompt TEXT NOT NULL DEFAULT '',
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chat_history (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id   INTEGER NOT NULL,
    role       TEXT NOT NULL,
    content    TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chat_history_agent
    ON chat_history (agent_id, id);
"""


def utc_now() -> str:
    # Metadata only; ordering uses the row id.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Database:
    """One SQLite connection guarded by a lock.

    ``path`` may be ``":memory:"`` for tests. Every ``sqlite3.Error`` is
    re-raised as :class:`StorageError`.
    """

    def __init__(self, path: str = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        try:
            self._con = sqlite3.connect(self.path, check_same_thread=False, timeout=5.0)
            self._con.row_factory = sqlite3.Row
            self._con.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self.path}: {e}") from e

    def execute(self, query: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Run a write statement inside its own transaction."""
        with self._lock:
            try:
                with self._con:
                    return self._con.execute(query, tuple(params))
            except sqlite3.Error as e:
                raise StorageError(f"Database write failed: {e}") from e

    def query(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            try:
                return self._con.execute(query, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Database query failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            try:
                self._con.close()
            except sqlite3.Error as e:  # pragma: no cover - close rarely fails
                logger.warning("Error closing database %s: %s", self.path, e)
