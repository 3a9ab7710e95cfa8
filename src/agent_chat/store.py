"""Append-only message log keyed by agent id."""
from __future__ import annotations

from typing import List, Union

from .db import Database, utc_now
from .models import Message, Role


class MessageStore:
    """Durable role/content log in the ``chat_history`` table.

    Rows are ordered by the AUTOINCREMENT ``id``, which only ever grows.
    ``created_at`` is recorded wall-clock metadata and never decides order,
    so a clock stepping backwards cannot evict the message just appended.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def append(self, agent_id: int, role: Union[Role, str], content: str) -> None:
        self.db.execute(
            "INSERT INTO chat_history (agent_id, role, content, created_at) VALUES (?, ?, ?, ?)",
            (agent_id, Role(role).value, content, utc_now()),
        )

    def list_ordered(self, agent_id: int) -> List[Message]:
        """Oldest first. Empty list when the agent has no history."""
        rows = self.db.query(
            "SELECT role, content FROM chat_history WHERE agent_id = ? ORDER BY id ASC",
            (agent_id,),
        )
        return [Message(role=r["role"], content=r["content"]) for r in rows]

    def count(self, agent_id: int) -> int:
        rows = self.db.query("SELECT COUNT(*) AS n FROM chat_history WHERE agent_id = ?", (agent_id,))
        return int(rows[0]["n"])

    def trim(self, agent_id: int, keep: int) -> int:
        """Delete all but the ``keep`` most recent messages. Returns rows removed."""
        # LIMIT -1 is SQLite for "no limit"; OFFSET requires a LIMIT clause.
        cur = self.db.execute(
            """
            DELETE FROM chat_history
            WHERE id IN (
                SELECT id FROM chat_history
                WHERE agent_id = ?
                ORDER BY id DESC
                LIMIT -1 OFFSET ?
            )""",
            (agent_id, max(0, int(keep))),
        )
        return cur.rowcount

    def delete_all(self, agent_id: int) -> None:
        """Idempotent."""
        self.db.execute("DELETE FROM chat_history WHERE agent_id = ?", (agent_id,))
