from __future__ import annotations

import logging
from typing import List

from .db import Database, utc_now
from .errors import NotFoundError, ValidationError
from .models import Agent

logger = logging.getLogger(__name__)


class AgentStore:
    """CRUD for configured agents in the ``agents`` table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_agent(
        self,
        name: str,
        *,
        description: str = "",
        type: str = "openai",
        system_prompt: str = "",
    ) -> Agent:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Agent name is required")
        created_at = utc_now()
        cur = self.db.execute(
            "INSERT INTO agents (name, description, type, system_prompt, created_at) VALUES (?, ?, ?, ?, ?)",
            (name, description or "", type or "openai", system_prompt or "", created_at),
        )
        agent = Agent(
            id=int(cur.lastrowid),
            name=name,
            description=description or "",
            type=type or "openai",
            system_prompt=system_prompt or "",
            created_at=created_at,
        )
        logger.info("Agent created: id=%d name=%s", agent.id, agent.name)
        return agent

    def get_agent(self, agent_id: int) -> Agent:
        rows = self.db.query("SELECT * FROM agents WHERE id = ?", (agent_id,))
        if not rows:
            raise NotFoundError(f"Agent {agent_id} not found")
        return _row_to_agent(rows[0])

    def find_by_name(self, name: str) -> Agent:
        """Most recently created agent with this name."""
        rows = self.db.query("SELECT * FROM agents WHERE name = ? ORDER BY id DESC LIMIT 1", (name,))
        if not rows:
            raise NotFoundError(f"Agent {name!r} not found")
        return _row_to_agent(rows[0])

    def list_agents(self) -> List[Agent]:
        return [_row_to_agent(r) for r in self.db.query("SELECT * FROM agents ORDER BY id ASC")]


def _row_to_agent(row) -> Agent:
    return Agent(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"],
        type=row["type"],
        system_prompt=row["system_prompt"],
        created_at=row["created_at"],
    )
