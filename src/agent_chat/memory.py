"""Bounded conversation window per agent, backed by :class:`MessageStore`."""
from __future__ import annotations

import logging
from typing import List, Union

from .errors import StorageError, ValidationError
from .models import Message, Role
from .store import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 10


class ChatHistory:
    """Keeps at most ``max_length`` messages per agent (oldest evicted first).

    One instance is built at startup and shared by every caller. There is no
    per-agent locking: turns for one agent must be serialized by the caller,
    otherwise two concurrent trims may evict against a moving data set.
    """

    def __init__(self, store: MessageStore, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        max_length = int(max_length)
        if max_length < 0:
            raise ValueError("max_length must be >= 0")
        self.store = store
        self._max_length = max_length

    @property
    def max_length(self) -> int:
        return self._max_length

    def add_message(self, agent_id: int, role: Union[Role, str], content: str) -> None:
        """Append, then trim the agent's window.

        Append failures propagate and skip the trim. Trim failures are logged
        and swallowed: a temporarily long window beats a lost message.
        """
        _validate_agent_id(agent_id)
        try:
            role = Role(role)
        except ValueError as e:
            raise ValidationError(f"Unknown role: {role!r}") from e
        if not content:
            raise ValidationError("Message content is required")

        self.store.append(agent_id, role, content)

        try:
            removed = self.store.trim(agent_id, self._max_length)
        except StorageError as e:
            logger.warning("Error trimming chat history for agent %d: %s", agent_id, e)
            return
        if removed:
            logger.debug("Trimmed %d message(s) for agent %d", removed, agent_id)

    def get_history(self, agent_id: int) -> List[Message]:
        _validate_agent_id(agent_id)
        return self.store.list_ordered(agent_id)

    def clear_history(self, agent_id: int) -> None:
        _validate_agent_id(agent_id)
        self.store.delete_all(agent_id)
        logger.info("Chat history cleared for agent %d", agent_id)


def _validate_agent_id(agent_id: int) -> None:
    # bool is an int subclass; reject it explicitly.
    if agent_id is None or isinstance(agent_id, bool) or not isinstance(agent_id, int):
        raise ValidationError(f"agent_id must be an integer, got {agent_id!r}")
