from __future__ import annotations

import logging
from typing import List, Optional

from .agents import AgentStore
from .errors import EmptyResponseError, ValidationError
from .llm import CompletionClient
from .memory import ChatHistory
from .models import Agent, Message, Persona, Role
from .persona import DEFAULT_TEMPLATE, PersonaLibrary, format_history, render, with_agent_defaults

logger = logging.getLogger(__name__)


class ChatService:
    """One chat turn: record, render, complete, record.

    The user message is stored before the remote call, so it survives a
    failed completion; the assistant reply is stored only on success.
    """

    def __init__(
        self,
        history: ChatHistory,
        agents: AgentStore,
        personas: PersonaLibrary,
        client: CompletionClient,
        template: Optional[str] = None,
    ) -> None:
        self.history = history
        self.agents = agents
        self.personas = personas
        self.client = client
        self.template = template or DEFAULT_TEMPLATE

    def build_context(self, agent: Agent, persona: Persona, message: str) -> List[Message]:
        """System context (rendered persona) followed by the agent's window."""
        persona = with_agent_defaults(persona, agent)
        window = self.history.get_history(agent.id)
        context = render(self.template, persona, format_history(window), message)
        return [Message(Role.SYSTEM, context)] + window

    def chat(self, agent_id: int, message: str) -> str:
        message = (message or "").strip()
        if not message:
            raise ValidationError("Message is required")

        # Everything that can reject the turn runs before the user message is recorded.
        self.client.ensure_ready()
        agent = self.agents.get_agent(agent_id)
        persona = self.personas.get_persona(agent.name)

        self.history.add_message(agent_id, Role.USER, message)
        context = self.build_context(agent, persona, message)
        reply = self.client.converse(message, context)
        if not reply:
            raise EmptyResponseError("completion returned empty content")
        self.history.add_message(agent_id, Role.ASSISTANT, reply)

        logger.info("Chat turn for agent %d (%d context messages)", agent_id, len(context))
        return reply
