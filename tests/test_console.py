from __future__ import annotations

from typing import Iterator, List

from agent_chat.agents import AgentStore
from agent_chat.console import run_console
from agent_chat.memory import ChatHistory
from agent_chat.persona import PersonaLibrary
from agent_chat.service import ChatService

from conftest import RecordingEndpoint, make_client


def _scripted(lines: List[str]):
    it: Iterator[str] = iter(lines)

    def _input(prompt: str) -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError

    return _input


def test_console_loop(history: ChatHistory, agents: AgentStore, personas: PersonaLibrary):
    endpoint = RecordingEndpoint(reply="pong")
    service = ChatService(history, agents, personas, make_client(endpoint))
    agent = agents.create_agent("Eko")
    out: List[str] = []

    run_console(service, agent.id, input_fn=_scripted(["ping", "", "CLEAR", "exit", "never read"]), output=out.append)

    assert "Agent: pong" in out
    assert "Chat history cleared." in out
    assert out[-1] == "Goodbye!"
    assert history.get_history(agent.id) == []
    assert len(endpoint.requests) == 1


def test_console_reports_errors_and_continues(history: ChatHistory, agents: AgentStore, personas: PersonaLibrary):
    endpoint = RecordingEndpoint(status_code=500, body="rate limited")
    service = ChatService(history, agents, personas, make_client(endpoint))
    agent = agents.create_agent("Eko")
    out: List[str] = []

    run_console(service, agent.id, input_fn=_scripted(["one", "two"]), output=out.append)

    errors = [line for line in out if line.startswith("Error:")]
    assert len(errors) == 2
    assert "rate limited" in errors[0]
    # user turns are kept even though the completion failed
    assert [m.content for m in history.get_history(agent.id)] == ["one", "two"]
