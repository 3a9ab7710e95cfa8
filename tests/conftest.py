"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from agent_chat.agents import AgentStore  # noqa: E402
from agent_chat.db import Database  # noqa: E402
from agent_chat.llm import CompletionClient, CompletionConfig  # noqa: E402
from agent_chat.memory import ChatHistory  # noqa: E402
from agent_chat.models import Persona  # noqa: E402
from agent_chat.persona import PersonaLibrary  # noqa: E402
from agent_chat.store import MessageStore  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    import os

    for var in ["AGENT_CHAT_CONFIG", "OPENAI_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("AGENT_CHAT__"):
            monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def store(db: Database) -> MessageStore:
    return MessageStore(db)


@pytest.fixture
def agents(db: Database) -> AgentStore:
    return AgentStore(db)


@pytest.fixture
def personas() -> PersonaLibrary:
    lib = PersonaLibrary()
    lib.add(
        Persona(
            name="Eko",
            description="A cheerful echo bot.",
            system_prompt="Repeat things back.",
            bio=("Lives in a canyon.",),
            style=("short", "friendly"),
        )
    )
    return lib


class RecordingEndpoint:
    """Fake completion endpoint for ``httpx.MockTransport``; records each request body."""

    def __init__(self, reply: str = "ok", status_code: int = 200, body: str | None = None):
        self.reply = reply
        self.status_code = status_code
        self.body = body
        self.requests: List[Dict[str, Any]] = []
        self.headers: List[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self.body is not None:
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(
            self.status_code,
            json={"choices": [{"message": {"role": "assistant", "content": self.reply}}]},
        )

    @property
    def last_messages(self) -> List[Dict[str, str]]:
        return self.requests[-1]["messages"]


def make_client(endpoint, *, api_key: str = "sk-test", **config) -> CompletionClient:
    http = httpx.Client(transport=httpx.MockTransport(endpoint))
    return CompletionClient(api_key, CompletionConfig(**config), http_client=http)


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    return RecordingEndpoint()


@pytest.fixture
def history(store: MessageStore) -> ChatHistory:
    return ChatHistory(store, max_length=10)
