"""Agent chat: bounded per-agent conversation history and prompt assembly
in front of a remote chat-completion endpoint.

Typical usage
-------------
from agent_chat import create_app
app = create_app()

or, from the provided launchers:

python scripts/run_server.py --host 127.0.0.1 --port 8000
python -m agent_chat.console
"""

from __future__ import annotations

from .errors import (
    AgentChatError,
    CompletionError,
    EmptyResponseError,
    EncodingError,
    NotFoundError,
    StorageError,
    TransportError,
    ValidationError,
)
from .memory import ChatHistory
from .models import Agent, Message, Persona, Role
from .persona import Placeholder, format_history, render
from .store import MessageStore

__all__ = [
    "create_app",
    "__version__",
    "get_version",
    "AgentChatError",
    "CompletionError",
    "EmptyResponseError",
    "EncodingError",
    "NotFoundError",
    "StorageError",
    "TransportError",
    "ValidationError",
    "ChatHistory",
    "MessageStore",
    "Agent",
    "Message",
    "Persona",
    "Role",
    "Placeholder",
    "format_history",
    "render",
]

# ---------------------------------------------------------------------
# Version handling
# ---------------------------------------------------------------------
__version__ = "0.1.0"

def get_version() -> str:
    """Return the package version."""
    return __version__


def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    This forwards to :func:`agent_chat.server.create_app`; the import is
    deferred so the core modules load without the web stack.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
