"""Exception hierarchy shared by the store, the renderer and the completion client."""

from __future__ import annotations


class AgentChatError(Exception):
    """Base class for every failure raised by agent_chat."""


class ValidationError(AgentChatError):
    """A required field is missing or malformed. Raised before any I/O."""


class StorageError(AgentChatError):
    """The SQLite store could not complete an insert, delete or query."""


class NotFoundError(AgentChatError):
    """Unknown agent id or persona name."""


# -----------------------------
# Completion endpoint
# -----------------------------
class CompletionError(AgentChatError):
    """Base for failures talking to the completion endpoint."""


class TransportError(CompletionError):
    """Network failure, timeout or non-2xx status.

    ``status_code`` is ``None`` when no response was received; ``body`` keeps
    the raw response text for diagnosis.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyResponseError(CompletionError):
    """The endpoint answered with an empty ``choices`` list."""


class EncodingError(CompletionError):
    """The response body is not JSON of the expected shape."""
