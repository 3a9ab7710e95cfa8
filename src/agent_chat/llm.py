"""Client for an OpenAI-style chat-completion endpoint."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .errors import EmptyResponseError, EncodingError, TransportError, ValidationError
from .models import Message, Role

logger = logging.getLogger(__name__)


# -----------------------------
# Types & defaults
# -----------------------------

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TIMEOUT = 30.0

DEFAULT_SYSTEM_PROMPT = """You are an AI assistant specialized in helping users with their tasks.
You are knowledgeable, helpful, and precise in your responses.
When users ask questions, provide clear and accurate information.
If you're unsure about something, admit it rather than making assumptions."""

# "legacy": the default prompt trails the new user turn as a *user* message,
# and only when that turn had to be appended.
# "system": one system message always leads the list.
PROMPT_MODES = ("legacy", "system")


@dataclass
class CompletionConfig:
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    system_prompt_mode: str = "legacy"


# -----------------------------
# Client
# -----------------------------

class CompletionClient:
    """Assemble the message list and perform a single completion call.

    The bearer credential is resolved once by the caller and handed in here.
    No retries: any failure surfaces immediately.
    """

    def __init__(
        self,
        api_key: Optional[str],
        config: Optional[CompletionConfig] = None,
        *,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or CompletionConfig()
        if self.config.system_prompt_mode not in PROMPT_MODES:
            raise ValueError(
                f"system_prompt_mode must be one of {PROMPT_MODES}, got {self.config.system_prompt_mode!r}"
            )
        if not self.config.timeout or float(self.config.timeout) <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        self._api_key = api_key or ""
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(float(self.config.timeout)))

    def close(self) -> None:
        self._http.close()

    def ensure_ready(self) -> None:
        """Raise ValidationError when no credential is configured."""
        if not self._api_key:
            raise ValidationError("Completion credential is not configured")

    # -------------------------
    # Message assembly
    # -------------------------
    def build_messages(self, user_message: str, context_messages: Sequence[Message]) -> List[Message]:
        """Final ordered list sent downstream.

        The pending user turn is appended unless ``context_messages`` already
        ends with exactly that user message.
        """
        messages = list(context_messages)
        last = messages[-1] if messages else None
        already_sent = last is not None and last.role is Role.USER and last.content == user_message

        if self.config.system_prompt_mode == "system":
            if not messages or messages[0].role is not Role.SYSTEM:
                messages.insert(0, Message(Role.SYSTEM, self.config.system_prompt))
            if not already_sent:
                messages.append(Message(Role.USER, user_message))
            return messages

        if not already_sent:
            messages.append(Message(Role.USER, user_message))
            messages.append(Message(Role.USER, self.config.system_prompt))
        return messages

    # -------------------------
    # Remote call
    # -------------------------
    def converse(self, user_message: str, context_messages: Sequence[Message]) -> str:
        """Send ``context_messages`` plus the pending turn; return the reply text."""
        if not (user_message or "").strip():
            raise ValidationError("Message is required")
        self.ensure_ready()

        messages = self.build_messages(user_message, context_messages)
        payload = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        try:
            resp = self._http.post(self.config.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"error sending request: {e}") from e

        body = resp.text
        if not resp.is_success:
            raise TransportError(
                f"API error ({resp.status_code}): {body}", status_code=resp.status_code, body=body
            )

        return _extract_content(body)


def _extract_content(body: str) -> str:
    try:
        data: Dict[str, Any] = json.loads(body)
    except json.JSONDecodeError as e:
        raise EncodingError(f"error parsing response: {e}") from e
    if not isinstance(data, dict):
        raise EncodingError("error parsing response: expected a JSON object")

    choices = data.get("choices")
    if not isinstance(choices, list):
        raise EncodingError("error parsing response: missing 'choices' list")
    if not choices:
        raise EmptyResponseError("no response from API")

    try:
        content = choices[0]["message"]["content"]
    except (KeyError, TypeError) as e:
        raise EncodingError(f"error parsing response: missing {e}") from e
    if not isinstance(content, str):
        raise EncodingError("error parsing response: content is not a string")
    return content


# -----------------------------
# Convenience factory
# -----------------------------

def create_from_config(cfg: Dict[str, Any], api_key: Optional[str]) -> CompletionClient:
    """Create a CompletionClient from a config dict (e.g., loaded YAML)."""
    c = (cfg or {}).get("completion", {}) if isinstance(cfg, dict) else {}
    config = CompletionConfig(
        api_url=str(c.get("api_url") or DEFAULT_API_URL),
        model=str(c.get("model") or DEFAULT_MODEL),
        timeout=float(c.get("timeout") or DEFAULT_TIMEOUT),
        system_prompt=str(c.get("system_prompt") or DEFAULT_SYSTEM_PROMPT),
        system_prompt_mode=str(c.get("system_prompt_mode") or "legacy"),
    )
    return CompletionClient(api_key, config)
