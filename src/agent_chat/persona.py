"""Persona loading and prompt-template rendering.

Templates use ``{{placeholder}}`` markers drawn from the closed
:class:`Placeholder` set. Anything else between double braces is left as-is,
so templates may carry optional fields older personas do not know about.

Example
-------
>>> render("You are {{name}}.", Persona(name="Eko"), "", "hi")
'You are Eko.'
"""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

import yaml

from .errors import NotFoundError
from .models import Agent, Message, Persona

logger = logging.getLogger(__name__)

EMPTY_HISTORY = "No previous conversation."

DEFAULT_TEMPLATE = """You are {{name}}. {{description}}

{{system}}

# Bio
{{bio}}

# Lore
{{lore}}

# Knowledge
{{knowledge}}

# Style
{{style}}

# Traits
{{adjectives}}

# Instructions
{{instructions}}"""

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


class Placeholder(str, Enum):
    NAME = "name"
    DESCRIPTION = "description"
    SYSTEM = "system"
    SPECIALTY = "specialty"
    BIO = "bio"
    LORE = "lore"
    KNOWLEDGE = "knowledge"
    STYLE = "style"
    ADJECTIVES = "adjectives"
    INSTRUCTIONS = "instructions"
    HISTORY = "history"
    MESSAGE = "message"


def format_history(messages: Iterable[Message]) -> str:
    """Serialize messages as ``"<role>: <content>"`` lines, oldest first."""
    lines = [f"{m.role.value}: {m.content}\n" for m in messages]
    if not lines:
        return EMPTY_HISTORY
    return "".join(lines)


def _join(values: Sequence[str]) -> str:
    return "\n".join(values)


def placeholder_values(persona: Persona, history_text: str, user_message: str) -> Dict[Placeholder, str]:
    return {
        Placeholder.NAME: persona.name,
        Placeholder.DESCRIPTION: persona.description,
        Placeholder.SYSTEM: persona.system_prompt,
        Placeholder.SPECIALTY: persona.system_prompt,
        Placeholder.BIO: _join(persona.bio),
        Placeholder.LORE: _join(persona.lore),
        Placeholder.KNOWLEDGE: _join(persona.knowledge),
        Placeholder.STYLE: _join(persona.style),
        Placeholder.ADJECTIVES: _join(persona.adjectives),
        Placeholder.INSTRUCTIONS: persona.instructions,
        Placeholder.HISTORY: history_text,
        Placeholder.MESSAGE: user_message,
    }


def render(template: str, persona: Persona, history_text: str, user_message: str) -> str:
    """Substitute every recognized placeholder in a single pass.

    Substituted text is not scanned again, so a persona field containing
    ``{{name}}`` is emitted literally.
    """
    values = placeholder_values(persona, history_text, user_message)

    def _sub(match: "re.Match[str]") -> str:
        try:
            key = Placeholder(match.group(1))
        except ValueError:
            return match.group(0)
        return values[key]

    return _PLACEHOLDER_RE.sub(_sub, template)


def with_agent_defaults(persona: Persona, agent: Agent) -> Persona:
    """Fill an empty description/system prompt from the agent record."""
    updates: Dict[str, Any] = {}
    if not persona.description and agent.description:
        updates["description"] = agent.description
    if not persona.system_prompt and agent.system_prompt:
        updates["system_prompt"] = agent.system_prompt
    if not updates:
        return persona
    return replace(persona, **updates)


# -----------------------------
# Persona library
# -----------------------------
class PersonaLibrary:
    """
    Read-only persona lookup by name.

    Sources (later wins on name clash):
        - every ``*.yaml`` / ``*.yml`` file in ``directory``; a file holds one
          persona mapping or ``personas: [ ... ]``
        - ``inline`` mappings (usually from the ``personas.inline`` config key)
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        inline: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> None:
        self._personas: Dict[str, Persona] = {}
        if directory:
            self._load_dir(Path(directory))
        for item in inline or []:
            self.add(Persona.from_dict(dict(item)))

    def add(self, persona: Persona) -> None:
        self._personas[persona.name] = persona

    def names(self) -> list:
        return sorted(self._personas)

    def get_persona(self, name: str) -> Persona:
        try:
            return self._personas[name]
        except KeyError:
            raise NotFoundError(f"Persona {name!r} not found") from None

    def _load_dir(self, directory: Path) -> None:
        if not directory.exists():
            logger.warning("Persona directory not found: %s", directory)
            return
        files = sorted(list(directory.glob("*.yaml")) + list(directory.glob("*.yml")))
        for path in files:
            with path.open("r", encoding="utf-8") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise RuntimeError(f"Failed to parse persona file {path}: {e}") from e
            items = data.get("personas", [data]) if isinstance(data, dict) else data
            if not isinstance(items, list):
                raise RuntimeError(f"Invalid persona format in {path}, expected mapping or list.")
            for item in items:
                if not isinstance(item, dict):
                    raise RuntimeError(f"Invalid persona format in {path}, expected mapping per persona.")
                try:
                    self.add(Persona.from_dict(item))
                except ValueError as e:
                    raise RuntimeError(f"Invalid persona format in {path}: {e}") from e
            logger.debug("Loaded %d persona(s) from %s", len(items), path)
