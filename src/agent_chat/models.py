from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """A single conversation message. Immutable once created."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        # Accept plain strings ("user") as well as Role members.
        object.__setattr__(self, "role", Role(self.role))

    def to_dict(self) -> Dict[str, str]:
        """Wire shape used by the completion endpoint."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Agent:
    id: int
    name: str
    description: str = ""
    type: str = "openai"
    system_prompt: str = ""
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "system_prompt": self.system_prompt,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Persona:
    """
    Descriptive and stylistic attributes used to render an agent's context.

    Sequence fields keep the order they were authored in.
    """
    name: str
    description: str = ""
    system_prompt: str = ""
    bio: Tuple[str, ...] = field(default_factory=tuple)
    lore: Tuple[str, ...] = field(default_factory=tuple)
    knowledge: Tuple[str, ...] = field(default_factory=tuple)
    style: Tuple[str, ...] = field(default_factory=tuple)
    adjectives: Tuple[str, ...] = field(default_factory=tuple)
    instructions: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Persona":
        """Build from a YAML-style mapping. ``system`` / ``specialty`` alias ``system_prompt``."""
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("persona requires a non-empty 'name'")
        system_prompt = data.get("system_prompt") or data.get("system") or data.get("specialty") or ""
        return cls(
            name=name,
            description=str(data.get("description") or ""),
            system_prompt=str(system_prompt),
            bio=_as_lines(data.get("bio")),
            lore=_as_lines(data.get("lore")),
            knowledge=_as_lines(data.get("knowledge")),
            style=_as_lines(data.get("style")),
            adjectives=_as_lines(data.get("adjectives")),
            instructions=str(data.get("instructions") or ""),
        )


def _as_lines(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    out: List[str] = [str(v) for v in value if v is not None]
    return tuple(out)
