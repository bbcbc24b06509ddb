"""Data models for conversation events."""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

INITIALIZATION_ACTION = "skill_prompt_initialization"


class Role(str, Enum):
    """Who produced an event."""

    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class Category(str, Enum):
    """Coarse event classification derived from the action."""

    CAPTURE = "capture"
    SPEECH = "speech"
    LLM = "llm"
    NAVIGATION = "navigation"
    SYSTEM = "system"


DEFAULT_ACTIONS: dict[Role, str] = {
    Role.USER: "chat_input",
    Role.MODEL: "llm_response",
    Role.SYSTEM: "system_event",
}


def generate_event_id() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}"


def categorize_action(action: str) -> Category:
    """Map a free-form action name onto a category."""
    a = action.lower()
    if "screenshot" in a or "ocr" in a:
        return Category.CAPTURE
    if "speech" in a or "transcription" in a:
        return Category.SPEECH
    if "llm" in a or "gemini" in a:
        return Category.LLM
    if "initialization" in a:
        return Category.SYSTEM
    if "skill" in a or "switch" in a:
        return Category.NAVIGATION
    return Category.SYSTEM


def summarize(category: Category, action: str, content: str, skill: str,
              metadata: dict[str, Any]) -> str:
    """One-line human readable summary of an event."""
    if category is Category.CAPTURE:
        length = metadata.get("text_length", len(content))
        return f"Screen capture with {length} characters extracted"
    if category is Category.SPEECH:
        return f"Speech recognition: {'successful' if content else 'failed'}"
    if category is Category.LLM:
        return f"AI analysis using {skill or 'default'} skill"
    if category is Category.NAVIGATION:
        return f"Switched to {skill or 'unknown'} context"
    return action


@dataclass(frozen=True)
class ConversationEvent:
    """One atomic record of conversation activity.

    Records are immutable; maintenance swaps in replacement records.
    """

    id: str
    timestamp: datetime
    role: Role
    content: str
    skill: str
    action: str
    category: Category
    context_summary: str
    metadata: dict[str, Any] = field(default_factory=dict)
    compressed: bool = False

    @classmethod
    def create(
        cls,
        role: Role | str,
        content: str,
        skill: str,
        action: str | None = None,
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> "ConversationEvent":
        """Build an event, deriving category and summary once."""
        role = Role(role)
        action = action or DEFAULT_ACTIONS[role]
        metadata = dict(metadata or {})
        category = categorize_action(action)
        return cls(
            id=generate_event_id(),
            timestamp=timestamp or datetime.now(),
            role=role,
            content=content,
            skill=skill,
            action=action,
            category=category,
            context_summary=summarize(category, action, content, skill, metadata),
            metadata=metadata,
        )

    @property
    def is_initialization(self) -> bool:
        return self.action == INITIALIZATION_ACTION

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "role": self.role.value,
            "content": self.content,
            "skill": self.skill,
            "action": self.action,
            "category": self.category.value,
            "context_summary": self.context_summary,
            "metadata": self.metadata,
            "compressed": self.compressed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationEvent":
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            role=Role(data["role"]),
            content=data.get("content", ""),
            skill=data.get("skill", ""),
            action=data["action"],
            category=Category(data["category"]),
            context_summary=data.get("context_summary", data["action"]),
            metadata=data.get("metadata") or {},
            compressed=data.get("compressed", False),
        )
