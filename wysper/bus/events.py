"""Messages exchanged between text producers, the assistant and display surfaces."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class TextInput:
    """Text produced by a capture, speech or chat collaborator."""

    content: str
    action: str = "chat_input"  # e.g. screenshot_ocr, speech_transcription
    skill: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AssistantReply:
    """Successful (or degraded) answer for the display surface."""

    response: str
    skill: str
    processing_time_ms: int = 0
    used_fallback: bool = False
    request_id: int = 0
    is_using_memory: bool = False

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "skill": self.skill,
            "processing_time_ms": self.processing_time_ms,
            "used_fallback": self.used_fallback,
            "request_id": self.request_id,
        }


@dataclass
class AssistantFailure:
    """Failure notice for the display surface."""

    error: str
    kind: str
    timestamp: datetime = field(default_factory=datetime.now)
