"""Base classes for language-model backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from wysper.config.schema import GenerationConfig


@dataclass
class LLMRequest:
    """A fully composed generate call: ordered turns plus optional system instruction."""

    contents: list[dict[str, str]]
    system_instruction: str | None = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    skill: str = ""
    is_using_memory: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Gemini REST ``generateContent`` body."""
        payload: dict[str, Any] = {
            "contents": [
                {"role": turn["role"], "parts": [{"text": turn["content"]}]}
                for turn in self.contents
            ],
            "generationConfig": {
                "temperature": self.generation.temperature,
                "maxOutputTokens": self.generation.max_output_tokens,
                "topK": self.generation.top_k,
                "topP": self.generation.top_p,
            },
        }
        if self.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": self.system_instruction}]}
        return payload


class EmptyResponseError(RuntimeError):
    """The backend answered without any text."""


@dataclass
class LLMResponse:
    """Response from an LLM backend."""

    content: str
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    transport: str = "sdk"


class LLMProvider(ABC):
    """Abstract base class for LLM backends.

    Implementations raise on failure (including empty text) so the
    orchestrator can classify and retry.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def generate(self, request: LLMRequest, model: str | None = None) -> LLMResponse:
        """Send a generate request and return the text response."""

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
