"""Compose a model request from history, instruction decision and new input."""

from wysper.config.schema import GenerationConfig
from wysper.errors import ValidationError
from wysper.providers.base import LLMRequest
from wysper.session.models import Category, categorize_action
from wysper.skills.policy import InstructionDecision


def format_user_message(text: str, skill: str, action: str | None = None) -> str:
    """Wrap captured screen text with skill context; send other input verbatim."""
    text = (text or "").strip()
    if not text:
        return ""
    if action and categorize_action(action) is Category.CAPTURE:
        return f"Context: {skill.upper()} analysis request\n\nText to analyze:\n{text}"
    return text


def build_request(
    user_message: str,
    skill: str,
    history: list[dict[str, str]],
    decision: InstructionDecision,
    generation: GenerationConfig | None = None,
    action: str | None = None,
) -> LLMRequest:
    """History turns (oldest first) followed by the new user turn.

    Raises ValidationError if the formatted message is empty.
    """
    message = format_user_message(user_message, skill, action)
    if not message:
        raise ValidationError("User message is empty")

    contents = [
        {"role": "model" if turn["role"] == "model" else "user", "content": turn["content"]}
        for turn in history
        if turn.get("content")
    ]
    contents.append({"role": "user", "content": message})

    return LLMRequest(
        contents=contents,
        system_instruction=decision.instruction,
        generation=generation or GenerationConfig(),
        skill=skill,
        is_using_memory=decision.is_using_memory,
    )
