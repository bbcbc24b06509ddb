"""Prompt memory policy. Each skill's system instruction goes out once per session."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from wysper.errors import SkillRegistryError
from wysper.skills.registry import SkillRegistry, normalize_skill_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstructionDecision:
    """Whether the next request carries the skill's system instruction."""

    skill: str
    instruction: str | None = None
    is_using_memory: bool = False


def _marker(event: Any) -> tuple[Any, Any]:
    """Extract (skill_used, prompt_sent_as_memory) from an event or a mapping."""
    if isinstance(event, Mapping):
        source = event.get("metadata") or event
    else:
        source = getattr(event, "metadata", None) or {}
    return source.get("skill_used"), source.get("prompt_sent_as_memory")


class PromptMemoryPolicy:
    """Decides per skill whether the system instruction must be (re-)injected.

    A skill counts as delivered once history holds an event recording
    ``skill_used == skill`` with ``prompt_sent_as_memory`` true, no matter how
    many turns of other skills came in between.
    """

    def __init__(self, registry: SkillRegistry, programming_language: str | None = None):
        self.registry = registry
        self.programming_language = programming_language or None
        self._sent: set[str] = set()

    @property
    def sent_skills(self) -> frozenset[str]:
        return frozenset(self._sent)

    @staticmethod
    def normalize(skill_name: str | None) -> str:
        return normalize_skill_name(skill_name)

    def should_inject_instruction(self, skill: str, history: Iterable[Any]) -> bool:
        history = list(history or [])
        if not history:
            return True
        skill = self.normalize(skill)
        for event in history:
            used, sent = _marker(event)
            if used == skill and sent is True:
                return False
        return True

    def build_instruction_decision(
        self, skill: str, user_message: str, history: Iterable[Any]
    ) -> InstructionDecision:
        """Look up the instruction and decide whether it goes out with this request."""
        skill = self.normalize(skill)
        if not self.should_inject_instruction(skill, history):
            return InstructionDecision(skill=skill)

        try:
            instruction = self.registry.get_prompt(skill, self.programming_language)
        except SkillRegistryError as e:
            logger.error("Skill prompts unavailable, sending without instruction: %s", e)
            return InstructionDecision(skill=skill)
        if instruction is None:
            logger.warning("No system prompt found for skill: %s", skill)
            return InstructionDecision(skill=skill)

        self._sent.add(skill)
        logger.debug(
            "Using system instruction for skill %s (%d chars, message %d chars)",
            skill, len(instruction), len(user_message),
        )
        return InstructionDecision(skill=skill, instruction=instruction, is_using_memory=True)

    def reset(self) -> None:
        """Forget delivered skills (called when the store is cleared)."""
        self._sent.clear()

    def stats(self) -> dict[str, Any]:
        try:
            available = self.registry.available_skills()
        except SkillRegistryError:
            available = []
        return {
            "total_prompts": len(available),
            "skills_used_in_session": len(self._sent),
            "available_skills": available,
            "skills_used": sorted(self._sent),
            "programming_language": self.programming_language,
        }
