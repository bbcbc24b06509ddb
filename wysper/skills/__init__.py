"""Skill prompts and the per-skill instruction memory policy."""

from wysper.skills.policy import InstructionDecision, PromptMemoryPolicy
from wysper.skills.registry import (
    DEFAULT_SKILL,
    SkillRegistry,
    normalize_skill_name,
)

__all__ = [
    "DEFAULT_SKILL",
    "InstructionDecision",
    "PromptMemoryPolicy",
    "SkillRegistry",
    "normalize_skill_name",
]
