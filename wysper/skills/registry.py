"""Skill registry: system instructions keyed by canonical skill name."""

import logging
from pathlib import Path

from wysper.errors import SkillRegistryError

logger = logging.getLogger(__name__)

DEFAULT_SKILL = "general"

SKILL_ALIASES: dict[str, str] = {
    "data-structures": "dsa",
    "algorithms": "dsa",
    "data-structures-algorithms": "dsa",
    "behavioral-interview": "behavioral",
    "behavior": "behavioral",
    "selling": "sales",
    "business-development": "sales",
    "presentations": "presentation",
    "public-speaking": "presentation",
    "datascience": "data-science",
    "machine-learning": "data-science",
    "ml": "data-science",
    "coding": "programming",
    "software-development": "programming",
    "development": "programming",
    "dev-ops": "devops",
    "infrastructure": "devops",
    "systems-design": "system-design",
    "architecture": "system-design",
    "distributed-systems": "system-design",
    "negotiating": "negotiation",
    "conflict-resolution": "negotiation",
}

SKILLS_REQUIRING_LANGUAGE = ("programming", "dsa", "devops", "system-design", "data-science")

# Built-in prompts; a prompts directory may override or extend them with <skill>.md files.
_BUILTIN_PROMPTS: dict[str, str] = {
    "general": """# General Assistant

You are a concise assistant helping the user in real time during a meeting or
interview. Answer the question directly, then add only the context needed to
act on it.
""",
    "dsa": """# Data Structures & Algorithms Coach

You are a DSA coach. For each problem:
- Restate the problem and its constraints in one or two lines.
- Name the pattern (two pointers, sliding window, BFS/DFS, DP, heap, ...).
- Give the optimal approach with time and space complexity.
- Provide a clean implementation and call out edge cases.
""",
    "system-design": """# System Design Interview Coach

You help design scalable systems. Cover requirements, capacity estimates,
high-level components, data model, APIs, bottlenecks and trade-offs. Prefer
structured answers with headings and short bullet points.
""",
    "programming": """# Programming Assistant

You are a senior software engineer. Explain the requirements, the edge cases
and the complexity, then give idiomatic, production quality code.
""",
    "behavioral": """# Behavioral Interview Coach

Help the user answer behavioral questions with the STAR method (Situation,
Task, Action, Result). Keep answers specific, measurable and under two minutes
when spoken.
""",
    "data-science": """# Data Science Assistant

You are an experienced data scientist. Cover problem framing, data
preparation, model choice, evaluation metrics and pitfalls such as leakage and
class imbalance.
""",
    "devops": """# DevOps Assistant

You are a DevOps and SRE expert. Address CI/CD, infrastructure as code,
containers, orchestration, observability and incident response with concrete
commands and configuration where helpful.
""",
    "sales": """# Sales Coach

Help the user run a sales conversation: discover needs, map them to value,
handle objections and propose a clear next step.
""",
    "presentation": """# Presentation Coach

Help the user present clearly: lead with the key message, structure the story,
anticipate questions and keep slides simple.
""",
    "negotiation": """# Negotiation Coach

Help the user negotiate: identify interests behind positions, know the BATNA,
anchor deliberately and look for trades that create value for both sides.
""",
}

_LANGUAGE_SECTIONS: dict[str, str] = {
    "programming": """

## PRIMARY PROGRAMMING LANGUAGE: {upper}
Unless explicitly asked for a different language, all code examples, solutions
and explanations should use {title}. Consider {title}-specific syntax, standard
libraries, idioms and performance characteristics.""",
    "dsa": """

## IMPLEMENTATION LANGUAGE: {upper}
Use {title} for algorithm implementations and data structure examples. Prefer
the built-in data structures and standard library methods of {title} and state
complexity in the context of {title}.""",
    "system-design": """

## IMPLEMENTATION CONTEXT: {upper}
When discussing implementation details or technology choices, consider {title}
frameworks, libraries and ecosystem tools as the primary context.""",
    "data-science": """

## PRIMARY LANGUAGE: {upper}
Prioritize {title} data science libraries, data manipulation techniques,
visualization tools and machine learning frameworks.""",
    "devops": """

## SCRIPTING/AUTOMATION LANGUAGE: {upper}
Use {title} for automation scripts and tooling examples, and prefer CI/CD,
monitoring and container setups that suit {title} projects.""",
}


def normalize_skill_name(skill_name: str | None) -> str:
    """Lowercase, trim and resolve aliases. Empty input maps to the default skill."""
    if not skill_name or not skill_name.strip():
        return DEFAULT_SKILL
    normalized = skill_name.lower().strip()
    return SKILL_ALIASES.get(normalized, normalized)


class SkillRegistry:
    """Read-only mapping of skill identifier to system instruction.

    Loaded once, lazily. Built-in prompts are always present; ``<skill>.md``
    files in ``prompts_dir`` override or add skills.
    """

    def __init__(self, prompts_dir: Path | None = None):
        self.prompts_dir = prompts_dir
        self._prompts: dict[str, str] | None = None

    def load(self) -> dict[str, str]:
        """Load prompts. Raises SkillRegistryError when prompts_dir is unreadable."""
        if self._prompts is not None:
            return self._prompts

        prompts = dict(_BUILTIN_PROMPTS)
        if self.prompts_dir is not None:
            if not self.prompts_dir.is_dir():
                raise SkillRegistryError(f"Prompt directory not found: {self.prompts_dir}")
            try:
                for path in sorted(self.prompts_dir.glob("*.md")):
                    prompts[normalize_skill_name(path.stem)] = path.read_text(encoding="utf-8")
            except OSError as e:
                raise SkillRegistryError(f"Failed to load skill prompts: {e}") from e

        self._prompts = prompts
        logger.debug("Loaded %d skill prompts", len(prompts))
        return prompts

    def get_prompt(self, skill_name: str | None, programming_language: str | None = None) -> str | None:
        """Get the system instruction for a skill, with optional language context."""
        skill = normalize_skill_name(skill_name)
        prompt = self.load().get(skill)
        if prompt is None:
            return None
        if programming_language and skill in SKILLS_REQUIRING_LANGUAGE:
            prompt = inject_programming_language(prompt, programming_language, skill)
        return prompt

    def available_skills(self) -> list[str]:
        return list(self.load())

    def __contains__(self, skill_name: object) -> bool:
        return isinstance(skill_name, str) and normalize_skill_name(skill_name) in self.load()

    @staticmethod
    def requires_programming_language(skill_name: str | None) -> bool:
        return normalize_skill_name(skill_name) in SKILLS_REQUIRING_LANGUAGE


def inject_programming_language(prompt: str, language: str, skill: str) -> str:
    """Append a language-specific section to a skill prompt."""
    template = _LANGUAGE_SECTIONS.get(
        skill,
        "\n\n## PROGRAMMING LANGUAGE CONTEXT: {upper}\n"
        "When providing technical examples or code-related advice, use {title} "
        "as the primary programming language.",
    )
    return prompt + template.format(upper=language.upper(), title=language[:1].upper() + language[1:])
