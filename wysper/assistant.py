"""Assistant wiring registry, store, policy and orchestrator together."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from wysper.bus.events import AssistantFailure, AssistantReply, TextInput
from wysper.config.schema import Config
from wysper.errors import BackendError, ValidationError
from wysper.orchestrator.pipeline import RequestOrchestrator
from wysper.providers.base import LLMProvider
from wysper.session.history import HistoryProjector
from wysper.session.models import Role
from wysper.session.store import EventStore
from wysper.skills.policy import PromptMemoryPolicy
from wysper.skills.registry import SkillRegistry, normalize_skill_name

logger = logging.getLogger(__name__)


class Assistant:
    """
    The request flow for one process.

    Construction order is fixed: skill registry load, store seed, policy,
    orchestrator. Every turn:
    1. Reads the model-facing history and the policy history
    2. Decides whether the skill instruction goes out
    3. Appends the user event
    4. Calls the backend through the orchestrator
    5. Appends the model event carrying the instruction marker

    Callers must not run two ``ask`` calls concurrently; ``InputQueue``
    serializes producers.
    """

    def __init__(
        self,
        config: Config | None = None,
        registry: SkillRegistry | None = None,
        provider_factory: Callable[[str], LLMProvider] | None = None,
        transport_factory: Callable[[str], LLMProvider] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or Config()
        self.registry = registry or SkillRegistry(self.config.prompts_path)
        self.store = EventStore(
            self.config.session,
            registry=self.registry,
            active_skill=self.config.skills.active,
            clock=clock,
        )
        self.history = HistoryProjector(self.store)
        self.policy = PromptMemoryPolicy(
            self.registry, programming_language=self.config.skills.programming_language
        )
        self.store.on_clear(self.policy.reset)
        self.orchestrator = RequestOrchestrator(
            self.config.gemini,
            api_key=self.config.get_api_key(),
            provider_factory=provider_factory,
            transport_factory=transport_factory,
        )

    @property
    def active_skill(self) -> str:
        return self.store.active_skill

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def ask(
        self,
        text: str,
        skill: str | None = None,
        action: str = "chat_input",
        metadata: dict[str, Any] | None = None,
    ) -> AssistantReply:
        """Run one turn. Raises ValidationError or BackendError on failure."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Input text is empty")

        skill = normalize_skill_name(skill or self.store.active_skill)
        turns = self.history.model_turns(self.config.session.history_entries)
        policy_history = self.history.instruction_history(skill)
        decision = self.policy.build_instruction_decision(skill, text, policy_history)

        if decision.instruction is not None:
            # An evicted marker is re-created once the instruction goes out again.
            self.store.ensure_initialization(skill, decision.instruction)

        self.store.append(Role.USER, text, skill=skill, action=action, metadata=metadata)

        reply = await self.orchestrator.process(text, skill, turns, decision, action=action)

        self.store.append(
            Role.MODEL,
            reply.response,
            skill=skill,
            action="llm_response",
            metadata={
                "skill_used": skill,
                "prompt_sent_as_memory": decision.is_using_memory and not reply.used_fallback,
                "processing_time_ms": reply.processing_time_ms,
                "used_fallback": reply.used_fallback,
                "request_id": reply.request_id,
            },
        )
        return reply

    async def handle(self, msg: TextInput) -> AssistantReply | AssistantFailure:
        """Run a turn for the display surface, turning errors into failure notices."""
        skill = normalize_skill_name(msg.skill or self.store.active_skill)
        try:
            return await self.ask(msg.content, skill=skill, action=msg.action, metadata=msg.metadata)
        except ValidationError as e:
            return AssistantFailure(error=str(e), kind="VALIDATION_ERROR")
        except BackendError as e:
            logger.error("Request failed (%s): %s", e.kind.value, e)
            return AssistantFailure(error=e.user_message(skill), kind=e.kind.value)

    # ------------------------------------------------------------------
    # Settings surface
    # ------------------------------------------------------------------

    def switch_skill(self, skill: str) -> str:
        """Make ``skill`` active and record the change."""
        skill = normalize_skill_name(skill)
        previous = self.store.active_skill
        self.store.active_skill = skill
        self.config.skills.active = skill
        self.store.append(
            Role.SYSTEM,
            f"Switched from {previous} to {skill}",
            skill=skill,
            action="skill_change",
            metadata={"previous_skill": previous},
        )
        logger.info("Active skill: %s -> %s", previous, skill)
        return skill

    def update_api_key(self, api_key: str) -> None:
        self.config.gemini.api_key = api_key
        self.orchestrator.update_api_key(self.config.get_api_key())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self.store.clear()

    def restore(self) -> int:
        """Load the persisted session unless configured to start fresh."""
        if self.config.session.clear_on_restart:
            return 0
        count = self.store.load(self.config.session_path)
        if count:
            logger.info("Restored %d session events", count)
        return count

    def close(self) -> None:
        """Flush the session to disk, or drop it when configured to start fresh."""
        if self.config.session.clear_on_restart:
            self.store.clear()
            return
        self.store.save(self.config.session_path)

    def status(self) -> dict[str, Any]:
        return {
            "active_skill": self.store.active_skill,
            "memory": self.store.memory_usage(),
            "summary": self.history.session_summary(),
            "prompts": self.policy.stats(),
            "backend": self.orchestrator.stats(),
        }
