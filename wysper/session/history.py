"""Read-only projections over the event store."""

from collections import Counter
from typing import Any

from wysper.errors import SkillRegistryError
from wysper.session.models import Category, ConversationEvent, Role
from wysper.session.store import EventStore
from wysper.skills.registry import normalize_skill_name

IMPORTANT_CATEGORIES = (Category.CAPTURE, Category.LLM)


class HistoryProjector:
    """Builds views over an EventStore for the orchestrator and display surfaces.

    Every method returns fresh dicts/lists; nothing here mutates the store or
    hands out references to event metadata.
    """

    def __init__(self, store: EventStore):
        self.store = store

    def _conversational(self) -> list[ConversationEvent]:
        return [e for e in self.store.events if not e.is_initialization]

    def recent_events(self, count: int = 10) -> list[dict[str, Any]]:
        """Last ``count`` events in summarized form, newest last."""
        events = self.store.events[-count:] if count > 0 else ()
        return [
            {
                "id": e.id,
                "timestamp": e.timestamp.isoformat(),
                "role": e.role.value,
                "action": e.action,
                "category": e.category.value,
                "summary": e.context_summary,
                "metadata": dict(e.metadata),
                "compressed": e.compressed,
            }
            for e in events
        ]

    def important_events(self, count: int = 5) -> list[dict[str, Any]]:
        """Last ``count`` capture and llm events."""
        important = [e for e in self.store.events if e.category in IMPORTANT_CATEGORIES]
        events = important[-count:] if count > 0 else []
        return [
            {
                "timestamp": e.timestamp.isoformat(),
                "category": e.category.value,
                "summary": e.context_summary,
                "content": e.content[:150] or None,
            }
            for e in events
        ]

    def conversation_history(self, max_entries: int = 20) -> list[dict[str, Any]]:
        """Last ``max_entries`` events, initialization markers excluded."""
        events = self._conversational()
        events = events[-max_entries:] if max_entries > 0 else []
        return [
            {
                "role": e.role.value,
                "content": e.content,
                "timestamp": e.timestamp.isoformat(),
                "skill": e.skill,
                "action": e.action,
            }
            for e in events
        ]

    def model_turns(self, max_entries: int = 20) -> list[dict[str, str]]:
        """Two-role turns for the backend, oldest first.

        The backend only understands two roles, so anything that is not a
        model turn is forwarded as user.
        """
        turns = []
        for entry in self.conversation_history(max_entries):
            role = entry["role"]
            if role != Role.MODEL.value:
                role = Role.USER.value
            if entry["content"]:
                turns.append({"role": role, "content": entry["content"]})
        return turns

    def instruction_history(self, skill: str) -> list[ConversationEvent]:
        """History fed to the prompt memory policy for ``skill``.

        When the skill has a registry entry but its initialization marker has
        been evicted, the skill is treated as never seen: returns ``[]``.
        """
        skill = normalize_skill_name(skill)
        registry = self.store.registry
        try:
            known = registry is not None and skill in registry
        except SkillRegistryError:
            known = False
        if known and not self.store.has_initialization(skill):
            return []
        return self._conversational()

    def skill_context(self, skill: str) -> dict[str, Any]:
        """Initialization content for ``skill`` plus its last 10 events."""
        skill = normalize_skill_name(skill)
        init = self.store.initialization_for(skill)
        events = [e for e in self._conversational() if e.skill == skill][-10:]
        return {
            "skill": skill,
            "instruction": init.content if init else None,
            "events": [
                {
                    "role": e.role.value,
                    "content": e.content,
                    "timestamp": e.timestamp.isoformat(),
                    "action": e.action,
                }
                for e in events
            ],
        }

    def session_summary(self) -> dict[str, Any]:
        """Category counts, time span and top-3 skills by event count."""
        events = self.store.events
        activities = Counter(e.category.value for e in events)
        skills = Counter(e.skill for e in events if e.skill and not e.is_initialization)

        duration = None
        if events:
            start = min(e.timestamp for e in events)
            end = max(e.timestamp for e in events)
            duration = {
                "start": start.isoformat(),
                "end": end.isoformat(),
                "duration_ms": int((end - start).total_seconds() * 1000),
            }

        return {
            "duration": duration,
            "activities": dict(activities),
            "focus": [{"skill": s, "count": c} for s, c in skills.most_common(3)],
            "event_count": len(events),
        }

    def optimized_history(self) -> dict[str, Any]:
        """Compact overview for display surfaces."""
        return {
            "recent": self.recent_events(10),
            "important": self.important_events(5),
            "summary": self.session_summary(),
            "total_events": len(self.store),
        }
