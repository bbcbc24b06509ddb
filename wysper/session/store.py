"""Append-only, bounded log of conversation events."""

import dataclasses
import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from wysper.config.schema import SessionConfig
from wysper.errors import SkillRegistryError
from wysper.session.models import (
    INITIALIZATION_ACTION,
    Category,
    ConversationEvent,
    Role,
)
from wysper.skills.registry import DEFAULT_SKILL, SkillRegistry, normalize_skill_name

logger = logging.getLogger(__name__)

COMPRESSION_MARKER = "...[compressed]"


class EventStore:
    """Bounded, in-memory log of conversation events.

    Owns every mutation and the maintenance policy. Maintenance never edits the
    live list: it builds a new list and swaps it in, so a ``events`` snapshot
    taken earlier stays valid.

    Not thread-safe; callers serialize ``append`` (see ``wysper.bus``).
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        registry: SkillRegistry | None = None,
        active_skill: str = DEFAULT_SKILL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or SessionConfig()
        self.registry = registry
        self.clock = clock
        self._active_skill = normalize_skill_name(active_skill)
        self._events: list[ConversationEvent] = []
        self._clear_listeners: list[Callable[[], None]] = []
        self._seed_initializations()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def events(self) -> tuple[ConversationEvent, ...]:
        """Snapshot of all events in insertion order."""
        return tuple(self._events)

    @property
    def active_skill(self) -> str:
        return self._active_skill

    @active_skill.setter
    def active_skill(self, skill: str) -> None:
        self._active_skill = normalize_skill_name(skill)

    def __len__(self) -> int:
        return len(self._events)

    def get(self, event_id: str) -> ConversationEvent | None:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    # ------------------------------------------------------------------
    # Initialization markers
    # ------------------------------------------------------------------

    def _seed_initializations(self) -> None:
        if self.registry is None:
            return
        try:
            prompts = self.registry.load()
        except SkillRegistryError as e:
            logger.error("Skill registry failed to load, no initializations seeded: %s", e)
            return

        for skill, prompt in prompts.items():
            self._events.append(self._initialization_event(skill, prompt))
        logger.debug("Seeded %d skill initializations", len(prompts))

    def _initialization_event(self, skill: str, prompt: str) -> ConversationEvent:
        return ConversationEvent.create(
            role=Role.SYSTEM,
            content=prompt,
            skill=skill,
            action=INITIALIZATION_ACTION,
            metadata={"prompt_length": len(prompt)},
            timestamp=self.clock(),
        )

    def has_initialization(self, skill: str) -> bool:
        skill = normalize_skill_name(skill)
        return any(e.is_initialization and e.skill == skill for e in self._events)

    def initialization_for(self, skill: str) -> ConversationEvent | None:
        skill = normalize_skill_name(skill)
        for event in self._events:
            if event.is_initialization and event.skill == skill:
                return event
        return None

    def ensure_initialization(self, skill: str, prompt: str) -> str | None:
        """Append an initialization marker for ``skill`` unless one is present."""
        skill = normalize_skill_name(skill)
        if self.has_initialization(skill):
            return None
        event = self._initialization_event(skill, prompt)
        self._events.append(event)
        return event.id

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(
        self,
        role: Role | str,
        content: str,
        skill: str | None = None,
        action: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Append an event and run maintenance if needed. Returns the event id."""
        event = ConversationEvent.create(
            role=role,
            content=content,
            skill=normalize_skill_name(skill) if skill else self._active_skill,
            action=action,
            metadata=metadata,
            timestamp=self.clock(),
        )
        self._events.append(event)
        logger.debug(
            "Session event added: action=%s id=%s total=%d",
            event.action, event.id, len(self._events),
        )
        self.maintain()
        return event.id

    def maintain(self, force: bool = False) -> None:
        """Full maintenance above the ceiling, compression above the threshold."""
        if force or len(self._events) > self.config.max_memory_size:
            self._full_maintenance()
        elif len(self._events) > self.config.compression_threshold:
            self._compress_old_events()

    def clear(self) -> None:
        """Drop every event, re-seed initializations and notify listeners."""
        count = len(self._events)
        self._events = []
        self._seed_initializations()
        for listener in self._clear_listeners:
            listener()
        logger.info("Session memory cleared (%d events)", count)

    def on_clear(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every clear()."""
        self._clear_listeners.append(listener)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _full_maintenance(self) -> None:
        before = len(self._events)
        events = self._remove_old_system_events(self._events)
        events = self._consolidate(events)
        events = self._enforce_ceiling(events)
        self._events = events
        logger.info(
            "Session memory maintenance completed: before=%d after=%d removed=%d",
            before, len(events), before - len(events),
        )

    def _remove_old_system_events(self, events: list[ConversationEvent]) -> list[ConversationEvent]:
        cutoff = self.clock() - timedelta(hours=self.config.system_retention_hours)
        kept = []
        for event in events:
            if event.category is not Category.SYSTEM or event.timestamp > cutoff:
                kept.append(event)
            elif (
                self.config.retain_active_initialization
                and event.is_initialization
                and event.skill == self._active_skill
            ):
                kept.append(event)
        return kept

    def _consolidate(self, events: list[ConversationEvent]) -> list[ConversationEvent]:
        """Collapse adjacent runs of same category+action within the window."""
        window = timedelta(seconds=self.config.consolidation_window_seconds)
        result: list[ConversationEvent] = []
        run: list[ConversationEvent] = []

        def flush() -> None:
            if len(run) == 1:
                result.append(run[0])
            elif run:
                result.append(self._consolidated_event(run))

        for event in events:
            if run and self._similar(run[0], event, window):
                run.append(event)
                continue
            flush()
            run = [event]
        flush()
        return result

    @staticmethod
    def _similar(first: ConversationEvent, other: ConversationEvent, window: timedelta) -> bool:
        if first.is_initialization or other.is_initialization:
            return False
        return (
            first.category is other.category
            and first.action == other.action
            and abs(other.timestamp - first.timestamp) < window
        )

    @staticmethod
    def _consolidated_event(run: list[ConversationEvent]) -> ConversationEvent:
        first, last = run[0], run[-1]
        metadata = {
            **first.metadata,
            "consolidated_count": len(run),
            "time_span": {
                "start": first.timestamp.isoformat(),
                "end": last.timestamp.isoformat(),
            },
        }
        return dataclasses.replace(
            first,
            timestamp=last.timestamp,
            context_summary=f"{first.context_summary} ({len(run)} similar events)",
            metadata=metadata,
        )

    def _enforce_ceiling(self, events: list[ConversationEvent]) -> list[ConversationEvent]:
        excess = len(events) - self.config.max_memory_size
        if excess <= 0:
            return events
        kept = []
        for event in events:
            if excess > 0 and not event.is_initialization:
                excess -= 1
                continue
            kept.append(event)
        # Only initializations left and still too many: drop the oldest of those too.
        if excess > 0:
            kept = kept[excess:]
        return kept

    def _compress_old_events(self) -> None:
        cutoff = self.clock() - timedelta(hours=self.config.compression_age_hours)
        prefix = self.config.compression_prefix_length
        compressed = 0
        events = []
        for event in self._events:
            if (
                event.timestamp < cutoff
                and not event.compressed
                and len(event.content) > self.config.compression_min_length
            ):
                event = dataclasses.replace(
                    event,
                    content=event.content[:prefix] + COMPRESSION_MARKER,
                    compressed=True,
                )
                compressed += 1
            events.append(event)
        self._events = events
        if compressed:
            logger.debug("Compressed %d old events", compressed)

    # ------------------------------------------------------------------
    # Diagnostics and persistence
    # ------------------------------------------------------------------

    def memory_usage(self) -> dict[str, Any]:
        """Event count, approximate serialized size and ceiling utilization."""
        size = len(json.dumps([e.to_dict() for e in self._events]).encode("utf-8"))
        return {
            "event_count": len(self._events),
            "approximate_bytes": size,
            "approximate_size": f"{size / 1024:.2f} KB",
            "utilization_percent": round(len(self._events) / self.config.max_memory_size * 100),
        }

    def save(self, path: Path) -> None:
        """Persist all events to a JSONL file, in order."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for event in self._events:
                f.write(json.dumps(event.to_dict()) + "\n")

    def load(self, path: Path) -> int:
        """Replace the log with events from a JSONL file. Returns the count loaded.

        Initialization markers missing from the file are re-seeded.
        """
        if not path.exists():
            return 0

        events: list[ConversationEvent] = []
        seen: set[str] = set()
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    event = ConversationEvent.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                    logger.warning("Skipping malformed session line: %s", e)
                    continue
                if event.id in seen:
                    continue
                seen.add(event.id)
                events.append(event)

        self._events = events
        if self.registry is not None:
            try:
                prompts = self.registry.load()
            except SkillRegistryError:
                prompts = {}
            missing = [s for s in prompts if not self.has_initialization(s)]
            self._events = [
                self._initialization_event(skill, prompts[skill]) for skill in missing
            ] + self._events
        self.maintain()
        return len(events)
