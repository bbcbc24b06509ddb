"""Tests for the history projector."""

from wysper.config.schema import SessionConfig
from wysper.session.history import HistoryProjector
from wysper.session.store import EventStore
from wysper.skills.registry import SkillRegistry


def _store_with_conversation(clock, registry=None):
    store = EventStore(registry=registry, clock=clock)
    store.append("user", "Explain quicksort", skill="dsa")
    clock.advance(seconds=5)
    store.append("model", "Quicksort partitions...", skill="dsa",
                 metadata={"skill_used": "dsa", "prompt_sent_as_memory": True})
    clock.advance(seconds=5)
    store.append("user", "Design a URL shortener", skill="system-design",
                 action="screenshot_ocr", metadata={"text_length": 22})
    clock.advance(seconds=5)
    store.append("model", "Start with requirements...", skill="system-design")
    return store


class TestRecentEvents:
    def test_last_n_newest_last(self, clock):
        projector = HistoryProjector(_store_with_conversation(clock))

        recent = projector.recent_events(2)

        assert len(recent) == 2
        assert recent[0]["action"] == "screenshot_ocr"
        assert recent[1]["action"] == "llm_response"
        assert recent[0]["summary"] == "Screen capture with 22 characters extracted"

    def test_metadata_is_a_copy(self, clock):
        store = _store_with_conversation(clock)
        projector = HistoryProjector(store)

        projector.recent_events(1)[0]["metadata"]["injected"] = True

        assert "injected" not in store.events[-1].metadata

    def test_zero(self, clock):
        projector = HistoryProjector(_store_with_conversation(clock))
        assert projector.recent_events(0) == []


class TestImportantEvents:
    def test_only_capture_and_llm(self, clock):
        projector = HistoryProjector(_store_with_conversation(clock))

        important = projector.important_events(5)

        assert [e["category"] for e in important] == ["llm", "capture", "llm"]

    def test_content_truncated(self, clock):
        store = EventStore(clock=clock)
        store.append("model", "a" * 300)
        important = HistoryProjector(store).important_events()
        assert len(important[0]["content"]) == 150


class TestConversationHistory:
    def test_excludes_initializations(self, clock, prompts_dir):
        store = _store_with_conversation(clock, registry=SkillRegistry(prompts_dir))
        history = HistoryProjector(store).conversation_history(50)

        assert len(history) == 4
        assert all(h["action"] != "skill_prompt_initialization" for h in history)
        assert set(history[0]) == {"role", "content", "timestamp", "skill", "action"}

    def test_max_entries(self, clock):
        history = HistoryProjector(_store_with_conversation(clock)).conversation_history(3)
        assert [h["content"] for h in history] == [
            "Quicksort partitions...",
            "Design a URL shortener",
            "Start with requirements...",
        ]

    def test_model_turns_two_roles(self, clock):
        store = _store_with_conversation(clock)
        store.append("system", "Switched to dsa", action="skill_change")

        turns = HistoryProjector(store).model_turns(10)

        assert [t["role"] for t in turns] == ["user", "model", "user", "model", "user"]
        assert turns[-1] == {"role": "user", "content": "Switched to dsa"}


class TestSkillContext:
    def test_instruction_and_events(self, clock, prompts_dir):
        store = _store_with_conversation(clock, registry=SkillRegistry(prompts_dir))

        context = HistoryProjector(store).skill_context("algorithms")

        assert context["skill"] == "dsa"
        assert context["instruction"] == "You are a DSA coach."
        assert [e["content"] for e in context["events"]] == [
            "Explain quicksort",
            "Quicksort partitions...",
        ]

    def test_missing_instruction(self, clock):
        context = HistoryProjector(_store_with_conversation(clock)).skill_context("dsa")
        assert context["instruction"] is None

    def test_last_ten_only(self, clock):
        store = EventStore(SessionConfig(), clock=clock)
        for i in range(15):
            clock.advance(minutes=2)
            store.append("user", f"q{i}", skill="dsa")

        events = HistoryProjector(store).skill_context("dsa")["events"]

        assert len(events) == 10
        assert events[0]["content"] == "q5"


class TestInstructionHistory:
    def test_returns_conversation_when_initialized(self, clock, prompts_dir):
        store = _store_with_conversation(clock, registry=SkillRegistry(prompts_dir))
        history = HistoryProjector(store).instruction_history("dsa")
        assert len(history) == 4

    def test_empty_after_initialization_evicted(self, clock, prompts_dir):
        store = EventStore(registry=SkillRegistry(prompts_dir), active_skill="general", clock=clock)
        store.append("model", "earlier answer", skill="dsa",
                     metadata={"skill_used": "dsa", "prompt_sent_as_memory": True})
        clock.advance(hours=25)
        store.maintain(force=True)

        projector = HistoryProjector(store)

        assert not store.has_initialization("dsa")
        assert projector.instruction_history("dsa") == []
        assert len(projector.instruction_history("general")) == 1

    def test_unknown_skill_uses_conversation(self, clock, prompts_dir):
        store = _store_with_conversation(clock, registry=SkillRegistry(prompts_dir))
        assert len(HistoryProjector(store).instruction_history("cooking")) == 4


class TestSessionSummary:
    def test_empty(self):
        summary = HistoryProjector(EventStore()).session_summary()
        assert summary["duration"] is None
        assert summary["event_count"] == 0
        assert summary["focus"] == []

    def test_counts_span_and_focus(self, clock):
        store = _store_with_conversation(clock)
        store.append("user", "behavioral q", skill="behavioral", action="speech_transcription")

        summary = HistoryProjector(store).session_summary()

        assert summary["activities"] == {"system": 1, "llm": 2, "capture": 1, "speech": 1}
        assert summary["duration"]["duration_ms"] == 15000
        assert summary["focus"][0] == {"skill": "dsa", "count": 2}
        assert len(summary["focus"]) == 3
        assert summary["event_count"] == 5

    def test_optimized_history(self, clock):
        overview = HistoryProjector(_store_with_conversation(clock)).optimized_history()
        assert overview["total_events"] == 4
        assert len(overview["recent"]) == 4
        assert len(overview["important"]) == 3
