"""Tests for conversation event models."""

from datetime import datetime

import pytest

from wysper.session.models import (
    Category,
    ConversationEvent,
    Role,
    categorize_action,
    generate_event_id,
)


class TestCategorizeAction:
    @pytest.mark.parametrize(
        ("action", "expected"),
        [
            ("screenshot_ocr", Category.CAPTURE),
            ("OCR_complete", Category.CAPTURE),
            ("speech_transcription", Category.SPEECH),
            ("llm_response", Category.LLM),
            ("gemini_call", Category.LLM),
            ("skill_prompt_initialization", Category.SYSTEM),
            ("skill_change", Category.NAVIGATION),
            ("window_switch", Category.NAVIGATION),
            ("chat_input", Category.SYSTEM),
        ],
    )
    def test_categories(self, action, expected):
        assert categorize_action(action) is expected


class TestEventId:
    def test_format(self):
        millis, suffix = generate_event_id().split("-")
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_unique_within_same_instant(self):
        ids = {generate_event_id() for _ in range(1000)}
        assert len(ids) == 1000


class TestConversationEvent:
    def test_create_derives_category_and_summary(self):
        event = ConversationEvent.create("model", "Use a heap.", skill="dsa")

        assert event.role is Role.MODEL
        assert event.action == "llm_response"
        assert event.category is Category.LLM
        assert event.context_summary == "AI analysis using dsa skill"
        assert event.compressed is False
        assert isinstance(event.timestamp, datetime)

    def test_summaries(self):
        capture = ConversationEvent.create("user", "abc", "dsa", action="screenshot_ocr")
        speech = ConversationEvent.create("user", "hello", "dsa", action="speech_transcription")
        nav = ConversationEvent.create("system", "x", "devops", action="skill_change")
        other = ConversationEvent.create("user", "hi", "dsa")

        assert capture.context_summary == "Screen capture with 3 characters extracted"
        assert speech.context_summary == "Speech recognition: successful"
        assert nav.context_summary == "Switched to devops context"
        assert other.context_summary == "chat_input"

    def test_is_initialization(self):
        event = ConversationEvent.create("system", "prompt", "dsa", action="skill_prompt_initialization")
        assert event.is_initialization

    def test_immutable(self):
        event = ConversationEvent.create("user", "hi", "dsa")
        with pytest.raises(AttributeError):
            event.content = "changed"

    def test_dict_round_trip(self):
        event = ConversationEvent.create("user", "hi", "dsa", metadata={"duration": 2})
        restored = ConversationEvent.from_dict(event.to_dict())
        assert restored == event
