"""Tests for the input queue."""

import asyncio

import pytest

from wysper.bus.events import AssistantFailure, AssistantReply, TextInput
from wysper.bus.queue import InputQueue


class TestTextInput:
    def test_defaults(self):
        msg = TextInput(content="hello")
        assert msg.action == "chat_input"
        assert msg.skill is None
        assert msg.metadata == {}

    def test_reply_metadata(self):
        reply = AssistantReply(response="ok", skill="dsa", processing_time_ms=12, request_id=3)
        assert reply.metadata == {
            "skill": "dsa",
            "processing_time_ms": 12,
            "used_fallback": False,
            "request_id": 3,
        }


class TestInputQueue:
    @pytest.mark.asyncio
    async def test_handled_in_publish_order(self):
        handled = []

        async def handler(msg):
            await asyncio.sleep(0)
            handled.append(msg.content)
            return AssistantReply(response=msg.content.upper(), skill="general")

        queue = InputQueue(handler)
        await queue.publish(TextInput(content="first", action="screenshot_ocr"))
        await queue.publish(TextInput(content="second", action="speech_transcription"))
        await queue.publish(TextInput(content="third"))

        results = await queue.drain()

        assert handled == ["first", "second", "third"]
        assert [r.response for r in results] == ["FIRST", "SECOND", "THIRD"]
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_empty_input_dropped(self):
        async def handler(msg):
            return AssistantReply(response="ok", skill="general")

        queue = InputQueue(handler)
        await queue.publish(TextInput(content="   "))
        await queue.publish(TextInput(content=""))

        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_consumers_receive_results(self):
        async def handler(msg):
            return AssistantFailure(error="nope", kind="NETWORK_ERROR")

        received = []

        async def consumer(result):
            received.append(result)

        queue = InputQueue(handler)
        queue.on_reply(consumer)
        await queue.publish(TextInput(content="hi"))
        await queue.drain()

        assert len(received) == 1
        assert received[0].kind == "NETWORK_ERROR"

    @pytest.mark.asyncio
    async def test_failing_consumer_does_not_stop_others(self, caplog):
        async def handler(msg):
            return AssistantReply(response="ok", skill="general")

        received = []

        async def broken(result):
            raise RuntimeError("display gone")

        async def consumer(result):
            received.append(result)

        queue = InputQueue(handler)
        queue.on_reply(broken)
        queue.on_reply(consumer)
        await queue.publish(TextInput(content="hi"))
        await queue.drain()

        assert len(received) == 1
        assert "Reply consumer failed" in caplog.text

    @pytest.mark.asyncio
    async def test_run_until_stopped(self):
        handled = asyncio.Event()

        async def handler(msg):
            handled.set()
            return AssistantReply(response="ok", skill="general")

        queue = InputQueue(handler)
        task = asyncio.create_task(queue.run())
        await queue.publish(TextInput(content="hi"))

        await asyncio.wait_for(handled.wait(), timeout=2.0)
        queue.stop()
        await asyncio.wait_for(task, timeout=3.0)

        assert task.done()
