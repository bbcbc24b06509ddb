"""Input queue that serializes requests from concurrent text producers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from wysper.bus.events import AssistantFailure, AssistantReply, TextInput

logger = logging.getLogger(__name__)

Result = AssistantReply | AssistantFailure
Handler = Callable[[TextInput], Awaitable[Result]]
Consumer = Callable[[Result], Awaitable[None]]


class InputQueue:
    """
    Single-consumer queue between producers and the assistant.

    Capture, speech and chat producers publish concurrently; inputs are handled
    strictly one at a time in publish order, so store appends and backend
    calls never interleave and model events land in request order.
    """

    def __init__(self, handler: Handler):
        self._handler = handler
        self._inbound: asyncio.Queue[TextInput] = asyncio.Queue()
        self._consumers: list[Consumer] = []
        self._running = False

    async def publish(self, msg: TextInput) -> None:
        """Queue an input. Empty text is rejected here, before it reaches the store."""
        if not msg.content or not msg.content.strip():
            logger.debug("Dropping empty input from %s", msg.action)
            return
        await self._inbound.put(msg)

    def on_reply(self, consumer: Consumer) -> None:
        """Register a display surface for replies and failures."""
        self._consumers.append(consumer)

    @property
    def pending(self) -> int:
        return self._inbound.qsize()

    async def _dispatch(self, msg: TextInput) -> Result:
        result = await self._handler(msg)
        for consumer in self._consumers:
            try:
                await consumer(result)
            except Exception:
                logger.exception("Reply consumer failed")
        return result

    async def drain(self) -> list[Result]:
        """Handle everything queued so far, in order."""
        results = []
        while not self._inbound.empty():
            results.append(await self._dispatch(self._inbound.get_nowait()))
        return results

    async def run(self) -> None:
        """Handle inputs until stop() is called."""
        self._running = True
        logger.info("Input queue started")

        while self._running:
            try:
                msg = await asyncio.wait_for(self._inbound.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self._dispatch(msg)

    def stop(self) -> None:
        self._running = False
        logger.info("Input queue stopping")
