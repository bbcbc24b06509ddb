"""Typed input/output channel between producers, the assistant and displays."""

from wysper.bus.events import AssistantFailure, AssistantReply, TextInput
from wysper.bus.queue import InputQueue

__all__ = ["AssistantFailure", "AssistantReply", "InputQueue", "TextInput"]
