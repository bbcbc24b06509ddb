"""Conversation memory: event log and read-only projections."""

from wysper.session.history import HistoryProjector
from wysper.session.models import Category, ConversationEvent, Role
from wysper.session.store import EventStore

__all__ = ["Category", "ConversationEvent", "EventStore", "HistoryProjector", "Role"]
