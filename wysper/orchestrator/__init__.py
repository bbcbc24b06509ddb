"""Request orchestration: request building and the resilient execution pipeline."""

from wysper.orchestrator.pipeline import RequestOrchestrator, RequestState
from wysper.orchestrator.request import build_request, format_user_message

__all__ = ["RequestOrchestrator", "RequestState", "build_request", "format_user_message"]
