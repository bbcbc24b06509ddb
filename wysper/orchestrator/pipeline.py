"""Request orchestrator with retries, per-attempt timeouts, transport fallback and degraded answers."""

import asyncio
import logging
import random
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from wysper.bus.events import AssistantReply
from wysper.config.schema import GeminiConfig, GenerationConfig
from wysper.errors import (
    AuthError,
    BackendError,
    ErrorAnalysis,
    classify_error,
    describe,
    wrap_error,
)
from wysper.orchestrator.request import build_request
from wysper.providers.base import LLMProvider, LLMRequest, LLMResponse
from wysper.skills.policy import InstructionDecision

logger = logging.getLogger(__name__)

GEMINI_HOST = "generativelanguage.googleapis.com"

CONNECTIVITY_TARGETS = [
    {"host": "google.com", "port": 443, "name": "Google (HTTPS)"},
    {"host": GEMINI_HOST, "port": 443, "name": "Gemini API Endpoint"},
]

FALLBACK_RESPONSES = {
    "dsa": (
        "This appears to be a data structures and algorithms problem. Consider breaking it "
        "down into smaller components and identifying the appropriate algorithm or data "
        "structure to use."
    ),
    "system-design": (
        "For this system design question, consider scalability, reliability, and the "
        "trade-offs between different architectural approaches."
    ),
    "programming": (
        "This looks like a programming challenge. Focus on understanding the requirements, "
        "edge cases, and optimal time/space complexity."
    ),
    "behavioral": (
        "Structure your answer with the STAR method: situation, task, action and a "
        "measurable result."
    ),
    "default": (
        "I can help analyze this content. Please ensure your Gemini API key is properly "
        "configured for detailed analysis."
    ),
}


class RequestState(str, Enum):
    """Per-request lifecycle, logged as the request moves through it."""

    BUILDING = "building"
    ATTEMPTING = "attempting"
    RETRY_WAIT = "retry_wait"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FAILED = "failed"


def _default_provider_factory(config: GeminiConfig) -> Callable[[str], LLMProvider]:
    def factory(api_key: str) -> LLMProvider:
        from wysper.providers.gemini import GeminiProvider

        return GeminiProvider(api_key=api_key, default_model=config.model)

    return factory


def _default_transport_factory(config: GeminiConfig) -> Callable[[str], LLMProvider]:
    def factory(api_key: str) -> LLMProvider:
        from wysper.providers.http import GeminiHTTPTransport

        return GeminiHTTPTransport(
            api_key=api_key,
            api_base=config.api_base,
            default_model=config.model,
            timeout=config.timeout,
        )

    return factory


class RequestOrchestrator:
    """
    Turns a user message plus projected history into a Gemini call.

    Each request moves Building -> Attempting(k) -> Succeeded, or through
    RetryWait back to Attempting(k+1). Once every attempt (including one over
    the alternate HTTP transport) has failed, the classified error is raised,
    or a canned answer is returned when ``fallback_enabled`` is set.

    The credential is read lazily: ``update_api_key`` drops the cached
    clients and the next call rebuilds them.
    """

    def __init__(
        self,
        config: GeminiConfig | None = None,
        api_key: str | None = None,
        provider_factory: Callable[[str], LLMProvider] | None = None,
        transport_factory: Callable[[str], LLMProvider] | None = None,
    ):
        self.config = config or GeminiConfig()
        self.api_key = api_key
        self._provider_factory = provider_factory or _default_provider_factory(self.config)
        self._transport_factory = transport_factory or _default_transport_factory(self.config)
        self._provider: LLMProvider | None = None
        self._transport: LLMProvider | None = None
        self.request_count = 0
        self.error_count = 0

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def update_api_key(self, api_key: str | None) -> None:
        """Rotate the credential; clients are rebuilt on the next call."""
        self.api_key = api_key or None
        self._provider = None
        self._transport = None
        logger.info("API key updated, client will be rebuilt on next request")

    def _get_provider(self) -> LLMProvider:
        if not self.api_key:
            raise AuthError(
                "Gemini API key not configured",
                suggested_action="Run `wysper set-key` or set GEMINI_API_KEY",
            )
        if self._provider is None:
            self._provider = self._provider_factory(self.api_key)
            logger.info("Gemini client initialized (model=%s)", self.config.model)
        return self._provider

    def _get_transport(self) -> LLMProvider:
        if self._transport is None:
            self._transport = self._transport_factory(self.api_key or "")
        return self._transport

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _backoff_delay(self, analysis: ErrorAnalysis, attempt: int) -> float:
        base = self.config.backoff_network if analysis.is_network else self.config.backoff_default
        return base * attempt + random.uniform(0, self.config.backoff_jitter)

    async def _attempt(self, backend: LLMProvider, request: LLMRequest) -> LLMResponse:
        return await asyncio.wait_for(
            backend.generate(request, model=self.config.model),
            timeout=self.config.timeout,
        )

    async def execute(self, request: LLMRequest) -> LLMResponse:
        """Run the request with retries. Raises a classified BackendError when exhausted."""
        provider = self._get_provider()
        max_retries = max(1, self.config.max_retries)
        last_error: BaseException | None = None
        analysis: ErrorAnalysis | None = None
        attempts = 0

        for attempt in range(1, max_retries + 1):
            attempts = attempt
            logger.debug("Request %s: attempt %d/%d", RequestState.ATTEMPTING.value, attempt, max_retries)
            try:
                response = await self._attempt(provider, request)
                logger.debug("Gemini request succeeded on attempt %d", attempt)
                return response
            except Exception as e:
                last_error = e
                analysis = classify_error(e)
                logger.warning(
                    "Gemini attempt %d failed: kind=%s remaining=%d error=%s",
                    attempt, analysis.kind.value, max_retries - attempt, describe(e),
                )
                if attempt == max_retries:
                    break
                delay = self._backoff_delay(analysis, attempt)
                logger.debug("Request %s: %.2fs before attempt %d", RequestState.RETRY_WAIT.value, delay, attempt + 1)
                await asyncio.sleep(delay)

        if analysis is not None and analysis.is_network and self.config.enable_fallback_method:
            attempts += 1
            logger.warning("Standard request failed, trying alternate HTTP transport")
            try:
                response = await self._attempt(self._get_transport(), request)
                logger.info("Alternate transport request succeeded")
                return response
            except Exception as e:
                last_error = e
                logger.warning("Alternate transport failed: %s", describe(e))

        raise wrap_error(last_error, attempts) from last_error

    async def process(
        self,
        text: str,
        skill: str,
        history: list[dict[str, str]],
        decision: InstructionDecision,
        action: str | None = None,
    ) -> AssistantReply:
        """Build, execute and time one request.

        ValidationError and a missing credential propagate immediately. Other
        backend failures yield a degraded reply when ``fallback_enabled``.
        """
        start = time.monotonic()
        logger.debug("Request %s for skill %s", RequestState.BUILDING.value, skill)
        request = build_request(
            text, skill, history, decision, generation=self.config.generation, action=action
        )
        self._get_provider()

        self.request_count += 1
        request_id = self.request_count
        logger.info(
            "Processing text with LLM: skill=%s length=%d history=%d request=%d",
            skill, len(text), len(history), request_id,
        )

        try:
            response = await self.execute(request)
        except BackendError as e:
            self.error_count += 1
            logger.error(
                "LLM processing failed: kind=%s attempts=%d request=%d cause=%s",
                e.kind.value, e.attempts, request_id, e.cause,
            )
            if self.config.fallback_enabled:
                logger.info("Request %s: returning fallback answer", RequestState.DEGRADED.value)
                return self.fallback_response(skill, request_id)
            logger.debug("Request %s", RequestState.FAILED.value)
            raise

        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(
            "Request %s: skill=%s response=%d chars in %dms",
            RequestState.SUCCEEDED.value, skill, len(response.content), elapsed,
        )
        return AssistantReply(
            response=response.content,
            skill=skill,
            processing_time_ms=elapsed,
            used_fallback=False,
            request_id=request_id,
            is_using_memory=request.is_using_memory,
        )

    def fallback_response(self, skill: str, request_id: int = 0) -> AssistantReply:
        """Canned, skill-aware placeholder. Always marked as a fallback."""
        return AssistantReply(
            response=FALLBACK_RESPONSES.get(skill, FALLBACK_RESPONSES["default"]),
            skill=skill,
            processing_time_ms=0,
            used_fallback=True,
            request_id=request_id,
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @staticmethod
    async def _check_reachable(host: str, port: int, timeout: float = 5.0) -> None:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        writer.close()
        await writer.wait_closed()

    async def test_connectivity(self) -> dict[str, Any]:
        """TCP reachability of Google and the Gemini endpoint. Never raises."""
        results = await asyncio.gather(
            *(self._check_reachable(t["host"], t["port"]) for t in CONNECTIVITY_TARGETS),
            return_exceptions=True,
        )
        tests = []
        for target, result in zip(CONNECTIVITY_TARGETS, results):
            failed = isinstance(result, BaseException)
            tests.append({
                **target,
                "success": not failed,
                "error": describe(result) if failed else None,
            })
        connectivity = {"timestamp": datetime.now().isoformat(), "tests": tests}
        logger.info("Network connectivity check completed: %s", connectivity)
        return connectivity

    async def test_connection(self) -> dict[str, Any]:
        """Connectivity check plus one tiny generate call, outside the retry pipeline."""
        if not self.is_configured:
            return {"success": False, "error": "Service not initialized"}

        connectivity = await self.test_connectivity()
        request = LLMRequest(
            contents=[{"role": "user", "content": 'Test connection. Please respond with "OK".'}],
            generation=GenerationConfig(temperature=0, max_output_tokens=10),
        )
        start = time.monotonic()
        try:
            response = await self._attempt(self._get_provider(), request)
        except Exception as e:
            analysis = classify_error(e)
            logger.error("Connection test failed: %s (%s)", e, analysis.kind.value)
            return {
                "success": False,
                "error": describe(e),
                "kind": analysis.kind.value,
                "suggested_action": analysis.suggested_action,
                "network_connectivity": connectivity,
            }

        return {
            "success": True,
            "response": response.content,
            "latency_ms": int((time.monotonic() - start) * 1000),
            "network_connectivity": connectivity,
        }

    def stats(self) -> dict[str, Any]:
        success_rate = 0.0
        if self.request_count:
            success_rate = (self.request_count - self.error_count) / self.request_count * 100
        return {
            "is_configured": self.is_configured,
            "request_count": self.request_count,
            "error_count": self.error_count,
            "success_rate": success_rate,
            "model": self.config.model,
        }
