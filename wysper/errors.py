"""Error taxonomy for the request pipeline.

Backend failures are classified by inspecting the failure description. The
classification decides the retry backoff and the short, skill-aware message
shown to the user; the raw cause is only ever logged.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum


class WysperError(Exception):
    """Base class for all errors raised by wysper."""


class ValidationError(WysperError):
    """Empty or malformed input. Never retried."""


class SkillRegistryError(WysperError):
    """Skill prompts could not be loaded."""


class ErrorKind(str, Enum):
    """Classification of a backend failure."""

    NETWORK = "NETWORK_ERROR"
    AUTH = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class ErrorAnalysis:
    kind: ErrorKind
    is_network: bool
    suggested_action: str


_TIMEOUT_MARKERS = ("request timeout", "timed out", "deadline exceeded")
_NETWORK_MARKERS = (
    "fetch failed",
    "network error",
    "enotfound",
    "econnrefused",
    "connection refused",
    "connection reset",
    "connecterror",
    "name or service not known",
    "temporary failure in name resolution",
    "timeout",
)
_AUTH_MARKERS = (
    "unauthorized",
    "invalid api key",
    "api key not valid",
    "api key not configured",
    "permission denied",
    "forbidden",
)
_RATE_LIMIT_MARKERS = (
    "quota",
    "rate limit",
    "too many requests",
    "resource exhausted",
    "resource_exhausted",
)
_AUTH_STATUS = frozenset({401, 403})
_RATE_LIMIT_STATUS = frozenset({429})

# HTTP status codes only count as standalone tokens, not digits inside ids.
_STATUS_TOKEN = re.compile(r"\b([1-5]\d\d)\b")


def describe(error: BaseException) -> str:
    """Error message, falling back to the type name for message-less errors."""
    return str(error) or type(error).__name__


def _status_codes(error: BaseException, message: str) -> set[int]:
    """Status codes carried by the error (SDK ``code``, httpx ``response``) or named in its message."""
    codes = {int(code) for code in _STATUS_TOKEN.findall(message)}
    code = getattr(error, "code", None)
    if isinstance(code, int):
        codes.add(code)
    status = getattr(getattr(error, "response", None), "status_code", None)
    if isinstance(status, int):
        codes.add(status)
    return codes


def classify_error(error: BaseException) -> ErrorAnalysis:
    """Classify a failure by its type and message."""
    if isinstance(error, BackendError):
        return ErrorAnalysis(error.kind, error.kind in NETWORK_KINDS, error.suggested_action)

    message = f"{type(error).__name__}: {error}".lower()

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)) or any(
        m in message for m in _TIMEOUT_MARKERS
    ):
        return ErrorAnalysis(
            ErrorKind.TIMEOUT, True, "Check network latency or increase the timeout"
        )
    if any(m in message for m in _NETWORK_MARKERS):
        return ErrorAnalysis(
            ErrorKind.NETWORK, True, "Check internet connection and firewall settings"
        )
    codes = _status_codes(error, message)
    if codes & _AUTH_STATUS or any(m in message for m in _AUTH_MARKERS):
        return ErrorAnalysis(ErrorKind.AUTH, False, "Verify the Gemini API key configuration")
    if codes & _RATE_LIMIT_STATUS or any(m in message for m in _RATE_LIMIT_MARKERS):
        return ErrorAnalysis(
            ErrorKind.RATE_LIMIT, False, "Wait before retrying or check the API quota"
        )
    return ErrorAnalysis(ErrorKind.UNKNOWN, False, "Check logs for more details")


class BackendError(WysperError):
    """A language-model call that failed after all attempts."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        suggested_action: str = "",
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.suggested_action = suggested_action
        self.cause = cause

    def user_message(self, skill: str) -> str:
        """Short message for the display surface. Never includes the raw cause."""
        if self.kind is ErrorKind.AUTH:
            detail = "The Gemini API key was rejected or is missing. Update it in settings."
        elif self.kind in NETWORK_KINDS:
            detail = "Could not reach Gemini. Check your connection and try again."
        elif self.kind is ErrorKind.RATE_LIMIT:
            detail = "Gemini is rate limiting requests. Slow down and try again shortly."
        else:
            detail = f"Gemini request failed: {self}"
        return f"[{skill}] {detail}"


class NetworkError(BackendError):
    kind = ErrorKind.NETWORK


class AuthError(BackendError):
    kind = ErrorKind.AUTH


class RateLimitError(BackendError):
    kind = ErrorKind.RATE_LIMIT


class BackendTimeoutError(BackendError):
    kind = ErrorKind.TIMEOUT


class UnknownBackendError(BackendError):
    kind = ErrorKind.UNKNOWN


NETWORK_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT})

_ERROR_CLASSES: dict[ErrorKind, type[BackendError]] = {
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.AUTH: AuthError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.TIMEOUT: BackendTimeoutError,
    ErrorKind.UNKNOWN: UnknownBackendError,
}


def wrap_error(error: BaseException, attempts: int) -> BackendError:
    """Wrap a raw failure into the BackendError subclass for its classification."""
    analysis = classify_error(error)
    cls = _ERROR_CLASSES[analysis.kind]
    return cls(
        f"Gemini API failed after {attempts} attempts: {describe(error)}",
        attempts=attempts,
        suggested_action=analysis.suggested_action,
        cause=error,
    )
