"""LLM provider implementations."""

from wysper.providers.base import EmptyResponseError, LLMProvider, LLMRequest, LLMResponse
from wysper.providers.http import GeminiHTTPTransport

__all__ = [
    "EmptyResponseError",
    "GeminiHTTPTransport",
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
]

# Lazy import so the google-genai SDK is only loaded when the provider is built.
def __getattr__(name: str):  # noqa: N807
    if name == "GeminiProvider":
        from wysper.providers.gemini import GeminiProvider
        return GeminiProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
