"""Plain HTTPS transport to the Gemini REST API using httpx.

Used as the alternate delivery path when the SDK call keeps failing at the
network level. Same request payload, different client stack.
"""

from typing import Any

import httpx

from wysper import __version__
from wysper.providers.base import EmptyResponseError, LLMProvider, LLMRequest, LLMResponse


class GeminiHTTPTransport(LLMProvider):
    """Calls ``models/{model}:generateContent`` directly."""

    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = (api_base or self.DEFAULT_BASE_URL).rstrip("/")

    async def generate(self, request: LLMRequest, model: str | None = None) -> LLMResponse:
        """POST the request payload. Raises on HTTP errors and empty answers."""
        model = model or self.default_model

        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"wysper/{__version__} httpx/{httpx.__version__}",
        }
        if self.api_key:
            headers["x-goog-api-key"] = self.api_key

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/models/{model}:generateContent",
                json=request.to_payload(),
                headers=headers,
            )
            if response.status_code != 200:
                raise httpx.HTTPStatusError(
                    f"HTTP {response.status_code}: {response.text[:500]}",
                    request=response.request,
                    response=response,
                )
            return self._parse_response(response.json())

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        """Parse the REST response into our format."""
        candidates = data.get("candidates") or []
        if not candidates or not candidates[0].get("content"):
            raise EmptyResponseError("Invalid response structure from Gemini API")

        candidate = candidates[0]
        parts = candidate["content"].get("parts") or []
        text = "\n".join(p["text"] for p in parts if p.get("text")).strip()
        if not text:
            raise EmptyResponseError("Empty text content in Gemini response")

        usage = {}
        if "usageMetadata" in data:
            meta = data["usageMetadata"]
            usage = {
                "prompt_tokens": meta.get("promptTokenCount", 0),
                "completion_tokens": meta.get("candidatesTokenCount", 0),
                "total_tokens": meta.get("totalTokenCount", 0),
            }

        return LLMResponse(
            content=text,
            finish_reason=(candidate.get("finishReason") or "stop").lower(),
            usage=usage,
            transport="http",
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
