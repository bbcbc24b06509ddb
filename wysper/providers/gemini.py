"""Google Gemini LLM provider using the google-genai SDK."""

import asyncio
from typing import Any

from google import genai
from google.genai import types

from wysper.providers.base import EmptyResponseError, LLMProvider, LLMRequest, LLMResponse


class GeminiProvider(LLMProvider):
    """
    LLM provider for Google Gemini models.

    Uses the google-genai SDK (synchronous) with asyncio.to_thread for async compat.
    A call abandoned by the orchestrator's timeout keeps running in its worker
    thread; its result is discarded.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini-2.5-flash",
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.client = genai.Client(api_key=api_key)

    async def generate(self, request: LLMRequest, model: str | None = None) -> LLMResponse:
        """Send a generate request through the SDK."""
        model = model or self.default_model
        gen = request.generation
        config = types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            temperature=gen.temperature,
            max_output_tokens=gen.max_output_tokens,
            top_k=gen.top_k,
            top_p=gen.top_p,
        )

        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=model,
            contents=self._convert_contents(request.contents),
            config=config,
        )
        return self._parse_response(response)

    def _convert_contents(self, contents: list[dict[str, str]]) -> list[types.Content]:
        """Convert two-role turns to Gemini Content objects."""
        return [
            types.Content(
                role="model" if turn["role"] == "model" else "user",
                parts=[types.Part.from_text(text=turn["content"])],
            )
            for turn in contents
        ]

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse Gemini response into LLMResponse."""
        if not response.candidates:
            raise EmptyResponseError("Empty response from Gemini API")
        candidate = response.candidates[0]

        text_parts: list[str] = []
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if part.text:
                    text_parts.append(part.text)

        text = "\n".join(text_parts).strip()
        if not text:
            raise EmptyResponseError("Empty text content in Gemini response")

        usage = {}
        if response.usage_metadata:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
                "completion_tokens": response.usage_metadata.candidates_token_count or 0,
                "total_tokens": response.usage_metadata.total_token_count or 0,
            }

        finish = candidate.finish_reason.name.lower() if candidate.finish_reason else "stop"

        return LLMResponse(content=text, finish_reason=finish, usage=usage, transport="sdk")

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
