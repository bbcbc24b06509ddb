"""Tests for the plain HTTPS Gemini transport."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from wysper.providers.base import EmptyResponseError, LLMRequest
from wysper.providers.http import GeminiHTTPTransport

_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"


def _response(status: int, json_data=None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", _URL)
    if json_data is not None:
        return httpx.Response(status, json=json_data, request=request)
    return httpx.Response(status, text=text, request=request)


def _ok_body(text: str = "A prefix tree.") -> dict:
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}
        ],
        "usageMetadata": {"promptTokenCount": 5, "candidatesTokenCount": 7, "totalTokenCount": 12},
    }


def _request() -> LLMRequest:
    return LLMRequest(
        contents=[{"role": "user", "content": "What is a trie?"}],
        system_instruction="You are a DSA coach.",
    )


class TestGeminiHTTPTransport:
    def test_base_url(self):
        assert GeminiHTTPTransport().base_url == GeminiHTTPTransport.DEFAULT_BASE_URL
        assert GeminiHTTPTransport(api_base="http://localhost:8080/v1/").base_url == "http://localhost:8080/v1"

    @pytest.mark.asyncio
    async def test_posts_payload(self):
        transport = GeminiHTTPTransport(api_key="secret")
        mock_post = AsyncMock(return_value=_response(200, _ok_body()))

        with patch("httpx.AsyncClient.post", mock_post):
            result = await transport.generate(_request())

        assert result.content == "A prefix tree."
        assert result.transport == "http"
        assert result.finish_reason == "stop"
        assert result.usage == {"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12}

        args, kwargs = mock_post.call_args
        assert args[0] == _URL
        assert kwargs["headers"]["x-goog-api-key"] == "secret"
        assert kwargs["json"]["systemInstruction"] == {"parts": [{"text": "You are a DSA coach."}]}
        assert kwargs["json"]["contents"][0] == {"role": "user", "parts": [{"text": "What is a trie?"}]}

    @pytest.mark.asyncio
    async def test_model_override(self):
        transport = GeminiHTTPTransport(api_key="k")
        mock_post = AsyncMock(return_value=_response(200, _ok_body()))

        with patch("httpx.AsyncClient.post", mock_post):
            await transport.generate(_request(), model="gemini-pro")

        assert mock_post.call_args.args[0].endswith("/models/gemini-pro:generateContent")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        transport = GeminiHTTPTransport(api_key="bad")
        mock_post = AsyncMock(return_value=_response(403, text="API key not valid"))

        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(httpx.HTTPStatusError, match="HTTP 403"):
                await transport.generate(_request())

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self):
        transport = GeminiHTTPTransport(api_key="k")
        mock_post = AsyncMock(return_value=_response(200, {"candidates": []}))

        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(EmptyResponseError):
                await transport.generate(_request())

    def test_parse_empty_text_raises(self):
        with pytest.raises(EmptyResponseError):
            GeminiHTTPTransport()._parse_response(_ok_body(text="  "))

    def test_payload_without_instruction(self):
        payload = LLMRequest(contents=[{"role": "user", "content": "hi"}]).to_payload()
        assert "systemInstruction" not in payload
        assert payload["generationConfig"] == {
            "temperature": 0.7,
            "maxOutputTokens": 2048,
            "topK": 40,
            "topP": 0.95,
        }
