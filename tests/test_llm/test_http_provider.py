"""
Tests for HTTP Provider

Tests for scriptscope/llm/http_provider.py using httpx.MockTransport.
"""

import json

import httpx
import pytest

from scriptscope.core.config import ProviderConfig
from scriptscope.core.constants import ProviderKind
from scriptscope.core.exceptions import MissingConfigError, ProviderError, ProviderErrorKind
from scriptscope.llm.http_provider import OpenAICompatibleProvider, classify_status, create_provider
from scriptscope.llm.provider import GenerationOptions


def _completion(content: str, usage=None) -> dict:
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if usage is not None:
        body["usage"] = usage
    return body


def _provider(handler, kind=ProviderKind.OPENAI, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAICompatibleProvider(ProviderConfig(kind=kind), api_key=api_key, client=client)


class TestClassifyStatus:

    @pytest.mark.parametrize("status, kind", [
        (429, ProviderErrorKind.RATE_LIMITED),
        (401, ProviderErrorKind.UNAUTHORIZED),
        (403, ProviderErrorKind.UNAUTHORIZED),
        (408, ProviderErrorKind.TIMEOUT),
        (500, ProviderErrorKind.SERVER_ERROR),
        (503, ProviderErrorKind.SERVER_ERROR),
        (400, ProviderErrorKind.INVALID_REQUEST),
        (404, ProviderErrorKind.INVALID_REQUEST),
    ])
    def test_mapping(self, status, kind):
        assert classify_status(status) is kind


class TestOpenAICompatibleProvider:
    """Tests for OpenAICompatibleProvider."""

    @pytest.mark.asyncio
    async def test_successful_generation(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion("hello", {"total_tokens": 12}))

        provider = _provider(handler)
        text = await provider.generate("system", "user", GenerationOptions(temperature=0.1, max_output_tokens=50))

        assert text == "hello"
        assert provider.last_usage == {"total_tokens": 12}
        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert seen["body"]["temperature"] == 0.1
        assert seen["body"]["max_tokens"] == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, kind", [
        (429, ProviderErrorKind.RATE_LIMITED),
        (401, ProviderErrorKind.UNAUTHORIZED),
        (502, ProviderErrorKind.SERVER_ERROR),
        (422, ProviderErrorKind.INVALID_REQUEST),
    ])
    async def test_http_errors(self, status, kind):
        provider = _provider(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate("s", "u", GenerationOptions())

        assert exc_info.value.kind is kind
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await _provider(handler).generate("s", "u", GenerationOptions())

        assert exc_info.value.kind is ProviderErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await _provider(handler).generate("s", "u", GenerationOptions())

        assert exc_info.value.kind is ProviderErrorKind.NETWORK

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        httpx.DecodingError("bad gzip"),
        httpx.TooManyRedirects("loop"),
    ])
    async def test_other_request_errors_are_network(self, error):
        def handler(request):
            raise error

        with pytest.raises(ProviderError) as exc_info:
            await _provider(handler).generate("s", "u", GenerationOptions())

        assert exc_info.value.kind is ProviderErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_failed_call_clears_usage(self):
        replies = [
            httpx.Response(200, json=_completion("first", {"total_tokens": 5})),
            httpx.Response(503, text="down"),
        ]
        provider = _provider(lambda request: replies.pop(0))

        await provider.generate("s", "u", GenerationOptions())
        with pytest.raises(ProviderError):
            await provider.generate("s", "u", GenerationOptions())

        assert provider.last_usage is None

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        provider = _provider(lambda request: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate("s", "u", GenerationOptions())

        assert exc_info.value.kind is ProviderErrorKind.SERVER_ERROR

    @pytest.mark.asyncio
    async def test_local_provider_needs_no_key(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=_completion("local"))

        provider = _provider(handler, kind=ProviderKind.LOCAL, api_key=None)

        assert provider.is_local
        assert await provider.generate("", "u", GenerationOptions()) == "local"
        assert seen["url"] == "http://localhost:11434/v1/chat/completions"
        assert seen["auth"] is None

    def test_missing_key_for_remote(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_KEY", raising=False)

        with pytest.raises(MissingConfigError):
            create_provider(ProviderConfig(kind=ProviderKind.OPENAI))

    def test_gemini_key_fallback(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "gem-key")

        provider = create_provider(ProviderConfig(kind=ProviderKind.GEMINI))

        assert provider._headers()["Authorization"] == "Bearer gem-key"
