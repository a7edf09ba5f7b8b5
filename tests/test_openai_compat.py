"""
Tests for OpenAI-Compatible Provider
====================================

Tests for request shape, auth headers and error mapping, using
httpx.MockTransport instead of a live endpoint.
"""

import json

import httpx
import pytest

from domain_discovery.config import LLMProviderConfig
from domain_discovery.errors import LLMProviderError
from domain_discovery.providers import (
    CompletionOptions,
    LLMMessage,
    LLMProvider,
    OpenAICompatProvider,
    create_provider,
)

MESSAGES = [LLMMessage(role="user", content="List the entities")]


def _provider(handler, api_key="sk-test", base_url="https://llm.example.com/v1/"):
    return OpenAICompatProvider(
        api_key=api_key,
        base_url=base_url,
        model="gpt-4o-mini",
        transport=httpx.MockTransport(handler),
    )


def _ok(content='{"entities": []}'):
    return httpx.Response(
        200,
        json={
            "model": "gpt-4o-mini-2024",
            "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 4},
        },
    )


class TestOpenAICompatProvider:
    """Tests for OpenAICompatProvider.complete()."""

    @pytest.mark.asyncio
    async def test_successful_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return _ok()

        async with _provider(handler) as provider:
            result = await provider.complete(
                MESSAGES, CompletionOptions(temperature=0.2, max_tokens=2000, response_format="json")
            )

        assert result.content == '{"entities": []}'
        assert result.model == "gpt-4o-mini-2024"
        assert result.finish_reason == "stop"
        assert result.usage["prompt_tokens"] == 12
        assert seen["url"] == "https://llm.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "List the entities"}],
            "temperature": 0.2,
            "max_tokens": 2000,
            "response_format": {"type": "json_object"},
        }

    @pytest.mark.asyncio
    async def test_default_options(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return _ok()

        async with _provider(handler) as provider:
            await provider.complete(MESSAGES)

        assert seen["body"]["temperature"] == 0.7
        assert "max_tokens" not in seen["body"]
        assert "response_format" not in seen["body"]

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return _ok()

        async with _provider(handler, api_key="") as provider:
            await provider.complete(MESSAGES)

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        async with _provider(handler) as provider:
            with pytest.raises(LLMProviderError) as exc_info:
                await provider.complete(MESSAGES)

        assert exc_info.value.status_code == 500
        assert "upstream exploded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _provider(handler) as provider:
            with pytest.raises(LLMProviderError) as exc_info:
                await provider.complete(MESSAGES)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_body_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        async with _provider(handler) as provider:
            with pytest.raises(LLMProviderError, match="invalid JSON"):
                await provider.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_empty_messages_rejected(self):
        async with _provider(lambda request: _ok()) as provider:
            with pytest.raises(ValueError):
                await provider.complete([])


class TestConstruction:
    """Tests for provider construction."""

    def test_requires_base_url_and_model(self):
        with pytest.raises(ValueError):
            OpenAICompatProvider(api_key="k", base_url=" ", model="m")
        with pytest.raises(ValueError):
            OpenAICompatProvider(api_key="k", base_url="http://x", model="")

    def test_satisfies_provider_protocol(self):
        provider = _provider(lambda request: _ok())

        assert isinstance(provider, LLMProvider)

    def test_create_provider_from_config(self):
        config = LLMProviderConfig(provider="ollama", api_key="", base_url="http://localhost:11434/v1", model="llama3")

        provider = create_provider(config)

        assert isinstance(provider, OpenAICompatProvider)
        assert provider.model == "llama3"

    def test_create_provider_without_config(self, monkeypatch):
        monkeypatch.delenv("DOMAIN_DISCOVERY_LLM_API_KEY", raising=False)
        monkeypatch.delenv("DOMAIN_DISCOVERY_LLM_PROVIDER", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert create_provider() is None
