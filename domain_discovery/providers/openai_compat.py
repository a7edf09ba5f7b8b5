"""
OpenAI-compatible chat completion provider.

Works with any endpoint exposing `POST {base_url}/chat/completions`
(OpenAI, Ollama's /v1 API, Z.AI and similar gateways).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from ..config import LLMProviderConfig
from ..errors import LLMProviderError
from .base import CompletionOptions, CompletionResult, LLMMessage

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = float(os.environ.get("DOMAIN_DISCOVERY_LLM_TIMEOUT_SECONDS", "120.0"))
_DEFAULT_CONNECT_TIMEOUT_SECONDS = float(
    os.environ.get("DOMAIN_DISCOVERY_LLM_CONNECT_TIMEOUT_SECONDS", "20.0")
)


class OpenAICompatProvider:
    """
    Minimal async chat-completions client.

    Usage:
        async with OpenAICompatProvider(api_key=key, base_url=url, model="gpt-4o-mini") as llm:
            result = await llm.complete([LLMMessage(role="user", content="...")])
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = _DEFAULT_CONNECT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("OpenAI-compatible provider base_url is required")
        if not model.strip():
            raise ValueError("OpenAI-compatible provider model is required")

        self.model = model

        base_url = base_url.rstrip("/")
        self._chat_url = f"{base_url}/chat/completions"

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            transport=transport,
        )

        self._headers = {"Content-Type": "application/json"}
        # Local servers such as Ollama accept unauthenticated requests
        if api_key.strip():
            self._headers["Authorization"] = f"Bearer {api_key}"

    @classmethod
    def from_config(
        cls, config: LLMProviderConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> "OpenAICompatProvider":
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            connect_timeout_seconds=config.connect_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "OpenAICompatProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def complete(
        self, messages: list[LLMMessage], options: CompletionOptions | None = None
    ) -> CompletionResult:
        """
        Run one chat completion.

        Args:
            messages: Conversation so far
            options: Sampling options (defaults when omitted)

        Returns:
            CompletionResult with the first choice's content

        Raises:
            LLMProviderError: On transport failure, HTTP status >= 400 or an
                unreadable response body
        """
        if not messages:
            raise ValueError("complete() requires at least one message")

        options = options or CompletionOptions()
        payload: dict[str, Any] = {
            "model": options.model or self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": options.temperature,
        }
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        if options.response_format == "json":
            payload["response_format"] = {"type": "json_object"}

        try:
            resp = await self._client.post(self._chat_url, headers=self._headers, json=payload)
        except httpx.HTTPError as e:
            raise LLMProviderError(f"OpenAI-compatible request failed: {e}") from e

        if resp.status_code >= 400:
            # Surface the provider error payload for debugging
            raise LLMProviderError(
                f"OpenAI-compatible API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMProviderError(
                f"OpenAI-compatible API returned invalid JSON: {resp.text[:200]}",
                status_code=resp.status_code,
            ) from e

        choice = (data.get("choices") or [{}])[0]
        message = choice.get("message") or {}

        result = CompletionResult(
            content=message.get("content") or "",
            model=data.get("model") or payload["model"],
            usage=data.get("usage") or {},
            finish_reason=choice.get("finish_reason"),
        )
        logger.debug(
            "Completion from %s: %d chars, usage=%s", result.model, len(result.content), result.usage
        )
        return result
