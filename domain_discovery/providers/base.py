"""
LLM provider interface.

Schema enrichment needs a single capability from a language model:
`complete(messages, options) -> CompletionResult`. Anything implementing
LLMProvider can be passed to the enricher or the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class LLMMessage:
    role: str  # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionOptions:
    temperature: float = 0.7
    max_tokens: int | None = None
    model: str | None = None  # overrides the provider default
    response_format: str = "text"  # "text" or "json"


@dataclass
class CompletionResult:
    content: str
    model: str = ""
    usage: dict[str, Any] = field(default_factory=dict)
    finish_reason: str | None = None


@runtime_checkable
class LLMProvider(Protocol):
    async def complete(
        self, messages: list[LLMMessage], options: CompletionOptions | None = None
    ) -> CompletionResult: ...
