"""JSON parsing for language-model responses with enhanced error reporting."""

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class JSONResponseError(Exception):
    """Raised when a model response cannot be parsed, with location information."""

    def __init__(
        self,
        message: str,
        content: str = "",
        line: int | None = None,
        column: int | None = None,
        position: int | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.content = content
        self.line = line
        self.column = column
        self.position = position
        self.original_error = original_error

    def __str__(self) -> str:
        parts = ["JSON parse error in model response"]
        if self.line is not None:
            parts.append(f"line {self.line}")
        if self.column is not None:
            parts.append(f"column {self.column}")
        if self.position is not None:
            parts.append(f"position {self.position}")
        parts.append(f": {super().__str__()}")
        return " ".join(parts)


def strip_code_fence(content: str) -> str:
    """Return the body of the first ``` / ```json fence, or the content unchanged."""
    match = _FENCE_RE.search(content)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return content.strip()


def parse_json_response(content: str, expect: type | None = dict) -> Any:
    """
    Parse a model response that may wrap its JSON in a Markdown fence.

    Args:
        content: Raw completion text
        expect: Required top-level type (None to accept any JSON value)

    Returns:
        Parsed JSON value

    Raises:
        JSONResponseError: If the body is not valid JSON or has the wrong shape
    """
    cleaned = strip_code_fence(content or "")
    if not cleaned:
        raise JSONResponseError("Empty response", content)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise JSONResponseError(
            e.msg,
            content,
            line=e.lineno,
            column=e.colno,
            position=e.pos,
            original_error=e,
        ) from e

    if expect is not None and not isinstance(data, expect):
        raise JSONResponseError(
            f"Expected {expect.__name__} at top level, got {type(data).__name__}", content
        )

    return data
