"""Finish reason and token usage mapping."""

from __future__ import annotations

from typing import Any

from geminiport.types import (
    FinishReason,
    FinishReasonType,
    InputTokens,
    OutputTokens,
    Usage,
)

_FINISH_REASONS: dict[str, FinishReasonType] = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content-filter",
    "RECITATION": "content-filter",
    "OTHER": "other",
}


def raw_finish_reason(value: Any) -> str | None:
    """Normalize SDK enum members and plain strings to the raw string value."""
    if value is None:
        return None
    if type(value) is str:
        return value
    for attr in ("value", "name"):
        inner = getattr(value, attr, None)
        if isinstance(inner, str) and inner:
            return inner
    return str(value)


def map_finish_reason(value: Any) -> FinishReason:
    """Map a backend finish reason; unknown or missing values become ``other``."""
    raw = raw_finish_reason(value)
    return FinishReason(unified=_FINISH_REASONS.get(raw or "", "other"), raw=raw)


def resolve_finish_reason(value: Any, *, has_tool_calls: bool) -> FinishReason:
    """Like :func:`map_finish_reason`, but tool calls force ``tool-calls``."""
    if has_tool_calls:
        return FinishReason(unified="tool-calls", raw=raw_finish_reason(value))
    return map_finish_reason(value)


def _count(metadata: Any, name: str) -> int | None:
    value = getattr(metadata, name, None)
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def map_usage(metadata: Any) -> Usage:
    """Map backend usage metadata; fields the backend omits stay ``None``."""
    if metadata is None:
        return Usage()

    prompt = _count(metadata, "prompt_token_count")
    cached = _count(metadata, "cached_content_token_count")
    candidates = _count(metadata, "candidates_token_count")
    thoughts = _count(metadata, "thoughts_token_count")

    no_cache = prompt - cached if prompt is not None and cached is not None else None
    return Usage(
        input_tokens=InputTokens(total=prompt, no_cache=no_cache, cache_read=cached),
        output_tokens=OutputTokens(total=candidates, text=candidates, reasoning=thoughts),
    )
