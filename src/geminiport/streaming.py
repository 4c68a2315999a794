"""Stream transform: backend chunks into ordered, typed stream events.

Lifecycle guarantees:

- ``stream-start`` is always first.
- ``text-start`` precedes every ``text-delta`` of its block, and each block
  ends with exactly one ``text-end``. At most one text block is open.
- Tool calls are emitted whole. A tool call arriving while a text block is
  open closes that block first; later text opens a new block.
- On the first chunk carrying a finish reason: ``text-end`` (if open),
  ``response-metadata``, then ``finish``. Nothing is emitted afterwards.
- A backend sequence that ends without a finish reason simply ends.

States run ``idle`` then ``started``, move among ``emitting-text``,
``emitting-tool`` and ``between-blocks`` while chunks arrive, and end at
``finished``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
import json
import logging
import time
from typing import TYPE_CHECKING, Any
import uuid

from geminiport._errors import map_backend_error
from geminiport.backend import raise_if_cancelled
from geminiport.finish import map_usage, resolve_finish_reason
from geminiport.types import (
    PROVIDER_KEY,
    Finish,
    ResponseMetadataEvent,
    StreamStart,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCallEvent,
    Usage,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator

    from geminiport.types import CallWarning, CancelSignal, StreamEvent

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    EMITTING_TEXT = "emitting-text"
    EMITTING_TOOL = "emitting-tool"
    BETWEEN_BLOCKS = "between-blocks"
    FINISHED = "finished"


def first_candidate(response: Any) -> Any:
    candidates = getattr(response, "candidates", None)
    return candidates[0] if candidates else None


def candidate_parts(candidate: Any) -> list[Any]:
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or [])


def signature_metadata(part: Any) -> dict[str, dict[str, Any]] | None:
    """Expose a part's thought signature in the provider extension channel."""
    signature = getattr(part, "thought_signature", None)
    if not signature:
        return None
    return {PROVIDER_KEY: {"thought_signature": signature}}


def tool_call_input(function_call: Any) -> str:
    return json.dumps(getattr(function_call, "args", None) or {})


class StreamTransform:
    """Per-request stream state; feed chunks in arrival order."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        self.state = StreamState.IDLE
        self.usage = Usage()
        self.has_tool_calls = False
        self._text_id: str | None = None

    @property
    def finished(self) -> bool:
        return self.state is StreamState.FINISHED

    def start(self, warnings: list[CallWarning]) -> list[StreamEvent]:
        if self.state is not StreamState.IDLE:
            raise RuntimeError(f"stream already started (state={self.state.value})")
        self.state = StreamState.STARTED
        return [StreamStart(warnings=list(warnings))]

    def feed(self, chunk: Any) -> list[StreamEvent]:
        """Translate one backend chunk into zero or more events."""
        if self.state in (StreamState.IDLE, StreamState.FINISHED):
            raise RuntimeError(f"cannot feed chunk in state {self.state.value}")

        metadata = getattr(chunk, "usage_metadata", None)
        if metadata is not None:
            # Backend reports running totals; replace, never accumulate.
            self.usage = map_usage(metadata)

        events: list[StreamEvent] = []
        candidate = first_candidate(chunk)
        for part in candidate_parts(candidate):
            text = getattr(part, "text", None)
            function_call = getattr(part, "function_call", None)
            if text:
                if self._text_id is None:
                    self._text_id = str(uuid.uuid4())
                    events.append(TextStart(id=self._text_id))
                    self.state = StreamState.EMITTING_TEXT
                events.append(TextDelta(id=self._text_id, delta=text))
            elif function_call is not None:
                events.extend(self._close_text())
                self.has_tool_calls = True
                self.state = StreamState.EMITTING_TOOL
                events.append(
                    ToolCallEvent(
                        tool_call_id=str(uuid.uuid4()),
                        tool_name=getattr(function_call, "name", None) or "",
                        input=tool_call_input(function_call),
                        provider_metadata=signature_metadata(part),
                    )
                )

        raw_reason = getattr(candidate, "finish_reason", None)
        if raw_reason:
            events.extend(self._finish(raw_reason))
        return events

    def _close_text(self) -> list[StreamEvent]:
        if self._text_id is None:
            return []
        closed = TextEnd(id=self._text_id)
        self._text_id = None
        self.state = StreamState.BETWEEN_BLOCKS
        return [closed]

    def _finish(self, raw_reason: Any) -> list[StreamEvent]:
        events = self._close_text()
        finish_reason = resolve_finish_reason(
            raw_reason, has_tool_calls=self.has_tool_calls
        )
        logger.debug("Stream finish reason: %s", finish_reason.unified)
        events.append(
            ResponseMetadataEvent(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                model_id=self.model_id,
            )
        )
        events.append(Finish(finish_reason=finish_reason, usage=self.usage))
        self.state = StreamState.FINISHED
        return events


async def close_quietly(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if not callable(aclose):
        return
    try:
        await aclose()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # Cleanup should never mask the primary outcome.
        logger.warning("Backend stream cleanup failed: %s", exc)


async def transform_stream(
    chunks: AsyncIterable[Any],
    *,
    model_id: str,
    warnings: list[CallWarning],
    cancel_signal: CancelSignal | None = None,
) -> AsyncIterator[StreamEvent]:
    """Drive :class:`StreamTransform` over *chunks*, one chunk per pull."""
    transform = StreamTransform(model_id)
    for event in transform.start(warnings):
        yield event

    started = time.monotonic()
    iterator = aiter(chunks)
    try:
        while not transform.finished:
            try:
                chunk = await anext(iterator)
            except StopAsyncIteration:
                logger.debug("Backend stream ended without a finish reason")
                break
            raise_if_cancelled(cancel_signal)
            for event in transform.feed(chunk):
                yield event
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug("Error during stream: %s", e)
        mapped = map_backend_error(e, phase="stream")
        if mapped is e:
            raise
        raise mapped from e
    finally:
        await close_quietly(iterator)

    if transform.finished:
        usage = transform.usage
        logger.info(
            "Stream completed - Duration: %dms", (time.monotonic() - started) * 1000
        )
        logger.debug(
            "Stream token usage - Input: %s, Output: %s",
            usage.input_tokens.total,
            usage.output_tokens.total,
        )
