"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: backend responses are plain
SimpleNamespace trees shaped like google-genai objects, and generators are
scripted fakes that record what they were asked to send.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

from geminiport.backend import BackendHandle, BackendRequest
from geminiport.config import ClientOptions, ModelSettings, RuntimeSettings
from geminiport.model import GeminiLanguageModel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


# =============================================================================
# Response builders
# =============================================================================


def text_part(text: str, *, thought: bool | None = None) -> SimpleNamespace:
    return SimpleNamespace(text=text, thought=thought, function_call=None)


def call_part(
    name: str, args: dict[str, Any] | None = None, *, signature: Any = None
) -> SimpleNamespace:
    return SimpleNamespace(
        text=None,
        function_call=SimpleNamespace(name=name, args=args, id=None),
        thought_signature=signature,
    )


def usage_metadata(
    prompt: int | None = None,
    candidates: int | None = None,
    *,
    cached: int | None = None,
    thoughts: int | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        prompt_token_count=prompt,
        candidates_token_count=candidates,
        cached_content_token_count=cached,
        thoughts_token_count=thoughts,
    )


def response(
    parts: list[Any] | None = None,
    *,
    finish_reason: Any = None,
    usage: SimpleNamespace | None = None,
) -> SimpleNamespace:
    """Build a response or stream chunk with a single candidate."""
    candidate = SimpleNamespace(
        content=SimpleNamespace(role="model", parts=parts),
        finish_reason=finish_reason,
    )
    return SimpleNamespace(candidates=[candidate], usage_metadata=usage)


# =============================================================================
# Fake generators
# =============================================================================


@dataclass
class ScriptedGenerator:
    """ContentGenerator that returns scripted responses and chunk sequences.

    A BaseException in ``chunks`` is raised at that point of the stream.
    ``on_chunk`` runs after each chunk is handed out (ex: to set a cancel
    signal mid-stream).
    """

    response: Any = None
    chunks: list[Any] = field(default_factory=list)
    error: BaseException | None = None
    on_chunk: Any = None
    requests: list[BackendRequest] = field(default_factory=list)
    request_ids: list[str] = field(default_factory=list)
    pulled: int = 0
    closed: bool = False

    async def generate(self, request: BackendRequest, request_id: str) -> Any:
        self.requests.append(request)
        self.request_ids.append(request_id)
        if self.error is not None:
            raise self.error
        return self.response

    async def generate_stream(
        self, request: BackendRequest, request_id: str
    ) -> AsyncIterator[Any]:
        self.requests.append(request)
        self.request_ids.append(request_id)
        if self.error is not None:
            raise self.error
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        try:
            for item in self.chunks:
                await asyncio.sleep(0)
                if isinstance(item, BaseException):
                    raise item
                self.pulled += 1
                yield item
                if self.on_chunk is not None:
                    self.on_chunk(self.pulled)
        finally:
            self.closed = True


@dataclass
class CountingInitializer:
    """Initializer returning a fixed generator, counting invocations."""

    generator: Any
    calls: int = 0
    delay: float = 0.0
    error: BaseException | None = None

    async def __call__(self, options: ClientOptions, model_id: str) -> BackendHandle:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        settings = RuntimeSettings(model=model_id, session_id="test-session")
        return BackendHandle(
            generator=self.generator, settings=settings, session_id="test-session"
        )


def make_model(
    generator: Any,
    *,
    model_id: str = "gemini-2.5-pro",
    settings: ModelSettings | None = None,
) -> tuple[GeminiLanguageModel, CountingInitializer]:
    initializer = CountingInitializer(generator)
    model = GeminiLanguageModel(
        model_id,
        client_options=ClientOptions(api_key="test-key"),
        settings=settings,
        initializer=initializer,
    )
    return model, initializer


async def collect(events: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in events]
