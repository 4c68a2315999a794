"""Gemini language model: single-shot and streamed generation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import TYPE_CHECKING, Any
import uuid

from geminiport._errors import map_backend_error
from geminiport._singleflight import SingleFlight
from geminiport.backend import BackendHandle, BackendRequest, raise_if_cancelled
from geminiport.client import initialize_client
from geminiport.config import ClientOptions, ModelSettings
from geminiport.errors import GeminiPortError, InitializationError
from geminiport.finish import map_usage, resolve_finish_reason
from geminiport.generation import build_generation_config
from geminiport.prompt import map_prompt
from geminiport.streaming import (
    candidate_parts,
    close_quietly,
    first_candidate,
    signature_metadata,
    tool_call_input,
    transform_stream,
)
from geminiport.tools import map_tools
from geminiport.types import (
    GenerateResult,
    ResponseMetadata,
    TextContent,
    ToolCallContent,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from geminiport.backend import Initializer
    from geminiport.types import CallOptions, CallWarning, Content, StreamEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelCapabilities:
    """Feature flags exposed by the model."""

    structured_outputs: bool = True
    image_urls: bool = False
    tools: bool = True
    reasoning: bool = True
    streaming: bool = True


class GeminiLanguageModel:
    """Translate uniform calls into Gemini requests and back.

    The backend handle is created on first use and shared by every call on
    this instance; concurrent first calls share a single initialization.

    Example:
        model = GeminiLanguageModel("gemini-2.5-flash")
        result = await model.generate(
            CallOptions(prompt=[UserMessage([TextPart("Hello")])])
        )
    """

    provider = "gemini"
    capabilities = ModelCapabilities()

    def __init__(
        self,
        model_id: str,
        *,
        client_options: ClientOptions | None = None,
        settings: ModelSettings | None = None,
        initializer: Initializer | None = None,
    ) -> None:
        self.model_id = model_id
        self.client_options = client_options or ClientOptions()
        self.settings = settings or ModelSettings()
        self._initializer = initializer or initialize_client
        self._handle: SingleFlight[BackendHandle] = SingleFlight()

    def __repr__(self) -> str:
        return f"GeminiLanguageModel(model_id={self.model_id!r})"

    async def _ensure_initialized(self) -> BackendHandle:
        return await self._handle.get(self._initialize)

    async def _initialize(self) -> BackendHandle:
        try:
            return await self._initializer(self.client_options, self.model_id)
        except Exception as e:
            raise InitializationError(
                f"Failed to initialize Gemini model: {e}",
                hint=e.hint if isinstance(e, GeminiPortError) else None,
            ) from e

    def build_request(
        self, options: CallOptions
    ) -> tuple[BackendRequest, list[CallWarning]]:
        """Assemble the backend request and the warnings it produced."""
        prompt = map_prompt(options.prompt)
        generation = build_generation_config(options, self.settings)
        tools, tool_warnings = map_tools(options.tools)

        config = dict(generation.config)
        if prompt.system_instruction is not None:
            config["system_instruction"] = prompt.system_instruction
        if tools is not None:
            config["tools"] = tools

        is_json = (
            options.response_format is not None
            and options.response_format.type == "json"
        )
        logger.debug(
            "Request mode: %s, converted %d messages",
            "object-json" if is_json else "regular",
            len(options.prompt),
        )
        request = BackendRequest(
            model=self.model_id, contents=prompt.contents, config=config
        )
        return request, [*generation.warnings, *tool_warnings]

    async def generate(self, options: CallOptions) -> GenerateResult:
        """Run one blocking backend call end to end."""
        logger.debug("Starting generate request with model: %s", self.model_id)
        try:
            raise_if_cancelled(options.cancel_signal)
            handle = await self._ensure_initialized()
            request, warnings = self.build_request(options)

            raise_if_cancelled(options.cancel_signal)
            started = time.monotonic()
            response = await handle.generator.generate(request, str(uuid.uuid4()))
            logger.info(
                "Request completed - Duration: %dms",
                (time.monotonic() - started) * 1000,
            )
            # The call itself cannot be aborted; honor a late signal anyway.
            raise_if_cancelled(options.cancel_signal)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Error during generate: %s", e)
            mapped = map_backend_error(e, phase="generate")
            if mapped is e:
                raise
            raise mapped from e

        return self._build_result(request, warnings, response)

    def _build_result(
        self,
        request: BackendRequest,
        warnings: list[CallWarning],
        response: Any,
    ) -> GenerateResult:
        candidate = first_candidate(response)
        content: list[Content] = []
        has_tool_calls = False

        for part in candidate_parts(candidate):
            text = getattr(part, "text", None)
            function_call = getattr(part, "function_call", None)
            if text:
                content.append(TextContent(text=text))
            elif function_call is not None:
                has_tool_calls = True
                content.append(
                    ToolCallContent(
                        tool_call_id=str(uuid.uuid4()),
                        tool_name=getattr(function_call, "name", None) or "",
                        input=tool_call_input(function_call),
                        provider_metadata=signature_metadata(part),
                    )
                )

        usage = map_usage(getattr(response, "usage_metadata", None))
        logger.debug(
            "Token usage - Input: %s, Output: %s",
            usage.input_tokens.total,
            usage.output_tokens.total,
        )
        finish_reason = resolve_finish_reason(
            getattr(candidate, "finish_reason", None), has_tool_calls=has_tool_calls
        )
        logger.debug("Finish reason: %s", finish_reason.unified)

        return GenerateResult(
            content=content,
            finish_reason=finish_reason,
            usage=usage,
            warnings=warnings,
            request=request.to_dict(),
            response=response,
            response_metadata=ResponseMetadata(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                model_id=self.model_id,
            ),
        )

    async def stream(self, options: CallOptions) -> AsyncIterator[StreamEvent]:
        """Stream uniform events for one backend streaming call.

        Nothing runs until the first event is pulled. A signal already set at
        that point fails the stream before ``stream-start``.
        """
        logger.debug("Starting stream request with model: %s", self.model_id)
        try:
            raise_if_cancelled(options.cancel_signal)
            handle = await self._ensure_initialized()
            request, warnings = self.build_request(options)

            raise_if_cancelled(options.cancel_signal)
            chunks = await handle.generator.generate_stream(
                request, str(uuid.uuid4())
            )
            if options.cancelled:
                await close_quietly(chunks)
                raise_if_cancelled(options.cancel_signal)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Error creating stream: %s", e)
            mapped = map_backend_error(e, phase="stream")
            if mapped is e:
                raise
            raise mapped from e

        events = transform_stream(
            chunks,
            model_id=self.model_id,
            warnings=warnings,
            cancel_signal=options.cancel_signal,
        )
        try:
            async for event in events:
                yield event
        finally:
            await events.aclose()
