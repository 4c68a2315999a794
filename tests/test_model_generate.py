"""Non-streaming generation end to end against a scripted backend."""

from __future__ import annotations

import asyncio
import json

import pytest

from geminiport.config import ModelSettings
from geminiport.errors import (
    BackendError,
    CancellationError,
    InitializationError,
    MappingError,
    RateLimitError,
)
from geminiport.types import (
    CallOptions,
    FilePart,
    FunctionTool,
    ResponseFormat,
    SystemMessage,
    TextContent,
    TextPart,
    ToolCallContent,
    UserMessage,
)
from tests.helpers import (
    ScriptedGenerator,
    call_part,
    make_model,
    response,
    text_part,
    usage_metadata,
)

pytestmark = pytest.mark.unit

_PROMPT = [SystemMessage("Be brief."), UserMessage([TextPart("Hello")])]


class _QuotaError(Exception):
    code = 429


@pytest.mark.asyncio
async def test_generate_maps_text_response() -> None:
    backend = ScriptedGenerator(
        response=response(
            [text_part("Hi "), text_part("there")],
            finish_reason="STOP",
            usage=usage_metadata(12, 4),
        )
    )
    model, _ = make_model(backend, model_id="gemini-2.5-flash")

    result = await model.generate(CallOptions(prompt=_PROMPT, temperature=0.3))

    assert result.content == [TextContent("Hi "), TextContent("there")]
    assert result.finish_reason.unified == "stop"
    assert result.finish_reason.raw == "STOP"
    assert result.usage.input_tokens.total == 12
    assert result.usage.output_tokens.total == 4
    assert result.warnings == []
    assert result.response_metadata.model_id == "gemini-2.5-flash"
    assert result.response is backend.response

    sent = backend.requests[0]
    assert result.request == sent.to_dict()
    assert sent.model == "gemini-2.5-flash"
    assert sent.contents == [{"role": "user", "parts": [{"text": "Hello"}]}]
    assert sent.config["temperature"] == 0.3
    assert sent.config["system_instruction"] == {
        "role": "user",
        "parts": [{"text": "Be brief."}],
    }


@pytest.mark.asyncio
async def test_generate_maps_tool_calls() -> None:
    backend = ScriptedGenerator(
        response=response(
            [call_part("get_weather", {"city": "Paris"}, signature="sig-abc")],
            finish_reason="STOP",
        )
    )
    model, _ = make_model(backend)

    result = await model.generate(
        CallOptions(
            prompt=_PROMPT,
            tools=[FunctionTool("get_weather", {"properties": {"city": {"type": "string"}}})],
        )
    )

    (call,) = result.content
    assert isinstance(call, ToolCallContent)
    assert call.tool_name == "get_weather"
    assert json.loads(call.input) == {"city": "Paris"}
    assert call.provider_metadata == {"gemini": {"thought_signature": "sig-abc"}}
    assert call.tool_call_id
    assert result.finish_reason.unified == "tool-calls"
    assert backend.requests[0].config["tools"] == [
        {
            "function_declarations": [
                {
                    "name": "get_weather",
                    "parameters": {
                        "properties": {"city": {"type": "string"}},
                        "type": "object",
                    },
                }
            ]
        }
    ]


@pytest.mark.asyncio
async def test_generate_collects_request_warnings() -> None:
    backend = ScriptedGenerator(response=response([text_part("{}")], finish_reason="STOP"))
    model, _ = make_model(backend)

    result = await model.generate(
        CallOptions(prompt=_PROMPT, response_format=ResponseFormat("json"))
    )

    assert [w.feature for w in result.warnings] == ["responseFormat"]


@pytest.mark.asyncio
async def test_generate_with_empty_response() -> None:
    model, _ = make_model(ScriptedGenerator(response=response(None)))

    result = await model.generate(CallOptions(prompt=_PROMPT))

    assert result.content == []
    assert result.finish_reason.unified == "other"
    assert result.usage.input_tokens.total is None


@pytest.mark.asyncio
async def test_model_settings_apply_when_call_is_silent() -> None:
    backend = ScriptedGenerator(response=response([text_part("ok")], finish_reason="STOP"))
    model, _ = make_model(backend, settings=ModelSettings(temperature=0.1, top_k=20))

    await model.generate(CallOptions(prompt=_PROMPT, top_k=5))

    config = backend.requests[0].config
    assert config["temperature"] == 0.1
    assert config["top_k"] == 5


@pytest.mark.asyncio
async def test_cancelled_before_invocation_never_calls_backend() -> None:
    backend = ScriptedGenerator(response=response([text_part("x")]))
    model, initializer = make_model(backend)
    signal = asyncio.Event()
    signal.set()

    with pytest.raises(CancellationError, match="Request aborted"):
        await model.generate(CallOptions(prompt=_PROMPT, cancel_signal=signal))

    assert backend.requests == []
    assert initializer.calls == 0


@pytest.mark.asyncio
async def test_cancellation_observed_after_invocation() -> None:
    signal = asyncio.Event()

    class _SetsSignal(ScriptedGenerator):
        async def generate(self, request, request_id):  # type: ignore[override]
            signal.set()
            return await super().generate(request, request_id)

    backend = _SetsSignal(response=response([text_part("late")], finish_reason="STOP"))
    model, _ = make_model(backend)

    with pytest.raises(CancellationError):
        await model.generate(CallOptions(prompt=_PROMPT, cancel_signal=signal))

    assert len(backend.requests) == 1


@pytest.mark.asyncio
async def test_backend_failure_is_mapped() -> None:
    model, _ = make_model(ScriptedGenerator(error=_QuotaError("quota exceeded")))

    with pytest.raises(RateLimitError) as exc_info:
        await model.generate(CallOptions(prompt=_PROMPT))

    err = exc_info.value
    assert err.phase == "generate"
    assert err.retryable is True
    assert isinstance(err.__cause__, _QuotaError)


@pytest.mark.asyncio
async def test_mapping_errors_surface_unchanged() -> None:
    backend = ScriptedGenerator(response=response([]))
    model, _ = make_model(backend)
    prompt = [UserMessage([FilePart(b"x", media_type="text/csv")])]

    with pytest.raises(MappingError, match="text/csv"):
        await model.generate(CallOptions(prompt=prompt))

    assert backend.requests == []


@pytest.mark.asyncio
async def test_backend_initialized_once_across_concurrent_calls() -> None:
    backend = ScriptedGenerator(response=response([text_part("ok")], finish_reason="STOP"))
    model, initializer = make_model(backend)
    initializer.delay = 0.05

    await asyncio.gather(*(model.generate(CallOptions(prompt=_PROMPT)) for _ in range(4)))

    assert initializer.calls == 1
    assert len(backend.requests) == 4
    assert len(set(backend.request_ids)) == 4


@pytest.mark.asyncio
async def test_initialization_failure_reaches_all_callers_and_retries() -> None:
    backend = ScriptedGenerator(response=response([text_part("ok")], finish_reason="STOP"))
    model, initializer = make_model(backend)
    initializer.delay = 0.05
    initializer.error = RuntimeError("no credentials")

    results = await asyncio.gather(
        *(model.generate(CallOptions(prompt=_PROMPT)) for _ in range(3)),
        return_exceptions=True,
    )

    assert initializer.calls == 1
    assert all(isinstance(r, InitializationError) for r in results)
    assert "no credentials" in str(results[0])

    initializer.error = None
    result = await model.generate(CallOptions(prompt=_PROMPT))
    assert result.content == [TextContent("ok")]
    assert initializer.calls == 2


@pytest.mark.asyncio
async def test_existing_backend_error_is_not_rewrapped() -> None:
    original = BackendError("already classified", status_code=500)
    model, _ = make_model(ScriptedGenerator(error=original))

    with pytest.raises(BackendError) as exc_info:
        await model.generate(CallOptions(prompt=_PROMPT))

    assert exc_info.value is original
    assert original.phase == "generate"


@pytest.mark.asyncio
async def test_cancelled_first_caller_does_not_fail_concurrent_caller() -> None:
    backend = ScriptedGenerator(response=response([text_part("ok")], finish_reason="STOP"))
    model, initializer = make_model(backend)
    initializer.delay = 0.05
    options = CallOptions(prompt=_PROMPT)

    first = asyncio.create_task(model.generate(options))
    await asyncio.sleep(0.01)
    second = asyncio.create_task(model.generate(options))
    await asyncio.sleep(0.01)
    first.cancel()

    results = await asyncio.gather(first, second, return_exceptions=True)

    assert isinstance(results[0], asyncio.CancelledError)
    assert results[1].content == [TextContent("ok")]
    assert initializer.calls == 2
    assert len(backend.requests) == 1
