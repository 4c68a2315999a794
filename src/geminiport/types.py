"""Uniform call contract: prompt, options, results, and stream events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Protocol, runtime_checkable

#: Namespace under which backend-specific values ride on tool calls.
PROVIDER_KEY = "gemini"

# =============================================================================
# Prompt
# =============================================================================


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    text: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True)
class FilePart:
    """Inline file content.

    ``data`` is raw bytes or a base64 string. URL references are rejected by
    the prompt mapper.
    """

    data: Any
    media_type: str | None = None
    type: Literal["file"] = field(default="file", init=False)


@dataclass(frozen=True)
class ToolCallPart:
    """A tool call previously emitted by the model."""

    tool_name: str
    input: Any = None
    tool_call_id: str | None = None
    #: Provider extension channel; ``{"gemini": {"thought_signature": ...}}``.
    provider_options: dict[str, dict[str, Any]] | None = None
    type: Literal["tool-call"] = field(default="tool-call", init=False)


ToolResultOutputType = Literal[
    "text", "error-text", "json", "error-json", "execution-denied", "content"
]


@dataclass(frozen=True)
class ToolResultOutput:
    """Typed output of a tool execution."""

    type: ToolResultOutputType
    value: Any = None
    #: Only meaningful for ``execution-denied``.
    reason: str | None = None


@dataclass(frozen=True)
class ToolResultPart:
    """Result of running a tool, sent back to the model."""

    tool_name: str
    output: ToolResultOutput
    tool_call_id: str | None = None
    type: Literal["tool-result"] = field(default="tool-result", init=False)


UserPart = TextPart | FilePart
AssistantPart = TextPart | FilePart | ToolCallPart


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: Literal["system"] = field(default="system", init=False)


@dataclass(frozen=True)
class UserMessage:
    content: list[UserPart]
    role: Literal["user"] = field(default="user", init=False)


@dataclass(frozen=True)
class AssistantMessage:
    content: list[AssistantPart]
    role: Literal["assistant"] = field(default="assistant", init=False)


@dataclass(frozen=True)
class ToolMessage:
    content: list[ToolResultPart]
    role: Literal["tool"] = field(default="tool", init=False)


Message = SystemMessage | UserMessage | AssistantMessage | ToolMessage

# =============================================================================
# Options
# =============================================================================


@dataclass(frozen=True)
class FunctionTool:
    """A callable function the model may request.

    ``input_schema`` is a JSON Schema dict or a Pydantic model/TypeAdapter.
    """

    name: str
    input_schema: Any = None
    description: str | None = None
    type: Literal["function"] = field(default="function", init=False)


@dataclass(frozen=True)
class ProviderDefinedTool:
    """A provider-native tool; not forwarded to the backend."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    type: Literal["provider-defined"] = field(default="provider-defined", init=False)


Tool = FunctionTool | ProviderDefinedTool


@dataclass(frozen=True)
class ToolChoice:
    """How the model may use the declared tools."""

    type: Literal["auto", "none", "required", "tool"]
    tool_name: str | None = None

    @classmethod
    def tool(cls, name: str) -> ToolChoice:
        return cls("tool", tool_name=name)


@dataclass(frozen=True)
class ResponseFormat:
    """Requested output format; ``json`` without ``schema`` is downgraded."""

    type: Literal["text", "json"] = "text"
    schema: dict[str, Any] | None = None
    name: str | None = None
    description: str | None = None


_LEVEL_ORDER = ("MINIMAL", "LOW", "MEDIUM", "HIGH")


class ThinkingLevel(str, Enum):
    """Reasoning depth, ordered ``MINIMAL < LOW < MEDIUM < HIGH``."""

    MINIMAL = "MINIMAL"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self.value)

    # str ordering is alphabetical; compare by depth instead.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ThinkingLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ThinkingLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ThinkingLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ThinkingLevel):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str | ThinkingLevel) -> ThinkingLevel | None:
        """Case-insensitive lookup; ``None`` for unknown names."""
        if isinstance(value, ThinkingLevel):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class ReasoningConfig:
    """Thinking settings; unset fields are ``None``.

    ``level`` targets level-based models, ``budget`` token-budget models.
    """

    level: ThinkingLevel | str | None = None
    budget: int | None = None
    include_thoughts: bool | None = None

    def is_empty(self) -> bool:
        return self.level is None and self.budget is None and self.include_thoughts is None


@runtime_checkable
class CancelSignal(Protocol):
    """Anything exposing ``is_set()``: ``asyncio.Event``, ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class CallOptions:
    """Everything one generate/stream call consumes."""

    prompt: list[Message]
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    max_output_tokens: int | None = None
    stop_sequences: list[str] | None = None
    tools: list[Tool] | None = None
    tool_choice: ToolChoice | None = None
    response_format: ResponseFormat | None = None
    reasoning: ReasoningConfig | None = None
    cancel_signal: CancelSignal | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_signal is not None and self.cancel_signal.is_set()


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class CallWarning:
    """Non-fatal condition reported alongside a successful result."""

    type: Literal["unsupported", "other"]
    feature: str | None = None
    details: str | None = None


FinishReasonType = Literal["stop", "length", "content-filter", "tool-calls", "other"]


@dataclass(frozen=True)
class FinishReason:
    unified: FinishReasonType
    raw: str | None = None


@dataclass(frozen=True)
class InputTokens:
    total: int | None = None
    no_cache: int | None = None
    cache_read: int | None = None
    cache_write: int | None = None


@dataclass(frozen=True)
class OutputTokens:
    total: int | None = None
    text: int | None = None
    reasoning: int | None = None


@dataclass(frozen=True)
class Usage:
    """Token usage; ``None`` means the backend did not report the field."""

    input_tokens: InputTokens = field(default_factory=InputTokens)
    output_tokens: OutputTokens = field(default_factory=OutputTokens)


@dataclass(frozen=True)
class TextContent:
    text: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True)
class ToolCallContent:
    """A tool call requested by the model; ``input`` is a JSON string."""

    tool_call_id: str
    tool_name: str
    input: str
    provider_metadata: dict[str, dict[str, Any]] | None = None
    type: Literal["tool-call"] = field(default="tool-call", init=False)


Content = TextContent | ToolCallContent


@dataclass(frozen=True)
class ResponseMetadata:
    id: str
    timestamp: datetime
    model_id: str


@dataclass(frozen=True)
class GenerateResult:
    content: list[Content]
    finish_reason: FinishReason
    usage: Usage
    warnings: list[CallWarning]
    #: Backend request exactly as sent.
    request: dict[str, Any]
    #: Backend response object exactly as received.
    response: Any
    response_metadata: ResponseMetadata


# =============================================================================
# Stream events
# =============================================================================


@dataclass(frozen=True)
class StreamStart:
    warnings: list[CallWarning]
    type: Literal["stream-start"] = field(default="stream-start", init=False)


@dataclass(frozen=True)
class TextStart:
    id: str
    type: Literal["text-start"] = field(default="text-start", init=False)


@dataclass(frozen=True)
class TextDelta:
    id: str
    delta: str
    type: Literal["text-delta"] = field(default="text-delta", init=False)


@dataclass(frozen=True)
class TextEnd:
    id: str
    type: Literal["text-end"] = field(default="text-end", init=False)


@dataclass(frozen=True)
class ToolCallEvent:
    """Complete tool call; the backend never streams call arguments."""

    tool_call_id: str
    tool_name: str
    input: str
    provider_metadata: dict[str, dict[str, Any]] | None = None
    type: Literal["tool-call"] = field(default="tool-call", init=False)


@dataclass(frozen=True)
class ResponseMetadataEvent:
    id: str
    timestamp: datetime
    model_id: str
    type: Literal["response-metadata"] = field(default="response-metadata", init=False)


@dataclass(frozen=True)
class Finish:
    finish_reason: FinishReason
    usage: Usage
    type: Literal["finish"] = field(default="finish", init=False)


StreamEvent = (
    StreamStart
    | TextStart
    | TextDelta
    | TextEnd
    | ToolCallEvent
    | ResponseMetadataEvent
    | Finish
)
