"""geminiport: a uniform language-model contract over the Gemini backend.

Public API:
    - GeminiLanguageModel: generate() and stream() for one model id
    - create_provider(): factory sharing client options across models
    - CallOptions and the message/part types: the uniform call contract
    - ClientOptions / ModelSettings: configuration
"""

from __future__ import annotations

import logging

from geminiport.backend import BackendHandle, BackendRequest, ContentGenerator
from geminiport.config import ClientOptions, ModelSettings, VertexAISettings
from geminiport.errors import (
    BackendError,
    CancellationError,
    ConfigurationError,
    GeminiPortError,
    InitializationError,
    MappingError,
    RateLimitError,
)
from geminiport.model import GeminiLanguageModel, ModelCapabilities
from geminiport.provider import GeminiProvider, create_provider
from geminiport.types import (
    AssistantMessage,
    CallOptions,
    CallWarning,
    FilePart,
    Finish,
    FinishReason,
    FunctionTool,
    GenerateResult,
    ReasoningConfig,
    ResponseFormat,
    ResponseMetadataEvent,
    StreamEvent,
    StreamStart,
    SystemMessage,
    TextContent,
    TextDelta,
    TextEnd,
    TextPart,
    TextStart,
    ThinkingLevel,
    ToolCallContent,
    ToolCallEvent,
    ToolCallPart,
    ToolChoice,
    ToolMessage,
    ToolResultOutput,
    ToolResultPart,
    Usage,
    UserMessage,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("geminiport")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("geminiport").addHandler(logging.NullHandler())

__all__ = [
    "AssistantMessage",
    "BackendError",
    "BackendHandle",
    "BackendRequest",
    "CallOptions",
    "CallWarning",
    "CancellationError",
    "ClientOptions",
    "ConfigurationError",
    "ContentGenerator",
    "FilePart",
    "Finish",
    "FinishReason",
    "FunctionTool",
    "GeminiLanguageModel",
    "GeminiPortError",
    "GeminiProvider",
    "GenerateResult",
    "InitializationError",
    "MappingError",
    "ModelCapabilities",
    "ModelSettings",
    "RateLimitError",
    "ReasoningConfig",
    "ResponseFormat",
    "ResponseMetadataEvent",
    "StreamEvent",
    "StreamStart",
    "SystemMessage",
    "TextContent",
    "TextDelta",
    "TextEnd",
    "TextPart",
    "TextStart",
    "ThinkingLevel",
    "ToolCallContent",
    "ToolCallEvent",
    "ToolCallPart",
    "ToolChoice",
    "ToolMessage",
    "ToolResultOutput",
    "ToolResultPart",
    "Usage",
    "UserMessage",
    "VertexAISettings",
    "create_provider",
]
