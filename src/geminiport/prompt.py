"""Prompt mapping: uniform messages into backend contents."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx

from geminiport._http import (
    DEFAULT_MEDIA_TYPE,
    SUPPORTED_MEDIA_PREFIXES,
    SUPPORTED_MEDIA_TYPES,
)
from geminiport.errors import MappingError
from geminiport.types import (
    PROVIDER_KEY,
    AssistantMessage,
    FilePart,
    SystemMessage,
    TextPart,
    ToolCallPart,
    ToolMessage,
    ToolResultPart,
    UserMessage,
)

if TYPE_CHECKING:
    from geminiport.types import Message, ToolResultOutput

logger = logging.getLogger(__name__)

_URL_SCHEMES = frozenset({"http", "https", "gs", "file"})


@dataclass(frozen=True)
class PromptMapping:
    """Backend contents plus the hoisted system instruction."""

    contents: list[dict[str, Any]]
    system_instruction: dict[str, Any] | None = None


def map_prompt(messages: list[Message]) -> PromptMapping:
    """Map ordered messages into backend contents.

    System messages are hoisted into ``system_instruction``; when several are
    present the last one wins. Every other message yields exactly one content
    entry, in order.
    """
    contents: list[dict[str, Any]] = []
    system_instruction: dict[str, Any] | None = None

    for message in messages:
        if isinstance(message, SystemMessage):
            system_instruction = {"role": "user", "parts": [{"text": message.content}]}
        elif isinstance(message, UserMessage):
            contents.append({"role": "user", "parts": _map_user_parts(message)})
        elif isinstance(message, AssistantMessage):
            contents.append({"role": "model", "parts": _map_assistant_parts(message)})
        elif isinstance(message, ToolMessage):
            contents.append(
                {
                    "role": "user",
                    "parts": [
                        map_tool_result(part)
                        for part in message.content
                        if isinstance(part, ToolResultPart)
                    ],
                }
            )
        else:
            raise MappingError(
                f"Unsupported message type: {type(message).__name__}",
                hint="Use SystemMessage, UserMessage, AssistantMessage, or ToolMessage.",
            )

    return PromptMapping(contents=contents, system_instruction=system_instruction)


def _map_user_parts(message: UserMessage) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []
    for part in message.content:
        if isinstance(part, TextPart):
            parts.append({"text": part.text})
        elif isinstance(part, FilePart):
            parts.append(map_file_part(part))
        else:
            logger.debug("Skipping %s part in user message", type(part).__name__)
    return parts


def _map_assistant_parts(message: AssistantMessage) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []
    for part in message.content:
        if isinstance(part, TextPart):
            parts.append({"text": part.text})
        elif isinstance(part, FilePart):
            parts.append(map_file_part(part))
        elif isinstance(part, ToolCallPart):
            parts.append(map_tool_call(part))
        else:
            logger.debug("Skipping %s part in assistant message", type(part).__name__)
    return parts


def map_tool_call(part: ToolCallPart) -> dict[str, Any]:
    """Map an assistant tool call, carrying its thought signature when present."""
    mapped: dict[str, Any] = {
        "function_call": {"name": part.tool_name, "args": _tool_call_args(part.input)}
    }
    signature = thought_signature_of(part.provider_options)
    if signature:
        mapped["thought_signature"] = signature
    return mapped


def thought_signature_of(extensions: Mapping[str, Any] | None) -> Any:
    """Read the continuation token from a provider extension mapping."""
    if not extensions:
        return None
    scoped = extensions.get(PROVIDER_KEY)
    if not isinstance(scoped, Mapping):
        return None
    return scoped.get("thought_signature")


def _tool_call_args(value: Any) -> dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise MappingError(
                f"Tool call input is not valid JSON: {value[:80]!r}"
            ) from e
    if not isinstance(value, Mapping):
        raise MappingError(
            f"Tool call input must be an object, got {type(value).__name__}"
        )
    return dict(value)


def is_supported_media_type(media_type: str) -> bool:
    return media_type.startswith(SUPPORTED_MEDIA_PREFIXES) or (
        media_type in SUPPORTED_MEDIA_TYPES
    )


def map_file_part(part: FilePart) -> dict[str, Any]:
    """Map a file part to inline base64 data."""
    media_type = part.media_type or DEFAULT_MEDIA_TYPE
    if not is_supported_media_type(media_type):
        raise MappingError(
            f"Unsupported file type: {media_type}",
            hint="Supported types: image/*, audio/*, video/*, application/pdf.",
        )

    data = part.data
    if isinstance(data, httpx.URL) or (isinstance(data, str) and _looks_like_url(data)):
        raise MappingError(
            "URL files are not supported. Please provide base64-encoded data.",
            hint="Download the file and pass its bytes instead.",
        )

    if isinstance(data, str):
        encoded = data
    elif isinstance(data, (bytes, bytearray, memoryview)):
        encoded = base64.b64encode(bytes(data)).decode("ascii")
    else:
        raise MappingError(
            f"Unsupported file data of type {type(data).__name__}",
            hint="Pass bytes or a base64-encoded string.",
        )

    return {"inline_data": {"mime_type": media_type, "data": encoded}}


def _looks_like_url(value: str) -> bool:
    # Base64 never contains ':', so any scheme prefix marks a reference.
    if ":" not in value:
        return False
    return urlsplit(value).scheme.lower() in _URL_SCHEMES


def map_tool_result(part: ToolResultPart) -> dict[str, Any]:
    """Map a tool result into a function response part."""
    return {
        "function_response": {
            "name": part.tool_name,
            "response": normalize_tool_output(part.output),
        }
    }


def normalize_tool_output(output: ToolResultOutput) -> dict[str, Any]:
    """Produce the object-shaped response the backend requires.

    Non-object values are wrapped under a single ``result`` key.
    """
    kind = output.type
    if kind in ("text", "error-text"):
        return {"result": output.value}
    if kind in ("json", "error-json"):
        value = output.value
        if isinstance(value, Mapping):
            return dict(value)
        return {"result": value}
    if kind == "execution-denied":
        suffix = f": {output.reason}" if output.reason else ""
        return {"result": f"[Execution denied{suffix}]"}
    if kind == "content":
        texts = [
            item.text if isinstance(item, TextPart) else item["text"]
            for item in output.value or []
            if _is_text_item(item)
        ]
        return {"result": "\n".join(texts)}
    return {"result": "[Unknown output type]"}


def _is_text_item(item: Any) -> bool:
    if isinstance(item, TextPart):
        return True
    return isinstance(item, Mapping) and item.get("type") == "text"
