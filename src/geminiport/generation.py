"""Per-request generation config assembly.

Call-time options override model-level settings field by field. JSON output
without a schema is downgraded to plain text with a warning; reasoning
settings from both sources are merged, with invalid call-time levels dropped
so the model-level level survives.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import TYPE_CHECKING, Any

from geminiport.tools import map_tool_choice
from geminiport.types import CallWarning, ReasoningConfig, ThinkingLevel

if TYPE_CHECKING:
    from geminiport.config import ModelSettings
    from geminiport.types import CallOptions

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
TEXT_MIME_TYPE = "text/plain"

_JSON_WITHOUT_SCHEMA = (
    "JSON response format without a schema is not supported. Treating as plain "
    "text. Provide a schema for structured output."
)


@dataclass(frozen=True)
class GenerationConfig:
    """Backend generation config plus the warnings produced building it."""

    config: dict[str, Any]
    warnings: list[CallWarning] = field(default_factory=list)


def _sanitize_override(override: ReasoningConfig | None) -> ReasoningConfig | None:
    """Drop an unparseable call-time level, keeping the rest of the override."""
    if override is None or override.level is None:
        return override
    if ThinkingLevel.parse(override.level) is not None:
        return override
    logger.debug("Ignoring invalid call-time thinking level %r", override.level)
    stripped = replace(override, level=None)
    return None if stripped.is_empty() else stripped


def merge_reasoning(
    defaults: ReasoningConfig | None,
    override: ReasoningConfig | None,
) -> ReasoningConfig | None:
    """Shallow field union; set override fields win. Empty results are ``None``."""
    effective = _sanitize_override(override)
    if defaults is None and effective is None:
        return None

    base = defaults or ReasoningConfig()
    if effective is not None:
        base = ReasoningConfig(
            level=effective.level if effective.level is not None else base.level,
            budget=effective.budget if effective.budget is not None else base.budget,
            include_thoughts=(
                effective.include_thoughts
                if effective.include_thoughts is not None
                else base.include_thoughts
            ),
        )
    return None if base.is_empty() else base


def build_thinking_config(config: ReasoningConfig | None) -> dict[str, Any] | None:
    """Render a reasoning config in backend field names, omitting unset fields."""
    if config is None:
        return None

    rendered: dict[str, Any] = {}
    if config.level is not None:
        level = ThinkingLevel.parse(config.level)
        if level is not None:
            rendered["thinking_level"] = level.value
    if config.budget is not None:
        rendered["thinking_budget"] = config.budget
    if config.include_thoughts is not None:
        rendered["include_thoughts"] = config.include_thoughts
    return rendered or None


def build_generation_config(
    options: CallOptions,
    settings: ModelSettings | None = None,
) -> GenerationConfig:
    """Assemble sampling, response format, tool config, and thinking config."""
    warnings: list[CallWarning] = []
    config: dict[str, Any] = {}

    for name in ("temperature", "top_p", "top_k", "max_output_tokens", "stop_sequences"):
        value = getattr(options, name)
        if value is None and settings is not None:
            value = getattr(settings, name)
        if value is not None:
            config[name] = value

    response_format = options.response_format
    is_json = response_format is not None and response_format.type == "json"
    schema = response_format.schema if is_json and response_format else None

    if schema is not None:
        config["response_mime_type"] = JSON_MIME_TYPE
        config["response_json_schema"] = schema
    else:
        config["response_mime_type"] = TEXT_MIME_TYPE
        if is_json:
            warnings.append(
                CallWarning(
                    type="unsupported",
                    feature="responseFormat",
                    details=_JSON_WITHOUT_SCHEMA,
                )
            )

    tool_config = map_tool_choice(options.tool_choice)
    if tool_config is not None:
        config["tool_config"] = tool_config

    thinking = build_thinking_config(
        merge_reasoning(settings.reasoning if settings else None, options.reasoning)
    )
    if thinking is not None:
        config["thinking_config"] = thinking

    return GenerationConfig(config=config, warnings=warnings)
