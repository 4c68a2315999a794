"""JSON Schema normalization for backend function declarations.

The backend accepts a subset of JSON Schema: no references, no definition
blocks, no meta-schema marker. Schemas may arrive as plain dicts or as
Pydantic models, which are converted first.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel, TypeAdapter

from geminiport.errors import MappingError
from geminiport.types import CallWarning

logger = logging.getLogger(__name__)

_STRIPPED_KEYS = frozenset({"$schema", "$ref", "$defs", "definitions"})
_SCHEMA_MARKERS = ("type", "properties", "$schema")
# Keywords whose values are subschemas, by container shape.
_SUBSCHEMA_KEYS = (
    "items",
    "additionalItems",
    "additionalProperties",
    "unevaluatedItems",
    "unevaluatedProperties",
    "propertyNames",
    "contains",
    "not",
    "if",
    "then",
    "else",
)
_SUBSCHEMA_LIST_KEYS = ("allOf", "anyOf", "oneOf", "prefixItems")
_SUBSCHEMA_MAP_KEYS = ("properties", "patternProperties", "dependentSchemas")

FALLBACK_SCHEMA: dict[str, Any] = {"type": "object"}


class SchemaKind(str, Enum):
    """Classification of a tool parameter schema source."""

    JSON_SCHEMA = "json-schema"
    BUILDER = "builder"
    UNKNOWN = "unknown"


def classify_schema(value: Any) -> SchemaKind:
    """Decide whether *value* is JSON Schema, a Pydantic builder, or neither."""
    if isinstance(value, Mapping):
        if any(marker in value for marker in _SCHEMA_MARKERS):
            return SchemaKind.JSON_SCHEMA
        return SchemaKind.UNKNOWN
    if isinstance(value, type) and issubclass(value, BaseModel):
        return SchemaKind.BUILDER
    if isinstance(value, TypeAdapter):
        return SchemaKind.BUILDER
    return SchemaKind.UNKNOWN


def clean_schema(schema: Any) -> Any:
    """Return a cleaned copy of *schema*; non-mapping values pass through.

    Every subschema keyword is cleaned recursively. Data-valued keywords
    (``enum``, ``const``, ``default``, ``examples``) are left untouched.
    Idempotent: ``clean_schema(clean_schema(s)) == clean_schema(s)``.
    """
    if not isinstance(schema, Mapping):
        return schema

    cleaned: dict[str, Any] = {
        key: value for key, value in schema.items() if key not in _STRIPPED_KEYS
    }

    for key in _SUBSCHEMA_MAP_KEYS:
        named = cleaned.get(key)
        if isinstance(named, Mapping):
            cleaned[key] = {name: clean_schema(sub) for name, sub in named.items()}

    for key in _SUBSCHEMA_LIST_KEYS:
        branches = cleaned.get(key)
        if isinstance(branches, list):
            cleaned[key] = [clean_schema(branch) for branch in branches]

    for key in _SUBSCHEMA_KEYS:
        sub = cleaned.get(key)
        if isinstance(sub, list):
            # Draft-07 tuple form of ``items``.
            cleaned[key] = [clean_schema(item) for item in sub]
        elif isinstance(sub, Mapping):
            cleaned[key] = clean_schema(sub)

    if cleaned.get("properties") is not None and cleaned.get("type") is None:
        cleaned["type"] = "object"

    return cleaned


def builder_to_json_schema(value: Any) -> tuple[dict[str, Any], list[CallWarning]]:
    """Convert a Pydantic model class or TypeAdapter into JSON Schema.

    Conversion failures fall back to a bare object schema with a warning
    rather than failing the call.
    """
    try:
        if isinstance(value, TypeAdapter):
            return value.json_schema(), []
        return value.model_json_schema(), []
    except Exception as exc:
        name = getattr(value, "__name__", type(value).__name__)
        logger.warning(
            "Unable to convert schema builder %s to JSON Schema: %s", name, exc
        )
        return dict(FALLBACK_SCHEMA), [
            CallWarning(
                type="other",
                feature="tools",
                details=(
                    f"Could not convert {name} to JSON Schema ({exc}); "
                    "using a bare object schema."
                ),
            )
        ]


def to_parameters_schema(value: Any) -> tuple[Any, list[CallWarning]]:
    """Resolve a tool's input schema into backend-ready parameters."""
    if value is None:
        return None, []

    kind = classify_schema(value)
    if kind is SchemaKind.JSON_SCHEMA:
        return clean_schema(value), []
    if kind is SchemaKind.BUILDER:
        converted, warnings = builder_to_json_schema(value)
        return clean_schema(converted), warnings
    if isinstance(value, Mapping):
        # Schema-like dicts without a recognizable marker (ex: bare anyOf)
        # are forwarded for the backend to judge.
        return dict(value), []
    raise MappingError(
        f"Unsupported tool input schema of type {type(value).__name__}",
        hint="Pass a JSON Schema dict or a Pydantic BaseModel subclass.",
    )
