"""Configuration: client options, model-level settings, runtime capabilities."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
import os
from typing import Any, Literal
import uuid

from dotenv import load_dotenv

from geminiport.errors import ConfigurationError
from geminiport.types import ReasoningConfig, ThinkingLevel

load_dotenv()

logger = logging.getLogger(__name__)

AuthType = Literal[
    "api-key",
    "gemini-api-key",
    "vertex-ai",
    "oauth",
    "oauth-personal",
    "google-auth-library",
]

_AUTH_TYPES: frozenset[str] = frozenset(AuthType.__args__)  # type: ignore[attr-defined]
_API_KEY_AUTH: frozenset[str] = frozenset({"api-key", "gemini-api-key", "google-auth-library"})
_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
_PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY")


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class VertexAISettings:
    """Vertex AI routing, passed by value into the initializer."""

    #: Auto-resolved from ``GOOGLE_CLOUD_PROJECT`` when *None*.
    project: str | None = None
    #: Auto-resolved from ``GOOGLE_CLOUD_LOCATION`` when *None*.
    location: str | None = None
    api_key: str | None = None

    def __post_init__(self) -> None:
        if self.project is None:
            object.__setattr__(self, "project", os.environ.get("GOOGLE_CLOUD_PROJECT"))
        if self.location is None:
            object.__setattr__(
                self, "location", os.environ.get("GOOGLE_CLOUD_LOCATION")
            )

    def __str__(self) -> str:
        return (
            f"VertexAISettings(project={self.project!r}, location={self.location!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None})"
        )

    __repr__ = __str__


@dataclass(frozen=True)
class ClientOptions:
    """Immutable backend client options.

    The environment is read once, here; nothing downstream writes it.

    Example:
        options = ClientOptions(auth_type="api-key")
        # api_key is resolved from GEMINI_API_KEY (or GOOGLE_API_KEY)
    """

    auth_type: AuthType = "api-key"
    #: Auto-resolved from ``GEMINI_API_KEY`` / ``GOOGLE_API_KEY`` when *None*.
    api_key: str | None = None
    vertex_ai: VertexAISettings | None = None
    #: Auto-resolved from ``HTTP_PROXY``, then ``HTTPS_PROXY``, when *None*.
    proxy: str | None = None

    def __post_init__(self) -> None:
        """Resolve environment fallbacks and validate."""
        if self.auth_type not in _AUTH_TYPES:
            raise ConfigurationError(
                f"Unknown auth_type: {self.auth_type!r}",
                hint=f"Supported auth types: {', '.join(sorted(_AUTH_TYPES))}",
            )

        if self.api_key is None and self.auth_type in _API_KEY_AUTH:
            object.__setattr__(self, "api_key", _first_env(_API_KEY_ENV_VARS))

        if self.auth_type == "vertex-ai" and self.vertex_ai is None:
            object.__setattr__(self, "vertex_ai", VertexAISettings())

        if self.proxy is None:
            object.__setattr__(self, "proxy", _first_env(_PROXY_ENV_VARS))

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ClientOptions(auth_type={self.auth_type!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"vertex_ai={self.vertex_ai}, proxy={self.proxy!r})"
        )

    __repr__ = __str__


@dataclass(frozen=True)
class ModelSettings:
    """Model-level defaults; call-time options override them per field."""

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    max_output_tokens: int | None = None
    stop_sequences: list[str] | None = None
    reasoning: ReasoningConfig | None = None

    def __post_init__(self) -> None:
        """Validate numeric ranges early for clear errors."""
        if self.temperature is not None and self.temperature < 0:
            raise ConfigurationError(
                f"temperature must be ≥ 0, got {self.temperature}",
                hint="Typical values are between 0.0 and 2.0.",
            )
        if self.top_p is not None and not 0 <= self.top_p <= 1:
            raise ConfigurationError(
                f"top_p must be within [0, 1], got {self.top_p}",
            )
        for name in ("top_k", "max_output_tokens"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}",
                )
        level = self.reasoning.level if self.reasoning else None
        if isinstance(level, str) and ThinkingLevel.parse(level) is None:
            # Model-level defaults are not validated away like call-time
            # overrides; report them at construction.
            raise ConfigurationError(
                f"Unknown thinking level: {level!r}",
                hint="Use one of: minimal, low, medium, high.",
            )


# =============================================================================
# Runtime capabilities
# =============================================================================


@dataclass(frozen=True)
class RuntimeSettings:
    """Capabilities the backend client may query while it runs.

    Every known capability is an explicit field with a concrete default.
    Unknown names go through :func:`resolve_capability`.
    """

    model: str
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    proxy: str | None = None
    request_timeout_ms: int = 120_000
    max_session_turns: int = 100
    debug_mode: bool = False
    telemetry_enabled: bool = False
    usage_statistics_enabled: bool = False
    browser_launch_suppressed: bool = False


_CAPABILITY_PREFIXES = ("get_", "is_", "has_")


def resolve_capability(settings: RuntimeSettings, name: str) -> Any:
    """Answer a capability query by name.

    Known names (with or without a ``get_``/``is_``/``has_`` prefix) return
    the field value. Unknown ``is_*``/``has_*`` names answer ``False``;
    unknown ``get_*`` names answer ``None``. Any other unknown name raises
    ``ConfigurationError``.
    """
    known = {f.name for f in fields(settings)}
    if name in known:
        return getattr(settings, name)

    for prefix in _CAPABILITY_PREFIXES:
        if not name.startswith(prefix):
            continue
        bare = name[len(prefix) :]
        if bare in known:
            return getattr(settings, bare)
        logger.debug("Unknown runtime capability %s; using default", name)
        return None if prefix == "get_" else False

    raise ConfigurationError(
        f"Unknown runtime capability: {name!r}",
        hint="Capability queries must use a get_, is_, or has_ prefix.",
    )
