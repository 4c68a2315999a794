"""Default backend initializer built on the google-genai SDK."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from geminiport.backend import BackendHandle, BackendRequest
from geminiport.config import RuntimeSettings, resolve_capability
from geminiport.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from geminiport.config import ClientOptions

logger = logging.getLogger(__name__)


class GenAIContentGenerator:
    """ContentGenerator over ``google.genai.Client.aio.models``."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @staticmethod
    def _config(request: BackendRequest) -> Any:
        from google.genai import types

        return types.GenerateContentConfig(**request.config)

    async def generate(self, request: BackendRequest, request_id: str) -> Any:
        logger.debug("Sending generate_content request %s", request_id)
        return await self._client.aio.models.generate_content(
            model=request.model,
            contents=request.contents,
            config=self._config(request),
        )

    async def generate_stream(
        self, request: BackendRequest, request_id: str
    ) -> AsyncIterator[Any]:
        logger.debug("Sending generate_content_stream request %s", request_id)
        return await self._client.aio.models.generate_content_stream(
            model=request.model,
            contents=request.contents,
            config=self._config(request),
        )


def _http_options(settings: RuntimeSettings) -> Any:
    from google.genai import types

    # The SDK queries nothing by name, so this is the one place capability
    # lookups (and their fallbacks) happen.
    proxy = resolve_capability(settings, "get_proxy")
    kwargs: dict[str, Any] = {
        "timeout": resolve_capability(settings, "get_request_timeout_ms")
    }
    if proxy:
        kwargs["client_args"] = {"proxy": proxy}
        kwargs["async_client_args"] = {"proxy": proxy}
    return types.HttpOptions(**kwargs)


def build_genai_client(options: ClientOptions, settings: RuntimeSettings) -> Any:
    """Construct a ``google.genai.Client`` for the configured auth type."""
    try:
        from google import genai
    except ImportError as e:
        raise ConfigurationError(
            "google-genai package not installed",
            hint="pip install google-genai",
        ) from e

    http_options = _http_options(settings)

    if options.auth_type in ("oauth", "oauth-personal"):
        raise ConfigurationError(
            f"auth_type {options.auth_type!r} needs an interactive login flow",
            hint="Pass a custom initializer that builds an authenticated generator.",
        )

    if options.auth_type == "vertex-ai":
        vertex = options.vertex_ai
        if vertex is not None and vertex.api_key:
            return genai.Client(
                vertexai=True, api_key=vertex.api_key, http_options=http_options
            )
        if vertex is None or not vertex.project:
            raise ConfigurationError(
                "Vertex AI requires a project",
                hint="Set GOOGLE_CLOUD_PROJECT or pass VertexAISettings(project=...).",
            )
        return genai.Client(
            vertexai=True,
            project=vertex.project,
            location=vertex.location,
            http_options=http_options,
        )

    if not options.api_key:
        raise ConfigurationError(
            "API key required for Gemini",
            hint="Set GEMINI_API_KEY environment variable or pass api_key=...",
        )
    return genai.Client(api_key=options.api_key, http_options=http_options)


async def initialize_client(options: ClientOptions, model_id: str) -> BackendHandle:
    """Default initializer: a google-genai backed handle for *model_id*."""
    settings = RuntimeSettings(model=model_id, proxy=options.proxy)
    client = build_genai_client(options, settings)
    logger.debug(
        "Initialized Gemini client (auth_type=%s, model=%s, session=%s)",
        options.auth_type,
        model_id,
        settings.session_id,
    )
    return BackendHandle(
        generator=GenAIContentGenerator(client),
        settings=settings,
        session_id=settings.session_id,
    )
