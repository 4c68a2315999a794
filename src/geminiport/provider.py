"""Provider factory: shared client options, one model per model id."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geminiport.config import ClientOptions, ModelSettings
from geminiport.model import GeminiLanguageModel

if TYPE_CHECKING:
    from geminiport.backend import Initializer


@dataclass(frozen=True)
class GeminiProvider:
    """Creates language models that share client options and an initializer.

    Example:
        gemini = create_provider(ClientOptions(auth_type="api-key"))
        model = gemini("gemini-2.5-pro", temperature=0.2)
    """

    client_options: ClientOptions = field(default_factory=ClientOptions)
    initializer: Initializer | None = None

    def language_model(
        self,
        model_id: str,
        settings: ModelSettings | None = None,
        **setting_overrides: object,
    ) -> GeminiLanguageModel:
        """Return a model; keyword overrides build ``ModelSettings`` inline."""
        if setting_overrides:
            if settings is not None:
                raise TypeError("Pass either settings or keyword settings, not both")
            settings = ModelSettings(**setting_overrides)  # type: ignore[arg-type]
        return GeminiLanguageModel(
            model_id,
            client_options=self.client_options,
            settings=settings,
            initializer=self.initializer,
        )

    __call__ = language_model


def create_provider(
    client_options: ClientOptions | None = None,
    *,
    initializer: Initializer | None = None,
) -> GeminiProvider:
    """Create a provider; options default to environment resolution."""
    return GeminiProvider(
        client_options=client_options or ClientOptions(),
        initializer=initializer,
    )
