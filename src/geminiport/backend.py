"""Backend boundary: the transport protocol and the lazily created handle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from geminiport.errors import CancellationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from geminiport.config import ClientOptions, RuntimeSettings
    from geminiport.types import CancelSignal


def raise_if_cancelled(signal: CancelSignal | None) -> None:
    """Cancellation checkpoint.

    Cancellation is cooperative: it is observed only where this is called.
    A backend call already in flight still completes its round trip.
    """
    if signal is not None and signal.is_set():
        raise CancellationError()


@dataclass(frozen=True)
class BackendRequest:
    """One backend generation request.

    ``contents`` and ``config`` use the backend's snake_case field names.
    """

    model: str
    contents: list[dict[str, Any]]
    config: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"model": self.model, "contents": self.contents, "config": self.config}


@runtime_checkable
class ContentGenerator(Protocol):
    """Transport exposing a blocking call and a streaming call.

    Neither call can be aborted once started.
    """

    async def generate(self, request: BackendRequest, request_id: str) -> Any:
        """Return one complete backend response."""
        ...

    async def generate_stream(
        self, request: BackendRequest, request_id: str
    ) -> AsyncIterator[Any]:
        """Return an async iterator over backend response chunks."""
        ...


@dataclass(frozen=True)
class BackendHandle:
    """Client, runtime capabilities, and session shared by a model instance."""

    generator: ContentGenerator
    settings: RuntimeSettings
    session_id: str


class Initializer(Protocol):
    """Builds a backend handle from client options and a model id."""

    async def __call__(self, options: ClientOptions, model_id: str) -> BackendHandle: ...
