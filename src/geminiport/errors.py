"""Exception hierarchy for geminiport."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class GeminiPortError(Exception):
    """Base exception for all geminiport errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(GeminiPortError):
    """Client options or model settings failed validation."""


class MappingError(GeminiPortError):
    """A prompt, tool, or schema value could not be mapped to the backend shape.

    Never retried; the message always names the offending value's type or
    media type.
    """


class CancellationError(GeminiPortError):
    """The caller's cancellation signal was observed at a checkpoint."""

    def __init__(
        self, message: str = "Request aborted", *, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)


class InitializationError(GeminiPortError):
    """Backend client construction failed.

    Every request waiting on the same initialization observes this error.
    """


class BackendError(GeminiPortError):
    """Backend invocation or stream iteration failed.

    ``phase`` is "generate" or "stream". ``retryable`` marks transient
    failures for callers with their own retry policy; nothing here retries.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.phase = phase


class RateLimitError(BackendError):
    """Rate limit exceeded (HTTP 429)."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
