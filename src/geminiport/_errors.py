"""Backend error classification.

Anything the google-genai SDK or its HTTP transport raises becomes a
BackendError carrying the HTTP status and a retryable flag. Nothing here
retries; the flag is for callers with their own policy.
"""

from __future__ import annotations

import asyncio

import httpx

from geminiport._http import RETRYABLE_STATUS_CODES
from geminiport.errors import (
    BackendError,
    GeminiPortError,
    RateLimitError,
    _walk_exception_chain,
)

# google-genai APIError uses ``code``; httpx responses use ``status_code``.
_STATUS_ATTRS = ("status_code", "status", "code")

_AUTH_HINT = (
    "Check credentials/permissions (set GEMINI_API_KEY, or "
    "ClientOptions(api_key=...) / ClientOptions(auth_type='vertex-ai'))."
)


def _as_status(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def extract_status_code(exc: BaseException) -> int | None:
    """First HTTP status found on *exc*, its response, or its cause chain."""
    for e in _walk_exception_chain(exc):
        holders = (e, getattr(e, "response", None))
        for holder in holders:
            for attr in _STATUS_ATTRS:
                status = _as_status(getattr(holder, attr, None))
                if status is not None:
                    return status
    return None


def is_transport_failure(exc: BaseException) -> bool:
    return any(
        isinstance(e, (httpx.TimeoutException, httpx.RequestError))
        for e in _walk_exception_chain(exc)
    )


def auth_hint(status_code: int | None, cause: str) -> str | None:
    # Invalid API keys come back as 400, not 401/403.
    if status_code in (401, 403):
        return _AUTH_HINT
    lowered = cause.lower()
    if status_code == 400 and ("api key" in lowered or "api_key" in lowered):
        return _AUTH_HINT
    return None


def map_backend_error(exc: BaseException, *, phase: str) -> GeminiPortError:
    """Classify *exc* into the geminiport error taxonomy.

    geminiport errors pass through unchanged (a BackendError only gains a
    missing phase). ``asyncio.CancelledError`` is re-raised.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc
    if isinstance(exc, GeminiPortError):
        if isinstance(exc, BackendError) and exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    cause = str(exc)
    summary = f"Gemini {phase} failed"
    if status_code is not None:
        summary += f" (status={status_code})"

    cls = RateLimitError if status_code == 429 else BackendError
    return cls(
        f"{summary}: {cause}" if cause else summary,
        hint=auth_hint(status_code, cause),
        retryable=status_code in RETRYABLE_STATUS_CODES or is_transport_failure(exc),
        status_code=status_code,
        phase=phase,
    )
