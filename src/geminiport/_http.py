"""Small HTTP-related constants shared across geminiport.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Status codes a caller-side retry policy may treat as transient.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

# Media type families the backend accepts as inline data.
SUPPORTED_MEDIA_PREFIXES: tuple[str, ...] = ("image/", "audio/", "video/")
SUPPORTED_MEDIA_TYPES: frozenset[str] = frozenset({"application/pdf"})

DEFAULT_MEDIA_TYPE = "application/octet-stream"
