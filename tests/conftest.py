"""Pytest configuration and fixtures.

Provides environment isolation and logging configuration. All fixtures here
are autouse.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================

_ISOLATED_PREFIXES = ("GEMINI_", "GOOGLE_")
_ISOLATED_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "DEBUG")


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests."""
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_backend_env(monkeypatch):
    """Ensure a clean credential/proxy environment for each test.

    Clears GEMINI_*, GOOGLE_* and proxy env vars to prevent test pollution.
    """
    for key in list(os.environ.keys()):
        if key.startswith(_ISOLATED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    for key in _ISOLATED_VARS:
        monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
