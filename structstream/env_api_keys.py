"""
Environment variable API key resolution.
"""

from __future__ import annotations

import os

from structstream.types import Backend

# Standard environment variable mappings, first match wins
_ENV_MAP: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
}


def get_env_api_key(backend: Backend) -> str | None:
    """
    Get API key for a backend from known environment variables.

    Args:
        backend: The backend kind (e.g., "gemini")

    Returns:
        The API key, or None if not found.
    """
    for env_var in _ENV_MAP.get(backend, ()):
        value = os.environ.get(env_var)
        if value:
            return value
    return None


def get_env_api_key_names(backend: Backend) -> tuple[str, ...]:
    """Environment variables consulted for a backend, in lookup order."""
    return _ENV_MAP.get(backend, ())
