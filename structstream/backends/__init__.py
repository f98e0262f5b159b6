"""Backends package."""

from structstream.backends.gemini import (
    GeminiBackend,
    build_contents,
    build_generation_config,
    create_gemini_backend,
)
from structstream.backends.register_builtins import (
    register_builtin_backends,
    reset_backends,
)

__all__ = [
    # Gemini
    "GeminiBackend",
    "build_contents",
    "build_generation_config",
    "create_gemini_backend",
    # Register builtins
    "register_builtin_backends",
    "reset_backends",
]
