"""
Register built-in backends.
"""

from __future__ import annotations

from structstream.backend_registry import BackendProvider, clear_backends, register_backend
from structstream.backends.gemini import create_gemini_backend


def register_builtin_backends() -> None:
    """Register all built-in backends."""
    register_backend(
        BackendProvider(
            backend="gemini",
            factory=create_gemini_backend,
        )
    )


def reset_backends() -> None:
    """Clear and re-register all built-in backends."""
    clear_backends()
    register_builtin_backends()


# Auto-register on import
register_builtin_backends()
