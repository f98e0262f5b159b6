"""
Exception hierarchy for structstream.
"""

from __future__ import annotations


class StructStreamError(Exception):
    """Base class for all structstream errors."""


class ConfigurationError(StructStreamError, ValueError):
    """Raised when a client cannot be constructed from its configuration."""


class BackendError(StructStreamError, RuntimeError):
    """Raised when a backend stream fails at the transport or protocol level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
