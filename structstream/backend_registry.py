"""
Backend registry for managing fragment source implementations.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from structstream.env_api_keys import get_env_api_key_names
from structstream.errors import ConfigurationError
from structstream.types import Backend, SchemaHint, StreamJsonOptions


class FragmentSource(Protocol):
    """Protocol for backends producing text fragments of one JSON document."""

    def stream_text(
        self,
        system: str,
        input_data: Any,
        model: str,
        schema: SchemaHint | None = None,
        options: StreamJsonOptions | None = None,
    ) -> AsyncIterator[str]:
        ...


class BackendFactory(Protocol):
    """Protocol for functions building a backend from a credential."""

    def __call__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> FragmentSource:
        ...


@dataclass
class BackendProvider:
    """Backend kind with the factory that builds it."""

    backend: Backend
    factory: BackendFactory


@dataclass
class _RegisteredBackendProvider:
    """Internal registered provider with optional source ID."""

    provider: BackendProvider
    source_id: str | None = None


_backend_registry: dict[str, _RegisteredBackendProvider] = {}


def register_backend(
    provider: BackendProvider,
    source_id: str | None = None,
) -> None:
    """Register a backend provider."""
    _backend_registry[provider.backend] = _RegisteredBackendProvider(
        provider=provider,
        source_id=source_id,
    )


def get_backend_provider(backend: Backend) -> BackendProvider | None:
    """Get a backend provider by kind."""
    entry = _backend_registry.get(backend)
    return entry.provider if entry else None


def get_backend_providers() -> list[BackendProvider]:
    """Get all registered backend providers."""
    return [entry.provider for entry in _backend_registry.values()]


def unregister_backends(source_id: str) -> None:
    """Unregister all backend providers with a given source ID."""
    to_remove = [
        backend for backend, entry in _backend_registry.items() if entry.source_id == source_id
    ]
    for backend in to_remove:
        del _backend_registry[backend]


def clear_backends() -> None:
    """Clear all registered backend providers."""
    _backend_registry.clear()


def resolve_backend_provider(backend: Backend) -> BackendProvider:
    """Resolve a backend provider or fail with a configuration error."""
    provider = get_backend_provider(backend)
    if not provider:
        raise ConfigurationError(f"Unsupported backend: {backend}")
    return provider


def create_backend(
    backend: Backend,
    api_key: str | None,
    http_client: httpx.AsyncClient | None = None,
) -> FragmentSource:
    """
    Build a backend instance.

    Raises:
        ConfigurationError: If the kind is unknown or no credential is given
    """
    provider = resolve_backend_provider(backend)
    if not api_key:
        names = " / ".join(get_env_api_key_names(backend)) or "API key"
        raise ConfigurationError(f"{names} not found (env or passed)")
    return provider.factory(api_key, http_client=http_client)

