# Shared fixtures for structstream tests
from __future__ import annotations

import asyncio
from typing import Any

import pytest

from structstream.backend_registry import BackendProvider, register_backend, unregister_backends
from structstream.errors import BackendError

_ENV_VARS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "DEFAULT_LLM_MODEL",
    "USE_MOCK_MODE",
    "STRUCTSTREAM_MOCK_DIR",
)


class FakeBackend:
    """Fragment source replaying scripted deltas and recording calls."""

    def __init__(
        self,
        fragments: list[str] | None = None,
        fail_after: int | None = None,
        delay: float = 0.0,
    ):
        self.fragments = list(fragments or [])
        self.fail_after = fail_after
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def stream_text(self, system, input_data, model, schema=None, options=None):
        self.calls.append(
            {
                "system": system,
                "input_data": input_data,
                "model": model,
                "schema": schema,
                "options": options,
            }
        )
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_after is not None and i >= self.fail_after:
                    raise BackendError("connection reset", status_code=None)
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield fragment
        finally:
            self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment and dotenv files."""
    for name in _ENV_VARS:
        # setenv first so teardown also removes values loaded from dotenv files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def fake_backend():
    """Register a "fake" backend kind whose instances share one FakeBackend."""
    backend = FakeBackend()
    register_backend(
        BackendProvider(backend="fake", factory=lambda api_key, http_client=None: backend),
        source_id="tests",
    )
    yield backend
    unregister_backends("tests")
