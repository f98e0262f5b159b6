"""
Client configuration resolved from arguments, the environment and dotenv files.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from structstream.env_api_keys import get_env_api_key
from structstream.types import Backend

DEFAULT_MODEL = "gemini-2.5-flash"

_DOTENV_FILES = (".env.local", ".env")


def load_env_files(directory: str | Path | None = None) -> None:
    """Load `.env.local` then `.env`; variables already set are kept."""
    base = Path(directory) if directory is not None else Path.cwd()
    for name in _DOTENV_FILES:
        path = base / name
        if path.is_file():
            load_dotenv(path, override=False)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() == "true"


class ClientConfig(BaseModel):
    """Read-only process configuration for an LLMClient."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    backend: Backend = "gemini"
    model: str = DEFAULT_MODEL
    debug_mode: bool = False
    api_key: str | None = None
    mock_dir: str | None = None

    @classmethod
    def from_env(
        cls,
        backend: Backend = "gemini",
        model: str | None = None,
        debug_mode: bool | None = None,
        api_key: str | None = None,
        load_dotenv_files: bool = True,
    ) -> ClientConfig:
        """
        Build a config, letting explicit arguments win over the environment.

        Reads DEFAULT_LLM_MODEL, USE_MOCK_MODE, STRUCTSTREAM_MOCK_DIR and the
        backend's API key variable.
        """
        if load_dotenv_files:
            load_env_files()

        return cls(
            backend=backend,
            model=model or os.environ.get("DEFAULT_LLM_MODEL") or DEFAULT_MODEL,
            debug_mode=_env_flag("USE_MOCK_MODE") if debug_mode is None else debug_mode,
            api_key=api_key or get_env_api_key(backend),
            mock_dir=os.environ.get("STRUCTSTREAM_MOCK_DIR") or None,
        )
