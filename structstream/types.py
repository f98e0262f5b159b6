"""
Core types for structstream.
"""

from __future__ import annotations

from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict

# Backend Types
KnownBackend: TypeAlias = Literal["gemini"]

Backend: TypeAlias = KnownBackend | str

Role: TypeAlias = Literal["user", "assistant", "model", "system"]

JSONValue: TypeAlias = dict[str, Any] | list[Any] | str | int | float | bool | None

SchemaHint: TypeAlias = dict[str, Any] | type[BaseModel]


class ChatMessage(BaseModel):
    """OpenAI-style chat message accepted as part of an input payload."""

    model_config = ConfigDict(extra="forbid")

    role: Role
    content: str


class StreamJsonOptions(BaseModel):
    """Generation settings forwarded to the backend."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    """Per-call model override."""
    temperature: float | None = None
    max_output_tokens: int | None = None
    timeout: float | None = None
    generation_config: dict[str, Any] | None = None
    """Raw backend generation config merged over the defaults."""


class FirstItemLatency(BaseModel):
    """Elapsed time until the first reconstructed value reached the caller."""

    model_config = ConfigDict(extra="forbid")

    label: str
    elapsed_ms: float
