"""
Gemini generateContent streaming backend.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx
from pydantic import BaseModel

from structstream.errors import BackendError
from structstream.types import ChatMessage, SchemaHint, StreamJsonOptions
from structstream.utils.schema import is_model_schema, schema_to_json_schema

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
API_KEY_HEADER = "x-goog-api-key"
DEFAULT_TIMEOUT = 300.0


def _message_to_content(message: ChatMessage | dict[str, Any]) -> dict[str, Any] | None:
    """Convert an OpenAI-style message to a Gemini content entry."""
    if isinstance(message, ChatMessage):
        role, content = message.role, message.content
    else:
        if "parts" in message:
            return message
        role, content = message.get("role", "user"), message.get("content", "")

    # System text travels in systemInstruction
    if role == "system":
        return None
    if role == "assistant":
        role = "model"
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"role": role, "parts": [{"text": content}]}


def _is_message_list(input_data: Any) -> bool:
    return isinstance(input_data, list) and all(
        isinstance(item, ChatMessage)
        or (isinstance(item, dict) and ("role" in item or "parts" in item))
        for item in input_data
    )


def build_contents(input_data: Any) -> list[dict[str, Any]]:
    """
    Build the Gemini `contents` array from an arbitrary input payload.

    A string becomes one user turn, a list of chat messages is mapped turn
    by turn, and anything else is JSON encoded into one user turn.
    """
    if isinstance(input_data, str):
        return [{"role": "user", "parts": [{"text": input_data}]}]

    if input_data and _is_message_list(input_data):
        contents = [_message_to_content(item) for item in input_data]
        return [content for content in contents if content is not None]

    if isinstance(input_data, BaseModel):
        text = input_data.model_dump_json()
    else:
        text = json.dumps(input_data, default=str)
    return [{"role": "user", "parts": [{"text": text}]}]


def build_generation_config(
    schema: SchemaHint | None,
    options: StreamJsonOptions | None,
) -> dict[str, Any]:
    """Build the `generationConfig` block requesting JSON output."""
    config: dict[str, Any] = {"responseMimeType": "application/json"}

    json_schema = schema_to_json_schema(schema)
    if json_schema is not None:
        key = "responseJsonSchema" if is_model_schema(schema) else "responseSchema"
        config[key] = json_schema

    if options:
        if options.temperature is not None:
            config["temperature"] = options.temperature
        if options.max_output_tokens is not None:
            config["maxOutputTokens"] = options.max_output_tokens
        if options.generation_config:
            config.update(options.generation_config)

    return config


def _extract_texts(event: dict[str, Any]) -> list[str]:
    """Pull the text parts out of one streamed response chunk."""
    candidates = event.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return [part["text"] for part in content.get("parts") or [] if part.get("text")]


class GeminiBackend:
    """Streams JSON text fragments from the Gemini REST API over SSE."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def build_payload(
        self,
        system: str,
        input_data: Any,
        schema: SchemaHint | None = None,
        options: StreamJsonOptions | None = None,
    ) -> dict[str, Any]:
        """Build the request body for streamGenerateContent."""
        payload: dict[str, Any] = {
            "contents": build_contents(input_data),
            "generationConfig": build_generation_config(schema, options),
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    async def stream_text(
        self,
        system: str,
        input_data: Any,
        model: str,
        schema: SchemaHint | None = None,
        options: StreamJsonOptions | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield text fragments of the model's JSON answer in arrival order.

        Raises:
            BackendError: On transport failure, HTTP error status or a
                malformed stream event
        """
        payload = self.build_payload(system, input_data, schema, options)

        if self._http_client is not None:
            async with aclosing(self._stream(self._http_client, model, payload, options)) as texts:
                async for text in texts:
                    yield text
            return

        async with httpx.AsyncClient() as client:
            async with aclosing(self._stream(client, model, payload, options)) as texts:
                async for text in texts:
                    yield text

    async def _stream(
        self,
        client: httpx.AsyncClient,
        model: str,
        payload: dict[str, Any],
        options: StreamJsonOptions | None,
    ) -> AsyncIterator[str]:
        url = f"{self.base_url}/models/{model}:streamGenerateContent"
        timeout = options.timeout if options and options.timeout is not None else self.timeout

        try:
            async with client.stream(
                "POST",
                url,
                params={"alt": "sse"},
                headers={
                    API_KEY_HEADER: self._api_key,
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=timeout,
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="ignore")
                    logger.error(
                        "Gemini returned HTTP %s for model %s: %s",
                        response.status_code,
                        model,
                        body,
                    )
                    raise BackendError(
                        f"Gemini error {response.status_code}: {body}",
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[5:].strip()
                    if not data or data == "[DONE]":
                        continue

                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError as e:
                        raise BackendError(f"Malformed Gemini stream event: {data[:200]}") from e

                    if not isinstance(event, dict):
                        raise BackendError(f"Unexpected Gemini stream event: {data[:200]}")
                    if event.get("error"):
                        error = event["error"]
                        message = error.get("message") if isinstance(error, dict) else str(error)
                        raise BackendError(f"Gemini stream error: {message}")

                    for text in _extract_texts(event):
                        yield text
        except httpx.HTTPError as e:
            logger.error("Request error connecting to Gemini: %s", e, exc_info=True)
            raise BackendError(f"Could not connect to Gemini ({e})") from e


def create_gemini_backend(
    api_key: str,
    http_client: httpx.AsyncClient | None = None,
) -> GeminiBackend:
    """Factory registered for the "gemini" backend kind."""
    return GeminiBackend(api_key, http_client=http_client)
