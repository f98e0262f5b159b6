# Test the Gemini streaming backend against a mocked transport
import json

import httpx
import pytest
from pydantic import BaseModel

from structstream.backends.gemini import (
    API_KEY_HEADER,
    GeminiBackend,
    build_contents,
    build_generation_config,
)
from structstream.client import LLMClient
from structstream.errors import BackendError
from structstream.types import ChatMessage, StreamJsonOptions


class Enemy(BaseModel):
    name: str
    hp: int


class RecordingStream(httpx.AsyncByteStream):
    """Response body that records whether httpx closed it."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


def _sse(*events):
    return "".join(f"data: {json.dumps(event)}\r\n\r\n" for event in events).encode()


def _chunk(*texts):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in texts]}}]}


async def _collect(backend, **kwargs):
    params = {"system": "Be terse.", "input_data": "Make an enemy", "model": "gemini-test"}
    params.update(kwargs)
    return [text async for text in backend.stream_text(**params)]


class TestBuildContents:
    def test_string_is_one_user_turn(self):
        assert build_contents("hello") == [{"role": "user", "parts": [{"text": "hello"}]}]

    def test_chat_messages_are_mapped(self):
        contents = build_contents(
            [
                {"role": "system", "content": "ignored"},
                {"role": "user", "content": "hi"},
                ChatMessage(role="assistant", content="hello"),
            ]
        )
        assert contents == [
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "model", "parts": [{"text": "hello"}]},
        ]

    def test_native_contents_pass_through(self):
        native = {"role": "user", "parts": [{"text": "x"}]}
        assert build_contents([native]) == [native]

    def test_other_payloads_are_json_encoded(self):
        contents = build_contents({"level": 3, "theme": "forest"})
        assert json.loads(contents[0]["parts"][0]["text"]) == {"level": 3, "theme": "forest"}


class TestBuildGenerationConfig:
    def test_requests_json(self):
        assert build_generation_config(None, None) == {"responseMimeType": "application/json"}

    def test_dict_schema(self):
        schema = {"type": "OBJECT", "properties": {"a": {"type": "STRING"}}}
        config = build_generation_config(schema, None)
        assert config["responseSchema"] == schema

    def test_model_schema(self):
        config = build_generation_config(Enemy, None)
        assert config["responseJsonSchema"]["properties"].keys() == {"name", "hp"}

    def test_options_merge(self):
        options = StreamJsonOptions(
            temperature=0.2,
            max_output_tokens=256,
            generation_config={"topK": 4},
        )
        config = build_generation_config(None, options)
        assert config["temperature"] == 0.2
        assert config["maxOutputTokens"] == 256
        assert config["topK"] == 4


class TestGeminiBackend:
    @pytest.mark.asyncio
    async def test_streams_text_parts(self):
        seen = {}

        async def handler(request: httpx.Request):
            seen["url"] = request.url
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content.decode())
            body = _sse(_chunk('{"name": "Gob'), _chunk('lin", ', '"hp": 7}'), {"candidates": []})
            return httpx.Response(200, content=body)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key-123", http_client=client)
            texts = await _collect(backend, schema=Enemy)

        assert texts == ['{"name": "Gob', 'lin", ', '"hp": 7}']
        assert seen["url"].path == "/v1beta/models/gemini-test:streamGenerateContent"
        assert seen["url"].params["alt"] == "sse"
        assert seen["headers"][API_KEY_HEADER] == "key-123"
        assert seen["body"]["systemInstruction"] == {"parts": [{"text": "Be terse."}]}
        assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "Make an enemy"}]}]
        assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"

    @pytest.mark.asyncio
    async def test_http_error_raises_backend_error(self):
        async def handler(request: httpx.Request):
            return httpx.Response(403, json={"error": {"message": "bad key"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            with pytest.raises(BackendError) as exc_info:
                await _collect(backend)

        assert exc_info.value.status_code == 403
        assert "bad key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_backend_error(self):
        async def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            with pytest.raises(BackendError):
                await _collect(backend)

    @pytest.mark.asyncio
    async def test_malformed_event_raises_backend_error(self):
        async def handler(request: httpx.Request):
            return httpx.Response(200, content=_sse(_chunk("{")) + b"data: {not json\n\n")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            with pytest.raises(BackendError):
                await _collect(backend)

    @pytest.mark.asyncio
    async def test_error_event_raises_backend_error(self):
        async def handler(request: httpx.Request):
            return httpx.Response(200, content=_sse({"error": {"message": "overloaded"}}))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            with pytest.raises(BackendError, match="overloaded"):
                await _collect(backend)

    @pytest.mark.asyncio
    async def test_ignores_comments_and_blank_lines(self):
        async def handler(request: httpx.Request):
            body = b": keep-alive\n\n" + _sse(_chunk("[1]")) + b"data: [DONE]\n\n"
            return httpx.Response(200, content=body)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            assert await _collect(backend) == ["[1]"]


class TestEarlyClose:
    @pytest.mark.asyncio
    async def test_closing_backend_stream_closes_response(self):
        body = RecordingStream([_sse(_chunk("[1")), _sse(_chunk(", 2")), _sse(_chunk("]"))])

        async def handler(request: httpx.Request):
            return httpx.Response(200, stream=body)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GeminiBackend("key", http_client=client)
            texts = backend.stream_text("sys", "prompt", "gemini-test")
            assert await texts.__anext__() == "[1"
            await texts.aclose()
            assert body.closed is True

    @pytest.mark.asyncio
    async def test_closing_client_stream_closes_response(self):
        """Abandoning a structured stream releases the HTTP response at once."""
        body = RecordingStream([_sse(_chunk("[1")), _sse(_chunk(", 2")), _sse(_chunk("]"))])

        async def handler(request: httpx.Request):
            return httpx.Response(200, stream=body)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = LLMClient("gemini", api_key="k", debug_mode=False, http_client=http_client)
            items = client.stream_json("sys", "prompt")
            assert await items.__anext__() == [1]
            await items.aclose()
            assert body.closed is True
