"""
Structured JSON streaming client.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any, Callable

import httpx

from structstream.backend_registry import FragmentSource, create_backend
from structstream.config import ClientConfig
from structstream.mocks import FileMockStore, MockStore
from structstream.types import (
    Backend,
    FirstItemLatency,
    JSONValue,
    SchemaHint,
    StreamJsonOptions,
)
from structstream.utils.json_parse import PartialJSONProcessor
from structstream.utils.schema import validate_value

logger = logging.getLogger(__name__)

LatencyObserver = Callable[[FirstItemLatency], None]

DEFAULT_GENERATE_TIMEOUT = 60.0


def _is_sentinel(value: Any) -> bool:
    return isinstance(value, dict) and not value


class LLMClient:
    """
    Streams structured values reconstructed from a backend's JSON deltas.

    Every call to :meth:`stream_json` gets its own
    :class:`PartialJSONProcessor`, so concurrent calls share no state.

    Raises:
        ConfigurationError: If the backend is unknown or has no credential
    """

    def __init__(
        self,
        backend: Backend = "gemini",
        model: str | None = None,
        debug_mode: bool | None = None,
        api_key: str | None = None,
        *,
        mock_store: MockStore | None = None,
        latency_observer: LatencyObserver | None = None,
        http_client: httpx.AsyncClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self.config = config or ClientConfig.from_env(
            backend=backend,
            model=model,
            debug_mode=debug_mode,
            api_key=api_key,
        )
        self._backend: FragmentSource = create_backend(
            self.config.backend,
            self.config.api_key,
            http_client=http_client,
        )
        if mock_store is None and self.config.mock_dir:
            mock_store = FileMockStore(self.config.mock_dir)
        self._mock_store = mock_store
        self._latency_observer = latency_observer

        logger.info(
            "LLMClient initialized | Backend: %s | Model: %s | Debug: %s",
            self.config.backend,
            self.config.model,
            self.config.debug_mode,
        )

    @property
    def is_debug(self) -> bool:
        return self.config.debug_mode

    @property
    def model(self) -> str:
        return self.config.model

    def _try_get_mock(self, label: str) -> Any | None:
        if self._mock_store is None:
            return None
        return self._mock_store.get(label)

    async def _track_ttfb(
        self,
        generator: AsyncIterator[JSONValue],
        label: str,
    ) -> AsyncIterator[JSONValue]:
        start_time = time.perf_counter()
        is_first_item = True

        async with aclosing(generator) as items:
            async for item in items:
                if is_first_item:
                    is_first_item = False
                    elapsed_ms = (time.perf_counter() - start_time) * 1000
                    logger.info("[%s] TTFB: %.2fms", label, elapsed_ms)
                    if self._latency_observer is not None:
                        self._latency_observer(FirstItemLatency(label=label, elapsed_ms=elapsed_ms))
                yield item

    async def _stream_live(
        self,
        system: str,
        input_data: Any,
        schema: SchemaHint | None,
        label: str,
        options: StreamJsonOptions | None,
    ) -> AsyncIterator[JSONValue]:
        processor = PartialJSONProcessor()
        fragments = self._backend.stream_text(
            system,
            input_data,
            options.model if options and options.model else self.config.model,
            schema=schema,
            options=options,
        )

        async with aclosing(fragments) as deltas:
            async for delta in deltas:
                if not delta:
                    continue
                partial = processor.process(delta)
                if _is_sentinel(partial):
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug(
                            "[%s] no value recoverable yet from %d buffered chars",
                            label,
                            len(processor.buffer),
                        )
                    continue
                yield partial

    async def _with_mock(
        self,
        live: Callable[[], AsyncIterator[JSONValue]],
        label: str,
        mock_response: Any | None,
        schema: SchemaHint | None,
    ) -> AsyncIterator[JSONValue]:
        data_to_mock = None
        if self.config.debug_mode:
            if mock_response is not None:
                data_to_mock = mock_response
                logger.debug("Using direct mock response for '%s'", label)
            else:
                data_to_mock = self._try_get_mock(label)

        if data_to_mock is not None:
            yield validate_value(data_to_mock, schema)
            return

        async with aclosing(live()) as items:
            async for item in items:
                yield item

    def stream_json(
        self,
        system: str,
        input_data: Any,
        schema: SchemaHint | None = None,
        label: str = "llm_stream_json",
        mock_response: Any | None = None,
        options: StreamJsonOptions | None = None,
    ) -> AsyncIterator[JSONValue]:
        """
        Stream best-effort reconstructions of the backend's JSON answer.

        Nothing runs until the first item is requested. In debug mode a
        direct or stored mock is yielded once instead of calling the
        backend. Backend failures propagate out of the iteration.

        Args:
            system: System instruction for the model
            input_data: Prompt text, chat messages or any JSON-serializable value
            schema: Optional dict JSON schema or pydantic model class
            label: Tag for mock lookup and latency logging
            mock_response: Value to replay in debug mode
            options: Extra generation settings
        """
        return self._with_mock(
            lambda: self._track_ttfb(
                self._stream_live(system, input_data, schema, label, options),
                label,
            ),
            label,
            mock_response,
            schema,
        )

    async def _drain(
        self,
        stream: AsyncIterator[JSONValue],
    ) -> JSONValue:
        result: JSONValue = {}
        async with aclosing(stream) as items:
            async for item in items:
                result = item
        return result

    async def generate_json(
        self,
        system: str,
        input_data: Any,
        schema: SchemaHint | None = None,
        label: str = "llm_generate_json",
        mock_response: Any | None = None,
        options: StreamJsonOptions | None = None,
    ) -> JSONValue:
        """
        Drain a structured stream and return its final value.

        The whole call is bounded by `options.timeout`, or 60 seconds when
        unset; `options.model` overrides the client's model for this call.

        Returns:
            The last reconstructed value, or an empty dict if none arrived

        Raises:
            TimeoutError: If the stream does not finish in time
        """
        timeout = (
            options.timeout
            if options and options.timeout is not None
            else DEFAULT_GENERATE_TIMEOUT
        )
        stream = self.stream_json(
            system,
            input_data,
            schema=schema,
            label=label,
            mock_response=mock_response,
            options=options,
        )

        start_time = time.perf_counter()
        try:
            try:
                result = await asyncio.wait_for(self._drain(stream), timeout)
            except asyncio.TimeoutError as e:
                raise TimeoutError(f"[{label}] Timed out after {timeout * 1000:.0f}ms") from e
        except Exception:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("[%s] Failed after %.2fms", label, elapsed_ms, exc_info=True)
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info("[%s] Completed in: %.2fms", label, elapsed_ms)
        return result
