"""
Stream lifecycle manager: the single coordinator for every generation stream
running against the LLM backend.
"""

import asyncio
import logging
import time
import uuid
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..core.types import (
    ConnectionStatus,
    GenerationOptions,
    StreamChunk,
    StreamContext,
    StreamError,
    StreamMetadata,
    StreamMetrics,
    StreamRequest,
    StreamResult,
    StreamSnapshot,
    StreamStatus,
)
from ..events import (
    DebugLevel,
    EventBus,
    StreamCancelledData,
    StreamCancelledEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorData,
    StreamErrorEvent,
    StreamStartedData,
    StreamStartedEvent,
    debug_output,
)
from ..exceptions import ModelListError
from ..llm import BaseLLMClient, ClientLeases, LLMClientFactory
from ..llm.base import DEFAULT_HOST
from .cancellation import CancellationToken


ClientFactory = Callable[[str], BaseLLMClient]

SHUTDOWN_REASON = "shutdown"

# Rough approximation for English text
CHARS_PER_TOKEN = 4


def calculate_tokens_per_second(content: str, duration_ms: float) -> float:
    """Approximate generation speed; 0.0 when no time has elapsed."""
    approximate_tokens = len(content) / CHARS_PER_TOKEN
    duration_seconds = duration_ms / 1000
    return approximate_tokens / duration_seconds if duration_seconds > 0 else 0.0


@dataclass
class ActiveStream:
    """Registry entry for a live stream. Only the manager writes to it."""

    id: str
    metadata: StreamMetadata
    prompt: str
    client: BaseLLMClient
    options: Optional[GenerationOptions] = None
    token: CancellationToken = field(default_factory=CancellationToken)
    chunks: List[StreamChunk] = field(default_factory=list)
    full_content: str = ""
    status: StreamStatus = StreamStatus.STARTING
    start_time: float = field(default_factory=time.monotonic)

    def snapshot(self) -> StreamSnapshot:
        return StreamSnapshot(
            stream_id=self.id,
            metadata=self.metadata,
            prompt=self.prompt,
            status=self.status,
            chunks=tuple(self.chunks),
            full_content=self.full_content
        )


class StreamManager:
    """
    Starts, executes, completes, fails and cancels generation streams.

    Every state change is published on the event bus:
    ``stream:started`` → ``stream:chunk`` (0..N) → exactly one of
    ``stream:completed`` / ``stream:error`` / ``stream:cancelled``.
    The registry entry is removed right before the terminal event is emitted.

    Host changes apply to streams started afterwards; streams already running
    keep the client they were started with.
    """

    def __init__(
        self,
        event_bus: EventBus,
        llm_client: Optional[BaseLLMClient] = None,
        host: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the stream manager.

        Args:
            event_bus: Bus that receives every stream event
            llm_client: Backend client; built with ``client_factory`` when omitted
            host: Backend base URL used when no client is given
            client_factory: Builds a client for a host (used by ``update_host``)
            logger: Optional logger instance
        """
        self.event_bus = event_bus
        self.logger = logger or logging.getLogger(__name__)
        self._client_factory = client_factory or self._default_client_factory

        if llm_client is not None:
            self._client = llm_client
            self._host = llm_client.host
        else:
            self._host = host or DEFAULT_HOST
            self._client = self._client_factory(self._host)

        self._active_streams: Dict[str, ActiveStream] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self.client_leases = ClientLeases(self.logger)

        self.logger.info(f"StreamManager initialized with host: {self._host}")
        self._emit_debug(f"StreamManager initialized with host: {self._host}")

    @staticmethod
    def _default_client_factory(host: str) -> BaseLLMClient:
        return LLMClientFactory.create_client("ollama", host=host)

    # Stream lifecycle
    # ================

    def start_stream(self, request: StreamRequest) -> str:
        """
        Start a new streaming request.

        Emits ``stream:started`` before returning and runs the backend call in
        a background task. Must be called from a running event loop.

        Args:
            request: Model, prompt, context and options

        Returns:
            str: The new stream id
        """
        loop = asyncio.get_running_loop()

        stream_id = str(uuid.uuid4())
        metadata = StreamMetadata(
            stream_id=stream_id,
            context=request.context,
            model=request.model,
            user_prompt=request.user_prompt,
            context_data=request.context_data
        )
        stream = ActiveStream(
            id=stream_id,
            metadata=metadata,
            prompt=request.prompt,
            client=self._client,
            options=request.options
        )
        self._active_streams[stream_id] = stream
        self.client_leases.acquire(stream.client)

        self.event_bus.emit(StreamStartedEvent(
            data=StreamStartedData(stream_id=stream_id, metadata=metadata, prompt=request.prompt)
        ))
        self.logger.debug(
            f"Stream started: {stream_id} (context={request.context.value}, "
            f"model={request.model}, prompt_length={len(request.prompt)})"
        )

        task = loop.create_task(self._run_stream(stream), name=f"llmstream-{stream_id}")
        self._tasks[stream_id] = task
        task.add_done_callback(lambda _task, finished=stream: self._on_task_done(finished))

        return stream_id

    def cancel_stream(self, stream_id: str, reason: Optional[str] = None) -> bool:
        """
        Cancel an active stream.

        Args:
            stream_id: Stream to cancel
            reason: Optional human-readable reason

        Returns:
            bool: False if the stream is unknown or already finished
        """
        stream = self._active_streams.pop(stream_id, None)
        if stream is None:
            return False

        stream.token.cancel(reason)
        stream.status = StreamStatus.CANCELLED

        self.event_bus.emit(StreamCancelledEvent(
            data=StreamCancelledData(stream_id=stream_id, metadata=stream.metadata, reason=reason)
        ))
        self.logger.info(f"Stream cancelled: {stream_id} ({reason or 'no reason given'})")
        return True

    def _on_task_done(self, stream: ActiveStream) -> None:
        self._tasks.pop(stream.id, None)
        self.client_leases.release(stream.client)

    async def _run_stream(self, stream: ActiveStream) -> None:
        try:
            await self._execute_stream(stream)
        except asyncio.CancelledError:
            # Task cancelled from outside (shutdown): still publish a terminal event
            if self._active_streams.get(stream.id) is stream:
                self.cancel_stream(stream.id, SHUTDOWN_REASON)
            raise
        except Exception as e:
            if stream.token.is_cancelled:
                self.logger.debug(f"Stream {stream.id} failed after cancellation: {e}")
                return
            self._handle_stream_error(stream, e)

    async def _execute_stream(self, stream: ActiveStream) -> None:
        if stream.token.is_cancelled:
            return

        stream.status = StreamStatus.STREAMING
        sequence = 0

        self.logger.debug(
            f"Executing stream {stream.id} (model={stream.metadata.model}, "
            f"context={stream.metadata.context.value})"
        )

        parts = stream.client.generate_stream(stream.metadata.model, stream.prompt, stream.options)
        async with aclosing(parts):
            async for part in parts:
                if stream.token.is_cancelled:
                    self.logger.debug(f"Stream aborted: {stream.id}")
                    return

                # Terminal marker without text
                if part.done and not part.response:
                    continue

                chunk = StreamChunk(stream_id=stream.id, content=part.response, sequence=sequence)
                sequence += 1

                stream.chunks.append(chunk)
                stream.full_content += part.response

                self.event_bus.emit(StreamChunkEvent(data=chunk))

        if stream.token.is_cancelled:
            return

        self.logger.debug(
            f"Stream execution completed: {stream.id} "
            f"({len(stream.chunks)} chunks, {len(stream.full_content)} chars)"
        )
        self._complete_stream(stream)

    def _complete_stream(self, stream: ActiveStream) -> None:
        if self._active_streams.get(stream.id) is not stream:
            return

        duration_ms = int(round((time.monotonic() - stream.start_time) * 1000))
        stream.status = StreamStatus.COMPLETED

        result = StreamResult(
            stream_id=stream.id,
            full_content=stream.full_content,
            status=StreamStatus.COMPLETED,
            metadata=stream.metadata,
            metrics=StreamMetrics(
                total_chunks=len(stream.chunks),
                total_bytes=len(stream.full_content.encode("utf-8")),
                duration_ms=duration_ms,
                tokens_per_second=calculate_tokens_per_second(stream.full_content, duration_ms)
            )
        )

        del self._active_streams[stream.id]
        self.event_bus.emit(StreamCompletedEvent(data=result))

        self.logger.info(
            f"Stream completed: {stream.id} (context={stream.metadata.context.value}, "
            f"duration={duration_ms}ms, chunks={len(stream.chunks)})"
        )

    def _handle_stream_error(self, stream: ActiveStream, error: Exception) -> None:
        if self._active_streams.get(stream.id) is not stream:
            return

        stream.status = StreamStatus.ERROR
        code = getattr(error, "code", None)

        stream_error = StreamError(
            message=str(error) or "Unknown error",
            code=str(code) if code is not None else None,
            details={
                "exception_type": type(error).__name__,
                "exception_message": str(error)
            }
        )

        self.logger.error(
            f"Stream error: {stream.id} (context={stream.metadata.context.value}): {stream_error.message}"
        )

        del self._active_streams[stream.id]
        self.event_bus.emit(StreamErrorEvent(
            data=StreamErrorData(stream_id=stream.id, error=stream_error, metadata=stream.metadata)
        ))

    # Registry queries
    # ================

    def get_stream_info(self, stream_id: str) -> Optional[StreamSnapshot]:
        """Get a snapshot of an active stream, or None if it is not running."""
        stream = self._active_streams.get(stream_id)
        return stream.snapshot() if stream is not None else None

    def get_active_streams(self) -> List[StreamSnapshot]:
        """Get snapshots of all active streams."""
        return [stream.snapshot() for stream in self._active_streams.values()]

    def get_streams_by_context(self, context: StreamContext) -> List[StreamSnapshot]:
        """Get snapshots of active streams started for a context."""
        context = StreamContext(context)
        return [
            stream.snapshot()
            for stream in self._active_streams.values()
            if stream.metadata.context == context
        ]

    # Backend configuration
    # =====================

    def update_host(self, host: str) -> None:
        """
        Point subsequently started streams at a new backend host.

        Streams already running keep using the client they started with; it
        is closed once the last of them finishes.
        """
        retired = self._client
        self._host = host
        self._client = self._client_factory(host)
        if retired is not self._client:
            self.client_leases.retire(retired)

        self.logger.info(f"LLM host updated to: {host}")
        self._emit_debug(f"LLM host updated to: {host}")

    def get_host(self) -> str:
        """Get current host."""
        return self._host

    @property
    def client(self) -> BaseLLMClient:
        """Client used by newly started streams."""
        return self._client

    async def test_connection(self) -> ConnectionStatus:
        """
        Test the connection by listing models. Never raises.

        Returns:
            ConnectionStatus: connected flag with model names or an error message
        """
        try:
            models = await self._client.list_models()
        except Exception as e:
            error_message = str(e) or "Unknown error"
            self.logger.error(f"Connection test failed for {self._host}: {error_message}")
            self._emit_debug(f"Connection test failed: {error_message}", level="error")
            return ConnectionStatus(connected=False, error=error_message)

        model_names = [model.name for model in models]
        message = f"Connection test successful. Found {len(model_names)} models."
        self.logger.info(message)
        self._emit_debug(message)
        return ConnectionStatus(connected=True, models=model_names)

    async def list_models(self) -> List[str]:
        """
        List available model names.

        Raises:
            ModelListError: If the backend cannot be queried
        """
        try:
            models = await self._client.list_models()
        except Exception as e:
            raise ModelListError(f"Failed to list models: {str(e) or 'Unknown error'}") from e
        return [model.name for model in models]

    # Task management
    # ===============

    async def wait_until_idle(self) -> None:
        """Wait until every stream execution task has finished and idle retired clients are closed."""
        while True:
            # Entries leave _tasks from their done callback, after the lease is released
            pending = list(self._tasks.values())
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        await self.client_leases.wait_closed()

    async def aclose(self) -> None:
        """Cancel remaining streams, wait for their tasks and close backend clients."""
        for stream_id in list(self._active_streams):
            self.cancel_stream(stream_id, SHUTDOWN_REASON)

        for task in list(self._tasks.values()):
            task.cancel()
        await self.wait_until_idle()

        await self.client_leases.aclose()
        try:
            await self._client.aclose()
        except Exception as e:
            self.logger.error(f"Error closing LLM client for {self._client.host}: {e}")

    def _emit_debug(self, content: str, level: DebugLevel = "info") -> None:
        self.event_bus.emit(debug_output(content, level=level, source="StreamManager"))
