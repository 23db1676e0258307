"""
Compatibility adapter: the plain LLMService interface, routed through the
stream manager when a stream context is supplied.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from ..core.types import ConnectionStatus, PromptRequest, PromptResponse, StreamContext, StreamRequest
from ..events import (
    BaseStreamEvent,
    EventBus,
    EventFilter,
    EventType,
    StreamCancelledEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorEvent,
)
from ..exceptions import BackendRequestError, StreamCancelledError
from ..llm import BaseLLMClient, LLMService
from ..llm.service import ChunkCallback, deliver_chunk
from ..streaming import StreamManager


logger = logging.getLogger(__name__)

CALLER_CANCELLED_REASON = "caller cancelled"
CALLER_FAILED_REASON = "caller failed"


class ServiceAdapter(LLMService):
    """
    LLMService whose prompts become managed, observable streams.

    Without a context, ``send_prompt`` and ``stream_prompt`` behave exactly
    like ``LLMService``. With a context, the request runs through the
    ``StreamManager`` and the result is collected from the event bus.

    Direct and managed prompts share the stream manager's client, so a host
    change applies to both.
    """

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        host: Optional[str] = None,
        client_factory: Optional[Callable[[str], BaseLLMClient]] = None,
        event_bus: Optional[EventBus] = None,
        stream_manager: Optional[StreamManager] = None
    ):
        """
        Initialize the adapter.

        Args:
            llm_client, host, client_factory: Used to build the stream manager;
                ignored when ``stream_manager`` is given
            event_bus: Bus for a new stream manager
            stream_manager: Existing manager to route prompts through
        """
        if stream_manager is None:
            stream_manager = StreamManager(
                event_bus or EventBus(),
                llm_client=llm_client,
                host=host,
                client_factory=client_factory
            )
        self.stream_manager = stream_manager
        self.event_bus = stream_manager.event_bus
        super().__init__(llm_client=stream_manager.client)
        self.client_leases = stream_manager.client_leases

    async def send_prompt(
        self,
        request: PromptRequest,
        context: Optional[StreamContext] = None,
        context_data: Optional[Dict[str, Any]] = None
    ) -> PromptResponse:
        """
        Send a prompt and wait for the complete response.

        Raises:
            BackendRequestError: If generation fails
            StreamCancelledError: If the managed stream is cancelled
        """
        if context is None:
            return await super().send_prompt(request)

        result = await self._run_managed(request, context, context_data)
        return PromptResponse(
            model=request.model,
            created_at=result.data.completed_at.isoformat(),
            response=result.data.full_content,
            done=True
        )

    async def stream_prompt(
        self,
        request: PromptRequest,
        on_chunk: ChunkCallback,
        context: Optional[StreamContext] = None,
        context_data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Stream a prompt, invoking ``on_chunk`` with every text fragment."""
        if context is None:
            return await super().stream_prompt(request, on_chunk)

        await self._run_managed(request, context, context_data, on_chunk=on_chunk)

    async def _run_managed(
        self,
        request: PromptRequest,
        context: StreamContext,
        context_data: Optional[Dict[str, Any]],
        on_chunk: Optional[ChunkCallback] = None
    ) -> StreamCompletedEvent:
        queue: "asyncio.Queue[BaseStreamEvent]" = asyncio.Queue()

        stream_id = self.stream_manager.start_stream(StreamRequest(
            model=request.model,
            prompt=request.prompt,
            context=context,
            context_data=context_data,
            options=request.options
        ))

        # No await between start and subscribe, so no chunk can be missed
        event_types = [
            EventType.STREAM_CHUNK,
            EventType.STREAM_COMPLETED,
            EventType.STREAM_ERROR,
            EventType.STREAM_CANCELLED,
        ]
        if on_chunk is None:
            event_types.remove(EventType.STREAM_CHUNK)
        unsubscribe = self.event_bus.subscribe_with_filter(
            EventFilter(stream_id=stream_id, event_types=event_types),
            queue.put_nowait
        )

        try:
            while True:
                event = await queue.get()
                if isinstance(event, StreamChunkEvent):
                    await deliver_chunk(on_chunk, event.data.content)
                elif isinstance(event, StreamCompletedEvent):
                    return event
                elif isinstance(event, StreamErrorEvent):
                    error = event.data.error
                    raise BackendRequestError(error.message, code=error.code)
                elif isinstance(event, StreamCancelledEvent):
                    raise StreamCancelledError(stream_id, event.data.reason)
        except asyncio.CancelledError:
            self.stream_manager.cancel_stream(stream_id, CALLER_CANCELLED_REASON)
            raise
        except Exception as e:
            # No-op when the stream already ended
            self.stream_manager.cancel_stream(stream_id, f"{CALLER_FAILED_REASON}: {e}")
            raise
        finally:
            unsubscribe()

    def update_host(self, host: str) -> None:
        """Update the host for both direct and managed prompts."""
        self.stream_manager.update_host(host)
        self.llm_client = self.stream_manager.client

    async def test_connection(self) -> ConnectionStatus:
        return await self.stream_manager.test_connection()

    def get_stream_manager(self) -> StreamManager:
        """Get the stream manager for advanced usage."""
        return self.stream_manager

    async def aclose(self) -> None:
        await self.stream_manager.aclose()
