"""
Direct request/response access to the LLM backend, without the event bus.
"""

import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from .base import BaseLLMClient
from .factory import LLMClientFactory
from .leases import ClientLeases
from ..core.types import ModelInfo, PromptRequest, PromptResponse
from ..exceptions import BackendRequestError


logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]


async def deliver_chunk(on_chunk: ChunkCallback, content: str) -> None:
    """Invoke a chunk callback that may be sync or async."""
    result = on_chunk(content)
    if inspect.isawaitable(result):
        await result


class LLMService:
    """Simple service wrapper around a backend client."""

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        host: Optional[str] = None,
        client_factory: Optional[Callable[[str], BaseLLMClient]] = None
    ):
        """
        Initialize the service.

        Args:
            llm_client: Backend client; built with ``client_factory`` for ``host`` when omitted
            host: Backend base URL
            client_factory: Builds a client for a host (defaults to an Ollama client)
        """
        self._client_factory = client_factory or (lambda h: LLMClientFactory.create_client("ollama", host=h))
        self.llm_client = llm_client or self._client_factory(host)
        self.client_leases = ClientLeases(logger)

    async def list_models(self) -> List[ModelInfo]:
        """List models available on the backend."""
        async with self.client_leases.hold(self.llm_client) as client:
            try:
                return await client.list_models()
            except Exception as e:
                logger.error(f"Failed to list models: {e}")
                raise BackendRequestError(
                    "Failed to list models. Please ensure the LLM server is running."
                ) from e

    async def send_prompt(self, request: PromptRequest) -> PromptResponse:
        """Send a prompt and wait for the complete response."""
        async with self.client_leases.hold(self.llm_client) as client:
            try:
                return await client.generate(request)
            except Exception as e:
                logger.error(f"Failed to send prompt: {e}")
                raise BackendRequestError(
                    "Failed to generate response. Please check your model selection and LLM server connection."
                ) from e

    async def stream_prompt(self, request: PromptRequest, on_chunk: ChunkCallback) -> None:
        """Stream a prompt, invoking ``on_chunk`` with every text fragment."""
        async with self.client_leases.hold(self.llm_client) as client:
            try:
                async for part in client.generate_stream(request.model, request.prompt, request.options):
                    if part.response:
                        await deliver_chunk(on_chunk, part.response)
            except Exception as e:
                logger.error(f"Failed to stream prompt: {e}")
                raise BackendRequestError(
                    "Failed to stream response. Please check your model selection and LLM server connection."
                ) from e

    def update_host(self, host: str) -> None:
        """
        Replace the backend client with one for ``host``.

        The old client is closed once calls already using it have finished.
        """
        retired = self.llm_client
        self.llm_client = self._client_factory(host)
        if retired is not self.llm_client:
            self.client_leases.retire(retired)

    def get_host(self) -> str:
        return self.llm_client.host

    async def aclose(self) -> None:
        """Close the current client and any replaced by ``update_host``."""
        await self.client_leases.aclose()
        await self.llm_client.aclose()
