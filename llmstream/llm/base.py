from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

from ..core.types import GenerateChunk, GenerationOptions, ModelInfo, PromptRequest, PromptResponse


DEFAULT_HOST = "http://127.0.0.1:11434"


class BaseLLMClient(ABC):
    """Abstract base class for LLM backend clients."""

    def __init__(self, host: Optional[str] = None, **kwargs):
        """
        Initialize the LLM client.

        Args:
            host: Base URL of the LLM server
            **kwargs: Provider-specific configuration options
        """
        self.host = (host or DEFAULT_HOST).rstrip("/")
        self.config = kwargs

    @abstractmethod
    async def list_models(self) -> List[ModelInfo]:
        """
        List the models available on the backend.

        Returns:
            List[ModelInfo]: Available models
        """
        pass

    @abstractmethod
    async def generate(self, request: PromptRequest) -> PromptResponse:
        """
        Run a generation and wait for the full response.

        Args:
            request: Model, prompt and options

        Returns:
            PromptResponse: The complete response
        """
        pass

    @abstractmethod
    def generate_stream(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None
    ) -> AsyncIterator[GenerateChunk]:
        """
        Stream a generation fragment by fragment.

        Args:
            model: Model name
            prompt: Prompt text
            options: Optional sampling options

        Yields:
            GenerateChunk: Partial responses; the last one has ``done`` set
        """
        pass

    async def aclose(self) -> None:
        """Release network resources. Override if the client holds any."""
        pass

    def format_options(self, options: Optional[GenerationOptions]) -> Optional[Dict[str, Any]]:
        """
        Format generation options for the provider. Override if needed.

        Args:
            options: Sampling options

        Returns:
            Optional[Dict[str, Any]]: Provider-formatted options, or None when empty
        """
        if options is None:
            return None
        formatted = options.to_backend_options()
        return formatted or None
