"""
Mock LLM Client for testing purposes.
"""

import asyncio
from typing import AsyncIterator, List, Optional

from ..base import BaseLLMClient
from ...core.types import (
    GenerateChunk,
    GenerationOptions,
    ModelInfo,
    PromptRequest,
    PromptResponse,
    utc_now,
)


class MockLLMClient(BaseLLMClient):
    """Mock LLM client for testing and development."""

    def __init__(self, host: Optional[str] = None, **kwargs):
        """
        Initialize the mock LLM client.

        Args:
            host: Mock host URL
            **kwargs: Additional configuration options:
                responses: Fragments streamed for every generation
                response_delay: Delay in seconds before each fragment
                error: Exception raised during generation
                error_after: Number of fragments to yield before raising ``error``
                models: Model names reported by ``list_models``
        """
        super().__init__(host or "http://mock-llm:11434", **kwargs)
        self.responses: List[str] = list(kwargs.get("responses", ["I understand your message. ", "How can I help?"]))
        self.response_delay: float = kwargs.get("response_delay", 0.0)
        self.error: Optional[Exception] = kwargs.get("error")
        self.error_after: int = kwargs.get("error_after", 0)
        self.models: List[str] = list(kwargs.get("models", ["mock-model", "mock-llama3", "mock-mistral"]))
        self.list_error: Optional[Exception] = None
        self.requests: List[dict] = []
        self.closed = False

    async def list_models(self) -> List[ModelInfo]:
        """Return the configured mock models."""
        if self.list_error is not None:
            raise self.list_error
        return [
            ModelInfo(name=name, modified_at=utc_now().isoformat(), size=0, digest=f"mock-{index}")
            for index, name in enumerate(self.models)
        ]

    async def generate(self, request: PromptRequest) -> PromptResponse:
        """Return all configured fragments joined into one response."""
        self.requests.append({"model": request.model, "prompt": request.prompt, "stream": False})

        if self.response_delay > 0:
            await asyncio.sleep(self.response_delay)

        if self.error is not None:
            raise self.error

        return PromptResponse(
            model=request.model,
            created_at=utc_now().isoformat(),
            response="".join(self.responses),
            done=True
        )

    async def generate_stream(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None
    ) -> AsyncIterator[GenerateChunk]:
        """
        Stream the configured fragments, then a terminal ``done`` marker.

        Yields:
            GenerateChunk: Mock fragments simulating the backend's stream
        """
        self.requests.append({
            "model": model,
            "prompt": prompt,
            "stream": True,
            "options": self.format_options(options)
        })

        for index, fragment in enumerate(self.responses):
            if self.error is not None and index == self.error_after:
                raise self.error

            # Always suspend so other streams and cancel requests interleave
            await asyncio.sleep(self.response_delay)

            yield GenerateChunk(model=model, created_at=utc_now().isoformat(), response=fragment)

        if self.error is not None and self.error_after >= len(self.responses):
            raise self.error

        yield GenerateChunk(model=model, created_at=utc_now().isoformat(), response="", done=True)

    async def aclose(self) -> None:
        self.closed = True

    def set_response_delay(self, delay: float):
        """
        Set response delay for controlling mock timing.

        Args:
            delay: Delay in seconds before each fragment
        """
        self.response_delay = delay

    def configure_responses(self, responses: List[str]):
        """
        Configure the fragments streamed for subsequent generations.

        Args:
            responses: Fragments in output order
        """
        self.responses = list(responses)

    def configure_error(self, error: Optional[Exception], after: int = 0):
        """
        Make subsequent generations fail.

        Args:
            error: Exception to raise, or None to stop failing
            after: Number of fragments yielded before the failure
        """
        self.error = error
        self.error_after = after
