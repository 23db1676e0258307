import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..base import BaseLLMClient
from ...core.types import (
    GenerateChunk,
    GenerationOptions,
    ModelDetails,
    ModelInfo,
    PromptRequest,
    PromptResponse,
)
from ...exceptions import BackendRequestError, BackendUnavailableError


logger = logging.getLogger(__name__)


class OllamaClient(BaseLLMClient):
    """Ollama HTTP API client built on httpx."""

    TAGS_PATH = "/api/tags"
    GENERATE_PATH = "/api/generate"

    def __init__(
        self,
        host: Optional[str] = None,
        request_timeout: float = 300.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        """
        Initialize the Ollama client.

        Args:
            host: Ollama server base URL
            request_timeout: Read timeout in seconds; generation can be slow
            connect_timeout: Connection timeout in seconds
            transport: Optional httpx transport (used by tests)
            **kwargs: Additional configuration options
        """
        super().__init__(host, **kwargs)
        self.timeout = httpx.Timeout(request_timeout, connect=connect_timeout)
        self._client = httpx.AsyncClient(
            base_url=self.host,
            timeout=self.timeout,
            transport=transport
        )

    async def list_models(self) -> List[ModelInfo]:
        """List models installed on the Ollama server."""
        try:
            response = await self._client.get(self.TAGS_PATH)
        except httpx.RequestError as e:
            raise self._unavailable(e) from e

        self._raise_for_status(response)
        payload = response.json()

        models = []
        for entry in payload.get("models", []):
            details = entry.get("details")
            models.append(ModelInfo(
                name=entry.get("name") or entry.get("model", ""),
                modified_at=entry.get("modified_at"),
                size=entry.get("size", 0),
                digest=entry.get("digest", ""),
                details=ModelDetails(**details) if isinstance(details, dict) else None
            ))
        return models

    async def generate(self, request: PromptRequest) -> PromptResponse:
        """Run a non-streaming generation."""
        payload = self._build_payload(request.model, request.prompt, request.options, stream=False)

        try:
            response = await self._client.post(self.GENERATE_PATH, json=payload)
        except httpx.RequestError as e:
            raise self._unavailable(e) from e

        self._raise_for_status(response)
        data = response.json()
        if "error" in data:
            raise BackendRequestError(str(data["error"]))

        return PromptResponse(
            model=data.get("model", request.model),
            created_at=data.get("created_at", ""),
            response=data.get("response", ""),
            done=data.get("done", True)
        )

    async def generate_stream(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None
    ) -> AsyncIterator[GenerateChunk]:
        """Stream a generation as newline-delimited JSON fragments."""
        payload = self._build_payload(model, prompt, options, stream=True)

        try:
            async with self._client.stream("POST", self.GENERATE_PATH, json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_status(response)

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue

                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        raise BackendRequestError(f"Invalid stream fragment from backend: {line[:200]}")

                    if "error" in data:
                        raise BackendRequestError(str(data["error"]))

                    chunk = GenerateChunk(
                        model=data.get("model", model),
                        created_at=data.get("created_at"),
                        response=data.get("response", ""),
                        done=data.get("done", False)
                    )
                    yield chunk

                    if chunk.done:
                        return
        except httpx.RequestError as e:
            raise self._unavailable(e) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    def _build_payload(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions],
        stream: bool
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": stream
        }
        formatted_options = self.format_options(options)
        if formatted_options:
            payload["options"] = formatted_options
        return payload

    def _unavailable(self, error: httpx.RequestError) -> BackendUnavailableError:
        message = f"Could not reach LLM server at {self.host}: {error}"
        logger.error(message)
        return BackendUnavailableError(message)

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return

        message = response.reason_phrase or "request failed"
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
        except ValueError:
            if response.text:
                message = response.text[:200]

        raise BackendRequestError(
            f"LLM server returned {response.status_code}: {message}",
            status_code=response.status_code
        )
