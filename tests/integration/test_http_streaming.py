"""
End-to-end streaming through the manager and adapter over a mocked Ollama HTTP server.
"""

import json

import httpx
import pytest

from llmstream.adapters import ServiceAdapter
from llmstream.core.types import PromptRequest, StreamContext, StreamRequest
from llmstream.events import EventBus, EventType
from llmstream.exceptions import BackendRequestError
from llmstream.llm import OllamaClient
from llmstream.streaming import StreamManager


def ndjson(*lines) -> bytes:
    return "".join(json.dumps(line) + "\n" for line in lines).encode()


def ollama_server(*lines, status_code: int = 200):
    """Build a transport answering /api/generate with NDJSON lines."""
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(status_code, content=ndjson(*lines))

    return httpx.MockTransport(handler), requests


def make_client(transport) -> OllamaClient:
    return OllamaClient(host="http://ollama.test:11434", transport=transport)


class TestHttpStreaming:
    """Test full request paths against the Ollama wire format."""

    @pytest.mark.asyncio
    async def test_stream_manager_over_http(self):
        """The manager streams from a mocked Ollama server."""
        transport, requests = ollama_server(
            {"response": "Name, ", "done": False},
            {"response": "email", "done": False},
            {"response": "", "done": True}
        )
        bus = EventBus()
        events = []
        bus.subscribe(events.append)
        manager = StreamManager(bus, llm_client=make_client(transport))

        stream_id = manager.start_stream(StreamRequest(
            model="llama3.2", prompt="List the fields", context=StreamContext.FORM_ANALYSIS
        ))
        await manager.wait_until_idle()
        await manager.aclose()

        stream_events = [event for event in events if event.stream_id == stream_id]
        assert [event.type for event in stream_events] == [
            EventType.STREAM_STARTED,
            EventType.STREAM_CHUNK,
            EventType.STREAM_CHUNK,
            EventType.STREAM_COMPLETED,
        ]
        assert stream_events[-1].data.full_content == "Name, email"
        assert requests == [{"model": "llama3.2", "prompt": "List the fields", "stream": True}]

    @pytest.mark.asyncio
    async def test_adapter_prompt_over_http(self):
        transport, _ = ollama_server(
            {"response": "Three ", "done": False},
            {"response": "fields", "done": False},
            {"response": "", "done": True}
        )
        adapter = ServiceAdapter(llm_client=make_client(transport))

        response = await adapter.send_prompt(
            PromptRequest(model="llama3.2", prompt="Describe the form"),
            context=StreamContext.FORM_ANALYSIS
        )
        await adapter.aclose()

        assert response.response == "Three fields"
        assert response.done

    @pytest.mark.asyncio
    async def test_adapter_surfaces_http_errors(self):
        transport, _ = ollama_server({"error": "model 'nope' not found"}, status_code=404)
        adapter = ServiceAdapter(llm_client=make_client(transport))

        with pytest.raises(BackendRequestError) as exc_info:
            await adapter.send_prompt(
                PromptRequest(model="nope", prompt="hi"), context=StreamContext.USER_CHAT
            )
        await adapter.aclose()

        assert exc_info.value.code == "HTTP_404"
        assert adapter.get_stream_manager().get_active_streams() == []
