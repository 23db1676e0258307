"""
Tests for the compatibility adapter.
"""

import asyncio

import pytest

from llmstream.adapters import CALLER_FAILED_REASON, ServiceAdapter
from llmstream.core.types import PromptRequest, StreamContext
from llmstream.events import EventType, StreamStartedEvent
from llmstream.exceptions import BackendRequestError, StreamCancelledError
from llmstream.llm import MockLLMClient


@pytest.fixture
def adapter_client():
    return MockLLMClient(responses=["The ", "form ", "has 3 fields"])


@pytest.fixture
def adapter(adapter_client):
    return ServiceAdapter(
        llm_client=adapter_client,
        client_factory=lambda host: MockLLMClient(host=host)
    )


@pytest.fixture
def prompt():
    return PromptRequest(model="mock-llama3", prompt="Describe the form")


class TestServiceAdapter:
    """Test context-aware prompts routed through the stream manager."""

    @pytest.mark.asyncio
    async def test_send_prompt_without_context_is_direct(self, adapter, prompt):
        events = []
        adapter.event_bus.subscribe(events.append)

        response = await adapter.send_prompt(prompt)

        assert response.response == "The form has 3 fields"
        assert not any(isinstance(event, StreamStartedEvent) for event in events)
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_send_prompt_with_context(self, adapter, prompt):
        """Form analysis scenario: the prompt becomes an observable stream."""
        events = []
        adapter.event_bus.subscribe(events.append)

        response = await adapter.send_prompt(
            prompt, context=StreamContext.FORM_ANALYSIS, context_data={"url": "https://example.com"}
        )

        assert response.response == "The form has 3 fields"
        assert response.model == "mock-llama3"
        assert response.done

        started = [event for event in events if isinstance(event, StreamStartedEvent)]
        assert len(started) == 1
        assert started[0].data.metadata.context == StreamContext.FORM_ANALYSIS
        assert started[0].data.metadata.context_data == {"url": "https://example.com"}
        assert adapter.stream_manager.get_active_streams() == []
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_stream_prompt_with_context(self, adapter, prompt):
        received = []

        await adapter.stream_prompt(prompt, received.append, context=StreamContext.USER_CHAT)

        assert received == ["The ", "form ", "has 3 fields"]
        assert adapter.event_bus.get_listener_counts() == {"global": 0}
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_stream_prompt_with_async_callback(self, adapter, prompt):
        received = []

        async def on_chunk(content):
            await asyncio.sleep(0)
            received.append(content)

        await adapter.stream_prompt(prompt, on_chunk, context=StreamContext.USER_CHAT)

        assert "".join(received) == "The form has 3 fields"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_stream_error_raises(self, adapter, adapter_client, prompt):
        adapter_client.configure_error(BackendRequestError("model not loaded", status_code=503), after=1)

        with pytest.raises(BackendRequestError, match="model not loaded") as exc_info:
            await adapter.send_prompt(prompt, context=StreamContext.FORM_ANALYSIS)

        assert exc_info.value.code == "HTTP_503"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_cancelled_stream_raises(self, adapter, adapter_client, prompt):
        adapter_client.set_response_delay(0.01)

        task = asyncio.create_task(adapter.send_prompt(prompt, context=StreamContext.USER_CHAT))
        while not adapter.stream_manager.get_active_streams():
            await asyncio.sleep(0)

        stream_id = adapter.stream_manager.get_active_streams()[0].stream_id
        adapter.stream_manager.cancel_stream(stream_id, "user request")

        with pytest.raises(StreamCancelledError) as exc_info:
            await task

        assert exc_info.value.stream_id == stream_id
        assert exc_info.value.reason == "user request"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_stream(self, adapter, adapter_client, prompt):
        adapter_client.set_response_delay(0.01)
        cancelled = []
        adapter.event_bus.subscribe_to_types([EventType.STREAM_CANCELLED], cancelled.append)

        task = asyncio.create_task(adapter.send_prompt(prompt, context=StreamContext.USER_CHAT))
        while not adapter.stream_manager.get_active_streams():
            await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(cancelled) == 1
        assert adapter.stream_manager.get_active_streams() == []
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_failing_callback_cancels_stream(self, adapter, adapter_client, prompt):
        """A callback error reaches the caller and the managed stream stops."""
        adapter_client.set_response_delay(0.01)
        events = []
        adapter.event_bus.subscribe(events.append)

        def on_chunk(content):
            raise RuntimeError("render failed")

        with pytest.raises(RuntimeError, match="render failed"):
            await adapter.stream_prompt(prompt, on_chunk, context=StreamContext.USER_CHAT)

        assert adapter.stream_manager.get_active_streams() == []
        await adapter.stream_manager.wait_until_idle()

        stream_events = [event for event in events if event.stream_id is not None]
        assert [event.type for event in stream_events] == [
            EventType.STREAM_STARTED,
            EventType.STREAM_CHUNK,
            EventType.STREAM_CANCELLED,
        ]
        assert stream_events[-1].data.reason == f"{CALLER_FAILED_REASON}: render failed"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_update_host_updates_both_layers(self, adapter):
        adapter.update_host("http://other-host:11434")

        assert adapter.get_host() == "http://other-host:11434"
        assert adapter.get_stream_manager().get_host() == "http://other-host:11434"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_direct_and_managed_prompts_share_client(self, adapter, prompt):
        adapter.update_host("http://other-host:11434")
        new_client = adapter.get_stream_manager().client

        assert adapter.llm_client is new_client
        await adapter.send_prompt(prompt)
        await adapter.send_prompt(prompt, context=StreamContext.USER_CHAT)
        assert len(new_client.requests) == 2
        await adapter.aclose()
        assert new_client.closed

    @pytest.mark.asyncio
    async def test_connection_via_manager(self, adapter):
        status = await adapter.test_connection()

        assert status.connected
        assert "mock-llama3" in status.models
        await adapter.aclose()
