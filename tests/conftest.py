"""
Pytest configuration and shared fixtures for llmstream tests.
"""

import logging
from typing import List

import pytest
import pytest_asyncio

from llmstream.core.types import StreamContext, StreamRequest
from llmstream.debug import EventBusLogHandler
from llmstream.events import BaseStreamEvent, EventBus, EventType
from llmstream.llm import MockLLMClient
from llmstream.streaming import StreamManager


class EventRecorder:
    """Collects every event published on a bus."""

    def __init__(self):
        self.events: List[BaseStreamEvent] = []

    def __call__(self, event: BaseStreamEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[BaseStreamEvent]:
        return [event for event in self.events if event.type == event_type]

    def for_stream(self, stream_id: str) -> List[BaseStreamEvent]:
        return [event for event in self.events if event.stream_id == stream_id]

    def types_for_stream(self, stream_id: str) -> List[EventType]:
        return [event.type for event in self.for_stream(stream_id)]


@pytest.fixture
def event_bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def recorder(event_bus):
    """Record every event on the test bus."""
    recorder = EventRecorder()
    event_bus.subscribe(recorder)
    return recorder


@pytest.fixture
def mock_client():
    """Create a mock backend streaming three fragments."""
    return MockLLMClient(responses=["Hello", " world", "!"])


@pytest_asyncio.fixture
async def manager(event_bus, recorder, mock_client):
    """Create a stream manager over the mock backend and close it afterwards."""
    manager = StreamManager(event_bus, llm_client=mock_client)
    yield manager
    await manager.aclose()


@pytest.fixture
def chat_request():
    """Create a sample user-chat stream request."""
    return StreamRequest(
        model="mock-llama3",
        prompt="Say hello",
        context=StreamContext.USER_CHAT
    )


@pytest.fixture(autouse=True)
def remove_bus_log_handlers():
    """Detach log forwarding installed by a test so buses do not leak between tests."""
    yield
    for name in ("llmstream", "llmstream.tests"):
        target = logging.getLogger(name)
        for handler in list(target.handlers):
            if isinstance(handler, EventBusLogHandler):
                target.removeHandler(handler)
