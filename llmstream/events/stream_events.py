"""
Stream event types.

Each event kind is its own frozen model with a literal ``type`` tag, so the
union below is a proper discriminated union and consumers can dispatch on the
class (or the tag) instead of probing payload fields.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..core.types import (
    StreamChunk,
    StreamContext,
    StreamError,
    StreamMetadata,
    StreamResult,
    utc_now,
)


class EventType(str, Enum):
    # Stream lifecycle
    STREAM_STARTED = "stream:started"
    STREAM_CHUNK = "stream:chunk"
    STREAM_COMPLETED = "stream:completed"
    STREAM_ERROR = "stream:error"
    STREAM_CANCELLED = "stream:cancelled"
    # Debug terminal
    DEBUG_COMMAND = "debug:command"
    DEBUG_OUTPUT = "debug:output"


DebugLevel = Literal["debug", "info", "warn", "error"]


# Payloads
# ========

class StreamStartedData(BaseModel):
    model_config = ConfigDict(frozen=True)

    stream_id: str
    metadata: StreamMetadata
    prompt: str


class StreamErrorData(BaseModel):
    model_config = ConfigDict(frozen=True)

    stream_id: str
    error: StreamError
    metadata: StreamMetadata


class StreamCancelledData(BaseModel):
    model_config = ConfigDict(frozen=True)

    stream_id: str
    metadata: StreamMetadata
    reason: Optional[str] = None


class DebugCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: str
    args: Optional[List[str]] = None
    timestamp: datetime = Field(default_factory=utc_now)


class DebugOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    level: DebugLevel = "info"
    timestamp: datetime = Field(default_factory=utc_now)
    source: Optional[str] = None


# Events
# ======

class BaseStreamEvent(BaseModel):
    """Common behaviour for all events published on the bus."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def stream_id(self) -> Optional[str]:
        """Stream the event belongs to, if any."""
        return getattr(self.data, "stream_id", None)

    @property
    def metadata(self) -> Optional[StreamMetadata]:
        return getattr(self.data, "metadata", None)

    @property
    def context(self) -> Optional[StreamContext]:
        """Context of the stream, for events that carry metadata."""
        metadata = self.metadata
        return metadata.context if metadata is not None else None


class StreamStartedEvent(BaseStreamEvent):
    type: Literal[EventType.STREAM_STARTED] = EventType.STREAM_STARTED
    data: StreamStartedData


class StreamChunkEvent(BaseStreamEvent):
    type: Literal[EventType.STREAM_CHUNK] = EventType.STREAM_CHUNK
    data: StreamChunk


class StreamCompletedEvent(BaseStreamEvent):
    type: Literal[EventType.STREAM_COMPLETED] = EventType.STREAM_COMPLETED
    data: StreamResult


class StreamErrorEvent(BaseStreamEvent):
    type: Literal[EventType.STREAM_ERROR] = EventType.STREAM_ERROR
    data: StreamErrorData


class StreamCancelledEvent(BaseStreamEvent):
    type: Literal[EventType.STREAM_CANCELLED] = EventType.STREAM_CANCELLED
    data: StreamCancelledData


class DebugCommandEvent(BaseStreamEvent):
    type: Literal[EventType.DEBUG_COMMAND] = EventType.DEBUG_COMMAND
    data: DebugCommand


class DebugOutputEvent(BaseStreamEvent):
    type: Literal[EventType.DEBUG_OUTPUT] = EventType.DEBUG_OUTPUT
    data: DebugOutput


StreamEvent = Annotated[
    Union[
        StreamStartedEvent,
        StreamChunkEvent,
        StreamCompletedEvent,
        StreamErrorEvent,
        StreamCancelledEvent,
        DebugCommandEvent,
        DebugOutputEvent,
    ],
    Field(discriminator="type"),
]

StreamEventListener = Callable[[BaseStreamEvent], None]

_event_adapter: TypeAdapter = TypeAdapter(StreamEvent)


def parse_event(payload: Dict[str, Any]) -> BaseStreamEvent:
    """Validate a plain mapping (e.g. from an exported log) into an event."""
    return _event_adapter.validate_python(payload)


def debug_output(content: str, level: DebugLevel = "info", source: Optional[str] = None) -> DebugOutputEvent:
    """Shortcut for building a debug:output event."""
    return DebugOutputEvent(data=DebugOutput(content=content, level=level, source=source))


class EventFilter(BaseModel):
    """Subscription filter. Fields left as None are not checked."""
    stream_id: Optional[str] = None
    context: Optional[StreamContext] = None
    event_types: Optional[List[EventType]] = None

    def matches(self, event: BaseStreamEvent) -> bool:
        if self.event_types and event.type not in self.event_types:
            return False

        if self.stream_id is not None and event.stream_id != self.stream_id:
            return False

        if self.context is not None and event.context != self.context:
            return False

        return True
