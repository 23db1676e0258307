"""
Stream event definitions and the event bus.
"""

from .stream_events import (
    EventType,
    DebugLevel,
    StreamStartedData,
    StreamErrorData,
    StreamCancelledData,
    DebugCommand,
    DebugOutput,
    BaseStreamEvent,
    StreamStartedEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorEvent,
    StreamCancelledEvent,
    DebugCommandEvent,
    DebugOutputEvent,
    StreamEvent,
    StreamEventListener,
    EventFilter,
    parse_event,
    debug_output,
)
from .event_bus import EventBus, Unsubscribe

__all__ = [
    "EventType",
    "DebugLevel",
    "StreamStartedData",
    "StreamErrorData",
    "StreamCancelledData",
    "DebugCommand",
    "DebugOutput",
    "BaseStreamEvent",
    "StreamStartedEvent",
    "StreamChunkEvent",
    "StreamCompletedEvent",
    "StreamErrorEvent",
    "StreamCancelledEvent",
    "DebugCommandEvent",
    "DebugOutputEvent",
    "StreamEvent",
    "StreamEventListener",
    "EventFilter",
    "parse_event",
    "debug_output",
    "EventBus",
    "Unsubscribe",
]
