"""
Debug projections of stream events: display formatting, session logging and
log forwarding onto the event bus.
"""

from .stream_logger import (
    StreamLogger,
    LogEntry,
    StreamSession,
    SessionMetadata,
    LogSummary,
    LogExport,
)
from .formatters import DebugFormatter, FormattedOutput
from .log_handler import EventBusLogHandler, install_event_bus_logging

__all__ = [
    "StreamLogger",
    "LogEntry",
    "StreamSession",
    "SessionMetadata",
    "LogSummary",
    "LogExport",
    "DebugFormatter",
    "FormattedOutput",
    "EventBusLogHandler",
    "install_event_bus_logging",
]
