"""
Bridge from the standard logging module to the event bus.
"""

import logging
from typing import Optional, Union

from ..events import DebugLevel, DebugOutputEvent, EventBus, debug_output


def _debug_level(levelno: int) -> DebugLevel:
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class EventBusLogHandler(logging.Handler):
    """
    Publishes log records as ``debug:output`` events.

    Records logged while the bus is delivering a ``debug:output`` event (for
    example by a listener that logs what it prints) are dropped, so forwarded
    records never produce further forwarded records.
    """

    def __init__(self, event_bus: EventBus, level: Union[int, str] = logging.NOTSET):
        super().__init__(level)
        self.event_bus = event_bus

    def emit(self, record: logging.LogRecord) -> None:
        if isinstance(self.event_bus.current_event, DebugOutputEvent):
            return

        try:
            event = debug_output(self.format(record), level=_debug_level(record.levelno), source=record.name)
            self.event_bus.emit(event)
        except Exception:
            self.handleError(record)


def install_event_bus_logging(
    event_bus: EventBus,
    logger_name: str = "llmstream",
    level: Union[int, str] = logging.INFO,
    formatter: Optional[logging.Formatter] = None
) -> EventBusLogHandler:
    """
    Attach an ``EventBusLogHandler`` to ``logger_name``.

    Installing twice for the same bus returns the handler already attached.

    Returns:
        EventBusLogHandler: The installed handler, for ``removeHandler``
    """
    target = logging.getLogger(logger_name)
    for existing in target.handlers:
        if isinstance(existing, EventBusLogHandler) and existing.event_bus is event_bus:
            return existing

    handler = EventBusLogHandler(event_bus, level=level)
    handler.setFormatter(formatter or logging.Formatter("%(message)s"))
    target.addHandler(handler)
    return handler
