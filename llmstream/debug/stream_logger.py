"""
Session-scoped, bounded history of stream events for debugging.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..core.types import StreamContext, utc_now
from ..events import (
    BaseStreamEvent,
    DebugCommandEvent,
    DebugOutputEvent,
    EventBus,
    StreamCancelledEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorEvent,
    StreamStartedEvent,
    Unsubscribe,
)


logger = logging.getLogger(__name__)

LogLevel = Literal["debug", "info", "warn", "error"]
LogCategory = Literal["stream", "system", "user", "debug"]


def _new_id() -> str:
    return uuid.uuid4().hex


class LogEntry(BaseModel):
    """A single log record."""
    id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=utc_now)
    level: LogLevel
    category: LogCategory
    message: str
    data: Optional[Any] = None
    stream_id: Optional[str] = None
    context: Optional[StreamContext] = None


class SessionMetadata(BaseModel):
    total_streams: int = 0
    contexts: List[StreamContext] = Field(default_factory=list)
    models: List[str] = Field(default_factory=list)


class StreamSession(BaseModel):
    """A logging session with its own entries and summary metadata."""
    session_id: str = Field(default_factory=_new_id)
    start_time: datetime = Field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    entries: List[LogEntry] = Field(default_factory=list)
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)


class LogSummary(BaseModel):
    total_entries: int
    entries_by_level: Dict[str, int]
    entries_by_category: Dict[str, int]
    current_session_entries: int
    total_sessions: int


class LogExport(BaseModel):
    sessions: List[StreamSession]
    current_session: Optional[StreamSession]
    entries: List[LogEntry]
    exported_at: datetime = Field(default_factory=utc_now)


class StreamLogger:
    """
    Records events and custom messages into bounded entries and sessions.

    Both the global entry list and the current session's entry list keep at
    most ``max_entries`` records; at most ``max_sessions`` ended sessions are
    retained. Oldest records are dropped first.
    """

    def __init__(self, max_entries: int = 1000, max_sessions: int = 10):
        self.max_entries = max_entries
        self.max_sessions = max_sessions
        self._entries: List[LogEntry] = []
        self._sessions: List[StreamSession] = []
        self._current_session: Optional[StreamSession] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self.start_new_session()

    # Bus wiring
    # ==========

    def attach(self, event_bus: EventBus) -> Unsubscribe:
        """Record every event published on ``event_bus``."""
        self.detach()
        self._unsubscribe = event_bus.subscribe(self.log_event)
        return self._unsubscribe

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # Recording
    # =========

    def log_event(self, event: BaseStreamEvent) -> None:
        """Log a stream event."""
        self._add_entry(self._entry_from_event(event))

    def log(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        data: Any = None,
        stream_id: Optional[str] = None,
        context: Optional[StreamContext] = None
    ) -> None:
        """Log a custom message."""
        self._add_entry(LogEntry(
            level=level,
            category=category,
            message=message,
            data=data,
            stream_id=stream_id,
            context=context
        ))

    # Queries
    # =======

    def get_all_entries(self) -> List[LogEntry]:
        return list(self._entries)

    def get_entries_by_stream_id(self, stream_id: str) -> List[LogEntry]:
        return [entry for entry in self._entries if entry.stream_id == stream_id]

    def get_entries_by_context(self, context: StreamContext) -> List[LogEntry]:
        context = StreamContext(context)
        return [entry for entry in self._entries if entry.context == context]

    def get_entries_by_level(self, level: LogLevel) -> List[LogEntry]:
        return [entry for entry in self._entries if entry.level == level]

    def get_entries_by_time_range(self, start: datetime, end: datetime) -> List[LogEntry]:
        """Entries with ``start <= timestamp <= end``."""
        return [entry for entry in self._entries if start <= entry.timestamp <= end]

    def get_recent_entries(self, count: int = 50) -> List[LogEntry]:
        if count <= 0:
            return []
        return self._entries[-count:]

    def search_entries(self, query: str) -> List[LogEntry]:
        """Case-insensitive substring search over entry messages."""
        lowered = query.lower()
        return [entry for entry in self._entries if lowered in entry.message.lower()]

    def get_current_session(self) -> Optional[StreamSession]:
        return self._current_session

    def get_all_sessions(self) -> List[StreamSession]:
        """Ended sessions, oldest first."""
        return list(self._sessions)

    def get_summary(self) -> LogSummary:
        entries_by_level = {"debug": 0, "info": 0, "warn": 0, "error": 0}
        entries_by_category = {"stream": 0, "system": 0, "user": 0, "debug": 0}

        for entry in self._entries:
            entries_by_level[entry.level] += 1
            entries_by_category[entry.category] += 1

        return LogSummary(
            total_entries=len(self._entries),
            entries_by_level=entries_by_level,
            entries_by_category=entries_by_category,
            current_session_entries=len(self._current_session.entries) if self._current_session else 0,
            total_sessions=len(self._sessions)
        )

    # Sessions
    # ========

    def clear_entries(self) -> None:
        """Drop all entries and start a new session."""
        self._entries = []
        self.start_new_session()

    def start_new_session(self) -> StreamSession:
        """End the current session (if any) and start a fresh one."""
        if self._current_session is not None:
            self._current_session.end_time = utc_now()
            self._sessions.append(self._current_session)
            if len(self._sessions) > self.max_sessions:
                self._sessions = self._sessions[-self.max_sessions:]

        self._current_session = StreamSession()
        logger.debug(f"Started log session {self._current_session.session_id}")
        return self._current_session

    # Export
    # ======

    def export_snapshot(self) -> LogExport:
        return LogExport(
            sessions=list(self._sessions),
            current_session=self._current_session,
            entries=list(self._entries)
        )

    def export_logs(self) -> str:
        """Export sessions and entries as a JSON document."""
        return self.export_snapshot().model_dump_json(indent=2)

    # Internals
    # =========

    def _add_entry(self, entry: LogEntry) -> None:
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries:]

        session = self._current_session
        if session is not None:
            session.entries.append(entry)
            if len(session.entries) > self.max_entries:
                session.entries = session.entries[-self.max_entries:]

    def _entry_from_event(self, event: BaseStreamEvent) -> LogEntry:
        if isinstance(event, StreamStartedEvent):
            metadata = event.data.metadata
            entry = LogEntry(
                timestamp=event.timestamp,
                level="info",
                category="stream",
                message=f"Stream started: {metadata.model} ({metadata.context.value})",
                data=event.data.model_dump(mode="json"),
                stream_id=event.data.stream_id,
                context=metadata.context
            )
            self._record_stream_start(metadata.context, metadata.model)
            return entry

        if isinstance(event, StreamChunkEvent):
            return LogEntry(
                timestamp=event.timestamp,
                level="debug",
                category="stream",
                message=f"Chunk received: {len(event.data.content)} chars (seq: {event.data.sequence})",
                data=event.data.model_dump(mode="json"),
                stream_id=event.data.stream_id
            )

        if isinstance(event, StreamCompletedEvent):
            metrics = event.data.metrics
            chunks = metrics.total_chunks if metrics else None
            duration = metrics.duration_ms if metrics else None
            return self._stream_entry(
                event, "info", f"Stream completed: {chunks} chunks, {duration}ms"
            )

        if isinstance(event, StreamErrorEvent):
            return self._stream_entry(event, "error", f"Stream error: {event.data.error.message}")

        if isinstance(event, StreamCancelledEvent):
            return self._stream_entry(
                event, "warn", f"Stream cancelled: {event.data.reason or 'No reason provided'}"
            )

        if isinstance(event, DebugCommandEvent):
            args = " ".join(event.data.args or [])
            return LogEntry(
                timestamp=event.timestamp,
                level="info",
                category="user",
                message=f"Command: {event.data.command} {args}".rstrip(),
                data=event.data.model_dump(mode="json")
            )

        if isinstance(event, DebugOutputEvent):
            return LogEntry(
                timestamp=event.timestamp,
                level=event.data.level,
                category="debug",
                message=event.data.content,
                data={"source": event.data.source}
            )

        event_type = getattr(event, "type", type(event).__name__)
        return LogEntry(
            level="debug",
            category="system",
            message=f"Unknown event: {getattr(event_type, 'value', event_type)}",
            data=repr(event)
        )

    def _stream_entry(self, event: BaseStreamEvent, level: LogLevel, message: str) -> LogEntry:
        """Entry for a terminal event, which always carries stream metadata."""
        metadata = event.metadata
        if metadata is not None:
            self._record_model(metadata.context, metadata.model)
        return LogEntry(
            timestamp=event.timestamp,
            level=level,
            category="stream",
            message=message,
            data=event.data.model_dump(mode="json"),
            stream_id=event.stream_id,
            context=metadata.context if metadata else None
        )

    def _record_stream_start(self, context: StreamContext, model: str) -> None:
        if self._current_session is None:
            return
        self._current_session.metadata.total_streams += 1
        self._record_model(context, model)

    def _record_model(self, context: StreamContext, model: str) -> None:
        if self._current_session is None:
            return
        metadata = self._current_session.metadata
        if context not in metadata.contexts:
            metadata.contexts.append(context)
        if model and model not in metadata.models:
            metadata.models.append(model)
