"""
Tests for the debug formatter and the session logger.
"""

import json
from datetime import timedelta

import pytest

from llmstream.core.types import (
    StreamChunk,
    StreamContext,
    StreamError,
    StreamMetadata,
    StreamMetrics,
    StreamResult,
    StreamStatus,
    utc_now,
)
from llmstream.debug import DebugFormatter, FormattedOutput, StreamLogger
from llmstream.events import (
    DebugCommand,
    DebugCommandEvent,
    StreamCancelledData,
    StreamCancelledEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorData,
    StreamErrorEvent,
    StreamStartedData,
    StreamStartedEvent,
    debug_output,
)


@pytest.fixture
def metadata():
    return StreamMetadata(
        stream_id="0123456789abcdef",
        context=StreamContext.USER_CHAT,
        model="llama3.2",
        user_prompt="hi there"
    )


@pytest.fixture
def started_event(metadata):
    return StreamStartedEvent(data=StreamStartedData(stream_id=metadata.stream_id, metadata=metadata, prompt="Hi"))


@pytest.fixture
def completed_event(metadata):
    return StreamCompletedEvent(data=StreamResult(
        stream_id=metadata.stream_id,
        full_content="Hello world",
        status=StreamStatus.COMPLETED,
        metadata=metadata,
        metrics=StreamMetrics(total_chunks=2, total_bytes=11, duration_ms=250, tokens_per_second=11.0)
    ))


@pytest.fixture
def error_event(metadata):
    return StreamErrorEvent(data=StreamErrorData(
        stream_id=metadata.stream_id,
        error=StreamError(message="backend down", code="BACKEND_UNAVAILABLE"),
        metadata=metadata
    ))


@pytest.fixture
def cancelled_event(metadata):
    return StreamCancelledEvent(data=StreamCancelledData(
        stream_id=metadata.stream_id, metadata=metadata, reason="user request"
    ))


class TestDebugFormatter:
    """Test display formatting of events."""

    def test_started(self, started_event):
        output = DebugFormatter.format_stream_event(started_event)

        assert isinstance(output, FormattedOutput)
        assert output.level == "info"
        assert output.category == "stream"
        assert output.content.startswith("🚀 Stream Started")
        assert "Stream ID  : 01234567..." in output.content
        assert "User Prompt: Yes" in output.content
        assert output.metadata == {"stream_id": "0123456789abcdef", "context": "user-chat", "model": "llama3.2"}
        assert output.timestamp == started_event.timestamp.isoformat()

    def test_chunk(self):
        event = StreamChunkEvent(data=StreamChunk(stream_id="s", content="x" * 150, sequence=4))
        output = DebugFormatter.format_stream_event(event)

        assert output.level == "debug"
        assert output.content.startswith("📦 Chunk #4 (150 chars)")
        assert output.content.endswith("...")
        assert output.metadata["length"] == 150

    def test_completed(self, completed_event):
        output = DebugFormatter.format_stream_event(completed_event)

        assert output.level == "success"
        assert "Tokens/sec    : 11.00" in output.content
        assert output.metadata["duration"] == 250
        assert output.metadata["chunks"] == 2

    def test_error(self, error_event):
        output = DebugFormatter.format_stream_event(error_event)

        assert output.level == "error"
        assert "Error: backend down" in output.content
        assert "Code: BACKEND_UNAVAILABLE" in output.content
        assert output.metadata["error_code"] == "BACKEND_UNAVAILABLE"

    def test_cancelled(self, cancelled_event):
        output = DebugFormatter.format_stream_event(cancelled_event)

        assert output.level == "warn"
        assert "Reason: user request" in output.content

    def test_debug_command_and_output(self):
        command = DebugFormatter.format_stream_event(
            DebugCommandEvent(data=DebugCommand(command="models", args=["--all"]))
        )
        output = DebugFormatter.format_stream_event(debug_output("ok", level="warn", source="test"))

        assert command.content == "$ models --all"
        assert command.category == "user"
        assert output.level == "warn"
        assert output.category == "debug"
        assert output.metadata == {"source": "test"}

    def test_formatting_is_deterministic(self, completed_event):
        assert DebugFormatter.format_stream_event(completed_event) == DebugFormatter.format_stream_event(completed_event)

    @pytest.mark.parametrize("value", [None, 42, {"type": "stream:paused"}, object()])
    def test_unknown_input_never_raises(self, value):
        output = DebugFormatter.format_stream_event(value)

        assert output.content.startswith("Unknown event")
        assert output.category == "system"

    def test_format_json_markers(self):
        highlighted = DebugFormatter.format_json({"name": "x", "count": 3, "ok": True, "none": None})

        assert '"<key>name</key>": "<string>x</string>"' in highlighted
        assert '"<key>count</key>": <number>3</number>' in highlighted
        assert '"<key>ok</key>": <boolean>true</boolean>' in highlighted
        assert '"<key>none</key>": <null>null</null>' in highlighted

    def test_format_json_invalid(self):
        assert DebugFormatter.format_json({"bad": {1, 2}}).startswith("<Invalid JSON:")

    def test_divider_and_truncate(self):
        assert DebugFormatter.create_divider(width=10) == "─" * 10
        titled = DebugFormatter.create_divider("Logs", width=20)
        assert len(titled) == 20
        assert "  Logs  " in titled
        assert DebugFormatter.truncate_text("abcdef", 5) == "ab..."
        assert DebugFormatter.truncate_text("abc", 5) == "abc"

    def test_command_output(self):
        outputs = DebugFormatter.format_command_output("status", "all good", error="warning")
        assert [o.level for o in outputs] == ["info", "info", "error"]
        assert outputs[0].content == "$ status"
        assert len(DebugFormatter.format_command_output("status", "")) == 1

    def test_format_log_entry(self):
        stream_logger = StreamLogger()
        stream_logger.log("warn", "system", "disk almost full", stream_id="s1")
        output = DebugFormatter.format_log_entry(stream_logger.get_all_entries()[0])

        assert output.content == "disk almost full"
        assert output.level == "warn"
        assert output.metadata["stream_id"] == "s1"


class TestStreamLogger:
    """Test session logging."""

    def test_event_entries(self, started_event, completed_event, cancelled_event):
        stream_logger = StreamLogger()
        for event in (started_event, completed_event, cancelled_event):
            stream_logger.log_event(event)

        entries = stream_logger.get_all_entries()
        assert [entry.message for entry in entries] == [
            "Stream started: llama3.2 (user-chat)",
            "Stream completed: 2 chunks, 250ms",
            "Stream cancelled: user request",
        ]
        assert all(entry.stream_id == "0123456789abcdef" for entry in entries)
        assert entries[0].data["prompt"] == "Hi"

    def test_debug_output_entry(self):
        stream_logger = StreamLogger()
        stream_logger.log_event(debug_output("connected", level="info", source="StreamManager"))

        entry = stream_logger.get_all_entries()[0]
        assert entry.category == "debug"
        assert entry.data == {"source": "StreamManager"}

    def test_entries_are_bounded(self):
        stream_logger = StreamLogger(max_entries=3)
        for index in range(5):
            stream_logger.log("info", "system", f"message {index}")

        assert [e.message for e in stream_logger.get_all_entries()] == ["message 2", "message 3", "message 4"]
        assert len(stream_logger.get_current_session().entries) == 3

    def test_sessions_are_bounded(self):
        stream_logger = StreamLogger(max_sessions=2)
        first = stream_logger.get_current_session()
        for _ in range(3):
            stream_logger.start_new_session()

        sessions = stream_logger.get_all_sessions()
        assert len(sessions) == 2
        assert first not in sessions
        assert all(session.end_time is not None for session in sessions)

    def test_clear_entries_starts_new_session(self):
        stream_logger = StreamLogger()
        stream_logger.log("info", "system", "before")
        previous = stream_logger.get_current_session()

        stream_logger.clear_entries()

        assert stream_logger.get_all_entries() == []
        assert stream_logger.get_current_session() is not previous
        assert stream_logger.get_all_sessions()[-1] is previous

    def test_queries(self, started_event, error_event):
        stream_logger = StreamLogger()
        stream_logger.log_event(started_event)
        stream_logger.log_event(error_event)
        stream_logger.log("debug", "system", "Unrelated NOTE", context=StreamContext.SETTINGS_TEST)

        assert len(stream_logger.get_entries_by_stream_id("0123456789abcdef")) == 2
        assert len(stream_logger.get_entries_by_context(StreamContext.USER_CHAT)) == 2
        assert [e.message for e in stream_logger.get_entries_by_level("error")] == ["Stream error: backend down"]
        assert [e.message for e in stream_logger.search_entries("note")] == ["Unrelated NOTE"]
        assert len(stream_logger.get_recent_entries(2)) == 2

        now = utc_now()
        in_range = stream_logger.get_entries_by_time_range(now - timedelta(minutes=5), now + timedelta(minutes=5))
        assert len(in_range) == 3
        assert stream_logger.get_entries_by_time_range(now + timedelta(minutes=1), now + timedelta(minutes=2)) == []

    def test_session_metadata_and_summary(self, started_event, completed_event):
        stream_logger = StreamLogger()
        stream_logger.log_event(started_event)
        stream_logger.log_event(completed_event)

        metadata = stream_logger.get_current_session().metadata
        assert metadata.total_streams == 1
        assert metadata.contexts == [StreamContext.USER_CHAT]
        assert metadata.models == ["llama3.2"]

        summary = stream_logger.get_summary()
        assert summary.total_entries == 2
        assert summary.entries_by_level["info"] == 2
        assert summary.entries_by_category["stream"] == 2
        assert summary.current_session_entries == 2
        assert summary.total_sessions == 0

    def test_export_logs(self, started_event):
        stream_logger = StreamLogger()
        stream_logger.log_event(started_event)

        exported = json.loads(stream_logger.export_logs())

        assert set(exported) == {"sessions", "current_session", "entries", "exported_at"}
        assert exported["entries"][0]["message"] == "Stream started: llama3.2 (user-chat)"
        assert exported["current_session"]["metadata"]["total_streams"] == 1

    @pytest.mark.asyncio
    async def test_attach_records_managed_streams(self, manager, event_bus, chat_request):
        stream_logger = StreamLogger()
        stream_logger.attach(event_bus)

        stream_id = manager.start_stream(chat_request)
        await manager.wait_until_idle()
        stream_logger.detach()

        messages = [entry.message for entry in stream_logger.get_entries_by_stream_id(stream_id)]
        assert messages[0] == "Stream started: mock-llama3 (user-chat)"
        assert messages[-1].startswith("Stream completed: 3 chunks")

        count = len(stream_logger.get_all_entries())
        event_bus.emit(debug_output("after detach"))
        assert len(stream_logger.get_all_entries()) == count
