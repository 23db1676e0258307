"""
Formatting utilities for debug display.
Turns events and log entries into structured records for a terminal or UI.
"""

import json
import logging
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from ..core.types import StreamChunk, StreamMetadata, StreamResult, utc_now
from ..events import (
    DebugCommandEvent,
    DebugOutputEvent,
    StreamCancelledData,
    StreamCancelledEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorData,
    StreamErrorEvent,
    StreamStartedData,
    StreamStartedEvent,
)
from .stream_logger import LogEntry


logger = logging.getLogger(__name__)

OutputLevel = Literal["info", "warn", "error", "debug", "success"]
OutputCategory = Literal["stream", "system", "user", "debug"]


class FormattedOutput(BaseModel):
    """A display-ready record."""
    timestamp: str
    content: str
    level: OutputLevel
    category: OutputCategory
    metadata: Optional[Dict[str, Any]] = None


class DebugFormatter:
    """Stateless formatters for stream events, log entries and terminal output."""

    @classmethod
    def format_stream_event(cls, event: Any) -> FormattedOutput:
        """
        Format any event for debug display.

        Unrecognised or malformed input is rendered as an "Unknown event"
        record instead of raising.
        """
        try:
            formatted = cls._format_known_event(event)
        except Exception as e:
            logger.debug(f"Could not format event {type(event).__name__}: {e}")
            formatted = None

        if formatted is None:
            formatted = cls._format_unknown_event(event)
        return formatted

    @classmethod
    def _format_known_event(cls, event: Any) -> Optional[FormattedOutput]:
        if isinstance(event, StreamStartedEvent):
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=cls._format_stream_start(event.data),
                level="info",
                category="stream",
                metadata={
                    "stream_id": event.data.stream_id,
                    "context": event.data.metadata.context.value,
                    "model": event.data.metadata.model
                }
            )

        if isinstance(event, StreamChunkEvent):
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=cls._format_chunk(event.data),
                level="debug",
                category="stream",
                metadata={
                    "stream_id": event.data.stream_id,
                    "sequence": event.data.sequence,
                    "length": len(event.data.content)
                }
            )

        if isinstance(event, StreamCompletedEvent):
            metrics = event.data.metrics
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=cls._format_stream_complete(event.data),
                level="success",
                category="stream",
                metadata={
                    "stream_id": event.data.stream_id,
                    "duration": metrics.duration_ms if metrics else None,
                    "chunks": metrics.total_chunks if metrics else None,
                    "tokens_per_second": metrics.tokens_per_second if metrics else None
                }
            )

        if isinstance(event, StreamErrorEvent):
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=cls._format_stream_error(event.data),
                level="error",
                category="stream",
                metadata={
                    "stream_id": event.data.stream_id,
                    "error_code": event.data.error.code
                }
            )

        if isinstance(event, StreamCancelledEvent):
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=cls._format_stream_cancelled(event.data),
                level="warn",
                category="stream",
                metadata={
                    "stream_id": event.data.stream_id,
                    "reason": event.data.reason
                }
            )

        if isinstance(event, DebugCommandEvent):
            args = " ".join(event.data.args or [])
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=f"$ {event.data.command} {args}".rstrip(),
                level="info",
                category="user"
            )

        if isinstance(event, DebugOutputEvent):
            return FormattedOutput(
                timestamp=event.timestamp.isoformat(),
                content=event.data.content,
                level=event.data.level,
                category="debug",
                metadata={"source": event.data.source}
            )

        return None

    @classmethod
    def _format_unknown_event(cls, event: Any) -> FormattedOutput:
        timestamp = getattr(event, "timestamp", None)
        return FormattedOutput(
            timestamp=timestamp.isoformat() if hasattr(timestamp, "isoformat") else utc_now().isoformat(),
            content=f"Unknown event: {cls._describe(event)}",
            level="debug",
            category="system"
        )

    @staticmethod
    def _describe(event: Any) -> str:
        try:
            if isinstance(event, BaseModel):
                return event.model_dump_json()
            return json.dumps(event, default=str)
        except Exception:
            return repr(event)

    @staticmethod
    def format_log_entry(entry: LogEntry) -> FormattedOutput:
        """Format a stream logger entry for debug display."""
        return FormattedOutput(
            timestamp=entry.timestamp.isoformat(),
            content=entry.message,
            level=entry.level,
            category=entry.category,
            metadata={
                "id": entry.id,
                "stream_id": entry.stream_id,
                "context": entry.context.value if entry.context else None,
                "data": entry.data
            }
        )

    @classmethod
    def format_json(cls, data: Any, indent: int = 2) -> str:
        """Format JSON data with highlighting markers a terminal or UI can style."""
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump(mode="json")
            json_string = json.dumps(data, indent=indent, ensure_ascii=False)
        except (TypeError, ValueError):
            return f"<Invalid JSON: {data}>"
        return cls._add_json_highlighting(json_string)

    @classmethod
    def format_stream_metadata(cls, metadata: StreamMetadata) -> str:
        """Format stream metadata as aligned key/value lines."""
        formatted: Dict[str, Any] = {
            "Stream ID": metadata.stream_id[:8] + "...",
            "Context": metadata.context.value,
            "Model": metadata.model,
            "Started": metadata.started_at.strftime("%H:%M:%S"),
            "User Prompt": "Yes" if metadata.user_prompt else "No",
        }

        if metadata.context_data:
            formatted["Context Data"] = json.dumps(metadata.context_data, indent=2, default=str)

        return cls._format_key_value_pairs(formatted)

    @classmethod
    def format_stream_result_summary(cls, result: StreamResult) -> str:
        """Format a stream result summary."""
        metrics = result.metrics
        summary: Dict[str, Any] = {
            "Stream ID": result.stream_id[:8] + "...",
            "Status": result.status.value,
            "Duration": f"{metrics.duration_ms}ms" if metrics else None,
            "Chunks": metrics.total_chunks if metrics else None,
            "Bytes": metrics.total_bytes if metrics else None,
            "Tokens/sec": f"{metrics.tokens_per_second:.2f}" if metrics else None,
            "Content Length": len(result.full_content),
        }

        if result.error:
            summary["Error"] = result.error.message

        return cls._format_key_value_pairs(summary)

    @staticmethod
    def format_command_output(command: str, output: str, error: Optional[str] = None) -> List[FormattedOutput]:
        """Format a terminal command with its output and optional error."""
        timestamp = utc_now().isoformat()
        results = [FormattedOutput(timestamp=timestamp, content=f"$ {command}", level="info", category="user")]

        if output:
            results.append(FormattedOutput(timestamp=timestamp, content=output, level="info", category="system"))

        if error:
            results.append(FormattedOutput(timestamp=timestamp, content=error, level="error", category="system"))

        return results

    @staticmethod
    def create_divider(title: Optional[str] = None, width: int = 80) -> str:
        """Create a divider line for terminal output."""
        if title:
            padding = max(0, width - len(title) - 4)
            left_padding = padding // 2
            right_padding = padding - left_padding
            return "─" * left_padding + f"  {title}  " + "─" * right_padding
        return "─" * width

    @staticmethod
    def truncate_text(text: str, max_length: int) -> str:
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    @classmethod
    def _format_stream_start(cls, data: StreamStartedData) -> str:
        return (
            f"🚀 Stream Started\n{cls.format_stream_metadata(data.metadata)}"
            f"\n\nPrompt:\n{cls.truncate_text(data.prompt, 200)}"
        )

    @classmethod
    def _format_chunk(cls, data: StreamChunk) -> str:
        return f"📦 Chunk #{data.sequence} ({len(data.content)} chars)\n{cls.truncate_text(data.content, 100)}"

    @classmethod
    def _format_stream_complete(cls, data: StreamResult) -> str:
        return f"✅ Stream Completed\n{cls.format_stream_result_summary(data)}"

    @staticmethod
    def _format_stream_error(data: StreamErrorData) -> str:
        lines = [
            "❌ Stream Error",
            f"Stream: {data.stream_id[:8]}...",
            f"Error: {data.error.message}",
        ]
        if data.error.code:
            lines.append(f"Code: {data.error.code}")
        return "\n".join(lines)

    @staticmethod
    def _format_stream_cancelled(data: StreamCancelledData) -> str:
        return (
            f"⏹️ Stream Cancelled\nStream: {data.stream_id[:8]}...\n"
            f"Reason: {data.reason or 'No reason provided'}"
        )

    @staticmethod
    def _format_key_value_pairs(pairs: Dict[str, Any]) -> str:
        max_key_length = max(len(key) for key in pairs)
        return "\n".join(
            f"{key.ljust(max_key_length)}: {value}"
            for key, value in pairs.items()
            if value is not None
        )

    @staticmethod
    def _add_json_highlighting(json_string: str) -> str:
        highlighted = re.sub(r'"([^"]+)":', r'"<key>\1</key>":', json_string)
        highlighted = re.sub(r': "([^"]+)"', r': "<string>\1</string>"', highlighted)
        highlighted = re.sub(r': (\d+\.?\d*)', r': <number>\1</number>', highlighted)
        highlighted = re.sub(r': (true|false)', r': <boolean>\1</boolean>', highlighted)
        return highlighted.replace(": null", ": <null>null</null>")
