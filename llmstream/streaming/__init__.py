"""
Stream lifecycle management.
"""

from .cancellation import CancellationToken
from .stream_manager import (
    StreamManager,
    ActiveStream,
    calculate_tokens_per_second,
    CHARS_PER_TOKEN,
    SHUTDOWN_REASON,
)

__all__ = [
    "CancellationToken",
    "StreamManager",
    "ActiveStream",
    "calculate_tokens_per_second",
    "CHARS_PER_TOKEN",
    "SHUTDOWN_REASON",
]
