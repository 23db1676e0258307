"""
Core data types for llmstream.
"""

from .types import (
    utc_now,
    StreamContext,
    StreamStatus,
    StreamMetadata,
    StreamChunk,
    StreamMetrics,
    StreamError,
    StreamResult,
    GenerationOptions,
    StreamRequest,
    StreamSnapshot,
    ModelDetails,
    ModelInfo,
    PromptRequest,
    PromptResponse,
    GenerateChunk,
    ConnectionStatus,
)

__all__ = [
    "utc_now",
    "StreamContext",
    "StreamStatus",
    "StreamMetadata",
    "StreamChunk",
    "StreamMetrics",
    "StreamError",
    "StreamResult",
    "GenerationOptions",
    "StreamRequest",
    "StreamSnapshot",
    "ModelDetails",
    "ModelInfo",
    "PromptRequest",
    "PromptResponse",
    "GenerateChunk",
    "ConnectionStatus",
]
