"""
llmstream - Streaming coordination for local LLM servers.
"""

__version__ = "0.1.0"
__author__ = "Siddharth Ambegaonkar"
__email__ = "sid.ambegaonkar@gmail.com"

# Import main classes/functions
from .core.types import (
    StreamContext,
    StreamStatus,
    StreamMetadata,
    StreamChunk,
    StreamMetrics,
    StreamError,
    StreamResult,
    StreamRequest,
    StreamSnapshot,
    GenerationOptions,
    ModelInfo,
    PromptRequest,
    PromptResponse,
    ConnectionStatus,
)
from .events import (
    EventBus,
    EventType,
    EventFilter,
    BaseStreamEvent,
    StreamStartedEvent,
    StreamChunkEvent,
    StreamCompletedEvent,
    StreamErrorEvent,
    StreamCancelledEvent,
    DebugCommandEvent,
    DebugOutputEvent,
    StreamEvent,
    debug_output,
)
from .streaming import StreamManager, CancellationToken, calculate_tokens_per_second
from .llm import BaseLLMClient, LLMClientFactory, OllamaClient, MockLLMClient, LLMService
from .debug import DebugFormatter, FormattedOutput, StreamLogger, LogEntry, install_event_bus_logging
from .adapters import ServiceAdapter
from .factory import (
    create_stream_manager,
    create_stream_manager_with_config,
    create_debug_session,
    create_service_adapter,
)
from .exceptions import (
    LLMStreamError,
    BackendUnavailableError,
    BackendRequestError,
    ModelListError,
    StreamCancelledError,
)
from .config import get_config, LLMStreamConfig

__all__ = [
    "StreamContext",
    "StreamStatus",
    "StreamMetadata",
    "StreamChunk",
    "StreamMetrics",
    "StreamError",
    "StreamResult",
    "StreamRequest",
    "StreamSnapshot",
    "GenerationOptions",
    "ModelInfo",
    "PromptRequest",
    "PromptResponse",
    "ConnectionStatus",
    "EventBus",
    "EventType",
    "EventFilter",
    "BaseStreamEvent",
    "StreamStartedEvent",
    "StreamChunkEvent",
    "StreamCompletedEvent",
    "StreamErrorEvent",
    "StreamCancelledEvent",
    "DebugCommandEvent",
    "DebugOutputEvent",
    "StreamEvent",
    "debug_output",
    "StreamManager",
    "CancellationToken",
    "calculate_tokens_per_second",
    "BaseLLMClient",
    "LLMClientFactory",
    "OllamaClient",
    "MockLLMClient",
    "LLMService",
    "DebugFormatter",
    "FormattedOutput",
    "StreamLogger",
    "LogEntry",
    "install_event_bus_logging",
    "ServiceAdapter",
    "create_stream_manager",
    "create_stream_manager_with_config",
    "create_debug_session",
    "create_service_adapter",
    "LLMStreamError",
    "BackendUnavailableError",
    "BackendRequestError",
    "ModelListError",
    "StreamCancelledError",
    "get_config",
    "LLMStreamConfig",
]
