# Library imports
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class StreamContext(str, Enum):
    """Why a stream was started."""
    FORM_ANALYSIS = "form-analysis"
    USER_CHAT = "user-chat"
    SETTINGS_TEST = "settings-test"
    DEBUG_MANUAL = "debug-manual"


class StreamStatus(str, Enum):
    """Lifecycle state of a stream."""
    STARTING = "starting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamStatus.COMPLETED, StreamStatus.ERROR, StreamStatus.CANCELLED)


class StreamMetadata(BaseModel):
    """Metadata describing a stream. Created once at start and never changed."""
    model_config = ConfigDict(frozen=True)

    stream_id: str = Field(..., description="Unique identifier for this stream")
    context: StreamContext = Field(..., description="Context that initiated this stream")
    model: str = Field(..., description="Model being used for the stream")
    started_at: datetime = Field(default_factory=utc_now, description="When the stream was initiated")
    user_prompt: Optional[str] = Field(None, description="Optional user-provided prompt for manual debugging")
    context_data: Optional[Dict[str, Any]] = Field(None, description="Opaque data specific to the context")

    @field_validator("context_data")
    @classmethod
    def _copy_context_data(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        # Detach from the caller's dict so later mutation cannot leak into events
        return dict(value) if value is not None else None


class StreamChunk(BaseModel):
    """One unit of backend output."""
    model_config = ConfigDict(frozen=True)

    stream_id: str
    content: str = Field(..., description="Raw response fragment from the backend")
    sequence: int = Field(..., ge=0, description="Per-stream sequence number starting at 0")
    timestamp: datetime = Field(default_factory=utc_now)


class StreamMetrics(BaseModel):
    """Performance metrics computed at completion."""
    model_config = ConfigDict(frozen=True)

    total_chunks: int
    total_bytes: int = Field(..., description="UTF-8 encoded length of the full content")
    duration_ms: int
    tokens_per_second: float = Field(0.0, description="Approximation using 4 characters per token")


class StreamError(BaseModel):
    """Error descriptor published with stream:error events."""
    model_config = ConfigDict(frozen=True)

    message: str
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class StreamResult(BaseModel):
    """Terminal record of a stream."""
    model_config = ConfigDict(frozen=True)

    stream_id: str
    full_content: str
    status: StreamStatus
    metadata: StreamMetadata
    completed_at: datetime = Field(default_factory=utc_now)
    error: Optional[StreamError] = None
    metrics: Optional[StreamMetrics] = None


class GenerationOptions(BaseModel):
    """Sampling options forwarded to the backend."""
    temperature: Optional[float] = None
    top_p: Optional[float] = Field(None, description="Nucleus sampling probability mass")
    top_k: Optional[int] = None
    repeat_penalty: Optional[float] = None
    stop: Optional[List[str]] = Field(None, description="Stop sequences")

    def to_backend_options(self) -> Dict[str, Any]:
        """Only the options that were set, under the backend's option names."""
        return self.model_dump(exclude_none=True)


class StreamRequest(BaseModel):
    """A request to start a generation stream."""
    model: str
    prompt: str
    context: StreamContext
    user_prompt: Optional[str] = None
    context_data: Optional[Dict[str, Any]] = None
    options: Optional[GenerationOptions] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "model": "llama3.2",
                "prompt": "Describe the fields of this form.",
                "context": "form-analysis",
                "context_data": {"url": "https://example.com/signup"},
                "options": {"temperature": 0.2}
            }
        }
    )


class StreamSnapshot(BaseModel):
    """Read-only copy of an in-flight stream returned by registry queries."""
    model_config = ConfigDict(frozen=True)

    stream_id: str
    metadata: StreamMetadata
    prompt: str
    status: StreamStatus
    chunks: Tuple[StreamChunk, ...] = ()
    full_content: str = ""

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)


# Backend wire types
# ==================

class ModelDetails(BaseModel):
    """Format and family details reported for a model."""
    format: Optional[str] = None
    family: Optional[str] = None
    families: Optional[List[str]] = None
    parameter_size: Optional[str] = None
    quantization_level: Optional[str] = None


class ModelInfo(BaseModel):
    """A model available on the backend."""
    name: str
    modified_at: Optional[str] = None
    size: int = 0
    digest: str = ""
    details: Optional[ModelDetails] = None


class PromptRequest(BaseModel):
    """Plain prompt request used by the compatibility layer."""
    model: str
    prompt: str
    options: Optional[GenerationOptions] = None


class PromptResponse(BaseModel):
    """Non-streaming generation result."""
    model: str
    created_at: str
    response: str
    done: bool = True


class GenerateChunk(BaseModel):
    """One fragment of a streaming generation; the last one has done=True."""
    model: str = ""
    created_at: Optional[str] = None
    response: str = ""
    done: bool = False


class ConnectionStatus(BaseModel):
    """Outcome of a backend connection test."""
    connected: bool
    models: Optional[List[str]] = None
    error: Optional[str] = None
