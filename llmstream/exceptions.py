"""
Exception hierarchy for llmstream.

Every exception carries a machine-readable ``code`` that ends up in the
``error.code`` field of ``stream:error`` events.
"""

from typing import Optional


class LLMStreamError(Exception):
    """Base exception for llmstream errors."""

    default_code = "LLMSTREAM_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class BackendUnavailableError(LLMStreamError):
    """The LLM server could not be reached."""

    default_code = "BACKEND_UNAVAILABLE"


class BackendRequestError(LLMStreamError):
    """The LLM server rejected a request or reported an error mid-stream."""

    default_code = "BACKEND_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.status_code = status_code
        if code is None and status_code is not None:
            code = f"HTTP_{status_code}"
        super().__init__(message, code)


class ModelListError(LLMStreamError):
    """Listing models from the LLM server failed."""

    default_code = "MODEL_LIST_FAILED"


class StreamCancelledError(LLMStreamError):
    """A stream awaited through the compatibility layer was cancelled."""

    default_code = "STREAM_CANCELLED"

    def __init__(self, stream_id: str, reason: Optional[str] = None):
        self.stream_id = stream_id
        self.reason = reason
        message = f"Stream {stream_id} was cancelled"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
