"""
LLM backend client interfaces and implementations.
"""

from .base import BaseLLMClient, DEFAULT_HOST
from .factory import LLMClientFactory
from .leases import ClientLeases
from .providers import OllamaClient, MockLLMClient
from .service import LLMService, ChunkCallback

__all__ = [
    "BaseLLMClient",
    "DEFAULT_HOST",
    "LLMClientFactory",
    "ClientLeases",
    "OllamaClient",
    "MockLLMClient",
    "LLMService",
    "ChunkCallback",
]
