"""
LLM backend implementations.
"""

from .ollama_client import OllamaClient
from .mock_client import MockLLMClient

__all__ = [
    "OllamaClient",
    "MockLLMClient"
]
