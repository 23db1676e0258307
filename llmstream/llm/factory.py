from typing import Dict, List, Optional, Type
from .base import BaseLLMClient
from .providers import OllamaClient, MockLLMClient


class LLMClientFactory:
    """Builds backend clients by provider name."""

    _PROVIDERS: Dict[str, Type[BaseLLMClient]] = {
        "ollama": OllamaClient,
        "mock": MockLLMClient,  # Scripted output, no server needed
    }

    @classmethod
    def create_client(cls, provider: str = "ollama", host: Optional[str] = None, **kwargs) -> BaseLLMClient:
        """
        Build a client for ``provider`` pointed at ``host``.

        Args:
            provider: Registered provider name, case-insensitive
            host: Backend base URL (the provider's default when omitted)
            **kwargs: Passed to the client constructor (timeouts, mock responses, ...)

        Raises:
            ValueError: If no provider is registered under that name
        """
        if not cls.is_supported(provider):
            supported = ", ".join(sorted(cls._PROVIDERS))
            raise ValueError(f"Unsupported provider '{provider}'. Supported providers: {supported}")

        return cls._PROVIDERS[provider.lower()](host=host, **kwargs)

    @classmethod
    def is_supported(cls, provider: str) -> bool:
        return provider.lower() in cls._PROVIDERS

    @classmethod
    def get_supported_providers(cls) -> List[str]:
        return list(cls._PROVIDERS)

    @classmethod
    def register_provider(cls, name: str, client_class: Type[BaseLLMClient], replace: bool = False) -> None:
        """
        Register an additional backend.

        Raises:
            TypeError: If ``client_class`` is not a BaseLLMClient subclass
            ValueError: If ``name`` is taken and ``replace`` is False
        """
        if not isinstance(client_class, type) or not issubclass(client_class, BaseLLMClient):
            raise TypeError("Client class must inherit from BaseLLMClient")

        key = name.lower()
        if key in cls._PROVIDERS and not replace:
            raise ValueError(f"Provider '{name}' is already registered")

        cls._PROVIDERS[key] = client_class
