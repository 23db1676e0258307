"""
Factory functions for wiring a stream manager, its event bus and debug logging
from configuration.
"""

from typing import Any, Dict, Optional
import logging

from .adapters import ServiceAdapter
from .config import LLMStreamConfig, get_config
from .debug import StreamLogger, install_event_bus_logging
from .events import EventBus
from .llm import BaseLLMClient, LLMClientFactory
from .streaming import StreamManager


def _client_factory(config: LLMStreamConfig, provider: str):
    def build(host: str) -> BaseLLMClient:
        return LLMClientFactory.create_client(
            provider,
            host=host,
            request_timeout=config.request_timeout,
            connect_timeout=config.connect_timeout
        )
    return build


def create_stream_manager(
    config: Optional[LLMStreamConfig] = None,
    event_bus: Optional[EventBus] = None,
    llm_client: Optional[BaseLLMClient] = None,
    provider: str = "ollama",
    logger: Optional[logging.Logger] = None,
    forward_logs: Optional[bool] = None
) -> StreamManager:
    """
    Create a StreamManager from configuration.

    Args:
        config: Configuration (defaults to the global configuration)
        event_bus: Bus to publish on (a new one is created when omitted)
        llm_client: Backend client; built for ``config.ollama_host`` when omitted
        provider: Backend provider used to build clients (ollama, mock)
        logger: Optional logger instance
        forward_logs: Forward ``llmstream`` log records to the bus
            (defaults to ``config.forward_logs_to_bus``)

    Returns:
        Configured StreamManager

    Example:
        ```python
        manager = create_stream_manager()
        stream_id = manager.start_stream(StreamRequest(
            model="llama3.2",
            prompt="Hello",
            context=StreamContext.USER_CHAT
        ))
        ```
    """
    config = config or get_config()
    event_bus = event_bus or EventBus()

    if forward_logs is None:
        forward_logs = config.forward_logs_to_bus
    if forward_logs:
        install_event_bus_logging(event_bus, level=config.log_level.upper())

    return StreamManager(
        event_bus,
        llm_client=llm_client,
        host=config.ollama_host,
        client_factory=_client_factory(config, provider),
        logger=logger
    )


def create_stream_manager_with_config(config: Dict[str, Any]) -> StreamManager:
    """
    Create a StreamManager from a configuration dictionary.

    Args:
        config: Configuration dictionary with keys:
            - config: LLMStreamConfig instance (optional)
            - ollama_host: str (optional, overrides the configured host)
            - event_bus: EventBus instance (optional)
            - llm_client: BaseLLMClient instance (optional)
            - provider: str (optional, defaults to "ollama")
            - logger: logging.Logger (optional)
            - forward_logs: bool (optional)

    Returns:
        Configured StreamManager
    """
    settings = config.get("config") or get_config()
    if config.get("ollama_host"):
        settings = settings.model_copy(update={"ollama_host": config["ollama_host"]})

    return create_stream_manager(
        config=settings,
        event_bus=config.get("event_bus"),
        llm_client=config.get("llm_client"),
        provider=config.get("provider", "ollama"),
        logger=config.get("logger"),
        forward_logs=config.get("forward_logs")
    )


def create_debug_session(event_bus: EventBus, config: Optional[LLMStreamConfig] = None) -> StreamLogger:
    """Create a StreamLogger sized from configuration and attached to ``event_bus``."""
    config = config or get_config()
    stream_logger = StreamLogger(max_entries=config.max_log_entries, max_sessions=config.max_log_sessions)
    stream_logger.attach(event_bus)
    return stream_logger


def create_service_adapter(
    config: Optional[LLMStreamConfig] = None,
    event_bus: Optional[EventBus] = None,
    provider: str = "ollama"
) -> ServiceAdapter:
    """Create a ServiceAdapter whose direct client and stream manager share configuration."""
    config = config or get_config()
    return ServiceAdapter(
        host=config.ollama_host,
        client_factory=_client_factory(config, provider),
        event_bus=event_bus
    )
