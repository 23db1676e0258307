"""
Settings for llmstream, read from LLMSTREAM_* environment variables or a .env file.
"""

import os
import logging
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMStreamConfig(BaseSettings):
    """llmstream configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LLMSTREAM_",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend Configuration
    ollama_host: str = Field(default="http://127.0.0.1:11434", description="LLM server base URL")
    default_model: str = Field(default="llama3.2", description="Model used when a caller does not pick one")
    request_timeout: float = Field(default=300.0, description="Read timeout for generation requests in seconds")
    connect_timeout: float = Field(default=10.0, description="Connection timeout in seconds")

    # Debug log retention
    max_log_entries: int = Field(default=1000, description="Maximum log entries retained by the stream logger")
    max_log_sessions: int = Field(default=10, description="Maximum finished sessions retained by the stream logger")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )
    forward_logs_to_bus: bool = Field(default=True, description="Forward llmstream log records to the event bus")

    # Development
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("ollama_host")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


# Process-wide settings, built on first use
_config: Optional[LLMStreamConfig] = None


def get_config() -> LLMStreamConfig:
    """Get the process-wide settings, configuring logging the first time."""
    global _config
    if _config is None:
        _config = LLMStreamConfig()
        setup_logging(_config)
    return _config


def setup_logging(config: LLMStreamConfig) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format
    )

    if config.debug:
        logging.getLogger("llmstream").setLevel(logging.DEBUG)
    else:
        # Reduce noise from the HTTP stack
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def reload_config() -> LLMStreamConfig:
    """Discard the cached settings and read the environment again."""
    global _config
    _config = None
    return get_config()


def is_production() -> bool:
    """Check if running in production environment."""
    return os.getenv("LLMSTREAM_ENVIRONMENT", "development").lower() == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return not is_production()
