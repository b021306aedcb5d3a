"""
Configuration management for RichStore.

All configuration is done via environment variables (prefix ``RICHSTORE_``)
or explicit keyword arguments. Uses pydantic-settings for loading and
validation.

Invariants:
    - All settings have sensible defaults for local development
    - chunk_size is positive; it bounds the arguments sent per substrate call
    - Secrets in redis_url are never logged

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - Lowering chunk_size only changes round trips, never results
"""

from __future__ import annotations

import logging
from enum import Enum

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


class SubstrateBackend(str, Enum):
    """Supported substrate backends."""

    REDIS = "redis"
    MEMORY = "memory"


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


class StoreSettings(BaseSettings):
    """RichStore configuration.

    Attributes:
        backend: Which substrate to talk to
        redis_url: Redis connection URL (redis backend only)
        chunk_size: Maximum logical arguments per substrate call
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    backend: SubstrateBackend = Field(default=SubstrateBackend.REDIS)
    redis_url: str = Field(default="redis://localhost:6379/0")
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        gt=0,
        description="Maximum logical arguments per substrate call",
    )
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default=LogFormat.TEXT)

    model_config = SettingsConfigDict(env_prefix="RICHSTORE_")

    def redacted_url(self) -> str:
        """Redis URL with any password replaced."""
        scheme, sep, rest = self.redis_url.partition("://")
        if not sep or "@" not in rest:
            return self.redis_url
        _, host = rest.rsplit("@", 1)
        return f"{scheme}://***@{host}"

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Store configuration loaded",
            extra={
                "backend": self.backend.value,
                "redis_url": self.redacted_url()
                if self.backend == SubstrateBackend.REDIS
                else None,
                "chunk_size": self.chunk_size,
                "log_level": self.log_level,
            },
        )


def setup_logging(settings: StoreSettings) -> None:
    """Configure logging based on configuration.

    Args:
        settings: Store settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == LogFormat.JSON:
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("redis").setLevel(logging.WARNING)
