"""
Shared configuration management for the Academy Access Layer.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Cache store
    redis_url: str = "redis://localhost:6379/0"
    redis_password: Optional[str] = None
    cache_store: Literal["redis", "memory"] = "redis"
    cache_default_ttl: int = Field(default=300, gt=0)
    cache_max_items: int = Field(default=100, gt=0)

    # Observability
    enable_metrics: bool = True


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
