"""Application-wide configuration powered by pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    server_port: int = Field(default=8080, alias="SERVER_PORT")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # Registry and history live on the standard instance; pub/sub gets its own
    # connection so long-lived subscriptions never starve request traffic.
    redis_standard_url: str = Field(
        default="redis://localhost:6379", alias="REDIS_STANDARD_URL"
    )
    redis_pubsub_url: str = Field(default="redis://localhost:6380", alias="REDIS_PUBSUB_URL")
    redis_pool_size: int = Field(default=10, gt=0, alias="REDIS_POOL_SIZE")
    redis_timeout_seconds: float = Field(default=5.0, gt=0, alias="REDIS_TIMEOUT_SECONDS")

    history_max_messages: int = Field(default=100, gt=0, alias="HISTORY_MAX_MESSAGES")
    history_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0, alias="HISTORY_TTL_SECONDS")
    history_honor_message_ttl: bool = Field(default=True, alias="HISTORY_HONOR_MESSAGE_TTL")

    agent_heartbeat_ttl_seconds: int = Field(
        default=5 * 60, gt=0, alias="AGENT_HEARTBEAT_TTL_SECONDS"
    )

    # External memory service
    memory_url: str = Field(default="http://localhost:8081", alias="AGENT_MEMORY_URL")
    memory_timeout_seconds: float = Field(
        default=10.0, gt=0, alias="AGENT_MEMORY_TIMEOUT_SECONDS"
    )
    short_term_memory_ttl_seconds: int = Field(
        default=60 * 60, gt=0, alias="SHORT_TERM_MEMORY_TTL_SECONDS"
    )


@lru_cache(1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
