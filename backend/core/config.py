"""Application settings loaded from the environment."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the social graph backend."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./socialgraph.db"
    database_echo: bool = False

    log_level: str = "INFO"
    log_format: str = "text"

    bulk_accept_batch_size: int = 100
    bulk_accept_max_items: int = 1000

    notification_queue_size: int = 1000
    notification_shutdown_timeout_seconds: float = 5.0

    @field_validator("database_url", mode="before")
    @classmethod
    def _use_async_driver(cls, value: str) -> str:
        if isinstance(value, str) and value.startswith("postgresql://"):
            return value.replace("postgresql://", "postgresql+asyncpg://", 1)
        return value

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return normalized

    @field_validator("bulk_accept_batch_size", "bulk_accept_max_items", "notification_queue_size")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


settings = Settings()
