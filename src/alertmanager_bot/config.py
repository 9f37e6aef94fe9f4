"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Alertmanager Bot, loading and validating environment variables at
startup.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramSettings(BaseSettings):
    """Telegram Bot API settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    token: SecretStr = Field(
        alias="TELEGRAM_TOKEN",
        description="Telegram bot token",
    )
    admin: int = Field(
        alias="TELEGRAM_ADMIN",
        description="Telegram user id of the administrator",
    )
    poll_timeout: int = Field(
        default=30,
        alias="TELEGRAM_POLL_TIMEOUT",
        description="Long polling timeout for getUpdates in seconds",
        ge=0,
        le=50,
    )

    @field_validator("admin")
    @classmethod
    def validate_admin(cls, v: int) -> int:
        """Validate the administrator id."""
        if v == 0:
            raise ValueError("TELEGRAM_ADMIN must be a non-zero user id")
        return v


class StoreSettings(BaseSettings):
    """Subscriber store settings."""

    model_config = SettingsConfigDict(env_prefix="")

    backend: Literal["memory", "redis", "sql"] = Field(
        default="memory",
        alias="STORE",
        description="Subscriber store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL",
        description="Redis connection string",
    )
    redis_key: str = Field(
        default="alertmanager_bot:chats",
        alias="REDIS_KEY",
        description="Redis hash holding the subscribed chats",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///alertmanager_bot.db",
        alias="DATABASE_URL",
        description="SQLAlchemy async database URL",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate that the database URL names an async driver."""
        scheme = v.split("://", 1)[0]
        if "+" not in scheme:
            raise ValueError(
                "DATABASE_URL must name an async driver, e.g. postgresql+asyncpg://"
            )
        return v


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from alertmanager_bot.config import get_settings

        settings = get_settings()
        print(settings.telegram.admin)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested configuration groups
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    storage: StoreSettings = Field(default_factory=StoreSettings)

    # Application settings
    listen_addr: str = Field(
        default="0.0.0.0:8080",
        alias="LISTEN_ADDR",
        description="Address the webhook server listens on (host:port)",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    send_timeout: float | None = Field(
        default=None,
        alias="SEND_TIMEOUT",
        description="Optional timeout in seconds for a single outgoing message",
        gt=0,
    )

    @field_validator("listen_addr")
    @classmethod
    def validate_listen_addr(cls, v: str) -> str:
        """Validate host:port format."""
        host, sep, port = v.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) <= 65535:
            raise ValueError("LISTEN_ADDR must be host:port with a valid port")
        return v

    def redacted_summary(self) -> dict[str, str]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        summary = {
            "telegram_token": "(set)" if self.telegram.token.get_secret_value() else "(not set)",
            "telegram_admin": str(self.telegram.admin),
            "store": self.storage.backend,
            "listen_addr": self.listen_addr,
            "log_level": self.log_level,
            "send_timeout": str(self.send_timeout) if self.send_timeout else "(none)",
        }
        if self.storage.backend == "redis":
            summary["redis_url"] = self._redact_url(self.storage.redis_url)
        elif self.storage.backend == "sql":
            summary["database_url"] = self._redact_url(self.storage.database_url)
        return summary

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
