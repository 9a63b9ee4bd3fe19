"""
Configuration management for the Whop forwarder.

This module handles environment variables, settings validation, and configuration
management using Pydantic Settings for type safety and validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Channel

DEFAULT_GRAPHQL_URL = "https://api.whop.com/public-graphql"
TEST_CHANNEL_KEY = "TEST_CHANNEL"


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    interval_ms: int = Field(default=3000, description="Poll cycle interval in ms")
    page_size: int = Field(default=50, description="Messages fetched per channel")


class DeliveryConfig(BaseModel):
    """Discord delivery configuration settings."""

    webhook_url: str = Field(default="", description="Discord webhook URL")
    delay_ms: int = Field(
        default=500, description="Delay between consecutive webhook sends in ms"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Whop credentials. Several names are accepted for each key type.
    whop_api_key: str = Field(default="", description="Whop App API key")
    whop_app_api_key: str = Field(
        default="", description="Alternative name for the Whop App API key"
    )
    whop_company_api_key: str = Field(default="", description="Whop Company API key")
    whop_company_key: str = Field(
        default="", description="Alternative name for the Whop Company API key"
    )
    whop_company_id: str = Field(default="", description="Whop company id")

    # Whop API
    whop_graphql_url: str = Field(
        default=DEFAULT_GRAPHQL_URL, description="Whop GraphQL endpoint"
    )
    whop_page_size: int = Field(default=50, description="Messages fetched per poll")
    whop_request_timeout_seconds: float = Field(
        default=30.0, description="HTTP timeout for Whop requests"
    )

    # Channels
    whop_channel_id: str = Field(
        default="", description="Single chat feed id registered as TEST_CHANNEL"
    )
    whop_channels: str = Field(
        default="",
        description="Additional channels as comma-separated KEY=feed_id[:Name] entries",
    )

    # Discord delivery
    discord_webhook_url: str = Field(default="", description="Discord webhook URL")
    discord_delivery_delay_ms: int = Field(
        default=500, description="Delay between webhook sends in ms"
    )

    # Polling
    poll_interval_ms: int = Field(default=3000, description="Poll interval in ms")

    # State persistence
    state_backend: str = Field(default="file", description="State backend: file, memory")
    state_file: str = Field(
        default=".message-state.json", description="Seen-message state file"
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Log format")

    @field_validator("whop_channels")
    @classmethod
    def validate_channels(cls, v: str) -> str:
        """Validate the KEY=feed_id[:Name] channel list."""
        parse_channel_entries(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("state_backend")
    @classmethod
    def validate_state_backend(cls, v: str) -> str:
        """Validate state backend name."""
        allowed_backends = {"file", "memory"}
        if v.lower() not in allowed_backends:
            raise ValueError(f"Invalid state backend: {v}")
        return v.lower()

    @field_validator("poll_interval_ms", "whop_page_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Intervals and page sizes must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @property
    def app_api_key(self) -> str:
        """App API key from whichever variable is set."""
        return self.whop_api_key or self.whop_app_api_key

    @property
    def company_api_key(self) -> str:
        """Explicitly configured Company API key."""
        return self.whop_company_api_key or self.whop_company_key

    @property
    def has_credentials(self) -> bool:
        """Check if any Whop credential is configured."""
        return bool(self.app_api_key or self.company_api_key)

    @property
    def channels(self) -> dict[str, Channel]:
        """Configured channels keyed by channel key, in polling order."""
        channels: dict[str, Channel] = {}
        if self.whop_channel_id:
            channels[TEST_CHANNEL_KEY] = Channel(
                key=TEST_CHANNEL_KEY, id=self.whop_channel_id, name="Test Channel"
            )
        for channel in parse_channel_entries(self.whop_channels):
            channels.setdefault(channel.key, channel)
        return channels

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        return PollingConfig(
            interval_ms=self.poll_interval_ms, page_size=self.whop_page_size
        )

    @property
    def delivery_config(self) -> DeliveryConfig:
        """Get delivery configuration."""
        return DeliveryConfig(
            webhook_url=self.discord_webhook_url,
            delay_ms=self.discord_delivery_delay_ms,
        )


def parse_channel_entries(raw: str) -> list[Channel]:
    """
    Parse a comma-separated channel list.

    Args:
        raw: Entries of the form KEY=feed_id or KEY=feed_id:Display Name

    Returns:
        Channels in the order they were listed
    """
    channels = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, target = entry.partition("=")
        feed_id, _, name = target.partition(":")
        if not sep or not key.strip() or not feed_id.strip():
            raise ValueError(f"Invalid channel entry: {entry!r}")
        channels.append(
            Channel(
                key=key.strip(),
                id=feed_id.strip(),
                name=name.strip() or key.strip(),
            )
        )
    return channels


# Global settings instance - initialized lazily to avoid import-time errors
_settings_instance = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def __getattr__(name: str) -> Any:
    """Allow module-level access to settings attributes."""
    if name == "settings":
        return get_settings()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
