"""Configuration models using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from artfeed.config.paths import get_schedules_path
from artfeed.content.client import DEFAULT_ARTIST_ENDPOINT, DEFAULT_NFT_ENDPOINT


class ConfigError(Exception):
    """Configuration error."""

    pass

class TelegramConfig(BaseModel):
    """Configuration for the Telegram bot."""

    bot_token: SecretStr | None = None
    # User IDs allowed to manage any schedule in any chat
    admin_users: list[str] = []

class DiscordConfig(BaseModel):
    """Configuration for the Discord bot."""

    bot_token: SecretStr | None = None
    admin_users: list[str] = []

class ContentConfig(BaseModel):
    """Configuration for the remote artist/listing API."""

    artist_endpoint: str = DEFAULT_ARTIST_ENDPOINT
    nft_endpoint: str = DEFAULT_NFT_ENDPOINT
    api_key: SecretStr | None = None
    timeout: float = 15.0

class SchedulerConfig(BaseModel):
    """Configuration for the schedule store and execution engine."""

    store_path: Path = Field(default_factory=get_schedules_path)
    # IANA timezone used to evaluate cron expressions
    timezone: str = "UTC"
    fetch_timeout: float = 30.0
    send_timeout: float = 30.0

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("fetch_timeout", "send_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

class ArtfeedConfig(BaseModel):
    """Root configuration model."""

    telegram: TelegramConfig | None = None
    discord: DiscordConfig | None = None
    content: ContentConfig = Field(default_factory=ContentConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    @model_validator(mode="after")
    def _validate_platforms(self) -> "ArtfeedConfig":
        """Validate that at least one messaging platform is configured."""
        if self.telegram is None and self.discord is None:
            raise ValueError(
                "No messaging platform configured. Add [telegram] or [discord]"
            )
        return self

    @property
    def telegram_enabled(self) -> bool:
        return self.telegram is not None and self.telegram.bot_token is not None

    @property
    def discord_enabled(self) -> bool:
        return self.discord is not None and self.discord.bot_token is not None

    def require_token(self, platform: str) -> str:
        """Get a platform bot token.

        Raises:
            ConfigError: If the platform is not configured with a token.
        """
        section = self.telegram if platform == "telegram" else self.discord
        if section is None or section.bot_token is None:
            raise ConfigError(f"No bot token configured for {platform}")
        return section.bot_token.get_secret_value()
