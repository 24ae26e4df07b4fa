"""Configuration module."""

from artfeed.config.loader import load_config
from artfeed.config.models import (
    ArtfeedConfig,
    ConfigError,
    ContentConfig,
    DiscordConfig,
    SchedulerConfig,
    TelegramConfig,
)
from artfeed.config.paths import (
    get_artfeed_home,
    get_config_path,
    get_logs_path,
    get_schedules_path,
)

__all__ = [
    "ArtfeedConfig",
    "ConfigError",
    "ContentConfig",
    "DiscordConfig",
    "SchedulerConfig",
    "TelegramConfig",
    "get_artfeed_home",
    "get_config_path",
    "get_logs_path",
    "get_schedules_path",
    "load_config",
]
