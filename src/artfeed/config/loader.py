"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from artfeed.config.models import ArtfeedConfig
from artfeed.config.paths import get_config_path

logger = logging.getLogger(__name__)


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.artfeed/config.toml (or ARTFEED_HOME)
        Path("/etc/artfeed/config.toml"),  # System-wide
    ]


def _set_secret_from_env(
    config: dict[str, Any], section_key: str, key: str, env_var: str
) -> None:
    """Set a secret from the environment if not already set.

    Creates the section when the variable is present, so a deployment can be
    configured through the environment alone.
    """
    value = os.environ.get(env_var)
    section = config.get(section_key)
    if section is None:
        if not value:
            return
        section = config[section_key] = {}
    if section.get(key) is None and value:
        section[key] = SecretStr(value)


def _resolve_env(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve secrets and endpoints from environment variables."""
    secret_mappings = [
        ("telegram", "bot_token", "TELEGRAM_BOT_TOKEN"),
        ("discord", "bot_token", "DISCORD_TOKEN"),
        ("content", "api_key", "API_KEY"),
    ]
    for section_key, key, env_var in secret_mappings:
        _set_secret_from_env(config, section_key, key, env_var)

    endpoint_mappings = [
        ("artist_endpoint", "ARTIST_ENDPOINT"),
        ("nft_endpoint", "NFT_ENDPOINT"),
    ]
    for key, env_var in endpoint_mappings:
        if value := os.environ.get(env_var):
            config.setdefault("content", {}).setdefault(key, value)
        else:
            logger.debug("endpoint_env_not_set", extra={"config.env_var": env_var})

    return config


def load_config(path: Path | None = None) -> ArtfeedConfig:
    """Load configuration from a TOML file and the environment.

    Args:
        path: Explicit path to config file. If None, searches default locations
            and falls back to environment-only configuration.

    Returns:
        Validated ArtfeedConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If the configuration is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)
    else:
        logger.info("config_file_not_found_using_env")

    raw_config = _resolve_env(raw_config)

    return ArtfeedConfig.model_validate(raw_config)
