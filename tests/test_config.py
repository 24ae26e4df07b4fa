"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from artfeed.config.loader import _resolve_env, load_config
from artfeed.config.models import (
    ArtfeedConfig,
    ConfigError,
    ContentConfig,
    DiscordConfig,
    SchedulerConfig,
    TelegramConfig,
)
from artfeed.content.client import DEFAULT_ARTIST_ENDPOINT, DEFAULT_NFT_ENDPOINT


class TestTelegramConfig:
    """Tests for TelegramConfig model."""

    def test_defaults(self):
        config = TelegramConfig()
        assert config.bot_token is None
        assert config.admin_users == []

    def test_with_values(self):
        config = TelegramConfig(bot_token="abc", admin_users=["@owner", "123"])
        assert config.bot_token.get_secret_value() == "abc"
        assert config.admin_users == ["@owner", "123"]


class TestContentConfig:
    def test_defaults(self):
        config = ContentConfig()
        assert config.artist_endpoint == DEFAULT_ARTIST_ENDPOINT
        assert config.nft_endpoint == DEFAULT_NFT_ENDPOINT
        assert config.api_key is None
        assert config.timeout == 15.0


class TestSchedulerConfig:
    def test_defaults(self, artfeed_home):
        config = SchedulerConfig()
        assert config.store_path == artfeed_home.resolve() / "schedules.json"
        assert config.timezone == "UTC"
        assert config.fetch_timeout == 30.0
        assert config.send_timeout == 30.0

    def test_valid_timezone(self):
        assert SchedulerConfig(timezone="Europe/Berlin").timezone == "Europe/Berlin"

    def test_invalid_timezone(self):
        with pytest.raises(ValidationError):
            SchedulerConfig(timezone="Mars/Olympus")

    def test_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            SchedulerConfig(fetch_timeout=0)


class TestArtfeedConfig:
    def test_requires_a_platform(self):
        with pytest.raises(ValidationError):
            ArtfeedConfig()

    def test_platform_enabled_needs_token(self):
        config = ArtfeedConfig(telegram=TelegramConfig())
        assert not config.telegram_enabled
        assert not config.discord_enabled

    def test_enabled_platforms(self):
        config = ArtfeedConfig(
            telegram=TelegramConfig(bot_token="t"),
            discord=DiscordConfig(bot_token="d"),
        )
        assert config.telegram_enabled
        assert config.discord_enabled

    def test_require_token(self):
        config = ArtfeedConfig(telegram=TelegramConfig(bot_token="t"))
        assert config.require_token("telegram") == "t"
        with pytest.raises(ConfigError):
            config.require_token("discord")


class TestResolveEnv:
    def test_sets_secrets_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "from-env")
        monkeypatch.setenv("API_KEY", "key-from-env")
        config = _resolve_env({})
        assert config["telegram"]["bot_token"] == SecretStr("from-env")
        assert config["content"]["api_key"] == SecretStr("key-from-env")
        assert "discord" not in config

    def test_file_value_wins_over_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "from-env")
        config = _resolve_env({"discord": {"bot_token": "from-file"}})
        assert config["discord"]["bot_token"] == "from-file"

    def test_endpoints_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("ARTIST_ENDPOINT", "https://env.test/artist")
        config = _resolve_env({})
        assert config["content"]["artist_endpoint"] == "https://env.test/artist"
        assert "nft_endpoint" not in config["content"]


class TestLoadConfig:
    def test_load_file(self, config_file, clean_env):
        config = load_config(config_file)
        assert config.telegram_enabled
        assert config.telegram.admin_users == ["@owner"]
        assert config.discord is None
        assert config.content.artist_endpoint == "https://example.test/randomArtist"
        assert config.scheduler.timezone == "Europe/Berlin"

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_environment_only(self, clean_env, monkeypatch, tmp_path, artfeed_home):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DISCORD_TOKEN", "discord-token")
        config = load_config()
        assert config.discord_enabled
        assert config.telegram is None

    def test_nothing_configured(self, clean_env, monkeypatch, tmp_path, artfeed_home):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValidationError):
            load_config()
