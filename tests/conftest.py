"""Shared test fixtures and factories."""

from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from artfeed.content.types import ArtistRecord, ListingRecord
from artfeed.scheduling import (
    ContentKind,
    CreatedBy,
    DiscordTarget,
    Platform,
    ScheduleDefinition,
    ScheduleEngine,
    ScheduleStore,
    TelegramTarget,
)
from artfeed.scheduling.errors import DispatchError

# =============================================================================
# Content and delivery fakes
# =============================================================================


class FakeContentProvider:
    """Returns canned records and counts calls."""

    def __init__(self, records: dict[str, Any] | None = None, error: Exception | None = None):
        self.records = records if records is not None else {
            "artist": ArtistRecord(
                id="tz1abc",
                name="Alice",
                address="tz1abc",
                image_url="https://ipfs.io/ipfs/QmLogo",
                profile_link="https://rejkt.xyz/tz1abc",
            ),
            "nft": ListingRecord(
                id="42",
                name="Sunset",
                description="A warm evening",
                image_url="https://ipfs.io/ipfs/QmSunset",
                price="2.5 ꜩ",
                referral_link="https://objkt.com/tokens/42",
            ),
        }
        self.error = error
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, kind: str) -> Any | None:
        self.calls.append(str(kind))
        if self.error is not None:
            raise self.error
        return self.records.get(str(kind))

    async def aclose(self) -> None:
        self.closed = True


class RecordingSender:
    """Records every message it is asked to deliver."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send(self, text: str, destination_id: str) -> None:
        if self.fail:
            raise DispatchError(f"cannot reach {destination_id}")
        self.sent.append((text, destination_id))


# =============================================================================
# Schedule fixtures
# =============================================================================


def make_schedule(**overrides: Any) -> ScheduleDefinition:
    """Build a schedule with sensible defaults for tests."""
    values: dict[str, Any] = {
        "id": "telegram-1700000000000-abc123",
        "name": "Daily Artist",
        "cron_expression": "0 12 * * *",
        "content_kind": ContentKind.ARTIST,
        "enabled": True,
        "created_at": 1700000000000,
        "created_by": CreatedBy(Platform.TELEGRAM, "111", "alice"),
        "telegram": TelegramTarget(chat_id="-100123"),
    }
    values.update(overrides)
    return ScheduleDefinition(**values)


def make_discord_schedule(**overrides: Any) -> ScheduleDefinition:
    values: dict[str, Any] = {
        "id": "discord-1700000000000-def456",
        "name": "Hourly NFT",
        "cron_expression": "0 * * * *",
        "content_kind": ContentKind.NFT,
        "created_by": CreatedBy(Platform.DISCORD, "222", "bob"),
        "telegram": None,
        "discord": DiscordTarget(channel_id="555", guild_id="999"),
    }
    values.update(overrides)
    return make_schedule(**values)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "schedules.json"


@pytest.fixture
def store(store_path: Path) -> ScheduleStore:
    store = ScheduleStore(store_path)
    store.load()
    return store


@pytest.fixture
def content_provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def telegram_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def discord_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
async def engine(content_provider, telegram_sender, discord_sender):
    engine = ScheduleEngine(content_provider, fetch_timeout=1.0, send_timeout=1.0)
    engine.register_sender(Platform.TELEGRAM, telegram_sender)
    engine.register_sender(Platform.DISCORD, discord_sender)
    yield engine
    engine.stop_all()


# =============================================================================
# Environment and CLI fixtures
# =============================================================================


@pytest.fixture
def artfeed_home(tmp_path: Path, monkeypatch) -> Path:
    """Point ARTFEED_HOME at a temporary directory."""
    from artfeed.config.paths import ENV_VAR, get_artfeed_home

    home = tmp_path / "artfeed-home"
    monkeypatch.setenv(ENV_VAR, str(home))
    get_artfeed_home.cache_clear()
    yield home
    get_artfeed_home.cache_clear()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that feed configuration."""
    for var in (
        "TELEGRAM_BOT_TOKEN",
        "DISCORD_TOKEN",
        "API_KEY",
        "ARTIST_ENDPOINT",
        "NFT_ENDPOINT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[telegram]
bot_token = "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw"
admin_users = ["@owner"]

[content]
artist_endpoint = "https://example.test/randomArtist"
nft_endpoint = "https://example.test/randomListing"

[scheduler]
timezone = "Europe/Berlin"
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Typer CLI test runner."""
    return CliRunner(env={"NO_COLOR": "1"})
