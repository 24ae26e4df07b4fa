"""Tests for service wiring and lifecycle."""

import asyncio

import pytest

from artfeed.commands import CommandRequest
from artfeed.config.models import (
    ArtfeedConfig,
    DiscordConfig,
    SchedulerConfig,
    TelegramConfig,
)
from artfeed.messaging.base import ChatBot, MessageSender
from artfeed.scheduling import Platform, ScheduleStore
from artfeed.service import ArtfeedService, build_bots
from tests.conftest import FakeContentProvider, make_discord_schedule, make_schedule

TELEGRAM_TOKEN = "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw"


class FakeBot(ChatBot):
    """Bot that runs until stopped and records what it sends."""

    def __init__(self, commands, platform: Platform, fail_start: bool = False):
        super().__init__(commands)
        self._platform = platform
        self._fail_start = fail_start
        self._stopped = asyncio.Event()
        self.started = False
        self.stop_calls = 0
        self.sent: list[tuple[str, str]] = []

    @property
    def platform(self) -> Platform:
        return self._platform

    async def start(self) -> None:
        if self._fail_start:
            raise RuntimeError("invalid token")
        self.started = True
        await self._stopped.wait()

    async def stop(self) -> None:
        self.stop_calls += 1
        self._stopped.set()

    async def send(self, text: str, destination_id: str) -> None:
        self.sent.append((text, destination_id))


@pytest.fixture
def config(tmp_path) -> ArtfeedConfig:
    return ArtfeedConfig(
        telegram=TelegramConfig(bot_token=TELEGRAM_TOKEN),
        scheduler=SchedulerConfig(store_path=tmp_path / "schedules.json"),
    )


def make_service(config, *platforms: Platform, fail_start: bool = False) -> ArtfeedService:
    service = ArtfeedService(config, content_client=FakeContentProvider(), bots=[])
    service.bots = [
        FakeBot(service.commands, platform, fail_start=fail_start) for platform in platforms
    ]
    return service


class TestBuildBots:
    def test_telegram_only(self, config):
        from artfeed.messaging.telegram import TelegramBot

        service = ArtfeedService(config, content_client=FakeContentProvider())
        assert len(service.bots) == 1
        assert isinstance(service.bots[0], TelegramBot)

    def test_both_platforms(self, tmp_path):
        from artfeed.messaging.discord import DiscordBot
        from artfeed.messaging.telegram import TelegramBot

        config = ArtfeedConfig(
            telegram=TelegramConfig(bot_token=TELEGRAM_TOKEN),
            discord=DiscordConfig(bot_token="discord-token"),
            scheduler=SchedulerConfig(store_path=tmp_path / "schedules.json"),
        )
        service = ArtfeedService(config, content_client=FakeContentProvider())
        kinds = {type(bot) for bot in service.bots}
        assert kinds == {TelegramBot, DiscordBot}

    def test_platform_without_token(self, tmp_path):
        config = ArtfeedConfig(
            discord=DiscordConfig(),
            scheduler=SchedulerConfig(store_path=tmp_path / "schedules.json"),
        )
        service = ArtfeedService(config, content_client=FakeContentProvider(), bots=[])
        assert build_bots(config, service.commands) == []

    def test_bots_are_message_senders(self, config):
        service = make_service(config, Platform.TELEGRAM)
        assert isinstance(service.bots[0], MessageSender)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_reconciles_enabled_schedules(self, config):
        seeded = ScheduleStore(config.scheduler.store_path)
        seeded.load()
        seeded.add(make_schedule())
        seeded.add(make_discord_schedule())
        seeded.add(make_schedule(id="paused", enabled=False))

        service = make_service(config, Platform.TELEGRAM, Platform.DISCORD)
        try:
            started = await service.start()
            assert started == 2
            assert service.running
            assert set(service.engine.senders) == {Platform.TELEGRAM, Platform.DISCORD}
            assert sorted(service.engine.scheduled_ids()) == sorted(
                [make_schedule().id, make_discord_schedule().id]
            )
            await asyncio.sleep(0)
            assert all(bot.started for bot in service.bots)
        finally:
            await service.stop()

        assert not service.running
        assert len(service.engine) == 0
        assert all(bot.stop_calls == 1 for bot in service.bots)
        assert service.content.closed

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, config):
        service = make_service(config, Platform.TELEGRAM)
        try:
            await service.start()
            await service.start()
            assert len(service._bot_tasks) == 1
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, config):
        service = make_service(config, Platform.TELEGRAM)
        await service.stop()
        assert service.bots[0].stop_calls == 0

    @pytest.mark.asyncio
    async def test_failed_bot_does_not_stop_service(self, config):
        service = make_service(config, Platform.TELEGRAM, fail_start=True)
        try:
            await service.start()
            await asyncio.sleep(0.01)
            assert service.running
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_schedules_created_by_command_fire_through_bot(self, config):
        service = make_service(config, Platform.TELEGRAM)
        try:
            await service.start()
            response = await service.commands.dispatch(
                CommandRequest(
                    command="create",
                    platform=Platform.TELEGRAM,
                    user_id="111",
                    chat_id="-100123",
                    content_kind="nft",
                    frequency="hourly",
                )
            )
            assert response.ok
            assert service.engine.is_scheduled(response.schedule.id)

            assert await service.engine.fire(response.schedule)
            text, chat_id = service.bots[0].sent[0]
            assert chat_id == "-100123"
            assert text.startswith("🖼️ Random NFT")
        finally:
            await service.stop()

        reloaded = ScheduleStore(config.scheduler.store_path)
        assert [s.id for s in reloaded.load()] == [response.schedule.id]

    @pytest.mark.asyncio
    async def test_run_until_shutdown(self, config):
        service = make_service(config, Platform.TELEGRAM)
        shutdown = asyncio.Event()

        async def trigger():
            await asyncio.sleep(0.01)
            assert service.running
            shutdown.set()

        await asyncio.gather(service.run(shutdown), trigger())
        assert not service.running
