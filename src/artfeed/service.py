"""Application wiring: store, engine, commands and bots.

One ``ArtfeedService`` is built per process. It owns the only
``ScheduleStore`` instance and hands it to every consumer.
"""

import asyncio
import logging

from artfeed.commands import ScheduleCommands
from artfeed.config import ArtfeedConfig
from artfeed.content import ContentClient
from artfeed.messaging.base import ChatBot
from artfeed.scheduling import ScheduleEngine, ScheduleStore

logger = logging.getLogger(__name__)


def build_bots(config: ArtfeedConfig, commands: ScheduleCommands) -> list[ChatBot]:
    """Create a bot for every platform that has a token configured."""
    bots: list[ChatBot] = []

    if config.telegram is not None and config.telegram_enabled:
        from artfeed.messaging.telegram import TelegramBot

        bots.append(
            TelegramBot(
                config.require_token("telegram"),
                commands,
                admin_users=config.telegram.admin_users,
            )
        )

    if config.discord is not None and config.discord_enabled:
        from artfeed.messaging.discord import DiscordBot

        bots.append(
            DiscordBot(
                config.require_token("discord"),
                commands,
                admin_users=config.discord.admin_users,
            )
        )

    return bots


class ArtfeedService:
    """Runs the bots and keeps live timers in sync with the schedule store.

    Example:
        service = ArtfeedService(load_config())
        await service.start()
        ...
        await service.stop()
    """

    def __init__(
        self,
        config: ArtfeedConfig,
        *,
        store: ScheduleStore | None = None,
        content_client: ContentClient | None = None,
        bots: list[ChatBot] | None = None,
    ):
        self.config = config
        self.store = store or ScheduleStore(config.scheduler.store_path)
        self.content = content_client or ContentClient(
            artist_endpoint=config.content.artist_endpoint,
            nft_endpoint=config.content.nft_endpoint,
            api_key=config.content.api_key.get_secret_value()
            if config.content.api_key
            else None,
            timeout=config.content.timeout,
        )
        self.engine = ScheduleEngine(
            self.content,
            timezone=config.scheduler.timezone,
            fetch_timeout=config.scheduler.fetch_timeout,
            send_timeout=config.scheduler.send_timeout,
        )
        self.commands = ScheduleCommands(self.store, self.engine)
        self.bots = bots if bots is not None else build_bots(config, self.commands)
        self._bot_tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> int:
        """Load schedules, start their timers and launch the bots.

        Returns:
            Number of live timers started.
        """
        if self._running:
            return len(self.engine)

        if not self.bots:
            logger.warning("no_bots_configured")

        self.store.load()
        for bot in self.bots:
            self.engine.register_sender(bot.platform, bot)

        started = self.engine.reconcile(self.store.list_enabled())

        for bot in self.bots:
            task = asyncio.create_task(bot.start(), name=f"bot:{bot.platform.value}")
            task.add_done_callback(self._on_bot_exit)
            self._bot_tasks.append(task)

        self._running = True
        logger.info(
            "artfeed_started",
            extra={
                "schedule.live": started,
                "messaging.platforms": [b.platform.value for b in self.bots],
            },
        )
        return started

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        self.engine.stop_all()

        for bot in self.bots:
            try:
                await bot.stop()
            except Exception as e:
                logger.warning(
                    "bot_stop_failed",
                    extra={"messaging.platform": bot.platform.value, "error.message": str(e)},
                )

        for task in self._bot_tasks:
            task.cancel()
        await asyncio.gather(*self._bot_tasks, return_exceptions=True)
        self._bot_tasks.clear()

        await self.content.aclose()
        logger.info("artfeed_stopped")

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Start, wait for ``shutdown_event`` and stop."""
        await self.start()
        try:
            await shutdown_event.wait()
        finally:
            await self.stop()

    def _on_bot_exit(self, task: asyncio.Task) -> None:
        # Other bots keep running when one fails to start
        if task.cancelled():
            return
        if exc := task.exception():
            logger.error(
                "bot_failed",
                extra={"task.name": task.get_name(), "error.message": str(exc)},
            )
