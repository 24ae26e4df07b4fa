"""Schedule engine: one live cron timer per enabled schedule.

The engine's timers are a cache derived from the store. They are never the
source of truth and can be rebuilt at any time with ``reconcile``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from artfeed.content.formatting import render_message
from artfeed.scheduling.cron import next_fire_time
from artfeed.scheduling.errors import DispatchError
from artfeed.scheduling.types import ContentKind, Platform, ScheduleDefinition

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_SEND_TIMEOUT = 30.0

# A firing that overruns its next tick by more than this is logged
MISSED_TICK_GRACE = timedelta(minutes=1)


class ContentProvider(Protocol):
    async def fetch(self, kind: ContentKind) -> Any | None: ...


class Sender(Protocol):
    async def send(self, text: str, destination_id: str) -> None: ...


FireCallback = Callable[[ScheduleDefinition], Awaitable[Any]]


class ScheduleTimer:
    """A cancelable task that fires one schedule on its cron cadence.

    Each tick is computed from the later of the previous tick and the current
    time, so a tick fires at most once and ticks missed while a slow firing
    was running are skipped rather than replayed.
    """

    def __init__(
        self,
        schedule: ScheduleDefinition,
        on_fire: FireCallback,
        timezone: str = "UTC",
    ):
        self.schedule = schedule
        self._on_fire = on_fire
        self._timezone = timezone
        self._task: asyncio.Task | None = None
        self.next_fire: datetime | None = None
        self.fire_count = 0

    @property
    def schedule_id(self) -> str:
        return self.schedule.id

    @property
    def cron_expression(self) -> str:
        return self.schedule.cron_expression

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self.next_fire = next_fire_time(self.cron_expression, timezone=self._timezone)
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"schedule:{self.schedule_id}"
        )

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.next_fire = None

    async def _run(self) -> None:
        last_tick: datetime | None = None
        while True:
            now = datetime.now(UTC)
            base = now if last_tick is None or last_tick < now else last_tick
            if last_tick is not None and last_tick < now - MISSED_TICK_GRACE:
                logger.warning(
                    "schedule_ticks_skipped",
                    extra={"schedule.id": self.schedule_id},
                )
            tick = next_fire_time(self.cron_expression, base, self._timezone)
            self.next_fire = tick

            delay = (tick - datetime.now(UTC)).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)

            last_tick = tick
            self.fire_count += 1
            try:
                await self._on_fire(self.schedule)
            except Exception:
                # Never let one bad firing end the timer
                logger.exception(
                    "schedule_firing_error", extra={"schedule.id": self.schedule_id}
                )


class ScheduleEngine:
    """Keeps one live timer per enabled schedule and runs firings.

    The engine is driven from inside a running asyncio application. Callers
    must ``remove`` a schedule before re-adding it with a changed cron
    expression; ``add_or_replace`` never touches an existing timer.

    Example:
        engine = ScheduleEngine(content_client, timezone="UTC")
        engine.register_sender(Platform.TELEGRAM, telegram_bot)
        engine.reconcile(store.list_enabled())
    """

    def __init__(
        self,
        content_provider: ContentProvider,
        renderer: Callable[[Any], str] = render_message,
        *,
        timezone: str = "UTC",
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self._content = content_provider
        self._renderer = renderer
        self._timezone = timezone
        self._fetch_timeout = fetch_timeout
        self._send_timeout = send_timeout
        self._senders: dict[Platform, Sender] = {}
        self._timers: dict[str, ScheduleTimer] = {}

    def __len__(self) -> int:
        return len(self._timers)

    @property
    def senders(self) -> dict[Platform, Sender]:
        return dict(self._senders)

    def register_sender(self, platform: Platform | str, sender: Sender) -> None:
        platform = Platform(platform)
        self._senders[platform] = sender
        logger.info("sender_registered", extra={"messaging.platform": platform.value})

    def is_scheduled(self, schedule_id: str) -> bool:
        return schedule_id in self._timers

    def scheduled_ids(self) -> list[str]:
        return list(self._timers)

    def get_timer(self, schedule_id: str) -> ScheduleTimer | None:
        return self._timers.get(schedule_id)

    # ------------------------------------------------------------------
    # Timer set maintenance
    # ------------------------------------------------------------------

    def reconcile(self, schedules: Iterable[ScheduleDefinition]) -> int:
        """Start timers for schedules that are not tracked yet.

        Returns:
            Number of timers added.
        """
        added = sum(1 for schedule in schedules if self.add_or_replace(schedule))
        logger.info(
            "schedules_reconciled",
            extra={"schedule.added": added, "schedule.live": len(self._timers)},
        )
        return added

    def add_or_replace(self, schedule: ScheduleDefinition) -> bool:
        """Start a timer for ``schedule`` unless one already exists.

        Returns:
            True if a new timer was started.
        """
        if schedule.id in self._timers:
            logger.debug("schedule_already_live", extra={"schedule.id": schedule.id})
            return False

        if not schedule.enabled:
            logger.debug("schedule_disabled_not_started", extra={"schedule.id": schedule.id})
            return False

        if not self._senders:
            logger.error(
                "schedule_refused_no_senders",
                extra={"schedule.id": schedule.id, "schedule.name": schedule.name},
            )
            return False

        if not schedule.has_destination:
            logger.warning(
                "schedule_refused_no_destination",
                extra={"schedule.id": schedule.id, "schedule.name": schedule.name},
            )
            return False

        timer = ScheduleTimer(schedule, self.fire, timezone=self._timezone)
        try:
            timer.start()
        except (ValueError, KeyError) as e:
            # croniter rejects expressions edited into the store by hand
            logger.warning(
                "schedule_refused_bad_cron",
                extra={
                    "schedule.id": schedule.id,
                    "schedule.cron": schedule.cron_expression,
                    "error.message": str(e),
                },
            )
            return False

        self._timers[schedule.id] = timer
        logger.info(
            "schedule_started",
            extra={
                "schedule.id": schedule.id,
                "schedule.name": schedule.name,
                "schedule.kind": schedule.content_kind.value,
                "schedule.cron": schedule.cron_expression,
                "schedule.next_fire": timer.next_fire.isoformat() if timer.next_fire else None,
            },
        )
        return True

    def remove(self, schedule_id: str) -> bool:
        timer = self._timers.pop(schedule_id, None)
        if timer is None:
            return False
        timer.cancel()
        logger.info("schedule_stopped", extra={"schedule.id": schedule_id})
        return True

    def update(self, schedule: ScheduleDefinition) -> bool:
        """Restart the timer for a changed schedule.

        A disabled schedule is only removed.
        """
        self.remove(schedule.id)
        if not schedule.enabled:
            return False
        return self.add_or_replace(schedule)

    def stop_all(self) -> int:
        count = len(self._timers)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        logger.info("schedules_all_stopped", extra={"schedule.count": count})
        return count

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    async def fire(self, schedule: ScheduleDefinition) -> bool:
        """Fetch content for ``schedule`` and deliver it to its destinations.

        Errors are logged and never raised. Each destination is tried
        independently, so a failed Discord send does not skip Telegram.

        Returns:
            True if at least one destination received the message.
        """
        log_extra = {
            "schedule.id": schedule.id,
            "schedule.name": schedule.name,
            "schedule.kind": schedule.content_kind.value,
        }
        logger.info("schedule_firing", extra=log_extra)

        text = await self._materialize(schedule.content_kind, log_extra)
        if text is None:
            return False

        delivered = 0
        for platform, destination_id in _destinations(schedule):
            sender = self._senders.get(platform)
            if sender is None:
                logger.debug(
                    "schedule_sender_missing",
                    extra={"schedule.id": schedule.id, "messaging.platform": platform.value},
                )
                continue
            if await self._send(schedule, platform, sender, text, destination_id):
                delivered += 1

        return delivered > 0

    async def preview(self, kind: ContentKind) -> str | None:
        """Fetch and render one message without sending it anywhere."""
        return await self._materialize(kind, {"schedule.kind": kind.value})

    async def _materialize(
        self, kind: ContentKind, log_extra: dict[str, Any]
    ) -> str | None:
        try:
            async with asyncio.timeout(self._fetch_timeout):
                record = await self._content.fetch(kind)
        except TimeoutError:
            logger.error(
                "schedule_fetch_timeout",
                extra={**log_extra, "timeout": self._fetch_timeout},
            )
            return None
        except Exception as e:
            logger.error(
                "schedule_fetch_error", extra={**log_extra, "error.message": str(e)}
            )
            return None

        if record is None:
            logger.error("schedule_fetch_empty", extra=log_extra)
            return None

        try:
            return self._renderer(record)
        except Exception as e:
            logger.error(
                "schedule_render_error", extra={**log_extra, "error.message": str(e)}
            )
            return None

    async def _send(
        self,
        schedule: ScheduleDefinition,
        platform: Platform,
        sender: Sender,
        text: str,
        destination_id: str,
    ) -> bool:
        log_extra = {
            "schedule.id": schedule.id,
            "messaging.platform": platform.value,
            "messaging.destination_id": destination_id,
        }
        try:
            async with asyncio.timeout(self._send_timeout):
                await sender.send(text, destination_id)
        except TimeoutError:
            logger.error("schedule_send_timeout", extra=log_extra)
            return False
        except DispatchError as e:
            logger.error("schedule_send_failed", extra={**log_extra, "error.message": str(e)})
            return False
        except Exception as e:
            logger.exception(
                "schedule_send_error", extra={**log_extra, "error.message": str(e)}
            )
            return False

        logger.info("schedule_delivered", extra=log_extra)
        return True


def _destinations(schedule: ScheduleDefinition) -> list[tuple[Platform, str]]:
    """Destination blocks present on a schedule, Discord first."""
    destinations: list[tuple[Platform, str]] = []
    if schedule.discord is not None and schedule.discord.channel_id:
        destinations.append((Platform.DISCORD, schedule.discord.channel_id))
    if schedule.telegram is not None and schedule.telegram.chat_id:
        destinations.append((Platform.TELEGRAM, schedule.telegram.chat_id))
    return destinations
