"""Schedule command handlers.

Every handler is a plain async function taking a ``CommandRequest`` and
returning a ``CommandResponse``. Handlers raise ``ScheduleError`` subclasses
for user mistakes; ``ScheduleCommands.dispatch`` turns them into responses.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from artfeed.commands.types import CommandOutcome, CommandRequest, CommandResponse
from artfeed.scheduling.cron import describe_cron, resolve_frequency
from artfeed.scheduling.engine import ScheduleEngine
from artfeed.scheduling.errors import (
    ScheduleError,
    ScheduleNotFoundError,
    SchedulePermissionError,
    ScheduleValidationError,
)
from artfeed.scheduling.store import ScheduleStore
from artfeed.scheduling.types import (
    ContentKind,
    Platform,
    ScheduleDefinition,
    ScheduleRequest,
)

logger = logging.getLogger(__name__)

CommandHandler = Callable[[CommandRequest], Awaitable[CommandResponse]]

INVALID_KIND_TEXT = "Invalid type. Please use 'artist' or 'nft'."
INVALID_FREQUENCY_TEXT = (
    "Invalid schedule format. Please use one of these options:\n"
    "- hourly (posts every hour)\n"
    "- daily (posts at noon every day)\n"
    "- weekly (posts Mondays at noon)\n"
    "- every N minutes (1 to 59)\n"
    "- every N hours (1 to 23)\n"
    '- Or a custom cron expression like "0 12 * * *"'
)

TELEGRAM_HELP = (
    "Schedule Commands:\n"
    "  /schedule_create [artist|nft] [frequency or cron] [name]\n"
    "    Examples:\n"
    '      /schedule_create artist daily "Daily Artist"\n'
    '      /schedule_create nft every 15 minutes "Quick NFT"\n'
    '      /schedule_create artist "0 8 * * 1-5" "Weekday Morning"\n'
    "  /schedule_list - Show all schedules in this chat\n"
    "  /schedule_delete [id] - Delete a schedule\n"
    "  /schedule_pause [id] - Pause a schedule\n"
    "  /schedule_resume [id] - Resume a paused schedule\n"
    "  /random_artist - Get a random artist now\n"
    "  /random_nft - Get a random NFT now\n"
    "\nFrequency Options:\n"
    "  hourly           - every hour\n"
    "  daily            - every day at noon\n"
    "  weekly           - every week on Monday at noon\n"
    "  every X minutes  - choose 1 to 59 minutes\n"
    "  every X hours    - choose 1 to 23 hours\n"
    "  Or supply any valid cron expression in quotes."
)

DISCORD_HELP = (
    "Schedule Commands:\n"
    "  /schedule create type:<artist|nft> [frequency] [cron] [name]\n"
    "  /schedule list - Show all schedules in this channel\n"
    "  /schedule delete id:<id> - Delete a schedule\n"
    "  /schedule pause id:<id> - Pause a schedule\n"
    "  /schedule resume id:<id> - Resume a paused schedule\n"
    "  /random-artist - Get a random artist now\n"
    "  /random-nft - Get a random NFT now\n"
    "\nA custom cron expression overrides the preset frequency."
)

_DESTINATION_NOUN = {Platform.DISCORD: "channel", Platform.TELEGRAM: "chat"}
_CREATE_HINT = {Platform.DISCORD: "`/schedule create`", Platform.TELEGRAM: "/schedule_create"}
_ACTION_VERB = {"delete": "delete", "pause": "pause", "resume": "resume"}


class ScheduleCommands:
    """Schedule commands shared by every messaging platform.

    Example:
        commands = ScheduleCommands(store, engine)
        response = await commands.dispatch(
            CommandRequest(command="list", platform=Platform.TELEGRAM,
                           user_id="42", chat_id="-100123")
        )
    """

    def __init__(self, store: ScheduleStore, engine: ScheduleEngine):
        self._store = store
        self._engine = engine
        self._handlers: dict[str, CommandHandler] = {}

        self.register("create", self.handle_create)
        self.register("list", self.handle_list)
        self.register("delete", self.handle_delete)
        self.register("pause", self.handle_pause)
        self.register("resume", self.handle_resume)
        self.register("help", self.handle_help)
        self.register("random", self.handle_random)

    @property
    def store(self) -> ScheduleStore:
        return self._store

    @property
    def commands(self) -> list[str]:
        return list(self._handlers)

    def register(self, command: str, handler: CommandHandler) -> None:
        self._handlers[command] = handler

    async def dispatch(self, request: CommandRequest) -> CommandResponse:
        """Run the handler for ``request.command`` and normalize its errors."""
        handler = self._handlers.get(request.command)
        if handler is None:
            return CommandResponse(
                CommandOutcome.INVALID, f"Unknown command: {request.command}"
            )

        logger.info(
            "schedule_command",
            extra={
                "command.name": request.command,
                "messaging.platform": request.platform.value,
                "messaging.destination_id": request.destination_id,
                "user.id": request.user_id,
            },
        )

        noun = _DESTINATION_NOUN[request.platform]
        try:
            return await handler(request)
        except ScheduleValidationError as e:
            return CommandResponse(CommandOutcome.INVALID, str(e))
        except ScheduleNotFoundError:
            return CommandResponse(
                CommandOutcome.NOT_FOUND,
                f"Schedule not found or not associated with this {noun}.",
            )
        except SchedulePermissionError as e:
            logger.info(
                "schedule_command_forbidden",
                extra={"schedule.id": e.schedule_id, "user.id": e.user_id},
            )
            verb = _ACTION_VERB.get(request.command, "manage")
            return CommandResponse(
                CommandOutcome.FORBIDDEN,
                f"You don't have permission to {verb} this schedule. "
                "Only the creator or admins can manage it.",
            )
        except ScheduleError as e:
            logger.error(
                "schedule_command_failed",
                extra={"command.name": request.command, "error.message": str(e)},
            )
        except Exception:
            logger.exception(
                "schedule_command_error", extra={"command.name": request.command}
            )
        return CommandResponse(
            CommandOutcome.FAILED,
            f"There was an error running {request.command}. Please try again later.",
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_create(self, request: CommandRequest) -> CommandResponse:
        try:
            kind = ContentKind((request.content_kind or "").strip().lower())
        except ValueError as e:
            raise ScheduleValidationError(INVALID_KIND_TEXT) from e

        if not request.destination_id:
            raise ScheduleValidationError(
                f"Could not determine the {_DESTINATION_NOUN[request.platform]}. "
                "Please try again."
            )

        name = (request.name or "").strip() or _default_name(kind, request.destination_name)
        schedule_request = ScheduleRequest(
            name=name,
            content_kind=kind,
            cron_expression=resolve_frequency(request.frequency),
            platform=request.platform,
            user_id=request.user_id,
            username=request.username,
            channel_id=request.channel_id,
            guild_id=request.guild_id,
            chat_id=request.chat_id,
        )
        try:
            schedule = self._store.create_from_request(schedule_request)
        except ScheduleValidationError as e:
            logger.info("schedule_create_rejected", extra={"error.message": str(e)})
            raise ScheduleValidationError(INVALID_FREQUENCY_TEXT) from e

        if not self._engine.add_or_replace(schedule):
            logger.warning("schedule_timer_not_started", extra={"schedule.id": schedule.id})

        text = (
            "✅ Schedule created successfully!\n\n"
            f"Name: {schedule.name}\n"
            f"Type: {schedule.content_kind.label}\n"
            f"Schedule: {describe_cron(schedule.cron_expression)}\n"
            f"ID: {schedule.id}"
        )
        return CommandResponse(CommandOutcome.OK, text, schedule=schedule)

    async def handle_list(self, request: CommandRequest) -> CommandResponse:
        noun = _DESTINATION_NOUN[request.platform]
        if request.platform == Platform.DISCORD:
            schedules = self._store.list_for_discord_channel(
                request.channel_id or "", request.guild_id
            )
        else:
            schedules = self._store.list_for_telegram_chat(request.chat_id or "")

        if not schedules:
            return CommandResponse(
                CommandOutcome.OK,
                f"No schedules found for this {noun}. "
                f"Create one with {_CREATE_HINT[request.platform]}",
            )

        lines = [f"📅 Schedules for this {noun}:", ""]
        for index, schedule in enumerate(schedules, start=1):
            lines.extend(
                [
                    f"{index}. {schedule.name} ({_status(schedule)})",
                    f"   Type: {schedule.content_kind.label}",
                    f"   Schedule: {describe_cron(schedule.cron_expression)}",
                    f"   Created by: {_creator(schedule)}",
                    f"   ID: {schedule.id}",
                    "",
                ]
            )
        return CommandResponse(
            CommandOutcome.OK, "\n".join(lines).rstrip(), schedules=schedules
        )

    async def handle_delete(self, request: CommandRequest) -> CommandResponse:
        schedule = self._authorize(request)
        self._store.delete(schedule.id)
        self._engine.remove(schedule.id)
        return CommandResponse(
            CommandOutcome.OK,
            f'Schedule "{schedule.name}" deleted successfully.',
            schedule=schedule,
        )

    async def handle_pause(self, request: CommandRequest) -> CommandResponse:
        schedule = self._authorize(request)
        if not schedule.enabled:
            return CommandResponse(
                CommandOutcome.UNCHANGED,
                f'Schedule "{schedule.name}" is already paused.',
                schedule=schedule,
            )

        updated = self._store.update(replace(schedule, enabled=False))
        if updated is None:
            raise ScheduleNotFoundError(schedule.id)
        self._engine.remove(updated.id)
        return CommandResponse(
            CommandOutcome.OK,
            f'Schedule "{updated.name}" paused successfully.',
            schedule=updated,
        )

    async def handle_resume(self, request: CommandRequest) -> CommandResponse:
        schedule = self._authorize(request)
        if schedule.enabled:
            return CommandResponse(
                CommandOutcome.UNCHANGED,
                f'Schedule "{schedule.name}" is already active.',
                schedule=schedule,
            )

        updated = self._store.update(replace(schedule, enabled=True))
        if updated is None:
            raise ScheduleNotFoundError(schedule.id)
        self._engine.add_or_replace(updated)
        return CommandResponse(
            CommandOutcome.OK,
            f'Schedule "{updated.name}" resumed successfully.',
            schedule=updated,
        )

    async def handle_help(self, request: CommandRequest) -> CommandResponse:
        text = DISCORD_HELP if request.platform == Platform.DISCORD else TELEGRAM_HELP
        return CommandResponse(CommandOutcome.OK, text)

    async def handle_random(self, request: CommandRequest) -> CommandResponse:
        """Fetch and render one record right away, outside any schedule."""
        try:
            kind = ContentKind((request.content_kind or "").strip().lower())
        except ValueError as e:
            raise ScheduleValidationError(INVALID_KIND_TEXT) from e

        text = await self._engine.preview(kind)
        if text is None:
            return CommandResponse(
                CommandOutcome.FAILED,
                f"Failed to fetch {kind.value} data. Please try again later.",
            )
        return CommandResponse(CommandOutcome.OK, text)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, request: CommandRequest) -> ScheduleDefinition:
        """Find the requested schedule within the requesting destination."""
        schedule_id = (request.schedule_id or "").strip()
        if not schedule_id:
            raise ScheduleValidationError(
                f"Please specify a schedule ID to {request.command}."
            )

        schedule = self._store.get(schedule_id)
        if schedule is None or not _belongs_to(schedule, request):
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    def _authorize(self, request: CommandRequest) -> ScheduleDefinition:
        schedule = self._resolve(request)
        if not self._store.can_manage(
            schedule.id, request.platform, request.user_id, request.is_admin
        ):
            raise SchedulePermissionError(schedule.id, request.user_id)
        return schedule


def _belongs_to(schedule: ScheduleDefinition, request: CommandRequest) -> bool:
    if request.platform == Platform.DISCORD:
        return (
            schedule.discord is not None
            and bool(request.channel_id)
            and schedule.discord.channel_id == str(request.channel_id)
        )
    return (
        schedule.telegram is not None
        and bool(request.chat_id)
        and schedule.telegram.chat_id == str(request.chat_id)
    )


def _default_name(kind: ContentKind, destination_name: str | None) -> str:
    if destination_name:
        return f"{kind.label} ({destination_name})"
    return kind.label


def _status(schedule: ScheduleDefinition) -> str:
    return "✅ Active" if schedule.enabled else "⏸️ Paused"


def _creator(schedule: ScheduleDefinition) -> str:
    if schedule.created_by is not None and schedule.created_by.username:
        return schedule.created_by.username
    return "Unknown"
