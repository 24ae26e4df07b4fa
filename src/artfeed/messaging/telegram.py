"""Telegram bot using aiogram."""

import logging
import re
from dataclasses import dataclass

from aiogram import Bot, Dispatcher
from aiogram.enums import ChatMemberStatus, ChatType
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.types import Message as TelegramMessage

from artfeed.commands import CommandRequest, CommandResponse, ScheduleCommands
from artfeed.messaging.base import ChatBot
from artfeed.scheduling.errors import DispatchError
from artfeed.scheduling.types import Platform

logger = logging.getLogger(__name__)

MAX_SEND_LENGTH = 4000  # Below Telegram's 4096 limit

CREATE_USAGE = (
    "Usage: /schedule_create [artist|nft] [frequency or cron] [name]\n\n"
    "Examples:\n"
    '  /schedule_create artist daily "Daily Artist"\n'
    '  /schedule_create nft every 15 minutes "Quick NFT"\n'
    '  /schedule_create artist "0 8 * * 1-5" "Weekday Morning"\n\n'
    "Frequency options:\n"
    "  hourly           - every hour\n"
    "  daily            - every day at noon\n"
    "  weekly           - every week on Monday at noon\n"
    "  every X minutes  - 1 to 59 minutes\n"
    "  every X hours    - 1 to 23 hours\n"
    "  or a custom cron expression in quotes"
)

_ARGUMENT_RE = re.compile(r'"([^"]+)"|(\S+)')
_EVERY_UNITS = {"hour", "day", "week"}
_ADMIN_STATUSES = {ChatMemberStatus.CREATOR, ChatMemberStatus.ADMINISTRATOR}


@dataclass(frozen=True)
class CreateArguments:
    content_kind: str | None = None
    frequency: str | None = None
    name: str | None = None


def parse_command_arguments(text: str | None) -> list[str]:
    """Split command arguments on whitespace, keeping quoted runs together."""
    if not text:
        return []
    return [quoted or bare for quoted, bare in _ARGUMENT_RE.findall(text)]


def parse_create_arguments(args: list[str]) -> CreateArguments:
    """Split ``/schedule_create`` arguments into kind, frequency and name.

    The frequency is one token (``daily``, a quoted cron expression), two for
    ``every hour|day|week``, or three for ``every N minutes|hours``. Whatever
    follows is the name.
    """
    if not args:
        return CreateArguments()

    kind, rest = args[0], args[1:]
    if not rest:
        return CreateArguments(content_kind=kind)

    if rest[0].lower() == "every" and len(rest) >= 3 and rest[1].isdigit():
        taken = 3
    elif rest[0].lower() == "every" and len(rest) >= 2 and rest[1].lower() in _EVERY_UNITS:
        taken = 2
    else:
        taken = 1

    frequency = " ".join(rest[:taken])
    name = " ".join(rest[taken:]) or None
    return CreateArguments(content_kind=kind, frequency=frequency, name=name)


def split_message(text: str, max_length: int = MAX_SEND_LENGTH) -> list[str]:
    """Split text into chunks, preferring blank lines, then newlines."""
    chunks: list[str] = []
    remaining = text
    while len(remaining) > max_length:
        window = remaining[:max_length]
        split_at = window.rfind("\n\n")
        if split_at <= 0:
            split_at = window.rfind("\n")
        if split_at <= 0:
            split_at = max_length
        chunks.append(remaining[:split_at].rstrip())
        remaining = remaining[split_at:].lstrip()
    if remaining:
        chunks.append(remaining)
    return chunks


def _chat_id(destination_id: str) -> int | str:
    """Numeric chat IDs as int, ``@channel`` usernames unchanged."""
    try:
        return int(destination_id)
    except ValueError:
        return destination_id


class TelegramBot(ChatBot):
    """Telegram bot using aiogram 3.x.

    Admins are users in a private chat with the bot, users listed in
    ``admin_users`` (numeric ID or ``@username``), and group creators or
    administrators.
    """

    def __init__(
        self,
        bot_token: str,
        commands: ScheduleCommands,
        admin_users: list[str] | None = None,
    ):
        super().__init__(commands)
        self._bot = Bot(token=bot_token)
        self._dp = Dispatcher()
        self._admin_users = set(admin_users or [])
        self._running = False
        self._setup_handlers()

    @property
    def platform(self) -> Platform:
        return Platform.TELEGRAM

    @property
    def bot(self) -> Bot:
        return self._bot

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dp

    async def start(self) -> None:
        try:
            me = await self._bot.get_me()
            logger.info(
                "telegram_bot_identified",
                extra={"telegram.bot_username": me.username},
            )
        except TelegramAPIError as e:
            logger.warning("telegram_bot_info_failed", extra={"error.message": str(e)})

        self._running = True
        logger.info("telegram_bot_starting")
        await self._bot.delete_webhook(drop_pending_updates=False)
        await self._dp.start_polling(
            self._bot,
            handle_signals=False,
            close_bot_session=False,
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        try:
            await self._dp.stop_polling()
        except RuntimeError as e:
            logger.debug("telegram_stop_polling_skipped", extra={"error.message": str(e)})

        await self._bot.session.close()
        logger.info("telegram_bot_stopped")

    async def send(self, text: str, destination_id: str) -> None:
        try:
            for chunk in split_message(text):
                await self._bot.send_message(chat_id=_chat_id(destination_id), text=chunk)
        except TelegramAPIError as e:
            raise DispatchError(f"Telegram send to {destination_id} failed: {e}") from e
        logger.debug("telegram_message_sent", extra={"messaging.chat_id": destination_id})

    async def is_admin(self, message: TelegramMessage) -> bool:
        if message.chat.type == ChatType.PRIVATE:
            return True

        user = message.from_user
        if user is None:
            return False
        if str(user.id) in self._admin_users or (
            user.username is not None and f"@{user.username}" in self._admin_users
        ):
            return True

        try:
            member = await self._bot.get_chat_member(message.chat.id, user.id)
        except TelegramAPIError as e:
            logger.warning(
                "telegram_member_lookup_failed",
                extra={"messaging.chat_id": str(message.chat.id), "error.message": str(e)},
            )
            return False
        return member.status in _ADMIN_STATUSES

    async def build_request(
        self, message: TelegramMessage, command: str, **fields: str | None
    ) -> CommandRequest:
        user = message.from_user
        username = None
        if user is not None:
            username = user.username or user.first_name
        needs_admin = command in {"delete", "pause", "resume"}
        return CommandRequest(
            command=command,
            platform=Platform.TELEGRAM,
            user_id=str(user.id) if user else "",
            username=username or "Anonymous",
            is_admin=await self.is_admin(message) if needs_admin else False,
            chat_id=str(message.chat.id),
            destination_name=message.chat.title,
            **fields,
        )

    async def _reply(self, message: TelegramMessage, response: CommandResponse) -> None:
        for chunk in split_message(response.text):
            await message.answer(chunk)

    def _setup_handlers(self) -> None:
        """Set up command handlers on the dispatcher."""

        @self._dp.message(Command("start"))
        async def handle_start(message: TelegramMessage) -> None:
            await message.answer("Welcome to Artfeed! Type /help to see what I can do.")

        @self._dp.message(Command("help"))
        async def handle_help(message: TelegramMessage) -> None:
            request = await self.build_request(message, "help")
            await self._reply(message, await self.run_command(request))

        @self._dp.message(Command("schedule_create"))
        async def handle_create(message: TelegramMessage, command: CommandObject) -> None:
            args = parse_command_arguments(command.args)
            if not args:
                await message.answer(CREATE_USAGE)
                return
            parsed = parse_create_arguments(args)
            request = await self.build_request(
                message,
                "create",
                content_kind=parsed.content_kind,
                frequency=parsed.frequency,
                name=parsed.name,
            )
            await self._reply(message, await self.run_command(request))

        @self._dp.message(Command("schedule_list"))
        async def handle_list(message: TelegramMessage) -> None:
            request = await self.build_request(message, "list")
            await self._reply(message, await self.run_command(request))

        async def handle_manage(
            message: TelegramMessage, command: CommandObject, action: str
        ) -> None:
            args = parse_command_arguments(command.args)
            request = await self.build_request(
                message, action, schedule_id=args[0] if args else None
            )
            await self._reply(message, await self.run_command(request))

        @self._dp.message(Command("schedule_delete"))
        async def handle_delete(message: TelegramMessage, command: CommandObject) -> None:
            await handle_manage(message, command, "delete")

        @self._dp.message(Command("schedule_pause"))
        async def handle_pause(message: TelegramMessage, command: CommandObject) -> None:
            await handle_manage(message, command, "pause")

        @self._dp.message(Command("schedule_resume"))
        async def handle_resume(message: TelegramMessage, command: CommandObject) -> None:
            await handle_manage(message, command, "resume")

        @self._dp.message(Command("random_artist"))
        async def handle_random_artist(message: TelegramMessage) -> None:
            request = await self.build_request(message, "random", content_kind="artist")
            await self._reply(message, await self.run_command(request))

        @self._dp.message(Command("random_nft"))
        async def handle_random_nft(message: TelegramMessage) -> None:
            request = await self.build_request(message, "random", content_kind="nft")
            await self._reply(message, await self.run_command(request))
