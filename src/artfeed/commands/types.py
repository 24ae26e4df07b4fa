"""Command request and response types.

Platform adapters normalize their input into a ``CommandRequest`` and render
the ``CommandResponse`` they get back. Neither type knows about aiogram or
discord.py.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from artfeed.scheduling.types import Platform, ScheduleDefinition


class CommandOutcome(StrEnum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class CommandRequest:
    """A schedule command issued from one destination.

    ``channel_id``/``guild_id`` are set for Discord, ``chat_id`` for
    Telegram. ``is_admin`` is decided by the adapter using the platform's own
    permission model.
    """

    command: str
    platform: Platform
    user_id: str
    username: str | None = None
    is_admin: bool = False
    channel_id: str | None = None
    guild_id: str | None = None
    chat_id: str | None = None
    destination_name: str | None = None
    content_kind: str | None = None
    frequency: str | None = None
    name: str | None = None
    schedule_id: str | None = None

    @property
    def destination_id(self) -> str | None:
        if self.platform == Platform.DISCORD:
            return self.channel_id
        return self.chat_id


@dataclass
class CommandResponse:
    outcome: CommandOutcome
    text: str
    schedule: ScheduleDefinition | None = None
    schedules: list[ScheduleDefinition] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == CommandOutcome.OK
