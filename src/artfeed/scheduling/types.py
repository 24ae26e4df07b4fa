"""Schedule types.

Public types:
- ScheduleDefinition: A named, per-destination recurring job
- ScheduleRequest: Inputs for creating a schedule from a user command
- ContentKind / Platform: Enumerations shared across the package
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class ContentKind(StrEnum):
    ARTIST = "artist"
    NFT = "nft"

    @property
    def label(self) -> str:
        return "Random Artist" if self is ContentKind.ARTIST else "Random NFT"


class Platform(StrEnum):
    DISCORD = "discord"
    TELEGRAM = "telegram"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)


@dataclass(frozen=True)
class CreatedBy:
    platform: Platform
    user_id: str
    username: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"platform": self.platform.value, "userId": self.user_id}
        if self.username is not None:
            data["username"] = self.username
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CreatedBy":
        return cls(
            platform=Platform(data["platform"]),
            user_id=str(data["userId"]),
            username=data.get("username"),
        )


@dataclass(frozen=True)
class DiscordTarget:
    channel_id: str
    guild_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"channelId": self.channel_id}
        if self.guild_id is not None:
            data["guildId"] = self.guild_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscordTarget":
        guild_id = data.get("guildId")
        return cls(
            channel_id=str(data.get("channelId") or ""),
            guild_id=str(guild_id) if guild_id is not None else None,
        )


@dataclass(frozen=True)
class TelegramTarget:
    chat_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"chatId": self.chat_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TelegramTarget":
        return cls(chat_id=str(data.get("chatId") or ""))


@dataclass(frozen=True)
class ScheduleDefinition:
    """A recurring job that fetches content and posts it to its destinations.

    Instances are immutable; use ``dataclasses.replace`` to derive a changed
    copy. ``id``, ``created_at`` and ``created_by`` are assigned once by the
    store and never change afterwards.

    A definition may carry both destination blocks. Creation only ever sets
    the block matching the creator's platform, but updates preserve whatever
    is present, so dispatch treats them independently.
    """

    name: str
    cron_expression: str
    content_kind: ContentKind
    enabled: bool = True
    id: str = ""
    created_at: int = 0  # Epoch milliseconds, 0 until stored
    created_by: CreatedBy | None = None
    discord: DiscordTarget | None = None
    telegram: TelegramTarget | None = None
    # Unknown persisted fields, written back unchanged
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_destination(self) -> bool:
        return bool(
            (self.discord and self.discord.channel_id)
            or (self.telegram and self.telegram.chat_id)
        )

    @property
    def created_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.created_at / 1000, UTC)

    def is_owned_by(self, platform: Platform | str, user_id: str) -> bool:
        if self.created_by is None:
            return False
        return (
            self.created_by.platform == platform
            and self.created_by.user_id == str(user_id)
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON layout."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "cronExpression": self.cron_expression,
                "enabled": self.enabled,
                "fetchType": self.content_kind.value,
                "createdAt": self.created_at,
            }
        )
        if self.created_by is not None:
            data["createdBy"] = self.created_by.to_dict()
        if self.discord is not None:
            data["discord"] = self.discord.to_dict()
        if self.telegram is not None:
            data["telegram"] = self.telegram.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleDefinition | None":
        """Parse a persisted record.

        Returns None for records that cannot be scheduled (missing ID or cron
        expression, unknown content kind, malformed nested blocks).
        """
        schedule_id = data.get("id")
        cron_expression = data.get("cronExpression")
        if not schedule_id or not cron_expression:
            return None

        known_fields = {
            "id",
            "name",
            "cronExpression",
            "enabled",
            "fetchType",
            "createdAt",
            "createdBy",
            "discord",
            "telegram",
        }
        extra = {k: v for k, v in data.items() if k not in known_fields}

        try:
            content_kind = ContentKind(data.get("fetchType", ""))
            return cls(
                id=str(schedule_id),
                name=data.get("name") or content_kind.label,
                cron_expression=str(cron_expression),
                content_kind=content_kind,
                enabled=bool(data.get("enabled", True)),
                created_at=int(data.get("createdAt") or 0),
                created_by=CreatedBy.from_dict(data["createdBy"])
                if data.get("createdBy")
                else None,
                discord=DiscordTarget.from_dict(data["discord"])
                if data.get("discord")
                else None,
                telegram=TelegramTarget.from_dict(data["telegram"])
                if data.get("telegram")
                else None,
                extra=extra,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "schedule_record_invalid",
                extra={"schedule.id": schedule_id, "error.message": str(e)},
            )
            return None


@dataclass(frozen=True)
class ScheduleRequest:
    """User input for creating a schedule.

    Only the destination fields matching ``platform`` are used.
    """

    name: str
    content_kind: ContentKind
    cron_expression: str
    platform: Platform
    user_id: str
    username: str | None = None
    channel_id: str | None = None
    guild_id: str | None = None
    chat_id: str | None = None
