"""Schedule store backed by a single JSON document.

The store owns both the persisted document and the in-memory registry built
from it. Every mutation updates the registry first and then rewrites the whole
document. Construct one store per process and pass it to every consumer.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any

from filelock import FileLock

from artfeed.scheduling.cron import validate_cron
from artfeed.scheduling.errors import PersistenceError, ScheduleValidationError
from artfeed.scheduling.types import (
    STORE_VERSION,
    CreatedBy,
    DiscordTarget,
    Platform,
    ScheduleDefinition,
    ScheduleRequest,
    TelegramTarget,
    now_ms,
)

logger = logging.getLogger(__name__)


class ScheduleStore:
    """Durable storage and registry for schedule definitions.

    Disk failures never propagate: a corrupt or unreadable document loads as
    an empty registry, and failed writes are logged while the in-memory state
    stays authoritative for the running process.

    Example:
        store = ScheduleStore(Path("~/.artfeed/schedules.json").expanduser())
        store.load()
        schedule = store.create_from_request(request)
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._schedules: dict[str, ScheduleDefinition] = {}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "schedule_store_dir_unavailable",
                extra={"file.path": str(self._path.parent), "error.message": str(e)},
            )
        self._lock = FileLock(str(self._path) + ".lock")

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._schedules)

    def __contains__(self, schedule_id: object) -> bool:
        return schedule_id in self._schedules

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> list[ScheduleDefinition]:
        """Read the document from disk and rebuild the registry.

        A missing document is initialized empty. An unreadable one is set
        aside as ``<name>.corrupt`` and the registry starts empty.
        """
        with self._lock:
            if not self._path.exists():
                self._schedules = {}
                try:
                    self._write_document([])
                except PersistenceError as e:
                    logger.error(
                        "schedule_store_init_failed",
                        extra={"file.path": str(self._path), "error.message": str(e)},
                    )
                logger.info(
                    "schedule_store_initialized", extra={"file.path": str(self._path)}
                )
                return []

            try:
                document = json.loads(self._path.read_text(encoding="utf-8"))
                records = _document_records(document)
            except (OSError, ValueError) as e:
                logger.error(
                    "schedule_store_load_failed",
                    extra={"file.path": str(self._path), "error.message": str(e)},
                )
                self._set_aside_corrupt()
                self._schedules = {}
                return []

            schedules: dict[str, ScheduleDefinition] = {}
            for record in records:
                schedule = (
                    ScheduleDefinition.from_dict(record)
                    if isinstance(record, dict)
                    else None
                )
                if schedule is None:
                    logger.warning(
                        "schedule_record_skipped", extra={"file.path": str(self._path)}
                    )
                    continue
                if schedule.id in schedules:
                    logger.warning(
                        "schedule_duplicate_id_skipped",
                        extra={"schedule.id": schedule.id},
                    )
                    continue
                schedules[schedule.id] = schedule

            self._schedules = schedules
            logger.info(
                "schedule_store_loaded",
                extra={
                    "file.path": str(self._path),
                    "schedule.count": len(schedules),
                },
            )
            return list(schedules.values())

    def save(self, schedules: list[ScheduleDefinition] | None = None) -> bool:
        """Persist the registry, optionally replacing it first.

        Returns:
            True if the document was written. Failures are logged, not raised.
        """
        with self._lock:
            if schedules is not None:
                self._schedules = {s.id: s for s in schedules}
            try:
                self._write_document(list(self._schedules.values()))
            except PersistenceError as e:
                logger.error(
                    "schedule_store_save_failed",
                    extra={"file.path": str(self._path), "error.message": str(e)},
                )
                return False
            logger.debug(
                "schedule_store_saved",
                extra={"schedule.count": len(self._schedules)},
            )
            return True

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, schedule_id: str) -> ScheduleDefinition | None:
        return self._schedules.get(schedule_id)

    def list_all(self) -> list[ScheduleDefinition]:
        return list(self._schedules.values())

    def list_enabled(self) -> list[ScheduleDefinition]:
        return [s for s in self._schedules.values() if s.enabled]

    def list_for_discord_channel(
        self, channel_id: str | int, guild_id: str | int | None = None
    ) -> list[ScheduleDefinition]:
        """Schedules posting to a Discord channel.

        A schedule without a stored guild ID matches any guild.
        """
        channel = str(channel_id)
        guild = str(guild_id) if guild_id is not None else None
        matches = []
        for schedule in self._schedules.values():
            target = schedule.discord
            if target is None or not target.channel_id:
                continue
            if target.channel_id != channel:
                continue
            if guild is not None and target.guild_id is not None and target.guild_id != guild:
                continue
            matches.append(schedule)
        logger.debug(
            "discord_channel_schedules",
            extra={
                "discord.channel_id": channel,
                "discord.guild_id": guild,
                "schedule.count": len(matches),
            },
        )
        return matches

    def list_for_telegram_chat(self, chat_id: str | int) -> list[ScheduleDefinition]:
        chat = str(chat_id)
        return [
            s
            for s in self._schedules.values()
            if s.telegram is not None and s.telegram.chat_id == chat
        ]

    def can_manage(
        self,
        schedule_id: str,
        platform: Platform | str,
        user_id: str,
        is_admin: bool = False,
    ) -> bool:
        """Check whether a user may delete, pause or resume a schedule."""
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            return False
        if is_admin:
            return True
        return schedule.is_owned_by(platform, user_id)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def add(self, schedule: ScheduleDefinition) -> ScheduleDefinition:
        """Store a new schedule, assigning ``id`` and ``created_at`` if unset.

        Raises:
            ScheduleValidationError: If the ID is already taken or the schedule
                has no destination.
        """
        if not schedule.has_destination:
            raise ScheduleValidationError("Schedule has no destination channel or chat")

        with self._lock:
            if schedule.id and schedule.id in self._schedules:
                raise ScheduleValidationError(f"Schedule ID already exists: {schedule.id}")

            updates: dict[str, Any] = {}
            if not schedule.id:
                prefix = schedule.created_by.platform.value if schedule.created_by else "schedule"
                updates["id"] = self._generate_id(prefix)
            if not schedule.created_at:
                updates["created_at"] = now_ms()
            stored = replace(schedule, **updates) if updates else schedule

            self._schedules[stored.id] = stored
            self.save()

        logger.info(
            "schedule_added",
            extra={
                "schedule.id": stored.id,
                "schedule.name": stored.name,
                "schedule.cron": stored.cron_expression,
            },
        )
        return stored

    def update(self, schedule: ScheduleDefinition) -> ScheduleDefinition | None:
        """Replace a stored schedule, keeping its original creation info.

        Returns:
            The stored value, or None if no schedule has this ID.
        """
        with self._lock:
            existing = self._schedules.get(schedule.id)
            if existing is None:
                return None
            updated = replace(
                schedule,
                created_at=existing.created_at,
                created_by=existing.created_by,
            )
            self._schedules[updated.id] = updated
            self.save()

        logger.info(
            "schedule_updated",
            extra={"schedule.id": updated.id, "schedule.enabled": updated.enabled},
        )
        return updated

    def delete(self, schedule_id: str) -> bool:
        """Remove a schedule. Only persists when something was removed."""
        with self._lock:
            if self._schedules.pop(schedule_id, None) is None:
                return False
            self.save()

        logger.info("schedule_deleted", extra={"schedule.id": schedule_id})
        return True

    def create_from_request(self, request: ScheduleRequest) -> ScheduleDefinition:
        """Build and store a new enabled schedule from user input.

        Only the destination block matching ``request.platform`` is attached.

        Raises:
            ScheduleValidationError: If the cron expression is invalid or the
                request has no destination for its platform.
        """
        cron_expression = validate_cron(request.cron_expression)

        discord: DiscordTarget | None = None
        telegram: TelegramTarget | None = None
        if request.platform == Platform.DISCORD and request.channel_id:
            discord = DiscordTarget(
                channel_id=str(request.channel_id),
                guild_id=str(request.guild_id) if request.guild_id else None,
            )
        elif request.platform == Platform.TELEGRAM and request.chat_id:
            telegram = TelegramTarget(chat_id=str(request.chat_id))
        else:
            raise ScheduleValidationError(
                f"A {request.platform.value} schedule needs a destination"
            )

        with self._lock:
            schedule = ScheduleDefinition(
                id=self._generate_id(request.platform.value),
                name=request.name,
                cron_expression=cron_expression,
                content_kind=request.content_kind,
                enabled=True,
                created_at=now_ms(),
                created_by=CreatedBy(
                    platform=request.platform,
                    user_id=str(request.user_id),
                    username=request.username,
                ),
                discord=discord,
                telegram=telegram,
            )
            return self.add(schedule)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _generate_id(self, prefix: str) -> str:
        """``{prefix}-{epoch ms}-{random hex}``, unique within the registry."""
        while True:
            candidate = f"{prefix}-{now_ms()}-{secrets.token_hex(3)}"
            if candidate not in self._schedules:
                return candidate

    def _write_document(self, schedules: list[ScheduleDefinition]) -> None:
        """Write the full document atomically via tempfile + fsync + os.replace()."""
        document = {
            "schedules": [s.to_dict() for s in schedules],
            "version": STORE_VERSION,
        }
        tmp: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            Path(tmp).replace(self._path)
        except OSError as e:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e

    def _set_aside_corrupt(self) -> None:
        corrupt_path = self._path.with_name(self._path.name + ".corrupt")
        try:
            self._path.replace(corrupt_path)
        except OSError as e:
            logger.warning(
                "schedule_store_set_aside_failed",
                extra={"file.path": str(self._path), "error.message": str(e)},
            )
            return
        logger.warning(
            "schedule_store_set_aside", extra={"file.path": str(corrupt_path)}
        )


def _document_records(document: Any) -> list[Any]:
    """Extract the schedule list from a parsed store document."""
    if not isinstance(document, dict):
        raise ValueError("Schedule document must be a JSON object")
    version = document.get("version", STORE_VERSION)
    if version != STORE_VERSION:
        logger.warning("schedule_store_unknown_version", extra={"store.version": version})
    records = document.get("schedules") or []
    if not isinstance(records, list):
        raise ValueError("'schedules' must be a list")
    return records
