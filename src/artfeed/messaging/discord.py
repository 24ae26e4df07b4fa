"""Discord bot using discord.py application commands."""

import logging

import discord
from discord import app_commands

from artfeed.commands import CommandRequest, CommandResponse, ScheduleCommands
from artfeed.messaging.base import ChatBot
from artfeed.scheduling.errors import DispatchError
from artfeed.scheduling.types import Platform

logger = logging.getLogger(__name__)

DISCORD_MAX_LENGTH = 2000
AUTOCOMPLETE_LIMIT = 25  # Discord's cap on autocomplete choices

KIND_CHOICES = [
    app_commands.Choice(name="Random Artist", value="artist"),
    app_commands.Choice(name="Random NFT", value="nft"),
]

FREQUENCY_CHOICES = [
    app_commands.Choice(name="Hourly", value="0 * * * *"),
    app_commands.Choice(name="Every 6 hours", value="0 */6 * * *"),
    app_commands.Choice(name="Every 12 hours", value="0 */12 * * *"),
    app_commands.Choice(name="Daily", value="0 12 * * *"),
    app_commands.Choice(name="Weekly", value="0 12 * * 1"),
]


def truncate_message(text: str, limit: int = DISCORD_MAX_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class DiscordBot(ChatBot):
    """Discord bot exposing the ``/schedule`` command group.

    Admins are members with the Manage Server permission and users listed in
    ``admin_users``.
    """

    def __init__(
        self,
        bot_token: str,
        commands: ScheduleCommands,
        admin_users: list[str] | None = None,
    ):
        super().__init__(commands)
        self._token = bot_token
        self._admin_users = set(admin_users or [])
        self._client = discord.Client(intents=discord.Intents.default())
        self._tree = app_commands.CommandTree(self._client)
        self._synced = False
        self._register_events()
        self._register_commands()

    @property
    def platform(self) -> Platform:
        return Platform.DISCORD

    @property
    def client(self) -> discord.Client:
        return self._client

    @property
    def tree(self) -> app_commands.CommandTree:
        return self._tree

    async def start(self) -> None:
        logger.info("discord_bot_starting")
        await self._client.start(self._token)

    async def stop(self) -> None:
        if self._client.is_closed():
            return
        await self._client.close()
        logger.info("discord_bot_stopped")

    async def send(self, text: str, destination_id: str) -> None:
        try:
            channel_id = int(destination_id)
        except ValueError as e:
            raise DispatchError(f"Invalid Discord channel ID: {destination_id}") from e

        try:
            channel = self._client.get_channel(channel_id)
            if channel is None:
                channel = await self._client.fetch_channel(channel_id)
            if not isinstance(channel, discord.abc.Messageable):
                raise DispatchError(f"Discord channel {destination_id} is not a text channel")
            await channel.send(content=truncate_message(text))
        except discord.DiscordException as e:
            raise DispatchError(f"Discord send to {destination_id} failed: {e}") from e
        logger.debug("discord_message_sent", extra={"discord.channel_id": destination_id})

    def is_admin(self, interaction: discord.Interaction) -> bool:
        if str(interaction.user.id) in self._admin_users:
            return True
        return bool(interaction.permissions.manage_guild)

    def build_request(
        self, interaction: discord.Interaction, command: str, **fields: str | None
    ) -> CommandRequest:
        return CommandRequest(
            command=command,
            platform=Platform.DISCORD,
            user_id=str(interaction.user.id),
            username=interaction.user.name,
            is_admin=self.is_admin(interaction),
            channel_id=str(interaction.channel_id) if interaction.channel_id else None,
            guild_id=str(interaction.guild_id) if interaction.guild_id else None,
            destination_name=getattr(interaction.channel, "name", None),
            **fields,
        )

    async def schedule_choices(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        """Autocomplete schedule IDs from the current channel."""
        if interaction.channel_id is None:
            return []
        schedules = self._commands.store.list_for_discord_channel(
            interaction.channel_id, interaction.guild_id
        )
        needle = current.lower()
        choices = [
            app_commands.Choice(name=f"{s.name} ({s.id})"[:100], value=s.id)
            for s in schedules
            if needle in s.id.lower() or needle in s.name.lower()
        ]
        return choices[:AUTOCOMPLETE_LIMIT]

    async def _respond(
        self,
        interaction: discord.Interaction,
        request: CommandRequest,
        *,
        ephemeral: bool = False,
    ) -> CommandResponse:
        await interaction.response.defer(ephemeral=ephemeral)
        response = await self.run_command(request)
        await interaction.followup.send(truncate_message(response.text), ephemeral=ephemeral)
        return response

    async def _require_text_channel(self, interaction: discord.Interaction) -> bool:
        if interaction.guild_id is not None and isinstance(
            interaction.channel, discord.TextChannel
        ):
            return True
        await interaction.response.send_message(
            "This command can only be used in text channels.", ephemeral=True
        )
        return False

    def _register_events(self) -> None:
        @self._client.event
        async def on_ready() -> None:
            logger.info(
                "discord_bot_ready",
                extra={"discord.user": str(self._client.user)},
            )
            if self._synced:
                return
            try:
                synced = await self._tree.sync()
            except discord.HTTPException as e:
                logger.error("discord_command_sync_failed", extra={"error.message": str(e)})
                return
            self._synced = True
            logger.info("discord_commands_synced", extra={"discord.command_count": len(synced)})

    def _register_commands(self) -> None:
        group = app_commands.Group(
            name="schedule", description="Manage automated schedules for this channel"
        )

        @group.command(name="create", description="Create a new schedule for this channel")
        @app_commands.rename(kind="type")
        @app_commands.describe(
            kind="The type of content to schedule",
            frequency="How often to post (preset options)",
            cron="Custom cron expression (overrides frequency)",
            name="A name for this schedule (optional)",
        )
        @app_commands.choices(kind=KIND_CHOICES, frequency=FREQUENCY_CHOICES)
        async def create(
            interaction: discord.Interaction,
            kind: app_commands.Choice[str],
            frequency: app_commands.Choice[str] | None = None,
            cron: str | None = None,
            name: str | None = None,
        ) -> None:
            if not await self._require_text_channel(interaction):
                return
            request = self.build_request(
                interaction,
                "create",
                content_kind=kind.value,
                frequency=cron or (frequency.value if frequency else None),
                name=name,
            )
            await self._respond(interaction, request)

        @group.command(name="list", description="List all schedules for this channel")
        async def list_schedules(interaction: discord.Interaction) -> None:
            if not await self._require_text_channel(interaction):
                return
            await self._respond(interaction, self.build_request(interaction, "list"))

        async def manage(
            interaction: discord.Interaction, action: str, schedule_id: str
        ) -> None:
            if not await self._require_text_channel(interaction):
                return
            request = self.build_request(interaction, action, schedule_id=schedule_id)
            await self._respond(interaction, request, ephemeral=True)

        # Autocomplete callbacks must be plain functions, not bound methods
        async def id_choices(
            interaction: discord.Interaction, current: str
        ) -> list[app_commands.Choice[str]]:
            return await self.schedule_choices(interaction, current)

        @group.command(name="delete", description="Delete a schedule")
        @app_commands.rename(schedule_id="id")
        @app_commands.describe(schedule_id="The ID of the schedule to delete")
        @app_commands.autocomplete(schedule_id=id_choices)
        async def delete(interaction: discord.Interaction, schedule_id: str) -> None:
            await manage(interaction, "delete", schedule_id)

        @group.command(name="pause", description="Pause a schedule")
        @app_commands.rename(schedule_id="id")
        @app_commands.describe(schedule_id="The ID of the schedule to pause")
        @app_commands.autocomplete(schedule_id=id_choices)
        async def pause(interaction: discord.Interaction, schedule_id: str) -> None:
            await manage(interaction, "pause", schedule_id)

        @group.command(name="resume", description="Resume a paused schedule")
        @app_commands.rename(schedule_id="id")
        @app_commands.describe(schedule_id="The ID of the schedule to resume")
        @app_commands.autocomplete(schedule_id=id_choices)
        async def resume(interaction: discord.Interaction, schedule_id: str) -> None:
            await manage(interaction, "resume", schedule_id)

        @group.command(name="help", description="Show schedule command help")
        async def help_command(interaction: discord.Interaction) -> None:
            await self._respond(
                interaction, self.build_request(interaction, "help"), ephemeral=True
            )

        self._tree.add_command(group)

        @self._tree.command(name="random-artist", description="Get a random artist")
        async def random_artist(interaction: discord.Interaction) -> None:
            request = self.build_request(interaction, "random", content_kind="artist")
            await self._respond(interaction, request)

        @self._tree.command(name="random-nft", description="Get a random NFT")
        async def random_nft(interaction: discord.Interaction) -> None:
            request = self.build_request(interaction, "random", content_kind="nft")
            await self._respond(interaction, request)
