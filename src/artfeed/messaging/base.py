"""Abstract interface for messaging platforms."""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from artfeed.commands import CommandRequest, CommandResponse, ScheduleCommands
from artfeed.scheduling.types import Platform


@runtime_checkable
class MessageSender(Protocol):
    """Delivers a plain-text message to one destination.

    Implementations raise ``DispatchError`` when delivery fails.
    """

    async def send(self, text: str, destination_id: str) -> None: ...


class ChatBot(ABC):
    """A messaging platform bot.

    Bots deliver scheduled messages and translate platform commands into
    ``CommandRequest`` objects for ``ScheduleCommands``.
    """

    def __init__(self, commands: ScheduleCommands):
        self._commands = commands

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Platform this bot serves."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Connect and begin receiving commands. Runs until ``stop``."""
        ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def send(self, text: str, destination_id: str) -> None:
        """Send a message to a channel or chat.

        Raises:
            DispatchError: If the platform rejected the message.
        """
        ...

    async def run_command(self, request: CommandRequest) -> CommandResponse:
        return await self._commands.dispatch(request)
