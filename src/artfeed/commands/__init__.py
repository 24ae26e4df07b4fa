"""Platform-neutral schedule commands."""

from artfeed.commands.handlers import ScheduleCommands
from artfeed.commands.types import CommandOutcome, CommandRequest, CommandResponse

__all__ = [
    "CommandOutcome",
    "CommandRequest",
    "CommandResponse",
    "ScheduleCommands",
]
