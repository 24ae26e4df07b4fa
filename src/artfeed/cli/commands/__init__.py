"""CLI command modules."""

from artfeed.cli.commands import config, schedule, serve

__all__ = [
    "config",
    "schedule",
    "serve",
]
