"""Scheduling subsystem: durable schedules and their live cron timers.

Public API:
- ScheduleStore: JSON-backed registry of schedule definitions
- ScheduleEngine: One live timer per enabled schedule, runs firings
- ScheduleTimer: The cancelable task behind a single live schedule

Types:
- ScheduleDefinition: A named recurring job for one or more destinations
- ScheduleRequest: User input for creating a schedule
"""

from artfeed.scheduling.cron import (
    describe_cron,
    next_fire_time,
    resolve_frequency,
    validate_cron,
)
from artfeed.scheduling.engine import ScheduleEngine, ScheduleTimer
from artfeed.scheduling.errors import (
    DispatchError,
    PersistenceError,
    ScheduleError,
    ScheduleNotFoundError,
    SchedulePermissionError,
    ScheduleValidationError,
)
from artfeed.scheduling.store import ScheduleStore
from artfeed.scheduling.types import (
    ContentKind,
    CreatedBy,
    DiscordTarget,
    Platform,
    ScheduleDefinition,
    ScheduleRequest,
    TelegramTarget,
)

__all__ = [
    "ContentKind",
    "CreatedBy",
    "DiscordTarget",
    "DispatchError",
    "PersistenceError",
    "Platform",
    "ScheduleDefinition",
    "ScheduleEngine",
    "ScheduleError",
    "ScheduleNotFoundError",
    "SchedulePermissionError",
    "ScheduleRequest",
    "ScheduleStore",
    "ScheduleTimer",
    "ScheduleValidationError",
    "TelegramTarget",
    "describe_cron",
    "next_fire_time",
    "resolve_frequency",
    "validate_cron",
]
