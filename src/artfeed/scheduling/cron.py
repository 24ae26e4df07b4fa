"""Cron expression helpers.

Expressions use the standard 5-field syntax (minute hour day-of-month month
day-of-week) and are evaluated with croniter in a configurable timezone.
"""

import logging
import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from croniter import CroniterBadDateError, croniter

from artfeed.scheduling.errors import ScheduleValidationError

logger = logging.getLogger(__name__)

DEFAULT_FREQUENCY = "daily"

FREQUENCY_PRESETS: dict[str, str] = {
    "hourly": "0 * * * *",
    "every hour": "0 * * * *",
    "daily": "0 12 * * *",
    "every day": "0 12 * * *",
    "weekly": "0 12 * * 1",
    "every week": "0 12 * * 1",
}

CRON_DESCRIPTIONS: dict[str, str] = {
    "0 * * * *": "Every hour",
    "0 */6 * * *": "Every 6 hours",
    "0 */12 * * *": "Every 12 hours",
    "0 0 * * *": "Daily at midnight",
    "0 12 * * *": "Daily at noon",
    "0 12 * * 1": "Weekly on Monday at noon",
}

_EVERY_MINUTES_RE = re.compile(r"^every\s+(\d+)\s+minutes?$")
_EVERY_HOURS_RE = re.compile(r"^every\s+(\d+)\s+hours?$")


def resolve_frequency(text: str | None) -> str:
    """Map a preset or natural-language frequency to a cron expression.

    Unrecognized text is returned unchanged so it can be validated as a raw
    cron expression. Out-of-range intervals ("every 90 minutes") are also
    returned unchanged and will fail validation.
    """
    if text is None or not text.strip():
        text = DEFAULT_FREQUENCY
    normalized = " ".join(text.strip().lower().split())

    if preset := FREQUENCY_PRESETS.get(normalized):
        return preset

    if match := _EVERY_MINUTES_RE.match(normalized):
        minutes = int(match.group(1))
        if 1 <= minutes <= 59:
            return f"*/{minutes} * * * *"
    elif match := _EVERY_HOURS_RE.match(normalized):
        hours = int(match.group(1))
        if 1 <= hours <= 23:
            return f"0 */{hours} * * *"

    return text.strip()


def validate_cron(expression: str) -> str:
    """Validate a 5-field cron expression.

    Returns:
        The expression with surrounding whitespace removed.

    Raises:
        ScheduleValidationError: If the expression is not valid or names a
            date that never occurs (e.g. February 30th).
    """
    expression = expression.strip()
    if len(expression.split()) != 5:
        raise ScheduleValidationError(
            f"Cron expression must have 5 fields: {expression!r}"
        )
    if not croniter.is_valid(expression):
        raise ScheduleValidationError(f"Invalid cron expression: {expression!r}")
    try:
        croniter(expression, datetime.now(UTC)).get_next(datetime)
    except CroniterBadDateError as e:
        raise ScheduleValidationError(
            f"Cron expression never fires: {expression!r}"
        ) from e
    return expression


def describe_cron(expression: str) -> str:
    """Convert a cron expression to a human-readable string."""
    if description := CRON_DESCRIPTIONS.get(expression):
        return description
    return f"Custom schedule ({expression})"


def next_fire_time(
    expression: str,
    after: datetime | None = None,
    timezone: str = "UTC",
) -> datetime:
    """Get the next occurrence of a cron expression strictly after ``after``.

    The expression is evaluated in ``timezone`` so that "noon daily" means
    local noon; the result is returned in UTC.
    """
    tz = ZoneInfo(timezone)
    base = (after or datetime.now(UTC)).astimezone(tz)
    next_local = croniter(expression, base).get_next(datetime)
    return next_local.astimezone(UTC)
