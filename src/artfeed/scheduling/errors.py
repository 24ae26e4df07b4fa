"""Schedule error types.

Validation, not-found and permission errors are raised before any mutation
and reported to the user. Persistence and dispatch errors are logged by the
component that catches them and never stop the process.
"""


class ScheduleError(Exception):
    """Base class for schedule errors."""


class ScheduleValidationError(ScheduleError, ValueError):
    """Invalid cron syntax, content kind or missing required field."""


class ScheduleNotFoundError(ScheduleError, KeyError):
    """Unknown schedule ID, or one not associated with the destination."""

    def __init__(self, schedule_id: str):
        super().__init__(schedule_id)
        self.schedule_id = schedule_id

    def __str__(self) -> str:
        return f"Schedule not found: {self.schedule_id}"


class SchedulePermissionError(ScheduleError, PermissionError):
    """The schedule exists but the caller is neither its creator nor an admin."""

    def __init__(self, schedule_id: str, user_id: str):
        super().__init__(f"User {user_id} cannot manage schedule {schedule_id}")
        self.schedule_id = schedule_id
        self.user_id = user_id


class PersistenceError(ScheduleError, OSError):
    """Reading or writing the schedule document failed."""


class DispatchError(ScheduleError):
    """Fetching content or delivering a message failed during a firing."""
