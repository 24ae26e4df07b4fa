"""Schedule inspection commands."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import click
import typer

from artfeed.cli.console import (
    console,
    create_table,
    dim,
    error,
    status_label,
    warning,
)
from artfeed.scheduling import ScheduleDefinition, describe_cron, next_fire_time


def _format_countdown(next_fire: datetime | None) -> str:
    """Format a countdown string for the next fire time."""
    if next_fire is None:
        return "[dim]-[/dim]"

    now = datetime.now(UTC)
    if next_fire <= now:
        return "[green]now[/green]"

    total_minutes = int((next_fire - now).total_seconds()) // 60
    if total_minutes < 60:
        return f"in {total_minutes}m"

    hours, minutes = divmod(total_minutes, 60)
    if hours < 24:
        return f"in {hours}h {minutes}m" if minutes else f"in {hours}h"

    days, hours = divmod(hours, 24)
    return f"in {days}d {hours}h" if hours else f"in {days}d"


def _destination(schedule: ScheduleDefinition) -> str:
    parts = []
    if schedule.discord is not None and schedule.discord.channel_id:
        parts.append(f"discord:{schedule.discord.channel_id}")
    if schedule.telegram is not None and schedule.telegram.chat_id:
        parts.append(f"telegram:{schedule.telegram.chat_id}")
    return ", ".join(parts) or "[dim]none[/dim]"


def _next_fire(schedule: ScheduleDefinition, timezone: str) -> datetime | None:
    if not schedule.enabled or not schedule.has_destination:
        return None
    try:
        return next_fire_time(schedule.cron_expression, timezone=timezone)
    except (ValueError, KeyError):
        return None


def register(app: typer.Typer) -> None:
    """Register the schedule command."""

    @app.command()
    def schedule(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: list, show"),
        ] = None,
        schedule_id: Annotated[
            str | None,
            typer.Option(
                "--id",
                "-i",
                help="Schedule ID for show",
            ),
        ] = None,
        store_path: Annotated[
            Path | None,
            typer.Option(
                "--store",
                "-s",
                help="Path to schedules.json (default: $ARTFEED_HOME/schedules.json)",
            ),
        ] = None,
        timezone: Annotated[
            str,
            typer.Option(
                "--timezone",
                "-t",
                help="Timezone used to compute next fire times",
            ),
        ] = "UTC",
    ) -> None:
        """Inspect stored schedules.

        Changes to schedules are made from Discord or Telegram; this command
        is read-only.

        Examples:
            artfeed schedule list
            artfeed schedule show --id telegram-1700000000000-a1b2c3
        """
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from artfeed.config.paths import get_schedules_path
        from artfeed.scheduling import ScheduleStore

        path = store_path.expanduser() if store_path else get_schedules_path()
        if not path.exists():
            warning(f"No schedule store at {path}")
            return

        store = ScheduleStore(path)
        store.load()

        if action == "list":
            _schedule_list(store, timezone)
        elif action == "show":
            if schedule_id is None:
                error("--id is required for show")
                raise typer.Exit(1)
            _schedule_show(store, schedule_id, timezone)
        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: list, show")
            raise typer.Exit(1)


def _schedule_list(store, timezone: str) -> None:
    schedules = store.list_all()
    if not schedules:
        warning("No schedules found")
        return

    table = create_table(
        None,
        [
            ("ID", "dim"),
            ("Name", ""),
            ("Type", ""),
            ("Status", ""),
            ("Destination", ""),
            ("Schedule", ""),
            ("Next Fire", ""),
        ],
    )
    for s in schedules:
        table.add_row(
            s.id,
            s.name,
            s.content_kind.value,
            status_label(s.enabled),
            _destination(s),
            describe_cron(s.cron_expression),
            _format_countdown(_next_fire(s, timezone)),
        )

    console.print(table)
    dim(f"Total: {len(schedules)} schedule(s)")


def _schedule_show(store, schedule_id: str, timezone: str) -> None:
    s = store.get(schedule_id)
    if s is None:
        error(f"No schedule found with ID {schedule_id}")
        raise typer.Exit(1)

    table = create_table(f"Schedule {s.id}", [("Field", "cyan"), ("Value", "")])
    table.add_row("Name", s.name)
    table.add_row("Type", s.content_kind.label)
    table.add_row("Status", status_label(s.enabled, styled=False))
    table.add_row("Cron", f"{s.cron_expression} ({describe_cron(s.cron_expression)})")
    table.add_row("Destination", _destination(s))
    table.add_row("Created", s.created_datetime.isoformat(timespec="seconds"))
    if s.created_by is not None:
        who = s.created_by.username or s.created_by.user_id
        table.add_row("Created by", f"{who} ({s.created_by.platform.value})")
    next_fire = _next_fire(s, timezone)
    table.add_row(
        "Next fire",
        next_fire.isoformat(timespec="seconds") if next_fire else "-",
    )
    console.print(table)
