"""Rich console helpers shared by the CLI commands."""

from rich.console import Console
from rich.table import Table

console = Console()

_STYLES = {"error": "red", "warning": "yellow", "success": "green", "dim": "dim"}


def _say(kind: str, msg: str) -> None:
    style = _STYLES[kind]
    console.print(f"[{style}]{msg}[/{style}]")


def error(msg: str) -> None:
    _say("error", msg)


def warning(msg: str) -> None:
    _say("warning", msg)


def success(msg: str) -> None:
    _say("success", msg)


def dim(msg: str) -> None:
    _say("dim", msg)


def status_label(enabled: bool, styled: bool = True) -> str:
    """``active`` or ``paused``, coloured for table cells unless ``styled`` is off."""
    label = "active" if enabled else "paused"
    if not styled:
        return label
    style = _STYLES["success"] if enabled else _STYLES["warning"]
    return f"[{style}]{label}[/{style}]"


def create_table(title: str | None, columns: list[tuple[str, str | dict]]) -> Table:
    """Build a table from ``(header, style)`` or ``(header, column kwargs)`` pairs."""
    table = Table(title=title)
    for header, options in columns:
        kwargs = options if isinstance(options, dict) else {"style": options}
        table.add_column(header, **kwargs)
    return table
