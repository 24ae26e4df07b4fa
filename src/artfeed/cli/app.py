"""Main CLI application."""

import typer

from artfeed.cli.commands import config, schedule, serve

app = typer.Typer(
    name="artfeed",
    help="Artfeed - scheduled art posts for Discord and Telegram",
    no_args_is_help=True,
)

serve.register(app)
schedule.register(app)
config.register(app)


if __name__ == "__main__":
    app()
