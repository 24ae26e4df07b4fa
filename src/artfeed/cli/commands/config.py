"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer
from rich.markup import escape

from artfeed.cli.console import console, create_table, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: search ./config.toml, "
                "$ARTFEED_HOME/config.toml, /etc/artfeed/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        if action != "validate":
            error(f"Unknown action: {action}")
            console.print("Valid actions: validate")
            raise typer.Exit(1)

        import tomllib

        from pydantic import ValidationError

        from artfeed.config import load_config

        try:
            config_obj = load_config(path)
        except FileNotFoundError as e:
            error(f"File not found: {e}")
            raise typer.Exit(1) from None
        except tomllib.TOMLDecodeError as e:
            error(f"Invalid TOML: {e}")
            raise typer.Exit(1) from None
        except ValidationError as e:
            error("Configuration validation failed:")
            console.print()
            for err in e.errors():
                loc = ".".join(str(x) for x in err["loc"]) or "config"
                console.print(f"  [yellow]{loc}[/yellow]: {escape(err['msg'])}")
            raise typer.Exit(1) from None

        table = create_table(
            "Configuration Summary", [("Setting", "cyan"), ("Value", "green")]
        )
        table.add_row(
            "Telegram",
            "configured" if config_obj.telegram_enabled else "[dim]not configured[/dim]",
        )
        table.add_row(
            "Discord",
            "configured" if config_obj.discord_enabled else "[dim]not configured[/dim]",
        )
        table.add_row("Artist endpoint", config_obj.content.artist_endpoint)
        table.add_row("NFT endpoint", config_obj.content.nft_endpoint)
        table.add_row(
            "API key",
            "configured" if config_obj.content.api_key else "[dim]not set[/dim]",
        )
        table.add_row("Schedule store", str(config_obj.scheduler.store_path))
        table.add_row("Timezone", config_obj.scheduler.timezone)

        success("Configuration is valid!")
        console.print()
        console.print(table)
