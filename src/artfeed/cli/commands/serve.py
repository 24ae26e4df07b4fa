"""Server command for running the Artfeed bots."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Start the bots and run all enabled schedules."""
        try:
            asyncio.run(_run_server(config))
        except KeyboardInterrupt:
            from artfeed.cli.console import dim

            dim("Server stopped")


async def _run_server(config_path: Path | None = None) -> None:
    """Run the service until SIGINT or SIGTERM."""
    import signal
    import tomllib

    from pydantic import ValidationError
    from rich.markup import escape

    from artfeed.cli.console import error
    from artfeed.config import load_config
    from artfeed.logging import configure_logging
    from artfeed.service import ArtfeedService

    configure_logging(use_rich=True, log_to_file=True)

    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        error(str(e))
        raise typer.Exit(1) from None
    except tomllib.TOMLDecodeError as e:
        error(f"Invalid TOML: {e}")
        raise typer.Exit(1) from None
    except ValidationError as e:
        error("Configuration validation failed:")
        for err in e.errors():
            field_path = ".".join(map(str, err["loc"])) or "config"
            error(f"  {field_path}: {escape(err['msg'])}")
        raise typer.Exit(1) from None

    if not (config.telegram_enabled or config.discord_enabled):
        error("No bot token configured. Set TELEGRAM_BOT_TOKEN or DISCORD_TOKEN")
        raise typer.Exit(1)

    service = ArtfeedService(config)

    stop = asyncio.Event()

    def request_shutdown(signum: int) -> None:
        logger.info("shutdown_requested", extra={"signal": signal.Signals(signum).name})
        stop.set()

    running_loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        running_loop.add_signal_handler(signum, request_shutdown, signum)

    await service.run(stop)
