"""Main CLI application for pulseboard."""

from __future__ import annotations

import logging
from enum import IntEnum

import typer
from rich.console import Console
from rich.logging import RichHandler

from pulseboard.cli.atyper import ATyper

# Create the main app
app = ATyper(
    name="pulseboard",
    help="Keep a multi-app metrics dashboard in sync",
    add_completion=True,
    no_args_is_help=False,
    invoke_without_command=True,
)


class ExitCode(IntEnum):
    """Exit codes for pulseboard."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    NETWORK_ERROR = 3
    CONFIG_ERROR = 4
    PARTIAL_FAILURE = 5


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route pulseboard's loggers to stderr through rich."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
    )
    logger = logging.getLogger("pulseboard")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.INFO if verbose else logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", "-j", help="Enable JSON output mode"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """Pulseboard - Keep a multi-app metrics dashboard in sync."""
    if version:
        from pulseboard import __version__

        typer.echo(f"pulseboard {__version__}")
        raise typer.Exit()

    # Resolve conflicts: verbose and quiet are mutually exclusive, quiet takes precedence
    if verbose and quiet:
        verbose = False

    ctx.meta["json"] = json
    ctx.meta["no_color"] = no_color
    ctx.meta["verbose"] = verbose
    ctx.meta["quiet"] = quiet

    setup_logging(verbose=verbose, quiet=quiet)

    # If no command provided, run a single sync pass
    if ctx.invoked_subcommand is None:
        from pulseboard.cli.commands.sync import sync_command

        ctx.invoke(sync_command, ctx=ctx, app_id=None)


def make_console(ctx: typer.Context) -> Console:
    """Console honoring the global --no-color flag."""
    return Console(no_color=ctx.meta.get("no_color", False))


def run_app() -> None:
    """Run the CLI app."""
    app()


# Import command modules - they register themselves via @app.command() decorators
# These imports must come after app is defined
from pulseboard.cli.commands import history  # noqa: E402, F401
from pulseboard.cli.commands import sync  # noqa: E402, F401
from pulseboard.cli.commands import watch  # noqa: E402, F401
from pulseboard.cli.commands import config as config_cmd  # noqa: E402

app.add_typer(config_cmd.config_app, name="config")
