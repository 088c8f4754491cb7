"""Config inspection commands for pulseboard."""

from __future__ import annotations

import msgspec
import msgspec.toml
import typer
from rich.panel import Panel
from rich.syntax import Syntax

from pulseboard.cli.app import make_console
from pulseboard.cli.atyper import ATyper
from pulseboard.config.paths import apps_file
from pulseboard.config.paths import cache_dir
from pulseboard.config.paths import config_dir
from pulseboard.config.paths import config_file
from pulseboard.config.paths import credentials_dir
from pulseboard.config.paths import history_dir
from pulseboard.config.paths import state_dir
from pulseboard.config.settings import get_config
from pulseboard.display.json import output_json_pretty

# Create config group
config_app = ATyper(help="Inspect configuration settings.")


def _redacted(config) -> dict:
    """Config as builtins with the OAuth client secret hidden."""
    data = msgspec.to_builtins(config)
    oauth = data.get("oauth", {})
    if oauth.get("google_client_secret"):
        oauth["google_client_secret"] = "********"
    return data


@config_app.command("show")
def config_show_command(ctx: typer.Context) -> None:
    """Display current settings."""
    console = make_console(ctx)

    config = get_config()
    config_path = config_file()
    json_mode = ctx.meta.get("json", False)
    verbose = ctx.meta.get("verbose", False)
    quiet = ctx.meta.get("quiet", False)

    if json_mode:
        output_json_pretty({**_redacted(config), "path": str(config_path)})
        return

    # Quiet mode: minimal output
    if quiet:
        console.print(str(config_path))
        return

    toml_data = msgspec.toml.encode(_redacted(config))
    console.print(
        Panel(Syntax(toml_data.decode(), "toml"), title=f"Config: {config_path}")
    )

    if verbose:
        if config_path.exists():
            console.print(f"[dim]File size: {config_path.stat().st_size} bytes[/dim]")
        else:
            console.print(
                "[dim]Using default configuration (file not created yet)[/dim]"
            )
        console.print(f"[dim]Apps are read from {apps_file()}[/dim]")


@config_app.command("path")
def config_path_command(ctx: typer.Context) -> None:
    """Show file and directory paths used by pulseboard."""
    console = make_console(ctx)
    json_mode = ctx.meta.get("json", False)
    verbose = ctx.meta.get("verbose", False)
    quiet = ctx.meta.get("quiet", False)

    paths = {
        "config_dir": config_dir(),
        "config_file": config_file(),
        "settings_file": apps_file(),
        "cache_dir": cache_dir(),
        "state_dir": state_dir(),
        "credentials_dir": credentials_dir(),
        "history_dir": history_dir(),
    }

    if json_mode:
        output_json_pretty({name: str(path) for name, path in paths.items()})
        return

    # Quiet mode: just the config dir, no labels
    if quiet:
        console.print(str(config_dir()))
        return

    for name, path in paths.items():
        label = name.replace("_", " ").capitalize() + ":"
        line = f"{label:<18}{path}"
        if verbose:
            line += f"  [dim]({'exists' if path.exists() else 'missing'})[/dim]"
        console.print(line)
