"""CLI framework for pulseboard."""
from __future__ import annotations

from pulseboard.cli.app import ExitCode
from pulseboard.cli.app import app
from pulseboard.cli.app import run_app

__all__ = ["app", "run_app", "ExitCode"]
