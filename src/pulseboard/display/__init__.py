"""Display utilities for pulseboard.

This module provides rendering and output utilities for both terminal
(Rich-based) and JSON output modes.
"""
from __future__ import annotations

from pulseboard.display.json import decode_json
from pulseboard.display.json import encode_json
from pulseboard.display.json import from_pulse_error
from pulseboard.display.json import output_json
from pulseboard.display.json import output_json_error
from pulseboard.display.json import output_json_pretty
from pulseboard.display.json import sync_report
from pulseboard.display.rich import format_count
from pulseboard.display.rich import format_currency
from pulseboard.display.rich import format_percent
from pulseboard.display.rich import render_aggregate_panel
from pulseboard.display.rich import render_history_table
from pulseboard.display.rich import render_snapshot_table
from pulseboard.display.rich import render_sparkline
from pulseboard.display.rich import summarize_payload

__all__ = [
    # Rich rendering
    "format_currency",
    "format_count",
    "format_percent",
    "render_sparkline",
    "summarize_payload",
    "render_snapshot_table",
    "render_aggregate_panel",
    "render_history_table",
    # JSON output
    "output_json",
    "output_json_pretty",
    "output_json_error",
    "from_pulse_error",
    "sync_report",
    "encode_json",
    "decode_json",
]
