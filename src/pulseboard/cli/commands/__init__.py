"""CLI commands for pulseboard."""
