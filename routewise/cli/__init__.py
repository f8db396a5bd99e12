"""Routewise CLI — Typer-based command-line interface.

Provides the ``routewise`` command with subcommands for publishing
events, draining queues, running the rescue consumer, showing the
routing topology, and querying the crew lookup table.

All output uses Rich for formatted terminal display.
"""
