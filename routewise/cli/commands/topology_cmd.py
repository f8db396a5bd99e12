"""``routewise topology`` — show the configured subscriptions."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from routewise.config import RoutewiseConfig
from routewise.models.rules import Rule

console = Console()


def topology_cmd() -> None:
    """Print the reference topology's rules and destinations.

    Reads configuration only; no queue is opened.
    """
    config = RoutewiseConfig()
    allow = Rule.allow(config.classification_attribute, config.routed_values)

    table = Table(title=f"Topic: {config.topic_name}")
    table.add_column("Mode", style="cyan")
    table.add_column("Rule")
    table.add_column("Destination", style="green")

    table.add_row(allow.mode.value, allow.describe(), config.primary_queue_url)
    deny = allow.complement()
    rescue_target = config.secondary_queue_url or "[red]<unset>[/red]"
    table.add_row(
        deny.mode.value,
        deny.describe(),
        f"rescue-consumer (missing {config.required_field!r} -> {rescue_target})",
    )
    console.print(table)

    if not config.secondary_queue_url:
        console.print("[yellow]ROUTEWISE_SECONDARY_QUEUE_URL is not set.[/yellow]")
        raise typer.Exit(code=2)
