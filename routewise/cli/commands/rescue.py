"""``routewise rescue`` — run the rescue consumer over a notification batch."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from routewise.config import RoutewiseConfig
from routewise.consumers.rescue import RescueConsumer
from routewise.errors import ConfigurationError, RoutewiseError

console = Console()


def rescue_cmd(
    notification_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help='JSON file shaped {"Records": [...]}.'
    ),
) -> None:
    """Feed a notification batch to the rescue consumer and report per record."""
    try:
        consumer = RescueConsumer.from_config(RoutewiseConfig())
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        notification = json.loads(notification_file.read_text(encoding="utf-8"))
        report = consumer.handle_notification(notification)
    except (json.JSONDecodeError, RoutewiseError) as exc:
        console.print(f"[red]Invalid notification:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        consumer.secondary_queue.close()

    table = Table(title="Rescue batch")
    table.add_column("Record", style="cyan")
    table.add_column("Status")
    table.add_column("Error")

    styles = {"ok": "green", "forwarded": "yellow", "failed": "red"}
    for outcome in report.outcomes:
        style = styles[outcome.status.value]
        table.add_row(outcome.record_id, f"[{style}]{outcome.status.value}[/{style}]", outcome.error)

    console.print(table)
    console.print(json.dumps(report.to_batch_item_failures()), markup=False, highlight=False)
    if not report.all_succeeded:
        raise typer.Exit(code=1)
