"""``routewise drain`` — receive, print and delete messages from a queue."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from routewise.config import RoutewiseConfig
from routewise.errors import ConfigurationError
from routewise.routing.destinations.queue import QueueMessage, open_queue

console = Console()


def drain_cmd(
    queue_url: str = typer.Argument(..., help="Queue URL (memory://... or sqlite:///...)."),
    max_messages: int = typer.Option(
        100, "--max", "-n", help="Maximum number of messages to drain."
    ),
    keep: bool = typer.Option(
        False, "--keep", help="Release messages back to the queue instead of deleting."
    ),
) -> None:
    """Drain up to ``--max`` messages from a queue and print them."""
    config = RoutewiseConfig()
    try:
        queue = open_queue(queue_url)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    with queue:
        messages: list[QueueMessage] = []
        while len(messages) < max_messages:
            batch = queue.dequeue(min(config.batch_size, max_messages - len(messages)))
            if not batch:
                break
            messages.extend(batch)

        if not messages:
            console.print(f"[dim]{queue.destination_name}: no visible messages.[/dim]")
            return

        table = Table(title=f"{queue.destination_name} ({len(messages)} messages)")
        table.add_column("Message ID", style="cyan")
        table.add_column("Receives", justify="right")
        table.add_column("Attributes")
        table.add_column("Body")

        for message in messages:
            attrs = ", ".join(f"{k}={v}" for k, v in sorted(message.attributes.items()))
            table.add_row(
                message.message_id,
                str(message.receive_count),
                attrs,
                message.body.decode("utf-8", errors="replace"),
            )
            # Released messages only become visible again after the loop above.
            if keep:
                queue.release(message.receipt_handle)
            else:
                queue.ack(message.receipt_handle)

        console.print(table)
