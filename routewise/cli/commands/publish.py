"""``routewise publish`` — publish one event through the configured topology."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from routewise.config import RoutewiseConfig
from routewise.errors import ConfigurationError
from routewise.topology import build_country_topology

console = Console()


def _parse_attributes(pairs: list[str]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--attr")
        attributes[key] = value
    return attributes


def publish_cmd(
    payload: str = typer.Argument(..., help="Message payload (usually JSON)."),
    attr: list[str] = typer.Option(
        [],
        "--attr",
        "-a",
        help="Message attribute as KEY=VALUE.  Repeatable.",
    ),
) -> None:
    """Publish *payload* with the given attributes and show where it went."""
    attributes = _parse_attributes(attr)
    config = RoutewiseConfig()

    try:
        topology = build_country_topology(config)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    with topology:
        report = topology.topic.publish(payload, attributes)

    lines = [
        f"[bold]Event:[/bold]     {report.event_id}",
        f"[bold]Matched:[/bold]   {', '.join(sorted(report.matched)) or '-'}",
        f"[bold]Delivered:[/bold] {', '.join(sorted(report.delivered)) or '-'}",
    ]
    for name, error in sorted(report.errors.items()):
        lines.append(f"[red]Failed:[/red]    {name}: {error}")

    console.print(
        Panel(
            "\n".join(lines),
            title=f"Published to {topology.topic.name}",
            border_style="red" if report.errors else "green",
        )
    )
    if report.errors:
        raise typer.Exit(code=1)
