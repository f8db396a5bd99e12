"""Main Typer application — imports and registers all CLI commands.

Entry point: ``routewise`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from routewise.cli.commands.crew import crew_cmd
from routewise.cli.commands.drain import drain_cmd
from routewise.cli.commands.publish import publish_cmd
from routewise.cli.commands.rescue import rescue_cmd
from routewise.cli.commands.topology_cmd import topology_cmd
from routewise.config import RoutewiseConfig

app = typer.Typer(
    name="routewise",
    help="Routewise: attribute-filtered event routing with a rescue queue.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Override ROUTEWISE_LOG_LEVEL for this run."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or RoutewiseConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="publish", help="Publish one event through the topology.")(publish_cmd)
app.command(name="drain", help="Receive and delete messages from a queue.")(drain_cmd)
app.command(name="rescue", help="Run the rescue consumer on a notification file.")(rescue_cmd)
app.command(name="topology", help="Show the configured subscriptions.")(topology_cmd)
app.command(name="crew", help="Look up the crew of a movie.")(crew_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
