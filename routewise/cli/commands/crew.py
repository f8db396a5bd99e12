"""``routewise crew`` — query the movie crew lookup table."""

from __future__ import annotations

import json

import typer
from rich.console import Console

from routewise.config import RoutewiseConfig
from routewise.lookup.crew import CrewStore, get_crew
from routewise.lookup.seed import SEED_CREW

console = Console()


def crew_cmd(
    movie_id: str = typer.Argument(..., help="Movie identifier."),
    role: str = typer.Option(None, "--role", "-r", help="Only crew with this role."),
) -> None:
    """Look up crew for MOVIE_ID and print the HTTP-style response."""
    config = RoutewiseConfig()
    store = CrewStore.from_json(config.crew_seed_path) if config.crew_seed_path else CrewStore(SEED_CREW)

    query = {"role": role} if role else {}
    response = get_crew(store, {"movieId": movie_id}, query)

    console.print(f"[bold]{response.status_code}[/bold]")
    console.print_json(json.dumps(response.body))
    if response.status_code != 200:
        raise typer.Exit(code=1)
