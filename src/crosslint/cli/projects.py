"""Projects command: list the named project roots from configuration."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import ConfigurationError
from . import app
from ._common import console, resolve_config


@app.command()
def projects(
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List configured projects.

    Projects come from the [projects] table of crosslint.toml and can be
    passed to [bold]crosslint analyze[/bold] by name.
    """
    try:
        settings = resolve_config(config=config)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rows = [
        {"name": name, "path": path, "exists": Path(path).expanduser().is_dir()}
        for name, path in sorted(settings.projects.items())
    ]

    if json_output:
        print(json.dumps(rows, indent=2))
        raise typer.Exit(0)

    if not rows:
        console.print(
            "[yellow]No projects configured.[/yellow] "
            "Add a [bold]\\[projects][/bold] table to crosslint.toml."
        )
        raise typer.Exit(0)

    table = Table(title="Projects", show_header=True)
    table.add_column("Name", style="bold")
    table.add_column("Path")
    table.add_column("Exists")
    for row in rows:
        table.add_row(row["name"], row["path"], "[green]yes[/green]" if row["exists"] else "[red]no[/red]")
    console.print(table)
