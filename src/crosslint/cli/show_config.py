"""Config command: print the resolved configuration."""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import ConfigurationError
from . import app
from ._common import console, resolve_config


@app.command("config")
def show_config(
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
    Show the configuration after merging files, environment and defaults.
    """
    try:
        settings = resolve_config(config=config)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    values = asdict(settings)

    if json_output:
        print(json.dumps(values, indent=2))
        raise typer.Exit(0)

    table = Table(title="Configuration", show_header=True)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    thresholds = values.pop("thresholds")
    for key, value in values.items():
        table.add_row(key, _render(value))
    for key, value in thresholds.items():
        table.add_row(f"thresholds.{key}", _render(value))
    console.print(table)


def _render(value) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items()) or "[dim]-[/dim]"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or "[dim]-[/dim]"
    if value is None:
        return "[dim]-[/dim]"
    return str(value)
