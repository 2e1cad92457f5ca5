"""Search command: filter normalized findings by a term."""

import json
from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.markup import escape
from rich.table import Table

from ..exceptions import AnalysisError, ConfigurationError
from ..models import Issue, Severity
from ..normalization import EntityResolver, PathNormalizer, normalize_findings
from ..report import to_jsonable
from . import app
from ._common import (
    SEVERITY_CHOICES,
    SEVERITY_STYLES,
    build_adapters,
    console,
    parse_severity,
    resolve_config,
)


def matches(issue: Issue, term: str) -> bool:
    """Case-insensitive match over rule, path and description."""
    needle = term.lower()
    haystack = (issue.rule_id, issue.canonical_path or issue.original_path or "", issue.description)
    return any(needle in field.lower() for field in haystack)


@app.command()
def search(
    term: str = typer.Argument(..., help="Text to look for in rule ids, paths and descriptions"),
    findings: List[Path] = typer.Option(
        ...,
        "--findings",
        "-f",
        help="Findings JSON export (repeatable)",
        dir_okay=False,
    ),
    root: Path = typer.Option(
        Path("."),
        "--root",
        help="Project root used to normalize absolute paths",
        file_okay=False,
    ),
    tool: Optional[str] = typer.Option(
        None,
        "--tool",
        help="Tool name for findings that do not name one",
    ),
    severity: Optional[str] = typer.Option(
        None,
        "--severity",
        "-s",
        help="Keep issues at or above this severity",
        click_type=click.Choice(SEVERITY_CHOICES, case_sensitive=False),
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Search normalized findings.

    [bold cyan]Examples:[/bold cyan]

      crosslint search sql -f sonar.json -f semgrep.json

      crosslint search src/api -f findings.json --severity high --json
    """
    try:
        settings = resolve_config()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    raw = []
    for adapter in build_adapters(findings, tool):
        try:
            raw.extend(adapter.fetch())
        except AnalysisError as e:
            console.print(f"[yellow]Skipping {adapter.path}:[/yellow] {e}")

    normalizer = PathNormalizer(root.resolve().as_posix(), settings.tool_roots)
    issues = normalize_findings(raw, normalizer, EntityResolver()).issues

    floor: Optional[Severity] = parse_severity(severity)
    hits = [
        i for i in issues if matches(i, term) and (floor is None or i.severity.rank >= floor.rank)
    ]

    if json_output:
        print(json.dumps(to_jsonable(hits), indent=2))
        raise typer.Exit(0)

    if not hits:
        console.print(f"[yellow]No findings match[/yellow] {term!r}")
        raise typer.Exit(0)

    table = Table(title=f"{len(hits)} findings matching {term!r}", show_header=True)
    table.add_column("Severity")
    table.add_column("Tool")
    table.add_column("Rule")
    table.add_column("Location")
    table.add_column("Description")
    for issue in hits:
        location = issue.canonical_path or f"[dim]{issue.original_path}[/dim]"
        if issue.line is not None:
            location = f"{location}:{issue.line}"
        table.add_row(
            f"[{SEVERITY_STYLES[issue.severity.value]}]{issue.severity.value}[/]",
            issue.tool_name,
            escape(issue.rule_id),
            location,
            escape(issue.description),
        )
    console.print(table)
