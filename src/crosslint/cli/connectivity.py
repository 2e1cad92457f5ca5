"""Test command: check that git and the findings inputs are usable."""

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from ..exceptions import AnalysisError, ConfigurationError
from ..temporal import GitCliReader
from . import app
from ._common import build_adapters, console, resolve_config


@app.command("test")
def check(
    path: Path = typer.Argument(
        Path("."),
        help="Project root to check",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    findings: Optional[List[Path]] = typer.Option(
        None,
        "--findings",
        "-f",
        help="Findings JSON export to parse (repeatable)",
        dir_okay=False,
    ),
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
    Check git availability, repository status and findings files.

    Exits 1 if any check fails.

    [bold cyan]Examples:[/bold cyan]

      crosslint test .

      crosslint test . -f sonar.json -f semgrep.json
    """
    try:
        settings = resolve_config(config=config)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    checks: list[dict] = []
    reader = GitCliReader(str(path), version_timeout=settings.git_version_timeout)

    try:
        git_ok = reader.git_runs()
        checks.append(_check("git", git_ok, "git --version" if git_ok else "git not found"))
    except AnalysisError as e:
        git_ok = False
        checks.append(_check("git", False, str(e)))

    if git_ok:
        try:
            repo_ok = reader.is_git_repo()
            checks.append(
                _check("repository", repo_ok, reader.repo_path if repo_ok else "not a git repository")
            )
        except AnalysisError as e:
            checks.append(_check("repository", False, str(e)))
    else:
        checks.append(_check("repository", False, "skipped: git unavailable"))

    for adapter in build_adapters(findings or []):
        try:
            count = len(adapter.fetch())
            checks.append(_check(f"findings:{adapter.path.name}", True, f"{count} findings"))
        except AnalysisError as e:
            checks.append(_check(f"findings:{adapter.path.name}", False, str(e)))

    failed = [c for c in checks if not c["ok"]]

    if json_output:
        print(json.dumps({"checks": checks, "ok": not failed}, indent=2))
    else:
        table = Table(title="Connectivity", show_header=True)
        table.add_column("Check", style="bold")
        table.add_column("Status")
        table.add_column("Detail")
        for c in checks:
            status = "[green]ok[/green]" if c["ok"] else "[red]failed[/red]"
            table.add_row(c["name"], status, c["detail"])
        console.print(table)

    raise typer.Exit(1 if failed else 0)


def _check(name: str, ok: bool, detail: str) -> dict:
    return {"name": name, "ok": ok, "detail": detail}
