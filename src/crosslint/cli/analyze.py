"""Main analysis command: run the correlation pipeline over a project."""

from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.panel import Panel
from rich.table import Table

from ..exceptions import ConfigurationError, FatalError
from ..logging_config import setup_logging
from ..pipeline import CorrelationPipeline
from ..report import UnifiedReport
from . import app
from ._common import (
    SEVERITY_CHOICES,
    SEVERITY_STYLES,
    build_adapters,
    console,
    parse_severity,
    resolve_config,
    resolve_project,
)

MAX_ROWS = 10


@app.command()
def analyze(
    target: str = typer.Argument(
        ".",
        help="Project root, or the name of a configured project",
    ),
    findings: List[Path] = typer.Option(
        ...,
        "--findings",
        "-f",
        help="Findings JSON export (repeatable)",
        dir_okay=False,
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
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the JSON report to this file",
        dir_okay=False,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the JSON report",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds allowed for each external call (git log, git show)",
        min=1,
    ),
    tool_root: Optional[List[str]] = typer.Option(
        None,
        "--tool-root",
        help="Per-tool path root as TOOL=PATH (repeatable)",
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
    since: Optional[str] = typer.Option(
        None,
        "--since",
        help="Only read commits on or after this ISO date",
    ),
    until: Optional[str] = typer.Option(
        None,
        "--until",
        help="Only read commits on or before this ISO date (a bare date includes the whole day)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
):
    """
    Correlate findings from several tools into one report.

    Normalizes paths, groups cross-tool duplicates, ranks function
    hotspots, analyzes the module graph and reads git history.
    Without git, temporal results are empty.

    [bold cyan]Examples:[/bold cyan]

      crosslint analyze . -f sonar.json -f semgrep.json

      crosslint analyze myproject -f findings.json --severity high --json

      crosslint analyze . -f codeql.json --tool-root codeql=/build/src -o report.json
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    try:
        settings = resolve_config(
            config=config,
            timeout=timeout,
            tool_roots=tool_root,
            since=since,
            until=until,
            verbose=verbose,
            quiet=quiet,
        )
        root = resolve_project(target, settings)
        pipeline = CorrelationPipeline(
            settings,
            root,
            build_adapters(findings, tool),
            min_severity=parse_severity(severity),
        )
        report = pipeline.run()

        if output is not None:
            report.write(output)
            logger.info(f"Report written to {output}")

        if json_output:
            print(report.to_json())
        else:
            _output_rich(report, output)

    except typer.Exit:
        raise

    except ConfigurationError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except FatalError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Fatal:[/red] {e}")
        raise typer.Exit(2)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


def _output_rich(report: UnifiedReport, output: Optional[Path]) -> None:
    metrics = report.metrics
    stats = report.dedup.statistics
    summary = (
        f"[bold]{report.project_key}[/bold]  {metrics.get('totalIssues', 0)} findings, "
        f"{stats.deduplicated_count} after deduplication "
        f"({stats.groups_found} duplicate groups)"
    )
    console.print(Panel(summary, title="Crosslint", border_style="cyan"))

    severity_table = Table(title="Issues by severity", show_header=True)
    severity_table.add_column("Severity")
    severity_table.add_column("Count", justify="right")
    for name, count in metrics.get("severityCounts", {}).items():
        severity_table.add_row(f"[{SEVERITY_STYLES[name]}]{name}[/]", str(count))
    console.print(severity_table)

    clusters = sorted(report.functions.clusters, key=lambda c: -c.hotspot_score)[:MAX_ROWS]
    if clusters:
        table = Table(title="Function hotspots", show_header=True)
        table.add_column("Function")
        table.add_column("File")
        table.add_column("Issues", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Risk")
        for cluster in clusters:
            table.add_row(
                cluster.span.name,
                cluster.span.file_path,
                str(len(cluster.issues)),
                str(cluster.hotspot_score),
                cluster.risk.value,
            )
        console.print(table)

    violations = report.architecture.violations
    if violations:
        table = Table(title="Architectural violations", show_header=True)
        table.add_column("Type")
        table.add_column("Severity")
        table.add_column("Description")
        for violation in violations[:MAX_ROWS]:
            table.add_row(
                violation.type.value,
                f"[{SEVERITY_STYLES[violation.severity.value]}]{violation.severity.value}[/]",
                violation.description,
            )
        console.print(table)
        if len(violations) > MAX_ROWS:
            console.print(f"[dim]... and {len(violations) - MAX_ROWS} more[/dim]")

    temporal = report.temporal
    if temporal.git_available:
        console.print(
            f"Git history: {len(temporal.commits)} commits, "
            f"{len(temporal.patterns)} patterns, {len(temporal.regressions)} regressions"
        )
        prediction = temporal.predictions.issues
        if prediction is not None:
            console.print(
                f"Forecast ({prediction.horizon_days}d): {prediction.predicted_value:.0f} issues "
                f"(now {prediction.current_value:.0f}, confidence {prediction.confidence:.0%})"
            )
    else:
        console.print("[dim]Git history unavailable; temporal analysis skipped[/dim]")

    if report.errors:
        console.print(f"[yellow]{len(report.errors)} recovered errors[/yellow] (see --json)")
        for record in report.errors[:MAX_ROWS]:
            console.print(f"  [{record.code.value}] {record.stage}: {record.message}")

    if output is not None:
        console.print(f"[green]Report written to[/green] {output}")
