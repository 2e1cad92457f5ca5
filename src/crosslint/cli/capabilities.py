"""Capabilities command: what this build can normalize, parse and graph."""

import json

import typer
from rich.table import Table

from ..config import DEFAULT_RELIABILITY, load_config
from ..correlation.boundaries import supported_extensions, supported_languages
from ..exceptions import ConfigurationError
from ..normalization import PathNormalizer
from ..normalization.paths import KNOWN_TOOL_CONFIDENCE, UNKNOWN_TOOL_CONFIDENCE
from . import app
from ._common import console


@app.command()
def capabilities(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List supported tools, boundary-provider languages and graph extensions.
    """
    try:
        settings = load_config()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    known = set(PathNormalizer(".").known_tools)
    tools = [
        {
            "tool": name,
            "reliability": settings.reliability_for(name),
            "normalizationConfidence": (
                KNOWN_TOOL_CONFIDENCE if name in known else UNKNOWN_TOOL_CONFIDENCE
            ),
        }
        for name in sorted(known | set(DEFAULT_RELIABILITY))
    ]
    data = {
        "tools": tools,
        "defaultReliability": settings.default_reliability,
        "unknownToolConfidence": UNKNOWN_TOOL_CONFIDENCE,
        "boundaryLanguages": supported_languages(),
        "boundaryExtensions": supported_extensions(),
        "graphExtensions": list(settings.source_extensions),
    }

    if json_output:
        print(json.dumps(data, indent=2))
        raise typer.Exit(0)

    table = Table(title="Supported tools", show_header=True)
    table.add_column("Tool", style="bold")
    table.add_column("Reliability", justify="right")
    table.add_column("Path confidence", justify="right")
    for row in tools:
        table.add_row(
            row["tool"], f"{row['reliability']:.2f}", f"{row['normalizationConfidence']:.1f}"
        )
    console.print(table)
    console.print(
        f"Other tools: reliability {settings.default_reliability:.2f}, "
        f"path confidence {UNKNOWN_TOOL_CONFIDENCE:.1f}"
    )
    console.print(f"Function boundaries: {', '.join(supported_languages())}")
    console.print(f"Module graph extensions: {', '.join(settings.source_extensions)}")
