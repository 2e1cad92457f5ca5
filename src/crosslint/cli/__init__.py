"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="crosslint",
    help="Crosslint - Cross-Tool Static Analysis Correlation",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]Crosslint[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_show_version,
        is_eager=True,
    ),
):
    """Correlate findings from several static-analysis tools into one report."""


def main() -> None:
    app()


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .projects import projects as _projects  # noqa: F401, E402
from .search import search as _search  # noqa: F401, E402
from .connectivity import check as _check  # noqa: F401, E402
from .show_config import show_config as _show_config  # noqa: F401, E402
from .capabilities import capabilities as _capabilities  # noqa: F401, E402
