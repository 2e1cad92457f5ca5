"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import DEFAULT_RELIABILITY, CorrelationConfig, load_config
from ..exceptions import InvalidPathError, UnknownToolError
from ..ingestion import JsonFindingsAdapter
from ..models import Severity

console = Console()

SEVERITY_CHOICES = ["info", "low", "medium", "high", "critical"]

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "cyan",
    "info": "dim",
}


def parse_tool_roots(values: Optional[list[str]]) -> dict[str, str]:
    """Turn ``TOOL=PATH`` pairs into a tool_roots mapping.

    Raises:
        UnknownToolError: TOOL is not in the reliability table
        InvalidPathError: the pair has no ``=``
    """
    roots: dict[str, str] = {}
    for value in values or []:
        tool, sep, path = value.partition("=")
        tool = tool.strip().lower()
        if not sep or not tool or not path.strip():
            raise InvalidPathError(Path(value), "expected TOOL=PATH")
        if tool not in DEFAULT_RELIABILITY:
            raise UnknownToolError(tool, DEFAULT_RELIABILITY)
        roots[tool] = path.strip()
    return roots


def resolve_config(
    config: Optional[Path] = None,
    timeout: Optional[float] = None,
    tool_roots: Optional[list[str]] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> CorrelationConfig:
    """Build configuration from CLI options."""
    overrides: dict = {}
    if timeout is not None:
        overrides["analysis_timeout"] = timeout
    roots = parse_tool_roots(tool_roots)
    if roots:
        overrides["tool_roots"] = roots
    if since is not None:
        overrides["since"] = since
    if until is not None:
        overrides["until"] = until
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def resolve_project(target: str, config: CorrelationConfig) -> Path:
    """A directory path, or the name of a configured project."""
    path = Path(target)
    if not path.is_dir() and target in config.projects:
        path = Path(config.projects[target]).expanduser()
    if not path.is_dir():
        raise InvalidPathError(path, "project root is not a directory")
    return path.resolve()


def build_adapters(findings: list[Path], tool: Optional[str] = None) -> list[JsonFindingsAdapter]:
    return [JsonFindingsAdapter(path, tool_name=tool) for path in findings]


def parse_severity(value: Optional[str]) -> Optional[Severity]:
    return Severity(value.lower()) if value else None
