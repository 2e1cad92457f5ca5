"""Tool adapters: turn native findings files into RawFinding records.

Invoking analyzers is out of scope; adapters only read what a tool has
already written. ``JsonFindingsAdapter`` accepts the field spellings used
by the common exporters so one adapter covers most tools.
"""

from __future__ import annotations

import hashlib
import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from .exceptions import AdapterUnavailableError, ParseError
from .logging_config import get_logger
from .models import RawFinding

logger = get_logger(__name__)

# First matching key wins
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "tool_name": ("toolName", "tool", "source"),
    "rule_id": ("ruleId", "rule", "check_id", "checkId", "rule_id"),
    "path": ("path", "file", "filePath", "filename", "component", "location"),
    "line": ("line", "startLine", "start_line", "lineNumber"),
    "column": ("column", "startColumn", "start_column"),
    "end_line": ("endLine", "end_line"),
    "end_column": ("endColumn", "end_column"),
    "severity": ("severity", "level", "priority"),
    "description": ("description", "message", "msg"),
    "title": ("title", "name"),
    "analysis_type": ("type", "analysisType", "category", "kind"),
    "id": ("id", "key", "issueId"),
}

_CONSUMED_KEYS = {alias for aliases in _FIELD_ALIASES.values() for alias in aliases}


@runtime_checkable
class ToolAdapter(Protocol):
    """Source of raw findings for one tool."""

    name: str

    def fetch(self) -> list[RawFinding]:
        ...


class JsonFindingsAdapter:
    """Read findings from a JSON export.

    The file holds either a list of findings or an object with an
    ``issues`` (or ``findings``) list and an optional ``tool`` name that
    applies to every entry lacking its own.
    """

    def __init__(self, path: Path, tool_name: Optional[str] = None):
        self.path = Path(path)
        self.name = tool_name or self.path.stem

    def fetch(self) -> list[RawFinding]:
        if not self.path.is_file():
            raise AdapterUnavailableError(self.name, f"findings file not found: {self.path}")

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise AdapterUnavailableError(self.name, str(e))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(str(self.path), str(e))

        default_tool = self.name
        if isinstance(payload, dict):
            default_tool = payload.get("toolName") or payload.get("tool") or default_tool
            entries = payload.get("issues", payload.get("findings"))
        else:
            entries = payload

        if not isinstance(entries, list):
            raise ParseError(str(self.path), "expected a list of findings")

        findings = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ParseError(str(self.path), f"finding #{position} is not an object")
            findings.append(finding_from_mapping(entry, default_tool))

        logger.debug("Read %d findings from %s", len(findings), self.path)
        return findings


def finding_from_mapping(entry: dict[str, Any], default_tool: str = "unknown") -> RawFinding:
    """Build a RawFinding from one loosely-shaped JSON object."""
    values: dict[str, Any] = {}
    for field_name, aliases in _FIELD_ALIASES.items():
        for alias in aliases:
            if alias in entry and entry[alias] is not None:
                values[field_name] = entry[alias]
                break

    metadata = dict(entry.get("metadata") or {})
    for key, value in entry.items():
        if key not in _CONSUMED_KEYS and key != "metadata":
            metadata.setdefault(key, value)

    path = values.get("path")
    if isinstance(path, dict):
        # Data-flow location objects
        path = path.get("fileName") or path.get("path") or path.get("file")

    return RawFinding(
        tool_name=str(values.get("tool_name", default_tool)),
        rule_id=str(values.get("rule_id", "unknown")),
        path=None if path is None else str(path),
        severity=None if values.get("severity") is None else str(values["severity"]),
        description=str(values.get("description", "")),
        line=_as_int(values.get("line")),
        column=_as_int(values.get("column")),
        end_line=_as_int(values.get("end_line")),
        end_column=_as_int(values.get("end_column")),
        title=values.get("title"),
        analysis_type=values.get("analysis_type"),
        id=None if values.get("id") is None else str(values["id"]),
        metadata=metadata,
    )


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def content_id(finding: RawFinding) -> str:
    """Deterministic id derived from the finding's content."""
    key = "\x1f".join(
        [
            finding.tool_name.lower(),
            finding.rule_id,
            finding.path or "",
            "" if finding.line is None else str(finding.line),
            finding.description,
        ]
    )
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


def assign_ids(findings: Iterable[RawFinding]) -> list[str]:
    """Stable ids, one per finding, in input order.

    Findings that share a base id (an explicit id reused by two tools, or
    identical content) are suffixed ``-1``, ``-2``... in content order,
    so shuffling the input never moves a suffix to a different finding.
    """
    findings = list(findings)
    bases = [f.id or f"{f.tool_name.lower()}-{content_id(f)}" for f in findings]

    by_base: dict[str, list[int]] = defaultdict(list)
    for index, base in enumerate(bases):
        by_base[base].append(index)

    ids = list(bases)
    for base, indices in by_base.items():
        if len(indices) < 2:
            continue
        ranked = sorted(indices, key=lambda i: (content_id(findings[i]), repr(findings[i])))
        for count, index in enumerate(ranked[1:], start=1):
            ids[index] = f"{base}-{count}"
    return ids
