"""The unified report: the single artifact a pipeline run produces.

Serialization rules:
  - dataclass fields become camelCase keys, in declaration order
  - objects exposing ``to_dict`` serialize through it
  - enums become their values, datetimes ISO-8601, sets sorted lists

``analyzedAt`` is the only field that differs between two runs over the
same inputs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .architecture import ArchitectureResult
from .correlation.models import DedupResult, FunctionClusterResult
from .exceptions import ErrorRecord
from .graph.models import GraphMetrics, ModuleGraph
from .models import Issue
from .temporal.models import TemporalResult

SOURCE = "crosslint"


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_jsonable(obj: Any) -> Any:
    """Convert report values into plain JSON types."""
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        return sorted(to_jsonable(v) for v in obj)
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if hasattr(obj, "to_dict"):
        return to_jsonable(obj.to_dict())
    if isinstance(obj, ErrorRecord):
        return obj.to_json()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {camel_case(f.name): to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    return str(obj)


@dataclass
class UnifiedReport:
    """Everything one run produced, plus the errors it recovered from."""

    project_key: str
    project_path: str
    analyzed_at: datetime
    issues: list[Issue] = field(default_factory=list)
    dedup: DedupResult = field(default_factory=DedupResult)
    functions: FunctionClusterResult = field(default_factory=FunctionClusterResult)
    module_graph: ModuleGraph = field(default_factory=ModuleGraph)
    architecture: ArchitectureResult = field(default_factory=ArchitectureResult)
    temporal: TemporalResult = field(default_factory=TemporalResult)
    metrics: dict[str, Any] = field(default_factory=dict)
    errors: list[ErrorRecord] = field(default_factory=list)
    source_version: str = __version__

    @property
    def graph_metrics(self) -> GraphMetrics:
        return self.architecture.metrics

    def to_dict(self) -> dict[str, Any]:
        temporal = self.temporal
        return to_jsonable(
            {
                "source": SOURCE,
                "sourceVersion": self.source_version,
                "analyzedAt": self.analyzed_at,
                "project": {
                    "key": self.project_key,
                    "path": self.project_path,
                    "metrics": self.metrics,
                },
                "issues": self.issues,
                "duplicateGroups": self.dedup.groups,
                "functionClusters": self.functions.clusters,
                "crossFunctionGroups": self.functions.cross_function_groups,
                "proximityGroups": self.functions.proximity_groups,
                "moduleGraph": {
                    "modules": [self.module_graph.modules[p] for p in sorted(self.module_graph.modules)],
                    "dependencies": self.module_graph.edges,
                    "metrics": self.architecture.metrics,
                    "correlations": self.architecture.correlations,
                    "layers": self.architecture.layers,
                    "cycles": self.architecture.cycles,
                    "truncated": self.module_graph.truncated,
                },
                "architecturalViolations": self.architecture.violations,
                "dependencyClusters": self.architecture.clusters,
                "temporal": {
                    "gitAvailable": temporal.git_available,
                    "commits": temporal.commits,
                    "fileHistory": temporal.file_history,
                    "issueEvolution": temporal.issue_evolution,
                    "patterns": temporal.patterns,
                    "trends": temporal.trends,
                    "authorMetrics": temporal.author_metrics,
                    "regressions": temporal.regressions,
                    "predictions": temporal.predictions,
                },
                "errors": [e.to_json() for e in self.errors],
            }
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=False)

    def write(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
