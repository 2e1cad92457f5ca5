"""Data models for the module dependency graph.

  Files are modules. Edges are import relationships between them; an
  edge to a bare package specifier (``react``, ``lodash/fp``) is external
  and never participates in cycles, layers or coupling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class EdgeType(Enum):
    IMPORT = "import"
    REQUIRE = "require"
    DYNAMIC = "dynamic"


# ── Per-file facts ─────────────────────────────────────────────────


@dataclass
class ImportRecord:
    specifier: str
    kind: EdgeType
    line: int
    names: list[str] = field(default_factory=list)
    is_external: bool = False
    resolved: Optional[str] = None  # canonical target, internal imports only


@dataclass
class ExportRecord:
    name: str
    kind: str  # function | class | variable | interface | type | enum
    line: int
    is_default: bool = False

    @property
    def is_abstract(self) -> bool:
        return self.kind in ("interface", "type") or (
            self.kind == "class" and "Abstract" in self.name
        )


@dataclass
class Coupling:
    """Martin package metrics for one module."""

    afferent: int = 0  # Ca: modules depending on this one
    efferent: int = 0  # Ce: distinct internal modules this one depends on
    instability: float = 0.0  # Ce / (Ca + Ce), 0 when isolated
    abstractness: float = 0.0
    distance: float = 0.0  # |A + I - 1|


@dataclass
class Module:
    file_path: str
    size: int
    imports: list[ImportRecord] = field(default_factory=list)
    exports: list[ExportRecord] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    external_dependencies: list[str] = field(default_factory=list)
    unresolved_imports: list[str] = field(default_factory=list)
    complexity: int = 1
    coupling: Coupling = field(default_factory=Coupling)


# ── Edges and graph ────────────────────────────────────────────────


@dataclass
class DependencyEdge:
    from_path: str
    to: str
    type: EdgeType
    imported_symbols: list[str] = field(default_factory=list)
    is_external: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_path,
            "to": self.to,
            "type": self.type.value,
            "importedSymbols": list(self.imported_symbols),
            "isExternal": self.is_external,
        }


@dataclass
class ModuleGraph:
    """Directed graph: ``adjacency[A]`` contains B means A imports B."""

    modules: dict[str, Module] = field(default_factory=dict)
    edges: list[DependencyEdge] = field(default_factory=list)
    truncated: bool = False

    @property
    def internal_edges(self) -> list[DependencyEdge]:
        return [e for e in self.edges if not e.is_external]

    def adjacency(self) -> dict[str, list[str]]:
        adj: dict[str, list[str]] = {path: [] for path in self.modules}
        for edge in self.internal_edges:
            adj[edge.from_path].append(edge.to)
        return adj

    def reverse(self) -> dict[str, list[str]]:
        rev: dict[str, list[str]] = {path: [] for path in self.modules}
        for edge in self.internal_edges:
            rev[edge.to].append(edge.from_path)
        return rev


@dataclass
class GraphMetrics:
    total_modules: int = 0
    total_dependencies: int = 0
    external_dependencies: int = 0
    circular_dependencies: int = 0
    average_coupling: float = 0.0
    max_depth: int = 0
    modularity: float = 0.0
    stability: float = 0.0
