"""Architectural analysis over a built module graph.

Produces dependency clusters (circular, hub, fan-out) and violations
(circular dependency, layer, god module, orphan, external coupling).
Every list is emitted in a deterministic order so reports are stable.
"""

from __future__ import annotations

import math
import posixpath
from typing import Optional, Sequence

from ..config import DEFAULT_THRESHOLDS, ThresholdConfig
from ..graph.algorithms import compute_metrics, find_cycles
from ..graph.models import ModuleGraph
from ..logging_config import get_logger
from ..models import Issue, Severity
from .correlations import find_dependency_correlations
from .layers import classify_modules, find_layer_violations
from .models import (
    ArchitecturalViolation,
    ArchitectureResult,
    ClusterType,
    DependencyCluster,
    ViolationType,
)

logger = get_logger(__name__)

ENTRY_POINTS = frozenset(
    f"{stem}{ext}" for stem in ("index", "main", "app", "server") for ext in (".js", ".ts")
)


def cycle_recommendations(cycle: list[str]) -> list[str]:
    if len(cycle) == 1:
        return [f"Remove the self-import in {cycle[0]}"]
    if len(cycle) == 2:
        return [
            f"Break circular dependency between {cycle[0]} and {cycle[1]} by introducing "
            "an interface or extracting shared code to a separate module."
        ]
    if len(cycle) <= 4:
        return [
            f"Resolve circular dependency chain involving {len(cycle)} modules by "
            "identifying the core responsibility and extracting it to a dedicated "
            "module that others can depend on."
        ]
    return [
        f"Large circular dependency ({len(cycle)} modules) indicates architectural "
        "issues. Consider breaking into separate bounded contexts or applying the "
        "Dependency Inversion Principle."
    ]


class ArchitectureAnalyzer:
    """Cycle, hub, fan-out, layer, god-module and orphan detection.

    Usage:
        analyzer = ArchitectureAnalyzer(config.thresholds)
        result = analyzer.analyze(graph, issues)
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def analyze(self, graph: ModuleGraph, issues: Sequence[Issue] = ()) -> ArchitectureResult:
        adjacency = graph.adjacency()
        cycles = find_cycles(adjacency, set(graph.modules))
        layers = classify_modules(graph)

        clusters: list[DependencyCluster] = []
        clusters.extend(self._cycle_clusters(cycles))
        clusters.extend(self._hub_clusters(graph))
        clusters.extend(self._fan_out_clusters(graph))

        violations: list[ArchitecturalViolation] = []
        violations.extend(self._cycle_violations(cycles))
        violations.extend(find_layer_violations(graph, layers))
        violations.extend(self._god_modules(graph))
        violations.extend(self._orphans(graph))
        violations.extend(self._external_coupling(graph))

        result = ArchitectureResult(
            clusters=clusters,
            violations=violations,
            layers=layers,
            cycles=cycles,
            metrics=compute_metrics(graph, len(cycles)),
            correlations=find_dependency_correlations(graph, issues),
        )
        logger.info(
            f"Architecture: {len(cycles)} cycles, {len(clusters)} clusters, "
            f"{len(violations)} violations"
        )
        return result

    # ── Clusters ────────────────────────────────────────────────────

    def _cycle_clusters(self, cycles: list[list[str]]) -> list[DependencyCluster]:
        return [
            DependencyCluster(
                id=f"circular-{i}",
                modules=list(cycle),
                type=ClusterType.CIRCULAR,
                strength=float(len(cycle)),
                recommendations=cycle_recommendations(cycle),
            )
            for i, cycle in enumerate(cycles, 1)
        ]

    def hub_cutoff(self, module_count: int) -> int:
        t = self.thresholds
        return max(t.hub_min_in_degree, math.ceil(t.hub_ratio * module_count))

    def fan_out_cutoff(self, module_count: int) -> int:
        t = self.thresholds
        return max(t.fan_out_min_degree, math.ceil(t.fan_out_ratio * module_count))

    def _hub_clusters(self, graph: ModuleGraph) -> list[DependencyCluster]:
        cutoff = self.hub_cutoff(len(graph.modules))
        degrees = []
        for path, module in graph.modules.items():
            incoming = _others(module.dependents, path)
            if len(incoming) >= cutoff:
                degrees.append((path, incoming, _others(module.dependencies, path)))
        degrees.sort(key=lambda d: (-len(d[1]), d[0]))

        clusters = []
        for path, incoming, outgoing in degrees:
            ca, ce = len(incoming), len(outgoing)
            clusters.append(
                DependencyCluster(
                    id=f"hub-{path}",
                    modules=[path],
                    type=ClusterType.HUB,
                    strength=float(ca),
                    recommendations=[
                        f"Consider splitting {path} to reduce coupling",
                        "Extract common interfaces to reduce direct dependencies",
                        f"Monitor changes carefully as {ca} modules depend on this",
                    ],
                    metadata={
                        "incomingCount": ca,
                        "outgoingCount": ce,
                        "centrality": ca / (ca + ce + 1),
                        "dependents": incoming,
                    },
                )
            )
        return clusters

    def _fan_out_clusters(self, graph: ModuleGraph) -> list[DependencyCluster]:
        cutoff = self.fan_out_cutoff(len(graph.modules))
        degrees = []
        for path, module in graph.modules.items():
            outgoing = _others(module.dependencies, path)
            if len(outgoing) >= cutoff:
                degrees.append((path, outgoing, _others(module.dependents, path)))
        degrees.sort(key=lambda d: (-len(d[1]), d[0]))

        clusters = []
        for path, outgoing, incoming in degrees:
            ce, ca = len(outgoing), len(incoming)
            clusters.append(
                DependencyCluster(
                    id=f"fanout-{path}",
                    modules=[path],
                    type=ClusterType.FAN_OUT,
                    strength=float(ce),
                    recommendations=[
                        f"Consider dependency injection to reduce direct coupling in {path}",
                        "Extract common dependencies into shared modules",
                        "Use interfaces to decouple from concrete implementations",
                        f"Review if {path} has too many responsibilities",
                    ],
                    metadata={
                        "outgoingCount": ce,
                        "incomingCount": ca,
                        "coupling": ce / (ce + ca + 1),
                        "dependencies": outgoing,
                    },
                )
            )
        return clusters

    # ── Violations ──────────────────────────────────────────────────

    def _cycle_violations(self, cycles: list[list[str]]) -> list[ArchitecturalViolation]:
        violations = []
        for i, cycle in enumerate(cycles, 1):
            chain = " → ".join(cycle + [cycle[0]]) if len(cycle) > 1 else f"{cycle[0]} → {cycle[0]}"
            violations.append(
                ArchitecturalViolation(
                    id=f"circular-dep-circular-{i}",
                    type=ViolationType.CIRCULAR_DEPENDENCY,
                    severity=Severity.HIGH if len(cycle) > 3 else Severity.MEDIUM,
                    modules=list(cycle),
                    description=f"Circular dependency involving {len(cycle)} modules: {chain}",
                    recommendations=cycle_recommendations(cycle),
                )
            )
        return violations

    def _god_modules(self, graph: ModuleGraph) -> list[ArchitecturalViolation]:
        limit = self.thresholds.god_module_dependencies
        violations = []
        for path in sorted(graph.modules):
            count = len(set(graph.modules[path].dependencies))
            if count > limit:
                violations.append(
                    ArchitecturalViolation(
                        id=f"god-module-{path}",
                        type=ViolationType.GOD_MODULE,
                        severity=Severity.HIGH,
                        modules=[path],
                        description=f"Module has too many dependencies ({count})",
                        recommendations=[
                            "Split module into smaller, focused modules",
                            "Apply Single Responsibility Principle",
                            "Use dependency injection to reduce coupling",
                        ],
                    )
                )
        return violations

    def _orphans(self, graph: ModuleGraph) -> list[ArchitecturalViolation]:
        violations = []
        for path in sorted(graph.modules):
            if graph.modules[path].dependents or is_entry_point(path):
                continue
            violations.append(
                ArchitecturalViolation(
                    id=f"orphan-{path}",
                    type=ViolationType.ORPHAN_MODULE,
                    severity=Severity.MEDIUM,
                    modules=[path],
                    description="Module is not used by any other module",
                    recommendations=[
                        "Remove unused module if truly dead code",
                        "Ensure module is properly exported and imported",
                        "Add to entry points if this is a standalone module",
                    ],
                )
            )
        return violations

    def _external_coupling(self, graph: ModuleGraph) -> list[ArchitecturalViolation]:
        limit = self.thresholds.external_coupling_limit
        violations = []
        for path in sorted(graph.modules):
            externals = sorted(set(graph.modules[path].external_dependencies))
            if len(externals) <= limit:
                continue
            violations.append(
                ArchitecturalViolation(
                    id=f"external-coupling-{path}",
                    type=ViolationType.EXTERNAL_COUPLING,
                    severity=Severity.LOW,
                    modules=[path],
                    description=(
                        f"Module depends on {len(externals)} external packages "
                        f"(limit {limit})"
                    ),
                    recommendations=[
                        "Wrap third-party packages behind a small adapter module",
                        "Remove packages that are only used for trivial helpers",
                    ],
                )
            )
        return violations


def is_entry_point(path: str) -> bool:
    return posixpath.basename(path) in ENTRY_POINTS


def _others(paths: list[str], path: str) -> list[str]:
    return sorted({p for p in paths if p != path})
