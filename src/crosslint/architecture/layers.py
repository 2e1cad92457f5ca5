"""Layer classification by path keywords and layer-violation detection.

Keywords are matched as lowercase substrings of the canonical path, and
the first layer (in table order) with a matching keyword wins.
"""

from __future__ import annotations

from ..graph.models import ModuleGraph
from ..models import Severity
from .models import ArchitecturalViolation, Layer, ViolationType

LAYER_KEYWORDS: list[tuple[Layer, tuple[str, ...]]] = [
    (Layer.PRESENTATION, ("view", "component", "ui", "frontend", "client", "page", "screen")),
    (Layer.BUSINESS, ("service", "logic", "domain", "business", "core", "engine")),
    (
        Layer.DATA,
        ("data", "repository", "dao", "model", "entity", "db", "database", "storage"),
    ),
    (
        Layer.INFRASTRUCTURE,
        ("config", "util", "helper", "lib", "framework", "external", "api"),
    ),
]


def classify_layer(path: str) -> Layer:
    lowered = path.lower()
    for layer, keywords in LAYER_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return layer
    return Layer.UNKNOWN


def is_layer_violation(source: Layer, target: Layer) -> bool:
    """A layer may only depend on layers above it in the index order."""
    if source is Layer.UNKNOWN or target is Layer.UNKNOWN:
        return False
    return source.index > target.index


def classify_modules(graph: ModuleGraph) -> dict[str, Layer]:
    return {path: classify_layer(path) for path in sorted(graph.modules)}


def find_layer_violations(
    graph: ModuleGraph, layers: dict[str, Layer]
) -> list[ArchitecturalViolation]:
    violations: list[ArchitecturalViolation] = []
    seen: set[tuple[str, str]] = set()
    for edge in sorted(graph.internal_edges, key=lambda e: (e.from_path, e.to)):
        key = (edge.from_path, edge.to)
        if key in seen:
            continue
        seen.add(key)
        source = layers.get(edge.from_path, Layer.UNKNOWN)
        target = layers.get(edge.to, Layer.UNKNOWN)
        if not is_layer_violation(source, target):
            continue
        violations.append(
            ArchitecturalViolation(
                id=f"layer-violation-{len(violations) + 1}",
                type=ViolationType.LAYER_VIOLATION,
                severity=Severity.MEDIUM,
                modules=[edge.from_path, edge.to],
                description=(
                    f"Layer violation: {source.value} layer ({edge.from_path}) "
                    f"depends on {target.value} layer ({edge.to})"
                ),
                recommendations=[
                    f"Move dependency from {target.value} to {source.value} layer or higher",
                    "Use dependency inversion principle with interfaces",
                    "Consider extracting common functionality to infrastructure layer",
                    "Review if modules are correctly categorized by layer",
                ],
            )
        )
    return violations
