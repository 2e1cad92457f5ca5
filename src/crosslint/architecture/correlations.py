"""Issue correlations carried along internal dependency edges."""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from ..graph.models import ModuleGraph
from ..models import Issue, Severity
from .models import DependencyCorrelation

MIN_CORRELATION_CONFIDENCE = 0.3

# Coarser scale than Severity.rank: info and low are treated alike here
_SEVERITY_LEVEL = {
    Severity.INFO: 1,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


def correlation_confidence(source: Sequence[Issue], target: Sequence[Issue]) -> float:
    """Weighted blend of type overlap, severity closeness, density and tools."""
    types_a = {i.analysis_type for i in source}
    types_b = {i.analysis_type for i in target}
    union = types_a | types_b
    type_similarity = len(types_a & types_b) / len(union) if union else 0.0

    avg_a = sum(_SEVERITY_LEVEL[i.severity] for i in source) / len(source)
    avg_b = sum(_SEVERITY_LEVEL[i.severity] for i in target) / len(target)
    severity_closeness = max(0.0, 1 - abs(avg_a - avg_b) / 3)

    lo, hi = sorted((len(source), len(target)))
    density_ratio = lo / hi if hi else 1.0

    shared_tools = {i.tool_name for i in source} & {i.tool_name for i in target}
    tool_overlap = min(1.0, len(shared_tools) / 2)

    confidence = (
        type_similarity * 0.4
        + severity_closeness * 0.25
        + density_ratio * 0.2
        + tool_overlap * 0.15
    )
    return max(0.0, min(1.0, confidence))


def correlation_risk(source: Sequence[Issue], target: Sequence[Issue]) -> str:
    total = len(source) + len(target)
    critical = sum(1 for i in (*source, *target) if i.severity is Severity.CRITICAL)
    if critical > 0 or total > 10:
        return "high"
    if total > 5:
        return "medium"
    return "low"


def find_dependency_correlations(
    graph: ModuleGraph, issues: Sequence[Issue]
) -> list[DependencyCorrelation]:
    by_file: dict[str, list[Issue]] = defaultdict(list)
    for issue in issues:
        if issue.canonical_path is not None:
            by_file[issue.canonical_path].append(issue)

    correlations: list[DependencyCorrelation] = []
    for edge in sorted(graph.internal_edges, key=lambda e: (e.from_path, e.to)):
        if edge.from_path == edge.to:
            continue
        source = by_file.get(edge.from_path, [])
        target = by_file.get(edge.to, [])
        if not source or not target:
            continue
        confidence = correlation_confidence(source, target)
        if confidence < MIN_CORRELATION_CONFIDENCE:
            continue
        correlations.append(
            DependencyCorrelation(
                id=f"dep-corr-{len(correlations) + 1}",
                source_file=edge.from_path,
                target_file=edge.to,
                issue_ids=[i.id for i in (*source, *target)],
                correlation_type="direct_dependency",
                confidence=confidence,
                risk_level=correlation_risk(source, target),
                explanation=(
                    f"Files {edge.from_path} and {edge.to} have correlated issues, "
                    "potentially indicating a shared architectural problem or "
                    "propagated defect through their dependency relationship."
                ),
            )
        )
    return correlations
