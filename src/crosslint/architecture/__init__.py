"""Architectural analysis: cycles, hubs, layers, god modules, orphans."""

from .analyzer import ArchitectureAnalyzer, is_entry_point
from .correlations import correlation_confidence, find_dependency_correlations
from .layers import classify_layer, is_layer_violation
from .models import (
    ArchitecturalViolation,
    ArchitectureResult,
    ClusterType,
    DependencyCluster,
    DependencyCorrelation,
    Layer,
    ViolationType,
)

__all__ = [
    "ArchitectureAnalyzer",
    "is_entry_point",
    "correlation_confidence",
    "find_dependency_correlations",
    "classify_layer",
    "is_layer_violation",
    "ArchitecturalViolation",
    "ArchitectureResult",
    "ClusterType",
    "DependencyCluster",
    "DependencyCorrelation",
    "Layer",
    "ViolationType",
]
