"""Architectural findings derived from the module graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..graph.models import GraphMetrics
from ..models import Severity


class ClusterType(Enum):
    CIRCULAR = "circular"
    HUB = "hub"
    FAN_OUT = "fan_out"
    CHAIN = "chain"
    FAN_IN = "fan_in"


class ViolationType(Enum):
    CIRCULAR_DEPENDENCY = "circular_dependency"
    LAYER_VIOLATION = "layer_violation"
    GOD_MODULE = "god_module"
    ORPHAN_MODULE = "orphan_module"
    EXTERNAL_COUPLING = "external_coupling"


class Layer(Enum):
    """Path-derived architectural layer.

    ``index`` orders layers bottom-up (infrastructure=0 .. presentation=3).
    UNKNOWN has index -1 and never takes part in layer checks.
    """

    PRESENTATION = "presentation"
    BUSINESS = "business"
    DATA = "data"
    INFRASTRUCTURE = "infrastructure"
    UNKNOWN = "unknown"

    @property
    def index(self) -> int:
        return _LAYER_INDEX.get(self, -1)


_LAYER_INDEX = {
    Layer.INFRASTRUCTURE: 0,
    Layer.DATA: 1,
    Layer.BUSINESS: 2,
    Layer.PRESENTATION: 3,
}


@dataclass
class DependencyCluster:
    id: str
    modules: list[str]
    type: ClusterType
    strength: float
    recommendations: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ArchitecturalViolation:
    id: str
    type: ViolationType
    severity: Severity
    modules: list[str]
    description: str
    recommendations: list[str] = field(default_factory=list)


@dataclass
class DependencyCorrelation:
    """Two modules joined by an internal edge that both carry issues."""

    id: str
    source_file: str
    target_file: str
    issue_ids: list[str]
    correlation_type: str
    confidence: float
    risk_level: str
    explanation: str


@dataclass
class ArchitectureResult:
    clusters: list[DependencyCluster] = field(default_factory=list)
    violations: list[ArchitecturalViolation] = field(default_factory=list)
    layers: dict[str, Layer] = field(default_factory=dict)
    cycles: list[list[str]] = field(default_factory=list)
    metrics: GraphMetrics = field(default_factory=GraphMetrics)
    correlations: list[DependencyCorrelation] = field(default_factory=list)
