"""Data models for cross-tool correlation: similarity, duplicates, hotspots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..models import Issue


class MatchStrength(Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    DEFINITIVE = "definitive"


class MergeStrategy(Enum):
    KEEP_PRIMARY = "keep_primary"
    MERGE_METADATA = "merge_metadata"
    AGGREGATE_SCORES = "aggregate_scores"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SimilarityFactors:
    """The six per-factor scores, each in [0, 1]."""

    path_similarity: float
    line_similarity: float
    rule_similarity: float
    message_similarity: float
    tool_reliability: float
    context_similarity: float


@dataclass(frozen=True)
class SimilarityScore:
    overall: float
    factors: SimilarityFactors
    strength: MatchStrength


@dataclass
class DuplicateGroup:
    """Issues from one or more tools describing the same problem.

    ``confidence`` is the weakest member's similarity to the primary.
    """

    id: str
    primary: Issue
    duplicates: list[Issue]
    confidence: SimilarityScore
    merge_strategy: MergeStrategy
    evidence: dict[str, Any]
    consensus_severity: str
    enhanced_issue: Issue


@dataclass
class DedupStatistics:
    original_count: int = 0
    deduplicated_count: int = 0
    duplicates_removed: int = 0
    groups_found: int = 0


@dataclass
class DedupResult:
    issues: list[Issue] = field(default_factory=list)
    groups: list[DuplicateGroup] = field(default_factory=list)
    statistics: DedupStatistics = field(default_factory=DedupStatistics)


@dataclass(frozen=True)
class FunctionSpan:
    """A function's line range in one file. ``synthetic`` marks file-scope spans."""

    name: str
    file_path: str
    start_line: int
    end_line: int
    parameters: tuple[str, ...] = ()
    synthetic: bool = False

    @property
    def length(self) -> int:
        return self.end_line - self.start_line + 1

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass
class FunctionCluster:
    span: FunctionSpan
    issues: list[Issue]
    hotspot_score: int
    risk: RiskLevel
    density: float
    unique_tools: list[str]
    correlation_strength: float
    recommendations: list[str] = field(default_factory=list)


@dataclass
class CrossFunctionGroup:
    """One rule firing in several distinct functions."""

    rule_id: str
    functions: list[str]
    issues: list[Issue]
    confidence: float
    message: str


@dataclass
class ProximityGroup:
    """Unclustered issues close together in one file."""

    file_path: str
    start_line: int
    end_line: int
    issues: list[Issue]
    confidence: float


@dataclass
class FunctionClusterResult:
    clusters: list[FunctionCluster] = field(default_factory=list)
    cross_function_groups: list[CrossFunctionGroup] = field(default_factory=list)
    proximity_groups: list[ProximityGroup] = field(default_factory=list)
