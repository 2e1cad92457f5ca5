"""Data models for temporal (git-based) analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..models import Severity


@dataclass(frozen=True)
class FileChange:
    path: str
    lines_added: int = 0
    lines_deleted: int = 0


@dataclass(frozen=True)
class Commit:
    hash: str
    author: str
    email: str
    date: datetime  # timezone-aware
    message: str
    files: tuple[FileChange, ...] = ()

    @property
    def lines_added(self) -> int:
        return sum(f.lines_added for f in self.files)

    @property
    def lines_deleted(self) -> int:
        return sum(f.lines_deleted for f in self.files)

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def change_for(self, path: str) -> Optional[FileChange]:
        for change in self.files:
            if change.path == path:
                return change
        return None


# ── Per-file history ───────────────────────────────────────────────


@dataclass
class ComplexitySample:
    date: datetime
    commit: str
    lines_of_code: int
    cyclomatic_complexity: int
    function_count: int
    class_count: int


@dataclass
class IssueHistoryEntry:
    """Issue counts attributed to one commit window of a file."""

    date: datetime
    commit: str
    author: str
    new_issues: int
    fixed_issues: int
    total_issues: int
    severity_counts: dict[str, int]
    files_changed: int
    lines_added: int
    lines_deleted: int

    def count(self, severity: Severity) -> int:
        return self.severity_counts.get(severity.value, 0)


@dataclass
class StabilityMetrics:
    churn_rate: float = 0.0
    defect_density: float = 0.0
    fix_rate: float = 0.0
    regression_rate: float = 0.0
    author_changes: int = 0


@dataclass
class FileHistory:
    file_path: str
    commits: list[Commit]
    change_frequency: float
    authors: list[str]
    complexity_evolution: list[ComplexitySample] = field(default_factory=list)
    issue_history: list[IssueHistoryEntry] = field(default_factory=list)
    stability: StabilityMetrics = field(default_factory=StabilityMetrics)
    risk_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        # Commits are listed once at the top of the report; reference by hash
        return {
            "filePath": self.file_path,
            "commits": [c.hash for c in self.commits],
            "changeFrequency": self.change_frequency,
            "authors": list(self.authors),
            "complexityEvolution": self.complexity_evolution,
            "issueHistory": self.issue_history,
            "stabilityMetrics": self.stability,
            "riskScore": self.risk_score,
        }


# ── Issue evolution ────────────────────────────────────────────────


class TimelineAction(Enum):
    INTRODUCED = "introduced"
    MODIFIED = "modified"
    FIXED = "fixed"
    REGRESSED = "regressed"


class EvolutionPattern(Enum):
    INTRODUCED = "introduced"
    PERSISTENT = "persistent"
    FIXED = "fixed"
    REGRESSION = "regression"
    RECURRING = "recurring"


@dataclass
class IssueTimelineEntry:
    date: datetime
    commit: str
    action: TimelineAction
    author: str
    severity: Severity
    issue_id: str
    line: Optional[int] = None


@dataclass
class IssueEvolution:
    id: str
    rule_id: str
    file_path: str
    timeline: list[IssueTimelineEntry]
    pattern: EvolutionPattern
    frequency: int
    average_lifespan_days: float
    regression_count: int


# ── Patterns, trends, predictions ──────────────────────────────────


class PatternType(Enum):
    HOTSPOT_FORMATION = "hotspot_formation"
    QUALITY_DEGRADATION = "quality_degradation"
    CYCLIC_REGRESSION = "cyclic_regression"
    AUTHOR_CORRELATION = "author_correlation"


@dataclass
class PatternEvidence:
    type: str
    value: float
    description: str
    significance: float


@dataclass
class TemporalPattern:
    id: str
    type: PatternType
    confidence: float
    severity: Severity
    description: str
    files: list[str]
    start: Optional[datetime]
    end: Optional[datetime]
    evidence: list[PatternEvidence] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class TrendStrength(Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


@dataclass
class DataPoint:
    date: datetime
    value: float


@dataclass
class ForecastPoint:
    date: datetime
    predicted_value: float
    confidence: float
    upper_bound: float
    lower_bound: float


@dataclass
class TemporalTrend:
    metric: str  # issue_count | complexity | churn_rate
    direction: TrendDirection
    strength: TrendStrength
    slope: float
    intercept: float
    r_squared: float
    data_points: list[DataPoint]
    forecast: list[ForecastPoint] = field(default_factory=list)


@dataclass
class WorkingPattern:
    pattern: str  # peak_hours | peak_days | irregular_frequency | burst_activity
    description: str
    confidence: float
    frequency: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthorMetrics:
    author: str
    email: str
    commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    files_owned: list[str] = field(default_factory=list)
    specializations: list[str] = field(default_factory=list)
    collaborators: list[str] = field(default_factory=list)
    issues_introduced: int = 0
    issues_fixed: int = 0
    issue_introduction_rate: float = 0.0
    issue_fix_rate: float = 0.0
    code_quality_score: float = 0.0
    experience_level: str = "junior"
    working_patterns: list[WorkingPattern] = field(default_factory=list)


@dataclass
class RegressionEvent:
    id: str
    file_path: str
    commit: str
    date: datetime
    message: str
    author: str
    issues_introduced: int
    severity: Severity
    risk_factors: list[str]
    related_issues: list[str]
    prevention: list[str]


@dataclass
class IssuePrediction:
    horizon_days: int
    current_value: float
    predicted_value: float
    velocity: float
    confidence: float
    confidence_factors: dict[str, float]
    risk_files: list[dict[str, Any]]
    risk_factors: list[dict[str, Any]]
    recommendations: list[str]


@dataclass
class HotspotCandidate:
    file_path: str
    risk: float
    factors: dict[str, float]
    time_to_hotspot_days: Optional[float] = None


@dataclass
class HotspotPrediction:
    horizon_days: int
    candidates: list[HotspotCandidate]
    recommendations: list[str]


@dataclass
class Predictions:
    issues: Optional[IssuePrediction] = None
    hotspots: Optional[HotspotPrediction] = None


@dataclass
class TemporalResult:
    commits: list[Commit] = field(default_factory=list)
    file_history: list[FileHistory] = field(default_factory=list)
    issue_evolution: list[IssueEvolution] = field(default_factory=list)
    patterns: list[TemporalPattern] = field(default_factory=list)
    trends: list[TemporalTrend] = field(default_factory=list)
    author_metrics: list[AuthorMetrics] = field(default_factory=list)
    regressions: list[RegressionEvent] = field(default_factory=list)
    predictions: Predictions = field(default_factory=Predictions)
    git_available: bool = False
