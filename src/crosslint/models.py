"""Core data models shared by every pipeline stage.

Issues are immutable. Enrichment steps (deduplication) build new Issue
values with ``dataclasses.replace`` and keep the original fields in
``metadata``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class Severity(Enum):
    """Canonical five-level severity scale."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank: critical=5 ... info=1."""
        return _SEVERITY_RANK[self]

    @classmethod
    def from_rank(cls, rank: int) -> Severity:
        rank = max(1, min(5, rank))
        for severity, value in _SEVERITY_RANK.items():
            if value == rank:
                return severity
        raise ValueError(rank)  # unreachable, ranks cover 1..5

    @classmethod
    def parse(cls, raw: Any) -> Severity:
        """Map a tool's native severity word onto the canonical scale.

        Unknown or missing severities default to MEDIUM.
        """
        if isinstance(raw, Severity):
            return raw
        if raw is None:
            return cls.MEDIUM
        key = str(raw).strip().lower()
        return _SEVERITY_ALIASES.get(key, cls.MEDIUM)


_SEVERITY_RANK = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.LOW: 2,
    Severity.INFO: 1,
}

_SEVERITY_ALIASES = {
    "critical": Severity.CRITICAL,
    "blocker": Severity.CRITICAL,
    "high": Severity.HIGH,
    "major": Severity.HIGH,
    "error": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "low": Severity.LOW,
    "minor": Severity.LOW,
    "info": Severity.INFO,
    "note": Severity.INFO,
    "informational": Severity.INFO,
    "information": Severity.INFO,
}


class AnalysisType(Enum):
    """What kind of problem a finding describes."""

    SECURITY = "security"
    QUALITY = "quality"
    BUG = "bug"
    STYLE = "style"
    PERFORMANCE = "performance"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> AnalysisType:
        """Map a tool's category onto the canonical types. Unknown → SECURITY."""
        if isinstance(raw, AnalysisType):
            return raw
        if raw is None:
            return cls.SECURITY
        key = str(raw).strip().lower().replace("-", "_").replace(" ", "_")
        return _TYPE_ALIASES.get(key, cls.SECURITY)


_TYPE_ALIASES = {
    "security": AnalysisType.SECURITY,
    "vulnerability": AnalysisType.SECURITY,
    "security_hotspot": AnalysisType.SECURITY,
    "quality": AnalysisType.QUALITY,
    "code_smell": AnalysisType.QUALITY,
    "maintainability": AnalysisType.QUALITY,
    "complexity": AnalysisType.QUALITY,
    "duplication": AnalysisType.QUALITY,
    "bug": AnalysisType.BUG,
    "bug_risk": AnalysisType.BUG,
    "reliability": AnalysisType.BUG,
    "style": AnalysisType.STYLE,
    "formatting": AnalysisType.STYLE,
    "performance": AnalysisType.PERFORMANCE,
    "other": AnalysisType.OTHER,
}


@dataclass(frozen=True)
class CanonicalEntity:
    """A project-relative file reference; the join key across tools."""

    canonical_path: str


@dataclass(frozen=True)
class RawFinding:
    """One finding as a tool adapter emits it, before normalization.

    ``path`` is the tool's native file identifier and is passed verbatim
    to the path normalizer.
    """

    tool_name: str
    rule_id: str
    path: Optional[str]
    severity: Optional[str] = None
    description: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    title: Optional[str] = None
    analysis_type: Optional[str] = None
    id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class Issue:
    """A canonical issue.

    ``entity`` is None when the tool path could not be normalized; such
    issues skip deduplication and clustering and are reported verbatim.
    """

    id: str
    tool_name: str
    rule_id: str
    description: str
    severity: Severity
    analysis_type: AnalysisType
    entity: Optional[CanonicalEntity]
    original_path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    title: Optional[str] = None
    normalization_confidence: float = 1.0
    detected_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def canonical_path(self) -> Optional[str]:
        return self.entity.canonical_path if self.entity is not None else None


def parse_timestamp(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime into an aware datetime (UTC if naive).

    Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
