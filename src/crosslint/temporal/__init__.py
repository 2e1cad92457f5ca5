"""Temporal analysis: git history, issue evolution, trends and predictions."""

from .analyzer import TemporalAnalyzer
from .git_reader import GitCliReader, GitHistoryReader, StaticHistoryReader
from .models import (
    AuthorMetrics,
    Commit,
    EvolutionPattern,
    FileChange,
    FileHistory,
    IssueEvolution,
    IssueTimelineEntry,
    PatternType,
    RegressionEvent,
    TemporalPattern,
    TemporalResult,
    TemporalTrend,
    TimelineAction,
    TrendDirection,
)

__all__ = [
    "TemporalAnalyzer",
    "GitCliReader",
    "GitHistoryReader",
    "StaticHistoryReader",
    "AuthorMetrics",
    "Commit",
    "EvolutionPattern",
    "FileChange",
    "FileHistory",
    "IssueEvolution",
    "IssueTimelineEntry",
    "PatternType",
    "RegressionEvent",
    "TemporalPattern",
    "TemporalResult",
    "TemporalTrend",
    "TimelineAction",
    "TrendDirection",
]
