"""Temporal analysis orchestrator.

Sequence: commits → per-file history → issue evolution → patterns →
trends → author metrics → regressions → predictions. Without usable git
history every list is empty and ``git_available`` is False.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..config import CorrelationConfig
from ..exceptions import AnalysisError
from ..logging_config import get_logger
from ..models import Issue
from .authors import analyze_authors
from .git_reader import GitHistoryReader
from .history import FileHistoryAnalyzer
from .models import Commit, Predictions, TemporalResult
from .patterns import detect_patterns
from .predictions import predict_hotspots, predict_issues
from .regressions import detect_regressions
from .timeline import build_issue_evolution
from .trends import calculate_trends

logger = get_logger(__name__)


class TemporalAnalyzer:
    """Usage:
    analyzer = TemporalAnalyzer(config, GitCliReader(root))
    result = analyzer.analyze(issues)
    analyzer.errors  # recovered failures (timeouts, git errors)
    """

    def __init__(self, config: CorrelationConfig, reader: Optional[GitHistoryReader] = None):
        self.config = config
        self.reader = reader
        self.errors: list[AnalysisError] = []

    def load_commits(self) -> list[Commit]:
        if self.reader is None:
            return []
        try:
            if not self.reader.is_available():
                return []
            return self.reader.get_commits(self.config.since_date, self.config.until_date)
        except AnalysisError as e:
            logger.warning(f"Git history unavailable: {e}")
            self.errors.append(e)
            return []

    def analyze(self, issues: Sequence[Issue], commits: Optional[list[Commit]] = None) -> TemporalResult:
        if commits is None:
            commits = self.load_commits()
        if not commits:
            logger.info("No commits available; skipping temporal analysis")
            return TemporalResult(git_available=False)

        located = [i for i in issues if i.canonical_path is not None]
        keywords = self.config.fix_keywords

        history_analyzer = FileHistoryAnalyzer(self.config, self.reader)
        histories = history_analyzer.analyze(commits, located)
        self.errors.extend(history_analyzer.errors)

        evolutions = build_issue_evolution(located, commits, keywords)
        patterns = detect_patterns(commits, histories, evolutions)
        trends = calculate_trends(commits, histories, self.config.forecast_days)
        authors = analyze_authors(commits, located, evolutions)
        regressions = detect_regressions(commits, located, self.config.issue_attribution)
        predictions = Predictions(
            issues=predict_issues(trends, histories, self.config.forecast_days),
            hotspots=predict_hotspots(histories, patterns),
        )

        logger.info(
            f"Temporal: {len(commits)} commits, {len(histories)} files, "
            f"{len(patterns)} patterns, {len(regressions)} regressions"
        )
        return TemporalResult(
            commits=commits,
            file_history=histories,
            issue_evolution=evolutions,
            patterns=patterns,
            trends=trends,
            author_metrics=authors,
            regressions=regressions,
            predictions=predictions,
            git_available=True,
        )
