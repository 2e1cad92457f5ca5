"""Per-file change history, issue windows and stability metrics.

Issue attribution is heuristic: git does not say which commit introduced
a finding. Each commit that touches a file opens a window; the file's
issues are binned into that window as fixed (fix-keyword commit,
critical/high severity) or new (everything else). ``issue_attribution``
controls which issues count: ``snapshot`` uses every current issue,
``dated`` only issues whose ``detected_at`` is on or after the commit.
"""

from __future__ import annotations

import posixpath
import re
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..config import CorrelationConfig
from ..exceptions import AnalysisError
from ..logging_config import get_logger
from ..models import Issue, Severity
from .git_reader import GitHistoryReader
from .models import (
    Commit,
    ComplexitySample,
    FileHistory,
    IssueHistoryEntry,
    StabilityMetrics,
)

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400.0

CYCLOMATIC_PATTERNS = [
    re.compile(r"\bif\b"),
    re.compile(r"\belse\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bswitch\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b"),
    re.compile(r"\?\s*:"),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
]

FUNCTION_PATTERNS = [
    re.compile(r"function\s+\w+"),
    re.compile(r"\w+\s*:\s*function"),
    re.compile(r"\w+\s*=>\s*\{"),
    re.compile(r"^\s*\w+\s*\(", re.MULTILINE),
]

CLASS_PATTERN = re.compile(r"class\s+\w+")


def is_fix_commit(message: str, keywords: Iterable[str]) -> bool:
    lowered = message.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def path_matches(commit_path: str, canonical_path: str) -> bool:
    """True when a commit path names the canonical file (exact or as a suffix)."""
    return commit_path == canonical_path or commit_path.endswith("/" + canonical_path)


def touches(commit: Commit, canonical_path: str) -> bool:
    return any(path_matches(p, canonical_path) for p in commit.paths)


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def cyclomatic_proxy(content: str) -> int:
    return 1 + sum(len(p.findall(content)) for p in CYCLOMATIC_PATTERNS)


def count_functions(content: str) -> int:
    return sum(len(p.findall(content)) for p in FUNCTION_PATTERNS)


def count_classes(content: str) -> int:
    return len(CLASS_PATTERN.findall(content))


def change_frequency(commits: Sequence[Commit], as_of: Optional[datetime]) -> float:
    """Commits per day since the file's last commit (at least one day)."""
    if not commits:
        return 0.0
    last = commits[-1].date
    reference = as_of or last
    return len(commits) / max(1.0, days_between(last, reference))


def attributed_issues(
    issues: Sequence[Issue], commit: Commit, attribution: str
) -> list[Issue]:
    if attribution == "snapshot":
        return list(issues)
    return [i for i in issues if i.detected_at is None or i.detected_at >= commit.date]


def build_issue_history(
    issues: Sequence[Issue],
    commits: Sequence[Commit],
    keywords: Iterable[str],
    attribution: str = "snapshot",
) -> list[IssueHistoryEntry]:
    """One entry per commit window that has attributable issues."""
    keywords = list(keywords)
    history: list[IssueHistoryEntry] = []
    for commit in commits:
        window = attributed_issues(issues, commit, attribution)
        if not window:
            continue

        fix = is_fix_commit(commit.message, keywords)
        new_issues = fixed_issues = 0
        counts = {s.value: 0 for s in Severity}
        for issue in window:
            if fix and issue.severity in (Severity.CRITICAL, Severity.HIGH):
                fixed_issues += 1
            else:
                new_issues += 1
            counts[issue.severity.value] += 1

        history.append(
            IssueHistoryEntry(
                date=commit.date,
                commit=commit.hash,
                author=commit.author,
                new_issues=new_issues,
                fixed_issues=fixed_issues,
                total_issues=len(window),
                severity_counts=counts,
                files_changed=len(commit.files),
                lines_added=commit.lines_added,
                lines_deleted=commit.lines_deleted,
            )
        )
    return history


def fix_rate(history: Sequence[IssueHistoryEntry]) -> float:
    new = sum(e.new_issues for e in history)
    fixed = sum(e.fixed_issues for e in history)
    return min(1.0, fixed / max(1, new))


def regression_rate(history: Sequence[IssueHistoryEntry]) -> float:
    """Share of post-fix windows where critical or high counts rose."""
    opportunities = events = 0
    for prev, current in zip(history, history[1:]):
        if prev.fixed_issues <= 0:
            continue
        opportunities += 1
        if current.count(Severity.CRITICAL) > prev.count(Severity.CRITICAL) or current.count(
            Severity.HIGH
        ) > prev.count(Severity.HIGH):
            events += 1
    return events / opportunities if opportunities else 0.0


def stability_metrics(
    cf: float, issue_count: int, commit_count: int, history: Sequence[IssueHistoryEntry], authors: int
) -> StabilityMetrics:
    return StabilityMetrics(
        churn_rate=cf,
        defect_density=issue_count / max(1, commit_count),
        fix_rate=fix_rate(history),
        regression_rate=regression_rate(history),
        author_changes=authors,
    )


def risk_score(stability: StabilityMetrics) -> float:
    return (
        0.3 * stability.churn_rate
        + 0.4 * stability.defect_density
        + 0.3 * stability.regression_rate
    )


def group_issues_by_path(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    grouped: dict[str, list[Issue]] = defaultdict(list)
    for issue in issues:
        if issue.canonical_path is not None:
            grouped[issue.canonical_path].append(issue)
    return grouped


class FileHistoryAnalyzer:
    """Build a FileHistory for every file touched by the commit stream.

    Usage:
        analyzer = FileHistoryAnalyzer(config, reader)
        histories = analyzer.analyze(commits, issues)
        analyzer.errors  # recovered complexity-sampling failures
    """

    def __init__(self, config: CorrelationConfig, reader: Optional[GitHistoryReader] = None):
        self.config = config
        self.reader = reader
        self.errors: list[AnalysisError] = []

    def analyze(self, commits: Sequence[Commit], issues: Sequence[Issue]) -> list[FileHistory]:
        if not commits:
            return []
        as_of = self.config.as_of_date or commits[-1].date
        issues_by_path = group_issues_by_path(issues)

        commits_by_file: dict[str, list[Commit]] = defaultdict(list)
        for commit in commits:
            for path in dict.fromkeys(commit.paths):
                commits_by_file[path].append(commit)

        histories = []
        for path in sorted(commits_by_file):
            file_commits = commits_by_file[path]
            file_issues = self._issues_for(path, issues_by_path)
            histories.append(self._history(path, file_commits, file_issues, as_of))

        logger.info(f"Built history for {len(histories)} files")
        return histories

    def _issues_for(self, path: str, issues_by_path: dict[str, list[Issue]]) -> list[Issue]:
        found = list(issues_by_path.get(path, []))
        for canonical, group in issues_by_path.items():
            if canonical != path and path_matches(path, canonical):
                found.extend(group)
        return found

    def _history(
        self, path: str, commits: list[Commit], issues: list[Issue], as_of: datetime
    ) -> FileHistory:
        cf = change_frequency(commits, as_of)
        authors = list(dict.fromkeys(c.author for c in commits))
        issue_history = build_issue_history(
            issues, commits, self.config.fix_keywords, self.config.issue_attribution
        )
        stability = stability_metrics(cf, len(issues), len(commits), issue_history, len(authors))
        return FileHistory(
            file_path=path,
            commits=commits,
            change_frequency=cf,
            authors=authors,
            complexity_evolution=self._complexity(path, commits),
            issue_history=issue_history,
            stability=stability,
            risk_score=risk_score(stability),
        )

    def _complexity(self, path: str, commits: list[Commit]) -> list[ComplexitySample]:
        if self.reader is None:
            return []
        if posixpath.splitext(path)[1] not in self.config.source_extensions:
            return []

        samples = []
        interval = self.config.complexity_sample_interval
        for commit in commits[::interval]:
            try:
                content = self.reader.read_file_at(commit.hash, path)
            except AnalysisError as e:
                logger.warning(f"Skipping complexity sample for {path}@{commit.hash[:8]}: {e}")
                self.errors.append(e)
                continue
            if content is None:
                continue
            samples.append(
                ComplexitySample(
                    date=commit.date,
                    commit=commit.hash,
                    lines_of_code=len(content.split("\n")),
                    cyclomatic_complexity=cyclomatic_proxy(content),
                    function_count=count_functions(content),
                    class_count=count_classes(content),
                )
            )
        return samples
