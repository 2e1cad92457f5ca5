"""Regression events: commits after which a file carries a cluster of issues."""

from __future__ import annotations

from typing import Sequence

from ..models import Issue, Severity
from .history import attributed_issues, group_issues_by_path, path_matches, touches
from .models import Commit, RegressionEvent

MIN_ISSUES = 2  # strictly more than this many issues

PREVENTION = [
    "Add comprehensive test coverage before major changes",
    "Use feature flags for gradual rollouts",
    "Implement automated regression testing",
    "Perform code reviews with focus on risk areas",
]


def risk_factors(commit: Commit, path: str) -> list[str]:
    factors = []
    change = next((f for f in commit.files if path_matches(f.path, path)), None)
    if change is not None:
        if change.lines_added > 50:
            factors.append("Large code addition")
        if change.lines_deleted > 20:
            factors.append("Significant code removal")
    message = commit.message.lower()
    if "refactor" in message:
        factors.append("Refactoring")
    if "fix" in message:
        factors.append("Bug fix attempt")
    return factors


def event_severity(issues: Sequence[Issue]) -> Severity:
    if any(i.severity is Severity.CRITICAL for i in issues):
        return Severity.HIGH
    if any(i.severity is Severity.HIGH for i in issues):
        return Severity.MEDIUM
    return Severity.LOW


def detect_regressions(
    commits: Sequence[Commit], issues: Sequence[Issue], attribution: str = "snapshot"
) -> list[RegressionEvent]:
    """Walk each file's commits (after its first) and flag issue clusters.

    An event needs more than two attributed issues, at least one of them
    medium or worse. Events are sorted by issue count, largest first.
    """
    events: list[RegressionEvent] = []
    for path, file_issues in sorted(group_issues_by_path(issues).items()):
        file_commits = [c for c in commits if touches(c, path)]
        for commit in file_commits[1:]:
            after = attributed_issues(file_issues, commit, attribution)
            if len(after) <= MIN_ISSUES:
                continue
            if not any(i.severity.rank >= Severity.MEDIUM.rank for i in after):
                continue
            events.append(
                RegressionEvent(
                    id=f"regression-{path}-{commit.hash[:8]}",
                    file_path=path,
                    commit=commit.hash,
                    date=commit.date,
                    message=commit.message,
                    author=commit.author,
                    issues_introduced=len(after),
                    severity=event_severity(after),
                    risk_factors=risk_factors(commit, path),
                    related_issues=[i.id for i in after],
                    prevention=list(PREVENTION),
                )
            )
    # stable sort keeps file and commit order among equal counts
    events.sort(key=lambda e: -e.issues_introduced)
    return events
