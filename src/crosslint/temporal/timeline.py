"""Reconstruct per-issue timelines from the commit stream.

Each ``(rule, file, line)`` key moves between two states:

    active --fix-keyword commit--> fixed --any other commit--> active

The first commit touching the file introduces the key; later commits
record ``modified`` unless they flip the state.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Iterable, Sequence

from ..logging_config import get_logger
from ..models import Issue
from .history import days_between, is_fix_commit, touches
from .models import (
    Commit,
    EvolutionPattern,
    IssueEvolution,
    IssueTimelineEntry,
    TimelineAction,
)

logger = get_logger(__name__)

ACTIVE = "active"
FIXED = "fixed"


def build_timeline(
    issues: Sequence[Issue], commits: Sequence[Commit], keywords: Iterable[str]
) -> list[IssueTimelineEntry]:
    """Timeline for one (rule, file) group, ordered by commit date."""
    keywords = list(keywords)

    # One representative issue per key; tools reporting the same line share it
    by_key: dict[tuple, Issue] = {}
    for issue in sorted(issues, key=lambda i: (i.line or 0, i.id)):
        key = (issue.rule_id, issue.canonical_path, issue.line or 0)
        by_key.setdefault(key, issue)

    states: dict[tuple, str] = {}
    timeline: list[IssueTimelineEntry] = []
    for commit in commits:
        fix = is_fix_commit(commit.message, keywords)
        for key, issue in by_key.items():
            state = states.get(key)
            if state is None:
                action = TimelineAction.INTRODUCED
                states[key] = ACTIVE
            elif fix:
                if state == ACTIVE:
                    action = TimelineAction.FIXED
                    states[key] = FIXED
                else:
                    action = TimelineAction.MODIFIED
            elif state == FIXED:
                action = TimelineAction.REGRESSED
                states[key] = ACTIVE
            else:
                action = TimelineAction.MODIFIED

            timeline.append(
                IssueTimelineEntry(
                    date=commit.date,
                    commit=commit.hash,
                    action=action,
                    author=commit.author,
                    severity=issue.severity,
                    issue_id=issue.id,
                    line=issue.line,
                )
            )
    return timeline


def classify_pattern(timeline: Sequence[IssueTimelineEntry]) -> EvolutionPattern:
    if not timeline:
        return EvolutionPattern.INTRODUCED

    counts = Counter(entry.action for entry in timeline)
    regressed = counts[TimelineAction.REGRESSED]
    fixed = counts[TimelineAction.FIXED]

    if regressed >= 2 or (regressed >= 1 and fixed >= 1):
        return EvolutionPattern.RECURRING
    if regressed == 1:
        return EvolutionPattern.REGRESSION
    if timeline[-1].action is TimelineAction.FIXED:
        return EvolutionPattern.FIXED
    if fixed > 0:
        return EvolutionPattern.PERSISTENT
    if counts[TimelineAction.MODIFIED] >= counts[TimelineAction.INTRODUCED]:
        return EvolutionPattern.PERSISTENT
    return EvolutionPattern.INTRODUCED


def average_lifespan(timeline: Sequence[IssueTimelineEntry]) -> float:
    """Mean days from introduction (or regression) to the next fix.

    Without a complete pair, the span from first to last entry.
    """
    if not timeline:
        return 0.0

    lifespans = []
    opened = None
    for entry in timeline:
        if entry.action in (TimelineAction.INTRODUCED, TimelineAction.REGRESSED):
            opened = entry.date
        elif entry.action is TimelineAction.FIXED and opened is not None:
            lifespans.append(days_between(opened, entry.date))
            opened = None

    if lifespans:
        return sum(lifespans) / len(lifespans)
    return days_between(timeline[0].date, timeline[-1].date)


def build_issue_evolution(
    issues: Sequence[Issue], commits: Sequence[Commit], keywords: Iterable[str]
) -> list[IssueEvolution]:
    """Group issues by (rule, file) and reconstruct each group's timeline."""
    keywords = list(keywords)
    groups: dict[tuple[str, str], list[Issue]] = defaultdict(list)
    for issue in issues:
        if issue.canonical_path is not None:
            groups[(issue.rule_id, issue.canonical_path)].append(issue)

    evolutions = []
    for rule_id, path in sorted(groups):
        file_commits = [c for c in commits if touches(c, path)]
        if not file_commits:
            continue
        timeline = build_timeline(groups[(rule_id, path)], file_commits, keywords)
        evolutions.append(
            IssueEvolution(
                id=f"{rule_id}:{path}",
                rule_id=rule_id,
                file_path=path,
                timeline=timeline,
                pattern=classify_pattern(timeline),
                frequency=len(timeline),
                average_lifespan_days=average_lifespan(timeline),
                regression_count=sum(
                    1 for e in timeline if e.action is TimelineAction.REGRESSED
                ),
            )
        )
    logger.debug(f"Reconstructed {len(evolutions)} issue evolutions")
    return evolutions
