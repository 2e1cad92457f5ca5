"""Per-author contribution, ownership and quality metrics."""

from __future__ import annotations

import math
import posixpath
from collections import Counter, defaultdict
from datetime import timedelta
from typing import Sequence

from ..math import Statistics
from ..models import Issue, Severity
from .models import (
    AuthorMetrics,
    Commit,
    IssueEvolution,
    TimelineAction,
    WorkingPattern,
)

QUALITY_WEIGHTS = {
    Severity.CRITICAL: 4.0,
    Severity.HIGH: 3.0,
    Severity.MEDIUM: 2.0,
    Severity.LOW: 1.0,
    Severity.INFO: 0.5,
}

FIX_WORDS = ("fix", "resolve", "solve", "patch", "correct", "repair", "address")
INTRO_WORDS = ("add", "implement", "create", "new", "initial")

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

MIN_PATTERN_COMMITS = 10
BURST_MIN_COMMITS = 3
BURST_WINDOW = timedelta(hours=24)


def experience_level(commits: int) -> str:
    if commits < 50:
        return "junior"
    if commits < 200:
        return "mid"
    if commits < 500:
        return "senior"
    return "expert"


def owned_files(author: str, commits: Sequence[Commit]) -> list[str]:
    """Files where the author made more than half of the commits."""
    total: Counter = Counter()
    mine: Counter = Counter()
    for commit in commits:
        for path in set(commit.paths):
            total[path] += 1
            if commit.author == author:
                mine[path] += 1
    return sorted(path for path, n in mine.items() if n / total[path] > 0.5)


def specializations(author: str, commits: Sequence[Commit]) -> list[str]:
    """Top three file extensions by touch count."""
    extensions: Counter = Counter()
    for commit in commits:
        if commit.author != author:
            continue
        for path in commit.paths:
            ext = posixpath.splitext(path)[1]
            if ext:
                extensions[ext] += 1
    ranked = sorted(extensions.items(), key=lambda kv: (-kv[1], kv[0]))
    return [ext for ext, _ in ranked[:3]]


def collaborators(author: str, commits: Sequence[Commit]) -> list[str]:
    touched = {p for c in commits if c.author == author for p in c.paths}
    return sorted(
        {c.author for c in commits if c.author != author and touched.intersection(c.paths)}
    )


def is_fix_issue(issue: Issue) -> bool:
    commit_type = issue.metadata.get("commitType")
    if commit_type:
        return commit_type in ("fix", "patch")
    text = f"{issue.description} {issue.title or ''}".lower()
    return any(w in text for w in FIX_WORDS) and not any(w in text for w in INTRO_WORDS)


def attributed_to(author: str, issue: Issue, introducers: dict[str, str]) -> bool:
    meta = issue.metadata
    if meta.get("author") == author:
        return True
    contributors = meta.get("contributors")
    if isinstance(contributors, (list, tuple)) and author in contributors:
        return True
    return introducers.get(issue.id) == author


def code_quality_score(author: str, issues: Sequence[Issue], introducers: dict[str, str]) -> float:
    """Severity-weighted balance of fixes against introductions, in [0.1, 1]."""
    if not issues:
        return 1.0
    mine = [i for i in issues if attributed_to(author, i, introducers)]
    if not mine:
        return 0.8

    positive = negative = 0.0
    for issue in mine:
        weight = QUALITY_WEIGHTS[issue.severity]
        if is_fix_issue(issue):
            positive += weight
        else:
            negative += weight
    total = positive + negative
    if total == 0:
        return 0.8

    fix_ratio = positive / total
    intro_ratio = negative / total
    score = 0.5 + (fix_ratio - intro_ratio) * 0.4
    if fix_ratio > 0.7:
        score += 0.1
    if intro_ratio > 0.6:
        score -= 0.15
    return max(0.1, min(1.0, score))


def concentration(distribution: Sequence[int]) -> float:
    """1 - normalized entropy; higher means activity is concentrated."""
    if sum(distribution) == 0:
        return 0.0
    max_entropy = math.log2(len(distribution))
    return max(0.1, 1 - Statistics.entropy(distribution) / max_entropy)


def burst_periods(commits: Sequence[Commit]) -> list[dict]:
    """Runs of >= 3 commits with <= 24h between consecutive commits."""
    if len(commits) < 5:
        return []
    ordered = sorted(commits, key=lambda c: c.date)
    bursts = []
    current = [ordered[0]]
    for commit in ordered[1:]:
        if commit.date - current[-1].date <= BURST_WINDOW:
            current.append(commit)
            continue
        if len(current) >= BURST_MIN_COMMITS:
            bursts.append(_burst(current))
        current = [commit]
    if len(current) >= BURST_MIN_COMMITS:
        bursts.append(_burst(current))
    return bursts


def _burst(run: list[Commit]) -> dict:
    return {"start": run[0].date, "end": run[-1].date, "commitCount": len(run)}


def working_patterns(commits: Sequence[Commit]) -> list[WorkingPattern]:
    """Hour-of-day and weekday peaks, irregularity and bursts.

    Hours and weekdays use each commit's own recorded UTC offset.
    """
    if len(commits) < MIN_PATTERN_COMMITS:
        return []

    hourly = [0] * 24
    daily = [0] * 7
    monthly: Counter = Counter()
    for commit in commits:
        hourly[commit.date.hour] += 1
        daily[commit.date.weekday()] += 1
        monthly[f"{commit.date.year}-{commit.date.month:02d}"] += 1

    patterns = []
    peak = max(hourly)
    peak_hours = [h for h, n in enumerate(hourly) if n >= peak * 0.8]
    patterns.append(
        WorkingPattern(
            pattern="peak_hours",
            description=f"Most active during hours: {', '.join(map(str, peak_hours))}",
            confidence=concentration(hourly),
            frequency=peak / len(commits),
            metadata={"peakHours": peak_hours, "hourlyDistribution": hourly},
        )
    )

    peak = max(daily)
    peak_days = [WEEKDAYS[d] for d, n in enumerate(daily) if n >= peak * 0.7]
    patterns.append(
        WorkingPattern(
            pattern="peak_days",
            description=f"Most active on: {', '.join(peak_days)}",
            confidence=concentration(daily),
            frequency=peak / len(commits),
            metadata={"peakDays": peak_days, "dailyDistribution": daily},
        )
    )

    variance = Statistics.variance(list(monthly.values()))
    if variance > 0.5:
        patterns.append(
            WorkingPattern(
                pattern="irregular_frequency",
                description="Irregular commit frequency with high variance",
                confidence=0.8,
                frequency=variance,
                metadata={"monthlyCommits": dict(sorted(monthly.items())), "variance": variance},
            )
        )

    bursts = burst_periods(commits)
    if bursts:
        patterns.append(
            WorkingPattern(
                pattern="burst_activity",
                description=f"Tends to work in bursts: {len(bursts)} burst periods detected",
                confidence=0.9,
                frequency=len(bursts) / (len(commits) / 10),
                metadata={"burstPeriods": bursts, "totalBursts": len(bursts)},
            )
        )
    return patterns


def analyze_authors(
    commits: Sequence[Commit], issues: Sequence[Issue], evolutions: Sequence[IssueEvolution]
) -> list[AuthorMetrics]:
    """Metrics for every author in first-commit order."""
    introducers: dict[str, str] = {}
    introduced: Counter = Counter()
    fixed: Counter = Counter()
    for evolution in evolutions:
        for entry in evolution.timeline:
            if entry.action is TimelineAction.INTRODUCED:
                introduced[entry.author] += 1
                introducers.setdefault(entry.issue_id, entry.author)
            elif entry.action is TimelineAction.FIXED:
                fixed[entry.author] += 1

    by_author: dict[str, list[Commit]] = defaultdict(list)
    for commit in commits:
        by_author[commit.author].append(commit)

    metrics = []
    for author, mine in by_author.items():
        n = len(mine)
        metrics.append(
            AuthorMetrics(
                author=author,
                email=mine[0].email,
                commits=n,
                lines_added=sum(c.lines_added for c in mine),
                lines_deleted=sum(c.lines_deleted for c in mine),
                files_owned=owned_files(author, commits),
                specializations=specializations(author, commits),
                collaborators=collaborators(author, commits),
                issues_introduced=introduced[author],
                issues_fixed=fixed[author],
                issue_introduction_rate=introduced[author] / n,
                issue_fix_rate=fixed[author] / n,
                code_quality_score=code_quality_score(author, issues, introducers),
                experience_level=experience_level(n),
                working_patterns=working_patterns(mine),
            )
        )
    return metrics
