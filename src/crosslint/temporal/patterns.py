"""Temporal pattern detectors.

Four detectors, each returning patterns sorted by confidence:
hotspot formation (per file), quality degradation and cyclic regression
(per issue evolution), and author correlation (per author).
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta
from typing import Sequence

from ..math import Statistics
from ..models import Severity
from .history import days_between, touches
from .models import (
    Commit,
    FileHistory,
    IssueEvolution,
    PatternEvidence,
    PatternType,
    TemporalPattern,
    TimelineAction,
)

DEGRADATION_WINDOW = 3
AUTHOR_WINDOW = timedelta(days=3)


def _sorted(patterns: list[TemporalPattern]) -> list[TemporalPattern]:
    return sorted(patterns, key=lambda p: (-p.confidence, p.id))


# ── Hotspot formation ──────────────────────────────────────────────


def detect_hotspot_formation(histories: Sequence[FileHistory]) -> list[TemporalPattern]:
    patterns = []
    for history in histories:
        entries = history.issue_history
        if len(entries) < 3:
            continue
        densities = [e.total_issues / max(1, e.files_changed) for e in entries]
        xs = list(range(len(densities)))
        fit = Statistics.linear_fit(xs, densities)
        correlation = Statistics.pearson(xs, densities)
        if not (fit.slope > 0.1 and correlation > 0.7):
            continue

        slope = fit.slope
        severity = Severity.HIGH if slope > 0.5 else Severity.MEDIUM if slope > 0.3 else Severity.LOW
        patterns.append(
            TemporalPattern(
                id=f"hotspot-formation-{history.file_path}",
                type=PatternType.HOTSPOT_FORMATION,
                confidence=min(0.95, correlation * 0.8),
                severity=severity,
                description=(
                    f"Hotspot formation detected in {history.file_path} with increasing "
                    f"issue density (slope: {slope:.3f})"
                ),
                files=[history.file_path],
                start=entries[0].date,
                end=entries[-1].date,
                evidence=[
                    PatternEvidence(
                        "issue_correlation",
                        correlation,
                        f"Strong correlation ({correlation:.2f}) between time and issue density",
                        correlation,
                    ),
                    PatternEvidence(
                        "complexity_change",
                        slope,
                        f"Increasing trend with slope {slope:.3f}",
                        abs(slope),
                    ),
                ],
                recommendations=[
                    "Prioritize refactoring this file to reduce complexity",
                    "Add comprehensive test coverage",
                    "Consider breaking down into smaller modules",
                    "Implement stricter code review for changes to this file",
                ],
            )
        )
    return _sorted(patterns)


# ── Quality degradation ────────────────────────────────────────────


def weekly_net_new(evolution: IssueEvolution) -> list[tuple[str, int]]:
    """(ISO week, max(0, introduced + regressed - fixed)) in date order."""
    buckets: dict[str, list[int]] = {}
    for entry in evolution.timeline:
        year, week, _ = entry.date.isocalendar()
        key = f"{year}-W{week:02d}"
        counts = buckets.setdefault(key, [0, 0])
        if entry.action in (TimelineAction.INTRODUCED, TimelineAction.REGRESSED):
            counts[0] += 1
        elif entry.action is TimelineAction.FIXED:
            counts[1] += 1
    return [(key, max(0, intro - fixed)) for key, (intro, fixed) in sorted(buckets.items())]


def degradation_ratios(densities: Sequence[float], window: int = DEGRADATION_WINDOW) -> list[float]:
    """Recent-vs-prior moving-average ratios.

    For each position i >= window, the mean of the ``window`` values
    before i is compared with the mean of up to ``window`` values before
    those. Positions with no prior values, or a zero prior mean, are
    skipped.
    """
    ratios = []
    for i in range(window, len(densities)):
        recent = sum(densities[i - window : i]) / window
        older_len = min(window, i - window)
        if older_len == 0:
            continue
        older = sum(densities[max(0, i - 2 * window) : i - window]) / older_len
        if older > 0:
            ratios.append(recent / older)
    return ratios


def assess_degradation(densities: Sequence[float]) -> tuple[bool, float, float]:
    """(emit, average ratio, share of ratios above 1.2)."""
    ratios = degradation_ratios(densities)
    if not ratios:
        return False, 0.0, 0.0
    avg = sum(ratios) / len(ratios)
    share = sum(1 for r in ratios if r > 1.2) / len(ratios)
    return avg > 1.3 and share >= 0.6, avg, share


def detect_quality_degradation(evolutions: Sequence[IssueEvolution]) -> list[TemporalPattern]:
    patterns = []
    for evolution in evolutions:
        if len(evolution.timeline) < 4:
            continue
        weekly = weekly_net_new(evolution)
        if len(weekly) < 3:
            continue
        emit, avg, share = assess_degradation([d for _, d in weekly])
        if not emit:
            continue

        severity = Severity.HIGH if avg > 2.0 else Severity.MEDIUM if avg > 1.6 else Severity.LOW
        patterns.append(
            TemporalPattern(
                id=f"quality-degradation-{evolution.id}",
                type=PatternType.QUALITY_DEGRADATION,
                confidence=min(0.9, share),
                severity=severity,
                description=(
                    f"Quality degradation detected in {evolution.file_path} - "
                    "increasing issue density over time"
                ),
                files=[evolution.file_path],
                start=evolution.timeline[0].date,
                end=evolution.timeline[-1].date,
                evidence=[
                    PatternEvidence(
                        "issue_correlation",
                        avg,
                        f"Average trend multiplier: {avg:.2f}",
                        min(1.0, avg / 2),
                    ),
                    PatternEvidence(
                        "complexity_change",
                        share,
                        f"{share * 100:.1f}% of periods show significant increase",
                        share,
                    ),
                ],
                recommendations=[
                    "Implement immediate code review for changes to this file",
                    "Add automated testing to catch regressions early",
                    "Consider technical debt reduction sprint",
                    "Monitor for architectural violations",
                ],
            )
        )
    return _sorted(patterns)


# ── Cyclic regression ──────────────────────────────────────────────


def fix_regress_cycles(evolution: IssueEvolution) -> list[tuple]:
    """(fix date, regression date) pairs in timeline order."""
    cycles = []
    last_fix = None
    for entry in evolution.timeline:
        if entry.action is TimelineAction.FIXED:
            last_fix = entry.date
        elif entry.action is TimelineAction.REGRESSED and last_fix is not None:
            cycles.append((last_fix, entry.date))
            last_fix = None
    return cycles


def detect_cyclic_regressions(evolutions: Sequence[IssueEvolution]) -> list[TemporalPattern]:
    patterns = []
    for evolution in evolutions:
        cycles = fix_regress_cycles(evolution)
        if len(cycles) < 2:
            continue

        durations = [days_between(fixed, regressed) for fixed, regressed in cycles]
        avg_duration = Statistics.mean(durations)
        regular = avg_duration > 0 and Statistics.coefficient_of_variation(durations) < 0.5
        frequent = avg_duration < 30
        count = len(cycles)
        if not (regular or frequent or count >= 3):
            continue

        if count >= 4 and frequent:
            severity = Severity.HIGH
        elif count >= 3 or frequent:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW
        confidence = min(
            0.9, (count / 5) * 0.6 + (0.3 if regular else 0.0) + (0.1 if frequent else 0.0)
        )
        patterns.append(
            TemporalPattern(
                id=f"cyclic-regression-{evolution.id}",
                type=PatternType.CYCLIC_REGRESSION,
                confidence=confidence,
                severity=severity,
                description=(
                    f"Cyclical regression pattern detected in {evolution.file_path} - "
                    f"{count} fix-regression cycles"
                ),
                files=[evolution.file_path],
                start=cycles[0][0],
                end=cycles[-1][1],
                evidence=[
                    PatternEvidence(
                        "commit_frequency",
                        float(count),
                        f"{count} complete fix-regression cycles detected",
                        min(1.0, count / 5),
                    ),
                    PatternEvidence(
                        "issue_correlation",
                        avg_duration,
                        f"Average cycle duration: {avg_duration:.1f} days",
                        0.8 if frequent else 0.4,
                    ),
                ],
                recommendations=[
                    "Investigate root cause of recurring regressions",
                    "Implement comprehensive regression test suite",
                    "Consider architectural refactoring to break the cycle",
                    "Add monitoring for early regression detection",
                    "Review fix quality and thoroughness process",
                ],
            )
        )
    return _sorted(patterns)


# ── Author correlation ─────────────────────────────────────────────


def detect_author_correlation(
    commits: Sequence[Commit], evolutions: Sequence[IssueEvolution]
) -> list[TemporalPattern]:
    by_author: dict[str, list[Commit]] = defaultdict(list)
    for commit in commits:
        by_author[commit.author].append(commit)

    introduced = [
        (evolution, entry)
        for evolution in evolutions
        for entry in evolution.timeline
        if entry.action is TimelineAction.INTRODUCED
    ]

    patterns = []
    for author in sorted(by_author):
        author_commits = by_author[author]
        if len(author_commits) < 3:
            continue

        correlations = []  # (related evolution count, timing score)
        for commit in author_commits:
            diffs = {}
            for evolution, entry in introduced:
                delta = entry.date - commit.date
                if timedelta(0) <= delta <= AUTHOR_WINDOW and touches(commit, evolution.file_path):
                    seconds = delta.total_seconds()
                    diffs[evolution.id] = min(seconds, diffs.get(evolution.id, seconds))
            if diffs:
                avg_diff = sum(diffs.values()) / len(diffs)
                timing = 1 - avg_diff / AUTHOR_WINDOW.total_seconds()
                correlations.append((len(diffs), timing))

        if len(correlations) < 2:
            continue

        total = sum(n for n, _ in correlations)
        rate = total / len(author_commits)
        timing = sum(t for _, t in correlations) / len(correlations)
        if not (rate > 1.5 and timing > 0.7):
            continue

        severity = Severity.HIGH if rate > 3 else Severity.MEDIUM if rate > 2 else Severity.LOW
        confidence = min(
            0.95,
            (len(correlations) / 10) * 0.4 + timing * 0.4 + min(1.0, rate / 3) * 0.2,
        )
        slug = "-".join(author.lower().split())
        patterns.append(
            TemporalPattern(
                id=f"author-correlation-{slug}",
                type=PatternType.AUTHOR_CORRELATION,
                confidence=confidence,
                severity=severity,
                description=(
                    f"Author {author} shows correlation with issue introduction - "
                    f"{total} issues across {len(author_commits)} commits"
                ),
                files=[],
                start=author_commits[0].date,
                end=author_commits[-1].date,
                evidence=[
                    PatternEvidence(
                        "author_activity",
                        rate,
                        f"Issue rate: {rate:.2f} issues per commit",
                        min(1.0, rate / 3),
                    ),
                    PatternEvidence(
                        "commit_frequency",
                        float(len(author_commits)),
                        f"{len(author_commits)} commits with {len(correlations)} issue correlations",
                        min(1.0, len(correlations) / 10),
                    ),
                ],
                recommendations=[
                    f"Provide additional code review for {author}'s commits",
                    "Consider pair programming or mentoring opportunities",
                    "Review and strengthen testing practices",
                    "Implement pre-commit hooks for quality checks",
                    "Analyze specific types of issues being introduced",
                ],
            )
        )
    return _sorted(patterns)


def detect_patterns(
    commits: Sequence[Commit],
    histories: Sequence[FileHistory],
    evolutions: Sequence[IssueEvolution],
) -> list[TemporalPattern]:
    return [
        *detect_hotspot_formation(histories),
        *detect_quality_degradation(evolutions),
        *detect_cyclic_regressions(evolutions),
        *detect_author_correlation(commits, evolutions),
    ]
