"""Tests for the temporal pattern detectors."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from crosslint.models import Severity
from crosslint.temporal import (
    Commit,
    EvolutionPattern,
    FileChange,
    FileHistory,
    IssueEvolution,
    PatternType,
    TimelineAction,
)
from crosslint.temporal.models import IssueHistoryEntry, IssueTimelineEntry
from crosslint.temporal.patterns import (
    assess_degradation,
    degradation_ratios,
    detect_author_correlation,
    detect_cyclic_regressions,
    detect_hotspot_formation,
    detect_patterns,
    detect_quality_degradation,
    fix_regress_cycles,
    weekly_net_new,
)

MONDAY = datetime(2024, 1, 1, 9, tzinfo=timezone.utc)


def make_entry(when, action, issue_id="i1", author="alice"):
    return IssueTimelineEntry(
        date=when,
        commit="f" * 40,
        action=action,
        author=author,
        severity=Severity.MEDIUM,
        issue_id=issue_id,
    )


def make_evolution(timeline, rule="r1", path="src/a.ts"):
    return IssueEvolution(
        id=f"{rule}:{path}",
        rule_id=rule,
        file_path=path,
        timeline=timeline,
        pattern=EvolutionPattern.PERSISTENT,
        frequency=len(timeline),
        average_lifespan_days=0.0,
        regression_count=0,
    )


def make_history(path, totals):
    """FileHistory with one issue window per day holding ``totals[i]`` issues."""
    entries = [
        IssueHistoryEntry(
            date=MONDAY + timedelta(days=i),
            commit=str(i) * 40,
            author="alice",
            new_issues=total,
            fixed_issues=0,
            total_issues=total,
            severity_counts={},
            files_changed=1,
            lines_added=0,
            lines_deleted=0,
        )
        for i, total in enumerate(totals)
    ]
    return FileHistory(
        file_path=path, commits=[], change_frequency=0.0, authors=[], issue_history=entries
    )


class TestHotspotFormation:
    """Rising issue density per commit window."""

    def test_rising_density(self):
        patterns = detect_hotspot_formation([make_history("src/a.ts", [1, 2, 4])])
        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.id == "hotspot-formation-src/a.ts"
        assert pattern.type is PatternType.HOTSPOT_FORMATION
        assert pattern.severity is Severity.HIGH
        # slope 1.5, r = 3 / sqrt(2 * 42/9)
        assert pattern.confidence == pytest.approx(0.8 * 3 / math.sqrt(2 * 42 / 9))
        assert pattern.files == ["src/a.ts"]

    def test_too_few_windows(self):
        assert detect_hotspot_formation([make_history("a", [1, 5])]) == []

    def test_falling_density(self):
        assert detect_hotspot_formation([make_history("a", [5, 3, 1])]) == []


class TestQualityDegradation:
    """Weekly net-new issue ratios."""

    DENSITIES = [1, 1, 2, 2, 4, 4, 6, 7, 9, 11]

    def test_ratios(self):
        ratios = degradation_ratios(self.DENSITIES)
        assert ratios == pytest.approx([5 / 3, 8 / 3, 2.5, 2.8, 2.125, 2.2])

    def test_assess(self):
        emit, avg, share = assess_degradation(self.DENSITIES)
        assert emit
        assert avg == pytest.approx(sum([5 / 3, 8 / 3, 2.5, 2.8, 2.125, 2.2]) / 6)
        assert share == 1.0

    def test_flat_series(self):
        emit, avg, _ = assess_degradation([2] * 10)
        assert not emit
        assert avg == pytest.approx(1.0)

    def test_short_series(self):
        assert assess_degradation([1, 1, 1]) == (False, 0.0, 0.0)

    def test_detector(self):
        timeline = [
            make_entry(MONDAY + timedelta(weeks=week), TimelineAction.INTRODUCED, f"i{week}-{n}")
            for week, count in enumerate(self.DENSITIES)
            for n in range(count)
        ]
        patterns = detect_quality_degradation([make_evolution(timeline)])
        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.id == "quality-degradation-r1:src/a.ts"
        assert pattern.confidence == pytest.approx(0.9)
        assert pattern.severity is Severity.HIGH
        assert pattern.start == MONDAY

    def test_weekly_net_new(self):
        timeline = [
            make_entry(MONDAY, TimelineAction.INTRODUCED),
            make_entry(MONDAY + timedelta(days=1), TimelineAction.FIXED),
            make_entry(MONDAY + timedelta(days=8), TimelineAction.REGRESSED),
        ]
        assert weekly_net_new(make_evolution(timeline)) == [("2024-W01", 0), ("2024-W02", 1)]


class TestCyclicRegression:
    def regressing(self, cycles):
        timeline = [make_entry(MONDAY, TimelineAction.INTRODUCED)]
        for n in range(cycles):
            timeline.append(make_entry(MONDAY + timedelta(days=4 * n + 1), TimelineAction.FIXED))
            timeline.append(make_entry(MONDAY + timedelta(days=4 * n + 3), TimelineAction.REGRESSED))
        return make_evolution(timeline)

    def test_cycles(self):
        assert len(fix_regress_cycles(self.regressing(2))) == 2

    def test_two_regular_cycles(self):
        patterns = detect_cyclic_regressions([self.regressing(2)])
        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.severity is Severity.MEDIUM
        # 2/5 * 0.6 + 0.3 (regular) + 0.1 (frequent)
        assert pattern.confidence == pytest.approx(0.64)

    def test_four_frequent_cycles_are_high(self):
        pattern = detect_cyclic_regressions([self.regressing(4)])[0]
        assert pattern.severity is Severity.HIGH
        # 4/5 * 0.6 + 0.3 + 0.1
        assert pattern.confidence == pytest.approx(0.88)

    def test_single_cycle_ignored(self):
        assert detect_cyclic_regressions([self.regressing(1)]) == []


class TestAuthorCorrelation:
    """Issues introduced shortly after an author's commits."""

    def make_commits(self, author="Alice Smith", count=3):
        return [
            Commit(
                hash=str(n) * 40,
                author=author,
                email="alice@example.com",
                date=MONDAY + timedelta(days=4 * n),
                message="change",
                files=(FileChange("src/a.ts"), FileChange("src/b.ts")),
            )
            for n in range(count)
        ]

    def make_evolutions(self, commits):
        return [
            make_evolution(
                [make_entry(c.date, TimelineAction.INTRODUCED) for c in commits], path=path
            )
            for path in ("src/a.ts", "src/b.ts")
        ]

    def test_correlated_author(self):
        commits = self.make_commits()
        patterns = detect_author_correlation(commits, self.make_evolutions(commits))
        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.id == "author-correlation-alice-smith"
        assert pattern.severity is Severity.LOW
        # 3/10 * 0.4 + 1.0 * 0.4 + (2/3) * 0.2
        assert pattern.confidence == pytest.approx(0.12 + 0.4 + 0.2 * 2 / 3)

    def test_too_few_commits(self):
        commits = self.make_commits(count=2)
        assert detect_author_correlation(commits, self.make_evolutions(commits)) == []

    def test_all_detectors(self):
        commits = self.make_commits()
        histories = [make_history("src/a.ts", [1, 2, 4])]
        patterns = detect_patterns(commits, histories, self.make_evolutions(commits))
        assert {p.type for p in patterns} == {
            PatternType.HOTSPOT_FORMATION,
            PatternType.AUTHOR_CORRELATION,
        }
