"""Tests for daily series, trend fitting and forecasts."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from crosslint.temporal import Commit, FileChange, FileHistory, TrendDirection
from crosslint.temporal.models import ComplexitySample, DataPoint, IssueHistoryEntry, TrendStrength
from crosslint.temporal.trends import (
    calculate_trends,
    churn_series,
    complexity_series,
    day_of,
    direction_for,
    forecast,
    issue_count_series,
    strength_for,
    trend_from_points,
)

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def linear_points(n=20, base=10.0, step=2.0):
    """One point per day with value base + step * day."""
    return [DataPoint(START + timedelta(days=d), base + step * d) for d in range(n)]


def make_entry(when, total, added=0, deleted=0):
    return IssueHistoryEntry(
        date=when,
        commit="e" * 40,
        author="alice",
        new_issues=total,
        fixed_issues=0,
        total_issues=total,
        severity_counts={},
        files_changed=1,
        lines_added=added,
        lines_deleted=deleted,
    )


def make_history(path, entries=(), samples=()):
    return FileHistory(
        file_path=path,
        commits=[],
        change_frequency=0.0,
        authors=[],
        complexity_evolution=list(samples),
        issue_history=list(entries),
    )


def make_commit(char, day, added, deleted):
    return Commit(
        hash=char * 40,
        author="alice",
        email="alice@example.com",
        date=START + timedelta(days=day, hours=12),
        message="change",
        files=(FileChange("a.ts", added, deleted),),
    )


class TestClassification:
    def test_day_of_uses_utc(self):
        plus_two = timezone(timedelta(hours=2))
        assert day_of(datetime(2024, 1, 2, 1, tzinfo=plus_two)).isoformat() == "2024-01-01"

    @pytest.mark.parametrize(
        "r_squared,expected",
        [(0.2, TrendStrength.WEAK), (0.5, TrendStrength.MODERATE), (0.9, TrendStrength.STRONG)],
    )
    def test_strength(self, r_squared, expected):
        assert strength_for(r_squared) is expected

    @pytest.mark.parametrize(
        "metric,slope,expected",
        [
            ("issue_count", 0.05, TrendDirection.STABLE),
            ("issue_count", 0.2, TrendDirection.INCREASING),
            ("complexity", 0.4, TrendDirection.STABLE),
            ("churn_rate", 5.0, TrendDirection.STABLE),
            ("churn_rate", -20.0, TrendDirection.DECREASING),
        ],
    )
    def test_direction(self, metric, slope, expected):
        assert direction_for(metric, slope) is expected


class TestTrend:
    """Fitting and forecasting a perfect line."""

    def test_linear_trend(self):
        trend = trend_from_points("issue_count", linear_points(), 30)
        assert trend.slope == pytest.approx(2.0)
        assert trend.intercept == pytest.approx(10.0)
        assert trend.r_squared == pytest.approx(1.0)
        assert trend.direction is TrendDirection.INCREASING
        assert trend.strength is TrendStrength.STRONG
        assert len(trend.forecast) == 30

    def test_forecast_points(self):
        trend = trend_from_points("issue_count", linear_points(), 30)
        first = trend.forecast[0]
        assert first.date == START + timedelta(days=20)
        assert first.predicted_value == pytest.approx(50.0)
        assert first.confidence == pytest.approx(trend.r_squared * math.exp(-1 / 9))
        assert first.upper_bound == pytest.approx(first.lower_bound, abs=1e-6)
        confidences = [p.confidence for p in trend.forecast]
        assert confidences == sorted(confidences, reverse=True)

    def test_forecast_never_negative(self):
        points = linear_points(n=5, base=10.0, step=-3.0)
        assert all(p.predicted_value >= 0 for p in forecast(points, 10))
        assert all(p.lower_bound >= 0 for p in forecast(points, 10))

    def test_too_few_points(self):
        assert trend_from_points("issue_count", linear_points(n=2), 30) is None
        assert forecast(linear_points(n=1), 30) == []


class TestSeries:
    """Daily aggregation of histories and commits."""

    def test_issue_count_sums_files(self):
        histories = [
            make_history("a", [make_entry(START, 2), make_entry(START + timedelta(days=1), 3)]),
            make_history("b", [make_entry(START + timedelta(hours=5), 4)]),
        ]
        points = issue_count_series(histories)
        assert [p.value for p in points] == [6.0, 3.0]
        assert points[0].date == START

    def test_complexity_prefers_samples(self):
        sampled = [
            ComplexitySample(START, "a" * 40, 10, 4, 1, 0),
            ComplexitySample(START + timedelta(days=1), "b" * 40, 10, 8, 1, 0),
        ]
        histories = [
            make_history("a", samples=sampled),
            make_history("b", entries=[make_entry(START, 2, added=10, deleted=20)]),
        ]
        points = complexity_series(histories)
        # day 1: mean of sample 4 and estimate 2*2 + 1 + 1
        assert [p.value for p in points] == pytest.approx([5.0, 8.0])

    def test_churn(self):
        commits = [make_commit("a", 0, 3, 1), make_commit("b", 0, 2, 0), make_commit("c", 1, 1, 1)]
        assert [p.value for p in churn_series(commits)] == [6.0, 2.0]

    def test_calculate_trends_skips_sparse_metrics(self):
        commits = [make_commit(c, d, 10 * (d + 1), 0) for c, d in (("a", 0), ("b", 1), ("c", 2))]
        trends = calculate_trends(commits, [], 7)
        assert [t.metric for t in trends] == ["churn_rate"]
        assert len(trends[0].forecast) == 7
