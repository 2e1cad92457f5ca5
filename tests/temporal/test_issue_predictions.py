"""Tests for issue-count and hotspot predictions."""

from datetime import datetime, timedelta, timezone

import pytest

from crosslint.models import Severity
from crosslint.temporal import FileHistory, PatternType, TemporalPattern
from crosslint.temporal.models import ComplexitySample, DataPoint, IssueHistoryEntry
from crosslint.temporal.predictions import (
    complexity_increase,
    file_risk_score,
    hotspot_candidate,
    issue_recommendations,
    predict_hotspots,
    predict_issues,
    velocities,
)
from crosslint.temporal.trends import trend_from_points

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_entry(new, fixed=0):
    return IssueHistoryEntry(
        date=START,
        commit="e" * 40,
        author="alice",
        new_issues=new,
        fixed_issues=fixed,
        total_issues=new + fixed,
        severity_counts={},
        files_changed=1,
        lines_added=0,
        lines_deleted=0,
    )


def make_history(path, entries=(), change_frequency=0.0, commits=0, complexity=()):
    return FileHistory(
        file_path=path,
        commits=[object()] * commits,
        change_frequency=change_frequency,
        authors=[],
        complexity_evolution=[
            ComplexitySample(START + timedelta(days=i), str(i) * 40, 10, value, 1, 0)
            for i, value in enumerate(complexity)
        ],
        issue_history=list(entries),
    )


def issue_trend(n=20):
    points = [DataPoint(START + timedelta(days=d), 10.0 + 2 * d) for d in range(n)]
    return trend_from_points("issue_count", points, 30)


class TestPredictIssues:
    """Extrapolating the issue-count trend."""

    def test_linear_growth(self):
        prediction = predict_issues([issue_trend()], [], 30)
        assert prediction.current_value == 48.0
        assert prediction.predicted_value == pytest.approx(108.0)
        assert prediction.velocity == pytest.approx(2.0)
        assert prediction.confidence == pytest.approx(0.9)
        assert prediction.horizon_days == 30
        assert prediction.confidence_factors["dataCoverage"] == 1.0
        assert (
            "Monitor high-velocity files and implement preventive measures"
            in prediction.recommendations
        )
        assert prediction.risk_factors[0]["description"] == "Issues increasing at 2.00 per day"

    def test_no_issue_trend(self):
        assert predict_issues([], [], 30) is None

    def test_risk_files_ranked(self):
        histories = [
            make_history("calm.ts", [make_entry(1, 1)], commits=2),
            make_history("hot.ts", [make_entry(2)] * 5, commits=5),
            make_history("quiet.ts"),
        ]
        prediction = predict_issues([issue_trend()], histories, 30)
        assert [rf["file"] for rf in prediction.risk_files] == ["hot.ts", "calm.ts"]

    def test_velocities(self):
        points = [
            DataPoint(START, 10.0),
            DataPoint(START + timedelta(days=2), 14.0),
            DataPoint(START + timedelta(days=2), 20.0),
        ]
        assert velocities(points) == [2.0, 0.0]


class TestFileRisk:
    def test_unfixed_growth_saturates(self):
        assert file_risk_score(make_history("a", [make_entry(2)] * 5, commits=5)) == 1.0

    def test_balanced_file(self):
        # 1 * 0.3 + 0 * 0.4 + min(1, 2/10) * 0.1
        score = file_risk_score(make_history("a", [make_entry(1, 1)], commits=2))
        assert score == pytest.approx(0.32)

    def test_no_history(self):
        assert file_risk_score(make_history("a")) == 0.0

    def test_recommendations_default(self):
        assert issue_recommendations(0.0, []) == ["Continue monitoring trends for emerging patterns"]


class TestHotspots:
    """Hotspot candidates from change frequency and growth."""

    def test_candidate(self):
        history = make_history("a.ts", [make_entry(5)] * 3, change_frequency=2.0)
        candidate = hotspot_candidate(history, [])
        assert candidate.risk == pytest.approx(0.55)
        assert candidate.time_to_hotspot_days == pytest.approx(30.0)

    def test_pattern_bonus(self):
        pattern = TemporalPattern(
            id="p",
            type=PatternType.HOTSPOT_FORMATION,
            confidence=0.9,
            severity=Severity.HIGH,
            description="",
            files=["a.ts"],
            start=None,
            end=None,
        )
        history = make_history("a.ts", [make_entry(5)] * 3, change_frequency=2.0)
        assert hotspot_candidate(history, [pattern]).factors["patternMatch"] == pytest.approx(0.09)

    def test_complexity_increase(self):
        assert complexity_increase(make_history("a", complexity=[2, 2, 4, 6])) == pytest.approx(1.5)
        assert complexity_increase(make_history("a", complexity=[2, 4])) == 0.0

    def test_predict_hotspots(self):
        histories = [
            make_history("calm.ts"),
            make_history("hot.ts", [make_entry(5)] * 3, change_frequency=2.0),
        ]
        prediction = predict_hotspots(histories, [])
        assert [c.file_path for c in prediction.candidates] == ["hot.ts"]
        assert prediction.horizon_days == 60
        assert any("preventive measures" in r for r in prediction.recommendations)

    def test_nothing_risky(self):
        prediction = predict_hotspots([make_history("calm.ts")], [])
        assert prediction.candidates == []
        assert prediction.recommendations == ["Continue monitoring for emerging hotspot patterns"]
        assert predict_hotspots([], []) is None
