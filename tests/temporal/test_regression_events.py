"""Tests for regression event detection."""

from datetime import datetime, timedelta, timezone

from crosslint.models import AnalysisType, CanonicalEntity, Issue, Severity
from crosslint.temporal import Commit, FileChange
from crosslint.temporal.regressions import detect_regressions, event_severity, risk_factors

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_commit(char, day, message="change", files=(("src/a.ts", 5, 1),)):
    """Create a test commit ``day`` days after START."""
    return Commit(
        hash=char * 40,
        author="alice",
        email="alice@example.com",
        date=START + timedelta(days=day),
        message=message,
        files=tuple(FileChange(p, a, d) for p, a, d in files),
    )


def make_issue(issue_id, severity=Severity.MEDIUM, path="src/a.ts"):
    """Create a test issue."""
    return Issue(
        id=issue_id,
        tool_name="semgrep",
        rule_id="r1",
        description="Problem",
        severity=severity,
        analysis_type=AnalysisType.BUG,
        entity=CanonicalEntity(path),
        line=1,
    )


class TestRiskFactors:
    def test_all_factors(self):
        commit = make_commit("a", 0, "Refactor parser and fix crash", (("src/a.ts", 60, 25),))
        assert risk_factors(commit, "src/a.ts") == [
            "Large code addition",
            "Significant code removal",
            "Refactoring",
            "Bug fix attempt",
        ]

    def test_small_change(self):
        assert risk_factors(make_commit("a", 0), "src/a.ts") == []

    def test_severity(self):
        assert event_severity([make_issue("a", Severity.CRITICAL)]) is Severity.HIGH
        assert event_severity([make_issue("a", Severity.HIGH)]) is Severity.MEDIUM
        assert event_severity([make_issue("a", Severity.MEDIUM)]) is Severity.LOW


class TestDetectRegressions:
    """Issue clusters after a file's first commit."""

    def test_event_after_first_commit(self):
        commits = [make_commit("a", 0), make_commit("b", 1)]
        issues = [
            make_issue("i1", Severity.MEDIUM),
            make_issue("i2", Severity.LOW),
            make_issue("i3", Severity.LOW),
        ]
        events = detect_regressions(commits, issues)
        assert len(events) == 1
        event = events[0]
        assert event.id == f"regression-src/a.ts-{'b' * 8}"
        assert event.commit == "b" * 40
        assert event.issues_introduced == 3
        assert event.severity is Severity.LOW
        assert event.related_issues == ["i1", "i2", "i3"]
        assert len(event.prevention) == 4

    def test_needs_more_than_two_issues(self):
        commits = [make_commit("a", 0), make_commit("b", 1)]
        assert detect_regressions(commits, [make_issue("i1"), make_issue("i2")]) == []

    def test_needs_medium_or_worse(self):
        commits = [make_commit("a", 0), make_commit("b", 1)]
        issues = [make_issue(f"i{n}", Severity.LOW) for n in range(4)]
        assert detect_regressions(commits, issues) == []

    def test_sorted_by_issue_count(self):
        files = (("src/a.ts", 1, 0), ("src/b.ts", 1, 0))
        commits = [make_commit("a", 0, files=files), make_commit("b", 1, files=files)]
        issues = [make_issue(f"a{n}", path="src/a.ts") for n in range(3)]
        issues += [make_issue(f"b{n}", Severity.CRITICAL, path="src/b.ts") for n in range(4)]
        events = detect_regressions(commits, issues)
        assert [e.file_path for e in events] == ["src/b.ts", "src/a.ts"]
        assert events[0].severity is Severity.HIGH
