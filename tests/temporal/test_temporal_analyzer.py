"""Tests for the temporal analysis orchestrator."""

from datetime import datetime, timedelta, timezone

from crosslint.config import CorrelationConfig
from crosslint.exceptions import GitHistoryError
from crosslint.models import AnalysisType, CanonicalEntity, Issue, Severity
from crosslint.temporal import Commit, FileChange, StaticHistoryReader, TemporalAnalyzer

START = datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


def make_commit(char, day, message="change", author="alice"):
    """Create a test commit ``day`` days after START."""
    return Commit(
        hash=char * 40,
        author=author,
        email=f"{author}@example.com",
        date=START + timedelta(days=day),
        message=message,
        files=(FileChange("src/a.ts", 10 * (day + 1), 2),),
    )


def make_issue(issue_id, severity=Severity.HIGH, path="src/a.ts"):
    """Create a test issue."""
    return Issue(
        id=issue_id,
        tool_name="semgrep",
        rule_id="r1",
        description="Problem",
        severity=severity,
        analysis_type=AnalysisType.BUG,
        entity=CanonicalEntity(path) if path is not None else None,
        line=1,
    )


class BrokenReader(StaticHistoryReader):
    def get_commits(self, since=None, until=None):
        raise GitHistoryError("/repo", "fatal: bad object")


COMMITS = [
    make_commit("a", 0, "add parser"),
    make_commit("b", 1, "extend parser", author="bob"),
    make_commit("c", 2, "fix crash"),
]


class TestTemporalAnalyzer:
    """End-to-end over a static history."""

    def test_without_reader(self):
        result = TemporalAnalyzer(CorrelationConfig()).analyze([make_issue("i1")])
        assert not result.git_available
        assert result.commits == []
        assert result.predictions.issues is None

    def test_zero_commits(self):
        result = TemporalAnalyzer(CorrelationConfig(), StaticHistoryReader([])).analyze([])
        assert not result.git_available
        assert result.file_history == []
        assert result.patterns == []

    def test_full_run(self):
        analyzer = TemporalAnalyzer(CorrelationConfig(), StaticHistoryReader(COMMITS))
        issues = [make_issue("i1"), make_issue("i2", Severity.MEDIUM), make_issue("i3", path=None)]
        result = analyzer.analyze(issues)

        assert result.git_available
        assert [c.hash for c in result.commits] == [c.hash for c in COMMITS]
        assert [h.file_path for h in result.file_history] == ["src/a.ts"]
        assert [e.id for e in result.issue_evolution] == ["r1:src/a.ts"]
        assert [a.author for a in result.author_metrics] == ["alice", "bob"]
        assert "churn_rate" in [t.metric for t in result.trends]
        assert analyzer.errors == []

    def test_since_filter(self):
        config = CorrelationConfig(since="2024-01-02T00:00:00+00:00")
        analyzer = TemporalAnalyzer(config, StaticHistoryReader(COMMITS))
        assert [c.message for c in analyzer.load_commits()] == ["extend parser", "fix crash"]

    def test_git_failure_is_recorded(self):
        analyzer = TemporalAnalyzer(CorrelationConfig(), BrokenReader([]))
        result = analyzer.analyze([make_issue("i1")])
        assert not result.git_available
        assert len(analyzer.errors) == 1
        assert isinstance(analyzer.errors[0], GitHistoryError)

    def test_explicit_commits(self):
        result = TemporalAnalyzer(CorrelationConfig()).analyze([], commits=COMMITS)
        assert result.git_available
        assert result.regressions == []
