"""Tests for cross-tool duplicate grouping."""

import random

import pytest

from crosslint.config import CorrelationConfig
from crosslint.correlation import (
    DuplicateClusterer,
    MatchStrength,
    MergeStrategy,
    SimilarityScore,
    SimilarityScorer,
    consensus_severity,
)
from crosslint.correlation.dedup import choose_merge_strategy
from crosslint.correlation.models import SimilarityFactors
from crosslint.models import AnalysisType, CanonicalEntity, Issue, RawFinding, Severity
from crosslint.normalization import EntityResolver, PathNormalizer, normalize_findings


def make_issue(issue_id, tool="semgrep", rule="r1", path="src/a.js", line=10, severity=Severity.MEDIUM):
    """Create a test issue."""
    return Issue(
        id=issue_id,
        tool_name=tool,
        rule_id=rule,
        description=f"Finding {rule}",
        severity=severity,
        analysis_type=AnalysisType.SECURITY,
        entity=CanonicalEntity(path) if path is not None else None,
        line=line,
    )


def make_score(overall: float, strength: MatchStrength) -> SimilarityScore:
    factors = SimilarityFactors(overall, overall, overall, overall, overall, overall)
    return SimilarityScore(overall=overall, factors=factors, strength=strength)


@pytest.fixture
def clusterer():
    config = CorrelationConfig()
    return DuplicateClusterer(
        SimilarityScorer(config.reliability_for),
        config.reliability_for,
        config.thresholds.near_match,
    )


def uninitialized_findings(finding_id=None):
    """The same uninitialized variable reported by SonarQube and Semgrep."""
    return [
        RawFinding(
            "sonarqube",
            "javascript:S2703",
            "proj:src/a.js",
            severity="CRITICAL",
            description="Variable is not initialized",
            line=42,
            id=finding_id,
            metadata={"effort": "5min"},
        ),
        RawFinding(
            "semgrep",
            "javascript.uninit",
            "./src/a.js",
            severity="high",
            description="Variable not initialized before use",
            line=43,
            id=finding_id,
            metadata={"confidence": "HIGH"},
        ),
    ]


def normalize(findings):
    return normalize_findings(findings, PathNormalizer("/repo"), EntityResolver()).issues


@pytest.fixture
def uninitialized_pair():
    return normalize(uninitialized_findings())


class TestCrossToolDuplicate:
    """A single group from two tools."""

    def test_one_group(self, clusterer, uninitialized_pair):
        sonar, semgrep = uninitialized_pair
        assert sonar.canonical_path == semgrep.canonical_path == "src/a.js"

        result = clusterer.deduplicate(uninitialized_pair)
        assert len(result.groups) == 1
        group = result.groups[0]

        assert group.primary.id == sonar.id
        assert [d.id for d in group.duplicates] == [semgrep.id]
        assert group.id == f"dup-{sonar.id}"
        assert group.consensus_severity == "critical"
        assert group.confidence.overall >= 0.85
        assert group.merge_strategy is MergeStrategy.AGGREGATE_SCORES

    def test_evidence_merges_metadata(self, clusterer, uninitialized_pair):
        group = clusterer.deduplicate(uninitialized_pair).groups[0]
        evidence = group.evidence
        assert evidence["allTools"] == ["semgrep", "sonarqube"]
        assert evidence["evidenceCount"] == 2
        assert evidence["consensusSeverity"] == "critical"
        assert evidence["sonarqube_metadata"]["effort"] == "5min"
        assert evidence["semgrep_metadata"]["confidence"] == "HIGH"

    def test_enhanced_issue(self, clusterer, uninitialized_pair):
        sonar, _ = uninitialized_pair
        result = clusterer.deduplicate(uninitialized_pair)
        enhanced = result.issues[0]
        assert enhanced is result.groups[0].enhanced_issue
        assert enhanced.id == f"{sonar.id}-enhanced"
        assert enhanced.tool_name == "sonarqube+1"
        assert enhanced.severity is Severity.CRITICAL
        assert enhanced.description.endswith("(Consensus from 2 tools: semgrep, sonarqube)")
        info = enhanced.metadata["deduplicationInfo"]
        assert info["originalId"] == sonar.id
        assert info["mergeStrategy"] == "aggregate_scores"
        assert enhanced.metadata["aggregatedScores"]["severityRanks"] == [5, 4]

    def test_statistics(self, clusterer, uninitialized_pair):
        stats = clusterer.deduplicate(uninitialized_pair).statistics
        assert stats.original_count == 2
        assert stats.deduplicated_count == 1
        assert stats.duplicates_removed == 1
        assert stats.groups_found == 1

    def test_primary_never_among_duplicates(self, clusterer, uninitialized_pair):
        for group in clusterer.deduplicate(uninitialized_pair).groups:
            assert group.primary.id not in {d.id for d in group.duplicates}


class TestGrouping:
    """Pass-through and ordering."""

    def test_unrelated_issues_pass_through(self, clusterer):
        issues = [
            make_issue("a", rule="x", path="src/a.js"),
            make_issue("b", tool="codeql", rule="y.z", path="lib/other.py", line=900),
        ]
        result = clusterer.deduplicate(issues)
        assert result.groups == []
        assert sorted(i.id for i in result.issues) == ["a", "b"]

    def test_unplaced_issues_kept_last(self, clusterer):
        issues = [make_issue("z", path=None), make_issue("a")]
        result = clusterer.deduplicate(issues)
        assert [i.id for i in result.issues] == ["a", "z"]

    def test_empty(self, clusterer):
        result = clusterer.deduplicate([])
        assert result.issues == []
        assert result.statistics.original_count == 0

    def test_input_order_does_not_matter(self, clusterer):
        issues = [
            make_issue("s1", "sonarqube", "js:S1", line=5, severity=Severity.HIGH),
            make_issue("g1", "semgrep", "js:S1", line=5, severity=Severity.HIGH),
            make_issue("c1", "codeql", "py.x", path="src/b.py", line=7),
            make_issue("k1", "snyk", "py.x", path="src/b.py", line=8),
            make_issue("d1", "deepsource", "other", path="src/c.ts", line=1),
        ]
        expected = clusterer.deduplicate(issues)
        rng = random.Random(7)
        for _ in range(5):
            shuffled = issues[:]
            rng.shuffle(shuffled)
            result = clusterer.deduplicate(shuffled)
            assert [i.id for i in result.issues] == [i.id for i in expected.issues]
            assert [g.id for g in result.groups] == [g.id for g in expected.groups]

    def test_tool_supplied_ids_colliding_across_tools(self, clusterer):
        findings = uninitialized_findings(finding_id="1")
        forward = clusterer.deduplicate(normalize(findings))
        backward = clusterer.deduplicate(normalize(findings[::-1]))

        def summary(result):
            return [(g.id, g.primary.id, g.primary.tool_name) for g in result.groups]

        assert len(forward.groups) == 1
        assert summary(backward) == summary(forward)
        assert sorted(i.id for i in backward.issues) == sorted(i.id for i in forward.issues)

    def test_output_never_exceeds_input(self, clusterer):
        issues = [make_issue(f"i{n}", line=10 + n) for n in range(6)]
        result = clusterer.deduplicate(issues)
        assert len(result.issues) <= len(issues)
        assert result.statistics.duplicates_removed == len(issues) - len(result.issues)


class TestConsensus:
    """Consensus severity and merge strategy."""

    def test_half_rounds_up(self):
        issues = [make_issue("a", severity=Severity.CRITICAL), make_issue("b", severity=Severity.HIGH)]
        assert consensus_severity(issues) is Severity.CRITICAL

    def test_mean_rank(self):
        issues = [make_issue("a", severity=Severity.CRITICAL), make_issue("b", severity=Severity.LOW)]
        assert consensus_severity(issues) is Severity.HIGH

    def test_single(self):
        assert consensus_severity([make_issue("a", severity=Severity.INFO)]) is Severity.INFO

    @pytest.mark.parametrize(
        "overall,strength,expected",
        [
            (0.96, MatchStrength.DEFINITIVE, MergeStrategy.MERGE_METADATA),
            (0.91, MatchStrength.STRONG, MergeStrategy.MERGE_METADATA),
            (0.86, MatchStrength.STRONG, MergeStrategy.AGGREGATE_SCORES),
            (0.6, MatchStrength.WEAK, MergeStrategy.KEEP_PRIMARY),
        ],
    )
    def test_merge_strategy(self, overall, strength, expected):
        assert choose_merge_strategy(make_score(overall, strength)) is expected
