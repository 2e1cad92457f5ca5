"""Group cross-tool duplicates and build a consensus issue per group."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable

from ..exceptions import FatalError
from ..logging_config import get_logger
from ..math import Statistics
from ..models import Issue, Severity
from .models import (
    DedupResult,
    DedupStatistics,
    DuplicateGroup,
    MatchStrength,
    MergeStrategy,
    SimilarityScore,
)
from .similarity import SimilarityScorer

logger = get_logger(__name__)


def _order_key(issue: Issue) -> tuple:
    """Total order over issues so grouping never depends on input order."""
    return (
        issue.id,
        issue.tool_name,
        issue.rule_id,
        issue.canonical_path or "",
        -1 if issue.line is None else issue.line,
        issue.description,
    )


def consensus_severity(issues: Iterable[Issue]) -> Severity:
    """Reverse lookup of the rounded (half up) mean severity rank."""
    ranks = [i.severity.rank for i in issues]
    return Severity.from_rank(Statistics.round_half_up(Statistics.mean(ranks)))


def choose_merge_strategy(confidence: SimilarityScore) -> MergeStrategy:
    if confidence.strength is MatchStrength.DEFINITIVE or confidence.overall >= 0.9:
        return MergeStrategy.MERGE_METADATA
    if confidence.overall >= 0.7:
        return MergeStrategy.AGGREGATE_SCORES
    return MergeStrategy.KEEP_PRIMARY


class DuplicateClusterer:
    """O(n^2) single-pass grouping against a near-match threshold.

    Args:
        scorer: Pairwise similarity scorer
        reliability: Tool name -> reliability weight, for primary selection
        near_match: Minimum overall similarity to join a group
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        reliability: Callable[[str], float],
        near_match: float = 0.85,
    ):
        self.scorer = scorer
        self.reliability = reliability
        self.near_match = near_match

    def _primary_key(self, issue: Issue) -> tuple:
        return (-self.reliability(issue.tool_name), -issue.severity.rank, issue.id)

    def deduplicate(self, issues: list[Issue]) -> DedupResult:
        eligible = sorted((i for i in issues if i.entity is not None), key=_order_key)
        unplaced = sorted((i for i in issues if i.entity is None), key=_order_key)

        processed: set[str] = set()
        groups: list[DuplicateGroup] = []
        output: list[Issue] = []

        for position, anchor in enumerate(eligible):
            if anchor.id in processed:
                continue
            processed.add(anchor.id)

            candidates = []
            for other in eligible[position + 1:]:
                if other.id in processed:
                    continue
                if self.scorer.score(anchor, other).overall >= self.near_match:
                    candidates.append(other)
                    processed.add(other.id)

            if not candidates:
                output.append(anchor)
                continue

            members = [anchor] + candidates
            primary = min(members, key=self._primary_key)

            # Membership is judged against the chosen primary, not the anchor
            kept: list[tuple[Issue, SimilarityScore]] = []
            for member in members:
                if member is primary:
                    continue
                score = self.scorer.score(primary, member)
                if score.overall >= self.near_match:
                    kept.append((member, score))
                elif member is not anchor:
                    processed.discard(member.id)
                else:
                    output.append(anchor)

            if not kept:
                output.append(primary)
                continue

            group = self._build_group(primary, kept)
            groups.append(group)
            output.append(group.enhanced_issue)

        output.extend(unplaced)

        statistics = DedupStatistics(
            original_count=len(issues),
            deduplicated_count=len(output),
            duplicates_removed=len(issues) - len(output),
            groups_found=len(groups),
        )
        logger.info(
            "Deduplication: %d -> %d issues in %d groups",
            statistics.original_count,
            statistics.deduplicated_count,
            statistics.groups_found,
        )
        return DedupResult(issues=output, groups=groups, statistics=statistics)

    def _build_group(
        self, primary: Issue, kept: list[tuple[Issue, SimilarityScore]]
    ) -> DuplicateGroup:
        duplicates = [member for member, _ in kept]
        if any(d.id == primary.id for d in duplicates):
            raise FatalError("primary issue listed among its duplicates", primary=primary.id)

        confidence = min((score for _, score in kept), key=lambda s: s.overall)
        members = [primary] + duplicates
        consensus = consensus_severity(members)
        strategy = choose_merge_strategy(confidence)
        evidence = build_evidence(members, consensus)

        return DuplicateGroup(
            id=f"dup-{primary.id}",
            primary=primary,
            duplicates=duplicates,
            confidence=confidence,
            merge_strategy=strategy,
            evidence=evidence,
            consensus_severity=consensus.value,
            enhanced_issue=enhance_primary(primary, duplicates, consensus, strategy, confidence, evidence),
        )


def build_evidence(members: list[Issue], consensus: Severity) -> dict[str, Any]:
    """Combined metadata from every member; tool collisions become lists."""
    tools = sorted({m.tool_name for m in members})
    evidence: dict[str, Any] = {
        "combinedFrom": [m.id for m in members],
        "allTools": tools,
        "consensusSeverity": consensus.value,
        "evidenceCount": len(members),
    }
    for member in members:
        key = f"{member.tool_name}_metadata"
        block = dict(member.metadata)
        if key not in evidence:
            evidence[key] = block
        elif isinstance(evidence[key], list):
            evidence[key].append(block)
        else:
            evidence[key] = [evidence[key], block]
    return evidence


def enhance_primary(
    primary: Issue,
    duplicates: list[Issue],
    consensus: Severity,
    strategy: MergeStrategy,
    confidence: SimilarityScore,
    evidence: dict[str, Any],
) -> Issue:
    """The issue that stands for the whole group downstream."""
    members = [primary] + duplicates
    tools = evidence["allTools"]

    if strategy is MergeStrategy.MERGE_METADATA:
        metadata: dict[str, Any] = {}
        for duplicate in reversed(duplicates):
            metadata.update(duplicate.metadata)
        metadata.update(primary.metadata)
    else:
        metadata = dict(primary.metadata)

    if strategy is MergeStrategy.AGGREGATE_SCORES:
        ranks = [m.severity.rank for m in members]
        metadata["aggregatedScores"] = {
            "severityRanks": ranks,
            "meanSeverityRank": Statistics.mean(ranks),
            "meanNormalizationConfidence": Statistics.mean(
                [m.normalization_confidence for m in members]
            ),
        }

    metadata["deduplicationInfo"] = {
        "originalId": primary.id,
        "duplicateIds": [d.id for d in duplicates],
        "confidence": confidence.overall,
        "strength": confidence.strength.value,
        "mergeStrategy": strategy.value,
        "evidence": evidence,
    }

    return replace(
        primary,
        id=f"{primary.id}-enhanced",
        severity=consensus,
        tool_name=f"{primary.tool_name}+{len(duplicates)}",
        description=(
            f"{primary.description} (Consensus from {len(tools)} tools: {', '.join(tools)})"
        ),
        metadata=metadata,
    )
