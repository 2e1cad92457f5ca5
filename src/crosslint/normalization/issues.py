"""Turn raw tool findings into canonical Issues."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..exceptions import NormalizationError
from ..ingestion import assign_ids
from ..logging_config import get_logger
from ..models import AnalysisType, Issue, RawFinding, Severity, parse_timestamp
from .entities import EntityResolver
from .paths import NormalizationResult, PathNormalizer

logger = get_logger(__name__)

_DETECTED_AT_KEYS = ("detectedAt", "firstSeen", "createdAt", "creationDate")


@dataclass
class NormalizedBatch:
    issues: list[Issue] = field(default_factory=list)
    results: list[NormalizationResult] = field(default_factory=list)
    failures: list[NormalizationError] = field(default_factory=list)


def normalize_findings(
    findings: Iterable[RawFinding],
    normalizer: PathNormalizer,
    resolver: EntityResolver,
) -> NormalizedBatch:
    """Normalize paths, severities and types for a batch of findings.

    A finding whose path cannot be normalized is kept with no entity and
    confidence 0; a NormalizationError describing it is collected.
    """
    findings = list(findings)
    batch = NormalizedBatch()

    for finding, issue_id in zip(findings, assign_ids(findings)):
        result = normalizer.normalize(finding.path, finding.tool_name)
        batch.results.append(result)

        if not result.normalized:
            batch.failures.append(
                NormalizationError(finding.tool_name, finding.path, result.error or "unknown")
            )

        batch.issues.append(_build_issue(finding, issue_id, result, resolver))

    if batch.failures:
        logger.warning("%d of %d paths could not be normalized", len(batch.failures), len(findings))
    return batch


def _build_issue(
    finding: RawFinding, issue_id: str, result: NormalizationResult, resolver: EntityResolver
) -> Issue:
    metadata = dict(finding.metadata)
    if finding.severity is not None:
        metadata.setdefault("originalSeverity", finding.severity)
    if finding.analysis_type is not None:
        metadata.setdefault("originalType", finding.analysis_type)

    detected_at = None
    for key in _DETECTED_AT_KEYS:
        detected_at = parse_timestamp(metadata.get(key))
        if detected_at is not None:
            break

    return Issue(
        id=issue_id,
        tool_name=finding.tool_name.lower(),
        rule_id=finding.rule_id,
        description=finding.description,
        severity=Severity.parse(finding.severity),
        analysis_type=AnalysisType.parse(finding.analysis_type),
        entity=resolver.resolve(result.canonical_path),
        original_path=finding.path,
        line=finding.line,
        column=finding.column,
        end_line=finding.end_line,
        end_column=finding.end_column,
        title=finding.title,
        normalization_confidence=result.confidence,
        detected_at=detected_at,
        metadata=metadata,
    )
