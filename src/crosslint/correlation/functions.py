"""Bin deduplicated issues into function spans and score hotspots."""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import ParseError
from ..logging_config import get_logger
from ..math import Statistics
from ..models import AnalysisType, Issue, Severity
from .boundaries import FunctionBoundaryProvider, file_scope_span
from .models import (
    CrossFunctionGroup,
    FunctionCluster,
    FunctionClusterResult,
    FunctionSpan,
    ProximityGroup,
    RiskLevel,
)

logger = get_logger(__name__)

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 10,
    Severity.HIGH: 8,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
    Severity.INFO: 1,
}

CROSS_FUNCTION_CONFIDENCE = 0.8


@dataclass
class _FileSpans:
    spans: list[FunctionSpan]
    line_count: Optional[int]


def source_tools(issue: Issue) -> list[str]:
    """Underlying tools behind an issue, expanding consensus issues."""
    info = issue.metadata.get("deduplicationInfo")
    if isinstance(info, dict):
        tools = info.get("evidence", {}).get("allTools")
        if tools:
            return list(tools)
    return [issue.tool_name]


def hotspot_score(issues: list[Issue], span: FunctionSpan) -> int:
    base = sum(SEVERITY_WEIGHTS[i.severity] for i in issues)
    density = len(issues) / span.length
    density_multiplier = min(3.0, 1 + 10 * density)
    tools = {t for i in issues for t in source_tools(i)}
    tool_multiplier = 1 + 0.3 * (len(tools) - 1)
    return Statistics.round_half_up(base * density_multiplier * tool_multiplier)


def risk_for(score: float) -> RiskLevel:
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def pair_similarity(a: Issue, b: Issue) -> float:
    """Within-function closeness: rule, type and a 20-line proximity decay."""
    similarity = 0.0
    if a.rule_id == b.rule_id:
        similarity += 0.4
    if a.analysis_type == b.analysis_type:
        similarity += 0.3
    if a.line is not None and b.line is not None:
        similarity += max(0.0, 1 - abs(a.line - b.line) / 20) * 0.3
    return min(1.0, similarity)


def correlation_strength(issues: list[Issue]) -> float:
    if len(issues) < 2:
        return 0.0
    scores = [
        pair_similarity(issues[i], issues[j])
        for i in range(len(issues))
        for j in range(i + 1, len(issues))
    ]
    return Statistics.mean(scores)


def recommendations_for(span: FunctionSpan, issues: list[Issue], tools: set[str]) -> list[str]:
    recs = []
    density = len(issues) / span.length
    if density > 0.2:
        recs.append(
            f"Consider refactoring {span.name} - high issue density "
            f"({len(issues)} issues in {span.length} lines)"
        )
    if len(tools) >= 3:
        recs.append(
            "Multiple analysis tools flagged this function - review for fundamental design issues"
        )
    severe = sum(1 for i in issues if i.severity in (Severity.CRITICAL, Severity.HIGH))
    if severe >= 2:
        recs.append(f"Contains {severe} high/critical issues - prioritize immediate review")
    security = sum(1 for i in issues if i.analysis_type is AnalysisType.SECURITY)
    if security:
        recs.append(f"Contains {security} security issues - conduct security review")
    if span.length > 100:
        recs.append(
            f"Large function ({span.length} lines) - consider breaking into smaller functions"
        )
    if len(span.parameters) > 5:
        recs.append(
            f"High parameter count ({len(span.parameters)}) - consider parameter object or builder pattern"
        )
    return recs


def innermost_span(spans: list[FunctionSpan], line: int) -> Optional[FunctionSpan]:
    """Latest-starting enclosing span; ties go to the shortest, then by name."""
    enclosing = [s for s in spans if s.contains(line)]
    if not enclosing:
        return None
    return min(enclosing, key=lambda s: (-s.start_line, s.end_line, s.name))


class FunctionHotspotClusterer:
    """Place issues in functions and rank the functions as hotspots.

    Args:
        provider: Function boundary source; None treats every file as one span
        project_root: Where canonical paths are read from
        concurrency: Files read per batch
        source_cache: Per-run cache of file text shared with other stages
    """

    def __init__(
        self,
        provider: Optional[FunctionBoundaryProvider],
        project_root: Optional[Path],
        concurrency: int = 10,
        source_cache: Optional[dict[str, Optional[str]]] = None,
    ):
        self.provider = provider
        self.project_root = Path(project_root) if project_root is not None else None
        self.concurrency = max(1, concurrency)
        self.source_cache = source_cache if source_cache is not None else {}
        self.errors: list[ParseError] = []

    def cluster(self, issues: list[Issue]) -> FunctionClusterResult:
        by_file: dict[str, list[Issue]] = defaultdict(list)
        for issue in issues:
            if issue.canonical_path is not None:
                by_file[issue.canonical_path].append(issue)

        files = sorted(by_file)
        file_spans = self._load_spans(files)

        bins: dict[FunctionSpan, list[Issue]] = {}
        for path in files:
            file_issues = by_file[path]
            info = file_spans[path]
            lines = [i.line for i in file_issues if i.line is not None]
            line_count = max([info.line_count or 0] + lines)
            fallback = file_scope_span(path, line_count)
            for issue in file_issues:
                span = None
                if issue.line is not None:
                    span = innermost_span(info.spans, issue.line)
                bins.setdefault(span or fallback, []).append(issue)

        clusters = []
        for span in sorted(bins, key=lambda s: (s.file_path, s.start_line, s.end_line, s.name)):
            members = bins[span]
            tools = {t for i in members for t in source_tools(i)}
            score = hotspot_score(members, span)
            clusters.append(
                FunctionCluster(
                    span=span,
                    issues=members,
                    hotspot_score=score,
                    risk=risk_for(score),
                    density=len(members) / span.length,
                    unique_tools=sorted(tools),
                    correlation_strength=correlation_strength(members),
                    recommendations=recommendations_for(span, members, tools),
                )
            )

        cross_groups = find_cross_function_groups(clusters)
        proximity = find_proximity_groups(clusters, cross_groups)

        logger.info(
            "Function clustering: %d clusters, %d cross-function, %d proximity groups",
            len(clusters),
            len(cross_groups),
            len(proximity),
        )
        return FunctionClusterResult(
            clusters=clusters, cross_function_groups=cross_groups, proximity_groups=proximity
        )

    def _load_spans(self, files: list[str]) -> dict[str, _FileSpans]:
        """Read and parse files in bounded batches; merge in input order."""
        results: dict[str, _FileSpans] = {}
        for start in range(0, len(files), self.concurrency):
            batch = files[start:start + self.concurrency]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                outcomes = list(executor.map(self._parse_one, batch))
            for path, (spans, error) in zip(batch, outcomes):
                results[path] = spans
                if error is not None:
                    self.errors.append(error)
        return results

    def _parse_one(self, path: str) -> tuple[_FileSpans, Optional[ParseError]]:
        text = self._read(path)
        if text is None:
            return _FileSpans([], None), None
        line_count = len(text.splitlines())
        if self.provider is None:
            return _FileSpans([], line_count), None
        try:
            spans = [s for s in self.provider.parse_functions(text, path) if s.start_line <= s.end_line]
        except Exception as e:
            # Third-party providers may fail on odd syntax; fall back to file scope
            logger.debug("Boundary provider failed on %s: %s", path, e)
            return _FileSpans([], line_count), ParseError(path, str(e))
        return _FileSpans(spans, line_count), None

    def _read(self, path: str) -> Optional[str]:
        if path in self.source_cache:
            return self.source_cache[path]
        text: Optional[str] = None
        if self.project_root is not None:
            try:
                text = (self.project_root / path).read_text(encoding="utf-8", errors="replace")
            except OSError:
                logger.debug("Source not readable for %s, using file scope", path)
        self.source_cache[path] = text
        return text


def _label(span: FunctionSpan) -> str:
    return f"{span.file_path}:{span.name}@{span.start_line}"


def find_cross_function_groups(clusters: list[FunctionCluster]) -> list[CrossFunctionGroup]:
    """Rules that fire in two or more distinct function clusters."""
    by_rule: dict[str, list[tuple[FunctionCluster, Issue]]] = defaultdict(list)
    for cluster in clusters:
        for issue in cluster.issues:
            by_rule[issue.rule_id].append((cluster, issue))

    groups = []
    for rule_id in sorted(by_rule):
        entries = by_rule[rule_id]
        labels = []
        for cluster, _ in entries:
            label = _label(cluster.span)
            if label not in labels:
                labels.append(label)
        if len(labels) < 2:
            continue
        groups.append(
            CrossFunctionGroup(
                rule_id=rule_id,
                functions=labels,
                issues=[issue for _, issue in entries],
                confidence=CROSS_FUNCTION_CONFIDENCE,
                message=f"Rule {rule_id} appears in {len(labels)} different functions",
            )
        )
    return groups


def find_proximity_groups(
    clusters: list[FunctionCluster], cross_groups: list[CrossFunctionGroup]
) -> list[ProximityGroup]:
    """Group leftover single-issue clusters that sit in the same file."""
    grouped = {issue.id for group in cross_groups for issue in group.issues}
    by_file: dict[str, list[Issue]] = defaultdict(list)
    for cluster in clusters:
        if len(cluster.issues) != 1:
            continue
        issue = cluster.issues[0]
        if issue.id in grouped or issue.line is None:
            continue
        by_file[cluster.span.file_path].append(issue)

    groups = []
    for path in sorted(by_file):
        members = sorted(by_file[path], key=lambda i: (i.line, i.id))
        if len(members) < 2:
            continue
        closeness = [
            max(0.0, 1 - abs(members[k + 1].line - members[k].line) / 20)
            for k in range(len(members) - 1)
        ]
        groups.append(
            ProximityGroup(
                file_path=path,
                start_line=members[0].line,
                end_line=members[-1].line,
                issues=members,
                confidence=Statistics.mean(closeness),
            )
        )
    return groups
