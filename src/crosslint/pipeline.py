"""CorrelationPipeline: sequences every stage into one unified report.

Stages, in order:
  ingest     - each adapter's findings (a failing adapter is skipped)
  normalize  - canonical paths, severities and types
  dedup      - cross-tool duplicate groups
  functions  - function hotspot clusters
  graph      - module graph and architectural analysis
  temporal   - git history analysis

A stage that raises a CrosslintError is recorded in ``errors`` and the
later stages run on whatever the earlier ones produced. FatalError
aborts the run.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from .architecture import ArchitectureAnalyzer, ArchitectureResult
from .config import CorrelationConfig
from .correlation import (
    DuplicateClusterer,
    FunctionHotspotClusterer,
    RegexBoundaryProvider,
    SimilarityScorer,
)
from .correlation.boundaries import FunctionBoundaryProvider
from .correlation.models import DedupResult, DedupStatistics, FunctionClusterResult
from .exceptions import (
    CrosslintError,
    ErrorCode,
    ErrorRecord,
    FatalError,
    InvalidPathError,
    describe,
)
from .graph import ModuleGraph, ModuleGraphBuilder
from .ingestion import ToolAdapter
from .logging_config import get_logger
from .models import Issue, RawFinding, Severity
from .normalization import EntityResolver, PathNormalizer, normalize_findings
from .normalization.paths import NormalizationResult
from .report import UnifiedReport
from .temporal import GitCliReader, GitHistoryReader, TemporalAnalyzer
from .temporal.models import Commit, TemporalResult

logger = get_logger(__name__)

T = TypeVar("T")

STAGE_CODES = {
    "ingest": ErrorCode.CL200,
    "normalize": ErrorCode.CL300,
    "dedup": ErrorCode.CL300,
    "functions": ErrorCode.CL400,
    "graph": ErrorCode.CL401,
    "temporal": ErrorCode.CL500,
}


@dataclass
class RunContext:
    """Per-run caches shared by stages. Nothing outlives one run."""

    source_cache: dict[str, Optional[str]] = field(default_factory=dict)
    commits: Optional[list[Commit]] = None
    errors: list[ErrorRecord] = field(default_factory=list)


class CorrelationPipeline:
    """Usage:
    pipeline = CorrelationPipeline(config, project_root, adapters)
    report = pipeline.run()

    Args:
        config: Run configuration
        project_root: Directory holding the analyzed sources
        adapters: Finding sources, read in order
        boundary_provider: Function boundary parser; None clusters at file scope
        git_reader: History reader; defaults to the git CLI at project_root
        min_severity: Drop canonical issues below this level before dedup
        project_key: Report key; defaults to the root directory name
    """

    def __init__(
        self,
        config: CorrelationConfig,
        project_root: Path,
        adapters: Sequence[ToolAdapter],
        boundary_provider: Optional[FunctionBoundaryProvider] = None,
        git_reader: Optional[GitHistoryReader] = None,
        min_severity: Optional[Severity] = None,
        project_key: Optional[str] = None,
    ):
        root = Path(project_root)
        if not root.is_dir():
            raise InvalidPathError(str(root), "project root is not a directory")
        self.config = config
        self.project_root = root.resolve()
        self.adapters = list(adapters)
        self.boundary_provider = (
            boundary_provider if boundary_provider is not None else RegexBoundaryProvider()
        )
        self.git_reader = git_reader
        self.min_severity = min_severity
        self.project_key = project_key or self.project_root.name

    def run(self) -> UnifiedReport:
        ctx = RunContext()
        started = time.perf_counter()

        findings = self._ingest(ctx)
        issues, norm_results = self._stage(
            ctx, "normalize", lambda: self._normalize(ctx, findings), lambda: ([], [])
        )
        dedup = self._stage(
            ctx, "dedup", lambda: self._deduplicate(issues), lambda: self._passthrough(issues)
        )
        functions = self._stage(
            ctx, "functions", lambda: self._cluster_functions(ctx, dedup.issues), FunctionClusterResult
        )
        graph, architecture = self._stage(
            ctx,
            "graph",
            lambda: self._analyze_architecture(ctx, dedup.issues),
            lambda: (ModuleGraph(), ArchitectureResult()),
        )
        temporal = self._stage(
            ctx, "temporal", lambda: self._analyze_temporal(ctx, dedup.issues), TemporalResult
        )

        logger.info(
            f"Pipeline finished in {time.perf_counter() - started:.2f}s "
            f"({len(dedup.issues)} issues, {len(ctx.errors)} errors)"
        )
        return UnifiedReport(
            project_key=self.project_key,
            project_path=self.project_root.as_posix(),
            analyzed_at=datetime.now(timezone.utc),
            issues=dedup.issues,
            dedup=dedup,
            functions=functions,
            module_graph=graph,
            architecture=architecture,
            temporal=temporal,
            metrics=project_metrics(issues, dedup, norm_results),
            errors=ctx.errors,
        )

    # ── Stage plumbing ──────────────────────────────────────────────

    def _stage(
        self,
        ctx: RunContext,
        name: str,
        func: Callable[[], T],
        fallback: Callable[[], T],
    ) -> T:
        started = time.perf_counter()
        try:
            result = func()
        except FatalError:
            raise
        except CrosslintError as e:
            self._record(ctx, name, e)
            result = fallback()
        except Exception as e:
            logger.warning(f"Stage {name} failed: {e}")
            ctx.errors.append(ErrorRecord.from_exception(name, e, STAGE_CODES[name]))
            result = fallback()
        logger.info(f"Stage {name} took {time.perf_counter() - started:.2f}s")
        return result

    def _record(self, ctx: RunContext, stage: str, exc: CrosslintError) -> None:
        logger.warning(f"{stage}: {describe(exc)}")
        ctx.errors.append(ErrorRecord.from_exception(stage, exc))

    # ── Stages ──────────────────────────────────────────────────────

    def _ingest(self, ctx: RunContext) -> list[RawFinding]:
        started = time.perf_counter()
        findings: list[RawFinding] = []
        for adapter in self.adapters:
            try:
                fetched = adapter.fetch()
            except FatalError:
                raise
            except CrosslintError as e:
                self._record(ctx, "ingest", e)
                continue
            logger.info(f"Adapter {adapter.name}: {len(fetched)} findings")
            findings.extend(fetched)
        logger.info(f"Stage ingest took {time.perf_counter() - started:.2f}s")
        return findings

    def _normalize(
        self, ctx: RunContext, findings: list[RawFinding]
    ) -> tuple[list[Issue], list[NormalizationResult]]:
        normalizer = PathNormalizer(self.project_root.as_posix(), self.config.tool_roots)
        batch = normalize_findings(findings, normalizer, EntityResolver())
        for failure in batch.failures:
            ctx.errors.append(ErrorRecord.from_exception("normalize", failure))

        issues = batch.issues
        if self.min_severity is not None:
            floor = self.min_severity.rank
            issues = [i for i in issues if i.severity.rank >= floor]
            logger.debug(f"Severity filter kept {len(issues)} of {len(batch.issues)} issues")
        return issues, batch.results

    def _deduplicate(self, issues: list[Issue]) -> DedupResult:
        reliability = self.config.reliability_for
        clusterer = DuplicateClusterer(
            SimilarityScorer(reliability), reliability, self.config.thresholds.near_match
        )
        return clusterer.deduplicate(issues)

    @staticmethod
    def _passthrough(issues: list[Issue]) -> DedupResult:
        count = len(issues)
        return DedupResult(
            issues=list(issues),
            statistics=DedupStatistics(original_count=count, deduplicated_count=count),
        )

    def _cluster_functions(self, ctx: RunContext, issues: list[Issue]) -> FunctionClusterResult:
        clusterer = FunctionHotspotClusterer(
            self.boundary_provider,
            project_root=self.project_root,
            concurrency=self.config.concurrency,
            source_cache=ctx.source_cache,
        )
        result = clusterer.cluster(issues)
        for error in clusterer.errors:
            self._record(ctx, "functions", error)
        return result

    def _analyze_architecture(
        self, ctx: RunContext, issues: list[Issue]
    ) -> tuple[ModuleGraph, ArchitectureResult]:
        builder = ModuleGraphBuilder(
            self.project_root,
            extensions=self.config.source_extensions,
            ignore_dirs=self.config.ignore_dirs,
            max_files=self.config.max_files,
            concurrency=self.config.concurrency,
            source_cache=ctx.source_cache,
        )
        graph = builder.build()
        return graph, ArchitectureAnalyzer(self.config.thresholds).analyze(graph, issues)

    def _analyze_temporal(self, ctx: RunContext, issues: list[Issue]) -> TemporalResult:
        reader = self.git_reader or GitCliReader(
            self.project_root,
            max_commits=self.config.max_commits,
            version_timeout=self.config.git_version_timeout,
            timeout=self.config.analysis_timeout,
        )
        analyzer = TemporalAnalyzer(self.config, reader)
        if ctx.commits is None:
            ctx.commits = analyzer.load_commits()
        result = analyzer.analyze(issues, ctx.commits)
        for error in analyzer.errors:
            self._record(ctx, "temporal", error)
        return result


def project_metrics(
    issues: Sequence[Issue], dedup: DedupResult, norm_results: Sequence[NormalizationResult]
) -> dict[str, Any]:
    """Totals for ``project.metrics``: counts by severity and tool, plus stage stats."""
    by_severity = Counter(i.severity.value for i in dedup.issues)
    by_tool = Counter(i.tool_name for i in issues)
    return {
        "totalIssues": len(issues),
        "deduplicatedIssues": len(dedup.issues),
        "severityCounts": {s.value: by_severity.get(s.value, 0) for s in Severity},
        "toolCounts": dict(sorted(by_tool.items())),
        "normalization": PathNormalizer.stats(norm_results),
        "deduplication": dedup.statistics,
    }
