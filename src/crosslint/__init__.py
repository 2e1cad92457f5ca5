"""
Crosslint - Cross-Tool Static Analysis Correlation

Ingests findings from independent static-analysis tools, reconciles their
paths, severities and rule vocabularies, and produces one deduplicated,
correlated report: duplicate groups across tools, function hotspots, a
module dependency graph with architectural violations, and a git-history
view of how issues evolve.
"""

__version__ = "0.4.0"

from .config import CorrelationConfig, load_config
from .models import AnalysisType, CanonicalEntity, Issue, RawFinding, Severity
from .pipeline import CorrelationPipeline
from .report import UnifiedReport

__all__ = [
    "CorrelationPipeline",  # Main entry point
    "UnifiedReport",
    "CorrelationConfig",
    "load_config",
    "Issue",
    "RawFinding",
    "CanonicalEntity",
    "Severity",
    "AnalysisType",
]
