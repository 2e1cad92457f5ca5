"""Cross-tool correlation: similarity, deduplication, function hotspots."""

from .boundaries import FunctionBoundaryProvider, RegexBoundaryProvider
from .dedup import DuplicateClusterer, consensus_severity
from .functions import FunctionHotspotClusterer
from .models import (
    CrossFunctionGroup,
    DedupResult,
    DuplicateGroup,
    FunctionCluster,
    FunctionClusterResult,
    FunctionSpan,
    MatchStrength,
    MergeStrategy,
    ProximityGroup,
    RiskLevel,
    SimilarityScore,
)
from .similarity import SimilarityScorer

__all__ = [
    "FunctionBoundaryProvider",
    "RegexBoundaryProvider",
    "DuplicateClusterer",
    "consensus_severity",
    "FunctionHotspotClusterer",
    "CrossFunctionGroup",
    "DedupResult",
    "DuplicateGroup",
    "FunctionCluster",
    "FunctionClusterResult",
    "FunctionSpan",
    "MatchStrength",
    "MergeStrategy",
    "ProximityGroup",
    "RiskLevel",
    "SimilarityScore",
    "SimilarityScorer",
]
