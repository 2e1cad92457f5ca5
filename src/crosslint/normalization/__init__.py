"""Path normalization and canonical entity resolution."""

from .entities import EntityResolver
from .issues import NormalizedBatch, normalize_findings
from .paths import (
    NormalizationResult,
    NormalizationStats,
    PathNormalizer,
    ensure_relative,
    validate_canonical_path,
)

__all__ = [
    "EntityResolver",
    "NormalizedBatch",
    "normalize_findings",
    "NormalizationResult",
    "NormalizationStats",
    "PathNormalizer",
    "ensure_relative",
    "validate_canonical_path",
]
