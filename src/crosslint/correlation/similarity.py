"""Weighted pairwise similarity between two canonical issues.

Six factors, each in [0, 1]:

    path      0.25  same file, else Jaccard over path components
    line      0.20  distance decay within one file
    rule      0.20  id, prefix, CWE, analysis type
    message   0.15  word-set Jaccard over descriptions
    tool      0.10  mean reliability of the two tools
    context   0.10  severity closeness
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Callable, Optional

from ..models import Issue
from .models import MatchStrength, SimilarityFactors, SimilarityScore

WEIGHTS = {
    "path_similarity": 0.25,
    "line_similarity": 0.20,
    "rule_similarity": 0.20,
    "message_similarity": 0.15,
    "tool_reliability": 0.10,
    "context_similarity": 0.10,
}

STOPWORDS = frozenset(
    {
        "a", "an", "the", "is", "are", "was", "were", "be", "been", "before",
        "after", "of", "to", "in", "on", "at", "for", "by", "with", "and",
        "or", "this", "that", "it",
    }
)

_CWE_KEYS = ("cwe", "cweId", "cwe_id", "cweNumber", "tags", "categories")
_CWE_RE = re.compile(r"CWE[-_ ]?(\d+)", re.IGNORECASE)
_TOKEN_RE = re.compile(r"[a-z0-9_]+")


def strength_for(overall: float) -> MatchStrength:
    if overall >= 0.95:
        return MatchStrength.DEFINITIVE
    if overall >= 0.85:
        return MatchStrength.STRONG
    if overall >= 0.65:
        return MatchStrength.MODERATE
    return MatchStrength.WEAK


class SimilarityScorer:
    """Score issue pairs. ``reliability`` maps a tool name to its weight."""

    def __init__(self, reliability: Callable[[str], float]):
        self.reliability = reliability

    def score(self, a: Issue, b: Issue) -> SimilarityScore:
        factors = SimilarityFactors(
            path_similarity=path_similarity(a.canonical_path, b.canonical_path),
            line_similarity=line_similarity(a, b),
            rule_similarity=rule_similarity(a, b),
            message_similarity=message_similarity(a.description, b.description),
            tool_reliability=(self.reliability(a.tool_name) + self.reliability(b.tool_name)) / 2,
            context_similarity=1 - abs(a.severity.rank - b.severity.rank) / 4,
        )
        overall = sum(getattr(factors, name) * weight for name, weight in WEIGHTS.items())
        # Float sums like 0.25+0.2+... can land a hair above 1
        overall = max(0.0, min(1.0, overall))
        return SimilarityScore(overall=overall, factors=factors, strength=strength_for(overall))


def path_similarity(a: Optional[str], b: Optional[str]) -> float:
    if a is None or b is None:
        return 0.0
    if a == b:
        return 1.0
    parts_a = Counter(p for p in a.split("/") if p)
    parts_b = Counter(p for p in b.split("/") if p)
    union = sum((parts_a | parts_b).values())
    if union == 0:
        return 0.0
    return sum((parts_a & parts_b).values()) / union


def line_similarity(a: Issue, b: Issue) -> float:
    if a.canonical_path != b.canonical_path:
        return 0.0
    if a.line is None or b.line is None:
        return 0.5
    distance = abs(a.line - b.line)
    if distance == 0:
        return 1.0
    if distance <= 3:
        return 0.9
    if distance <= 10:
        return 0.7
    if distance <= 50:
        return 0.4
    return 0.1


def rule_prefix(rule_id: str) -> str:
    """Namespace of a rule id: text before ':' or, failing that, before the first '.'."""
    if ":" in rule_id:
        return rule_id.split(":", 1)[0]
    if "." in rule_id:
        return rule_id.split(".", 1)[0]
    return ""


def extract_cwes(metadata: dict[str, Any]) -> set[str]:
    found: set[str] = set()
    for key in _CWE_KEYS:
        value = metadata.get(key)
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple, set)) else [value]
        for item in values:
            if isinstance(item, int) and key.lower().startswith("cwe"):
                found.add(str(item))
                continue
            text = str(item)
            matches = _CWE_RE.findall(text)
            if matches:
                found.update(m.lstrip("0") or "0" for m in matches)
            elif key.lower().startswith("cwe") and text.isdigit():
                found.add(text.lstrip("0") or "0")
    return found


def rule_similarity(a: Issue, b: Issue) -> float:
    if a.rule_id == b.rule_id:
        return 1.0
    prefix_a = rule_prefix(a.rule_id)
    if prefix_a and prefix_a == rule_prefix(b.rule_id):
        return 0.8
    if extract_cwes(a.metadata) & extract_cwes(b.metadata):
        return 0.7
    if a.analysis_type == b.analysis_type:
        return 0.5
    return 0.2


def tokenize(text: str) -> set[str]:
    return {t for t in _TOKEN_RE.findall(text.lower()) if t not in STOPWORDS}


def message_similarity(a: str, b: str) -> float:
    if a.strip().lower() == b.strip().lower():
        return 1.0
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)
