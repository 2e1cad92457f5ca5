"""Map each tool's native file identifier onto one canonical project path.

Canonical paths are project-relative, use forward slashes, and never
contain ``..``, ``//`` or a leading ``/``.
"""

from __future__ import annotations

import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Iterable, Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

KNOWN_TOOL_CONFIDENCE = 1.0
UNKNOWN_TOOL_CONFIDENCE = 0.8

# Directory names that usually start the meaningful part of a foreign path
ROOT_MARKERS = ("src", "lib", "app", "components")


@dataclass
class NormalizationResult:
    """Outcome of normalizing one path."""

    canonical_path: Optional[str]
    confidence: float
    normalized: bool
    tool_name: str
    original_path: Optional[str]
    error: Optional[str] = None


@dataclass
class NormalizationStats:
    total: int = 0
    successful: int = 0
    failed: int = 0
    average_confidence: float = 0.0
    success_rate: float = 0.0
    per_tool_counts: dict[str, dict[str, int]] = field(default_factory=dict)


class PathNormalizer:
    """Normalize tool-native paths relative to one project root.

    Args:
        project_root: Absolute project root; absolute tool paths are made
            relative to it.
        tool_roots: Optional per-tool roots. A path under a tool's root is
            made relative to that root before the tool's own rules run.
    """

    def __init__(self, project_root: str, tool_roots: Optional[dict[str, str]] = None):
        self.project_root = _to_posix(project_root).rstrip("/") or "/"
        self.tool_roots = {
            name.lower(): _to_posix(root).rstrip("/") for name, root in (tool_roots or {}).items()
        }
        self._handlers: dict[str, Callable[[str], str]] = {
            "sonarqube": self._sonarqube,
            "codeclimate": self._codeclimate,
            "semgrep": self._semgrep,
            "codeql": self._codeql,
            "deepsource": self._strip_leading_slash,
            "codacy": self._strip_leading_slash,
            "veracode": self._veracode,
            "checkmarx": self._checkmarx,
            "snyk": self._snyk,
        }

    @property
    def known_tools(self) -> list[str]:
        return sorted(self._handlers)

    def normalize(self, tool_path: Optional[str], tool_name: str) -> NormalizationResult:
        """Normalize one tool path. Never raises; failures come back as results."""
        tool = (tool_name or "").lower()
        if not tool_path or not isinstance(tool_path, str) or not tool_path.strip():
            return NormalizationResult(None, 0.0, False, tool, tool_path, "Invalid path provided")

        path = self._apply_tool_root(tool_path.strip(), tool)
        handler = self._handlers.get(tool)
        if handler is not None:
            candidate = handler(path)
            confidence = KNOWN_TOOL_CONFIDENCE
        else:
            candidate = self._generic(path)
            confidence = UNKNOWN_TOOL_CONFIDENCE

        canonical = ensure_relative(candidate)
        if canonical is None or not validate_canonical_path(canonical):
            return NormalizationResult(
                None, 0.0, False, tool, tool_path, f"Unusable path after normalization: {candidate!r}"
            )
        return NormalizationResult(canonical, confidence, True, tool, tool_path)

    def batch_normalize(self, items: Iterable[tuple[str, str]]) -> list[NormalizationResult]:
        """Normalize ``(tool_path, tool_name)`` pairs in order."""
        return [self.normalize(tool_path, tool_name) for tool_path, tool_name in items]

    @staticmethod
    def stats(results: Iterable[NormalizationResult]) -> NormalizationStats:
        stats = NormalizationStats()
        per_tool: dict[str, dict[str, int]] = defaultdict(
            lambda: {"total": 0, "successful": 0, "failed": 0}
        )
        confidence_sum = 0.0
        for result in results:
            stats.total += 1
            counts = per_tool[result.tool_name]
            counts["total"] += 1
            if result.normalized:
                stats.successful += 1
                counts["successful"] += 1
                confidence_sum += result.confidence
            else:
                stats.failed += 1
                counts["failed"] += 1

        if stats.successful:
            stats.average_confidence = confidence_sum / stats.successful
        if stats.total:
            stats.success_rate = stats.successful / stats.total
        stats.per_tool_counts = {tool: dict(per_tool[tool]) for tool in sorted(per_tool)}
        return stats

    # -- per-tool rules ------------------------------------------------

    def _apply_tool_root(self, path: str, tool: str) -> str:
        root = self.tool_roots.get(tool)
        if not root:
            return path
        posix = _to_posix(path)
        if posix == root or posix.startswith(root + "/"):
            return posix[len(root):].lstrip("/")
        return path

    def _sonarqube(self, path: str) -> str:
        # "projectKey:src/a.js"; Windows drive letters are not component keys
        if ":" in path and not _looks_like_drive(path):
            return path.split(":", 1)[1]
        return self._generic(path)

    def _codeclimate(self, path: str) -> str:
        return self._generic(path)

    def _semgrep(self, path: str) -> str:
        if path.startswith("./"):
            return path[2:]
        return self._generic(path)

    def _codeql(self, path: str) -> str:
        if path.startswith("file://"):
            path = path[len("file://"):]
        return self._generic(path)

    @staticmethod
    def _strip_leading_slash(path: str) -> str:
        return _to_posix(path).lstrip("/")

    def _veracode(self, path: str) -> str:
        if "/" not in path and "\\" not in path and "." in path and not _has_extension(path):
            # Fully-qualified Java class name, assume the Maven layout
            return "src/main/java/" + path.replace(".", "/") + ".java"
        return self._generic(path)

    def _checkmarx(self, path: str) -> str:
        if "->" in path:
            path = path.split("->", 1)[0].strip()
        return self._generic(path)

    def _snyk(self, path: str) -> str:
        return self._generic(path)

    def _generic(self, path: str) -> str:
        posix = _to_posix(path)
        if "->" in posix:
            posix = posix.split("->", 1)[0].strip()

        if posix.startswith("/") or _looks_like_drive(posix):
            relative = _relative_to(posix, self.project_root)
            if relative is not None:
                return relative
            return _marker_suffix(posix)

        if posix.startswith("../"):
            return _marker_suffix(posix)

        return posix


def _to_posix(path: str) -> str:
    return path.replace("\\", "/")


def _looks_like_drive(path: str) -> bool:
    return len(path) >= 3 and path[0].isalpha() and path[1] == ":" and path[2] in "/\\"


def _has_extension(name: str) -> bool:
    suffix = PurePosixPath(name).suffix.lower()
    return suffix in {".java", ".js", ".ts", ".py", ".cs", ".kt", ".go", ".rb", ".php", ".jsx", ".tsx"}


def _relative_to(path: str, root: str) -> Optional[str]:
    normalized = posixpath.normpath(path)
    if root == "/":
        return normalized.lstrip("/")
    if normalized == root:
        return ""
    if normalized.startswith(root + "/"):
        return normalized[len(root) + 1:]
    return None


def _marker_suffix(path: str) -> str:
    """Suffix from the first recognized root marker, else the basename."""
    parts = [p for p in path.split("/") if p]
    for i, part in enumerate(parts):
        if part in ROOT_MARKERS:
            return "/".join(parts[i:])
    return parts[-1] if parts else ""


def ensure_relative(path: Optional[str]) -> Optional[str]:
    """Final cleanup: separators, leading slashes, ``./``, ``..`` and ``//``."""
    if not path:
        return None
    cleaned = _to_posix(path).strip()
    if _looks_like_drive(cleaned):
        cleaned = cleaned[2:]

    parts: list[str] = []
    for part in cleaned.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            # Never climb above the project root
            if parts:
                parts.pop()
            continue
        parts.append(part)

    return "/".join(parts) or None


def validate_canonical_path(path: Optional[str]) -> bool:
    """True if ``path`` satisfies every canonical-path post-condition."""
    if not path or not isinstance(path, str):
        return False
    if path.strip() != path:
        return False
    if path.startswith("/") or "//" in path or "\\" in path:
        return False
    return ".." not in path.split("/")
