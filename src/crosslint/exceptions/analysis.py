"""Analysis-related exceptions: adapters, parsing, timeouts, normalization."""

from typing import Optional

from .base import CrosslintError
from .taxonomy import ErrorCode


class AnalysisError(CrosslintError):
    """Base class for recoverable stage failures."""

    code = ErrorCode.CL200


class AdapterUnavailableError(AnalysisError):
    """Raised when a findings source is absent or cannot be read."""

    code = ErrorCode.CL201

    def __init__(self, tool: str, reason: str):
        super().__init__(
            f"Adapter unavailable: {tool}",
            details={"tool": tool, "reason": reason},
        )
        self.tool = tool
        self.reason = reason


class ParseError(AnalysisError):
    """Raised when a tool output or source file cannot be parsed."""

    code = ErrorCode.CL202

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Failed to parse {source}",
            details={"source": source, "reason": reason},
        )
        self.source = source
        self.reason = reason


class AnalysisTimeoutError(ParseError):
    """Raised when an external operation exceeds its time budget.

    Handled exactly like a ParseError for the unit that timed out.
    """

    code = ErrorCode.CL203

    def __init__(self, operation: str, timeout: float):
        super().__init__(operation, f"timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class NormalizationError(AnalysisError):
    """Raised when a tool-native path cannot be turned into a canonical path."""

    code = ErrorCode.CL300

    def __init__(self, tool: str, path: Optional[str], reason: str):
        super().__init__(
            f"Cannot normalize path from {tool}",
            details={"tool": tool, "path": str(path), "reason": reason},
        )
        self.tool = tool
        self.path = path
        self.reason = reason


class FatalError(CrosslintError):
    """Raised when an internal invariant is violated. Aborts the run."""

    code = ErrorCode.CL900
    recoverable = False

    def __init__(self, reason: str, **details: str):
        super().__init__(f"Invariant violated: {reason}", details=details or None)
        self.reason = reason


class GitHistoryError(AnalysisError):
    """Raised when git history exists but cannot be read."""

    code = ErrorCode.CL500

    def __init__(self, repo: str, reason: str):
        super().__init__(
            f"Cannot read git history for {repo}",
            details={"repo": repo, "reason": reason},
        )
        self.repo = repo
        self.reason = reason
