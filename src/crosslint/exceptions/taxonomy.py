"""Error codes and the structured error record carried in reports.

Error Code Convention:
    CL1xx - Configuration errors
    CL2xx - Ingestion errors
    CL3xx - Normalization and deduplication errors
    CL4xx - Structure errors (function boundaries, module graph)
    CL5xx - Temporal errors
    CL9xx - Fatal errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .base import CrosslintError


class ErrorCode(Enum):
    """Structured error codes for reports and logs."""

    # Configuration (CL1xx)
    CL100 = "CL100"  # Generic configuration error
    CL101 = "CL101"  # Path missing or not a directory
    CL102 = "CL102"  # Invalid config value
    CL103 = "CL103"  # Unknown tool name

    # Ingestion (CL2xx)
    CL200 = "CL200"  # Generic analysis error
    CL201 = "CL201"  # Adapter unavailable
    CL202 = "CL202"  # Tool output or source unparseable
    CL203 = "CL203"  # External operation timed out

    # Normalization / dedup (CL3xx)
    CL300 = "CL300"  # Path normalization failed

    # Structure (CL4xx)
    CL400 = "CL400"  # Function clustering failed
    CL401 = "CL401"  # Module graph failed

    # Temporal (CL5xx)
    CL500 = "CL500"  # Git history unavailable or failed

    # Fatal (CL9xx)
    CL900 = "CL900"  # Invariant violated


@dataclass
class ErrorRecord:
    """A recovered failure, attached to the report's errors list.

    Attributes:
        stage: Pipeline stage that produced the error
        code: Structured error code
        error_type: Exception class name
        message: Human-readable description
        details: Context from the exception (path, tool, reason...)
        recoverable: Whether downstream stages kept running
    """

    stage: str
    code: ErrorCode
    error_type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    recoverable: bool = True

    @classmethod
    def from_exception(
        cls, stage: str, exc: Exception, code: ErrorCode | None = None
    ) -> ErrorRecord:
        details: dict[str, Any] = dict(getattr(exc, "details", {}) or {})
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            stage=stage,
            code=code or getattr(exc, "code", ErrorCode.CL200),
            error_type=type(exc).__name__,
            message=message,
            details=details,
            recoverable=getattr(exc, "recoverable", True),
        )

    def to_json(self) -> dict[str, Any]:
        """Structured report format."""
        return {
            "stage": self.stage,
            "errorCode": self.code.value,
            "errorType": self.error_type,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


def describe(exc: CrosslintError) -> str:
    """One-line log form: ``[CL202] message (k=v)``."""
    return f"[{exc.code.value}] {exc}"
