"""Exception hierarchy for Crosslint."""

from .analysis import (
    AdapterUnavailableError,
    AnalysisError,
    AnalysisTimeoutError,
    FatalError,
    GitHistoryError,
    NormalizationError,
    ParseError,
)
from .base import CrosslintError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
    UnknownToolError,
)
from .taxonomy import ErrorCode, ErrorRecord, describe

__all__ = [
    "CrosslintError",
    "AnalysisError",
    "AdapterUnavailableError",
    "ParseError",
    "AnalysisTimeoutError",
    "NormalizationError",
    "FatalError",
    "GitHistoryError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "UnknownToolError",
    "ErrorCode",
    "ErrorRecord",
    "describe",
]
