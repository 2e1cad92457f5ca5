"""Configuration exceptions: paths, settings, tool names."""

from pathlib import Path
from typing import Any, Iterable

from .base import CrosslintError
from .taxonomy import ErrorCode


class ConfigurationError(CrosslintError):
    """Base class for configuration-related errors. The pipeline does not start."""

    code = ErrorCode.CL100
    recoverable = False


class InvalidPathError(ConfigurationError):
    """Raised when a provided path is invalid."""

    code = ErrorCode.CL101

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Invalid path: {path}", details={"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    code = ErrorCode.CL102

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class UnknownToolError(ConfigurationError):
    """Raised when a tool name is not one the normalizer knows about."""

    code = ErrorCode.CL103

    def __init__(self, tool: str, known: Iterable[str]):
        known_list = sorted(known)
        super().__init__(
            f"Unknown tool: {tool}",
            details={"tool": tool, "known": ", ".join(known_list)},
        )
        self.tool = tool
        self.known = known_list
