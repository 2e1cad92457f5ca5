"""Configuration loading and management for Crosslint.

Configuration sources are merged in priority order:
    1. Defaults (defined in CorrelationConfig)
    2. Global config (~/.crosslint.toml)
    3. Project config (./crosslint.toml)
    4. Explicit config file
    5. Environment variables (CROSSLINT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(concurrency=4)
    >>> config.concurrency
    4
    >>> config.thresholds.near_match
    0.85
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError
from .models import parse_timestamp

Verbosity = Literal["quiet", "normal", "verbose"]
Attribution = Literal["snapshot", "dated"]

_BARE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _is_bare_date(value: Any) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return bool(_BARE_DATE_RE.match(str(value).strip()))


# Per-tool trust weights used by similarity scoring and primary selection.
DEFAULT_RELIABILITY: dict[str, float] = {
    "sonarqube": 0.9,
    "codeql": 0.9,
    "checkmarx": 0.87,
    "veracode": 0.88,
    "semgrep": 0.85,
    "deepsource": 0.82,
    "codeclimate": 0.8,
    "codacy": 0.75,
    "snyk": 0.85,
}

DEFAULT_SOURCE_EXTENSIONS = [".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"]


@dataclass(frozen=True)
class ThresholdConfig:
    """Match thresholds and architectural limits.

    Attributes:
        Similarity:
            exact_match: Score treated as an exact duplicate
            near_match: Minimum score for two issues to share a duplicate group
            related_match: Score for "related" findings
            weak_match: Lowest score considered a weak relation

        Architecture:
            god_module_dependencies: Dependency count above which a module is a god module
            external_coupling_limit: External dependency count above which coupling is flagged
            hub_min_in_degree / hub_ratio: Hub cutoff is max(min, ceil(ratio * modules))
            fan_out_min_degree / fan_out_ratio: Fan-out cutoff, same shape
    """

    # === Similarity ===
    exact_match: float = 1.0
    near_match: float = 0.85
    related_match: float = 0.65
    weak_match: float = 0.45

    # === Architecture ===
    god_module_dependencies: int = 20
    external_coupling_limit: int = 10
    hub_min_in_degree: int = 3
    hub_ratio: float = 0.10
    fan_out_min_degree: int = 4
    fan_out_ratio: float = 0.15

    def __post_init__(self) -> None:
        """Validate threshold configuration."""
        for field_name in ("exact_match", "near_match", "related_match", "weak_match"):
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{field_name} must be between 0.0 and 1.0")

        if not self.exact_match >= self.near_match >= self.related_match >= self.weak_match:
            raise ValueError("match thresholds must be non-increasing from exact to weak")

        for field_name in ("hub_ratio", "fan_out_ratio"):
            if not 0.0 <= getattr(self, field_name) <= 1.0:
                raise ValueError(f"{field_name} must be between 0.0 and 1.0")

        if self.god_module_dependencies < 1:
            raise ValueError("god_module_dependencies must be at least 1")
        if self.external_coupling_limit < 0:
            raise ValueError("external_coupling_limit must be non-negative")


DEFAULT_THRESHOLDS = ThresholdConfig()


@dataclass(frozen=True)
class CorrelationConfig:
    """Configuration for a pipeline run.

    Attributes:
        Tool trust:
            reliability: Per-tool reliability weights in [0, 1]
            default_reliability: Weight for tools missing from the table
            tool_roots: Per-tool filesystem roots, stripped before normalization

        Temporal heuristics:
            fix_keywords: Commit message words marking a fix-dominant window
            issue_attribution: "snapshot" counts current issues against every
                commit; "dated" only counts issues detected on/after the commit
            since / until: ISO dates bounding the commit history
            as_of: Reference date for change frequency (default: last commit)
            max_commits: Cap on commits read from git (0 = unlimited)
            forecast_days: Horizon for trend forecasts and predictions
            complexity_sample_interval: Sample file complexity every N commits

        Discovery:
            max_files: Cap on source files in the module graph
            ignore_dirs: Extra directory names skipped during the walk
            source_extensions: Extensions included in the module graph

        Execution:
            concurrency: Bounded batch size for per-file work
            git_version_timeout: Seconds allowed for `git --version`
            analysis_timeout: Seconds allowed for any other external call

        Projects:
            projects: Named project roots for the `projects` and `analyze` commands
    """

    # Tool trust
    reliability: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RELIABILITY))
    default_reliability: float = 0.5
    tool_roots: dict[str, str] = field(default_factory=dict)

    # Temporal heuristics
    fix_keywords: list[str] = field(default_factory=lambda: ["fix", "resolve", "patch"])
    issue_attribution: Attribution = "snapshot"
    since: Optional[str] = None
    until: Optional[str] = None
    as_of: Optional[str] = None
    max_commits: int = 0
    forecast_days: int = 30
    complexity_sample_interval: int = 10

    # Discovery
    max_files: int = 1000
    ignore_dirs: list[str] = field(default_factory=list)
    source_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))

    # Execution
    concurrency: int = 10
    git_version_timeout: float = 10.0
    analysis_timeout: float = 300.0

    # Projects
    projects: dict[str, str] = field(default_factory=dict)

    # Output control
    verbosity: Verbosity = "normal"

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for tool, weight in self.reliability.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(f"reliability for {tool} must be between 0.0 and 1.0")
        if not 0.0 <= self.default_reliability <= 1.0:
            raise ValueError("default_reliability must be between 0.0 and 1.0")

        if self.issue_attribution not in ("snapshot", "dated"):
            raise ValueError("issue_attribution must be 'snapshot' or 'dated'")
        if not self.fix_keywords:
            raise ValueError("fix_keywords must not be empty")

        for field_name in ("since", "until", "as_of"):
            value = getattr(self, field_name)
            if value is not None and parse_timestamp(value) is None:
                raise ValueError(f"{field_name} must be an ISO-8601 date, got {value!r}")

        if self.max_commits < 0:
            raise ValueError("max_commits must be non-negative")
        if self.forecast_days < 1:
            raise ValueError("forecast_days must be at least 1")
        if self.complexity_sample_interval < 1:
            raise ValueError("complexity_sample_interval must be at least 1")
        if self.max_files < 1:
            raise ValueError("max_files must be at least 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.git_version_timeout <= 0 or self.analysis_timeout <= 0:
            raise ValueError("timeouts must be positive")

    def reliability_for(self, tool_name: str) -> float:
        """Reliability weight for a tool, case-insensitive."""
        return self.reliability.get(tool_name.lower(), self.default_reliability)

    @property
    def since_date(self) -> Optional[datetime]:
        return parse_timestamp(self.since) if self.since else None

    @property
    def until_date(self) -> Optional[datetime]:
        """Inclusive upper bound; a bare date covers the whole of that day."""
        parsed = parse_timestamp(self.until) if self.until else None
        if parsed is not None and _is_bare_date(self.until):
            parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
        return parsed

    @property
    def as_of_date(self) -> Optional[datetime]:
        return parse_timestamp(self.as_of) if self.as_of else None


# Nested TOML tables mapped onto dict fields rather than dataclasses
_DICT_SECTIONS = ("reliability", "tool_roots", "projects")


def load_config(config_file: Optional[Path] = None, **overrides) -> CorrelationConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated CorrelationConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a merged value fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".crosslint.toml"
    if global_config.exists():
        _merge(merged, _load_toml_file(global_config), global_config)

    project_config = Path.cwd() / "crosslint.toml"
    if project_config.exists():
        _merge(merged, _load_toml_file(project_config), project_config)

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        _merge(merged, _load_toml_file(config_file), config_file)

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    # Dict sections from the CLI extend rather than replace file values
    for section in _DICT_SECTIONS:
        extra = overrides.pop(section, None)
        if extra:
            merged[section] = {**merged.get(section, {}), **extra}

    merged.update(overrides)

    thresholds_dict = merged.pop("thresholds", None)
    if thresholds_dict is not None:
        if isinstance(thresholds_dict, ThresholdConfig):
            merged["thresholds"] = thresholds_dict
        elif isinstance(thresholds_dict, dict):
            try:
                merged["thresholds"] = ThresholdConfig(**thresholds_dict)
            except TypeError as e:
                raise ConfigurationError(f"Invalid [thresholds] config: {e}")
            except ValueError as e:
                raise InvalidConfigError("thresholds", thresholds_dict, str(e))

    if "reliability" in merged:
        defaults = dict(DEFAULT_RELIABILITY)
        defaults.update({k.lower(): float(v) for k, v in merged["reliability"].items()})
        merged["reliability"] = defaults

    try:
        return CorrelationConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
    except ValueError as e:
        key = str(e).split(" ", 1)[0]
        raise InvalidConfigError(key, merged.get(key), str(e))


def _merge(merged: dict, loaded: dict, source: Path) -> None:
    """Merge one TOML document, extending dict sections key by key."""
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Invalid config '{source}': top level must be a table")
    for key, value in loaded.items():
        if key in _DICT_SECTIONS + ("thresholds",) and isinstance(value, dict):
            merged[key] = {**merged.get(key, {}), **value}
        else:
            merged[key] = value


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CROSSLINT_* environment variables.

    Only scalar fields are read (bool, int, float, str, Literal); list and
    dict fields such as fix_keywords or reliability are config-file only.

    Returns:
        Dict of field_name -> parsed_value for any CROSSLINT_* vars found.
    """
    type_hints = get_type_hints(CorrelationConfig)

    result: dict[str, Any] = {}

    for field_name in CorrelationConfig.__dataclass_fields__:
        env_key = f"CROSSLINT_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns:
        Parsed value or None if the field type isn't env-configurable

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin in (list, dict) or type_hint in (list, dict):
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli is unavailable or parsing fails
    """
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")
