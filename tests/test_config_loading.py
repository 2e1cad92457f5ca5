"""Tests for configuration loading and validation."""

from datetime import date, datetime, timezone

import pytest

from crosslint.config import (
    DEFAULT_RELIABILITY,
    CorrelationConfig,
    ThresholdConfig,
    load_config,
)
from crosslint.exceptions import ConfigurationError, InvalidConfigError


class TestDefaults:
    """Default values."""

    def test_default_config(self):
        config = load_config()
        assert config.concurrency == 10
        assert config.thresholds.near_match == 0.85
        assert config.fix_keywords == ["fix", "resolve", "patch"]
        assert config.issue_attribution == "snapshot"
        assert config.reliability == DEFAULT_RELIABILITY

    def test_reliability_for_unknown_tool(self):
        config = CorrelationConfig()
        assert config.reliability_for("SonarQube") == 0.9
        assert config.reliability_for("mystery") == 0.5


class TestValidation:
    """Invalid values are rejected."""

    def test_bad_reliability(self):
        with pytest.raises(ValueError):
            CorrelationConfig(reliability={"semgrep": 1.5})

    def test_bad_attribution(self):
        with pytest.raises(ValueError):
            CorrelationConfig(issue_attribution="guess")

    def test_bad_since(self):
        with pytest.raises(ValueError):
            CorrelationConfig(since="last tuesday")

    def test_bare_until_date_covers_the_day(self):
        end = CorrelationConfig(until="2024-01-05").until_date
        assert end == datetime(2024, 1, 5, 23, 59, 59, 999999, tzinfo=timezone.utc)
        assert CorrelationConfig(until=date(2024, 1, 5)).until_date == end

    def test_until_with_time_is_exact(self):
        config = CorrelationConfig(until="2024-01-05T12:00:00+00:00")
        assert config.until_date == datetime(2024, 1, 5, 12, tzinfo=timezone.utc)

    def test_bare_since_date_starts_at_midnight(self):
        start = CorrelationConfig(since="2024-01-05").since_date
        assert start == datetime(2024, 1, 5, tzinfo=timezone.utc)

    def test_thresholds_must_decrease(self):
        with pytest.raises(ValueError):
            ThresholdConfig(near_match=0.5, related_match=0.6)

    def test_invalid_override_raises_config_error(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            load_config(concurrency=0)
        assert exc_info.value.key == "concurrency"

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            load_config(not_a_field=1)


class TestFiles:
    """TOML files and environment variables."""

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "crosslint.toml"
        path.write_text(
            'fix_keywords = ["hotfix"]\n'
            "forecast_days = 14\n"
            "[reliability]\n"
            "semgrep = 0.6\n"
            "[thresholds]\n"
            "near_match = 0.8\n"
            "[projects]\n"
            'web = "/srv/web"\n',
            encoding="utf-8",
        )
        config = load_config(config_file=path)
        assert config.fix_keywords == ["hotfix"]
        assert config.forecast_days == 14
        assert config.reliability["semgrep"] == 0.6
        assert config.reliability["sonarqube"] == 0.9
        assert config.thresholds.near_match == 0.8
        assert config.projects == {"web": "/srv/web"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(config_file=tmp_path / "missing.toml")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("this is = = not toml", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(config_file=path)

    def test_unknown_threshold(self, tmp_path):
        path = tmp_path / "t.toml"
        path.write_text("[thresholds]\nbogus = 1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(config_file=path)

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("CROSSLINT_CONCURRENCY", "3")
        monkeypatch.setenv("CROSSLINT_ISSUE_ATTRIBUTION", "dated")
        config = load_config()
        assert config.concurrency == 3
        assert config.issue_attribution == "dated"

    def test_bad_env_var(self, monkeypatch):
        monkeypatch.setenv("CROSSLINT_CONCURRENCY", "many")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("CROSSLINT_CONCURRENCY", "3")
        assert load_config(concurrency=7).concurrency == 7

    def test_tool_roots_extend_file_values(self, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text('[tool_roots]\ncodeql = "/build"\n', encoding="utf-8")
        config = load_config(config_file=path, tool_roots={"semgrep": "/ci"})
        assert config.tool_roots == {"codeql": "/build", "semgrep": "/ci"}

    def test_verbose_flag(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"
