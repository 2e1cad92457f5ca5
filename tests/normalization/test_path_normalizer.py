"""Tests for crosslint.normalization.paths."""

import pytest

from crosslint.normalization import (
    EntityResolver,
    PathNormalizer,
    ensure_relative,
    validate_canonical_path,
)


@pytest.fixture
def normalizer():
    return PathNormalizer("/home/dev/project")


class TestToolRules:
    """Per-tool path conventions."""

    def test_sonarqube_component_key(self, normalizer):
        """Project key prefix is stripped."""
        result = normalizer.normalize("proj:src/a.js", "sonarqube")
        assert result.canonical_path == "src/a.js"
        assert result.confidence == 1.0
        assert result.normalized

    def test_semgrep_dot_slash(self, normalizer):
        assert normalizer.normalize("./src/a.js", "semgrep").canonical_path == "src/a.js"

    def test_codeql_file_uri(self, normalizer):
        result = normalizer.normalize("file:///home/dev/project/src/b.ts", "codeql")
        assert result.canonical_path == "src/b.ts"

    def test_checkmarx_flow_path(self, normalizer):
        """Only the source side of a data-flow path is kept."""
        result = normalizer.normalize("src/in.java -> src/out.java", "checkmarx")
        assert result.canonical_path == "src/in.java"

    def test_veracode_class_name(self, normalizer):
        """A fully-qualified class maps to the Maven source layout."""
        result = normalizer.normalize("com.acme.UserService", "veracode")
        assert result.canonical_path == "src/main/java/com/acme/UserService.java"

    def test_veracode_file_path_untouched(self, normalizer):
        assert normalizer.normalize("src/Main.java", "veracode").canonical_path == "src/Main.java"

    def test_deepsource_leading_slash(self, normalizer):
        assert normalizer.normalize("/lib/util.js", "deepsource").canonical_path == "lib/util.js"

    def test_tool_name_is_case_insensitive(self, normalizer):
        result = normalizer.normalize("proj:src/a.js", "SonarQube")
        assert result.canonical_path == "src/a.js"
        assert result.tool_name == "sonarqube"


class TestGenericRules:
    """Unknown tools and absolute paths."""

    def test_unknown_tool_lower_confidence(self, normalizer):
        result = normalizer.normalize("src/a.js", "mytool")
        assert result.canonical_path == "src/a.js"
        assert result.confidence == 0.8

    def test_absolute_under_root(self, normalizer):
        result = normalizer.normalize("/home/dev/project/src/x.ts", "snyk")
        assert result.canonical_path == "src/x.ts"

    def test_absolute_outside_root_uses_marker(self, normalizer):
        """A foreign absolute path is cut at the first src/lib/app/components."""
        result = normalizer.normalize("/build/agent/work/src/x.ts", "snyk")
        assert result.canonical_path == "src/x.ts"

    def test_absolute_outside_root_falls_back_to_basename(self, normalizer):
        result = normalizer.normalize("/opt/elsewhere/x.ts", "snyk")
        assert result.canonical_path == "x.ts"

    def test_windows_separators(self, normalizer):
        result = normalizer.normalize("src\\components\\Button.tsx", "codacy")
        assert result.canonical_path == "src/components/Button.tsx"

    def test_tool_root_is_stripped_first(self):
        normalizer = PathNormalizer("/home/dev/project", {"codeql": "/build/checkout"})
        result = normalizer.normalize("/build/checkout/pkg/mod.ts", "codeql")
        assert result.canonical_path == "pkg/mod.ts"


class TestFailures:
    """normalize never raises; failures come back as results."""

    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_empty_paths(self, normalizer, path):
        result = normalizer.normalize(path, "semgrep")
        assert not result.normalized
        assert result.canonical_path is None
        assert result.confidence == 0.0
        assert result.error == "Invalid path provided"

    def test_path_that_cleans_to_nothing(self, normalizer):
        result = normalizer.normalize("./", "semgrep")
        assert not result.normalized
        assert result.error is not None


class TestCanonicalForm:
    """Post-conditions every canonical path satisfies."""

    @pytest.mark.parametrize(
        "tool_path,tool",
        [
            ("proj:src/../src/a.js", "sonarqube"),
            ("./a//b/./c.js", "semgrep"),
            ("C:\\work\\src\\a.cs", "codacy"),
            ("../../outside/lib/z.js", "snyk"),
            ("/x/y/z.py", "unknown-tool"),
        ],
    )
    def test_results_are_valid(self, normalizer, tool_path, tool):
        result = normalizer.normalize(tool_path, tool)
        assert result.normalized
        assert validate_canonical_path(result.canonical_path)

    def test_ensure_relative(self):
        assert ensure_relative("/a/./b/../c.js") == "a/c.js"
        assert ensure_relative("../../x.js") == "x.js"
        assert ensure_relative("C:/src/a.js") == "src/a.js"
        assert ensure_relative("") is None

    def test_validate_rejects_bad_forms(self):
        assert not validate_canonical_path("/abs.js")
        assert not validate_canonical_path("a//b.js")
        assert not validate_canonical_path("a/../b.js")
        assert not validate_canonical_path("a\\b.js")
        assert not validate_canonical_path(None)
        assert validate_canonical_path("a/b.js")

    def test_validate_allows_dots_inside_names(self):
        assert validate_canonical_path("src/a..b.js")
        assert validate_canonical_path("src/..hidden/a.js")
        assert not validate_canonical_path("src/../a.js")
        assert not validate_canonical_path("src/..")


class TestStats:
    """Batch normalization statistics."""

    def test_batch_and_stats(self, normalizer):
        results = normalizer.batch_normalize(
            [("proj:src/a.js", "sonarqube"), ("src/b.js", "mytool"), ("", "semgrep")]
        )
        stats = PathNormalizer.stats(results)
        assert stats.total == 3
        assert stats.successful == 2
        assert stats.failed == 1
        assert abs(stats.average_confidence - 0.9) < 1e-10
        assert abs(stats.success_rate - 2 / 3) < 1e-10
        assert stats.per_tool_counts["semgrep"] == {"total": 1, "successful": 0, "failed": 1}
        assert list(stats.per_tool_counts) == ["mytool", "semgrep", "sonarqube"]

    def test_empty_stats(self):
        stats = PathNormalizer.stats([])
        assert stats.total == 0
        assert stats.success_rate == 0.0

    def test_known_tools(self, normalizer):
        assert "sonarqube" in normalizer.known_tools
        assert normalizer.known_tools == sorted(normalizer.known_tools)


class TestEntityResolver:
    """Canonical entities are interned per run."""

    def test_same_path_same_entity(self):
        resolver = EntityResolver()
        first = resolver.resolve("src/a.js")
        second = resolver.resolve("src/a.js")
        assert first is second
        assert len(resolver) == 1

    def test_none_path(self):
        assert EntityResolver().resolve(None) is None
