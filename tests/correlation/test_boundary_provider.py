"""Tests for regex function boundary extraction."""

from crosslint.correlation import RegexBoundaryProvider
from crosslint.correlation.boundaries import (
    FILE_SCOPE,
    file_scope_span,
    find_matching_brace,
    language_for,
    parse_parameters,
    supported_extensions,
    supported_languages,
)

TS_SOURCE = """\
import x from 'y';
export function alpha(a: number, b: string): void {
  if (a) {
    console.log("}");
  }
}
const beta = async (c) => {
  return c;
};
class K {
  gamma(d, e) {
    return d;
  }
}
"""

PY_SOURCE = """\
import os

def outer(x, y=1, *args, **kwargs):
    def inner(self):
        return x

    return inner


async def later(a: int) -> None:
    pass
print("done")
"""

JAVA_SOURCE = """\
public class Service {
    public List<String> names(int count, String prefix) throws IOException {
        if (count > 0) {
            return null;
        }
        return List.of();
    }
    private static void reset() {
    }
}
"""

CS_SOURCE = """\
namespace App {
  public class Foo {
    public async Task<int> RunAsync(string name) {
      return 1;
    }
  }
}
"""


def spans_by_name(source, path):
    spans = RegexBoundaryProvider().parse_functions(source, path)
    return {s.name: s for s in spans}


class TestTypeScript:
    """Functions, arrows and methods."""

    def test_spans(self):
        spans = spans_by_name(TS_SOURCE, "src/mod.ts")
        assert set(spans) == {"alpha", "beta", "gamma"}
        assert (spans["alpha"].start_line, spans["alpha"].end_line) == (2, 6)
        assert (spans["beta"].start_line, spans["beta"].end_line) == (7, 9)
        assert (spans["gamma"].start_line, spans["gamma"].end_line) == (11, 13)

    def test_parameters(self):
        spans = spans_by_name(TS_SOURCE, "src/mod.ts")
        assert spans["alpha"].parameters == ("a", "b")
        assert spans["gamma"].parameters == ("d", "e")

    def test_control_flow_is_not_a_function(self):
        assert "if" not in spans_by_name(TS_SOURCE, "src/mod.js")


class TestOtherLanguages:
    """Python indentation and C-family braces."""

    def test_python(self):
        spans = spans_by_name(PY_SOURCE, "pkg/mod.py")
        assert (spans["outer"].start_line, spans["outer"].end_line) == (3, 7)
        assert (spans["inner"].start_line, spans["inner"].end_line) == (4, 5)
        assert (spans["later"].start_line, spans["later"].end_line) == (10, 11)
        assert spans["outer"].parameters == ("x", "y", "args", "kwargs")
        assert spans["inner"].parameters == ()

    def test_java(self):
        spans = spans_by_name(JAVA_SOURCE, "src/Service.java")
        assert set(spans) == {"names", "reset"}
        assert (spans["names"].start_line, spans["names"].end_line) == (2, 7)
        assert spans["names"].parameters == ("count", "prefix")

    def test_csharp(self):
        spans = spans_by_name(CS_SOURCE, "src/Foo.cs")
        assert set(spans) == {"RunAsync"}
        assert (spans["RunAsync"].start_line, spans["RunAsync"].end_line) == (3, 5)

    def test_unsupported_extension(self):
        assert RegexBoundaryProvider().parse_functions("fn main() {}", "src/main.rs") == []


class TestHelpers:
    """Language table and brace matching."""

    def test_languages(self):
        assert supported_languages() == ["csharp", "java", "python", "typescript"]
        assert ".tsx" in supported_extensions()
        assert language_for("A/B.JAVA") == "java"
        assert language_for("README.md") is None

    def test_braces_in_comments_and_strings(self):
        lines = ["function f() {", "  // }", "  /* } */", "  const s = '}';", "}"]
        assert find_matching_brace(lines, 0) == 4

    def test_unclosed_runs_to_end(self):
        assert find_matching_brace(["function f() {", "  x();"], 0) == 1

    def test_parse_parameters_generics(self):
        assert parse_parameters("Map<String, Integer> m, int n", "java") == ["m", "n"]
        assert parse_parameters("opts?: Options, ...rest", "typescript") == ["opts", "rest"]

    def test_file_scope_span(self):
        span = file_scope_span("src/a.ts", 0)
        assert span.name == FILE_SCOPE
        assert span.synthetic
        assert (span.start_line, span.end_line) == (1, 1)
