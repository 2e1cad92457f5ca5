"""Regex-based function boundary extraction.

A lightweight stand-in for language parsers: good enough to place an
issue's line inside the function that contains it. Brace languages end a
function at its matching ``}``; Python ends at the first non-blank line
indented at or left of the ``def``.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Optional, Protocol, runtime_checkable

from .models import FunctionSpan

FILE_SCOPE = "file-scope"

_CONTROL_WORDS = frozenset(
    {"if", "for", "while", "switch", "catch", "with", "return", "function", "else", "do", "new", "typeof"}
)

_TS_FUNCTION_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)\s*(?::\s*[^{]+)?\s*\{"
)
_TS_ARROW_RE = re.compile(
    r"^\s*(?:export\s+)?(?:const|let|var)\s+(\w+)\s*(?::\s*[^=]+)?=\s*(?:async\s+)?\(([^)]*)\)\s*(?::\s*[^=]+)?\s*=>\s*\{"
)
_TS_FUNCTION_EXPR_RE = re.compile(
    r"^\s*(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?function\s*\*?\s*\w*\s*\(([^)]*)\)\s*\{"
)
_TS_METHOD_RE = re.compile(
    r"^\s*(?:(?:public|private|protected|static|async|readonly|override|get|set)\s+)*(\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)\s*(?::\s*[^{;]+)?\s*\{"
)
_JAVA_METHOD_RE = re.compile(
    r"^\s*(?:(?:public|private|protected|static|final|abstract|synchronized|native)\s+)*(?:<[^>]+>\s+)?([\w\[\]]+(?:<[^>]+>)?(?:\[\])*)\s+(\w+)\s*\(([^)]*)\)\s*(?:throws\s+[\w.,\s]+)?\s*\{"
)
_CSHARP_METHOD_RE = re.compile(
    r"^\s*(?:(?:public|private|protected|internal|static|virtual|abstract|override|async|sealed|extern|unsafe)\s+)*([\w\[\]?]+(?:<[^>]+>)?)\s+(\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)\s*\{"
)
_PY_DEF_RE = re.compile(r"^(\s*)(?:async\s+)?def\s+(\w+)\s*\(([^)]*)\)?")

_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "typescript",
    ".jsx": "typescript",
    ".mjs": "typescript",
    ".cjs": "typescript",
    ".java": "java",
    ".py": "python",
    ".cs": "csharp",
}


@runtime_checkable
class FunctionBoundaryProvider(Protocol):
    """Yields function spans for a file's source. May return []."""

    def parse_functions(self, source_text: str, canonical_path: str) -> list[FunctionSpan]:
        ...


def language_for(path: str) -> Optional[str]:
    return _LANGUAGES.get(PurePosixPath(path).suffix.lower())


def supported_languages() -> list[str]:
    return sorted(set(_LANGUAGES.values()))


def supported_extensions() -> list[str]:
    return sorted(_LANGUAGES)


def file_scope_span(canonical_path: str, line_count: int) -> FunctionSpan:
    return FunctionSpan(
        name=FILE_SCOPE,
        file_path=canonical_path,
        start_line=1,
        end_line=max(1, line_count),
        synthetic=True,
    )


class RegexBoundaryProvider:
    """Function spans for TypeScript/JavaScript, Java, Python and C#."""

    def parse_functions(self, source_text: str, canonical_path: str) -> list[FunctionSpan]:
        language = language_for(canonical_path)
        if language is None:
            return []
        lines = source_text.splitlines()
        if language == "python":
            return self._python(lines, canonical_path)
        return self._braced(lines, canonical_path, language)

    def _braced(self, lines: list[str], path: str, language: str) -> list[FunctionSpan]:
        spans = []
        for index, line in enumerate(lines):
            match = _match_braced(line, language)
            if match is None:
                continue
            name, params = match
            end = find_matching_brace(lines, index)
            spans.append(
                FunctionSpan(
                    name=name,
                    file_path=path,
                    start_line=index + 1,
                    end_line=end + 1,
                    parameters=tuple(parse_parameters(params, language)),
                )
            )
        return spans

    def _python(self, lines: list[str], path: str) -> list[FunctionSpan]:
        spans = []
        for index, line in enumerate(lines):
            match = _PY_DEF_RE.match(line)
            if match is None:
                continue
            indent, name, params = len(match.group(1).expandtabs()), match.group(2), match.group(3)
            end = find_indented_block_end(lines, index, indent)
            spans.append(
                FunctionSpan(
                    name=name,
                    file_path=path,
                    start_line=index + 1,
                    end_line=end + 1,
                    parameters=tuple(parse_parameters(params or "", "python")),
                )
            )
        return spans


def _match_braced(line: str, language: str) -> Optional[tuple[str, str]]:
    if language == "typescript":
        for pattern in (_TS_FUNCTION_RE, _TS_ARROW_RE, _TS_FUNCTION_EXPR_RE, _TS_METHOD_RE):
            match = pattern.match(line)
            if match and match.group(1) not in _CONTROL_WORDS:
                return match.group(1), match.group(2)
        return None

    pattern = _JAVA_METHOD_RE if language == "java" else _CSHARP_METHOD_RE
    match = pattern.match(line)
    if match is None:
        return None
    return_type, name = match.group(1), match.group(2)
    if return_type in _CONTROL_WORDS or name in _CONTROL_WORDS or return_type in ("new", "else"):
        return None
    return name, match.group(3)


def find_matching_brace(lines: list[str], start: int) -> int:
    """Index of the line closing the first brace opened at or after ``start``."""
    depth = 0
    opened = False
    in_block_comment = False
    for index in range(start, len(lines)):
        line = lines[index]
        quote: Optional[str] = None
        i = 0
        while i < len(line):
            ch = line[i]
            nxt = line[i + 1] if i + 1 < len(line) else ""
            if in_block_comment:
                if ch == "*" and nxt == "/":
                    in_block_comment = False
                    i += 1
            elif quote:
                if ch == "\\":
                    i += 1
                elif ch == quote:
                    quote = None
            elif ch == "/" and nxt == "/":
                break
            elif ch == "/" and nxt == "*":
                in_block_comment = True
                i += 1
            elif ch in "\"'`":
                quote = ch
            elif ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
                if opened and depth == 0:
                    return index
            i += 1
    return len(lines) - 1


def find_indented_block_end(lines: list[str], start: int, indent: int) -> int:
    """Last line of the block opened at ``start`` (Python indentation rules)."""
    last = start
    for index in range(start + 1, len(lines)):
        line = lines[index]
        if not line.strip():
            continue
        current = len(line) - len(line.lstrip())
        if current <= indent and not line.lstrip().startswith((")", "]", "}")):
            break
        last = index
    return last


def parse_parameters(raw: str, language: str) -> list[str]:
    """Parameter names from a parameter list, without types or defaults."""
    names = []
    depth = 0
    current = ""
    parts = []
    for ch in raw:
        if ch in "<([{":
            depth += 1
        elif ch in ">)]}":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    parts.append(current)

    for part in parts:
        text = part.split("=", 1)[0].strip()
        if not text:
            continue
        if language in ("typescript", "python"):
            text = text.split(":", 1)[0].strip()
            text = text.lstrip("*").replace("...", "").rstrip("?").strip()
        else:
            text = text.split()[-1].strip()
        if text and text not in ("self", "cls", "/"):
            names.append(text)
    return names
