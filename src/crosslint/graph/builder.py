"""Module graph construction from JavaScript/TypeScript import statements."""

from __future__ import annotations

import os
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional

from ..logging_config import get_logger
from ..normalization.paths import ensure_relative, validate_canonical_path
from .models import (
    Coupling,
    DependencyEdge,
    EdgeType,
    ExportRecord,
    ImportRecord,
    Module,
    ModuleGraph,
)

logger = get_logger(__name__)

ALWAYS_IGNORED = frozenset({"node_modules", ".git", "dist", "build", ".next"})

# import x from 'm' | import { a, b } from 'm' | import * as ns from 'm' | import x, { a } from 'm'
_ES_IMPORT_RE = re.compile(
    r"""import\s+(?:type\s+)?(?:(\{[^}]*\})|\*\s+as\s+(\w+)|([\w$]+)(?:\s*,\s*(\{[^}]*\}))?)\s+from\s+['"]([^'"]+)['"]"""
)
_SIDE_EFFECT_IMPORT_RE = re.compile(r"""^\s*import\s+['"]([^'"]+)['"]""")
_REQUIRE_RE = re.compile(
    r"""(?:const|let|var)\s+(?:(\{[^}]*\})|([\w$]+))\s*=\s*require\(\s*['"]([^'"]+)['"]\s*\)"""
)
_BARE_REQUIRE_RE = re.compile(r"""^\s*require\(\s*['"]([^'"]+)['"]\s*\)""")
_DYNAMIC_IMPORT_RE = re.compile(r"""import\(\s*['"]([^'"]+)['"]\s*\)""")

_NAMED_EXPORT_RE = re.compile(r"export\s+\{([^}]+)\}")
_DEFAULT_EXPORT_RE = re.compile(r"export\s+default\s+(?:(?:async\s+)?function\s+(\w+)|class\s+(\w+)|(\w+))")
_FUNCTION_EXPORT_RE = re.compile(r"export\s+(?:async\s+)?function\s+(\w+)")
_CLASS_EXPORT_RE = re.compile(r"export\s+(?:abstract\s+)?class\s+(\w+)")
_VAR_EXPORT_RE = re.compile(r"export\s+(?:const|let|var)\s+(\w+)")
_TYPE_EXPORT_RE = re.compile(r"export\s+(?:declare\s+)?(interface|type|enum)\s+(\w+)")

COMPLEXITY_PATTERNS = [
    re.compile(r"\bif\s*\("),
    re.compile(r"\belse\s*\{"),
    re.compile(r"\bfor\s*\("),
    re.compile(r"\bwhile\s*\("),
    re.compile(r"\bswitch\s*\("),
    re.compile(r"\bcatch\s*\("),
    re.compile(r"&&|\|\|"),
]


def module_complexity(content: str) -> int:
    """1 plus the count of branching keywords and boolean operators."""
    return 1 + sum(len(p.findall(content)) for p in COMPLEXITY_PATTERNS)


def _split_names(block: str) -> list[str]:
    names = []
    for part in block.strip("{} \t").split(","):
        name = part.strip()
        if not name:
            continue
        # "a as b" binds b locally but imports a
        names.append(name.split(" as ")[0].replace("type ", "").strip())
    return names


def extract_imports(content: str) -> list[ImportRecord]:
    """ES-module, CommonJS and dynamic imports, one record per statement."""
    imports: list[ImportRecord] = []
    for index, line in enumerate(content.splitlines()):
        line_no = index + 1

        for match in _ES_IMPORT_RE.finditer(line):
            named, namespace, default, extra_named, spec = match.groups()
            names: list[str] = []
            if named:
                names.extend(_split_names(named))
            if namespace:
                names.append(f"* as {namespace}")
            if default:
                names.append(default)
            if extra_named:
                names.extend(_split_names(extra_named))
            imports.append(_record(spec, EdgeType.IMPORT, line_no, names))

        side_effect = _SIDE_EFFECT_IMPORT_RE.match(line)
        if side_effect:
            imports.append(_record(side_effect.group(1), EdgeType.IMPORT, line_no, []))

        for match in _REQUIRE_RE.finditer(line):
            destructured, name, spec = match.groups()
            names = _split_names(destructured) if destructured else [name]
            imports.append(_record(spec, EdgeType.REQUIRE, line_no, names))

        bare = _BARE_REQUIRE_RE.match(line)
        if bare:
            imports.append(_record(bare.group(1), EdgeType.REQUIRE, line_no, []))

        for match in _DYNAMIC_IMPORT_RE.finditer(line):
            imports.append(_record(match.group(1), EdgeType.DYNAMIC, line_no, ["dynamic_import"]))

    return imports


def _record(spec: str, kind: EdgeType, line: int, names: list[str]) -> ImportRecord:
    return ImportRecord(
        specifier=spec,
        kind=kind,
        line=line,
        names=names,
        is_external=not spec.startswith((".", "/")),
    )


def extract_exports(content: str) -> list[ExportRecord]:
    exports: list[ExportRecord] = []
    for index, line in enumerate(content.splitlines()):
        line_no = index + 1

        named = _NAMED_EXPORT_RE.search(line)
        if named:
            for name in named.group(1).split(","):
                name = name.strip().split(" as ")[-1].strip()
                if name:
                    exports.append(ExportRecord(name, "variable", line_no))

        default = _DEFAULT_EXPORT_RE.search(line)
        if default:
            fn, cls, var = default.groups()
            kind = "function" if fn else "class" if cls else "variable"
            exports.append(ExportRecord(fn or cls or var or "default", kind, line_no, is_default=True))
            continue

        for pattern, kind in (
            (_FUNCTION_EXPORT_RE, "function"),
            (_CLASS_EXPORT_RE, "class"),
            (_VAR_EXPORT_RE, "variable"),
        ):
            match = pattern.search(line)
            if match:
                exports.append(ExportRecord(match.group(1), kind, line_no))

        typed = _TYPE_EXPORT_RE.search(line)
        if typed:
            exports.append(ExportRecord(typed.group(2), typed.group(1), line_no))

    return exports


def resolve_specifier(
    spec: str, importer: str, known: set[str], extensions: Iterable[str]
) -> Optional[str]:
    """Resolve a relative or root-relative specifier to a known canonical path."""
    if spec.startswith("/"):
        joined = spec.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(importer), spec)
    normalized = posixpath.normpath(joined)
    if normalized in (".", "..") or normalized.startswith("../"):
        return None
    base = ensure_relative(normalized)
    if base is None or not validate_canonical_path(base):
        return None

    candidates = [base]
    candidates.extend(base + ext for ext in extensions)
    candidates.extend(f"{base}/index{ext}" for ext in extensions)
    for candidate in candidates:
        if candidate in known:
            return candidate
    return None


class ModuleGraphBuilder:
    """Discover source files under a project root and build the module graph.

    Args:
        project_root: Directory to walk
        extensions: Source extensions to include
        ignore_dirs: Extra directory names to skip
        max_files: Cap on discovered files; the sorted list is truncated
        concurrency: Files read per batch
        source_cache: Per-run cache of file text shared with other stages
    """

    def __init__(
        self,
        project_root: Path,
        extensions: Iterable[str],
        ignore_dirs: Iterable[str] = (),
        max_files: int = 1000,
        concurrency: int = 10,
        source_cache: Optional[dict[str, Optional[str]]] = None,
    ):
        self.project_root = Path(project_root)
        self.extensions = [e.lower() for e in extensions]
        self.ignore_dirs = ALWAYS_IGNORED | set(ignore_dirs)
        self.max_files = max_files
        self.concurrency = max(1, concurrency)
        self.source_cache = source_cache if source_cache is not None else {}

    def discover(self) -> tuple[list[str], bool]:
        """Sorted canonical paths of source files, and whether the cap cut the list."""
        found = []
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.ignore_dirs)
            rel_dir = Path(dirpath).relative_to(self.project_root).as_posix()
            for name in filenames:
                if Path(name).suffix.lower() in self.extensions:
                    found.append(name if rel_dir == "." else f"{rel_dir}/{name}")
        found.sort()
        truncated = len(found) > self.max_files
        if truncated:
            logger.warning(
                "Found %d source files, analyzing the first %d (max_files)",
                len(found),
                self.max_files,
            )
            found = found[: self.max_files]
        return found, truncated

    def build(self) -> ModuleGraph:
        files, truncated = self.discover()
        sources: dict[str, str] = {}
        for start in range(0, len(files), self.concurrency):
            batch = files[start:start + self.concurrency]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                texts = list(executor.map(self._read, batch))
            for path, text in zip(batch, texts):
                if text is not None:
                    sources[path] = text

        graph = build_module_graph(sources, self.extensions)
        graph.truncated = truncated
        logger.info(
            "Module graph: %d modules, %d edges", len(graph.modules), len(graph.edges)
        )
        return graph

    def _read(self, path: str) -> Optional[str]:
        if path in self.source_cache:
            return self.source_cache[path]
        try:
            text: Optional[str] = (self.project_root / path).read_text(
                encoding="utf-8", errors="replace"
            )
        except OSError as e:
            logger.debug("Skipping unreadable %s: %s", path, e)
            text = None
        self.source_cache[path] = text
        return text


def build_module_graph(sources: dict[str, str], extensions: Iterable[str]) -> ModuleGraph:
    """Build modules, merged edges, reverse edges and coupling from file text."""
    extensions = list(extensions)
    known = set(sources)
    modules: dict[str, Module] = {}
    edge_index: dict[tuple[str, str], DependencyEdge] = {}

    for path in sorted(sources):
        content = sources[path]
        module = Module(
            file_path=path,
            size=len(content.encode("utf-8")),
            imports=extract_imports(content),
            exports=extract_exports(content),
            complexity=module_complexity(content),
        )
        modules[path] = module

        for record in module.imports:
            if record.is_external:
                target = record.specifier
            else:
                record.resolved = resolve_specifier(record.specifier, path, known, extensions)
                if record.resolved is None:
                    if record.specifier not in module.unresolved_imports:
                        module.unresolved_imports.append(record.specifier)
                    continue
                target = record.resolved

            key = (path, target)
            edge = edge_index.get(key)
            if edge is None:
                edge = DependencyEdge(
                    from_path=path, to=target, type=record.kind, is_external=record.is_external
                )
                edge_index[key] = edge
            for name in record.names:
                if name not in edge.imported_symbols:
                    edge.imported_symbols.append(name)

    edges = list(edge_index.values())
    for edge in edges:
        source = modules[edge.from_path]
        if edge.is_external:
            source.external_dependencies.append(edge.to)
        else:
            source.dependencies.append(edge.to)
            modules[edge.to].dependents.append(edge.from_path)

    for module in modules.values():
        module.dependencies.sort()
        module.dependents.sort()
        module.external_dependencies.sort()
        module.coupling = compute_coupling(module)

    return ModuleGraph(modules=modules, edges=edges)


def compute_coupling(module: Module) -> Coupling:
    ca = len(set(module.dependents))
    ce = len(set(module.dependencies))
    instability = ce / (ca + ce) if ca + ce else 0.0
    abstractness = (
        sum(1 for e in module.exports if e.is_abstract) / len(module.exports)
        if module.exports
        else 0.0
    )
    return Coupling(
        afferent=ca,
        efferent=ce,
        instability=instability,
        abstractness=abstractness,
        distance=abs(abstractness + instability - 1),
    )
