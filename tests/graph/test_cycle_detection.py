"""Tests for cycle detection, dependency depth and modularity."""

import pytest

from crosslint.graph import (
    build_module_graph,
    compute_metrics,
    directory_modularity,
    find_cycles,
    max_dependency_depth,
    tarjan_scc,
)


class TestCycles:
    """Strongly connected components and self-loops."""

    def test_triangle_and_self_loop(self):
        adj = {"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": ["a.ts"], "d.ts": ["d.ts"]}
        assert find_cycles(adj, set(adj)) == [["a.ts", "b.ts", "c.ts"], ["d.ts"]]

    def test_acyclic(self):
        adj = {"a": ["b"], "b": ["c"], "c": []}
        assert find_cycles(adj, set(adj)) == []

    def test_edges_to_unknown_nodes_ignored(self):
        adj = {"a": ["b", "zzz"], "b": ["a"]}
        assert find_cycles(adj, {"a", "b"}) == [["a", "b"]]

    def test_larger_cycles_first(self):
        adj = {"x": ["y"], "y": ["x"], "a": ["b"], "b": ["c"], "c": ["a"]}
        assert find_cycles(adj, set(adj)) == [["a", "b", "c"], ["x", "y"]]

    def test_cycle_importing_another_cycle(self):
        imports = {"a": ["b"], "b": ["a", "c"], "c": ["d"], "d": ["c"], "e": ["a"]}
        components = tarjan_scc(imports, set(imports))
        assert sorted(map(sorted, components)) == [["a", "b"], ["c", "d"], ["e"]]
        assert components == tarjan_scc(imports, set(imports))

    def test_deep_chain_no_recursion_error(self):
        n = 5000
        adj = {f"n{i}": [f"n{i + 1}"] for i in range(n)}
        adj[f"n{n}"] = []
        components = tarjan_scc(adj, set(adj))
        assert len(components) == n + 1
        assert find_cycles(adj, set(adj)) == []


class TestDepth:
    def test_chain(self):
        assert max_dependency_depth({"a": ["b"], "b": ["c"], "c": []}) == 2

    def test_loop_closing_edge_counts(self):
        adj = {"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": ["a.ts"], "d.ts": ["d.ts"]}
        assert max_dependency_depth(adj) == 3

    def test_empty(self):
        assert max_dependency_depth({}) == 0


class TestModularity:
    """Directory communities on the undirected graph."""

    def test_no_edges(self):
        assert directory_modularity({"a": []}) == 0.0

    def test_self_loops_ignored(self):
        assert directory_modularity({"a": ["a"]}) == 0.0

    def test_separated_directories(self):
        adj = {"x/a": ["x/b"], "x/b": [], "y/c": ["y/d"], "y/d": []}
        assert directory_modularity(adj) == pytest.approx(0.75)

    def test_cross_directory_edge(self):
        assert directory_modularity({"x/a": ["y/b"], "y/b": []}) == pytest.approx(0.25)


class TestMetrics:
    def test_two_module_cycle(self):
        graph = build_module_graph(
            {
                "a.ts": "import { b } from './b';\nimport React from 'react';\n",
                "b.ts": "import { a } from './a';\n",
            },
            [".ts"],
        )
        metrics = compute_metrics(graph, cycle_count=1)
        assert metrics.total_modules == 2
        assert metrics.total_dependencies == 3
        assert metrics.external_dependencies == 1
        assert metrics.circular_dependencies == 1
        assert metrics.average_coupling == pytest.approx(2.0)
        assert metrics.stability == pytest.approx(0.5)
        assert metrics.max_depth == 2
        assert metrics.modularity == pytest.approx(0.5)

    def test_empty_graph(self):
        metrics = compute_metrics(build_module_graph({}, [".ts"]), cycle_count=0)
        assert metrics.total_modules == 0
        assert metrics.average_coupling == 0.0
        assert metrics.max_depth == 0
