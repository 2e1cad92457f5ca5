"""Graph algorithms: SCC cycles, dependency depth, directory modularity."""

from __future__ import annotations

import posixpath
from typing import Iterator

from ..logging_config import get_logger
from ..math import Statistics
from .models import GraphMetrics, ModuleGraph

logger = get_logger(__name__)

# Longest-simple-path search is exponential in the worst case
MAX_DEPTH_STEPS = 1_000_000


def tarjan_scc(imports: dict[str, list[str]], modules: set[str]) -> list[set[str]]:
    """Groups of modules that all import each other, directly or transitively.

    Import targets outside ``modules`` (unresolved or external specifiers)
    are ignored. Runs without recursion so long import chains cannot hit
    the interpreter's recursion limit. Modules are visited in sorted order,
    so components come out in the same order on every run.
    """
    targets = {m: [t for t in imports.get(m, []) if t in modules] for m in modules}
    visit_order: dict[str, int] = {}
    reach: dict[str, int] = {}
    open_modules: list[str] = []
    open_set: set[str] = set()
    components: list[set[str]] = []

    def enter(module: str) -> tuple[str, Iterator[str]]:
        visit_order[module] = reach[module] = len(visit_order)
        open_modules.append(module)
        open_set.add(module)
        return module, iter(targets[module])

    for start in sorted(modules):
        if start in visit_order:
            continue
        walk = [enter(start)]
        while walk:
            importer, pending = walk[-1]
            target = next(pending, None)
            if target is not None:
                if target not in visit_order:
                    walk.append(enter(target))
                elif target in open_set:
                    reach[importer] = min(reach[importer], visit_order[target])
                continue

            walk.pop()
            if walk:
                parent = walk[-1][0]
                reach[parent] = min(reach[parent], reach[importer])
            if reach[importer] != visit_order[importer]:
                continue

            # importer is the root of a finished component
            component: set[str] = set()
            while True:
                member = open_modules.pop()
                open_set.discard(member)
                component.add(member)
                if member == importer:
                    break
            components.append(component)

    return components


def find_cycles(imports: dict[str, list[str]], modules: set[str]) -> list[list[str]]:
    """Import cycles: multi-module components plus self-importing modules.

    Each cycle is sorted; cycles are ordered largest first, then by name.
    """
    cycles = []
    for component in tarjan_scc(imports, modules):
        if len(component) > 1:
            cycles.append(sorted(component))
        else:
            (module,) = component
            if module in imports.get(module, []):
                cycles.append([module])
    cycles.sort(key=lambda c: (-len(c), c))
    return cycles


def max_dependency_depth(adjacency: dict[str, list[str]]) -> int:
    """Longest simple dependency path, trying every start node.

    Reaching a node already on the current path ends that walk, counting
    the edge that closed the loop.
    """
    nodes = sorted(adjacency)
    best = 0
    steps = 0

    for start in nodes:
        on_path = {start}
        # frame: (node, depth, neighbor iterator)
        stack = [(start, 0, iter(sorted(set(adjacency.get(start, [])))))]
        while stack:
            node, depth, it = stack[-1]
            nxt = next(it, None)
            if nxt is None:
                stack.pop()
                on_path.discard(node)
                best = max(best, depth)
                continue

            steps += 1
            if steps > MAX_DEPTH_STEPS:
                logger.warning("Dependency depth search hit its step budget; result is a lower bound")
                return best

            if nxt in on_path:
                best = max(best, depth + 1)
                continue
            on_path.add(nxt)
            stack.append((nxt, depth + 1, iter(sorted(set(adjacency.get(nxt, []))))))

    return best


def directory_modularity(adjacency: dict[str, list[str]]) -> float:
    """Newman modularity with one community per directory, scaled by (Q+1)/2.

    Computed on the undirected projection of the graph without self-loops.
    Returns 0 when the graph has no edges.
    """
    undirected: set[tuple[str, str]] = set()
    for source, targets in adjacency.items():
        for target in targets:
            if source != target:
                undirected.add((min(source, target), max(source, target)))

    m = len(undirected)
    if m == 0:
        return 0.0

    degree: dict[str, int] = {}
    intra = 0
    for a, b in undirected:
        degree[a] = degree.get(a, 0) + 1
        degree[b] = degree.get(b, 0) + 1
        if posixpath.dirname(a) == posixpath.dirname(b):
            intra += 1

    community_degree: dict[str, int] = {}
    for node, k in degree.items():
        community = posixpath.dirname(node)
        community_degree[community] = community_degree.get(community, 0) + k

    q = intra / m - sum((k / (2 * m)) ** 2 for k in community_degree.values())
    # TODO: (Q+1)/2 compresses the natural [-0.5, 1] range; consider reporting raw Q
    return max(0.0, min(1.0, (q + 1) / 2))


def compute_metrics(graph: ModuleGraph, cycle_count: int) -> GraphMetrics:
    modules = list(graph.modules.values())
    adjacency = graph.adjacency()
    return GraphMetrics(
        total_modules=len(modules),
        total_dependencies=len(graph.edges),
        external_dependencies=sum(1 for e in graph.edges if e.is_external),
        circular_dependencies=cycle_count,
        average_coupling=Statistics.mean(
            [m.coupling.afferent + m.coupling.efferent for m in modules]
        ),
        max_depth=max_dependency_depth(adjacency),
        modularity=directory_modularity(adjacency),
        stability=1 - Statistics.mean([m.coupling.instability for m in modules]),
    )
