"""Module dependency graph: discovery, import extraction, graph algorithms."""

from .algorithms import (
    compute_metrics,
    directory_modularity,
    find_cycles,
    max_dependency_depth,
    tarjan_scc,
)
from .builder import ModuleGraphBuilder, build_module_graph
from .models import DependencyEdge, EdgeType, GraphMetrics, Module, ModuleGraph

__all__ = [
    "compute_metrics",
    "directory_modularity",
    "find_cycles",
    "max_dependency_depth",
    "tarjan_scc",
    "ModuleGraphBuilder",
    "build_module_graph",
    "DependencyEdge",
    "EdgeType",
    "GraphMetrics",
    "Module",
    "ModuleGraph",
]
