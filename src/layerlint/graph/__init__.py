"""Graph domain: dependency edges, read-only graph, boundary registry."""

from layerlint.graph.builder import DependencyEdge, DependencyGraph, build_graph
from layerlint.graph.registry import (
    DEFAULT_ABSTRACTION_PAIRS,
    Boundary,
    BoundaryRegistry,
)

__all__ = [
    "DEFAULT_ABSTRACTION_PAIRS",
    "Boundary",
    "BoundaryRegistry",
    "DependencyEdge",
    "DependencyGraph",
    "build_graph",
]
