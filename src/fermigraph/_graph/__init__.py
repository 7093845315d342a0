"""Graph module providing the dependency structure of estimate graphs.

This module contains:
- DependencyGraph[T]: An immutable, insertion-ordered directed graph
- topological_sort: Deterministic ordering of nodes by dependencies
- find_cycle: Locating one cycle, for error reporting
"""

from ._algorithms import find_cycle, topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph", "find_cycle", "topological_sort"]
