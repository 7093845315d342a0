"""Insertion-ordered dependency graph."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ._algorithms import find_cycle, topological_sort

T = TypeVar("T")


def _append_unique(mapping: dict[T, list[T]], key: T, value: T) -> None:
    values = mapping.setdefault(key, [])
    if value not in values:
        values.append(value)


@dataclass(frozen=True, slots=True)
class DependencyGraph(Generic[T]):
    """A directed graph of "depends on" relationships between nodes.

    Unlike a set-based adjacency, every query returns nodes in the order they
    were first seen, so traversals and the topological order are reproducible.

    - predecessors(b) == (a,) means "b depends on a"
    - successors(a) == (b,) means "a is depended on by b"

    Parallel edges between the same two nodes collapse into one dependency.

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.

    """

    _predecessors: dict[T, tuple[T, ...]] = field(default_factory=dict)
    _successors: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: list[tuple[T, T]], nodes: list[T] | None = None) -> "DependencyGraph[T]":
        """Build a graph from (source, target) edges and optional isolated nodes.

        An edge (a, b) means "b depends on a". ``nodes`` are registered first, in
        order, so nodes without edges are part of the graph too.

        Example:
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            ('a',)

        """
        predecessors: dict[T, list[T]] = {}
        successors: dict[T, list[T]] = {}

        for node in nodes or []:
            predecessors.setdefault(node, [])
            successors.setdefault(node, [])

        for src, dst in edges:
            for node in (src, dst):
                predecessors.setdefault(node, [])
                successors.setdefault(node, [])
            _append_unique(predecessors, dst, src)
            _append_unique(successors, src, dst)

        return cls(
            _predecessors={k: tuple(v) for k, v in predecessors.items()},
            _successors={k: tuple(v) for k, v in successors.items()},
        )

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes in the graph, in first-seen order."""
        return tuple(self._successors)

    def predecessors(self, node: T) -> tuple[T, ...]:
        """Direct dependencies of a node."""
        return self._predecessors.get(node, ())

    def successors(self, node: T) -> tuple[T, ...]:
        """Direct dependents of a node."""
        return self._successors.get(node, ())

    def ancestors(self, node: T) -> frozenset[T]:
        """All transitive dependencies of a node (excluding the node itself unless on a cycle)."""
        visited: set[T] = set()
        stack = list(self.predecessors(node))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(self.predecessors(current))
        return frozenset(visited)

    def upstream(self, node: T) -> "DependencyGraph[T]":
        """Subgraph of a node and everything it transitively depends on."""
        return self.subgraph(self.ancestors(node) | {node})

    def subgraph(self, nodes: frozenset[T]) -> "DependencyGraph[T]":
        """Create a subgraph containing only the specified nodes.

        Edges are kept only if both endpoints are in the node set; node order is preserved.
        """
        kept = [n for n in self.nodes if n in nodes]
        return DependencyGraph(
            _predecessors={n: tuple(p for p in self.predecessors(n) if p in nodes) for n in kept},
            _successors={n: tuple(s for s in self.successors(n) if s in nodes) for n in kept},
        )

    def topological_order(self) -> list[T]:
        """Return nodes with dependencies before dependents.

        Raises:
            ValueError: If the graph contains a cycle.

        """
        return topological_sort(self._successors)

    def find_cycle(self) -> list[T] | None:
        """Return one cycle as a closed node path, or None if acyclic."""
        return find_cycle(self._successors)

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self._successors)

    def __contains__(self, node: T) -> bool:
        """Check if a node is in the graph."""
        return node in self._successors
