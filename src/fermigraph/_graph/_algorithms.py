"""Graph algorithms over insertion-ordered adjacency mappings."""

from collections import deque
from collections.abc import Hashable, Mapping, Sequence
from typing import TypeVar

T = TypeVar("T", bound=Hashable)


def topological_sort(successors: Mapping[T, Sequence[T]]) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Ties are broken by the order nodes first appear in ``successors``, so the
    result is the same on every run for the same input.

    Args:
        successors: Mapping from node to the nodes that depend on it. Every node
            must appear as a key. An edge (a -> b) means "b depends on a".

    Returns:
        List of nodes in topological order.

    Raises:
        ValueError: If the graph contains a cycle.

    Example:
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []})
        ['a', 'b', 'c']

    """
    indegree: dict[T, int] = dict.fromkeys(successors, 0)
    for deps in successors.values():
        for dep in deps:
            indegree[dep] = indegree.get(dep, 0) + 1

    queue = deque(node for node, deg in indegree.items() if deg == 0)
    order: list[T] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for successor in successors.get(node, ()):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                queue.append(successor)

    if len(order) != len(indegree):
        msg = "Cycle detected in graph"
        raise ValueError(msg)

    return order


def find_cycle(successors: Mapping[T, Sequence[T]]) -> list[T] | None:
    """Find one cycle in a graph.

    Args:
        successors: Mapping from node to the nodes that depend on it.

    Returns:
        The nodes of a cycle in edge order, with the first node repeated at the
        end (``["a", "b", "a"]``), or None if the graph is acyclic.

    """
    visiting, done = 1, 2
    state: dict[T, int] = {}

    for start in successors:
        if start in state:
            continue
        # Iterative DFS; stack[i] iterates the successors of path[i]
        path: list[T] = [start]
        state[start] = visiting
        stack = [iter(successors.get(start, ()))]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                state[path.pop()] = done
                stack.pop()
                continue
            child_state = state.get(child)
            if child_state is None:
                state[child] = visiting
                path.append(child)
                stack.append(iter(successors.get(child, ())))
            elif child_state == visiting:
                return [*path[path.index(child) :], child]
    return None
