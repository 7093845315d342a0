"""Core Monte Carlo engine for estimate graphs."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, assert_never

from fermigraph._functions import apply_function, apply_operation, clamp, compare, fold_operation
from fermigraph._graph import DependencyGraph
from fermigraph._models import (
    AssumptionNode,
    ClampNode,
    ConditionalNode,
    ConstantNode,
    FunctionNode,
    OperationNode,
    ResultNode,
)
from fermigraph._sampling import sample
from fermigraph._stats import NodeSimulationResult, SimulationResult

from ._resolution import (
    CONDITIONAL_PORTS,
    FUNCTION_PRIMARY_PORTS,
    OPERATION_PRIMARY_PORTS,
    consumed_edges,
    resolve_operands,
    resolve_ports,
    resolve_single,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from fermigraph._models import Edge, Graph, Node

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 10_000


@dataclass(frozen=True, slots=True)
class GraphValidation:
    """Problems found in a graph before simulating it.

    Attributes:
        errors: Problems that prevent simulation (missing result node, cycles).
        warnings: Problems the simulation tolerates (dangling edges, extra result
            nodes).

    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0


@dataclass(frozen=True, slots=True)
class GraphSimulationResult:
    """Result of simulating an estimate graph.

    This is an immutable data structure; failures are reported in ``errors``
    rather than raised.

    Attributes:
        final_result: Samples and statistics of the result node. Empty when the
            graph could not be simulated or no iteration produced a finite value.
        node_results: Per-node results for every node that produced at least one
            finite sample, keyed by node id.
        errors: Validation errors that prevented the simulation.
        warnings: Validation warnings tolerated by the simulation.
        iterations: Number of iterations that were run.

    """

    final_result: SimulationResult = field(default_factory=SimulationResult)
    node_results: dict[str, NodeSimulationResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    iterations: int = 0

    @property
    def success(self) -> bool:
        """Check if the simulation ran and produced at least one result sample."""
        return not self.errors and not self.final_result.is_empty

    def get_node_result(self, node_id: str) -> NodeSimulationResult:
        """Get the simulation result of a node.

        Raises:
            KeyError: If the node produced no finite sample or was not simulated.

        """
        return self.node_results[node_id]


def _incoming_edges(graph: Graph) -> dict[str, list[Edge]]:
    incoming: dict[str, list[Edge]] = {}
    for edge in graph.edges:
        incoming.setdefault(edge.target, []).append(edge)
    return incoming


def _dependency_graph(graph: Graph, incoming: Mapping[str, list[Edge]]) -> DependencyGraph[str]:
    """Dependencies along the edges each node reads; ignored inputs are left out."""
    return DependencyGraph.from_edges(
        [
            (edge.source, node.id)
            for node in graph.nodes
            for edge in consumed_edges(node, incoming.get(node.id, []))
        ],
        nodes=[node.id for node in graph.nodes],
    )


def _describe_cycle(graph: Graph, cycle: Sequence[str]) -> str:
    names = {node.id: node.display_name for node in graph.nodes}
    return " -> ".join(names.get(node_id, node_id) for node_id in cycle)


def validate_graph(graph: Graph) -> GraphValidation:
    """Check that a graph can be simulated.

    Cycles are rejected only when the result node depends on them; nodes that
    do not feed the result are never evaluated. Edges a node ignores, such as a
    second input of a clamp or result node, are not dependencies.

    Args:
        graph: The graph to check.

    Returns:
        GraphValidation with errors and warnings.

    """
    errors: list[str] = []
    warnings: list[str] = []

    seen: set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            errors.append(f"Duplicate node id '{node.id}'")
        seen.add(node.id)

    for edge in graph.edges:
        missing = [node_id for node_id in (edge.source, edge.target) if node_id not in seen]
        if missing:
            warnings.append(f"Edge '{edge.id}' references unknown node(s): {', '.join(missing)}")

    results = [node for node in graph.nodes if isinstance(node, ResultNode)]
    if not results:
        errors.append("Graph has no result node")
        return GraphValidation(errors=errors, warnings=warnings)
    if len(results) > 1:
        warnings.append(f"Graph has {len(results)} result nodes; using '{results[0].display_name}'")

    upstream = _dependency_graph(graph, _incoming_edges(graph)).upstream(results[0].id)
    cycle = upstream.find_cycle()
    if cycle is not None:
        errors.append(f"Graph contains a cycle: {_describe_cycle(graph, cycle)}")

    return GraphValidation(errors=errors, warnings=warnings)


class _IterationEvaluator:
    """Evaluates nodes for one iteration at a time, memoizing each node's value.

    The memo is what guarantees one draw per assumption per iteration, however
    many nodes consume it.
    """

    def __init__(
        self,
        nodes: Mapping[str, Node],
        incoming: Mapping[str, list[Edge]],
        rng: random.Random,
    ) -> None:
        self._nodes = nodes
        self._incoming = incoming
        self._rng = rng
        self._values: dict[str, float] = {}

    def run(self, order: Sequence[str]) -> dict[str, float]:
        """Evaluate the nodes of one iteration and return their values.

        ``order`` lists dependencies before dependents, so every recursive
        lookup hits the memo.
        """
        self._values = {}
        for node_id in order:
            self.evaluate(node_id)
        return self._values

    def evaluate(self, node_id: str) -> float:
        if node_id in self._values:
            return self._values[node_id]
        node = self._nodes.get(node_id)
        if node is None:
            # source of a dangling edge
            return 0.0
        value = self._compute(node)
        self._values[node_id] = value
        return value

    def _compute(self, node: Node) -> float:  # noqa: PLR0911
        incoming = self._incoming.get(node.id, [])
        match node:
            case AssumptionNode():
                return sample(node.distribution, node.min, node.max, self._rng)
            case ConstantNode():
                return node.value
            case OperationNode(operation=operation) if operation.is_variadic:
                return fold_operation(operation, [self.evaluate(edge.source) for edge in incoming])
            case OperationNode(operation=operation):
                a, b = resolve_operands(incoming, self.evaluate, OPERATION_PRIMARY_PORTS)
                return apply_operation(operation, a, 0.0 if b is None else b)
            case FunctionNode():
                a, b = resolve_operands(incoming, self.evaluate, FUNCTION_PRIMARY_PORTS)
                return apply_function(node.function, a, b, node.parameter)
            case ConditionalNode():
                ports = resolve_ports(incoming, self.evaluate, CONDITIONAL_PORTS)
                return ports["then"] if compare(node.comparison, ports["a"], ports["b"]) else ports["else"]
            case ClampNode():
                return clamp(resolve_single(incoming, self.evaluate), node.min, node.max)
            case ResultNode():
                return resolve_single(incoming, self.evaluate)
            case _:
                assert_never(node)


def run_graph_simulation(
    graph: Graph,
    iterations: int = DEFAULT_ITERATIONS,
    *,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> GraphSimulationResult:
    """Simulate a graph and summarize the result node and every node feeding it.

    This function:
    1. Validates the graph (result node present, no cycle upstream of it)
    2. Orders the result node's upstream nodes topologically
    3. Evaluates every such node once per iteration with a fresh memo
    4. Appends each finite node value to that node's samples
    5. Summarizes every node's samples

    Args:
        graph: The estimate graph.
        iterations: Number of Monte Carlo iterations.
        seed: Seed for a fresh random generator. Ignored when ``rng`` is given.
        rng: Random generator to draw uniform variates from.

    Returns:
        GraphSimulationResult; on validation errors the results are empty and
        ``errors`` explains why.

    Example:
        >>> result = run_graph_simulation(graph, 1000, seed=42)
        >>> if result.success:
        ...     print(result.final_result.percentiles.p50)

    """
    validation = validate_graph(graph)
    for warning in validation.warnings:
        logger.debug("Graph %s: %s", graph.id, warning)
    if not validation.ok:
        for error in validation.errors:
            logger.debug("Cannot simulate graph %s: %s", graph.id, error)
        return GraphSimulationResult(errors=validation.errors, warnings=validation.warnings)

    if rng is None:
        rng = random.Random(seed)

    # validation guarantees at least one; the first one wins
    result_node = next(node for node in graph.nodes if isinstance(node, ResultNode))

    # Only nodes the result depends on are evaluated
    incoming = _incoming_edges(graph)
    order = _dependency_graph(graph, incoming).upstream(result_node.id).topological_order()
    nodes = {node.id: node for node in graph.nodes}

    evaluator = _IterationEvaluator(nodes, incoming, rng)
    samples: dict[str, list[float]] = {node_id: [] for node_id in order if node_id in nodes}

    logger.debug("Simulating %d iterations over %d nodes", iterations, len(samples))

    for _ in range(iterations):
        for node_id, value in evaluator.run(order).items():
            # A bad value drops only this node's sample for the iteration
            if math.isfinite(value):
                samples[node_id].append(value)

    node_results = {
        node_id: NodeSimulationResult.for_node(node_id, node_samples)
        for node_id, node_samples in samples.items()
        if node_samples
    }
    for node_id, node_samples in samples.items():
        logger.debug("  %s: %d/%d finite samples", nodes[node_id].display_name, len(node_samples), iterations)

    return GraphSimulationResult(
        final_result=SimulationResult.from_samples(samples[result_node.id]),
        node_results=node_results,
        warnings=validation.warnings,
        iterations=max(iterations, 0),
    )
