"""Input port resolution for the evaluation engine.

Each resolver receives a node's incoming edges in insertion order and a
callback evaluating a source node for the current iteration. Unwired inputs
default to 0.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

from fermigraph._models import AssumptionNode, ClampNode, ConditionalNode, ConstantNode, ResultNode

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from fermigraph._models import Edge, Node

    Evaluate: TypeAlias = Callable[[str], float]

OPERATION_PRIMARY_PORTS = ("a",)
FUNCTION_PRIMARY_PORTS = ("a", "input")
CONDITIONAL_PORTS = ("a", "b", "then", "else")


def resolve_operands(
    incoming: Sequence[Edge],
    evaluate: Evaluate,
    primary_ports: Iterable[str],
) -> tuple[float, float | None]:
    """Resolve the primary and secondary operands of a two-input node.

    An edge is primary if its port is one of ``primary_ports``, or if it is
    untagged and the first incoming edge. Every other edge is secondary. When
    several edges compete for the same operand the later one wins.

    Args:
        incoming: Edges targeting the node, in insertion order.
        evaluate: Returns the current-iteration value of a source node.
        primary_ports: Port names that select the primary operand.

    Returns:
        Tuple of (primary, secondary). The primary defaults to 0; the secondary
        is None when no edge supplies it.

    """
    primary_ports = tuple(primary_ports)
    primary = 0.0
    secondary: float | None = None

    for index, edge in enumerate(incoming):
        value = evaluate(edge.source)
        if edge.port in primary_ports or (edge.port is None and index == 0):
            primary = value
        else:
            secondary = value

    return primary, secondary


def resolve_ports(
    incoming: Sequence[Edge],
    evaluate: Evaluate,
    ports: Iterable[str],
) -> dict[str, float]:
    """Resolve named ports, defaulting unwired ones to 0.

    Edges on other ports, untagged edges included, are ignored.
    """
    values = dict.fromkeys(ports, 0.0)
    for edge in incoming:
        if edge.port in values:
            values[edge.port] = evaluate(edge.source)
    return values


def resolve_single(incoming: Sequence[Edge], evaluate: Evaluate) -> float:
    """Resolve the single default input: the first incoming edge, or 0."""
    if not incoming:
        return 0.0
    return evaluate(incoming[0].source)


def consumed_edges(node: Node, incoming: Sequence[Edge]) -> Sequence[Edge]:
    """Return the incoming edges whose sources the node reads when evaluated.

    Sources of other edges are never evaluated on this node's behalf, so they
    neither draw samples nor count as dependencies.
    """
    match node:
        case AssumptionNode() | ConstantNode():
            return ()
        case ClampNode() | ResultNode():
            return incoming[:1]
        case ConditionalNode():
            return [edge for edge in incoming if edge.port in CONDITIONAL_PORTS]
        case _:
            return incoming
