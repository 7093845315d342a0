"""Evaluation engine module for fermigraph.

This module runs Monte Carlo simulations over estimate graphs. Each iteration
evaluates the result node's upstream nodes once, in dependency order, drawing
one sample per assumption, and every node's value is harvested into its own
sample set.

Key types:
- GraphSimulationResult: Final result, per-node results and validation messages
- GraphValidation: Errors and warnings found before simulating
- run_graph_simulation: Simulate a graph for a number of iterations
- validate_graph: Check a graph without simulating it
"""

from ._engine import GraphSimulationResult, GraphValidation, run_graph_simulation, validate_graph
from ._resolution import consumed_edges, resolve_operands, resolve_ports, resolve_single

__all__ = [
    "GraphSimulationResult",
    "GraphValidation",
    "consumed_edges",
    "resolve_operands",
    "resolve_ports",
    "resolve_single",
    "run_graph_simulation",
    "validate_graph",
]
