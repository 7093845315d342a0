"""Monte Carlo evaluation of Fermi estimate graphs."""

__all__ = [
    "Assumption",
    "AssumptionNode",
    "ClampNode",
    "Comparison",
    "ConditionalNode",
    "Confidence",
    "ConstantNode",
    "DependencyGraph",
    "Distribution",
    "Edge",
    "Estimate",
    "ExpressionError",
    "FunctionKind",
    "FunctionNode",
    "Graph",
    "GraphLoadError",
    "GraphSimulationResult",
    "GraphValidation",
    "HistogramBin",
    "Node",
    "NodeKind",
    "NodeSimulationResult",
    "Operation",
    "OperationNode",
    "Percentiles",
    "ResultNode",
    "SimulationResult",
    "Summary",
    "apply_function",
    "create_histogram",
    "evaluate_expression",
    "evaluate_formula",
    "export_results_to_toml",
    "format_number",
    "load_estimate",
    "load_graph",
    "run_graph_simulation",
    "run_simulation",
    "sample",
    "sample_assumption",
    "summarize",
    "validate_graph",
]

from ._enums import Comparison, Confidence, Distribution, FunctionKind, NodeKind, Operation
from ._eval_engine import GraphSimulationResult, GraphValidation, run_graph_simulation, validate_graph
from ._expr import ExpressionError, evaluate_expression
from ._functions import apply_function
from ._graph import DependencyGraph
from ._io import GraphLoadError, export_results_to_toml, load_estimate, load_graph
from ._legacy import evaluate_formula, run_simulation
from ._models import (
    Assumption,
    AssumptionNode,
    ClampNode,
    ConditionalNode,
    ConstantNode,
    Edge,
    Estimate,
    FunctionNode,
    Graph,
    Node,
    OperationNode,
    ResultNode,
)
from ._sampling import sample, sample_assumption
from ._stats import (
    HistogramBin,
    NodeSimulationResult,
    Percentiles,
    SimulationResult,
    Summary,
    create_histogram,
    format_number,
    summarize,
)
