"""User-facing data model: estimate graphs, their nodes and edges.

Graphs are produced by an editor or by an assistant's edit intents and handed to
the evaluation engine unchanged. Nodes are immutable; the graph edit operations
replace them in place so the node list keeps its order.
"""

from __future__ import annotations

import logging
import uuid
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ._enums import Comparison, Confidence, Distribution, FunctionKind, NodeKind, Operation

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Return a fresh opaque identifier for a node, edge or graph."""
    return str(uuid.uuid4())


def _coerce_distribution(value: Any) -> Any:
    if value is None:
        return Distribution.UNIFORM
    if isinstance(value, str) and value not in {member.value for member in Distribution}:
        logger.warning("Unknown distribution %r, falling back to uniform", value)
        return Distribution.UNIFORM
    return value


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    label: str = ""

    @property
    def display_name(self) -> str:
        """Name shown to users: the label, or the kind with a short id."""
        return self.label or f"{self.kind}:{self.id[:8]}"  # type: ignore[attr-defined]


class AssumptionNode(_NodeBase):
    """Uncertain scalar with bounds and a distribution."""

    kind: Literal["assumption"] = "assumption"
    name: str
    min: float
    max: float
    distribution: Distribution = Distribution.UNIFORM
    description: str | None = None
    unit: str | None = None
    source: str | None = None
    confidence: Confidence | None = None

    @field_validator("distribution", mode="before")
    @classmethod
    def normalize_distribution(cls, value: Any) -> Any:
        return _coerce_distribution(value)

    @property
    def display_name(self) -> str:
        return self.label or self.name


class ConstantNode(_NodeBase):
    """Fixed scalar."""

    kind: Literal["constant"] = "constant"
    value: float


class OperationNode(_NodeBase):
    kind: Literal["operation"] = "operation"
    operation: Operation


class FunctionNode(_NodeBase):
    """Function of one input (two for min/max).

    ``parameter`` is the exponent for ``pow`` and the expression in ``x`` for ``custom``.
    """

    kind: Literal["function"] = "function"
    function: FunctionKind
    parameter: float | str | None = None


class ConditionalNode(_NodeBase):
    kind: Literal["conditional"] = "conditional"
    comparison: Comparison


class ClampNode(_NodeBase):
    kind: Literal["clamp"] = "clamp"
    min: float | None = None
    max: float | None = None


class ResultNode(_NodeBase):
    kind: Literal["result"] = "result"


Node = Annotated[
    AssumptionNode | ConstantNode | OperationNode | FunctionNode | ConditionalNode | ClampNode | ResultNode,
    Field(discriminator="kind"),
]


class Edge(BaseModel):
    """Connection from a source node's output to an input port of a target node.

    A missing ``port`` means the default input of the target.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    source: str
    target: str
    port: str | None = Field(
        default=None,
        validation_alias=AliasChoices("port", "target_handle", "targetHandle"),
    )

    @field_validator("port", mode="before")
    @classmethod
    def empty_port_is_default(cls, value: Any) -> Any:
        if value == "":
            return None
        return value


class Graph(BaseModel):
    """A Fermi estimate as a directed graph of nodes and port-tagged edges.

    Cycles are not rejected here; the evaluation engine validates before simulating.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = "New Estimate"
    question: str = ""
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Node:
        """Get a node by id.

        Raises:
            KeyError: If no node has the given id.

        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        msg = f"No node with id {node_id!r}"
        raise KeyError(msg)

    def has_node(self, node_id: str) -> bool:
        return any(node.id == node_id for node in self.nodes)

    def find_by_name(self, name: str) -> Node | None:
        """Find a node by assumption name or label, as edit intents address nodes."""
        for node in self.nodes:
            if isinstance(node, AssumptionNode) and node.name == name:
                return node
        for node in self.nodes:
            if node.label == name:
                return node
        return None

    def result_node(self) -> ResultNode | None:
        """Return the result node, the first one if several exist."""
        results = [node for node in self.nodes if isinstance(node, ResultNode)]
        if len(results) > 1:
            logger.warning("Graph %s has %d result nodes; using the first", self.id, len(results))
        return results[0] if results else None

    def incoming_edges(self, node_id: str) -> list[Edge]:
        """Edges targeting a node, in insertion order."""
        return [edge for edge in self.edges if edge.target == node_id]

    def kind_counts(self) -> dict[NodeKind, int]:
        """Number of nodes of each kind present, in ``NodeKind`` order."""
        counts = {kind: sum(1 for node in self.nodes if node.kind == kind) for kind in NodeKind}
        return {kind: count for kind, count in counts.items() if count}

    def add_node(self, node: Node) -> str:
        """Append a node and return its id.

        Raises:
            ValueError: If a node with the same id already exists.

        """
        if self.has_node(node.id):
            msg = f"Duplicate node id {node.id!r}"
            raise ValueError(msg)
        self.nodes.append(node)
        return node.id

    def update_node(self, node_id: str, **changes: Any) -> Node:
        """Apply a partial attribute update to a node and return the new node.

        The updated node is re-validated; its kind and id cannot change.
        """
        if "id" in changes or "kind" in changes:
            msg = "Node id and kind cannot be updated"
            raise ValueError(msg)
        for index, node in enumerate(self.nodes):
            if node.id == node_id:
                updated = type(node).model_validate(node.model_dump() | changes)
                self.nodes[index] = updated
                return updated
        msg = f"No node with id {node_id!r}"
        raise KeyError(msg)

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every edge touching it."""
        if not self.has_node(node_id):
            msg = f"No node with id {node_id!r}"
            raise KeyError(msg)
        self.nodes = [node for node in self.nodes if node.id != node_id]
        self.edges = [edge for edge in self.edges if node_id not in (edge.source, edge.target)]

    def connect(self, source: str, target: str, port: str | None = None) -> Edge:
        """Add an edge from ``source`` to ``target``'s ``port``.

        Raises:
            KeyError: If either endpoint is not in the graph.

        """
        for node_id in (source, target):
            if not self.has_node(node_id):
                msg = f"No node with id {node_id!r}"
                raise KeyError(msg)
        edge = Edge(source=source, target=target, port=port)
        self.edges.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> None:
        remaining = [edge for edge in self.edges if edge.id != edge_id]
        if len(remaining) == len(self.edges):
            msg = f"No edge with id {edge_id!r}"
            raise KeyError(msg)
        self.edges = remaining


class Assumption(BaseModel):
    """Named assumption of a flat (formula-based) estimate."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    min: float
    max: float
    distribution: Distribution = Distribution.UNIFORM
    description: str | None = None
    unit: str | None = None
    source: str | None = None
    confidence: Confidence | None = None

    @field_validator("distribution", mode="before")
    @classmethod
    def normalize_distribution(cls, value: Any) -> Any:
        return _coerce_distribution(value)


class Estimate(BaseModel):
    """Flat estimate: assumptions combined by a single arithmetic formula."""

    id: str = Field(default_factory=new_id)
    name: str = "New Estimate"
    question: str = ""
    assumptions: list[Assumption] = Field(default_factory=list)
    formula: str = ""
