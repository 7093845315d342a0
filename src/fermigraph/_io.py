"""Reading graphs and flat estimates from files, and writing results to TOML.

The core defines no persistence format of its own; these helpers accept the
JSON an editor produces (``targetHandle`` edges included) and an equivalent
TOML layout, both validated through the pydantic models.
"""

from __future__ import annotations

import json
import logging
import tomllib
from typing import TYPE_CHECKING, Any, TypeVar

import tomli_w
from pydantic import BaseModel, ValidationError

from ._models import Estimate, Graph

M = TypeVar("M", bound=BaseModel)

if TYPE_CHECKING:
    from pathlib import Path

    from ._eval_engine import GraphSimulationResult
    from ._stats import SimulationResult

logger = logging.getLogger(__name__)


class GraphLoadError(Exception):
    """A graph or estimate file could not be read or validated."""


def _read_document(path: Path) -> dict[str, Any]:
    """Read a JSON or TOML document, chosen by file extension."""
    try:
        if path.suffix.lower() == ".toml":
            with path.open("rb") as f:
                return tomllib.load(f)
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        msg = f"Cannot read {path}: {e}"
        raise GraphLoadError(msg) from e
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        msg = f"Invalid {path.suffix.lstrip('.').upper() or 'JSON'} in {path}: {e}"
        raise GraphLoadError(msg) from e

    if not isinstance(data, dict):
        msg = f"Expected an object at the top level of {path}"
        raise GraphLoadError(msg)
    return data


def _validate(model: type[M], data: dict[str, Any], path: Path) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid {model.__name__.lower()} in {path}:\n{e}"
        raise GraphLoadError(msg) from e


def load_graph(path: Path) -> Graph:
    """Load an estimate graph from a JSON or TOML file.

    Raises:
        GraphLoadError: If the file cannot be read or does not describe a graph.

    """
    graph = _validate(Graph, _read_document(path), path)
    logger.debug("Loaded graph %r with %d nodes and %d edges", graph.name, len(graph.nodes), len(graph.edges))
    return graph


def load_estimate(path: Path) -> Estimate:
    """Load a flat estimate (assumptions and a formula) from a JSON or TOML file.

    Raises:
        GraphLoadError: If the file cannot be read or does not describe an estimate.

    """
    return _validate(Estimate, _read_document(path), path)


def summary_to_dict(result: SimulationResult, *, include_samples: bool = False) -> dict[str, Any]:
    """Convert a simulation result to TOML-compatible data."""
    data: dict[str, Any] = {
        "count": len(result.samples),
        "mean": result.mean,
        "std_dev": result.std_dev,
        "percentiles": result.percentiles.as_dict(),
    }
    if include_samples:
        data["samples"] = list(result.samples)
    return data


def results_to_dict(
    result: GraphSimulationResult,
    graph: Graph | None = None,
    *,
    include_samples: bool = False,
) -> dict[str, Any]:
    """Convert a graph simulation result to TOML-compatible data.

    Node results are keyed by node id; with ``graph`` each entry also carries the
    node's kind and display name.
    """
    names = {node.id: (node.kind, node.display_name) for node in graph.nodes} if graph is not None else {}

    nodes: dict[str, Any] = {}
    for node_id, node_result in result.node_results.items():
        entry = summary_to_dict(node_result, include_samples=include_samples)
        if node_id in names:
            kind, name = names[node_id]
            entry = {"kind": kind, "name": name, **entry}
        nodes[node_id] = entry

    data: dict[str, Any] = {
        "iterations": result.iterations,
        "result": summary_to_dict(result.final_result, include_samples=include_samples),
        "nodes": nodes,
    }
    if result.errors:
        data["errors"] = list(result.errors)
    if result.warnings:
        data["warnings"] = list(result.warnings)
    return data


def export_results_to_toml(
    result: GraphSimulationResult,
    output_path: Path,
    graph: Graph | None = None,
    *,
    include_samples: bool = False,
) -> None:
    """Write a graph simulation result to a TOML file, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        tomli_w.dump(results_to_dict(result, graph, include_samples=include_samples), f)
    logger.debug("Wrote results to %s", output_path)
