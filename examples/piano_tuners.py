"""Piano Tuners Example for fermigraph.

This example builds the classic "How many piano tuners are there in Chicago?"
estimate as a graph and simulates it:
- Lognormal assumptions for quantities spanning orders of magnitude
- Port-tagged divide operations
- A clamp node keeping the answer non-negative
- Per-node summaries and a TOML export

Run it with:
    python examples/piano_tuners.py
"""

from pathlib import Path

import fermigraph as fg

# -----------------------------------------------------------------------------
# Assumptions
# -----------------------------------------------------------------------------

graph = fg.Graph(name="Piano tuners", question="How many piano tuners work in Chicago?")

population = graph.add_node(
    fg.AssumptionNode(name="population", min=2.5e6, max=3e6, unit="people", confidence="high"),
)
people_per_household = graph.add_node(
    fg.AssumptionNode(name="people_per_household", min=2, max=3, distribution="normal"),
)
piano_share = graph.add_node(
    fg.AssumptionNode(name="piano_share", min=0.02, max=0.2, distribution="lognormal", confidence="low"),
)
tunings_per_year = graph.add_node(
    fg.AssumptionNode(name="tunings_per_year", min=0.5, max=2, unit="1/yr"),
)
tuner_capacity = graph.add_node(
    fg.AssumptionNode(name="tuner_capacity", min=500, max=1500, distribution="lognormal", unit="tunings/yr"),
)

# -----------------------------------------------------------------------------
# Transforms
# -----------------------------------------------------------------------------

households = graph.add_node(fg.OperationNode(label="households", operation="divide"))
graph.connect(population, households, "a")
graph.connect(people_per_household, households, "b")

tunings = graph.add_node(fg.OperationNode(label="tunings per year", operation="product"))
graph.connect(households, tunings)
graph.connect(piano_share, tunings)
graph.connect(tunings_per_year, tunings)

tuners = graph.add_node(fg.OperationNode(label="tuners", operation="divide"))
graph.connect(tunings, tuners, "a")
graph.connect(tuner_capacity, tuners, "b")

rounded = graph.add_node(fg.FunctionNode(label="whole tuners", function="ceil"))
graph.connect(tuners, rounded)

non_negative = graph.add_node(fg.ClampNode(label="at least zero", min=0))
graph.connect(rounded, non_negative)

answer = graph.add_node(fg.ResultNode(label="Piano tuners"))
graph.connect(non_negative, answer)


if __name__ == "__main__":
    result = fg.run_graph_simulation(graph, 10_000, seed=2024)
    if not result.success:
        raise SystemExit("\n".join(result.errors) or "Simulation produced no valid results")

    for node in graph.nodes:
        node_result = result.node_results.get(node.id)
        if node_result is not None:
            print(f"{node.display_name:>24}: {fg.format_number(node_result.percentiles.p50)}")

    p = result.final_result.percentiles
    print(f"\nPiano tuners: {fg.format_number(p.p5)} .. {fg.format_number(p.p95)} (median {fg.format_number(p.p50)})")

    output = Path(__file__).with_name("piano_tuners_results.toml")
    fg.export_results_to_toml(result, output, graph)
    print(f"Results written to {output}")
