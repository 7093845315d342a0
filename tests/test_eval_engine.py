"""Tests for Monte Carlo evaluation of estimate graphs."""

import math
import random

import pytest

from fermigraph import (
    AssumptionNode,
    ClampNode,
    Comparison,
    ConditionalNode,
    ConstantNode,
    Distribution,
    Edge,
    FunctionKind,
    FunctionNode,
    Graph,
    Node,
    Operation,
    OperationNode,
    ResultNode,
    run_graph_simulation,
    validate_graph,
)


def make_graph(nodes: list[Node], edges: list[tuple[str, str, str | None]]) -> Graph:
    """Build a graph from nodes and (source, target, port) triples."""
    return Graph(
        nodes=nodes,
        edges=[Edge(id=f"e{i}", source=s, target=t, port=p) for i, (s, t, p) in enumerate(edges)],
    )


def binary(operation: Operation, a: float, b: float) -> Graph:
    return make_graph(
        [
            ConstantNode(id="a", value=a),
            ConstantNode(id="b", value=b),
            OperationNode(id="op", operation=operation),
            ResultNode(id="out"),
        ],
        [("a", "op", "a"), ("b", "op", "b"), ("op", "out", None)],
    )


class TestBasicEvaluation:
    def test_point_assumption_times_constant(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=10, max=10),
                ConstantNode(id="k", value=2),
                OperationNode(id="mul", operation=Operation.MULTIPLY),
                ResultNode(id="out"),
            ],
            [("x", "mul", "a"), ("k", "mul", "b"), ("mul", "out", None)],
        )
        result = run_graph_simulation(graph, 1_000, seed=0)

        assert result.success
        assert result.iterations == 1_000
        assert result.final_result.samples == (20.0,) * 1_000
        assert result.final_result.mean == 20.0
        assert result.final_result.std_dev == 0.0
        assert set(result.final_result.percentiles.as_dict().values()) == {20.0}
        assert set(result.node_results) == {"x", "k", "mul", "out"}
        assert result.get_node_result("mul").node_id == "mul"
        assert result.get_node_result("x").mean == 10.0

    @pytest.mark.parametrize(
        ("operation", "expected"),
        [
            (Operation.MULTIPLY, 12.0),
            (Operation.DIVIDE, 3.0),
            (Operation.ADD, 8.0),
            (Operation.SUBTRACT, 4.0),
        ],
    )
    def test_binary_operations(self, operation: Operation, expected: float) -> None:
        result = run_graph_simulation(binary(operation, 6.0, 2.0), 10, seed=0)
        assert result.final_result.samples == (expected,) * 10

    def test_divide_by_zero_is_zero(self) -> None:
        result = run_graph_simulation(binary(Operation.DIVIDE, 6.0, 0.0), 10, seed=0)
        assert result.final_result.samples == (0.0,) * 10

    @pytest.mark.parametrize(("operation", "expected"), [(Operation.SUM, 9.0), (Operation.PRODUCT, 24.0)])
    def test_variadic_operations(self, operation: Operation, expected: float) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c2", value=2),
                ConstantNode(id="c3", value=3),
                ConstantNode(id="c4", value=4),
                OperationNode(id="op", operation=operation),
                ResultNode(id="out"),
            ],
            [("c2", "op", None), ("c3", "op", "whatever"), ("c4", "op", "b"), ("op", "out", None)],
        )
        assert run_graph_simulation(graph, 5, seed=0).final_result.samples == (expected,) * 5

    def test_unwired_inputs_are_zero(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="a", value=5),
                OperationNode(id="op", operation=Operation.SUBTRACT),
                ResultNode(id="out"),
            ],
            [("a", "op", "b"), ("op", "out", None)],
        )
        assert run_graph_simulation(graph, 3, seed=0).final_result.samples == (-5.0,) * 3

    def test_unwired_result_is_zero(self) -> None:
        graph = make_graph([ResultNode(id="out")], [])
        result = run_graph_simulation(graph, 4, seed=0)
        assert result.final_result.samples == (0.0,) * 4


class TestPortResolution:
    def test_tagged_ports_ignore_edge_order(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="ten", value=10),
                ConstantNode(id="three", value=3),
                OperationNode(id="sub", operation=Operation.SUBTRACT),
                ResultNode(id="out"),
            ],
            [("three", "sub", "b"), ("ten", "sub", "a"), ("sub", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (7.0,)

    def test_untagged_edges_follow_insertion_order(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="ten", value=10),
                ConstantNode(id="three", value=3),
                OperationNode(id="sub", operation=Operation.SUBTRACT),
                ResultNode(id="out"),
            ],
            [("three", "sub", None), ("ten", "sub", None), ("sub", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (-7.0,)

    def test_function_input_port(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="a", value=2),
                ConstantNode(id="b", value=9),
                FunctionNode(id="fn", function=FunctionKind.MAX),
                ResultNode(id="out"),
            ],
            [("b", "fn", "y"), ("a", "fn", "input"), ("fn", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (9.0,)

    def test_min_without_second_input(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="a", value=4),
                FunctionNode(id="fn", function=FunctionKind.MIN),
                ResultNode(id="out"),
            ],
            [("a", "fn", None), ("fn", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (4.0,)


class TestOneDrawPerIteration:
    def test_assumption_minus_itself_is_zero(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=0, max=100, distribution=Distribution.NORMAL),
                OperationNode(id="sub", operation=Operation.SUBTRACT),
                ResultNode(id="out"),
            ],
            [("x", "sub", "a"), ("x", "sub", "b"), ("sub", "out", None)],
        )
        result = run_graph_simulation(graph, 1_000, seed=11)
        assert result.final_result.samples == (0.0,) * 1_000
        assert result.get_node_result("x").std_dev > 0

    def test_shared_subexpression(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=1, max=2),
                FunctionNode(id="sq", function=FunctionKind.SQUARE),
                OperationNode(id="div", operation=Operation.DIVIDE),
                ResultNode(id="out"),
            ],
            [("x", "sq", None), ("sq", "div", "a"), ("x", "div", "b"), ("div", "out", None)],
        )
        result = run_graph_simulation(graph, 200, seed=5)
        x_samples = result.get_node_result("x").samples
        assert result.final_result.samples == pytest.approx(x_samples)


class TestFunctionAndControlNodes:
    @pytest.mark.parametrize(("expression", "value", "expected"), [("x * 2 + 1", 5.0, 11.0), ("sqrt(x)", 9.0, 3.0)])
    def test_custom_function(self, expression: str, value: float, expected: float) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=value),
                FunctionNode(id="fn", function=FunctionKind.CUSTOM, parameter=expression),
                ResultNode(id="out"),
            ],
            [("c", "fn", None), ("fn", "out", None)],
        )
        assert run_graph_simulation(graph, 3, seed=0).final_result.samples == (expected,) * 3

    @pytest.mark.parametrize(("a", "expected"), [(5.0, 100.0), (2.0, 200.0)])
    def test_conditional_selects_branch(self, a: float, expected: float) -> None:
        graph = make_graph(
            [
                ConstantNode(id="a", value=a),
                ConstantNode(id="b", value=3),
                ConstantNode(id="then", value=100),
                ConstantNode(id="else", value=200),
                ConditionalNode(id="if", comparison=Comparison.GT),
                ResultNode(id="out"),
            ],
            [
                ("a", "if", "a"),
                ("b", "if", "b"),
                ("then", "if", "then"),
                ("else", "if", "else"),
                ("if", "out", None),
            ],
        )
        assert run_graph_simulation(graph, 2, seed=0).final_result.samples == (expected, expected)

    def test_pow_parameter(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=2),
                FunctionNode(id="fn", function=FunctionKind.POW, parameter=3),
                ResultNode(id="out"),
            ],
            [("c", "fn", None), ("fn", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (8.0,)

    def test_conditional(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=0, max=10),
                ConstantNode(id="five", value=5),
                ConstantNode(id="one", value=1),
                ConstantNode(id="zero", value=0),
                ConditionalNode(id="if", comparison=Comparison.GT),
                ResultNode(id="out"),
            ],
            [
                ("x", "if", "a"),
                ("five", "if", "b"),
                ("one", "if", "then"),
                ("zero", "if", "else"),
                ("if", "out", None),
            ],
        )
        result = run_graph_simulation(graph, 2_000, seed=2)
        assert set(result.final_result.samples) == {0.0, 1.0}
        assert result.final_result.mean == pytest.approx(0.5, abs=0.05)

    def test_conditional_ignores_untagged_edges(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=3),
                ConditionalNode(id="if", comparison=Comparison.EQ),
                ResultNode(id="out"),
            ],
            [("c", "if", None), ("c", "if", "else"), ("if", "out", None)],
        )
        # a == b == 0, so the unwired then-port wins
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (0.0,)

    @pytest.mark.parametrize(("value", "expected"), [(-5.0, 0.0), (15.0, 10.0), (5.0, 5.0)])
    def test_clamp(self, value: float, expected: float) -> None:
        graph = make_graph(
            [ConstantNode(id="c", value=value), ClampNode(id="clamp", min=0, max=10), ResultNode(id="out")],
            [("c", "clamp", None), ("clamp", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (expected,)

    def test_clamp_with_one_bound(self) -> None:
        graph = make_graph(
            [ConstantNode(id="c", value=-5), ClampNode(id="clamp", min=0), ResultNode(id="out")],
            [("c", "clamp", None), ("clamp", "out", None)],
        )
        assert run_graph_simulation(graph, 1, seed=0).final_result.samples == (0.0,)


class TestNonFiniteFiltering:
    def test_bad_values_dropped_per_node(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=-1, max=1),
                FunctionNode(id="root", function=FunctionKind.SQRT),
                ResultNode(id="out"),
            ],
            [("x", "root", None), ("root", "out", None)],
        )
        result = run_graph_simulation(graph, 1_000, seed=4)

        assert len(result.get_node_result("x").samples) == 1_000
        root_samples = result.get_node_result("root").samples
        assert 0 < len(root_samples) < 1_000
        assert all(math.isfinite(v) and v >= 0 for v in root_samples)
        assert len(result.final_result.samples) == len(root_samples)

    def test_node_without_finite_samples_is_omitted(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=-4),
                FunctionNode(id="root", function=FunctionKind.SQRT),
                ResultNode(id="out"),
            ],
            [("c", "root", None), ("root", "out", None)],
        )
        result = run_graph_simulation(graph, 100, seed=0)

        assert not result.success
        assert result.errors == []
        assert result.final_result.is_empty
        assert result.final_result.mean == 0.0
        assert "root" not in result.node_results
        assert "c" in result.node_results

    def test_deeply_nested_custom_expression_is_dropped(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=1),
                FunctionNode(id="fn", function=FunctionKind.CUSTOM, parameter="-" * 2000 + "x"),
                ResultNode(id="out"),
            ],
            [("c", "fn", None), ("fn", "out", None)],
        )
        result = run_graph_simulation(graph, 3, seed=0)

        assert result.errors == []
        assert result.final_result.is_empty
        assert "fn" not in result.node_results


class TestIgnoredInputs:
    """Edges a node does not read are not followed."""

    def test_second_result_input_is_not_evaluated(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=3),
                AssumptionNode(id="extra", name="extra", min=0, max=1),
                ResultNode(id="out"),
            ],
            [("c", "out", None), ("extra", "out", None)],
        )
        result = run_graph_simulation(graph, 5, seed=0)

        assert result.final_result.samples == (3.0,) * 5
        assert set(result.node_results) == {"c", "out"}

    def test_ignored_input_does_not_consume_draws(self) -> None:
        x = AssumptionNode(id="x", name="x", min=0, max=1)
        plain = make_graph([x, ResultNode(id="out")], [("x", "out", None)])
        with_extra = make_graph(
            [x, AssumptionNode(id="extra", name="extra", min=0, max=1), ResultNode(id="out")],
            [("x", "out", None), ("extra", "out", None)],
        )

        first = run_graph_simulation(plain, 50, seed=8)
        second = run_graph_simulation(with_extra, 50, seed=8)
        assert first.final_result.samples == second.final_result.samples

    def test_cycle_through_ignored_clamp_input(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=3),
                ClampNode(id="clamp", min=0, max=10),
                FunctionNode(id="loop", function=FunctionKind.ABS),
                ResultNode(id="out"),
            ],
            [("c", "clamp", None), ("loop", "clamp", None), ("clamp", "loop", None), ("clamp", "out", None)],
        )
        result = run_graph_simulation(graph, 5, seed=0)

        assert result.errors == []
        assert result.final_result.samples == (3.0,) * 5
        assert "loop" not in result.node_results

    def test_untagged_conditional_input_is_not_evaluated(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="one", value=1),
                AssumptionNode(id="stray", name="stray", min=0, max=1),
                ConditionalNode(id="if", comparison=Comparison.EQ),
                ResultNode(id="out"),
            ],
            [("stray", "if", None), ("one", "if", "then"), ("if", "out", None)],
        )
        result = run_graph_simulation(graph, 2, seed=0)

        assert result.final_result.samples == (1.0, 1.0)
        assert "stray" not in result.node_results

    def test_constant_ignores_incoming_edges(self) -> None:
        graph = make_graph(
            [
                AssumptionNode(id="x", name="x", min=0, max=1),
                ConstantNode(id="c", value=2),
                ResultNode(id="out"),
            ],
            [("x", "c", None), ("c", "out", None)],
        )
        result = run_graph_simulation(graph, 2, seed=0)

        assert result.final_result.samples == (2.0, 2.0)
        assert "x" not in result.node_results

    def test_cycle_through_ignored_input_validates(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=3),
                ClampNode(id="clamp"),
                FunctionNode(id="loop", function=FunctionKind.ABS),
                ResultNode(id="out"),
            ],
            [("c", "clamp", None), ("loop", "clamp", None), ("clamp", "loop", None), ("clamp", "out", None)],
        )
        validation = validate_graph(graph)
        assert validation.ok
        assert validation.errors == []


class TestValidation:
    def test_valid_graph(self) -> None:
        validation = validate_graph(binary(Operation.ADD, 1, 2))
        assert validation.ok
        assert validation.warnings == []

    def test_no_result_node(self) -> None:
        graph = make_graph([ConstantNode(id="c", value=1)], [])
        result = run_graph_simulation(graph, 10, seed=0)
        assert result.errors == ["Graph has no result node"]
        assert result.final_result.is_empty
        assert result.node_results == {}

    def test_cycle_upstream_of_result_is_rejected(self) -> None:
        graph = make_graph(
            [
                OperationNode(id="a", label="A", operation=Operation.ADD),
                OperationNode(id="b", label="B", operation=Operation.ADD),
                ResultNode(id="out"),
            ],
            [("a", "b", "a"), ("b", "a", "a"), ("b", "out", None)],
        )
        result = run_graph_simulation(graph, 10, seed=0)
        assert not result.success
        assert result.errors == ["Graph contains a cycle: A -> B -> A"]
        assert result.final_result.is_empty
        assert result.node_results == {}

    def test_cycle_elsewhere_is_ignored(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c", value=1),
                OperationNode(id="loop1", operation=Operation.ADD),
                OperationNode(id="loop2", operation=Operation.ADD),
                ResultNode(id="out"),
            ],
            [("loop1", "loop2", None), ("loop2", "loop1", None), ("c", "out", None)],
        )
        result = run_graph_simulation(graph, 5, seed=0)
        assert result.success
        assert result.final_result.samples == (1.0,) * 5
        assert "loop1" not in result.node_results

    def test_dangling_edge_is_a_warning(self) -> None:
        graph = make_graph(
            [ConstantNode(id="c", value=4), OperationNode(id="add", operation=Operation.ADD), ResultNode(id="out")],
            [("c", "add", "a"), ("ghost", "add", "b"), ("add", "out", None)],
        )
        result = run_graph_simulation(graph, 3, seed=0)
        assert result.success
        assert result.warnings == ["Edge 'e1' references unknown node(s): ghost"]
        assert result.final_result.samples == (4.0,) * 3
        assert "ghost" not in result.node_results

    def test_multiple_result_nodes_use_first(self) -> None:
        graph = make_graph(
            [
                ConstantNode(id="c1", value=1),
                ConstantNode(id="c2", value=2),
                ResultNode(id="first", label="First"),
                ResultNode(id="second"),
            ],
            [("c1", "first", None), ("c2", "second", None)],
        )
        result = run_graph_simulation(graph, 2, seed=0)
        assert result.final_result.samples == (1.0, 1.0)
        assert result.warnings == ["Graph has 2 result nodes; using 'First'"]
        assert "second" not in result.node_results

    def test_duplicate_ids(self) -> None:
        graph = make_graph([ConstantNode(id="x", value=1), ResultNode(id="x")], [])
        assert validate_graph(graph).errors == ["Duplicate node id 'x'"]


class TestReproducibility:
    @pytest.fixture
    def graph(self) -> Graph:
        return make_graph(
            [
                AssumptionNode(id="a", name="a", min=1, max=100, distribution=Distribution.LOGNORMAL),
                AssumptionNode(id="b", name="b", min=0, max=1, distribution=Distribution.NORMAL),
                OperationNode(id="mul", operation=Operation.MULTIPLY),
                ResultNode(id="out"),
            ],
            [("a", "mul", "a"), ("b", "mul", "b"), ("mul", "out", None)],
        )

    def test_same_seed_same_samples(self, graph: Graph) -> None:
        first = run_graph_simulation(graph, 500, seed=99)
        second = run_graph_simulation(graph, 500, seed=99)
        assert first.final_result.samples == second.final_result.samples

    def test_explicit_rng(self, graph: Graph) -> None:
        first = run_graph_simulation(graph, 50, rng=random.Random(3))
        second = run_graph_simulation(graph, 50, seed=3)
        assert first.final_result.samples == second.final_result.samples

    def test_samples_in_range(self, graph: Graph) -> None:
        result = run_graph_simulation(graph, 2_000, seed=1)
        assert all(0 <= v <= 100 for v in result.final_result.samples)
        p = result.final_result.percentiles
        assert p.p5 <= p.p25 <= p.p50 <= p.p75 <= p.p95

    def test_zero_iterations(self, graph: Graph) -> None:
        result = run_graph_simulation(graph, 0, seed=1)
        assert result.iterations == 0
        assert result.final_result.is_empty
        assert not result.success
