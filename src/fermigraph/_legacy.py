"""Flat estimates: named assumptions combined by one arithmetic formula.

This is the simpler alternative to graph simulation. Assumption names are
substituted into the formula as parenthesized numbers, longest name first and
on word boundaries, and the result is evaluated with the restricted expression
grammar. Division by zero yields 0, as it does in graphs.
"""

from __future__ import annotations

import logging
import math
import random
import re
from typing import TYPE_CHECKING

from ._expr import evaluate_expression
from ._sampling import sample_assumption
from ._stats import SimulationResult

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ._models import Assumption

logger = logging.getLogger(__name__)


def bind_formula(formula: str, bindings: Mapping[str, float]) -> str:
    """Substitute bound names in ``formula`` with their parenthesized values.

    Longer names are substituted first, so ``rate`` never clobbers ``rate_max``.

    Example:
        >>> bind_formula("a * ab", {"a": 2, "ab": 3})
        '(2.0) * (3.0)'

    """
    expression = formula
    for name in sorted(bindings, key=len, reverse=True):
        pattern = re.compile(rf"\b{re.escape(name)}\b")
        replacement = f"({float(bindings[name])!r})"
        expression = pattern.sub(lambda _, r=replacement: r, expression)
    return expression


def evaluate_formula(formula: str, bindings: Mapping[str, float]) -> float:
    """Evaluate ``formula`` with each bound name replaced by its value.

    Returns:
        The value, or NaN if the formula does not parse, uses an unbound name,
        or evaluates to a non-finite number. Callers must check for NaN.

    """
    return evaluate_expression(bind_formula(formula, bindings))


def run_simulation(
    assumptions: Sequence[Assumption],
    formula: str,
    iterations: int = 10_000,
    *,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> SimulationResult:
    """Simulate a flat estimate.

    Each iteration draws every assumption once, evaluates the formula, and keeps
    the value if it is finite.

    Args:
        assumptions: The named assumptions the formula refers to.
        formula: Arithmetic formula over assumption names.
        iterations: Number of Monte Carlo iterations.
        seed: Seed for a fresh random generator. Ignored when ``rng`` is given.
        rng: Random generator to draw uniform variates from.

    Returns:
        SimulationResult over the finite formula values; empty (all zeros) when
        none was finite.

    """
    if rng is None:
        rng = random.Random(seed)

    samples: list[float] = []
    for _ in range(iterations):
        values = {assumption.name: sample_assumption(assumption, rng) for assumption in assumptions}
        value = evaluate_formula(formula, values)
        if math.isfinite(value):
            samples.append(value)

    logger.debug("Formula %r: %d/%d finite samples", formula, len(samples), iterations)
    return SimulationResult.from_samples(samples)
