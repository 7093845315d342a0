"""Scalar functions applied by operation, function, conditional and clamp nodes.

Domain violations (``sqrt(-1)``, ``log(0)``, overflow) produce NaN or an
infinity instead of raising; the engine drops non-finite samples when it
accumulates them.
"""

import math
from collections.abc import Iterable
from typing import assert_never

from ._enums import Comparison, FunctionKind, Operation
from ._expr import evaluate_expression

DEFAULT_EXPONENT = 2.0


def apply_operation(operation: Operation, a: float, b: float) -> float:
    """Apply a two-operand operator. Division by zero yields 0."""
    match operation:
        case Operation.MULTIPLY:
            return a * b
        case Operation.DIVIDE:
            return a / b if b != 0 else 0.0
        case Operation.ADD:
            return a + b
        case Operation.SUBTRACT:
            return a - b
        case Operation.SUM:
            return a + b
        case Operation.PRODUCT:
            return a * b
        case _:
            assert_never(operation)


def fold_operation(operation: Operation, values: Iterable[float]) -> float:
    """Fold every input of a ``sum`` (seed 0) or ``product`` (seed 1) node."""
    if operation is Operation.SUM:
        return sum(values, 0.0)
    if operation is Operation.PRODUCT:
        return math.prod(values, start=1.0)
    msg = f"Operation {operation} does not fold over its inputs"
    raise ValueError(msg)


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


_UNARY = {
    FunctionKind.SQRT: math.sqrt,
    FunctionKind.SQUARE: lambda x: x * x,
    FunctionKind.EXP: math.exp,
    FunctionKind.LOG: math.log,
    FunctionKind.LOG10: math.log10,
    FunctionKind.LOG2: math.log2,
    FunctionKind.ABS: abs,
    FunctionKind.CEIL: lambda x: float(math.ceil(x)),
    FunctionKind.FLOOR: lambda x: float(math.floor(x)),
    FunctionKind.ROUND: _round_half_up,
    FunctionKind.SIN: math.sin,
    FunctionKind.COS: math.cos,
    FunctionKind.TAN: math.tan,
}


def _domain_error_value(function: FunctionKind, x: float) -> float:
    # Mirror IEEE results where math raises instead
    if function in (FunctionKind.LOG, FunctionKind.LOG10, FunctionKind.LOG2) and x == 0:
        return -math.inf
    if function is FunctionKind.EXP and x > 0:
        return math.inf
    return math.nan


def apply_function(
    function: FunctionKind,
    x: float,
    y: float | None = None,
    parameter: float | str | None = None,
) -> float:
    """Apply a function node's function.

    Args:
        function: The function to apply.
        x: The primary input.
        y: The secondary input of ``min``/``max``. When unwired it equals ``x``.
        parameter: Exponent of ``pow`` (default 2) or the expression in ``x`` of
            ``custom``. A ``custom`` function without a string expression is the
            identity.

    Returns:
        The function value, NaN or an infinity on domain errors.

    """
    match function:
        case FunctionKind.MIN:
            return min(x, x if y is None else y)
        case FunctionKind.MAX:
            return max(x, x if y is None else y)
        case FunctionKind.POW:
            exponent = float(parameter) if isinstance(parameter, int | float) else DEFAULT_EXPONENT
            try:
                return math.pow(x, exponent)
            except OverflowError:
                return math.inf
            except ValueError:
                return math.nan
        case FunctionKind.CUSTOM:
            if isinstance(parameter, str):
                return evaluate_expression(parameter, {"x": x})
            return x
        case _:
            try:
                return _UNARY[function](x)
            except (ValueError, OverflowError):
                return _domain_error_value(function, x)


def compare(comparison: Comparison, a: float, b: float) -> bool:
    """Apply a conditional node's comparison. Equality is exact."""
    match comparison:
        case Comparison.GT:
            return a > b
        case Comparison.GTE:
            return a >= b
        case Comparison.LT:
            return a < b
        case Comparison.LTE:
            return a <= b
        case Comparison.EQ:
            return a == b
        case Comparison.NEQ:
            return a != b
        case _:
            assert_never(comparison)


def clamp(value: float, low: float | None = None, high: float | None = None) -> float:
    """Clip ``value`` into the bounds that are defined."""
    if low is not None:
        value = max(value, low)
    if high is not None:
        value = min(value, high)
    return value
