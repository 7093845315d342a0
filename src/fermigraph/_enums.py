"""Closed vocabularies used by graph nodes, with a docstring per member."""

from enum import StrEnum
from typing import Self


class StrEnumWithDoc(StrEnum):
    """String enum whose members carry their own docstring.

    Members are declared as ``NAME = "value", "doc"``.
    """

    def __new__(cls, value: str, doc: str = "") -> Self:
        """Create a new enum member with a docstring."""
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.__doc__ = doc
        return obj


class NodeKind(StrEnumWithDoc):
    """The kind of node in an estimate graph."""

    ASSUMPTION = "assumption", "Uncertain input sampled from a distribution"
    CONSTANT = "constant", "Fixed numeric input"
    OPERATION = "operation", "Arithmetic over two operands, or over all inputs for sum/product"
    FUNCTION = "function", "Unary transform, min/max, or custom expression"
    CONDITIONAL = "conditional", "Selects the then/else input by comparing a and b"
    CLAMP = "clamp", "Clips its input into optional bounds"
    RESULT = "result", "Sink receiving the estimate output"


class Distribution(StrEnumWithDoc):
    """Distribution an assumption is sampled from, given its bounds."""

    UNIFORM = "uniform", "Flat between min and max"
    NORMAL = "normal", "Bell curve centred in the window, truncated to it"
    LOGNORMAL = "lognormal", "Normal in log-space, for quantities spanning orders of magnitude"


class Operation(StrEnumWithDoc):
    """Arithmetic operator of an operation node."""

    MULTIPLY = "multiply", "a * b"
    DIVIDE = "divide", "a / b, 0 when b is 0"
    ADD = "add", "a + b"
    SUBTRACT = "subtract", "a - b"
    SUM = "sum", "Sum of every input"
    PRODUCT = "product", "Product of every input"

    @property
    def is_variadic(self) -> bool:
        """Whether the operator folds over all inputs instead of two ports."""
        return self in (Operation.SUM, Operation.PRODUCT)


class FunctionKind(StrEnumWithDoc):
    """Function applied by a function node."""

    SQRT = "sqrt", "Square root"
    SQUARE = "square", "x * x"
    POW = "pow", "x raised to the node parameter (default 2)"
    EXP = "exp", "e ** x"
    LOG = "log", "Natural logarithm"
    LOG10 = "log10", "Base-10 logarithm"
    LOG2 = "log2", "Base-2 logarithm"
    ABS = "abs", "Absolute value"
    CEIL = "ceil", "Round towards +inf"
    FLOOR = "floor", "Round towards -inf"
    ROUND = "round", "Round half up"
    SIN = "sin", "Sine"
    COS = "cos", "Cosine"
    TAN = "tan", "Tangent"
    MIN = "min", "Smaller of the two inputs"
    MAX = "max", "Larger of the two inputs"
    CUSTOM = "custom", "Expression in x given by the node parameter"


class Comparison(StrEnumWithDoc):
    """Comparison a conditional node applies to its a and b inputs."""

    GT = "gt", "a > b"
    GTE = "gte", "a >= b"
    LT = "lt", "a < b"
    LTE = "lte", "a <= b"
    EQ = "eq", "a == b, exact"
    NEQ = "neq", "a != b, exact"


class Confidence(StrEnumWithDoc):
    """How much an assumption's author trusts its bounds."""

    LOW = "low", "Rough guess"
    MEDIUM = "medium", "Informed estimate"
    HIGH = "high", "Backed by a source"
