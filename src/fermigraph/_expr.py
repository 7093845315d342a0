"""Restricted arithmetic expressions.

Grammar (lowest to highest precedence)::

    expression     := additive END
    additive       := multiplicative (("+" | "-") multiplicative)*
    multiplicative := unary (("*" | "/") unary)*
    unary          := ("+" | "-") unary | power
    power          := primary (("^" | "**") unary)?
    primary        := NUMBER | FUNCTION "(" additive ")" | NAME | "(" additive ")"

Names resolve to bound variables first, then to the constants ``pi`` and ``e``.
Functions and constants are case-insensitive; variables are not. Nothing outside
this grammar is ever executed.
"""

import logging
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)


class ExpressionError(ValueError):
    """An expression could not be parsed or evaluated."""

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position


FUNCTIONS: dict[str, Callable[[float], float]] = {
    "sqrt": math.sqrt,
    "log": math.log,
    "exp": math.exp,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "abs": abs,
}

MAX_NESTING = 100
"""Deepest nesting of parentheses, calls and unary signs the parser accepts."""

CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}


# =============================================================================
# Syntax tree
# =============================================================================


class Expr:
    pass


@dataclass(slots=True, frozen=True)
class Number(Expr):
    value: float


@dataclass(slots=True, frozen=True)
class Name(Expr):
    name: str


@dataclass(slots=True, frozen=True)
class Unary(Expr):
    op: str
    operand: Expr


@dataclass(slots=True, frozen=True)
class Binary(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(slots=True, frozen=True)
class Call(Expr):
    func: str
    arg: Expr


# =============================================================================
# Tokenizer
# =============================================================================


@dataclass(slots=True, frozen=True)
class Token:
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>\*\*|[-+*/^()])
    """,
    re.VERBOSE,
)


def tokenize(text: str) -> list[Token]:
    """Split an expression into tokens, ending with an ``end`` token.

    Raises:
        ExpressionError: On a character outside the grammar.

    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            msg = f"Unexpected character {text[pos]!r}"
            raise ExpressionError(msg, pos)
        kind = match.lastgroup
        if kind != "space":
            tokens.append(Token(kind=kind, text=match.group(), position=pos))  # type: ignore[arg-type]
        pos = match.end()
    tokens.append(Token(kind="end", text="", position=len(text)))
    return tokens


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._index = 0
        self._depth = 0

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.kind != "end":
            self._index += 1
        return token

    def _accept(self, *ops: str) -> str | None:
        token = self._peek()
        if token.kind == "op" and token.text in ops:
            self._advance()
            return token.text
        return None

    def _expect(self, op: str) -> None:
        if self._accept(op) is None:
            token = self._peek()
            msg = f"Expected {op!r}, found {token.text or 'end of input'!r}"
            raise ExpressionError(msg, token.position)

    def parse(self) -> Expr:
        expr = self._additive()
        token = self._peek()
        if token.kind != "end":
            msg = f"Unexpected {token.text!r}"
            raise ExpressionError(msg, token.position)
        return expr

    def _additive(self) -> Expr:
        expr = self._multiplicative()
        while (op := self._accept("+", "-")) is not None:
            expr = Binary(op, expr, self._multiplicative())
        return expr

    def _multiplicative(self) -> Expr:
        expr = self._unary()
        while (op := self._accept("*", "/")) is not None:
            expr = Binary(op, expr, self._unary())
        return expr

    def _unary(self) -> Expr:
        # every nesting level passes through here
        self._depth += 1
        if self._depth > MAX_NESTING:
            msg = f"Expression nested deeper than {MAX_NESTING} levels"
            raise ExpressionError(msg, self._peek().position)
        try:
            if (op := self._accept("+", "-")) is not None:
                return Unary(op, self._unary())
            return self._power()
        finally:
            self._depth -= 1

    def _power(self) -> Expr:
        base = self._primary()
        if self._accept("^", "**") is not None:
            # right-associative: 2^3^2 == 2^(3^2)
            return Binary("^", base, self._unary())
        return base

    def _primary(self) -> Expr:
        token = self._advance()
        match token.kind:
            case "number":
                return Number(float(token.text))
            case "name":
                if self._accept("(") is not None:
                    func = token.text.lower()
                    if func not in FUNCTIONS:
                        msg = f"Unknown function {token.text!r}"
                        raise ExpressionError(msg, token.position)
                    arg = self._additive()
                    self._expect(")")
                    return Call(func, arg)
                return Name(token.text)
            case "op" if token.text == "(":
                expr = self._additive()
                self._expect(")")
                return expr
            case _:
                msg = f"Unexpected {token.text or 'end of input'!r}"
                raise ExpressionError(msg, token.position)


@lru_cache(maxsize=256)
def parse_expression(text: str) -> Expr:
    """Parse an expression into a syntax tree.

    Raises:
        ExpressionError: If the text is not a valid expression.

    """
    return _Parser(tokenize(text)).parse()


# =============================================================================
# Evaluation
# =============================================================================


def _apply_binary(op: str, left: float, right: float) -> float:
    match op:
        case "+":
            return left + right
        case "-":
            return left - right
        case "*":
            return left * right
        case "/":
            # division by zero yields 0, as in operation nodes
            return left / right if right != 0 else 0.0
        case "^":
            return math.pow(left, right)
        case _:
            msg = f"Unknown operator {op!r}"
            raise ExpressionError(msg)


def _resolve_name(name: str, variables: Mapping[str, float]) -> float:
    if name in variables:
        return float(variables[name])
    constant = CONSTANTS.get(name.lower())
    if constant is None:
        msg = f"Unknown name {name!r}"
        raise ExpressionError(msg)
    return constant


def evaluate_tree(expr: Expr, variables: Mapping[str, float]) -> float:
    """Evaluate a syntax tree against variable bindings.

    Domain errors of the math functions (``sqrt(-1)``, ``log(0)``, overflow)
    propagate as ``ValueError`` or ``OverflowError``.
    """
    match expr:
        case Number(value):
            return value
        case Name(name):
            return _resolve_name(name, variables)
        case Unary("-", operand):
            return -evaluate_tree(operand, variables)
        case Unary(_, operand):
            return evaluate_tree(operand, variables)
        case Binary(op, left, right):
            return _apply_binary(op, evaluate_tree(left, variables), evaluate_tree(right, variables))
        case Call(func, arg):
            return float(FUNCTIONS[func](evaluate_tree(arg, variables)))
        case _:
            msg = f"Unknown expression node: {type(expr)}"
            raise TypeError(msg)


def evaluate_expression(text: str, variables: Mapping[str, float] | None = None) -> float:
    """Evaluate an expression, returning NaN on any failure.

    Parse errors, unknown names, math domain errors and non-finite results all
    yield ``math.nan``; callers filter NaN instead of catching exceptions. So do
    operator chains too long for the recursive evaluator.
    """
    try:
        value = evaluate_tree(parse_expression(text), variables or {})
    except (ValueError, OverflowError, RecursionError) as e:
        logger.debug("Expression %r failed: %s", text, e)
        return math.nan
    if not math.isfinite(value):
        return math.nan
    return value
