"""Arithmetic / boolean expressions over named parameters.

Expressions appear in rule conditions (``A(x) : x > 3 -> ...``) and in the
parameter lists of successor templates (``A(x+1, y/2)``). They are parsed once
into an immutable tree and evaluated against a plain name -> value mapping.

Booleans are encoded as floats: comparisons and logic operators yield
``1.0`` or ``0.0`` and any non-zero value counts as true.

Precedence, lowest first::

    ||
    &&
    !                       (prefix)
    < <= > >= == !=         (non-associative)
    + -                     (left)
    * /                     (left)
    -                       (prefix)
    ^                       (right, binds tighter than prefix minus)
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

from .errors import DivisionByZero, EvaluationError, ParseError, UndefinedVariable
from .symbols import format_number

Environment = Mapping[str, float]

# Shared with the rule grammar in grammar.py, which appends its own rules.
EXPRESSION_GRAMMAR = r"""
?expr: or_expr

?or_expr: and_expr
    | or_expr "||" and_expr     -> or_

?and_expr: not_expr
    | and_expr "&&" not_expr    -> and_

?not_expr: comparison
    | "!" not_expr              -> not_

?comparison: sum
    | sum "<" sum               -> lt
    | sum "<=" sum              -> le
    | sum ">" sum               -> gt
    | sum ">=" sum              -> ge
    | sum "==" sum              -> eq
    | sum "!=" sum              -> ne

?sum: product
    | sum "+" product           -> add
    | sum "-" product           -> sub

?product: unary
    | product "*" unary         -> mul
    | product "/" unary         -> div

?unary: power
    | "-" unary                 -> neg

?power: atom
    | atom "^" unary            -> pow

?atom: NUMBER                   -> number
    | "true"                    -> true
    | "false"                   -> false
    | NAME                      -> variable
    | "(" expr ")"

NAME: /[a-z_][A-Za-z0-9_]*/

%import common.NUMBER
%import common.WS_INLINE
%ignore WS_INLINE
"""


def _truth(x: float) -> bool:
    return x != 0.0


def _as_float(b: bool) -> float:
    return 1.0 if b else 0.0


# -------------------------
# Expression tree
# -------------------------


class Expression:
    """Base class of expression nodes."""

    def evaluate(self, env: Environment) -> float:
        raise NotImplementedError

    def variables(self) -> Iterator[str]:
        """Yield every variable name referenced by this expression."""
        return iter(())

    def is_true(self, env: Environment) -> bool:
        return _truth(self.evaluate(env))


@dataclass(frozen=True)
class Number(Expression):
    value: float

    def evaluate(self, env: Environment) -> float:
        return self.value

    def __str__(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class Variable(Expression):
    name: str

    def evaluate(self, env: Environment) -> float:
        try:
            return float(env[self.name])
        except KeyError:
            raise UndefinedVariable(self.name) from None

    def variables(self) -> Iterator[str]:
        yield self.name

    def __str__(self) -> str:
        return self.name


def _negate(a: float) -> float:
    return -a


def _not(a: float) -> float:
    return _as_float(not _truth(a))


_UNARY: dict[str, Callable[[float], float]] = {
    "-": _negate,
    "!": _not,
}


@dataclass(frozen=True)
class UnaryOp(Expression):
    op: str
    operand: Expression

    def evaluate(self, env: Environment) -> float:
        return _UNARY[self.op](self.operand.evaluate(env))

    def variables(self) -> Iterator[str]:
        return self.operand.variables()

    def __str__(self) -> str:
        return f"({self.op}{self.operand})"


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        raise DivisionByZero(f"division by zero ({format_number(a)} / 0)")
    return a / b


def _power(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except (ValueError, OverflowError) as e:
        raise EvaluationError(
            f"cannot raise {format_number(a)} to {format_number(b)}: {e}"
        ) from e


def _compare(fn: Callable[[float, float], bool]) -> Callable[[float, float], float]:
    return lambda a, b: _as_float(fn(a, b))


_BINARY: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _divide,
    "^": _power,
    "<": _compare(operator.lt),
    "<=": _compare(operator.le),
    ">": _compare(operator.gt),
    ">=": _compare(operator.ge),
    "==": _compare(operator.eq),
    "!=": _compare(operator.ne),
}


@dataclass(frozen=True)
class BinaryOp(Expression):
    op: str
    left: Expression
    right: Expression

    def evaluate(self, env: Environment) -> float:
        # && and || short-circuit, so "x != 0 && 1 / x > 2" is safe.
        if self.op == "&&":
            return _as_float(self.left.is_true(env) and self.right.is_true(env))
        if self.op == "||":
            return _as_float(self.left.is_true(env) or self.right.is_true(env))
        return _BINARY[self.op](self.left.evaluate(env), self.right.evaluate(env))

    def variables(self) -> Iterator[str]:
        yield from self.left.variables()
        yield from self.right.variables()

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class Boolean(Number):
    """``true`` / ``false`` literals; kept apart from Number so a rule's
    ``: true`` section reads as a condition, not a weight."""

    def __str__(self) -> str:
        return "true" if self.value else "false"


TRUE = Boolean(1.0)
FALSE = Boolean(0.0)


# -------------------------
# Parse tree -> Expression
# -------------------------


def _binary(op: str) -> Callable[[ExpressionBuilder, list[Expression]], Expression]:
    def build(self: ExpressionBuilder, items: list[Expression]) -> Expression:
        left, right = items
        return BinaryOp(op, left, right)

    return build


class ExpressionBuilder(Transformer):
    """Turns a lark parse tree of EXPRESSION_GRAMMAR into Expression nodes."""

    or_ = _binary("||")
    and_ = _binary("&&")
    lt = _binary("<")
    le = _binary("<=")
    gt = _binary(">")
    ge = _binary(">=")
    eq = _binary("==")
    ne = _binary("!=")
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    pow = _binary("^")

    def not_(self, items: list[Expression]) -> Expression:
        return UnaryOp("!", items[0])

    def neg(self, items: list[Expression]) -> Expression:
        (operand,) = items
        # Fold literal negation so "-1" stays a plain Number.
        if isinstance(operand, Number):
            return Number(-operand.value)
        return UnaryOp("-", operand)

    def number(self, items: list[Token]) -> Expression:
        return Number(float(items[0]))

    def variable(self, items: list[Token]) -> Expression:
        return Variable(str(items[0]))

    def true(self, items: list[Token]) -> Expression:
        return TRUE

    def false(self, items: list[Token]) -> Expression:
        return FALSE


_expression_parser = Lark(EXPRESSION_GRAMMAR, start="expr", parser="lalr")


def parse_expression(text: str) -> Expression:
    """Parse an expression such as ``x * 2 + 1`` or ``x > 0 && y <= 3``."""
    try:
        tree = _expression_parser.parse(text)
    except LarkError as e:
        raise ParseError(f"invalid expression {text!r}: {e}") from e
    return ExpressionBuilder().transform(tree)


def evaluate(text: str, env: Environment | None = None) -> float:
    """Parse and evaluate in one go; mostly useful interactively."""
    return parse_expression(text).evaluate(env or {})
