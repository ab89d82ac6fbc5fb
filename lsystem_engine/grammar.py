"""Rule and axiom text -> Rule / Grammar values.

Rule syntax (whitespace is insignificant)::

    [L <] P[(a, b, ...)] [> R] [: condition] [: weight] -> successor

Examples::

    A -> FAB
    A < B > C -> D
    A(x) : x > 3 -> FF
    A(x) : 0.5 -> A(x-1)
    A(x) : x > 0 : 0.5 -> A(x+1)
    F(l) -> F(l/2) [+F(l/3)] ~L(0.5)

Successor and axiom symbols are single characters, optionally followed by a
parenthesised argument list. A leading ``~`` marks a Bezier patch placement.
With a single ``:`` section, a bare number is a stochastic weight and anything
else is a condition; ``*`` is the always-true condition.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from lark import Lark, Token
from lark.exceptions import LarkError

from .errors import (
    ArityMismatch,
    DuplicateBinding,
    EvaluationError,
    InvalidContext,
    MalformedRule,
    ParseError,
)
from .expressions import (
    EXPRESSION_GRAMMAR,
    Environment,
    Expression,
    ExpressionBuilder,
    Number,
)
from .symbols import PATCH_MARK, Symbol, SymbolSequence, format_number

RULE_GRAMMAR = (
    r"""
rule: pattern section* "->" successor
axiom: literal*

pattern: left_context? predecessor right_context?
left_context: symbols "<"
right_context: ">" symbols
symbols: SYMBOL+
predecessor: SYMBOL bindings?
bindings: "(" (NAME ("," NAME)*)? ")"

section: ":" condition
?condition: expr
    | "*"                       -> always

successor: literal*
literal: PATCH? SYMBOL arguments?
arguments: "(" (expr ("," expr)*)? ")"

PATCH: "~"
SYMBOL: /[^\s(),<>:~]/
"""
    + EXPRESSION_GRAMMAR
)

# Context tiers, most specific first.
TIER_BOTH = 0
TIER_LEFT = 1
TIER_RIGHT = 2
TIER_FREE = 3
TIERS = (TIER_BOTH, TIER_LEFT, TIER_RIGHT, TIER_FREE)


# -------------------------
# Rule model
# -------------------------


@dataclass(frozen=True)
class SymbolTemplate:
    """One symbol of a successor: identity plus parameter expressions."""

    identity: str
    arguments: tuple[Expression, ...] = ()
    patch: bool = False

    def instantiate(self, env: Environment) -> Symbol:
        values = tuple(arg.evaluate(env) for arg in self.arguments)
        return Symbol(self.identity, values, self.patch)

    def __str__(self) -> str:
        mark = PATCH_MARK if self.patch else ""
        if not self.arguments:
            return f"{mark}{self.identity}"
        return f"{mark}{self.identity}({','.join(str(a) for a in self.arguments)})"


@dataclass(frozen=True)
class Rule:
    """A single production.

    All rule kinds share this shape: a rule is context-sensitive when it has a
    left and/or right context, parametric when it binds names, conditional when
    it has a condition and stochastic when it has a weight.
    """

    predecessor: str
    successor: tuple[SymbolTemplate, ...] = ()
    parameter_names: tuple[str, ...] = ()
    left_context: str | None = None
    right_context: str | None = None
    condition: Expression | None = None
    weight: float | None = None
    text: str = field(default="", compare=False)

    @property
    def is_stochastic(self) -> bool:
        return self.weight is not None

    @property
    def is_context_free(self) -> bool:
        return self.left_context is None and self.right_context is None

    def context_tier(self, left: str | None, right: str | None) -> int | None:
        """Tier this rule falls in for the given neighbours, or None if its
        context requirement is not met."""
        if self.left_context is not None and self.left_context != left:
            return None
        if self.right_context is not None and self.right_context != right:
            return None
        if self.left_context is not None and self.right_context is not None:
            return TIER_BOTH
        if self.left_context is not None:
            return TIER_LEFT
        if self.right_context is not None:
            return TIER_RIGHT
        return TIER_FREE

    def matches_arity(self, sym: Symbol) -> bool:
        return len(self.parameter_names) == sym.arity

    def bind(self, sym: Symbol) -> dict[str, float]:
        if not self.matches_arity(sym):
            raise ArityMismatch(
                f"rule '{self}' binds {len(self.parameter_names)} parameter(s) "
                f"but symbol {sym} has {sym.arity}"
            )
        return dict(zip(self.parameter_names, sym.parameters))

    def accepts(self, sym: Symbol) -> bool:
        """Arity matches and the condition (if any) holds.

        Condition evaluation errors propagate as EvaluationError.
        """
        if not self.matches_arity(sym):
            return False
        if self.condition is None:
            return True
        return self.condition.is_true(self.bind(sym))

    def produce(self, sym: Symbol) -> list[Symbol]:
        env = self.bind(sym)
        return [t.instantiate(env) for t in self.successor]

    def __str__(self) -> str:
        if self.text:
            return self.text
        head = self.predecessor
        if self.parameter_names:
            head += f"({','.join(self.parameter_names)})"
        if self.left_context is not None:
            head = f"{self.left_context} < {head}"
        if self.right_context is not None:
            head = f"{head} > {self.right_context}"
        if self.condition is not None:
            head += f" : {self.condition}"
        if self.weight is not None:
            head += f" : {format_number(self.weight)}"
        return f"{head} -> {''.join(str(t) for t in self.successor)}"


@dataclass
class Grammar:
    """An axiom plus rules grouped by predecessor, in insertion order.

    The per-identity order is the deterministic tie-break of the rewriting
    engine and is never changed once a rule has been added.
    """

    axiom: SymbolSequence = ()
    rules: dict[str, list[Rule]] = field(default_factory=dict)

    def add_rule(self, rule: Rule) -> None:
        self.rules.setdefault(rule.predecessor, []).append(rule)

    def rules_for(self, identity: str) -> tuple[Rule, ...]:
        return tuple(self.rules.get(identity, ()))

    def __iter__(self) -> Iterator[Rule]:
        for rules in self.rules.values():
            yield from rules

    def __len__(self) -> int:
        return sum(len(rules) for rules in self.rules.values())


# -------------------------
# Parse tree -> raw parts
# -------------------------


class _Always:
    """Marker for the ``*`` condition."""


_ALWAYS = _Always()


class RuleBuilder(ExpressionBuilder):
    def rule(self, items: list[Any]) -> dict[str, Any]:
        pattern, *sections, successor = items
        return {**pattern, "sections": sections, "successor": successor}

    def axiom(self, items: list[SymbolTemplate]) -> tuple[SymbolTemplate, ...]:
        return tuple(items)

    def pattern(self, items: list[tuple[str, Any]]) -> dict[str, Any]:
        return dict(items)

    def left_context(self, items: list[list[str]]) -> tuple[str, list[str]]:
        return ("left", items[0])

    def right_context(self, items: list[list[str]]) -> tuple[str, list[str]]:
        return ("right", items[0])

    def symbols(self, items: list[Token]) -> list[str]:
        return [str(t) for t in items]

    def predecessor(self, items: list[Any]) -> tuple[str, Any]:
        identity = str(items[0])
        names = items[1] if len(items) > 1 else []
        return ("center", (identity, names))

    def bindings(self, items: list[Token]) -> list[str]:
        return [str(t) for t in items]

    def section(self, items: list[Any]) -> Any:
        return items[0]

    def always(self, items: list[Any]) -> _Always:
        return _ALWAYS

    def successor(self, items: list[SymbolTemplate]) -> tuple[SymbolTemplate, ...]:
        return tuple(items)

    def literal(self, items: list[Any]) -> SymbolTemplate:
        patch = False
        if isinstance(items[0], Token) and items[0].type == "PATCH":
            patch = True
            items = items[1:]
        identity = str(items[0])
        arguments = tuple(items[1]) if len(items) > 1 else ()
        return SymbolTemplate(identity, arguments, patch)

    def arguments(self, items: list[Expression]) -> list[Expression]:
        return list(items)


_rule_parser = Lark(RULE_GRAMMAR, start=["rule", "axiom"], parser="lalr")


def _single_context(side: str, identities: list[str] | None, text: str) -> str | None:
    if identities is None:
        return None
    if len(identities) != 1:
        raise InvalidContext(
            f"{side} context must be a single symbol, got {''.join(identities)!r} "
            f"in rule {text!r}"
        )
    return identities[0]


def _is_weight(section: Any) -> bool:
    # Only a plain numeric literal counts; true/false are Boolean constants.
    return type(section) is Number


def _split_sections(
    sections: list[Any], text: str
) -> tuple[Expression | None, float | None]:
    if len(sections) > 2:
        raise MalformedRule(f"too many ':' sections in rule {text!r}")

    condition: Any = None
    weight: float | None = None
    if len(sections) == 2:
        condition, last = sections
        if not _is_weight(last):
            raise MalformedRule(
                f"second ':' section must be a numeric weight in rule {text!r}"
            )
        weight = last.value
    elif len(sections) == 1:
        if _is_weight(sections[0]):
            weight = sections[0].value
        else:
            condition = sections[0]

    if condition is _ALWAYS:
        condition = None
    if weight is not None and weight <= 0:
        raise MalformedRule(f"weight must be > 0 in rule {text!r}")
    return condition, weight


def parse_rule(text: str) -> Rule:
    """Parse one rule definition.

    Raises MalformedRule, InvalidContext or DuplicateBinding.
    """
    try:
        tree = _rule_parser.parse(text, start="rule")
    except LarkError as e:
        raise MalformedRule(f"cannot parse rule {text!r}: {e}") from e
    raw = RuleBuilder().transform(tree)

    identity, names = raw["center"]
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise DuplicateBinding(
                f"parameter '{name}' bound more than once in rule {text!r}"
            )
        seen.add(name)

    condition, weight = _split_sections(raw["sections"], text)
    return Rule(
        predecessor=identity,
        successor=raw["successor"],
        parameter_names=tuple(names),
        left_context=_single_context("left", raw.get("left"), text),
        right_context=_single_context("right", raw.get("right"), text),
        condition=condition,
        weight=weight,
        text=text.strip(),
    )


def _rule_lines(
    rules: str | Iterable[str], start: int = 1
) -> Iterator[tuple[int, str]]:
    lines = rules.splitlines() if isinstance(rules, str) else rules
    for line_no, raw in enumerate(lines, start=start):
        s = raw.strip()
        if not s or s.startswith("#"):
            continue
        yield line_no, s


def parse_rules(rules: str | Iterable[str]) -> list[Rule]:
    """Parse several rules: a multi-line string or an iterable of lines.

    Blank lines and ``#`` comments are skipped.
    """
    return [_parse_numbered(text, line_no) for line_no, text in _rule_lines(rules)]


def _parse_numbered(text: str, line_no: int) -> Rule:
    try:
        return parse_rule(text)
    except ParseError as e:
        raise type(e)(f"line {line_no}: {e}") from e


def parse_axiom(text: str) -> SymbolSequence:
    """Parse an axiom such as ``A(3.3,1.0,1e-33)B``.

    Parameter values may be constant expressions (``A(2^3, -1)``).
    """
    try:
        tree = _rule_parser.parse(text.strip(), start="axiom")
    except LarkError as e:
        raise ParseError(f"cannot parse axiom {text!r}: {e}") from e
    templates = RuleBuilder().transform(tree)
    try:
        return tuple(t.instantiate({}) for t in templates)
    except EvaluationError as e:
        raise ParseError(f"axiom parameters must be constants in {text!r}: {e}") from e


def parse_grammar(
    axiom: str | SymbolSequence, rules: str | Iterable[str] | Iterable[Rule] = ()
) -> Grammar:
    """Build a Grammar from axiom text and rule texts (or ready-made Rules).

    Line numbers in error messages run across the whole list; a ready-made
    Rule counts as one line.
    """
    grammar = Grammar(
        axiom=parse_axiom(axiom) if isinstance(axiom, str) else tuple(axiom)
    )
    items: list[Any] = [rules] if isinstance(rules, str) else list(rules)
    line_no = 0
    for item in items:
        if isinstance(item, Rule):
            line_no += 1
            grammar.add_rule(item)
            continue
        lines = item.splitlines()
        for n, text in _rule_lines(lines, start=line_no + 1):
            grammar.add_rule(_parse_numbered(text, n))
        line_no += max(len(lines), 1)
    return grammar


def grammar_from_mapping(axiom: str, rules: Mapping[str, str]) -> Grammar:
    """Build a Grammar from a classic ``{"F": "F+F"}`` rule table."""
    return parse_grammar(axiom, [f"{k} -> {v}" for k, v in rules.items()])
