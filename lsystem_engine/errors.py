"""Exception types raised (or recorded) by the L-system engine.

Everything derives from ``LSystemError`` which is a ``ValueError``, so callers
that only care about "bad input" can catch a single type.
"""

from __future__ import annotations

from typing import Any


class LSystemError(ValueError):
    pass


class ConfigError(LSystemError):
    pass


# -------------------------
# Parsing / grammar construction
# -------------------------


class ParseError(LSystemError):
    pass


class MalformedRule(ParseError):
    pass


class GrammarError(LSystemError):
    pass


class InvalidContext(GrammarError, ParseError):
    pass


class DuplicateBinding(GrammarError, ParseError):
    pass


class ArityMismatch(GrammarError):
    pass


# -------------------------
# Evaluation / rewriting
# -------------------------


class EvaluationError(LSystemError):
    pass


class UndefinedVariable(EvaluationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"undefined variable '{name}'")
        self.name = name


class DivisionByZero(EvaluationError):
    pass


class RewriteError(LSystemError):
    pass


# -------------------------
# Interpretation
# -------------------------


class InterpretationError(LSystemError):
    """A geometric authoring mistake found while interpreting a sequence.

    These are collected on ``DrawingResult.errors`` rather than raised.
    """

    def __init__(self, message: str, *, position: int, symbol: Any = None) -> None:
        super().__init__(f"{message} (symbol {position}: {symbol})")
        self.position = position
        self.symbol = symbol


class UnbalancedState(InterpretationError):
    pass


class UnclosedPolygon(InterpretationError):
    pass


class DegeneratePolygon(InterpretationError):
    pass
