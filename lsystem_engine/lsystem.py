"""Facade tying grammar, rewriting and interpretation together.

Typical use::

    ls = LSystem.from_text("F", ["F -> F[+F]F[-F]F"], DrawingParameters(angle_delta=25))
    sequence = ls.iterate(4)
    result = ls.interpret()

When only the operation table or drawing parameters change, ``interpret`` can
be called again without iterating.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from typing import Any

from .config import LSystemConfig, parse_config
from .grammar import Grammar, parse_grammar
from .operations import DEFAULT_OPERATIONS, OperationMap
from .primitives import DrawingResult
from .rewriting import DEFAULT_SEED, iterate
from .symbols import SymbolSequence
from .turtle import DrawingParameters, interpret


class LSystem:
    def __init__(
        self,
        grammar: Grammar,
        parameters: DrawingParameters | None = None,
        operations: OperationMap | None = None,
        seed: int = DEFAULT_SEED,
    ) -> None:
        self.grammar = grammar
        self.parameters = parameters or DrawingParameters()
        self.operations = dict(DEFAULT_OPERATIONS if operations is None else operations)
        self.seed = seed
        self.sequence: SymbolSequence = grammar.axiom
        self.depth = 0

    @classmethod
    def from_text(
        cls,
        axiom: str,
        rules: str | Iterable[str],
        parameters: DrawingParameters | None = None,
        operations: OperationMap | None = None,
        seed: int = DEFAULT_SEED,
    ) -> LSystem:
        return cls(parse_grammar(axiom, rules), parameters, operations, seed)

    @classmethod
    def from_config(cls, cfg: LSystemConfig) -> LSystem:
        return cls(cfg.build_grammar(), cfg.drawing, cfg.operations, cfg.seed)

    def iterate(self, depth: int) -> SymbolSequence:
        """Derive ``depth`` steps from the axiom.

        Each call starts from a generator seeded with ``self.seed``, so
        repeated calls give the same sequence.
        """
        self.sequence = iterate(
            self.grammar, self.grammar.axiom, depth, rng=random.Random(self.seed)
        )
        self.depth = depth
        return self.sequence

    def interpret(self, sequence: SymbolSequence | None = None) -> DrawingResult:
        return interpret(
            self.sequence if sequence is None else sequence,
            self.parameters,
            self.operations,
            self.depth,
        )


def run(obj: dict[str, Any]) -> tuple[SymbolSequence, DrawingResult]:
    """Parse a config dict, iterate it and interpret the result."""
    cfg = parse_config(obj)
    ls = LSystem.from_config(cfg)
    sequence = ls.iterate(cfg.iterations)
    return sequence, ls.interpret()
