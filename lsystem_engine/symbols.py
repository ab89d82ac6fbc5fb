"""Symbols and symbol sequences.

A symbol is a one-character identity with an ordered tuple of numeric
parameters, e.g. ``A(3.3,1)``. A sequence is a plain tuple of symbols; every
derivation step builds a new one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

PATCH_MARK = "~"


@dataclass(frozen=True)
class Symbol:
    identity: str
    parameters: tuple[float, ...] = ()
    # "~" annotation: interpreted as a Bezier patch placement.
    patch: bool = False

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def __str__(self) -> str:
        mark = PATCH_MARK if self.patch else ""
        if not self.parameters:
            return f"{mark}{self.identity}"
        params = ",".join(format_number(p) for p in self.parameters)
        return f"{mark}{self.identity}({params})"


SymbolSequence = tuple[Symbol, ...]


def symbol(identity: str, *parameters: float, patch: bool = False) -> Symbol:
    return Symbol(identity, tuple(float(p) for p in parameters), patch)


def format_number(x: float) -> str:
    # Normalise -0.0 so it never prints as "-0".
    if not x:
        x = 0.0
    s = repr(float(x))
    if s.endswith(".0"):
        s = s[:-2]
    return s


def format_sequence(sequence: Iterable[Symbol]) -> str:
    """Render a sequence back to literal syntax, e.g. ``FFAB+F`` or ``A(4)B``."""
    return "".join(str(s) for s in sequence)


def identities(sequence: Iterable[Symbol]) -> str:
    """Just the identity characters of a sequence, parameters dropped."""
    return "".join(s.identity for s in sequence)
