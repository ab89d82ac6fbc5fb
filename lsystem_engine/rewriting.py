"""Parallel rewriting of symbol sequences.

Every derivation step reads only the sequence produced by the previous step,
so no rule application ever observes another application's output.

Rule resolution for one symbol:

1. Look up the rules registered for its identity (grammar order).
2. Group them into context tiers, most specific first: both neighbours, left
   only, right only, context-free. Rules whose context does not match the
   actual neighbours are dropped.
3. In the first tier that yields anything, deterministic rules are tried in
   order and the first accepting one wins; otherwise one accepting stochastic
   rule is drawn by weight. A tier with no accepting rule falls through to
   the next one.
4. With nothing accepted the symbol is copied unchanged.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from .errors import EvaluationError, LSystemError, RewriteError
from .grammar import TIERS, Grammar, Rule
from .symbols import Symbol, SymbolSequence

logger = logging.getLogger(__name__)

DEFAULT_SEED = 133742


def weighted_choice(rules: Sequence[Rule], rng: random.Random) -> Rule:
    """Pick one rule with probability proportional to its weight.

    Weights are relative magnitudes; a single candidate is always returned.
    """
    if not rules:
        raise ValueError("weighted_choice() needs at least one rule")
    if len(rules) == 1:
        return rules[0]

    total = sum(r.weight or 0.0 for r in rules)
    draw = rng.random() * total
    acc = 0.0
    for r in rules:
        acc += r.weight or 0.0
        if draw < acc:
            return r
    # Floating point slack: draw landed on the very top of the range.
    return rules[-1]


def _tiered(
    rules: Sequence[Rule], left: str | None, right: str | None
) -> list[list[Rule]]:
    tiers: list[list[Rule]] = [[] for _ in TIERS]
    for r in rules:
        tier = r.context_tier(left, right)
        if tier is not None:
            tiers[tier].append(r)
    return tiers


def select_rule(
    sym: Symbol,
    rules: Sequence[Rule],
    *,
    left: str | None,
    right: str | None,
    rng: random.Random,
) -> Rule | None:
    """Return the rule that rewrites ``sym`` in this context, or None."""
    for tier in _tiered(rules, left, right):
        if not tier:
            continue
        for r in tier:
            if not r.is_stochastic and r.accepts(sym):
                return r
        candidates = [r for r in tier if r.is_stochastic and r.accepts(sym)]
        if candidates:
            chosen = weighted_choice(candidates, rng)
            logger.debug("stochastic pick for %s: %s", sym, chosen)
            return chosen
    return None


def derive_step(
    grammar: Grammar, sequence: SymbolSequence, rng: random.Random
) -> SymbolSequence:
    """One parallel derivation step."""
    out: list[Symbol] = []
    n = len(sequence)
    for i, sym in enumerate(sequence):
        rules = grammar.rules_for(sym.identity)
        if not rules:
            out.append(sym)
            continue

        left = sequence[i - 1].identity if i > 0 else None
        right = sequence[i + 1].identity if i < n - 1 else None
        try:
            rule = select_rule(sym, rules, left=left, right=right, rng=rng)
            if rule is None:
                out.append(sym)
            else:
                out.extend(rule.produce(sym))
        except EvaluationError as e:
            raise RewriteError(f"cannot rewrite {sym} at position {i}: {e}") from e
    return tuple(out)


def iterate(
    grammar: Grammar,
    axiom: SymbolSequence | None = None,
    depth: int = 1,
    *,
    rng: random.Random | None = None,
) -> SymbolSequence:
    """Apply ``depth`` derivation steps to ``axiom`` (default: the grammar's).

    ``rng`` is the only source of randomness; when omitted a generator seeded
    with DEFAULT_SEED is used, so results are always reproducible.
    Raises RewriteError if any expression fails to evaluate; no partial
    result is returned in that case.
    """
    if depth < 0:
        raise LSystemError(f"depth must be >= 0, got {depth}")
    sequence = tuple(grammar.axiom if axiom is None else axiom)
    if depth == 0:
        return sequence

    if rng is None:
        rng = random.Random(DEFAULT_SEED)

    for step in range(depth):
        sequence = derive_step(grammar, sequence, rng)
        logger.debug("step %d/%d: %d symbols", step + 1, depth, len(sequence))
    return sequence
