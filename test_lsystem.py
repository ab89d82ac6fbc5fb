#!/usr/bin/env python3
import pytest

import lsystem_engine
from lsystem_engine import (
    DrawingParameters,
    LSystem,
    RewriteError,
    format_sequence,
    parse_config,
    run,
)
from lsystem_engine.operations import OperationKind, TurtleOperation


class TestRun:
    def test_end_to_end(self) -> None:
        sequence, result = run(
            {
                "axiom": "F",
                "rules": {"F": "F+F"},
                "iterations": 2,
                "turtle": {"angle": 90, "step": 10},
            }
        )
        assert format_sequence(sequence) == "F+F+F+F"
        assert len(result.lines) == 4
        assert tuple(float(c) for c in result.lines[-1].end) == pytest.approx(
            (0.0, 0.0, 0.0), abs=1e-9
        )
        assert result.ok

    def test_parametric_plant(self) -> None:
        sequence, result = run(
            {
                "axiom": "A(1)",
                "rules": ["A(x) : x < 3 -> F(x)[+A(x+1)][-A(x+1)]", "A(x) -> F(x)"],
                "iterations": 3,
                "turtle": {"angle": 30},
            }
        )
        # 1 + 2 + 4 forward moves.
        assert len(result.lines) == 7
        assert sum(ln.length for ln in result.lines) == pytest.approx(1 + 4 + 12)
        assert "A" not in format_sequence(sequence)


class TestLSystem:
    def test_iterate_and_interpret(self) -> None:
        ls = LSystem.from_text(
            "F", "F -> F[+F]F", DrawingParameters(angle_delta=25.0)
        )
        assert ls.depth == 0
        sequence = ls.iterate(2)
        assert ls.depth == 2
        assert sequence == ls.sequence
        assert len(ls.interpret().lines) == 9

    def test_interpret_before_iterate_draws_axiom(self) -> None:
        ls = LSystem.from_text("FF", [])
        assert len(ls.interpret().lines) == 2

    @pytest.mark.parametrize("depth", [1, 3, 5])
    def test_contracting_keeps_total_length(self, depth: int) -> None:
        ls = LSystem.from_text("G", ["G -> GG"], DrawingParameters(step=0.5))
        ls.iterate(depth)
        result = ls.interpret()
        assert len(result.lines) == 2**depth
        assert sum(ln.length for ln in result.lines) == pytest.approx(1.0)

    def test_seed_reproducibility(self) -> None:
        rules = ["F : 1 -> F[+F]", "F : 1 -> F[-F]", "F : 1 -> FF"]
        a = LSystem.from_text("F", rules, seed=3)
        b = LSystem.from_text("F", rules, seed=3)
        assert a.iterate(5) == b.iterate(5)
        # Each call restarts from the seed.
        assert a.iterate(5) == b.iterate(5)

    def test_custom_operations(self) -> None:
        ops = {"A": TurtleOperation(OperationKind.FORWARD)}
        ls = LSystem.from_text("AFA", [], operations=ops)
        assert len(ls.interpret().lines) == 2

    def test_from_config(self) -> None:
        cfg = parse_config({"axiom": "A", "rules": ["A -> AB"], "seed": 11})
        ls = LSystem.from_config(cfg)
        assert ls.seed == 11
        assert format_sequence(ls.iterate(2)) == "ABB"

    def test_rewrite_error_propagates(self) -> None:
        ls = LSystem.from_text("A(0)", ["A(x) -> A(1/x)"])
        with pytest.raises(RewriteError):
            ls.iterate(1)

    def test_package_exports(self) -> None:
        assert lsystem_engine.__version__ == "0.1.0"
        for name in lsystem_engine.__all__:
            assert hasattr(lsystem_engine, name)
