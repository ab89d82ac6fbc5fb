#!/usr/bin/env python3
import pytest

from lsystem_engine.errors import (
    ArityMismatch,
    DuplicateBinding,
    InvalidContext,
    MalformedRule,
    ParseError,
)
from lsystem_engine.expressions import TRUE
from lsystem_engine.grammar import (
    TIER_BOTH,
    TIER_FREE,
    TIER_LEFT,
    TIER_RIGHT,
    Rule,
    grammar_from_mapping,
    parse_axiom,
    parse_grammar,
    parse_rule,
    parse_rules,
)
from lsystem_engine.symbols import Symbol, format_sequence, identities, symbol


class TestParseRule:
    def test_context_free(self) -> None:
        rule = parse_rule("A -> FAB")
        assert rule.predecessor == "A"
        assert "".join(t.identity for t in rule.successor) == "FAB"
        assert rule.parameter_names == ()
        assert rule.is_context_free
        assert not rule.is_stochastic
        assert rule.condition is None

    def test_context(self) -> None:
        rule = parse_rule("A < B > C -> D")
        assert rule.predecessor == "B"
        assert rule.left_context == "A"
        assert rule.right_context == "C"

    def test_one_sided_context(self) -> None:
        assert parse_rule("A < B -> D").right_context is None
        assert parse_rule("B > C -> D").left_context is None

    def test_condition(self) -> None:
        rule = parse_rule("A(x) : x > 3 -> FF")
        assert rule.parameter_names == ("x",)
        assert rule.condition is not None
        assert rule.condition.evaluate({"x": 5}) == 1.0
        assert rule.weight is None

    def test_weight(self) -> None:
        rule = parse_rule("A(x) : 0.5 -> A(x-1)")
        assert rule.weight == 0.5
        assert rule.condition is None
        assert rule.is_stochastic
        (template,) = rule.successor
        assert template.instantiate({"x": 3}) == Symbol("A", (2.0,))

    def test_condition_and_weight(self) -> None:
        rule = parse_rule("A(x) : x > 0 : 0.5 -> A(x+1)")
        assert rule.weight == 0.5
        assert rule.condition is not None
        assert rule.condition.evaluate({"x": -1}) == 0.0

    def test_always_condition(self) -> None:
        assert parse_rule("A : * -> B").condition is None
        rule = parse_rule("A : * : 2 -> B")
        assert rule.condition is None
        assert rule.weight == 2

    def test_true_is_a_condition_not_a_weight(self) -> None:
        rule = parse_rule("A : true -> B")
        assert rule.condition == TRUE
        assert rule.weight is None

    def test_several_parameters_and_expressions(self) -> None:
        rule = parse_rule("F(l, w) -> F(l / 2, w * 0.7) [+F(l/3,w)] F(l,w)")
        assert rule.parameter_names == ("l", "w")
        produced = rule.produce(symbol("F", 6, 1))
        assert format_sequence(produced) == "F(3,0.7)[+F(2,1)]F(6,1)"

    def test_whitespace_insensitive(self) -> None:
        spaced = parse_rule(" A ( x , y ) -> B( x + y ) C ")
        assert parse_rule("A(x,y)->B(x+y)C") == spaced

    def test_empty_successor(self) -> None:
        rule = parse_rule("X ->")
        assert rule.successor == ()
        assert rule.produce(Symbol("X")) == []

    def test_special_symbols(self) -> None:
        rule = parse_rule("+ -> -[&F]^/\\|!'")
        assert rule.predecessor == "+"
        assert "".join(t.identity for t in rule.successor) == "-[&F]^/\\|!'"

    def test_patch_marker(self) -> None:
        rule = parse_rule("A -> ~L(0.5)F")
        assert rule.successor[0].patch
        assert not rule.successor[1].patch
        assert format_sequence(rule.produce(Symbol("A"))) == "~L(0.5)F"

    def test_str_is_source_text(self) -> None:
        assert str(parse_rule("  A(x) : x > 3 -> FF ")) == "A(x) : x > 3 -> FF"


class TestParseRuleErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "A",
            "A B",
            "-> B",
            "A -> B(",
            "A(1) -> B",
            "A -> B(x,)",
            "AB -> C",
            "A : x > 0 : y -> B",
            "A : 1 : 2 : 3 -> B",
            "A : 0 -> B",
            "A : -1 -> B",
        ],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(MalformedRule):
            parse_rule(text)

    def test_invalid_left_context(self) -> None:
        with pytest.raises(InvalidContext):
            parse_rule("AB < C -> D")

    def test_invalid_right_context(self) -> None:
        with pytest.raises(InvalidContext):
            parse_rule("A > BC -> D")

    def test_duplicate_binding(self) -> None:
        with pytest.raises(DuplicateBinding):
            parse_rule("A(x, y, x) -> B")

    def test_grammar_errors_are_parse_errors(self) -> None:
        with pytest.raises(ParseError):
            parse_rule("AB < C -> D")
        with pytest.raises(ParseError):
            parse_rule("A(x, x) -> B")

    def test_bind_arity_mismatch(self) -> None:
        rule = parse_rule("A(x) -> B")
        with pytest.raises(ArityMismatch):
            rule.bind(symbol("A", 1, 2))
        assert not rule.accepts(symbol("A", 1, 2))


class TestContextTier:
    def test_tiers(self) -> None:
        assert parse_rule("B < A > C -> X").context_tier("B", "C") == TIER_BOTH
        assert parse_rule("B < A -> X").context_tier("B", "C") == TIER_LEFT
        assert parse_rule("A > C -> X").context_tier("B", "C") == TIER_RIGHT
        assert parse_rule("A -> X").context_tier("B", "C") == TIER_FREE
        assert parse_rule("A -> X").context_tier(None, None) == TIER_FREE

    def test_mismatch(self) -> None:
        assert parse_rule("B < A > C -> X").context_tier("B", "D") is None
        assert parse_rule("B < A -> X").context_tier(None, "C") is None
        assert parse_rule("A > C -> X").context_tier("B", None) is None


class TestAxiom:
    def test_parameters(self) -> None:
        (sym,) = parse_axiom("A(3.3,1.0,1e-33)")
        assert sym.identity == "A"
        assert sym.parameters == pytest.approx((3.3, 1.0, 1e-33))

    def test_plain(self) -> None:
        assert identities(parse_axiom("F+F")) == "F+F"
        assert parse_axiom("") == ()

    def test_constant_expressions(self) -> None:
        assert parse_axiom("A(-1, 2^3)B") == (symbol("A", -1, 8), Symbol("B"))

    def test_variables_rejected(self) -> None:
        with pytest.raises(ParseError):
            parse_axiom("A(x)")

    def test_malformed(self) -> None:
        with pytest.raises(ParseError):
            parse_axiom("A(1")

    def test_roundtrip_formatting(self) -> None:
        assert format_sequence(parse_axiom("A(4)B(0.5,-2)~C")) == "A(4)B(0.5,-2)~C"


class TestRuleLists:
    def test_multiline_with_comments(self) -> None:
        rules = parse_rules(
            """
            # algae
            A -> AB

            B -> A
            """
        )
        assert [r.predecessor for r in rules] == ["A", "B"]

    def test_error_reports_line(self) -> None:
        with pytest.raises(DuplicateBinding, match="line 2"):
            parse_rules(["A -> B", "A(x,x) -> B"])

    def test_grammar_line_numbers_span_the_list(self) -> None:
        with pytest.raises(MalformedRule, match="line 3"):
            parse_grammar("F", ["F -> FF", "G -> G", "F(x"])

    def test_grammar_line_numbers_count_rules_and_text_lines(self) -> None:
        rules = ["A -> B", parse_rule("B -> A"), "C -> D\nD(x, x) -> E"]
        with pytest.raises(DuplicateBinding, match="line 4"):
            parse_grammar("A", rules)

    def test_grammar_keeps_insertion_order(self) -> None:
        grammar = parse_grammar(
            "A", ["A : 1 -> X", "B -> Y", "A -> Z", "A(x) -> W"]
        )
        assert [str(r) for r in grammar.rules_for("A")] == [
            "A : 1 -> X",
            "A -> Z",
            "A(x) -> W",
        ]
        assert grammar.rules_for("Q") == ()
        assert len(grammar) == 4
        assert grammar.axiom == (Symbol("A"),)

    def test_grammar_from_mapping(self) -> None:
        grammar = grammar_from_mapping("F", {"F": "F+F", "X": "FX"})
        assert identities(grammar.rules_for("F")[0].produce(Symbol("F"))) == "F+F"
        assert len(grammar) == 2

    def test_grammar_iterates_all_rules(self) -> None:
        grammar = parse_grammar("A", "A -> B\nB -> A\nA : 2 -> C")
        assert [r.predecessor for r in grammar] == ["A", "A", "B"]


class TestRuleText:
    def test_str_without_source_text(self) -> None:
        parsed = parse_rule("A < B(x) > C : x > 1 : 0.5 -> ~L(x*2)F")
        rebuilt = Rule(
            predecessor=parsed.predecessor,
            successor=parsed.successor,
            parameter_names=parsed.parameter_names,
            left_context=parsed.left_context,
            right_context=parsed.right_context,
            condition=parsed.condition,
            weight=parsed.weight,
        )
        assert rebuilt == parsed
        assert str(rebuilt) == "A < B(x) > C : (x > 1) : 0.5 -> ~L((x * 2))F"
