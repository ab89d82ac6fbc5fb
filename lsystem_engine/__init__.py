"""Parametric, stochastic, context-sensitive L-systems.

Parse rules, rewrite an axiom in parallel for N steps, and interpret the
result with a 3D turtle into lines, polygons and patch placements.
"""

from .config import LSystemConfig, parse_config
from .errors import (
    ArityMismatch,
    ConfigError,
    DegeneratePolygon,
    DivisionByZero,
    DuplicateBinding,
    EvaluationError,
    GrammarError,
    InterpretationError,
    InvalidContext,
    LSystemError,
    MalformedRule,
    ParseError,
    RewriteError,
    UnbalancedState,
    UnclosedPolygon,
    UndefinedVariable,
)
from .expressions import Expression, parse_expression
from .grammar import (
    Grammar,
    Rule,
    SymbolTemplate,
    parse_axiom,
    parse_grammar,
    parse_rule,
    parse_rules,
)
from .lsystem import LSystem, run
from .operations import (
    DEFAULT_OPERATIONS,
    OperationKind,
    TurtleOperation,
    forward,
)
from .primitives import BezierPatch, DrawingResult, Line, Polygon
from .rewriting import DEFAULT_SEED, derive_step, iterate
from .symbols import Symbol, SymbolSequence, format_sequence
from .turtle import DrawingParameters, Turtle, TurtleState, interpret

__version__ = "0.1.0"

__all__ = [
    "ArityMismatch",
    "BezierPatch",
    "ConfigError",
    "DEFAULT_OPERATIONS",
    "DEFAULT_SEED",
    "DegeneratePolygon",
    "DivisionByZero",
    "DrawingParameters",
    "DrawingResult",
    "DuplicateBinding",
    "EvaluationError",
    "Expression",
    "Grammar",
    "GrammarError",
    "InterpretationError",
    "InvalidContext",
    "LSystem",
    "LSystemConfig",
    "LSystemError",
    "Line",
    "MalformedRule",
    "OperationKind",
    "ParseError",
    "Polygon",
    "RewriteError",
    "Rule",
    "Symbol",
    "SymbolSequence",
    "SymbolTemplate",
    "Turtle",
    "TurtleOperation",
    "TurtleState",
    "UnbalancedState",
    "UnclosedPolygon",
    "UndefinedVariable",
    "derive_step",
    "format_sequence",
    "forward",
    "interpret",
    "iterate",
    "parse_axiom",
    "parse_config",
    "parse_expression",
    "parse_grammar",
    "parse_rule",
    "parse_rules",
    "run",
]
