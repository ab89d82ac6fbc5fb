"""JSON-shaped configuration for a complete L-system run.

Example::

    {
      "name": "Plant",
      "axiom": "A(1)",
      "rules": ["A(x) : x < 5 -> F(x)[+A(x+1)][-A(x+1)]"],
      "iterations": 4,
      "seed": 7,
      "turtle": {
        "angle": 25,
        "step": 1.0,
        "start": {"x": 0, "y": 0, "z": 0, "heading": 90},
        "line_width": 1.0,
        "line_width_delta": 0.1,
        "palette_size": 4,
        "commands": {
          "F": {"type": "forward", "draw": true},
          "+": "turn_left",
          "-": "turn_right",
          "[": "push",
          "]": "pop"
        }
      }
    }

``rules`` may also be one multi-line string, or a ``{"F": "F+F"}`` table for
plain context-free systems. Without ``turtle.commands`` the default command
table is used. Reading the file is left to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, cast

from .errors import ConfigError, ParseError
from .grammar import Grammar, grammar_from_mapping, parse_grammar
from .operations import DEFAULT_OPERATIONS, TurtleOperation, parse_operation
from .rewriting import DEFAULT_SEED
from .turtle import DrawingParameters

# -------------------------
# Validation helpers
# -------------------------


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_float(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool),
        f"{path} must be a number",
    )
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


# -------------------------
# Config model
# -------------------------


@dataclass(frozen=True)
class LSystemConfig:
    name: str
    axiom: str
    rules: tuple[str, ...] | dict[str, str]
    iterations: int
    seed: int
    drawing: DrawingParameters
    operations: dict[str, TurtleOperation] = field(
        default_factory=lambda: dict(DEFAULT_OPERATIONS)
    )

    def build_grammar(self) -> Grammar:
        try:
            if isinstance(self.rules, dict):
                return grammar_from_mapping(self.axiom, self.rules)
            return parse_grammar(self.axiom, self.rules)
        except ParseError as e:
            raise ConfigError(f"{self.name}: {e}") from e


def _parse_rules(obj: Any) -> tuple[str, ...] | dict[str, str]:
    if isinstance(obj, str):
        return (obj,)
    if isinstance(obj, list):
        return tuple(_as_str(r, f"rules[{i}]") for i, r in enumerate(obj))

    rules_obj = _as_dict(obj, "rules")
    rules: dict[str, str] = {}
    for k, v in rules_obj.items():
        _require(
            isinstance(k, str) and len(k) == 1,
            "rules keys must be single-character strings",
        )
        rules[k] = _as_str(v, f"rules['{k}']")
    return rules


def _parse_drawing(turtle: dict[str, Any]) -> DrawingParameters:
    start_obj = _as_dict(turtle.get("start", {}), "turtle.start")
    step = _as_float(turtle.get("step", 1.0), "turtle.step")
    width = _as_float(turtle.get("line_width", 1.0), "turtle.line_width")
    _require(width >= 0, "turtle.line_width must be >= 0")

    palette = turtle.get("palette_size")
    if palette is not None:
        palette = _as_int(palette, "turtle.palette_size")
        _require(palette >= 1, "turtle.palette_size must be >= 1")

    return DrawingParameters(
        start_position=(
            _as_float(start_obj.get("x", 0), "turtle.start.x"),
            _as_float(start_obj.get("y", 0), "turtle.start.y"),
            _as_float(start_obj.get("z", 0), "turtle.start.z"),
        ),
        start_angle=_as_float(start_obj.get("heading", 0), "turtle.start.heading"),
        angle_delta=_as_float(turtle.get("angle", 0), "turtle.angle"),
        step=step,
        initial_line_width=width,
        line_width_delta=_as_float(
            turtle.get("line_width_delta", 0.1), "turtle.line_width_delta"
        ),
        color_palette_size=palette,
    )


def _parse_commands(obj: Any) -> dict[str, TurtleOperation]:
    if obj is None:
        return dict(DEFAULT_OPERATIONS)
    commands_obj = _as_dict(obj, "turtle.commands")
    commands: dict[str, TurtleOperation] = {}
    for sym, action in commands_obj.items():
        _require(
            isinstance(sym, str) and len(sym) == 1,
            "turtle.commands keys must be single-character strings",
        )
        commands[sym] = parse_operation(action, f"turtle.commands['{sym}']")
    return commands


def parse_config(obj: dict[str, Any]) -> LSystemConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "L-System"), "name")
    axiom = _as_str(obj.get("axiom", ""), "axiom")
    _require(len(axiom.strip()) > 0, "axiom must be non-empty")

    iterations = _as_int(obj.get("iterations", 0), "iterations")
    _require(iterations >= 0, "iterations must be >= 0")
    seed = _as_int(obj.get("seed", DEFAULT_SEED), "seed")

    turtle = _as_dict(obj.get("turtle", {}), "turtle")

    cfg = LSystemConfig(
        name=name,
        axiom=axiom,
        rules=_parse_rules(obj.get("rules", [])),
        iterations=iterations,
        seed=seed,
        drawing=_parse_drawing(turtle),
        operations=_parse_commands(turtle.get("commands")),
    )
    # Surface rule syntax errors at load time rather than at run time.
    cfg.build_grammar()
    return cfg
