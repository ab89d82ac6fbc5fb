"""Turtle operations and the symbol -> operation table.

No symbol is reserved by the interpreter; callers decide which character does
what. DEFAULT_OPERATIONS holds the conventional assignments.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import ConfigError


class OperationKind(Enum):
    IGNORE = "ignore"
    FORWARD = "forward"
    TURN_RIGHT = "turn_right"
    TURN_LEFT = "turn_left"
    TURN_AROUND = "turn_around"
    PITCH_DOWN = "pitch_down"
    PITCH_UP = "pitch_up"
    ROLL_LEFT = "roll_left"
    ROLL_RIGHT = "roll_right"
    PUSH_STATE = "push"
    POP_STATE = "pop"
    BEGIN_POLYGON = "begin_polygon"
    END_POLYGON = "end_polygon"
    SUBMIT_VERTEX = "submit_vertex"
    INCR_COLOR = "incr_color"
    DECR_COLOR = "decr_color"
    INCR_WIDTH = "incr_width"
    DECR_WIDTH = "decr_width"


@dataclass(frozen=True)
class TurtleOperation:
    kind: OperationKind
    # Only meaningful for FORWARD.
    draw: bool = True
    contracting: bool = False

    def __str__(self) -> str:
        if self.kind is not OperationKind.FORWARD:
            return self.kind.value
        flags = [] if self.draw else ["no-draw"]
        if self.contracting:
            flags.append("contracting")
        return f"forward({', '.join(flags)})" if flags else "forward"


OperationMap = Mapping[str, TurtleOperation]

IGNORE = TurtleOperation(OperationKind.IGNORE)


def forward(draw: bool = True, contracting: bool = False) -> TurtleOperation:
    return TurtleOperation(OperationKind.FORWARD, draw=draw, contracting=contracting)


def op(kind: OperationKind) -> TurtleOperation:
    return TurtleOperation(kind)


DEFAULT_OPERATIONS: dict[str, TurtleOperation] = {
    "F": forward(),
    "f": forward(draw=False),
    "G": forward(contracting=True),
    "+": op(OperationKind.TURN_LEFT),
    "-": op(OperationKind.TURN_RIGHT),
    "|": op(OperationKind.TURN_AROUND),
    "&": op(OperationKind.PITCH_DOWN),
    "^": op(OperationKind.PITCH_UP),
    "\\": op(OperationKind.ROLL_LEFT),
    "/": op(OperationKind.ROLL_RIGHT),
    "[": op(OperationKind.PUSH_STATE),
    "]": op(OperationKind.POP_STATE),
    "{": op(OperationKind.BEGIN_POLYGON),
    "}": op(OperationKind.END_POLYGON),
    ".": op(OperationKind.SUBMIT_VERTEX),
    "'": op(OperationKind.INCR_COLOR),
    "`": op(OperationKind.DECR_COLOR),
    "#": op(OperationKind.INCR_WIDTH),
    "!": op(OperationKind.DECR_WIDTH),
}


def parse_operation(entry: Any, path: str) -> TurtleOperation:
    """Build an operation from its config form.

    Accepts a bare type name (``"turn_left"``) or an object
    ``{"type": "forward", "draw": false, "contracting": false}``.
    """
    if isinstance(entry, str):
        entry = {"type": entry}
    if not isinstance(entry, dict):
        raise ConfigError(f"{path} must be a string or an object")

    type_name = entry.get("type")
    if not isinstance(type_name, str):
        raise ConfigError(f"{path} must have string field 'type'")
    try:
        kind = OperationKind(type_name)
    except ValueError:
        known = ", ".join(k.value for k in OperationKind)
        raise ConfigError(
            f"{path}: unknown command type '{type_name}' (known: {known})"
        ) from None

    if kind is not OperationKind.FORWARD:
        extra = set(entry) - {"type"}
        if extra:
            raise ConfigError(
                f"{path}: fields {sorted(extra)} only apply to 'forward' commands"
            )
        return TurtleOperation(kind)

    draw = entry.get("draw", True)
    contracting = entry.get("contracting", False)
    if not isinstance(draw, bool):
        raise ConfigError(f"{path}.draw must be a boolean")
    if not isinstance(contracting, bool):
        raise ConfigError(f"{path}.contracting must be a boolean")
    return forward(draw=draw, contracting=contracting)
