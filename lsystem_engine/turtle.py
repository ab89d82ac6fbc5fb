"""3D turtle interpretation of a derived symbol sequence.

The turtle carries a position and an orthonormal frame (heading, left, up).
Rotations are applied in the turtle's own frame:

  turn left/right    about up       (left turns heading towards left)
  pitch down/up      about left     (down turns heading towards -up)
  roll left/right    about heading  (left turns left towards up)
  turn around        180 degrees about up

Branching uses an explicit stack of immutable state snapshots. Authoring
mistakes (unbalanced pops, broken polygons) are recorded on the result and
interpretation carries on with the next symbol.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

import numpy as np

from .errors import (
    ConfigError,
    DegeneratePolygon,
    InterpretationError,
    UnbalancedState,
    UnclosedPolygon,
)
from .operations import DEFAULT_OPERATIONS, IGNORE, OperationKind, OperationMap
from .primitives import BezierPatch, DrawingResult, Line, Polygon
from .symbols import Symbol, format_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawingParameters:
    start_position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    # Degrees; 0 = +X, 90 = +Y.
    start_angle: float = 0.0
    angle_delta: float = 0.0
    step: float = 1.0
    initial_line_width: float = 1.0
    line_width_delta: float = 0.1
    # Upper bound for the colour index; None leaves it unbounded.
    color_palette_size: int | None = None

    def __post_init__(self) -> None:
        if len(self.start_position) != 3:
            raise ConfigError("start_position must have 3 coordinates")
        if self.initial_line_width < 0:
            raise ConfigError("initial_line_width must be >= 0")
        if self.color_palette_size is not None and self.color_palette_size < 1:
            raise ConfigError("color_palette_size must be >= 1")


# -------------------------
# State
# -------------------------


def _rot_up(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _rot_left(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _rot_heading(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


@dataclass(frozen=True, eq=False)
class TurtleState:
    position: np.ndarray
    heading: np.ndarray
    left: np.ndarray
    up: np.ndarray
    line_width: float
    color_index: int
    contraction_index: int

    @classmethod
    def initial(
        cls, params: DrawingParameters, iteration_depth: int = 0
    ) -> TurtleState:
        a = math.radians(params.start_angle)
        heading = np.array([math.cos(a), math.sin(a), 0.0])
        up = np.array([0.0, 0.0, 1.0])
        left = np.cross(up, heading)
        return cls(
            position=np.array(params.start_position, dtype=float),
            heading=heading,
            left=left / np.linalg.norm(left),
            up=up,
            line_width=float(params.initial_line_width),
            color_index=0,
            contraction_index=iteration_depth,
        )

    def moved(self, distance: float) -> TurtleState:
        return replace(self, position=self.position + self.heading * distance)

    def rotated(self, local: np.ndarray) -> TurtleState:
        frame = np.column_stack((self.heading, self.left, self.up)) @ local
        # Renormalise to keep rounding drift out of long sequences.
        frame = frame / np.linalg.norm(frame, axis=0)
        return replace(self, heading=frame[:, 0], left=frame[:, 1], up=frame[:, 2])


# -------------------------
# Interpreter
# -------------------------


class Turtle:
    """Stateful interpreter for one run.

    Owns its current state, its state stack, the open polygon (if any) and the
    result being built; use a fresh Turtle per interpretation.
    """

    def __init__(
        self,
        params: DrawingParameters | None = None,
        operations: OperationMap | None = None,
        iteration_depth: int = 0,
    ) -> None:
        self.params = params or DrawingParameters()
        self.operations = DEFAULT_OPERATIONS if operations is None else operations
        self.state = TurtleState.initial(self.params, iteration_depth)
        self.stack: list[TurtleState] = []
        self.polygon: list[np.ndarray] | None = None
        self.result = DrawingResult()

        self._handlers: dict[
            OperationKind, Callable[[Symbol, int, float | None], None]
        ] = {
            OperationKind.IGNORE: lambda sym, i, arg: None,
            OperationKind.TURN_LEFT: self._turn(_rot_up, 1.0),
            OperationKind.TURN_RIGHT: self._turn(_rot_up, -1.0),
            OperationKind.PITCH_DOWN: self._turn(_rot_left, 1.0),
            OperationKind.PITCH_UP: self._turn(_rot_left, -1.0),
            OperationKind.ROLL_LEFT: self._turn(_rot_heading, 1.0),
            OperationKind.ROLL_RIGHT: self._turn(_rot_heading, -1.0),
            OperationKind.TURN_AROUND: self._turn_around,
            OperationKind.PUSH_STATE: self._push,
            OperationKind.POP_STATE: self._pop,
            OperationKind.BEGIN_POLYGON: self._begin_polygon,
            OperationKind.SUBMIT_VERTEX: self._submit_vertex,
            OperationKind.END_POLYGON: self._end_polygon,
            OperationKind.INCR_COLOR: lambda sym, i, arg: self._shift_color(1),
            OperationKind.DECR_COLOR: lambda sym, i, arg: self._shift_color(-1),
            OperationKind.INCR_WIDTH: self._width(1.0),
            OperationKind.DECR_WIDTH: self._width(-1.0),
        }

    # -- bookkeeping --

    def _record(self, error: InterpretationError) -> None:
        logger.warning("%s", error)
        self.result.errors.append(error)

    # -- movement --

    def move(self, distance: float, draw: bool) -> None:
        start = self.state.position
        self.state = self.state.moved(distance)
        if draw:
            self.result.lines.append(
                Line(
                    start=start.copy(),
                    end=self.state.position.copy(),
                    color=self.state.color_index,
                    width=self.state.line_width,
                )
            )

    def _forward(
        self, sym: Symbol, i: int, draw: bool, contracting: bool
    ) -> None:
        arg = sym.parameters[0] if sym.parameters else None
        base = self.params.step if arg is None else arg
        if contracting:
            try:
                distance = base**self.state.contraction_index
            except OverflowError:
                self._record(
                    InterpretationError(
                        f"contracting move {format_number(base)}"
                        f"**{self.state.contraction_index} overflows; skipped",
                        position=i,
                        symbol=sym,
                    )
                )
                return
        else:
            distance = base
        self.move(distance, draw)

    def _turn(
        self, matrix: Callable[[float], np.ndarray], sign: float
    ) -> Callable[[Symbol, int, float | None], None]:
        def handler(sym: Symbol, i: int, arg: float | None) -> None:
            angle = self.params.angle_delta if arg is None else arg
            self.state = self.state.rotated(matrix(sign * math.radians(angle)))

        return handler

    def _turn_around(self, sym: Symbol, i: int, arg: float | None) -> None:
        self.state = self.state.rotated(_rot_up(math.pi))

    # -- state stack --

    def _push(self, sym: Symbol, i: int, arg: float | None) -> None:
        # States are immutable, so the snapshot needs no copy.
        self.stack.append(self.state)

    def _pop(self, sym: Symbol, i: int, arg: float | None) -> None:
        if not self.stack:
            self._record(
                UnbalancedState(
                    "pop with an empty state stack", position=i, symbol=sym
                )
            )
            return
        self.state = self.stack.pop()

    # -- polygons --

    def _begin_polygon(self, sym: Symbol, i: int, arg: float | None) -> None:
        if self.polygon is not None:
            self._record(
                UnclosedPolygon(
                    "polygon begun before the previous one ended; "
                    f"dropping {len(self.polygon)} vertices",
                    position=i,
                    symbol=sym,
                )
            )
        self.polygon = [self.state.position.copy()]

    def _submit_vertex(self, sym: Symbol, i: int, arg: float | None) -> None:
        if self.polygon is None:
            self._record(
                DegeneratePolygon(
                    "vertex submitted outside a polygon", position=i, symbol=sym
                )
            )
            return
        p = self.state.position
        if not np.array_equal(self.polygon[-1], p):
            self.polygon.append(p.copy())

    def _end_polygon(self, sym: Symbol, i: int, arg: float | None) -> None:
        vertices, self.polygon = self.polygon, None
        if vertices is None:
            self._record(
                DegeneratePolygon(
                    "polygon ended without being begun", position=i, symbol=sym
                )
            )
            return
        if len(vertices) < 3:
            self._record(
                DegeneratePolygon(
                    f"polygon has {len(vertices)} vertices, needs at least 3",
                    position=i,
                    symbol=sym,
                )
            )
            return
        self.result.polygons.append(
            Polygon(vertices=tuple(vertices), color=self.state.color_index)
        )

    # -- attributes --

    def _shift_color(self, delta: int) -> None:
        idx = max(self.state.color_index + delta, 0)
        if self.params.color_palette_size is not None:
            idx = min(idx, self.params.color_palette_size - 1)
        self.state = replace(self.state, color_index=idx)

    def _width(self, sign: float) -> Callable[[Symbol, int, float | None], None]:
        def handler(sym: Symbol, i: int, arg: float | None) -> None:
            # With a parameter the width is set outright.
            if arg is None:
                width = self.state.line_width + sign * self.params.line_width_delta
            else:
                width = arg
            self.state = replace(self.state, line_width=max(width, 0.0))

        return handler

    # -- patches --

    def _spawn_patch(self, sym: Symbol) -> None:
        scale = sym.parameters[0] if sym.parameters else 1.0
        st = self.state
        transform = np.eye(4)
        transform[:3, 0] = st.heading * scale
        transform[:3, 1] = -st.left * scale
        transform[:3, 2] = st.up * scale
        transform[:3, 3] = st.position
        self.result.patches.append(
            BezierPatch(identifier=sym.identity, transform=transform, scale=scale)
        )

    # -- driver --

    def execute(self, sym: Symbol, position: int = 0) -> None:
        if sym.patch:
            self._spawn_patch(sym)
            return

        operation = self.operations.get(sym.identity, IGNORE)
        if operation.kind is OperationKind.FORWARD:
            self._forward(sym, position, operation.draw, operation.contracting)
            return
        arg = sym.parameters[0] if sym.parameters else None
        self._handlers[operation.kind](sym, position, arg)

    def run(self, sequence: Iterable[Symbol]) -> DrawingResult:
        n = 0
        for i, sym in enumerate(sequence):
            self.execute(sym, i)
            n = i + 1
        if self.polygon is not None:
            self._record(
                UnclosedPolygon(
                    f"polygon with {len(self.polygon)} vertices never ended",
                    position=n,
                )
            )
            self.polygon = None
        return self.result


def interpret(
    sequence: Iterable[Symbol],
    params: DrawingParameters | None = None,
    operations: OperationMap | None = None,
    iteration_depth: int = 0,
) -> DrawingResult:
    """Interpret ``sequence`` and return the primitives it draws.

    Symbols missing from ``operations`` are ignored (``operations=None``
    selects DEFAULT_OPERATIONS). ``iteration_depth`` drives contracting
    forward moves: their length is ``step ** iteration_depth``.
    """
    return Turtle(params, operations, iteration_depth).run(sequence)
