"""Geometric primitives produced by the turtle.

This module only defines their shape; drawing them is up to the caller.
Points are numpy float arrays of shape (3,).
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import InterpretationError


@dataclass(frozen=True, eq=False)
class Line:
    start: np.ndarray
    end: np.ndarray
    color: int
    width: float

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))


@dataclass(frozen=True, eq=False)
class Polygon:
    """A triangle fan; ``vertices[0]`` is the shared anchor."""

    vertices: tuple[np.ndarray, ...]
    color: int

    def triangles(self) -> list[tuple[np.ndarray, np.ndarray, np.ndarray]]:
        a = self.vertices[0]
        return [
            (a, self.vertices[i], self.vertices[i + 1])
            for i in range(1, len(self.vertices) - 1)
        ]


@dataclass(frozen=True, eq=False)
class BezierPatch:
    """Placement of a named patch.

    ``transform`` is a 4x4 model matrix taking patch-local coordinates (x along
    the turtle heading, y to its right, z up) to world coordinates.
    """

    identifier: str
    transform: np.ndarray
    scale: float = 1.0

    @property
    def origin(self) -> np.ndarray:
        return self.transform[:3, 3]


@dataclass
class DrawingResult:
    lines: list[Line] = field(default_factory=list)
    polygons: list[Polygon] = field(default_factory=list)
    patches: list[BezierPatch] = field(default_factory=list)
    errors: list[InterpretationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Axis-aligned (min, max) corners over all line and polygon points."""
        points = [p for ln in self.lines for p in (ln.start, ln.end)]
        points.extend(v for pg in self.polygons for v in pg.vertices)
        if not points:
            raise ValueError("No drawable geometry produced.")
        stacked = np.vstack(points)
        return stacked.min(axis=0), stacked.max(axis=0)
