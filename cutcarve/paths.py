"""Paths made of straight and arc segments, and a cursor-style builder."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .geometry import Transform, Vector3D


class PathError(ValueError):
    """Raised when a path references vertexes it does not have."""


class ArcSense(Enum):
    """Rotation direction of an arc, seen from +Z."""
    CLOCKWISE = "cw"
    COUNTERCLOCKWISE = "ccw"

    @property
    def sign(self) -> int:
        return 1 if self is ArcSense.COUNTERCLOCKWISE else -1


class CornerStyle(Enum):
    ROUND = "round"
    CHAMFER = "chamfer"


@dataclass(frozen=True)
class StraightSegment:
    start: int
    end: int


@dataclass(frozen=True)
class ArcSegment:
    """Arc from ``start`` to ``end`` around the ``axis`` vertex."""
    start: int
    end: int
    axis: int
    sense: ArcSense


PathSegment = Union[StraightSegment, ArcSegment]


@dataclass(frozen=True)
class Path:
    """Vertexes plus segments that index into them.  Vertex Z is ignored."""
    vertexes: tuple[Vector3D, ...]
    segments: tuple[PathSegment, ...]

    def vertex(self, index: Optional[int]) -> Vector3D:
        if index is None or not 0 <= index < len(self.vertexes):
            raise PathError(
                f"Vertex index {index!r} out of range for path with {len(self.vertexes)} vertexes"
            )
        return self.vertexes[index]

    @property
    def start_point(self) -> Optional[Vector3D]:
        if not self.segments:
            return None
        return self.vertex(self.segments[0].start)

    @property
    def is_closed(self) -> bool:
        if not self.segments:
            return False
        return self.segments[0].start == self.segments[-1].end


def _rotate_z(v: Vector3D, angle: float) -> Vector3D:
    return Transform.rotation_z(angle).apply_direction(v)


def _vertex_key(v: Vector3D) -> tuple[float, float, float]:
    # Rounded so that rotation noise lands on the vertex it was aimed at
    return (round(v.x, 9) + 0.0, round(v.y, 9) + 0.0, round(v.z, 9) + 0.0)


class PathBuilder:
    """Builds a Path by moving a cursor around.

    The cursor has a position (the current vertex) and a forward direction,
    which starts out along +X and follows every line and turn.
    """

    def __init__(self, start_point: Vector3D):
        start_point = Vector3D(*start_point)
        self._vertexes: list[Vector3D] = [start_point]
        self._segments: list[PathSegment] = []
        self._vertex_indexes: dict[tuple[float, float, float], int] = {
            _vertex_key(start_point): 0
        }
        self._current_index = 0
        self._direction = Vector3D(1.0, 0.0, 0.0)

    @property
    def path(self) -> Path:
        return Path(tuple(self._vertexes), tuple(self._segments))

    @property
    def current_position(self) -> Vector3D:
        return self._vertexes[self._current_index]

    @property
    def current_direction(self) -> Vector3D:
        return self._direction

    def _find_vertex(self, pos: Vector3D) -> int:
        key = _vertex_key(pos)
        index = self._vertex_indexes.get(key)
        if index is not None:
            return index
        self._vertexes.append(pos)
        index = len(self._vertexes) - 1
        self._vertex_indexes[key] = index
        return index

    def line_to(self, point: Vector3D) -> "PathBuilder":
        """Straight segment to ``point``; a no-op if already there."""
        point = Vector3D(*point)
        end_index = self._find_vertex(point)
        if end_index == self._current_index:
            return self
        self._segments.append(StraightSegment(self._current_index, end_index))
        self._direction = (self._vertexes[end_index] - self.current_position).normalized()
        self._current_index = end_index
        return self

    def turn(
        self,
        angle: float,
        radius: float = 0.0,
        style: CornerStyle = CornerStyle.ROUND,
    ) -> "PathBuilder":
        """Turn by ``angle`` radians (positive is counterclockwise).

        With a nonzero ``radius`` the corner is cut as an arc (or, for
        CHAMFER, a straight line to where the arc would have ended) around
        an axis placed ``radius`` to the inside of the turn.
        """
        if radius != 0:
            start = self.current_position
            forward = self._direction.scaled(radius)
            to_axis_from_start = _rotate_z(forward, math.pi / 2 if angle > 0 else -math.pi / 2)
            to_axis_from_end = _rotate_z(to_axis_from_start, angle)
            axis_position = start + to_axis_from_start
            end_position = axis_position - to_axis_from_end

            axis_index = self._find_vertex(axis_position)
            end_index = self._find_vertex(end_position)
            if style is CornerStyle.ROUND:
                sense = ArcSense.CLOCKWISE if angle < 0 else ArcSense.COUNTERCLOCKWISE
                self._segments.append(ArcSegment(self._current_index, end_index, axis_index, sense))
            else:
                self._segments.append(StraightSegment(self._current_index, end_index))
            self._current_index = end_index
        self._direction = _rotate_z(self._direction, angle).normalized()
        return self

    def line_to_corner_start(self, corner: Vector3D, angle: float, radius: float) -> "PathBuilder":
        """Head for ``corner`` but stop where a rounded turn must begin."""
        corner = Vector3D(*corner)
        forward = corner - self.current_position
        forward_length = forward.length
        if forward_length == 0:
            return self
        corner_length = radius * math.tan(abs(angle) / 2)
        shortened = forward.scaled((forward_length - corner_length) / forward_length)
        return self.line_to(self.current_position + shortened)

    def close_loop(self) -> "PathBuilder":
        return self.line_to(self._vertexes[0])


FULL_TURN = math.pi * 2
QUARTER_TURN = math.pi / 2


def _edge(start: Optional[float], center: Optional[float], size: float, var_name: str) -> float:
    if start is not None:
        return start
    if center is not None:
        return center - size / 2
    raise PathError(f"Either '{var_name}0' or 'c{var_name}' must be specified for box")


def box_path(
    width: float,
    height: float,
    x0: Optional[float] = None,
    y0: Optional[float] = None,
    cx: Optional[float] = None,
    cy: Optional[float] = None,
    corner_radius: float = 0.0,
    corner_style: CornerStyle = CornerStyle.ROUND,
) -> Path:
    """Counterclockwise rectangle, optionally with rounded or chamfered corners."""
    x0 = _edge(x0, cx, width, "x")
    y0 = _edge(y0, cy, height, "y")
    c = corner_radius
    pb = PathBuilder(Vector3D(x0 + c, y0, 0.0))
    for corner in (
        Vector3D(x0 + width, y0, 0.0),
        Vector3D(x0 + width, y0 + height, 0.0),
        Vector3D(x0, y0 + height, 0.0),
        Vector3D(x0, y0, 0.0),
    ):
        pb.line_to_corner_start(corner, QUARTER_TURN, c)
        pb.turn(QUARTER_TURN, c, corner_style)
    return pb.close_loop().path


def circle_path(radius: float) -> Path:
    """Full counterclockwise circle around the origin, starting at (0, -radius)."""
    pb = PathBuilder(Vector3D(0.0, -radius, 0.0))
    return pb.turn(FULL_TURN, radius).close_loop().path
