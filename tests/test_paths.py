"""Tests for cutcarve.paths.

Tests:
    - PathBuilder vertex sharing and no-op moves
    - Turns, with and without a radius
    - box_path and circle_path shapes
"""

import math

import pytest

from cutcarve.geometry import Vector3D
from cutcarve.paths import (
    QUARTER_TURN,
    ArcSegment,
    ArcSense,
    CornerStyle,
    Path,
    PathBuilder,
    PathError,
    StraightSegment,
    box_path,
    circle_path,
)


def test_line_to_same_point_twice_is_noop():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.line_to(Vector3D(1.0, 0.0))
    pb.line_to(Vector3D(1.0, 0.0))
    path = pb.path
    assert len(path.vertexes) == 2
    assert path.segments == (StraightSegment(0, 1),)


def test_line_to_reuses_vertexes():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.line_to(Vector3D(1.0, 0.0)).line_to(Vector3D(0.0, 0.0))
    path = pb.path
    assert len(path.vertexes) == 2
    assert path.segments[-1] == StraightSegment(1, 0)
    assert path.is_closed


def test_line_to_updates_direction():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    assert pb.current_direction == Vector3D(1.0, 0.0, 0.0)
    pb.line_to(Vector3D(0.0, 2.0))
    assert pb.current_direction == Vector3D(0.0, 1.0, 0.0)


def test_turn_without_radius_only_rotates():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.turn(QUARTER_TURN)
    assert pb.path.segments == ()
    assert pb.current_direction.is_close(Vector3D(0.0, 1.0, 0.0), 1e-12)


def test_turn_then_opposite_turn():
    """Test that a left arc followed by a right arc makes an S and restores heading."""
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.turn(QUARTER_TURN, 1.0)
    assert pb.current_position.is_close(Vector3D(1.0, 1.0, 0.0), 1e-9)
    assert pb.current_direction.is_close(Vector3D(0.0, 1.0, 0.0), 1e-9)
    pb.turn(-QUARTER_TURN, 1.0)
    assert pb.current_position.is_close(Vector3D(2.0, 2.0, 0.0), 1e-9)
    assert pb.current_direction.is_close(Vector3D(1.0, 0.0, 0.0), 1e-9)

    first, second = pb.path.segments
    assert isinstance(first, ArcSegment) and first.sense is ArcSense.COUNTERCLOCKWISE
    assert isinstance(second, ArcSegment) and second.sense is ArcSense.CLOCKWISE
    assert pb.path.vertex(first.axis).is_close(Vector3D(0.0, 1.0, 0.0), 1e-9)
    assert pb.path.vertex(second.axis).is_close(Vector3D(2.0, 1.0, 0.0), 1e-9)


def test_chamfer_turn_is_straight():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.turn(QUARTER_TURN, 1.0, CornerStyle.CHAMFER)
    (segment,) = pb.path.segments
    assert isinstance(segment, StraightSegment)
    assert pb.current_position.is_close(Vector3D(1.0, 1.0, 0.0), 1e-9)


def test_line_to_corner_start():
    pb = PathBuilder(Vector3D(0.0, 0.0))
    pb.line_to_corner_start(Vector3D(2.0, 0.0), QUARTER_TURN, 0.5)
    assert pb.current_position.is_close(Vector3D(1.5, 0.0, 0.0), 1e-9)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def test_box_path_square_corners():
    path = box_path(2, 1, x0=0, y0=0)
    assert len(path.segments) == 4
    assert len(path.vertexes) == 4
    assert all(isinstance(s, StraightSegment) for s in path.segments)
    assert path.is_closed
    assert path.start_point == Vector3D(0.0, 0.0, 0.0)


def test_box_path_centered():
    path = box_path(2, 1, cx=0, cy=0)
    assert path.start_point == Vector3D(-1.0, -0.5, 0.0)


def test_box_path_rounded_corners():
    path = box_path(2, 1, x0=0, y0=0, corner_radius=0.25)
    arcs = [s for s in path.segments if isinstance(s, ArcSegment)]
    assert len(path.segments) == 8
    assert len(arcs) == 4
    assert all(arc.sense is ArcSense.COUNTERCLOCKWISE for arc in arcs)
    assert path.is_closed


def test_box_path_needs_position():
    with pytest.raises(PathError):
        box_path(2, 1, y0=0)


def test_circle_path():
    path = circle_path(0.5)
    (segment,) = path.segments
    assert isinstance(segment, ArcSegment)
    assert segment.start == segment.end
    assert path.vertex(segment.axis).is_close(Vector3D(0.0, 0.0, 0.0), 1e-12)
    assert path.start_point == Vector3D(0.0, -0.5, 0.0)
    assert math.isclose((path.start_point - path.vertex(segment.axis)).length, 0.5)


def test_vertex_out_of_range():
    path = Path((Vector3D(0.0, 0.0),), ())
    with pytest.raises(PathError):
        path.vertex(3)
    with pytest.raises(PathError):
        path.vertex(None)
    assert path.start_point is None
