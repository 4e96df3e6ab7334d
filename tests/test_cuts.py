"""Tests for cutcarve.cuts: building and decoding Cut trees."""

import json
import math
from fractions import Fraction

import pytest

from cutcarve.cuts import (
    Compound,
    ConicPocket,
    CutError,
    Pause,
    RoundHole,
    SpaceSide,
    TracePath,
    compound,
    cut_from_dict,
    load_cut_file,
    rectangular_array,
    rectangular_array_points,
)
from cutcarve.geometry import SimpleTransform, Transform, Vector3D
from cutcarve.paths import ArcSegment, ArcSense
from cutcarve.units import DISTANCE_UNITS, board_unit, boards, inches, millimeters


@pytest.fixture
def hole_pattern():
    """A compound of two through holes, as it would come out of a JSON file."""
    return {
        "type": "compound",
        "comment": "Mounting holes",
        "unit": "1mm",
        "transforms": [{"x": 0, "y": 0}, {"x": "25.4", "y": 0}],
        "components": [{"type": "round-hole", "diameter": 5}],
    }


def test_compound_from_dict(hole_pattern):
    cut = cut_from_dict(hole_pattern)
    assert isinstance(cut, Compound)
    assert cut.comment == "Mounting holes"
    assert cut.unit == millimeters(1)
    assert cut.transforms == (SimpleTransform(), SimpleTransform(x=25.4))
    assert cut.components == (RoundHole(diameter=5.0, depth=math.inf),)


def test_compound_defaults_to_one_placement():
    cut = cut_from_dict({"type": "compound", "components": [{"type": "pause"}]})
    assert cut.transforms == (SimpleTransform(),)
    assert cut.components == (Pause(),)


def test_round_hole_depths():
    assert cut_from_dict({"type": "round-hole", "diameter": "1/4", "depth": "through"}).depth == math.inf
    assert cut_from_dict({"type": "round-hole", "diameter": 0.25, "depth": "1/8"}).depth == 0.125


def test_trace_path_from_dict():
    cut = cut_from_dict({
        "type": "trace-path",
        "depth": 0.1,
        "spaceSide": "left",
        "path": {
            "vertexes": [[0, -1], [0, 0], [0, 1]],
            "segments": [{"kind": "arc", "start": 0, "end": 2, "axis": 1, "sense": "ccw"}],
        },
    })
    assert isinstance(cut, TracePath)
    assert cut.space_side is SpaceSide.LEFT
    assert cut.path.vertexes[1] == Vector3D(0.0, 0.0, 0.0)
    assert cut.path.segments == (ArcSegment(0, 2, 1, ArcSense.COUNTERCLOCKWISE),)


def test_conic_pocket_from_dict():
    cut = cut_from_dict({
        "type": "conic-pocket",
        "diameter": 0.5,
        "bottomDiameter": 0.25,
        "bottomDepth": 0.1,
    })
    assert cut == ConicPocket(0.5, 0.0, 0.25, 0.1, cuts_bottom=False)


def test_matrix_transform_from_dict():
    cut = cut_from_dict({
        "type": "compound",
        "transforms": [{"matrix": [[-1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0]]}],
        "components": [],
    })
    (xf,) = cut.transforms
    assert isinstance(xf, Transform)
    assert xf.is_mirrored


def test_board_unit_needs_job_table():
    data = {"type": "compound", "unit": "1board", "components": []}
    with pytest.raises(CutError):
        cut_from_dict(data)
    table = {**DISTANCE_UNITS, "board": board_unit(Fraction(19))}
    assert cut_from_dict(data, table).unit == boards(1)


@pytest.mark.parametrize("data,match", [
    ({"type": "bevel"}, "Unknown cut type"),
    ({"type": "round-hole", "diameter": "wide"}, "diameter"),
    ({"type": "round-hole", "diameter": True}, "diameter"),
    ({"type": "trace-path", "spaceSide": "outside"}, "outside"),
    ({"type": "compound", "unit": "3 furlongs"}, "unit"),
    ({"type": "trace-path", "path": {"vertexes": [], "segments": [{"kind": "spline"}]}}, "spline"),
    ({"type": "trace-path", "path": {"vertexes": [], "segments": [{"start": 0}]}}, "missing"),
    ("round-hole", "must be an object"),
])
def test_bad_cut_data(data, match):
    with pytest.raises(CutError, match=match):
        cut_from_dict(data)


def test_load_cut_file(tmp_path, hole_pattern):
    path = tmp_path / "holes.json"
    path.write_text(json.dumps(hole_pattern))
    assert load_cut_file(path) == cut_from_dict(hole_pattern)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_compound_helper():
    hole = RoundHole(0.25)
    cut = compound([hole], [SimpleTransform(x=1)], unit=inches(1))
    assert cut.components == (hole,)
    assert cut.transforms == (SimpleTransform(x=1),)


def test_rectangular_array_points_walks_tighter_axis_first():
    points = rectangular_array_points(0, 1, 2, 0, 3, 2)
    assert [(p.x, p.y) for p in points] == [(0, 0), (1, 0), (0, 3), (1, 3)]
    points = rectangular_array_points(0, 3, 2, 0, 1, 2)
    assert [(p.x, p.y) for p in points] == [(0, 0), (0, 1), (3, 0), (3, 1)]


def test_rectangular_array_points_zero_spacing_counts_as_tighter():
    points = rectangular_array_points(0, 0, 2, 0, 1, 2)
    assert [(p.x, p.y) for p in points] == [(0, 0), (1, 0), (0, 1), (1, 1)]
    points = rectangular_array_points(0, 1, 2, 0, 0, 2)
    assert [(p.x, p.y) for p in points] == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_rectangular_array():
    cut = rectangular_array([RoundHole(0.1)], 0, 1, 3, 0, 1, 2)
    assert len(cut.transforms) == 6
