"""The Cut tree: what to carve, independent of how it gets carved."""

import json
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path as FilePath
from typing import Any, Optional, Sequence, Union

from .geometry import SimpleTransform, Transform, Transformish, Vector3D
from .paths import ArcSegment, ArcSense, Path, PathSegment, StraightSegment
from .units import (
    DISTANCE_UNITS,
    ComplexAmount,
    UnitError,
    UnitTable,
    get_unit,
    parse_amount,
    parse_number,
)


class CutError(ValueError):
    """Raised when a cut description cannot be decoded."""


class SpaceSide(Enum):
    """Which side of a traced path is open space rather than material."""
    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"


@dataclass(frozen=True)
class Compound:
    """Every component, instantiated once per transform.

    ``unit``, when given, is the unit that descendant measurements are
    written in.
    """
    transforms: tuple[Transformish, ...]
    components: tuple["Cut", ...]
    unit: Optional[ComplexAmount] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class TracePath:
    path: Path
    depth: float = 0.0
    space_side: SpaceSide = SpaceSide.MIDDLE
    comment: Optional[str] = None


@dataclass(frozen=True)
class RoundHole:
    diameter: float
    depth: float = math.inf
    comment: Optional[str] = None


@dataclass(frozen=True)
class ConicPocket:
    """Cone-shaped pocket, e.g. a countersink."""
    diameter: float
    edge_depth: float
    bottom_diameter: float
    bottom_depth: float
    cuts_bottom: bool = False
    comment: Optional[str] = None


@dataclass(frozen=True)
class Pause:
    comment: Optional[str] = None


Cut = Union[Compound, TracePath, RoundHole, ConicPocket, Pause]

IDENTITY_TRANSFORMS: tuple[Transformish, ...] = (Transform.identity(),)


def compound(
    components: Sequence[Cut],
    transforms: Sequence[Transformish] = IDENTITY_TRANSFORMS,
    unit: Optional[ComplexAmount] = None,
    comment: Optional[str] = None,
) -> Compound:
    return Compound(tuple(transforms), tuple(components), unit, comment)


def rectangular_array_points(
    x0: float, dx: float, count_x: int,
    y0: float, dy: float, count_y: int,
) -> list[SimpleTransform]:
    """Grid positions, iterating along the axis with the smaller spacing first.

    A spacing of 0 places points 1 apart but still counts as the smaller one.
    """
    xs = [x0 + (dx or 1) * i for i in range(count_x)]
    ys = [y0 + (dy or 1) * j for j in range(count_y)]
    if dx < dy:
        return [SimpleTransform(x=x, y=y) for y in ys for x in xs]
    return [SimpleTransform(x=x, y=y) for x in xs for y in ys]


def rectangular_array(
    cuts: Sequence[Cut],
    x0: float, dx: float, count_x: int,
    y0: float, dy: float, count_y: int,
) -> Compound:
    return compound(cuts, rectangular_array_points(x0, dx, count_x, y0, dy, count_y))


# Decoding from plain data (JSON)


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise CutError(f"Expected a number for {what}, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        if value.strip().lower() in ("inf", "infinity", "through"):
            return math.inf
        try:
            return float(parse_number(value))
        except UnitError as e:
            raise CutError(f"Bad {what}: {e}") from e
    raise CutError(f"Expected a number for {what}, got {value!r}")


def _transform_from_dict(data: Any) -> Transformish:
    if not isinstance(data, dict):
        raise CutError(f"Transform must be an object, got {data!r}")
    if "matrix" in data:
        try:
            return Transform([[float(v) for v in row] for row in data["matrix"]])
        except (TypeError, ValueError) as e:
            raise CutError(f"Bad transform matrix: {e}") from e
    return SimpleTransform(
        x=_number(data.get("x", 0), "transform x"),
        y=_number(data.get("y", 0), "transform y"),
        z=_number(data.get("z", 0), "transform z"),
        rotation_degrees=_number(data.get("rotation", 0), "transform rotation"),
        scale=_number(data.get("scale", 1), "transform scale"),
    )


def _segment_from_dict(data: dict) -> PathSegment:
    kind = data.get("kind", "straight")
    try:
        if kind == "straight":
            return StraightSegment(int(data["start"]), int(data["end"]))
        if kind == "arc":
            return ArcSegment(
                int(data["start"]), int(data["end"]), int(data["axis"]), ArcSense(data["sense"])
            )
    except KeyError as e:
        raise CutError(f"Path segment is missing {e}") from e
    except ValueError as e:
        raise CutError(f"Bad path segment {data!r}: {e}") from e
    raise CutError(f"Unknown path segment kind '{kind}'")


def path_from_dict(data: dict) -> Path:
    vertexes = tuple(
        Vector3D(*(_number(c, "vertex coordinate") for c in v)) for v in data.get("vertexes", ())
    )
    segments = tuple(_segment_from_dict(s) for s in data.get("segments", ()))
    return Path(vertexes, segments)


def _unit_from_data(data: Any, table: UnitTable) -> ComplexAmount:
    try:
        if isinstance(data, str):
            return parse_amount(data, table)
        if isinstance(data, dict):
            return ComplexAmount(
                {get_unit(name, table).name: parse_number(str(v)) for name, v in data.items()}
            )
    except UnitError as e:
        raise CutError(f"Bad unit: {e}") from e
    raise CutError(f"Bad unit {data!r}")


def cut_from_dict(data: Any, table: UnitTable = DISTANCE_UNITS) -> Cut:
    """Build a Cut tree from plain dicts, as loaded from JSON.

    Each node names its variant in ``"type"``: ``compound``, ``trace-path``,
    ``round-hole``, ``conic-pocket`` or ``pause``.
    """
    if not isinstance(data, dict):
        raise CutError(f"Cut must be an object, got {data!r}")
    kind = data.get("type")
    comment = data.get("comment")
    if kind == "compound":
        unit = data.get("unit")
        return Compound(
            transforms=tuple(
                _transform_from_dict(t) for t in data.get("transforms", [{"x": 0, "y": 0}])
            ),
            components=tuple(cut_from_dict(c, table) for c in data.get("components", ())),
            unit=_unit_from_data(unit, table) if unit is not None else None,
            comment=comment,
        )
    if kind == "trace-path":
        try:
            space_side = SpaceSide(data.get("spaceSide", "middle"))
        except ValueError as e:
            raise CutError(str(e)) from e
        return TracePath(
            path=path_from_dict(data["path"]) if "path" in data else Path((), ()),
            depth=_number(data.get("depth", 0), "depth"),
            space_side=space_side,
            comment=comment,
        )
    if kind == "round-hole":
        return RoundHole(
            diameter=_number(data.get("diameter"), "diameter"),
            depth=_number(data.get("depth", "inf"), "depth"),
            comment=comment,
        )
    if kind == "conic-pocket":
        return ConicPocket(
            diameter=_number(data.get("diameter"), "diameter"),
            edge_depth=_number(data.get("edgeDepth", 0), "edgeDepth"),
            bottom_diameter=_number(data.get("bottomDiameter"), "bottomDiameter"),
            bottom_depth=_number(data.get("bottomDepth"), "bottomDepth"),
            cuts_bottom=bool(data.get("cutsBottom", False)),
            comment=comment,
        )
    if kind == "pause":
        return Pause(comment=comment)
    raise CutError(f"Unknown cut type {kind!r}")


def load_cut_file(path: FilePath, table: UnitTable = DISTANCE_UNITS) -> Cut:
    """Load a Cut tree from a JSON file."""
    with open(path) as f:
        return cut_from_dict(json.load(f), table)
