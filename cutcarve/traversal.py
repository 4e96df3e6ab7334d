"""Walks a Cut tree, tracking transform, active unit and depth.

The walker knows nothing about G-code or SVG.  It hands each leaf to a
backend along with a Frame describing where, in native units, that leaf
ends up.  Frames are immutable, so leaving a subtree (normally or by
exception) always restores the parent's transform, unit and depth.
"""

import logging
import math
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Optional, Protocol

from .cuts import Compound, ConicPocket, Cut, Pause, RoundHole, TracePath
from .geometry import ORIGIN, Transform, Transformish, Vector3D, to_transform
from .job import JobContext
from .paths import Path
from .units import ComplexAmount

logger = logging.getLogger(__name__)

MAX_NESTING = 256


class TraversalError(RuntimeError):
    """Raised when a cut tree cannot be walked."""


@dataclass(frozen=True)
class Frame:
    """Where the current node lives.

    ``transform`` maps node coordinates to native machine coordinates,
    including any depth offset.  ``surface_z`` is the Z the cut starts
    from and ``through`` means it goes all the way to the bottom of the
    stock.
    """
    transform: Transform
    unit: ComplexAmount
    surface_z: float = 0.0
    through: bool = False
    level: int = 0

    @classmethod
    def root(cls, context: JobContext) -> "Frame":
        return cls(Transform.identity(), ComplexAmount({context.native_unit.name: 1}))

    def transformed(self, xf: Transformish) -> "Frame":
        return replace(self, transform=self.transform @ to_transform(xf), level=self.level + 1)

    def rescaled(self, unit: ComplexAmount, context: JobContext) -> "Frame":
        """Switch to measuring in ``unit``."""
        active = context.decode(self.unit)
        declared = context.decode(unit)
        if active == 0:
            raise TraversalError(f"Active unit {self.unit} has zero size")
        ratio: Fraction = declared / active
        if ratio == 1:
            return replace(self, unit=unit)
        return replace(self, transform=self.transform @ Transform.scale(float(ratio)), unit=unit)

    def descended(self, depth: float) -> "Frame":
        """Frame for a cut ``depth`` (in node units) below this one."""
        surface = self.transform.origin.z
        if depth == math.inf:
            return replace(self, surface_z=surface, through=True)
        if not depth:
            return replace(self, surface_z=surface)
        return replace(
            self,
            transform=self.transform @ Transform.translation(0.0, 0.0, -depth),
            surface_z=surface,
        )

    def target_z(self, min_z: float) -> float:
        """Bottom of the cut, never below the bottom of the stock."""
        if self.through:
            return float(min_z)
        return max(float(min_z), self.transform.origin.z)

    def apply(self, v: Vector3D) -> Vector3D:
        return self.transform.apply(v)

    @property
    def position(self) -> Vector3D:
        return self.transform.apply(ORIGIN)


class CutBackend(Protocol):
    """What a consumer of the cut tree has to implement.

    Distances handed to the hooks are in native units, except for
    ConicPocket fields, which are in node units (scale them with the
    frame's transform).
    """

    def process_path(self, path: Path, frame: Frame) -> None:
        ...

    def process_circle(self, diameter: float, frame: Frame) -> None:
        ...

    def process_conic_pocket(self, pocket: ConicPocket, frame: Frame) -> None:
        ...

    def process_pause(self, frame: Frame) -> None:
        ...

    def process_comment(self, text: str) -> None:
        ...


def process_cut(
    cut: Cut,
    backend: CutBackend,
    context: JobContext,
    frame: Optional[Frame] = None,
) -> None:
    """Hand every leaf of ``cut`` to ``backend``, depth first, in order."""
    if frame is None:
        frame = Frame.root(context)
    if frame.level > MAX_NESTING:
        raise TraversalError(f"Cut tree nested more than {MAX_NESTING} levels deep")

    comment = getattr(cut, "comment", None)
    if comment:
        backend.process_comment(comment)

    match cut:
        case Compound():
            if cut.unit is not None:
                frame = frame.rescaled(cut.unit, context)
            for xf in cut.transforms:
                child_frame = frame.transformed(xf)
                for component in cut.components:
                    process_cut(component, backend, context, child_frame)
        case TracePath():
            # No bit radius compensation: the nominal path is followed whatever the side
            logger.debug("Tracing path (space side %s)", cut.space_side.value)
            backend.process_path(cut.path, frame.descended(cut.depth))
        case RoundHole():
            diameter = cut.diameter * frame.transform.xy_scale
            backend.process_circle(diameter, frame.descended(cut.depth))
        case ConicPocket():
            backend.process_conic_pocket(cut, frame)
        case Pause():
            backend.process_pause(frame)
        case _:
            raise TraversalError(f"Don't know how to process {type(cut).__name__}")
