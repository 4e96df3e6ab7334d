"""Toolpath generation: turns a Cut tree into router moves."""

import logging
import math
from enum import Enum
from typing import Optional

from .cuts import ConicPocket, Cut
from .gcode import CarveError, GCodeBuilder, GCodeSettings
from .geometry import Transform, Vector3D
from .job import JobContext
from .paths import ArcSegment, Path, PathSegment, circle_path
from .traversal import Frame, process_cut

logger = logging.getLogger(__name__)

# Largest radial step between conic pocket rings, in native units
MAX_RING_STEP = 1 / 16


class MotionState(Enum):
    SAFE_HEIGHT = "safe-height"
    PLUNGING = "plunging"
    CUTTING = "cutting"
    RETRACTING = "retracting"


def _calculate_depth_passes(surface_z: float, target_z: float, step_down: float) -> list[float]:
    """Calculate the Z for each pass, shallowest to deepest, ending at target_z."""
    if target_z >= surface_z:
        return []

    count = math.ceil((surface_z - target_z) / step_down - 1e-9)
    passes = [surface_z - step_down * k for k in range(1, count)]
    passes.append(target_z)
    return passes


def _ring_radii(top_radius: float, bottom_radius: float, step: float) -> list[float]:
    """Radii from top to bottom in steps of ``step``, always ending on bottom."""
    if top_radius == bottom_radius:
        return [bottom_radius]
    sign = 1 if bottom_radius > top_radius else -1
    count = math.ceil(abs(bottom_radius - top_radius) / step - 1e-9)
    radii = [top_radius + sign * step * k for k in range(count)]
    radii.append(bottom_radius)
    return radii


class ToolpathCarver:
    """Carving backend for the cut tree walker; writes to a GCodeBuilder."""

    def __init__(self, builder: GCodeBuilder):
        self.builder = builder
        self.context: JobContext = builder.context
        self.min_z = float(self.context.min_z)
        self.state = MotionState.SAFE_HEIGHT

    @property
    def bit(self):
        return self.context.router_bit

    def _fmt(self, value: float) -> str:
        return self.builder._format_coord(value)

    def process_comment(self, text: str) -> None:
        self.builder.comment(text)

    def zoom_to_safe_height(self) -> None:
        self.builder.rapid(z=self.builder.safe_z)
        self.state = MotionState.SAFE_HEIGHT

    def zoom_to(self, position: Vector3D, surface_z: float) -> None:
        """Rapid over ``position``, rapid down close to the surface, feed the rest."""
        self.zoom_to_safe_height()
        self.builder.rapid(x=position.x, y=position.y)
        self.state = MotionState.PLUNGING
        fast_z = max(self.builder.minimum_fast_z, surface_z)
        self.builder.rapid(z=fast_z)
        if fast_z != surface_z:
            self.builder.linear(z=surface_z)

    def _carve_segment(
        self, path: Path, segment: PathSegment, direction: int, transform: Transform
    ) -> None:
        if direction > 0:
            start_index, end_index = segment.start, segment.end
        else:
            start_index, end_index = segment.end, segment.start
        start = transform.apply(path.vertex(start_index))
        end = transform.apply(path.vertex(end_index))

        if isinstance(segment, ArcSegment):
            center = transform.apply(path.vertex(segment.axis))
            sense = direction * segment.sense.sign
            if transform.is_mirrored:
                sense = -sense
            self.builder.arc(
                clockwise=sense < 0,
                x=end.x,
                y=end.y,
                i=center.x - start.x,
                j=center.y - start.y,
            )
        else:
            self.builder.linear(x=end.x, y=end.y)

    def carve_path(self, path: Path, transform: Transform, surface_z: float, target_z: float) -> None:
        """Trace ``path`` over and over, one step deeper each time, down to target_z.

        Open paths are traced back and forth; closed ones always the same way.
        """
        if not path.segments:
            return
        passes = _calculate_depth_passes(surface_z, target_z, self.builder.step_down)
        if not passes:
            return

        self.zoom_to(transform.apply(path.start_point), surface_z)
        direction = 1
        for z in passes:
            self.builder.comment(f"Step down to {self._fmt(z)}")
            self.builder.linear(z=z)
            self.state = MotionState.CUTTING
            start_position = self.builder.position
            segments = path.segments if direction > 0 else reversed(path.segments)
            for segment in segments:
                self._carve_segment(path, segment, direction, transform)
            if not self.builder.position.is_close(start_position):
                # Open path: head back the way we came on the next pass
                logger.debug("Path ended away from its start; reversing")
                direction = -direction
        self.state = MotionState.RETRACTING
        self.zoom_to_safe_height()

    def process_path(self, path: Path, frame: Frame) -> None:
        self.carve_path(path, frame.transform, frame.surface_z, frame.target_z(self.min_z))

    def bang_hole(self, position: Vector3D, surface_z: float, target_z: float) -> None:
        """Peck straight down: plunge a step past the last bottom, back off half a step."""
        if target_z >= surface_z:
            return
        step = self.builder.step_down
        self.zoom_to(position, surface_z)
        self.state = MotionState.CUTTING
        bottom = surface_z
        while True:
            bottom -= step
            if bottom < target_z + 1e-9:
                self.builder.linear(z=target_z)
                break
            self.builder.linear(z=bottom)
            self.builder.linear(z=bottom + step / 2)
        self.state = MotionState.RETRACTING
        self.builder.linear(z=surface_z)
        self.zoom_to_safe_height()

    def process_circle(self, diameter: float, frame: Frame) -> None:
        """Round hole: milled as circles if the bit fits inside, otherwise pecked."""
        tip = self.bit.diameter_function(0)
        center = frame.position
        surface_z = frame.surface_z
        target_z = frame.target_z(self.min_z)
        unit = self.context.native_unit.abbreviation
        if diameter - tip <= 0:
            self.builder.comment(f"{self._fmt(diameter)}{unit} hole will be a banger")
            logger.debug("Pecking %s%s hole with %s%s tip", diameter, unit, tip, unit)
            self.bang_hole(center, surface_z, target_z)
        else:
            self.builder.comment(f"{self._fmt(diameter)}{unit} hole will be circles")
            path = circle_path((diameter - tip) / 2)
            self.carve_path(path, Transform.translation(center.x, center.y, 0.0), surface_z, target_z)

    def process_conic_pocket(self, pocket: ConicPocket, frame: Frame) -> None:
        """Approximate a cone with a stack of ever smaller, ever deeper full circles."""
        if pocket.cuts_bottom:
            raise CarveError("Conic pockets with cuts_bottom=True are not supported")

        transform = frame.transform
        center = frame.position
        surface_z = center.z
        top_radius = pocket.diameter * transform.xy_scale / 2
        bottom_radius = pocket.bottom_diameter * transform.xy_scale / 2
        edge_depth = pocket.edge_depth * transform.z_scale
        bottom_depth = pocket.bottom_depth * transform.z_scale

        tip_radius = self.bit.diameter_function(0) / 2
        step = min(MAX_RING_STEP, tip_radius / 2) if tip_radius > 0 else MAX_RING_STEP

        def z_at(radius: float) -> float:
            if top_radius == bottom_radius:
                depth = bottom_depth
            else:
                t = (top_radius - radius) / (top_radius - bottom_radius)
                if math.isinf(bottom_depth):
                    depth = edge_depth if t == 0 else math.inf
                else:
                    depth = edge_depth + t * (bottom_depth - edge_depth)
            return max(self.min_z, surface_z - depth)

        radii = _ring_radii(top_radius, bottom_radius, step)
        self.zoom_to(Vector3D(center.x, center.y - radii[0], surface_z), surface_z)
        self.state = MotionState.CUTTING
        for radius in radii:
            z = z_at(radius)
            self.builder.linear(x=center.x, y=center.y - radius)
            self.builder.linear(z=z)
            if radius > 0:
                self.builder.arc(clockwise=False, x=center.x, y=center.y - radius, i=0.0, j=radius)
        self.state = MotionState.RETRACTING
        self.zoom_to_safe_height()

    def process_pause(self, frame: Frame) -> None:
        self.builder.pause()


def cut_to_gcode(
    cut: Cut,
    context: JobContext,
    settings: Optional[GCodeSettings] = None,
    job_name: Optional[str] = None,
) -> str:
    """Convert a cut tree to a complete G-code program.

    Args:
        cut: Root of the cut tree
        context: Native unit, stock thickness and bit
        settings: Heights, step-down, feeds and formatting
        job_name: Name for the header comment

    Raises CarveError (or the error of whatever failed) instead of
    returning a partial program.
    """
    builder = GCodeBuilder(context, settings)
    carver = ToolpathCarver(builder)

    builder.header()
    builder.comment(f"Job: {job_name}" if job_name else f"Cutting with {context.router_bit.name}")
    process_cut(cut, carver, context)
    builder.footer()

    gcode = builder.get_gcode()
    logger.info("Generated %d lines of G-code", gcode.count("\n"))
    return gcode
