"""Finds how much of the stock a cut tree will touch."""

import logging
from typing import Optional

from .cuts import ConicPocket, Cut
from .geometry import BoundingBox, Vector3D
from .job import JobContext
from .paths import ArcSegment, Path
from .traversal import Frame, process_cut

logger = logging.getLogger(__name__)


class BoundsFinder:
    """Cut backend that only grows a bounding box.

    XY extents are padded by half the bit's width at the cut's depth, so
    the box covers the wood removed rather than the centerline.  Arcs
    count their whole circle.
    """

    def __init__(self, context: JobContext):
        self.context = context
        self.min_z = float(context.min_z)
        self.bounds = BoundingBox.empty()
        self.comments: list[str] = []

    def _bit_radius(self, surface_z: float, target_z: float) -> float:
        return self.context.router_bit.diameter_function(surface_z - target_z) / 2

    def process_path(self, path: Path, frame: Frame) -> None:
        target_z = frame.target_z(self.min_z)
        radius = self._bit_radius(frame.surface_z, target_z)
        transform = frame.transform
        for segment in path.segments:
            start = transform.apply(path.vertex(segment.start))
            end = transform.apply(path.vertex(segment.end))
            self.bounds.include(Vector3D(start.x, start.y, target_z), radius)
            self.bounds.include(Vector3D(end.x, end.y, frame.surface_z), radius)
            if isinstance(segment, ArcSegment):
                center = transform.apply(path.vertex(segment.axis))
                arc_radius = (start - center).length
                self.bounds.include(Vector3D(center.x, center.y, target_z), arc_radius + radius)

    def process_circle(self, diameter: float, frame: Frame) -> None:
        center = frame.position
        self.bounds.include(Vector3D(center.x, center.y, frame.surface_z), diameter / 2)
        self.bounds.include(Vector3D(center.x, center.y, frame.target_z(self.min_z)))

    def process_conic_pocket(self, pocket: ConicPocket, frame: Frame) -> None:
        center = frame.position
        transform = frame.transform
        radius = max(pocket.diameter, pocket.bottom_diameter) * transform.xy_scale / 2
        deepest = max(pocket.edge_depth, pocket.bottom_depth) * transform.z_scale
        self.bounds.include(center, radius)
        self.bounds.include(Vector3D(center.x, center.y, max(self.min_z, center.z - deepest)))

    def process_pause(self, frame: Frame) -> None:
        pass

    def process_comment(self, text: str) -> None:
        self.comments.append(text)


def find_bounds(cut: Cut, context: JobContext) -> Optional[BoundingBox]:
    """Bounding box of everything ``cut`` removes, or None if it removes nothing."""
    finder = BoundsFinder(context)
    process_cut(cut, finder, context)
    if finder.bounds.is_empty:
        return None
    logger.debug(
        "Bounds: %.4f x %.4f, z %.4f..%.4f",
        finder.bounds.width, finder.bounds.height, finder.bounds.min_z, finder.bounds.max_z,
    )
    return finder.bounds
