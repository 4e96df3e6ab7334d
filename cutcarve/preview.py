"""SVG preview of a cut tree, seen from above."""

import html
import logging
import math
from dataclasses import dataclass
from pathlib import Path as FilePath
from typing import Optional, Union

from svgpathtools import Arc, Line, Path as SvgPath

from .cuts import ConicPocket, Cut
from .geometry import BoundingBox, Transform, Vector3D
from .job import JobContext
from .paths import ArcSegment, Path
from .traversal import Frame, process_cut

logger = logging.getLogger(__name__)


@dataclass
class PreviewItem:
    """One drawable thing: a stroked path or a filled disc."""
    d: Optional[str] = None
    stroke_width: float = 0.0
    center: Optional[Vector3D] = None
    radius: float = 0.0
    opacity: float = 1.0


def _point(v: Vector3D) -> complex:
    return complex(v.x, v.y)


def _swept_angle(start: Vector3D, end: Vector3D, center: Vector3D, ccw: bool) -> float:
    """Angle travelled from start to end around center, in (0, 2*pi]."""
    a0 = math.atan2(start.y - center.y, start.x - center.x)
    a1 = math.atan2(end.y - center.y, end.x - center.x)
    swept = (a1 - a0) if ccw else (a0 - a1)
    swept %= 2 * math.pi
    if swept < 1e-9:
        swept = 2 * math.pi
    return swept


def _svg_arcs(start: Vector3D, end: Vector3D, center: Vector3D, ccw: bool) -> list[Arc]:
    """Split an arc into pieces of at most a quarter turn.

    svgpathtools finds an arc's center from its endpoints, which doesn't
    work for full circles and is touchy for half circles.
    """
    radius = (start - center).length
    swept = _swept_angle(start, end, center, ccw)
    count = max(1, math.ceil(swept / (math.pi / 2) - 1e-9))
    a0 = math.atan2(start.y - center.y, start.x - center.x)
    sign = 1 if ccw else -1
    arcs = []
    previous = start
    for k in range(1, count + 1):
        if k == count:
            point = end
        else:
            angle = a0 + sign * swept * k / count
            point = Vector3D(center.x + radius * math.cos(angle), center.y + radius * math.sin(angle))
        arcs.append(
            Arc(
                start=_point(previous),
                radius=complex(radius, radius),
                rotation=0,
                large_arc=False,
                sweep=ccw,
                end=_point(point),
            )
        )
        previous = point
    return arcs


def path_to_svg(path: Path, transform: Transform) -> SvgPath:
    """Convert a path to svgpathtools segments in machine coordinates."""
    mirrored = transform.is_mirrored
    segments: list[Union[Line, Arc]] = []
    for segment in path.segments:
        start = transform.apply(path.vertex(segment.start))
        end = transform.apply(path.vertex(segment.end))
        if isinstance(segment, ArcSegment):
            center = transform.apply(path.vertex(segment.axis))
            ccw = (segment.sense.sign > 0) != mirrored
            segments.extend(_svg_arcs(start, end, center, ccw))
        else:
            segments.append(Line(_point(start), _point(end)))
    return SvgPath(*segments)


class SVGPreview:
    """Cut backend that collects drawable items instead of moving a bit."""

    def __init__(self, context: JobContext):
        self.context = context
        self.min_z = float(context.min_z)
        self.items: list[PreviewItem] = []
        self.bounds = BoundingBox.empty()
        self.comments: list[str] = []

    def process_path(self, path: Path, frame: Frame) -> None:
        if not path.segments:
            return
        depth = frame.surface_z - frame.target_z(self.min_z)
        width = self.context.router_bit.diameter_function(depth)
        svg_path = path_to_svg(path, frame.transform)
        xmin, xmax, ymin, ymax = svg_path.bbox()
        self.bounds.include(Vector3D(xmin, ymin), width / 2)
        self.bounds.include(Vector3D(xmax, ymax), width / 2)
        self.items.append(PreviewItem(d=svg_path.d(), stroke_width=width))

    def process_circle(self, diameter: float, frame: Frame) -> None:
        center = frame.position
        self.bounds.include(center, diameter / 2)
        self.items.append(PreviewItem(center=center, radius=diameter / 2))

    def process_conic_pocket(self, pocket: ConicPocket, frame: Frame) -> None:
        center = frame.position
        radius = pocket.diameter * frame.transform.xy_scale / 2
        self.bounds.include(center, radius)
        self.items.append(PreviewItem(center=center, radius=radius, opacity=0.5))

    def process_pause(self, frame: Frame) -> None:
        pass

    def process_comment(self, text: str) -> None:
        self.comments.append(text)

    def to_svg(self, title: Optional[str] = None, margin: float = 0.0) -> str:
        """Render the collected items as an SVG document, +Y up."""
        bounds = self.bounds if not self.bounds.is_empty else BoundingBox(0.0, 0.0, 0.0, 0.0)
        bounds = bounds.padded(margin)
        unit = self.context.native_unit.abbreviation
        lines = [
            '<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{bounds.width:g}{unit}" height="{bounds.height:g}{unit}" '
            f'viewBox="{bounds.min_x:g} {-bounds.max_y:g} {bounds.width:g} {bounds.height:g}">',
        ]
        if title:
            lines.append(f"<title>{html.escape(title)}</title>")
        lines.append('<g transform="scale(1,-1)" fill="none" stroke="black" stroke-linecap="round">')
        for item in self.items:
            if item.d is not None:
                lines.append(f'<path d="{item.d}" stroke-width="{item.stroke_width:g}"/>')
            else:
                lines.append(
                    f'<circle cx="{item.center.x:g}" cy="{item.center.y:g}" r="{item.radius:g}" '
                    f'fill="black" stroke="none" fill-opacity="{item.opacity:g}"/>'
                )
        lines.append("</g>")
        lines.append("</svg>")
        return "\n".join(lines) + "\n"


def cut_to_svg(cut: Cut, context: JobContext, title: Optional[str] = None) -> str:
    preview = SVGPreview(context)
    process_cut(cut, preview, context)
    logger.info("Preview has %d items", len(preview.items))
    return preview.to_svg(title=title, margin=context.router_bit.diameter_function(0))


def save_svg(cut: Cut, context: JobContext, path: FilePath, title: Optional[str] = None) -> None:
    with open(path, "w") as f:
        f.write(cut_to_svg(cut, context, title))
