"""V-carving with a V-bit.

Each outline edge is carved at the depth where the V-bit cuts a groove of
the stroke width: ``width / (2 * tan(half_angle))``, capped at the maximum
depth.  Stroke widths come from ``stroke_widths``, which currently assigns
every edge the configured default width instead of measuring the distance
to the medial axis.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ..design import DesignObject, object_is_closed, object_points
from ..geometry import Point2D
from ..operation import OperationSettings, VCarveSettings
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import plunge_at, retract

logger = logging.getLogger(__name__)

DEFAULT_BIT_ANGLE = 60.0   # degrees, included angle


def stroke_widths(
    points: Sequence[Point2D],
    closed: bool,
    width: float,
) -> list[tuple[Point2D, Point2D, float]]:
    """(start, end, width) for every edge of the outline."""
    edges = list(zip(points, points[1:]))
    if closed and len(points) > 2:
        edges.append((points[-1], points[0]))
    return [(a, b, width) for a, b in edges]


def carve_depth(width: float, bit_angle: float, max_depth: float) -> float:
    """Depth at which a V-bit of *bit_angle* cuts a groove *width* wide."""
    half = math.radians(bit_angle / 2.0)
    if half <= 0 or half >= math.pi / 2:
        raise ValueError(f"V-bit angle must be between 0 and 180 degrees, got {bit_angle}")
    return min(width / (2.0 * math.tan(half)), max_depth)


def generate_vcarve_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    vcarve = settings.vcarve or VCarveSettings()
    max_depth = vcarve.max_depth if vcarve.max_depth is not None else settings.cut_depth
    bit_angle = tool.tip_angle or DEFAULT_BIT_ANGLE
    if not 0 < bit_angle < 180:
        builder.warn(f"V-bit angle must be between 0 and 180 degrees, got {bit_angle:g}; "
                     "nothing generated")
        return StrategyResult.from_builder(builder)

    for obj in objects:
        points = object_points(obj)
        if len(points) < 2:
            builder.warn(f"Object {obj.id} has no usable outline; skipped")
            continue

        for (x0, y0), (x1, y1), width in stroke_widths(
                points, object_is_closed(obj), vcarve.default_width):
            z = -carve_depth(width, bit_angle, max_depth)
            if builder.position != (x0, y0, z):
                plunge_at(builder, x0, y0, z, settings, safe_height)
            builder.feed_to(x1, y1, z, settings.feed_rate)
        retract(builder, safe_height)

    logger.debug("vcarve: %d objects, bit %.0f deg, %d segments",
                 len(objects), bit_angle, len(builder))
    return StrategyResult.from_builder(builder)
