"""Pocket clearing strategies.

``offset``
    Concentric rings stepping inward from the tool-radius inset by the
    stepover until a ring collapses: its signed area flips or vanishes, an
    edge turns against its source edge, or the ring stops shrinking.
``raster``
    Parallel scan lines clipped to the tool-radius inset of the outline,
    alternating direction line to line.
``spiral``
    An Archimedean spiral grown from the area centroid; only the parts
    inside the inset outline are cut, with a retract over every gap.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ..design import DesignObject, object_points
from ..geometry import (
    Point2D,
    max_distance_from,
    offset_polygon,
    point_in_polygon,
    polygon_area,
    polygon_centroid,
    signed_area,
)
from ..operation import OperationSettings, PocketSettings, PocketStart, PocketStrategy
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import (
    clip_line,
    ensure_polygon,
    feed_along,
    iter_polygons,
    pass_depths,
    plunge_at,
    raster_lines_in_bounds,
    retract,
    stepover_distance,
    to_polygon,
)

logger = logging.getLogger(__name__)

MAX_OFFSET_RINGS = 1_000
MAX_SPIRAL_STEPS = 200_000
SPIRAL_ANGLE_STEP = 0.1
# Rings smaller than this (mm^2) are treated as collapsed.
MIN_RING_AREA = 1e-6


def _collapsed(points: Sequence[Point2D], ring: Sequence[Point2D]) -> bool:
    """True when the inset *ring* has passed through itself."""
    if signed_area(ring) * math.copysign(1.0, signed_area(points)) <= MIN_RING_AREA:
        return True
    n = len(points)
    for i in range(n):
        ax, ay = points[i]
        bx, by = points[(i + 1) % n]
        cx, cy = ring[i]
        dx, dy = ring[(i + 1) % n]
        if (bx - ax) * (dx - cx) + (by - ay) * (dy - cy) < 0:
            return True
    return False


def offset_rings(
    points: Sequence[Point2D],
    tool_radius: float,
    stepover: float,
    builder: ToolpathBuilder,
) -> list[list[Point2D]]:
    """Inward rings at ``tool_radius + k * stepover``, outermost first."""
    rings: list[list[Point2D]] = []
    offset = tool_radius
    while True:
        if len(rings) >= MAX_OFFSET_RINGS:
            builder.warn(f"Offset pocket stopped after {MAX_OFFSET_RINGS} rings")
            break
        ring = offset_polygon(points, -offset)
        if _collapsed(points, ring):
            break
        if rings and polygon_area(ring) >= polygon_area(rings[-1]):
            # The miter offset has turned inside out and is growing again.
            break
        rings.append(ring)
        offset += stepover
    return rings


def _offset_pocket(builder, points, z, settings, pocket, tool_radius, stepover, safe_height):
    rings = offset_rings(points, tool_radius, stepover, builder)
    if pocket.start_point is PocketStart.CENTER:
        rings.reverse()
    for ring in rings:
        plunge_at(builder, ring[0][0], ring[0][1], z, settings, safe_height)
        feed_along(builder, ring, z, settings.feed_rate, closed=True)
        retract(builder, safe_height)


def _raster_pocket(builder, points, z, settings, pocket, tool_radius, stepover, safe_height):
    area = ensure_polygon(to_polygon(points).buffer(-tool_radius, join_style="mitre"))
    for poly in iter_polygons(area):
        xmin, ymin, xmax, ymax = poly.bounds
        rasters = raster_lines_in_bounds(
            xmin, xmax, ymin, ymax,
            step_over=stepover,
            angle_deg=pocket.raster_angle,
        )
        ux = math.cos(math.radians(pocket.raster_angle))
        uy = math.sin(math.radians(pocket.raster_angle))
        row = 0
        for line in rasters:
            pieces = clip_line(line, poly)
            if not pieces:
                continue
            for coords in pieces:
                (x0, y0), (x1, y1) = coords[0], coords[-1]
                forward = (x1 - x0) * ux + (y1 - y0) * uy >= 0
                if forward == (row % 2 == 1):
                    coords = list(reversed(coords))
                plunge_at(builder, coords[0][0], coords[0][1], z, settings, safe_height)
                feed_along(builder, coords[1:], z, settings.feed_rate)
                retract(builder, safe_height)
            row += 1


def _spiral_pocket(builder, points, z, settings, tool_radius, stepover, safe_height):
    boundary = offset_polygon(points, -tool_radius)
    if _collapsed(points, boundary):
        builder.warn("Spiral pocket: outline is narrower than the tool; nothing cut")
        return

    cx, cy = polygon_centroid(points)
    max_radius = max_distance_from(points, (cx, cy))
    radius = stepover
    angle = 0.0
    cutting = False
    steps = 0
    while radius < max_radius:
        if steps >= MAX_SPIRAL_STEPS:
            builder.warn(f"Spiral pocket truncated after {MAX_SPIRAL_STEPS} steps")
            break
        x = cx + math.cos(angle) * radius
        y = cy + math.sin(angle) * radius
        if point_in_polygon((x, y), boundary):
            if cutting:
                builder.feed_to(x, y, z, settings.feed_rate)
            else:
                plunge_at(builder, x, y, z, settings, safe_height)
                cutting = True
        elif cutting:
            retract(builder, safe_height)
            cutting = False
        angle += SPIRAL_ANGLE_STEP
        radius += stepover * SPIRAL_ANGLE_STEP / (2 * math.pi)
        steps += 1
    retract(builder, safe_height)


def generate_pocket_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    """Clear the inside of every closed outline in *objects*."""
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    pocket = settings.pocket or PocketSettings()
    tool_radius = tool.radius
    stepover = stepover_distance(builder, "Pocket", pocket.stepover,
                                 PocketSettings.stepover, tool.diameter)
    depths = pass_depths(settings.cut_depth, settings.depth_per_pass)

    for obj in objects:
        points = object_points(obj)
        if len(points) < 3:
            builder.warn(f"Object {obj.id} is not an area; pocket skipped")
            continue

        for z in depths:
            if pocket.strategy is PocketStrategy.RASTER:
                _raster_pocket(builder, points, z, settings, pocket, tool_radius,
                               stepover, safe_height)
            elif pocket.strategy is PocketStrategy.SPIRAL:
                _spiral_pocket(builder, points, z, settings, tool_radius,
                               stepover, safe_height)
            else:
                _offset_pocket(builder, points, z, settings, pocket, tool_radius,
                               stepover, safe_height)

    logger.debug("pocket (%s): %d objects, %d segments",
                 pocket.strategy.value, len(objects), len(builder))
    return StrategyResult.from_builder(builder)
