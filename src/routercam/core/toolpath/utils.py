"""Helpers shared across toolpath strategies."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import shapely
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.ops import unary_union
from shapely.validation import make_valid

from ..geometry import Point2D
from ..operation import OperationSettings
from .base import ToolpathBuilder


def pass_depths(cut_depth: float, depth_per_pass: float) -> list[float]:
    """Z level of every depth pass, shallowest first (negative values).

    ``ceil(cut_depth / depth_per_pass)`` passes; the last one lands exactly
    on ``-cut_depth``.  A zero cut depth gives no passes.
    """
    if depth_per_pass <= 0:
        raise ValueError(f"depth_per_pass must be positive, got {depth_per_pass}")
    if cut_depth < 0:
        raise ValueError(f"cut_depth must not be negative, got {cut_depth}")
    count = math.ceil(cut_depth / depth_per_pass - 1e-9)
    return [-min((p + 1) * depth_per_pass, cut_depth) for p in range(count)]


def stepover_distance(builder: ToolpathBuilder, label: str, percent: float,
                      default: float, diameter: float) -> float:
    """Stepover in mm for *percent* of the tool diameter.

    A stepover that is not positive falls back to *default* percent, with a
    message on *builder*.
    """
    if percent <= 0:
        builder.warn(f"{label} stepover must be positive, got {percent:g}%; "
                     f"using {default:g}%")
        percent = default
    return percent / 100.0 * diameter


def plunge_at(
    builder: ToolpathBuilder,
    x: float,
    y: float,
    z: float,
    settings: OperationSettings,
    safe_height: float,
    dwell: float = 0.0,
) -> None:
    """Rapid over (x, y) at safe height, drop to retract height, feed down to *z*."""
    builder.rapid_to(z=max(builder.position[2], safe_height))
    builder.rapid_to(x, y, safe_height)
    builder.rapid_to(z=settings.retract_height)
    builder.feed_to(x, y, z, settings.plunge_rate, dwell=dwell)


def retract(builder: ToolpathBuilder, safe_height: float) -> None:
    builder.rapid_to(z=safe_height)


def feed_along(
    builder: ToolpathBuilder,
    points: Sequence[Point2D],
    z: float,
    feed_rate: float,
    closed: bool = False,
) -> None:
    """Feed through *points* at constant *z*, back to the first when *closed*."""
    for x, y in points:
        builder.feed_to(x, y, z, feed_rate)
    if closed and points:
        builder.feed_to(points[0][0], points[0][1], z, feed_rate)


def ensure_polygon(geom) -> Polygon | MultiPolygon:
    """Areal part of *geom* as a valid (Multi)Polygon; empty Polygon if none."""
    if geom is None or geom.is_empty:
        return Polygon()
    areas = [g for g in shapely.get_parts(make_valid(geom))
             if isinstance(g, (Polygon, MultiPolygon))]
    if not areas:
        return Polygon()
    return areas[0] if len(areas) == 1 else unary_union(areas)


def to_polygon(points: Sequence[Point2D]) -> Polygon | MultiPolygon:
    if len(points) < 3:
        return Polygon()
    return ensure_polygon(Polygon(points))


def iter_polygons(geom: Polygon | MultiPolygon) -> list[Polygon]:
    return [p for p in shapely.get_parts(geom) if isinstance(p, Polygon) and not p.is_empty]


def clip_line(line: LineString, area) -> list[list[Point2D]]:
    """Pieces of *line* inside *area*, each as a coordinate list."""
    intersection = line.intersection(area)
    if intersection.is_empty:
        return []
    if isinstance(intersection, LineString):
        raw = [intersection]
    elif isinstance(intersection, MultiLineString):
        raw = list(intersection.geoms)
    else:
        # Touching boundaries can add stray points to the result.
        raw = [g for g in getattr(intersection, "geoms", [intersection])
               if isinstance(g, LineString)]
    return [[(float(x), float(y)) for x, y in ls.coords] for ls in raw if not ls.is_empty]


def raster_lines_in_bounds(
    xmin: float,
    xmax: float,
    ymin: float,
    ymax: float,
    step_over: float,
    angle_deg: float = 0.0,
) -> list[LineString]:
    """Parallel scan lines covering a box, ordered across the scan direction.

    Parameters
    ----------
    step_over:
        Spacing between neighbouring lines.
    angle_deg:
        Scan direction in degrees, 0 = along +X.  Lines at any other angle
        overshoot the box and must be clipped by the caller.
    """
    if step_over <= 0:
        raise ValueError(f"step_over must be positive, got {step_over}")

    if angle_deg % 180.0 == 0.0:
        return [LineString([(xmin, y), (xmax, y)])
                for y in np.arange(ymin, ymax + 1e-9, step_over)]

    a = math.radians(angle_deg)
    along = np.array([math.cos(a), math.sin(a)])
    across = np.array([-along[1], along[0]])
    centre = np.array([(xmin + xmax) / 2.0, (ymin + ymax) / 2.0])
    half = math.hypot(xmax - xmin, ymax - ymin)
    n = math.ceil(half / step_over) + 1
    lines = []
    for k in range(-n, n + 1):
        mid = centre + across * (k * step_over)
        lines.append(LineString([mid - along * half, mid + along * half]))
    return lines
