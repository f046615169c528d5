"""2D geometry kernel used by every toolpath strategy.

Polygons are plain sequences of ``(x, y)`` pairs without a repeated closing
vertex.  All routines return new lists; inputs are never modified.

The offset here is the fast miter approximation the strategies were tuned
against, not a robust Minkowski offset: sharp concave corners can produce
self-intersecting output which is neither detected nor repaired.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

Point2D = tuple[float, float]

# Below this magnitude an edge or a normal sum is treated as degenerate.
_EPS = 1e-12


def _as_array(points: Sequence[Point2D]) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def signed_area(points: Sequence[Point2D]) -> float:
    """Shoelace area: positive for counter-clockwise winding."""
    if len(points) < 3:
        return 0.0
    pts = _as_array(points)
    x, y = pts[:, 0], pts[:, 1]
    return float(0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)))


def polygon_area(points: Sequence[Point2D]) -> float:
    return abs(signed_area(points))


def is_clockwise(points: Sequence[Point2D]) -> bool:
    return signed_area(points) < 0


def ensure_counter_clockwise(points: Sequence[Point2D]) -> list[Point2D]:
    pts = [(float(x), float(y)) for x, y in points]
    if is_clockwise(pts):
        pts.reverse()
    return pts


def bounds_2d(points: Sequence[Point2D]) -> tuple[float, float, float, float]:
    """(xmin, ymin, xmax, ymax) of *points*."""
    if len(points) == 0:
        raise ValueError("bounds of an empty point list")
    pts = _as_array(points)
    xmin, ymin = pts.min(axis=0)
    xmax, ymax = pts.max(axis=0)
    return (float(xmin), float(ymin), float(xmax), float(ymax))


def vertex_mean(points: Sequence[Point2D]) -> Point2D:
    pts = _as_array(points)
    cx, cy = pts.mean(axis=0)
    return (float(cx), float(cy))


def polygon_centroid(points: Sequence[Point2D]) -> Point2D:
    """Area-weighted centroid; vertex mean for degenerate polygons."""
    area = signed_area(points)
    if abs(area) < _EPS:
        return vertex_mean(points)
    pts = _as_array(points)
    x, y = pts[:, 0], pts[:, 1]
    xn, yn = np.roll(x, -1), np.roll(y, -1)
    cross = x * yn - xn * y
    cx = float(np.sum((x + xn) * cross) / (6.0 * area))
    cy = float(np.sum((y + yn) * cross) / (6.0 * area))
    return (cx, cy)


def max_distance_from(points: Sequence[Point2D], center: Point2D) -> float:
    if len(points) == 0:
        return 0.0
    pts = _as_array(points)
    return float(np.max(np.hypot(pts[:, 0] - center[0], pts[:, 1] - center[1])))


def point_in_polygon(point: Point2D, polygon: Sequence[Point2D]) -> bool:
    """Even-odd ray casting test.  Points exactly on an edge are undefined."""
    px, py = point
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > py) != (yj > py):
            x_cross = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_cross:
                inside = not inside
        j = i
    return inside


def _unit(dx: float, dy: float) -> tuple[float, float, float]:
    length = math.hypot(dx, dy)
    if length < _EPS:
        return (0.0, 0.0, 0.0)
    return (dx / length, dy / length, length)


def offset_polygon(points: Sequence[Point2D], distance: float) -> list[Point2D]:
    """Offset a closed polygon by *distance* using miter-joined normals.

    Positive *distance* grows the polygon and negative shrinks it,
    independent of the input winding.  Each vertex moves along the bisector
    of its two edge normals, scaled by ``distance / (n1 . bisector)`` so
    that both adjacent edges end up exactly *distance* away.  A zero-length
    edge contributes no normal; the vertex then uses the other one.

    Polygons with fewer than three vertices are returned unchanged.
    """
    n = len(points)
    if n < 3:
        return [(float(x), float(y)) for x, y in points]

    # Left normals point outward for clockwise polygons.
    outward_sign = -1.0 if signed_area(points) > 0 else 1.0

    result: list[Point2D] = []
    for i in range(n):
        px, py = points[(i - 1) % n]
        cx, cy = points[i]
        nx_, ny_ = points[(i + 1) % n]

        ux1, uy1, len1 = _unit(cx - px, cy - py)
        ux2, uy2, len2 = _unit(nx_ - cx, ny_ - cy)

        n1 = (-uy1 * outward_sign, ux1 * outward_sign)
        n2 = (-uy2 * outward_sign, ux2 * outward_sign)

        if len1 > 0 and len2 > 0:
            bx, by, blen = _unit(n1[0] + n2[0], n1[1] + n2[1])
            if blen == 0.0:
                # Edges fold back on themselves; fall back to the first normal.
                bx, by = n1
            dot = n1[0] * bx + n1[1] * by
            miter = distance / dot if abs(dot) > _EPS else distance
        elif len1 > 0:
            bx, by = n1
            miter = distance
        elif len2 > 0:
            bx, by = n2
            miter = distance
        else:
            bx, by, miter = 0.0, 0.0, 0.0

        result.append((cx + bx * miter, cy + by * miter))

    return result


def path_length(points: Sequence[Point2D], closed: bool = False) -> float:
    if len(points) < 2:
        return 0.0
    pts = _as_array(points)
    if closed:
        pts = np.vstack([pts, pts[:1]])
    return float(np.sum(np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))))
