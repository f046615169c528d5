"""Design objects consumed by the CAM core.

The editor owns these objects; the CAM core only reads them.  The set of
variants is closed (``VectorPath``, ``VectorShape``, ``Model3D``) and every
geometry routine below dispatches on all three explicitly, raising
``TypeError`` for anything else so a new variant cannot slip through
unhandled.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import numpy as np

from .geometry import Point2D, vertex_mean
from .heightmap import Heightmap

# Sampling density used when flattening curves into polylines.
CURVE_SEGMENTS = 16
ELLIPSE_SEGMENTS = 32


@dataclass(frozen=True)
class Transform2D:
    """Affine placement: scale, then rotate (degrees, CCW), then translate."""

    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    def apply(self, points: list[Point2D]) -> list[Point2D]:
        if not points:
            return []
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        pts = pts * np.array([self.scale_x, self.scale_y])
        if self.rotation:
            a = math.radians(self.rotation)
            rot = np.array([[math.cos(a), -math.sin(a)],
                            [math.sin(a), math.cos(a)]])
            pts = pts @ rot.T
        pts = pts + np.array([self.x, self.y])
        return [(float(x), float(y)) for x, y in pts]


class PointKind(Enum):
    MOVE = "move"
    LINE = "line"
    CURVE = "curve"


@dataclass(frozen=True)
class PathPoint:
    """A path vertex.  Handles are offsets relative to the vertex."""

    x: float
    y: float
    kind: PointKind = PointKind.LINE
    handle_in: Optional[Point2D] = None
    handle_out: Optional[Point2D] = None


@dataclass
class VectorPath:
    id: str
    points: list[PathPoint] = field(default_factory=list)
    closed: bool = False
    name: str = ""
    layer_id: str = ""
    transform: Transform2D = field(default_factory=Transform2D)


class ShapeType(Enum):
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    LINE = "line"
    POLYGON = "polygon"


@dataclass(frozen=True)
class RectangleParams:
    width: float
    height: float


@dataclass(frozen=True)
class EllipseParams:
    radius_x: float
    radius_y: float


@dataclass(frozen=True)
class LineParams:
    """Line from the shape origin to ``(x2, y2)`` in local coordinates."""

    x2: float
    y2: float


@dataclass(frozen=True)
class PolygonParams:
    sides: int
    radius: float


ShapeParams = Union[RectangleParams, EllipseParams, LineParams, PolygonParams]


@dataclass
class VectorShape:
    """Parametric shape centred on its transform origin."""

    id: str
    shape_type: ShapeType
    params: ShapeParams
    name: str = ""
    layer_id: str = ""
    transform: Transform2D = field(default_factory=Transform2D)


@dataclass
class Model3D:
    """A 3D model placed on the design, centred on its transform origin.

    Either *heightmap* or *mesh* (a ``trimesh.Trimesh``) must be set for the
    3D strategies to produce anything.  *depth* scales the normalized
    heightmap values to millimetres.  A precomputed *bounding_box*
    (xmin, ymin, xmax, ymax) replaces the footprint derived from the size.
    """

    id: str
    width: float
    height: float
    depth: float
    heightmap: Optional[Heightmap] = None
    mesh: object = None
    name: str = ""
    layer_id: str = ""
    transform: Transform2D = field(default_factory=Transform2D)
    bounding_box: Optional[tuple[float, float, float, float]] = None

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(xmin, ymin, xmax, ymax) of the model footprint on the design."""
        if self.bounding_box is not None:
            return self.bounding_box
        hw, hh = self.width / 2.0, self.height / 2.0
        return (
            self.transform.x - hw, self.transform.y - hh,
            self.transform.x + hw, self.transform.y + hh,
        )


DesignObject = Union[VectorPath, VectorShape, Model3D]


# ---------------------------------------------------------------------------
# Geometry extraction
# ---------------------------------------------------------------------------


def _cubic_bezier(p0, p1, p2, p3, t: float) -> Point2D:
    mt = 1.0 - t
    a, b, c, d = mt ** 3, 3 * mt * mt * t, 3 * mt * t * t, t ** 3
    return (
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


def _flatten_path(path: VectorPath) -> list[Point2D]:
    """Local-space polyline for *path*, curves sampled as cubic Beziers."""
    pts: list[Point2D] = []
    prev: Optional[PathPoint] = None
    for pp in path.points:
        if pp.kind is PointKind.CURVE and prev is not None:
            out = prev.handle_out or (0.0, 0.0)
            inn = pp.handle_in or (0.0, 0.0)
            p0 = (prev.x, prev.y)
            p1 = (prev.x + out[0], prev.y + out[1])
            p2 = (pp.x + inn[0], pp.y + inn[1])
            p3 = (pp.x, pp.y)
            for k in range(1, CURVE_SEGMENTS + 1):
                pts.append(_cubic_bezier(p0, p1, p2, p3, k / CURVE_SEGMENTS))
        else:
            pts.append((pp.x, pp.y))
        prev = pp
    return pts


def _shape_local_points(shape: VectorShape) -> list[Point2D]:
    params = shape.params
    kind = shape.shape_type
    if kind is ShapeType.RECTANGLE:
        hw, hh = params.width / 2.0, params.height / 2.0
        return [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]
    if kind is ShapeType.ELLIPSE:
        return [
            (math.cos(a) * params.radius_x, math.sin(a) * params.radius_y)
            for a in (2 * math.pi * i / ELLIPSE_SEGMENTS for i in range(ELLIPSE_SEGMENTS))
        ]
    if kind is ShapeType.POLYGON:
        if params.sides < 3:
            return []
        return [
            (math.cos(a) * params.radius, math.sin(a) * params.radius)
            for a in (2 * math.pi * i / params.sides - math.pi / 2
                      for i in range(params.sides))
        ]
    if kind is ShapeType.LINE:
        return [(0.0, 0.0), (params.x2, params.y2)]
    raise TypeError(f"Unhandled shape type: {kind!r}")


def object_points(obj: DesignObject) -> list[Point2D]:
    """World-space outline of *obj* (no repeated closing vertex).

    3D models have no 2D outline and return an empty list.
    """
    if isinstance(obj, VectorPath):
        return obj.transform.apply(_flatten_path(obj))
    if isinstance(obj, VectorShape):
        return obj.transform.apply(_shape_local_points(obj))
    if isinstance(obj, Model3D):
        return []
    raise TypeError(f"Unsupported design object: {type(obj).__name__}")


def object_is_closed(obj: DesignObject) -> bool:
    if isinstance(obj, VectorPath):
        return obj.closed
    if isinstance(obj, VectorShape):
        return obj.shape_type is not ShapeType.LINE
    if isinstance(obj, Model3D):
        return False
    raise TypeError(f"Unsupported design object: {type(obj).__name__}")


def object_center(obj: DesignObject) -> Point2D:
    """Drill position for *obj*: ellipse centre, else the vertex mean."""
    if isinstance(obj, VectorShape):
        if obj.shape_type is ShapeType.ELLIPSE:
            return (obj.transform.x, obj.transform.y)
        pts = object_points(obj)
        return vertex_mean(pts) if pts else (obj.transform.x, obj.transform.y)
    if isinstance(obj, VectorPath):
        pts = object_points(obj)
        return vertex_mean(pts) if pts else (obj.transform.x, obj.transform.y)
    if isinstance(obj, Model3D):
        return (obj.transform.x, obj.transform.y)
    raise TypeError(f"Unsupported design object: {type(obj).__name__}")


def object_bounds(obj: DesignObject) -> Optional[tuple[float, float, float, float]]:
    """(xmin, ymin, xmax, ymax) or ``None`` when the object has no extent."""
    if isinstance(obj, Model3D):
        return obj.bounds
    if isinstance(obj, (VectorPath, VectorShape)):
        pts = object_points(obj)
        if not pts:
            return None
        arr = np.asarray(pts)
        return (float(arr[:, 0].min()), float(arr[:, 1].min()),
                float(arr[:, 0].max()), float(arr[:, 1].max()))
    raise TypeError(f"Unsupported design object: {type(obj).__name__}")
