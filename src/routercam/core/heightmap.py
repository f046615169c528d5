"""Heightmaps for 3D surfacing.

A heightmap is a 2D grid of normalized carve depths in ``[0, 1]``: 0 means
the model surface is at the stock top, 1 means it sits ``depth`` below it.
Row 0 is the minimum-Y edge of the model footprint, column 0 the minimum-X
edge.  Lookups are nearest-pixel only (no bilinear interpolation).
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass

import numpy as np
import trimesh

DEFAULT_RESOLUTION = 100
# Fraction of the footprint that grid rays stay clear of at each edge.
EDGE_INSET = 1e-6
# Height above the mesh top that rays start from, mm.
RAY_LIFT = 1.0


@dataclass(frozen=True, eq=False)
class Heightmap:
    """Normalized carve-depth grid, shape ``(rows, cols)``."""

    values: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.values, dtype=np.float64)
        if arr.ndim != 2 or arr.size == 0:
            raise ValueError("heightmap must be a non-empty 2D array")
        object.__setattr__(self, "values", arr)

    @property
    def rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def cols(self) -> int:
        return int(self.values.shape[1])

    @property
    def max_value(self) -> float:
        return float(self.values.max())


def sample_heightmap(
    heightmap: Heightmap,
    x: float,
    y: float,
    bounds: tuple[float, float, float, float],
    depth: float,
) -> float:
    """Carve depth (positive, mm) of the model at world ``(x, y)``.

    *bounds* is the model footprint ``(xmin, ymin, xmax, ymax)``.  Points
    outside the footprint clamp to the nearest edge pixel.
    """
    xmin, ymin, xmax, ymax = bounds
    span_x = xmax - xmin
    span_y = ymax - ymin
    nx = (x - xmin) / span_x if span_x > 0 else 0.0
    ny = (y - ymin) / span_y if span_y > 0 else 0.0

    col = math.floor(nx * (heightmap.cols - 1))
    row = math.floor(ny * (heightmap.rows - 1))
    col = max(0, min(heightmap.cols - 1, col))
    row = max(0, min(heightmap.rows - 1, row))

    return float(heightmap.values[row, col]) * depth


def heightmap_from_mesh(
    mesh: trimesh.Trimesh,
    resolution: int = DEFAULT_RESOLUTION,
) -> Heightmap:
    """Rasterize the top surface of *mesh* into a normalized heightmap.

    One ray is cast straight down through each grid point and the highest
    hit wins.  Cells the mesh does not cover are carved to full depth.  A
    mesh with no Z extent gives an all-zero map.
    """
    if resolution < 2:
        raise ValueError("resolution must be at least 2")
    if len(mesh.faces) == 0:
        raise ValueError("mesh has no faces")

    (xmin, ymin, zmin), (xmax, ymax, zmax) = mesh.bounds
    z_range = float(zmax - zmin)
    if z_range <= 0:
        warnings.warn(
            "Mesh has no Z extent; heightmap will be flat.",
            UserWarning,
            stacklevel=2,
        )
        return Heightmap(np.zeros((resolution, resolution)))

    # Rays on the footprint boundary can pass between edge triangles.
    inset_x = EDGE_INSET * (xmax - xmin)
    inset_y = EDGE_INSET * (ymax - ymin)
    xs = np.linspace(xmin + inset_x, xmax - inset_x, resolution)
    ys = np.linspace(ymin + inset_y, ymax - inset_y, resolution)
    gx, gy = np.meshgrid(xs, ys)

    origins = np.column_stack([
        gx.ravel(), gy.ravel(), np.full(gx.size, zmax + RAY_LIFT),
    ])
    directions = np.tile([0.0, 0.0, -1.0], (gx.size, 1))
    locations, index_ray, _ = mesh.ray.intersects_location(
        origins, directions, multiple_hits=True,
    )

    top = np.full(gx.size, -np.inf)
    np.maximum.at(top, index_ray, locations[:, 2])
    top = top.reshape(resolution, resolution)

    covered = np.isfinite(top)
    values = np.ones_like(top)
    values[covered] = (zmax - top[covered]) / z_range
    return Heightmap(np.clip(values, 0.0, 1.0))
