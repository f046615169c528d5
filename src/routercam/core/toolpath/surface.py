"""3D surfacing over heightmaps.

Both strategies raster the model footprint in X, stepping over in Y and
alternating direction row to row.  The model surface at a point sits
``sample * depth`` below the stock top.

Roughing
    Z layers step down by ``stepdown`` towards the stock thickness; in each
    layer the tool never goes below the layer floor nor closer than
    ``stock_to_leave`` to the surface.  Sampled every quarter diameter.
Finishing
    A single pass riding the surface, sampled every eighth of a diameter.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from ..design import DesignObject, Model3D
from ..heightmap import Heightmap, heightmap_from_mesh, sample_heightmap
from ..operation import Finish3DSettings, OperationSettings, Rough3DSettings
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import pass_depths, plunge_at, retract, stepover_distance

logger = logging.getLogger(__name__)

MAX_SURFACE_SAMPLES = 2_000_000
ROUGH_SAMPLE_FRACTION = 4     # samples per tool diameter along a row
FINISH_SAMPLE_FRACTION = 8


def model_heightmap(model: Model3D) -> Optional[Heightmap]:
    if model.heightmap is not None:
        return model.heightmap
    if model.mesh is not None:
        return heightmap_from_mesh(model.mesh)
    return None


def _raster_grid(bounds, stepover: float, sample_step: float):
    xmin, ymin, xmax, ymax = bounds
    n_rows = max(1, math.ceil((ymax - ymin) / stepover - 1e-9) + 1)
    n_cols = max(2, math.ceil((xmax - xmin) / sample_step - 1e-9) + 1)
    ys = np.minimum(ymin + np.arange(n_rows) * stepover, ymax)
    xs = np.linspace(xmin, xmax, n_cols)
    return xs, ys


def _raster_surface(
    builder: ToolpathBuilder,
    xs: np.ndarray,
    ys: np.ndarray,
    cut_z: Callable[[float, float], float],
    settings: OperationSettings,
    safe_height: float,
    budget: list[int],
) -> bool:
    """Cut one raster layer.  Returns False once the sample budget runs out."""
    for i, y in enumerate(ys):
        row = xs if i % 2 == 0 else xs[::-1]
        if budget[0] < len(row):
            return False
        budget[0] -= len(row)
        x0 = float(row[0])
        plunge_at(builder, x0, float(y), cut_z(x0, float(y)), settings, safe_height)
        for x in row[1:]:
            builder.feed_to(float(x), float(y), cut_z(float(x), float(y)), settings.feed_rate)
        retract(builder, safe_height)
    return True


def _models(objects: list[DesignObject], builder: ToolpathBuilder):
    for obj in objects:
        if not isinstance(obj, Model3D):
            builder.warn(f"Object {obj.id} is not a 3D model; skipped")
            continue
        heightmap = model_heightmap(obj)
        if heightmap is None:
            builder.warn(f"Model {obj.id} has neither a heightmap nor a mesh; skipped")
            continue
        yield obj, heightmap


def generate_rough3d_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    stock_thickness: float,
    safe_height: float,
) -> StrategyResult:
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    rough = settings.rough3d or Rough3DSettings()
    stepover = stepover_distance(builder, "3D rough", rough.stepover,
                                 Rough3DSettings.stepover, tool.diameter)
    stepdown = rough.stepdown or settings.depth_per_pass
    budget = [MAX_SURFACE_SAMPLES]

    for model, heightmap in _models(objects, builder):
        bounds = model.bounds
        xs, ys = _raster_grid(bounds, stepover, tool.diameter / ROUGH_SAMPLE_FRACTION)
        deepest = heightmap.max_value * model.depth - rough.stock_to_leave

        for floor in pass_depths(stock_thickness, stepdown):
            def cut_z(x, y, floor=floor):
                surface = -sample_heightmap(heightmap, x, y, bounds, model.depth)
                return max(floor, surface + rough.stock_to_leave)

            if not _raster_surface(builder, xs, ys, cut_z, settings, safe_height, budget):
                builder.warn(f"3D rough truncated at {MAX_SURFACE_SAMPLES} samples")
                return StrategyResult.from_builder(builder)
            if -floor >= deepest:
                # Deeper layers would repeat this one exactly.
                break

    logger.debug("3d-rough: %d segments", len(builder))
    return StrategyResult.from_builder(builder)


def generate_finish3d_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    finish = settings.finish3d or Finish3DSettings()
    stepover = stepover_distance(builder, "3D finish", finish.stepover,
                                 Finish3DSettings.stepover, tool.diameter)
    budget = [MAX_SURFACE_SAMPLES]

    for model, heightmap in _models(objects, builder):
        bounds = model.bounds
        xs, ys = _raster_grid(bounds, stepover, tool.diameter / FINISH_SAMPLE_FRACTION)

        def cut_z(x, y, heightmap=heightmap, bounds=bounds, depth=model.depth):
            return -sample_heightmap(heightmap, x, y, bounds, depth)

        if not _raster_surface(builder, xs, ys, cut_z, settings, safe_height, budget):
            builder.warn(f"3D finish truncated at {MAX_SURFACE_SAMPLES} samples")
            break

    logger.debug("3d-finish: %d segments", len(builder))
    return StrategyResult.from_builder(builder)
