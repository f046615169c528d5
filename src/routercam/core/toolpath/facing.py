"""Facing (surfacing) strategy.

Flattens the stock top with a back-and-forth raster over the union bounding
box of the source objects, or over a default area when there are none.
Each depth pass plunges once and then feeds row to row without lifting.
"""

from __future__ import annotations

import logging
import math

from shapely.geometry import box
from shapely.ops import unary_union

from ..design import DesignObject, object_bounds
from ..operation import FacingSettings, OperationSettings
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import pass_depths, plunge_at, retract, stepover_distance

logger = logging.getLogger(__name__)

DEFAULT_FACING_AREA = (0.0, 0.0, 300.0, 300.0)


def facing_bounds(objects: list[DesignObject], boundary_offset: float = 0.0):
    """(xmin, ymin, xmax, ymax) to face, grown by *boundary_offset*."""
    boxes = [box(*b) for b in (object_bounds(obj) for obj in objects) if b is not None]
    if boxes:
        xmin, ymin, xmax, ymax = unary_union(boxes).bounds
    else:
        xmin, ymin, xmax, ymax = DEFAULT_FACING_AREA
    return (xmin - boundary_offset, ymin - boundary_offset,
            xmax + boundary_offset, ymax + boundary_offset)


def generate_facing_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    facing = settings.facing or FacingSettings()
    stepover = stepover_distance(builder, "Facing", facing.stepover,
                                 FacingSettings.stepover, tool.diameter)

    xmin, ymin, xmax, ymax = facing_bounds(objects, facing.boundary_offset)
    rows = max(0, math.ceil((ymax - ymin) / stepover - 1e-9))

    for z in pass_depths(settings.cut_depth, settings.depth_per_pass):
        plunge_at(builder, xmin, ymin, z, settings, safe_height)
        for i in range(rows + 1):
            y = min(ymin + i * stepover, ymax)
            x_end = xmax if i % 2 == 0 else xmin
            builder.feed_to(y=y, feed_rate=settings.feed_rate)
            builder.feed_to(x_end, y, z, settings.feed_rate)
        retract(builder, safe_height)

    logger.debug("facing: %.1f x %.1f area, %d rows, %d segments",
                 xmax - xmin, ymax - ymin, rows + 1, len(builder))
    return StrategyResult.from_builder(builder)
