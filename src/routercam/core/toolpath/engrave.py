"""Engraving: follow each outline once at a single shallow depth."""

from __future__ import annotations

import logging

from ..design import DesignObject, object_is_closed, object_points
from ..operation import EngraveSettings, OperationSettings
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import feed_along, plunge_at, retract

logger = logging.getLogger(__name__)


def generate_engrave_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    engrave = settings.engrave or EngraveSettings()
    depth = engrave.depth if engrave.depth is not None else settings.cut_depth
    if depth < 0:
        builder.warn(f"Engrave depth must not be negative, got {depth:g}; nothing generated")
        return StrategyResult.from_builder(builder)

    for obj in objects:
        points = object_points(obj)
        if len(points) < 2:
            builder.warn(f"Object {obj.id} has no usable outline; skipped")
            continue
        x0, y0 = points[0]
        plunge_at(builder, x0, y0, -depth, settings, safe_height)
        feed_along(builder, points, -depth, settings.feed_rate,
                   closed=object_is_closed(obj))
        retract(builder, safe_height)

    logger.debug("engrave: %d objects at depth %.3f, %d segments",
                 len(objects), depth, len(builder))
    return StrategyResult.from_builder(builder)
