"""Drilling strategy: one hole per object at its centre."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ..design import DesignObject, object_center
from ..geometry import Point2D
from ..operation import DrillCycle, DrillOrder, DrillSettings, OperationSettings
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .utils import plunge_at, retract

logger = logging.getLogger(__name__)

DEFAULT_PECK_RETRACT = {
    DrillCycle.PECK: 1.0,
    DrillCycle.CHIP_BREAK: 0.5,
}


def order_nearest_neighbor(points: Sequence[Point2D]) -> list[Point2D]:
    """Greedy tour: start at the first hole, always visit the closest next.

    Returns a new list; *points* is left untouched.
    """
    remaining = list(points)
    if len(remaining) < 3:
        return remaining
    tour = [remaining.pop(0)]
    while remaining:
        last = tour[-1]
        idx = min(range(len(remaining)), key=lambda i: math.dist(last, remaining[i]))
        tour.append(remaining.pop(idx))
    return tour


def _peck(builder, x, y, depth, peck, retract_to, settings, full_retract):
    current = 0.0
    while current < depth:
        target = min(current + peck, depth)
        builder.feed_to(x, y, -target, settings.plunge_rate)
        current = target
        if full_retract:
            builder.rapid_to(z=settings.retract_height)
            if current < depth:
                builder.rapid_to(z=-current + retract_to)
        else:
            builder.rapid_to(z=-current + retract_to)


def generate_drill_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    """Drill a hole at the centre of every object in *objects*."""
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    drill = settings.drill or DrillSettings()
    depth = settings.cut_depth

    holes = [object_center(obj) for obj in objects]
    if drill.order is DrillOrder.NEAREST_NEIGHBOR:
        holes = order_nearest_neighbor(holes)

    peck = drill.peck_depth if drill.peck_depth > 0 else depth
    peck_retract = drill.peck_retract
    if peck_retract is None:
        peck_retract = DEFAULT_PECK_RETRACT.get(drill.cycle, 0.0)

    for x, y in holes:
        if drill.cycle is DrillCycle.SIMPLE:
            plunge_at(builder, x, y, -depth, settings, safe_height,
                      dwell=max(drill.dwell_time, 0.0))
        else:
            builder.rapid_to(z=max(builder.position[2], safe_height))
            builder.rapid_to(x, y, safe_height)
            builder.rapid_to(z=settings.retract_height)
            _peck(builder, x, y, depth, peck, peck_retract, settings,
                  full_retract=drill.cycle is DrillCycle.PECK)
        retract(builder, safe_height)

    logger.debug("drill (%s): %d holes, %d segments",
                 drill.cycle.value, len(holes), len(builder))
    return StrategyResult.from_builder(builder)
