"""Profile (contour) strategy.

Per object
----------
1. Offset the outline by the tool radius towards the waste side (closed
   outlines only; ``on`` cuts follow the line itself).
2. Reverse the point order for conventional milling.
3. For every depth pass: approach at safe height, enter with a plunge or a
   ramp, optionally arc in, follow the loop, optionally arc out, retract.

Tabs are trapezoids left standing on the loop: ``count`` tabs spread evenly
along the path, ``width`` long at the top and ``height`` tall above the
final depth, with 45 degree flanks.  Passes above the tab top ignore them.
"""

from __future__ import annotations

import bisect
import logging
import math
from typing import Sequence

from ..design import DesignObject, object_is_closed, object_points
from ..geometry import Point2D, offset_polygon, signed_area
from ..operation import (
    CutDirection,
    CutSide,
    LeadSettings,
    LeadType,
    OperationSettings,
    ProfileSettings,
    TabSettings,
)
from ..tool import Tool
from .base import StrategyResult, ToolpathBuilder
from .entry import lead_in_arc, lead_out_arc, ramp_entry, unit_vector, waste_normal
from .utils import feed_along, pass_depths, plunge_at, retract

logger = logging.getLogger(__name__)


def tab_intervals(length: float, tabs: TabSettings) -> list[tuple[float, float]]:
    """(start, end) arc-length positions of the tab tops along a path."""
    if tabs.count <= 0 or tabs.width <= 0 or length <= 0:
        return []
    spacing = length / tabs.count
    half = tabs.width / 2.0
    return [
        (max(0.0, (k + 0.5) * spacing - half), min(length, (k + 0.5) * spacing + half))
        for k in range(tabs.count)
    ]


def _tabbed_points(
    walk: Sequence[Point2D],
    z: float,
    tab_top: float,
    intervals: list[tuple[float, float]],
) -> list[tuple[float, float, float]]:
    """Points along *walk* at depth *z*, lifted to *tab_top* over each tab."""
    cumulative = [0.0]
    for a, b in zip(walk, walk[1:]):
        cumulative.append(cumulative[-1] + math.dist(a, b))
    length = cumulative[-1]
    flank = tab_top - z

    def height(s: float) -> float:
        h = z
        for a, b in intervals:
            h = max(h, tab_top - max(0.0, a - s, s - b))
        return h

    def position(s: float) -> Point2D:
        i = min(max(bisect.bisect_right(cumulative, s) - 1, 0), len(walk) - 2)
        seg = cumulative[i + 1] - cumulative[i]
        t = 0.0 if seg == 0 else (s - cumulative[i]) / seg
        (x0, y0), (x1, y1) = walk[i], walk[i + 1]
        return (x0 + (x1 - x0) * t, y0 + (y1 - y0) * t)

    marks = set(cumulative[1:])
    for a, b in intervals:
        for s in (a - flank, a, b, b + flank):
            if 0.0 < s < length:
                marks.add(s)

    result = []
    for s in sorted(marks):
        x, y = position(s)
        result.append((x, y, height(s)))
    return result


def generate_profile_toolpath(
    objects: list[DesignObject],
    settings: OperationSettings,
    tool: Tool,
    safe_height: float,
) -> StrategyResult:
    """Generate a contour toolpath around each object in *objects*."""
    builder = ToolpathBuilder((0.0, 0.0, safe_height))
    profile = settings.profile or ProfileSettings()
    tool_radius = tool.radius
    depths = pass_depths(settings.cut_depth, settings.depth_per_pass)

    lead = settings.lead or LeadSettings()
    use_lead_in = settings.use_lead_in_out and lead.lead_in is LeadType.ARC
    use_lead_out = settings.use_lead_in_out and lead.lead_out is LeadType.ARC

    tabs = settings.tabs or TabSettings()
    tab_top = -(settings.cut_depth - tabs.height)

    for obj in objects:
        points = object_points(obj)
        if len(points) < 2:
            builder.warn(f"Object {obj.id} has no usable outline; skipped")
            continue

        closed = object_is_closed(obj) and len(points) >= 3
        if closed and profile.cut_side is not CutSide.ON:
            distance = tool_radius if profile.cut_side is CutSide.OUTSIDE else -tool_radius
            points = offset_polygon(points, distance)
        if profile.direction is CutDirection.CONVENTIONAL:
            points = list(reversed(points))

        walk = list(points) + [points[0]] if closed else list(points)
        winding = signed_area(points) if closed else 0.0
        inside = profile.cut_side is CutSide.INSIDE

        d_in, first_edge = unit_vector(walk[0], walk[1])
        d_out, _ = unit_vector(walk[-2], walk[-1])
        n_in = waste_normal(d_in, winding, inside)
        n_out = waste_normal(d_out, winding, inside)

        entry = walk[0]
        if use_lead_in:
            entry, in_center, in_cw = lead_in_arc(walk[0], d_in, n_in, lead.lead_in_radius)
        if use_lead_out:
            exit_point, out_center, out_cw = lead_out_arc(walk[-1], d_out, n_out, lead.lead_out_radius)

        intervals = []
        if settings.use_tabs:
            length = sum(math.dist(a, b) for a, b in zip(walk, walk[1:]))
            intervals = tab_intervals(length, tabs)

        for z in depths:
            if settings.use_ramping:
                builder.rapid_to(z=max(builder.position[2], safe_height))
                builder.rapid_to(entry[0], entry[1], safe_height)
                ramp_entry(
                    builder, entry, d_in, first_edge,
                    settings.retract_height, z, settings.ramp, tool_radius,
                    settings.feed_rate, settings.plunge_rate,
                )
            else:
                plunge_at(builder, entry[0], entry[1], z, settings, safe_height)

            if use_lead_in:
                builder.arc_to(walk[0][0], walk[0][1], z, in_center, in_cw, settings.feed_rate)

            if intervals and z < tab_top:
                for x, y, tz in _tabbed_points(walk, z, tab_top, intervals):
                    builder.feed_to(x, y, tz, settings.feed_rate)
            else:
                feed_along(builder, walk[1:], z, settings.feed_rate)

            if use_lead_out:
                builder.arc_to(exit_point[0], exit_point[1], z, out_center, out_cw,
                               settings.feed_rate)

            retract(builder, safe_height)

    logger.debug("profile: %d objects, %d passes, %d segments",
                 len(objects), len(depths), len(builder))
    return StrategyResult.from_builder(builder)
