"""Toolpath assembly: strategy dispatch, statistics and bounding box."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from ..design import DesignObject
from ..operation import Operation, OperationType
from ..tool import Tool
from .base import (
    BoundingBox3D,
    GeneratedToolpath,
    MotionSegment,
    StrategyResult,
    ToolpathStats,
    segment_points,
)
from .drill import generate_drill_toolpath
from .engrave import generate_engrave_toolpath
from .facing import generate_facing_toolpath
from .pocket import generate_pocket_toolpath
from .profile import generate_profile_toolpath
from .surface import generate_finish3d_toolpath, generate_rough3d_toolpath
from .vcarve import generate_vcarve_toolpath

logger = logging.getLogger(__name__)

# Assumed rapid traverse rate for time estimates, mm/min.
RAPID_RATE = 5000.0
# A non-rapid move counts as a plunge when its XY travel is below this.
PLUNGE_XY_TOLERANCE = 0.001


def _dispatch(
    operation: Operation,
    tool: Tool,
    objects: list[DesignObject],
    stock_thickness: float,
    safe_height: float,
) -> StrategyResult:
    settings = operation.settings
    kind = operation.op_type
    if kind is OperationType.PROFILE:
        return generate_profile_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.POCKET:
        return generate_pocket_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.DRILL:
        return generate_drill_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.ENGRAVE:
        return generate_engrave_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.VCARVE:
        return generate_vcarve_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.FACING:
        return generate_facing_toolpath(objects, settings, tool, safe_height)
    if kind is OperationType.ROUGH_3D:
        return generate_rough3d_toolpath(objects, settings, tool, stock_thickness, safe_height)
    if kind is OperationType.FINISH_3D:
        return generate_finish3d_toolpath(objects, settings, tool, safe_height)
    raise ValueError(f"Unhandled operation type: {kind!r}")


def is_plunge(seg: MotionSegment) -> bool:
    return (not seg.is_rapid
            and abs(seg.end[0] - seg.start[0]) < PLUNGE_XY_TOLERANCE
            and abs(seg.end[1] - seg.start[1]) < PLUNGE_XY_TOLERANCE
            and seg.end[2] < seg.start[2])


def is_retract(seg: MotionSegment) -> bool:
    return seg.is_rapid and seg.end[2] > seg.start[2]


def calculate_stats(segments: Sequence[MotionSegment], feed_rate: float) -> ToolpathStats:
    """Aggregate distances, counts and run time for *segments*.

    Cutting time uses the operation *feed_rate*; rapids assume
    ``RAPID_RATE``.  Dwell pauses are added on top.
    """
    cutting = rapid = 0.0
    plunges = retracts = 0
    max_depth = 0.0
    dwell = 0.0
    for seg in segments:
        length = seg.length
        if seg.is_rapid:
            rapid += length
        else:
            cutting += length
        if is_plunge(seg):
            plunges += 1
        if is_retract(seg):
            retracts += 1
        max_depth = max(max_depth, -seg.start[2], -seg.end[2])
        dwell += seg.dwell

    minutes = rapid / RAPID_RATE
    if feed_rate > 0:
        minutes += cutting / feed_rate
    return ToolpathStats(
        total_distance=cutting + rapid,
        cutting_distance=cutting,
        rapid_distance=rapid,
        estimated_time_ms=minutes * 60_000.0 + dwell * 1000.0,
        plunge_count=plunges,
        retract_count=retracts,
        pass_count=plunges,
        max_depth=max_depth,
    )


def calculate_bounding_box(segments: Sequence[MotionSegment]) -> BoundingBox3D:
    """Box around every segment endpoint, and around the curve of every arc."""
    if not segments:
        return BoundingBox3D()
    xs, ys, zs = [], [], []
    for seg in segments:
        pts = segment_points(seg) if seg.is_arc else (seg.start, seg.end)
        for x, y, z in pts:
            xs.append(x)
            ys.append(y)
            zs.append(z)
    return BoundingBox3D(min(xs), min(ys), min(zs), max(xs), max(ys), max(zs))


def generate_toolpath(
    operation: Operation,
    tool: Optional[Tool],
    objects: list[DesignObject],
    stock_thickness: float,
    safe_height: float,
) -> GeneratedToolpath:
    """Generate the complete toolpath for *operation*.

    *objects* may contain more than the operation uses; only its source
    objects are machined, in the order the operation lists them.  Missing
    inputs never raise: the result is an empty toolpath whose ``messages``
    say why.
    """
    messages: list[str] = []

    def skip(message: str) -> None:
        logger.warning(message)
        messages.append(message)

    by_id = {obj.id: obj for obj in objects}
    sources = [by_id[oid] for oid in operation.source_object_ids if oid in by_id]
    missing = [oid for oid in operation.source_object_ids if oid not in by_id]
    if missing:
        skip(f"Source objects not found: {', '.join(missing)}")

    result = StrategyResult()
    if tool is None or not tool.is_valid:
        skip(f"Operation '{operation.name}': tool has no valid diameter")
    elif not sources and operation.op_type is not OperationType.FACING:
        skip(f"Operation '{operation.name}': no source objects")
    else:
        result = _dispatch(operation, tool, sources, stock_thickness, safe_height)
        messages.extend(result.messages)

    segments = result.segments
    toolpath = GeneratedToolpath(
        id=str(uuid.uuid4()),
        operation_id=operation.id,
        segments=segments,
        stats=calculate_stats(segments, operation.settings.feed_rate),
        bounding_box=calculate_bounding_box(segments),
        messages=tuple(messages),
        tool_id=operation.tool_id,
        spindle_speed=operation.settings.spindle_speed,
    )
    logger.debug("Generated %s '%s': %d segments, %.1f mm cutting",
                 operation.op_type.value, operation.name, len(segments),
                 toolpath.stats.cutting_distance)
    return toolpath
