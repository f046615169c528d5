"""Pre-run safety checks.

Checks a generated toolpath against machine travel, the stock, the tool and
keepout zones before cutting.  Findings are returned as data; nothing here
raises for an unsafe toolpath.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ..config.machine_profiles import MachineConfig
from ..core.keepout import Keepout
from ..core.stock import Stock
from ..core.tool import Tool
from ..core.toolpath.base import GeneratedToolpath, MotionSegment, Point3D, segment_points

logger = logging.getLogger(__name__)

BOUNDS_MARGIN_MM = 10.0
FLUTE_WARNING_FRACTION = 0.8
FEED_HEADROOM = 1.5
FALLBACK_MAX_FEED = 2000.0
FALLBACK_MAX_PLUNGE = 500.0
KEEPOUT_CLEARANCE = 2.0
KEEPOUT_SAMPLES = 10
RAPID_CLEARANCE = 5.0


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckCategory(Enum):
    BOUNDS = "bounds"
    TOOL = "tool"
    FEEDS = "feeds"
    DEPTH = "depth"
    COLLISION = "collision"
    GENERAL = "general"


@dataclass
class SafetyCheck:
    """Outcome of one named check."""

    id: str
    name: str
    description: str
    passed: bool
    category: CheckCategory


@dataclass
class SafetyWarning:
    code: str
    message: str
    severity: Severity
    location: Optional[Point3D] = None
    suggestion: str = ""


@dataclass
class SafetyError:
    code: str
    message: str
    location: Optional[Point3D] = None
    blocks_execution: bool = True


@dataclass
class SafetyCheckResult:
    """All findings for one toolpath."""

    checks: list[SafetyCheck] = field(default_factory=list)
    warnings: list[SafetyWarning] = field(default_factory=list)
    errors: list[SafetyError] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(e.blocks_execution for e in self.errors)

    @property
    def blocking_errors(self) -> list[SafetyError]:
        return [e for e in self.errors if e.blocks_execution]

    def codes(self) -> set[str]:
        return {e.code for e in self.errors} | {w.code for w in self.warnings}


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

def _check_machine_bounds(tp: GeneratedToolpath, machine: MachineConfig,
                          result: SafetyCheckResult) -> None:
    bb = tp.bounding_box
    passed = True

    def error(code: str, message: str, location: Point3D) -> None:
        nonlocal passed
        result.errors.append(SafetyError(code, message, location))
        passed = False

    if bb.max_x > machine.travel_x:
        error("BOUNDS_X_MAX",
              f"Toolpath exceeds X+ limit: {bb.max_x:.1f}mm > {machine.travel_x:g}mm",
              (bb.max_x, 0.0, 0.0))
    if bb.min_x < 0:
        error("BOUNDS_X_MIN", f"Toolpath exceeds X- limit: {bb.min_x:.1f}mm < 0mm",
              (bb.min_x, 0.0, 0.0))
    if bb.max_y > machine.travel_y:
        error("BOUNDS_Y_MAX",
              f"Toolpath exceeds Y+ limit: {bb.max_y:.1f}mm > {machine.travel_y:g}mm",
              (0.0, bb.max_y, 0.0))
    if bb.min_y < 0:
        error("BOUNDS_Y_MIN", f"Toolpath exceeds Y- limit: {bb.min_y:.1f}mm < 0mm",
              (0.0, bb.min_y, 0.0))
    if bb.min_z < -machine.travel_z:
        error("BOUNDS_Z_MIN",
              f"Toolpath exceeds Z- limit: {bb.min_z:.1f}mm < -{machine.travel_z:g}mm",
              (0.0, 0.0, bb.min_z))

    margin_x = min(bb.min_x, machine.travel_x - bb.max_x)
    margin_y = min(bb.min_y, machine.travel_y - bb.max_y)
    if not tp.is_empty and (margin_x < BOUNDS_MARGIN_MM or margin_y < BOUNDS_MARGIN_MM):
        result.warnings.append(SafetyWarning(
            "BOUNDS_MARGIN", "Toolpath is close to machine limits", Severity.MEDIUM,
            suggestion="Consider repositioning the workpiece for more clearance",
        ))

    result.checks.append(SafetyCheck(
        "machine-bounds", "Machine Bounds",
        "Verify toolpath stays within machine travel limits",
        passed, CheckCategory.BOUNDS,
    ))


def _check_stock_bounds(tp: GeneratedToolpath, stock: Stock,
                        result: SafetyCheckResult) -> None:
    bb = tp.bounding_box
    xmin, ymin, xmax, ymax = stock.bounds_2d
    if bb.max_x > xmax or bb.min_x < xmin:
        result.warnings.append(SafetyWarning(
            "STOCK_X_BOUNDS", "Toolpath extends beyond stock width", Severity.HIGH,
            suggestion="Verify stock dimensions or adjust design position",
        ))
    if bb.max_y > ymax or bb.min_y < ymin:
        result.warnings.append(SafetyWarning(
            "STOCK_Y_BOUNDS", "Toolpath extends beyond stock height", Severity.HIGH,
            suggestion="Verify stock dimensions or adjust design position",
        ))
    if bb.min_z < stock.z_bottom:
        result.errors.append(SafetyError(
            "STOCK_Z_DEPTH",
            f"Cut depth ({abs(bb.min_z):.1f}mm) exceeds stock thickness "
            f"({stock.thickness:g}mm)",
            (0.0, 0.0, bb.min_z),
            blocks_execution=False,
        ))
        result.warnings.append(SafetyWarning(
            "CUT_THROUGH", "Toolpath will cut through the material", Severity.HIGH,
            suggestion="Ensure wasteboard is in place and sacrificial",
        ))

    # Leaving the stock is a warning only; the check itself always passes.
    result.checks.append(SafetyCheck(
        "stock-bounds", "Stock Bounds",
        "Verify toolpath stays within stock dimensions",
        True, CheckCategory.BOUNDS,
    ))


def _check_cut_depth(tp: GeneratedToolpath, tool: Tool,
                     result: SafetyCheckResult) -> None:
    max_depth = abs(tp.bounding_box.min_z)
    diameter = tool.diameter or 0.0
    flute_length = tool.flute_length or diameter * 3
    passed = True

    if max_depth > flute_length:
        result.errors.append(SafetyError(
            "DEPTH_EXCEEDS_FLUTE",
            f"Cut depth ({max_depth:.1f}mm) exceeds tool flute length ({flute_length:.1f}mm)",
        ))
        passed = False
    if max_depth > flute_length * FLUTE_WARNING_FRACTION:
        result.warnings.append(SafetyWarning(
            "DEPTH_NEAR_FLUTE_LIMIT", "Cut depth is close to tool flute length limit",
            Severity.MEDIUM,
            suggestion="Consider using a longer tool or reducing cut depth",
        ))

    if tp.stats.pass_count > 0:
        depth_per_pass = tp.stats.max_depth / tp.stats.pass_count
        recommended = diameter * 0.5
        if depth_per_pass > recommended * 2:
            result.warnings.append(SafetyWarning(
                "AGGRESSIVE_DEPTH_PER_PASS",
                f"Depth per pass ({depth_per_pass:.1f}mm) may be too aggressive",
                Severity.MEDIUM,
                suggestion=f"Consider reducing to {recommended:.1f}mm or less",
            ))

    result.checks.append(SafetyCheck(
        "cut-depth", "Cut Depth", "Verify cut depth is within tool capabilities",
        passed, CheckCategory.DEPTH,
    ))


def _is_vertical_plunge(seg: MotionSegment) -> bool:
    dx = seg.end[0] - seg.start[0]
    dy = seg.end[1] - seg.start[1]
    return seg.end[2] < seg.start[2] and abs(dx) < 0.01 and abs(dy) < 0.01


def _check_feed_rates(tp: GeneratedToolpath, tool: Tool, machine: MachineConfig,
                      result: SafetyCheckResult) -> None:
    max_feed = 0.0
    max_plunge = 0.0
    for seg in tp.segments:
        if seg.is_rapid or not seg.feed_rate:
            continue
        if _is_vertical_plunge(seg):
            max_plunge = max(max_plunge, seg.feed_rate)
        else:
            max_feed = max(max_feed, seg.feed_rate)

    machine_max = machine.rapid_xy or 5000.0
    if max_feed > machine_max:
        result.errors.append(SafetyError(
            "FEED_EXCEEDS_MACHINE",
            f"Feed rate ({max_feed:g}mm/min) exceeds machine maximum ({machine_max:g}mm/min)",
            blocks_execution=False,
        ))

    feed_limit = (tool.default_feed_rate * FEED_HEADROOM
                  if tool.default_feed_rate else FALLBACK_MAX_FEED)
    if max_feed > feed_limit:
        result.warnings.append(SafetyWarning(
            "FEED_HIGH",
            f"Feed rate ({max_feed:g}mm/min) is higher than recommended for this tool",
            Severity.MEDIUM,
            suggestion=f"Consider reducing to {feed_limit:.0f}mm/min or less",
        ))

    plunge_limit = (tool.default_plunge_rate * FEED_HEADROOM
                    if tool.default_plunge_rate else FALLBACK_MAX_PLUNGE)
    if max_plunge > plunge_limit:
        result.warnings.append(SafetyWarning(
            "PLUNGE_HIGH",
            f"Plunge rate ({max_plunge:g}mm/min) is higher than recommended",
            Severity.MEDIUM,
            suggestion=f"Consider reducing to {plunge_limit:.0f}mm/min or less",
        ))

    result.checks.append(SafetyCheck(
        "feed-rates", "Feed Rates", "Verify feed rates are within safe limits",
        True, CheckCategory.FEEDS,
    ))


def _check_tool(tool: Tool, result: SafetyCheckResult) -> None:
    passed = tool.is_valid
    if not passed:
        result.errors.append(SafetyError(
            "TOOL_NO_DIAMETER", "Tool has no valid diameter specified"))
    result.checks.append(SafetyCheck(
        "tool-compatibility", "Tool Compatibility",
        "Verify tool is suitable for the operation",
        passed, CheckCategory.TOOL,
    ))


def keepout_collision(seg: MotionSegment, keepout: Keepout,
                      tool_radius: float) -> Optional[Point3D]:
    """First sampled point of *seg* inside *keepout*, or ``None``.

    Lines and arcs are both sampled along the path the tool actually
    follows (11 points); the zone is grown by the tool radius plus a fixed
    clearance.
    """
    margin = tool_radius + KEEPOUT_CLEARANCE
    for p in segment_points(seg, KEEPOUT_SAMPLES):
        if keepout.contains(*p, margin=margin):
            return p
    return None


def _check_keepouts(tp: GeneratedToolpath, tool: Tool, keepouts: Sequence[Keepout],
                    result: SafetyCheckResult) -> None:
    passed = True
    for zone in keepouts:
        for seg in tp.segments:
            if seg.is_rapid and not zone.avoid_rapids:
                continue
            if not seg.is_rapid and not zone.avoid_cuts:
                continue
            hit = keepout_collision(seg, zone, tool.radius)
            if hit is None:
                continue
            if seg.is_rapid:
                result.warnings.append(SafetyWarning(
                    "KEEPOUT_RAPID_COLLISION",
                    f"Rapid move passes through keepout zone: {zone.name}",
                    Severity.HIGH, hit,
                    suggestion="Adjust safe height or reposition keepout",
                ))
            else:
                result.errors.append(SafetyError(
                    "KEEPOUT_COLLISION",
                    f"Toolpath collides with keepout zone: {zone.name}", hit,
                ))
                passed = False

    result.checks.append(SafetyCheck(
        "keepouts", "Keepout Zones", "Verify toolpath avoids defined keepout zones",
        passed, CheckCategory.COLLISION,
    ))


def _check_rapids(tp: GeneratedToolpath, stock: Stock,
                  result: SafetyCheckResult) -> None:
    top = stock.z_top
    passed = True
    for seg in tp.segments:
        if not seg.is_rapid:
            continue
        dx = abs(seg.end[0] - seg.start[0])
        dy = abs(seg.end[1] - seg.start[1])
        z = seg.end[2]
        if top < z < top + RAPID_CLEARANCE and (dx > 1 or dy > 1):
            result.warnings.append(SafetyWarning(
                "RAPID_NEAR_STOCK", "Rapid move close to stock surface",
                Severity.MEDIUM, seg.end,
                suggestion="Consider increasing safe height",
            ))
        if z < top and seg.start[2] < top and (dx > 0.1 or dy > 0.1):
            result.errors.append(SafetyError(
                "RAPID_IN_MATERIAL", "Rapid move while below stock surface", seg.end))
            passed = False

    result.checks.append(SafetyCheck(
        "rapid-moves", "Rapid Moves", "Verify rapid moves are safe",
        passed, CheckCategory.GENERAL,
    ))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def perform_safety_checks(
    toolpath: GeneratedToolpath,
    tool: Tool,
    stock: Stock,
    machine: MachineConfig,
    keepouts: Sequence[Keepout] = (),
) -> SafetyCheckResult:
    """Run every check against *toolpath*.

    Checks performed, in order:
    - Machine travel limits (and a clearance margin warning)
    - Stock footprint and thickness
    - Cut depth against flute length and depth per pass
    - Feed and plunge rates against machine and tool
    - Tool definition
    - Keepout zones
    - Rapid moves in or just above the material

    ``result.passed`` is False only when some error blocks execution.
    """
    result = SafetyCheckResult()
    _check_machine_bounds(toolpath, machine, result)
    _check_stock_bounds(toolpath, stock, result)
    _check_cut_depth(toolpath, tool, result)
    _check_feed_rates(toolpath, tool, machine, result)
    _check_tool(tool, result)
    _check_keepouts(toolpath, tool, keepouts, result)
    _check_rapids(toolpath, stock, result)

    logger.debug("Safety checks for %s: %d errors (%d blocking), %d warnings",
                 toolpath.operation_id, len(result.errors),
                 len(result.blocking_errors), len(result.warnings))
    return result
