"""Entry and exit moves: ramps into the material and tangent lead arcs.

Ramps replace the straight plunge of a profile pass.  A helix spirals down
around the entry point and finishes back on it; a zig-zag walks back and
forth along the first edge of the path.  Lead arcs are quarter circles
tangent to the path, placed on the waste side so the tool never arcs into
the finished part.
"""

from __future__ import annotations

import math
from typing import Optional

from ..geometry import Point2D
from ..operation import RampSettings, RampType
from .base import ToolpathBuilder

HELIX_ANGLE_STEP = 0.1      # radians per arc segment
MAX_HELIX_STEPS = 20_000
MAX_ZIGZAG_LEGS = 1_000
HELIX_TOOL_FACTOR = 0.8     # default helix radius as a fraction of tool radius


def unit_vector(a: Point2D, b: Point2D) -> tuple[Point2D, float]:
    """Direction from *a* to *b* and the distance between them."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy)
    if length == 0.0:
        return (1.0, 0.0), 0.0
    return (dx / length, dy / length), length


def waste_normal(direction: Point2D, winding: float, inside: bool) -> Point2D:
    """Unit normal to *direction* pointing at the material being removed.

    *winding* is the signed area of the path (0 for open paths, which use
    the left-hand normal).  For closed paths the waste is outside the loop
    unless *inside* is set.
    """
    dx, dy = direction
    left = (-dy, dx)
    if winding == 0.0:
        return left
    outward = (dy, -dx) if winding > 0 else left
    if inside:
        return (-outward[0], -outward[1])
    return outward


def _clockwise(direction: Point2D, normal: Point2D) -> bool:
    return direction[0] * normal[1] - direction[1] * normal[0] < 0


def lead_in_arc(point: Point2D, direction: Point2D, normal: Point2D,
                radius: float) -> tuple[Point2D, Point2D, bool]:
    """Quarter arc ending tangent to the path at *point*.

    Returns ``(arc_start, center, clockwise)``.
    """
    cx = point[0] + normal[0] * radius
    cy = point[1] + normal[1] * radius
    start = (cx - direction[0] * radius, cy - direction[1] * radius)
    return start, (cx, cy), _clockwise(direction, normal)


def lead_out_arc(point: Point2D, direction: Point2D, normal: Point2D,
                 radius: float) -> tuple[Point2D, Point2D, bool]:
    """Quarter arc leaving the path tangentially at *point*.

    Returns ``(arc_end, center, clockwise)``.
    """
    cx = point[0] + normal[0] * radius
    cy = point[1] + normal[1] * radius
    end = (cx + direction[0] * radius, cy + direction[1] * radius)
    return end, (cx, cy), _clockwise(direction, normal)


def helix_ramp(
    builder: ToolpathBuilder,
    center: Point2D,
    start_z: float,
    target_z: float,
    ramp: RampSettings,
    tool_radius: float,
    feed_rate: float,
    plunge_rate: float,
) -> None:
    """Spiral clockwise down to *target_z* around *center*, ending on it.

    The builder is expected to sit above *center* at a clearance height.
    """
    if ramp.helix_diameter:
        radius = ramp.helix_diameter / 2.0
    else:
        radius = tool_radius * HELIX_TOOL_FACTOR
    z_per_rev = 2 * math.pi * radius * math.tan(math.radians(ramp.angle))
    cx, cy = center

    if radius <= 0 or z_per_rev <= 0:
        builder.rapid_to(z=start_z)
        builder.feed_to(cx, cy, target_z, plunge_rate)
        return

    dz = z_per_rev * HELIX_ANGLE_STEP / (2 * math.pi)
    builder.rapid_to(cx + radius, cy)
    builder.rapid_to(z=start_z)

    angle = 0.0
    z = start_z
    steps = 0
    while z > target_z:
        if steps >= MAX_HELIX_STEPS:
            builder.warn(
                f"Helix ramp truncated after {steps} steps at Z{z:.3f}; "
                "plunging the remainder"
            )
            builder.feed_to(z=target_z, feed_rate=plunge_rate)
            break
        angle -= HELIX_ANGLE_STEP
        z = max(z - dz, target_z)
        builder.arc_to(
            cx + math.cos(angle) * radius,
            cy + math.sin(angle) * radius,
            z, center, clockwise=True, feed_rate=feed_rate,
        )
        steps += 1

    builder.feed_to(cx, cy, target_z, feed_rate)


def zigzag_ramp(
    builder: ToolpathBuilder,
    point: Point2D,
    direction: Point2D,
    leg_length: float,
    start_z: float,
    target_z: float,
    ramp: RampSettings,
    plunge_rate: float,
    feed_rate: float,
) -> None:
    """Ramp down in legs along *direction*, finishing at *point*.

    No leg is longer than *leg_length* (normally the first path edge), and
    none descends steeper than the ramp angle.
    """
    x0, y0 = point
    builder.rapid_to(z=start_z)
    drop = start_z - target_z
    tan_a = math.tan(math.radians(ramp.angle))
    if drop <= 0 or leg_length <= 0 or tan_a <= 0:
        builder.feed_to(x0, y0, target_z, plunge_rate)
        return

    run = drop / tan_a
    leg = min(leg_length, run)
    legs = max(2, math.ceil(run / leg - 1e-9))
    if legs % 2:
        legs += 1
    if legs > MAX_ZIGZAG_LEGS:
        builder.warn(f"Zig-zag ramp needs {legs} legs; limited to {MAX_ZIGZAG_LEGS}")
        legs = MAX_ZIGZAG_LEGS

    far = (x0 + direction[0] * leg, y0 + direction[1] * leg)
    dz = drop / legs
    for k in range(1, legs + 1):
        x, y = far if k % 2 else point
        builder.feed_to(x, y, start_z - k * dz, feed_rate)
    builder.feed_to(x0, y0, target_z, feed_rate)


def ramp_entry(
    builder: ToolpathBuilder,
    point: Point2D,
    direction: Point2D,
    leg_length: float,
    start_z: float,
    target_z: float,
    ramp: Optional[RampSettings],
    tool_radius: float,
    feed_rate: float,
    plunge_rate: float,
) -> None:
    """Enter the material at *point* with the configured ramp."""
    ramp = ramp or RampSettings()
    if ramp.ramp_type is RampType.ZIGZAG:
        zigzag_ramp(builder, point, direction, leg_length, start_z, target_z,
                    ramp, plunge_rate, feed_rate)
    else:
        helix_ramp(builder, point, start_z, target_z, ramp, tool_radius,
                   feed_rate, plunge_rate)
