"""Core toolpath data structures."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

Point3D = tuple[float, float, float]

# Chord step used when an arc has to be turned into points.
ARC_SAMPLE_STEP = math.radians(10.0)


class MotionType(Enum):
    """Type of CNC motion."""
    RAPID = "rapid"          # G0, no cutting, full speed
    LINEAR = "linear"        # G1, cutting feed
    ARC_CW = "arc-cw"        # G2
    ARC_CCW = "arc-ccw"      # G3


@dataclass(frozen=True)
class MotionSegment:
    """One move of the tool tip from *start* to *end*.

    Arcs lie in the XY plane around *center* (X, Y only); Z may change
    linearly along the arc, which is how helical ramps are expressed.
    *dwell* is a pause in seconds after the move completes.
    """
    motion: MotionType
    start: Point3D
    end: Point3D
    feed_rate: Optional[float] = None
    center: Optional[tuple[float, float]] = None
    radius: Optional[float] = None
    dwell: float = 0.0

    @property
    def is_rapid(self) -> bool:
        return self.motion is MotionType.RAPID

    @property
    def is_arc(self) -> bool:
        return self.motion in (MotionType.ARC_CW, MotionType.ARC_CCW)

    @property
    def sweep(self) -> float:
        """Swept angle of an arc in radians (0 for straight moves)."""
        if not self.is_arc or self.center is None:
            return 0.0
        cx, cy = self.center
        a0 = math.atan2(self.start[1] - cy, self.start[0] - cx)
        a1 = math.atan2(self.end[1] - cy, self.end[0] - cx)
        if self.motion is MotionType.ARC_CW:
            return (a0 - a1) % (2 * math.pi)
        return (a1 - a0) % (2 * math.pi)

    @property
    def length(self) -> float:
        dz = self.end[2] - self.start[2]
        if self.is_arc and self.center is not None:
            r = self.radius
            if r is None:
                r = math.hypot(self.start[0] - self.center[0], self.start[1] - self.center[1])
            return math.hypot(r * self.sweep, dz)
        return math.dist(self.start, self.end)


def segment_points(seg: MotionSegment, samples: Optional[int] = None) -> list[Point3D]:
    """Points along *seg*, endpoints included.

    Lines are split into *samples* equal steps (none when ``None``).  Arcs
    follow the curve, using *samples* steps or one step per 10 degrees.
    """
    if seg.is_arc and seg.center is not None:
        sweep = seg.sweep
        steps = samples or max(1, int(math.ceil(sweep / ARC_SAMPLE_STEP)))
        cx, cy = seg.center
        r = math.hypot(seg.start[0] - cx, seg.start[1] - cy)
        a0 = math.atan2(seg.start[1] - cy, seg.start[0] - cx)
        sign = -1.0 if seg.motion is MotionType.ARC_CW else 1.0
        pts = []
        for i in range(steps + 1):
            t = i / steps
            a = a0 + sign * sweep * t
            z = seg.start[2] + (seg.end[2] - seg.start[2]) * t
            pts.append((cx + r * math.cos(a), cy + r * math.sin(a), z))
        pts[-1] = seg.end
        return pts

    steps = samples or 1
    return [
        tuple(s + (e - s) * (i / steps) for s, e in zip(seg.start, seg.end))
        for i in range(steps + 1)
    ]


class ToolpathBuilder:
    """Accumulates segments from a moving cursor.

    Every new segment starts where the previous one ended, so a strategy
    only ever names the target point.  Moves that go nowhere are dropped.
    """

    def __init__(self, start: Point3D):
        self._pos: Point3D = (float(start[0]), float(start[1]), float(start[2]))
        self._segments: list[MotionSegment] = []
        self.messages: list[str] = []

    @property
    def position(self) -> Point3D:
        return self._pos

    def __len__(self) -> int:
        return len(self._segments)

    def _target(self, x, y, z) -> Point3D:
        px, py, pz = self._pos
        return (
            px if x is None else float(x),
            py if y is None else float(y),
            pz if z is None else float(z),
        )

    def _push(self, seg: MotionSegment) -> None:
        self._segments.append(seg)
        self._pos = seg.end

    def rapid_to(self, x: Optional[float] = None, y: Optional[float] = None,
                 z: Optional[float] = None) -> None:
        end = self._target(x, y, z)
        if end == self._pos:
            return
        self._push(MotionSegment(MotionType.RAPID, self._pos, end))

    def feed_to(self, x: Optional[float] = None, y: Optional[float] = None,
                z: Optional[float] = None, feed_rate: float = 0.0,
                dwell: float = 0.0) -> None:
        end = self._target(x, y, z)
        if end == self._pos and dwell <= 0:
            return
        self._push(MotionSegment(MotionType.LINEAR, self._pos, end, feed_rate, dwell=dwell))

    def arc_to(self, x: float, y: float, z: Optional[float],
               center: tuple[float, float], clockwise: bool,
               feed_rate: float) -> None:
        end = self._target(x, y, z)
        if end == self._pos:
            return
        radius = math.hypot(self._pos[0] - center[0], self._pos[1] - center[1])
        motion = MotionType.ARC_CW if clockwise else MotionType.ARC_CCW
        self._push(MotionSegment(
            motion, self._pos, end, feed_rate,
            center=(float(center[0]), float(center[1])), radius=radius,
        ))

    def warn(self, message: str) -> None:
        """Record a generation warning and log it."""
        logger.warning(message)
        self.messages.append(message)

    def segments(self) -> tuple[MotionSegment, ...]:
        return tuple(self._segments)


@dataclass(frozen=True)
class StrategyResult:
    """Output of a single strategy run."""
    segments: tuple[MotionSegment, ...] = ()
    messages: tuple[str, ...] = ()

    @classmethod
    def from_builder(cls, builder: ToolpathBuilder) -> StrategyResult:
        return cls(builder.segments(), tuple(builder.messages))


@dataclass(frozen=True)
class ToolpathStats:
    total_distance: float = 0.0
    cutting_distance: float = 0.0
    rapid_distance: float = 0.0
    estimated_time_ms: float = 0.0
    plunge_count: int = 0
    retract_count: int = 0
    pass_count: int = 0
    max_depth: float = 0.0


@dataclass(frozen=True)
class BoundingBox3D:
    min_x: float = 0.0
    min_y: float = 0.0
    min_z: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0
    max_z: float = 0.0

    @property
    def size(self) -> Point3D:
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)

    def contains(self, point: Point3D, tol: float = 1e-9) -> bool:
        x, y, z = point
        return (self.min_x - tol <= x <= self.max_x + tol
                and self.min_y - tol <= y <= self.max_y + tol
                and self.min_z - tol <= z <= self.max_z + tol)


@dataclass(frozen=True)
class GeneratedToolpath:
    """The complete, immutable result of generating one operation."""
    id: str
    operation_id: str
    segments: tuple[MotionSegment, ...] = ()
    stats: ToolpathStats = field(default_factory=ToolpathStats)
    bounding_box: BoundingBox3D = field(default_factory=BoundingBox3D)
    messages: tuple[str, ...] = ()
    tool_id: str = ""
    spindle_speed: int = 0
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return len(self.segments) == 0
