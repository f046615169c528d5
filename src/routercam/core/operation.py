"""Machining operation parameter containers.

An Operation binds a strategy to a tool, a set of source design objects and
an ``OperationSettings`` value.  Strategy-specific blocks are optional; each
strategy falls back to the defaults of its block when the block is absent.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OperationType(Enum):
    PROFILE = "profile"
    POCKET = "pocket"
    DRILL = "drill"
    ENGRAVE = "engrave"
    VCARVE = "vcarve"
    FACING = "facing"
    ROUGH_3D = "3d-rough"
    FINISH_3D = "3d-finish"


class CutSide(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"
    ON = "on"


class CutDirection(Enum):
    CLIMB = "climb"
    CONVENTIONAL = "conventional"


class PocketStrategy(Enum):
    OFFSET = "offset"
    RASTER = "raster"
    SPIRAL = "spiral"


class PocketStart(Enum):
    CENTER = "center"      # innermost ring first
    OUTSIDE = "outside"    # outermost ring first


class DrillCycle(Enum):
    SIMPLE = "simple"
    PECK = "peck"
    CHIP_BREAK = "chip-break"


class DrillOrder(Enum):
    NONE = "none"
    NEAREST_NEIGHBOR = "nearest-neighbor"


class RampType(Enum):
    HELIX = "helix"
    ZIGZAG = "zigzag"


class LeadType(Enum):
    NONE = "none"
    ARC = "arc"


class Coolant(Enum):
    OFF = "off"
    MIST = "mist"
    FLOOD = "flood"
    AIR = "air"


@dataclass
class RampSettings:
    ramp_type: RampType = RampType.HELIX
    angle: float = 3.0                       # degrees from horizontal
    helix_diameter: Optional[float] = None   # default 0.8 x tool diameter


@dataclass
class LeadSettings:
    lead_in: LeadType = LeadType.ARC
    lead_out: LeadType = LeadType.ARC
    lead_in_radius: float = 5.0
    lead_out_radius: float = 5.0


@dataclass
class TabSettings:
    count: int = 4
    width: float = 5.0
    height: float = 2.0   # measured up from the final cut depth


@dataclass
class ProfileSettings:
    cut_side: CutSide = CutSide.OUTSIDE
    direction: CutDirection = CutDirection.CLIMB


@dataclass
class PocketSettings:
    strategy: PocketStrategy = PocketStrategy.OFFSET
    stepover: float = 40.0        # percent of tool diameter
    start_point: PocketStart = PocketStart.CENTER
    raster_angle: float = 0.0     # degrees


@dataclass
class DrillSettings:
    cycle: DrillCycle = DrillCycle.SIMPLE
    peck_depth: float = 2.0
    peck_retract: Optional[float] = None   # 1.0 for peck, 0.5 for chip-break
    dwell_time: float = 0.0                # seconds at the bottom (simple cycle)
    order: DrillOrder = DrillOrder.NONE


@dataclass
class EngraveSettings:
    depth: Optional[float] = None   # falls back to cut_depth


@dataclass
class VCarveSettings:
    max_depth: Optional[float] = None   # falls back to cut_depth
    default_width: float = 5.0          # carve width used for every stroke


@dataclass
class FacingSettings:
    stepover: float = 70.0        # percent of tool diameter
    boundary_offset: float = 0.0


@dataclass
class Rough3DSettings:
    stepover: float = 50.0
    stepdown: Optional[float] = None   # falls back to depth_per_pass
    stock_to_leave: float = 0.0


@dataclass
class Finish3DSettings:
    stepover: float = 10.0


@dataclass
class OperationSettings:
    """Shared cutting parameters plus optional strategy blocks.

    Depths are positive distances below the stock top; heights are Z values
    above it.  Rates are mm/min.
    """

    cut_depth: float = 3.0
    depth_per_pass: float = 1.0
    feed_rate: float = 1000.0
    plunge_rate: float = 300.0
    retract_height: float = 2.0
    safe_height: float = 5.0
    spindle_speed: int = 18000
    coolant: Coolant = Coolant.OFF

    use_ramping: bool = False
    ramp: Optional[RampSettings] = None
    use_lead_in_out: bool = False
    lead: Optional[LeadSettings] = None
    use_tabs: bool = False
    tabs: Optional[TabSettings] = None

    profile: Optional[ProfileSettings] = None
    pocket: Optional[PocketSettings] = None
    drill: Optional[DrillSettings] = None
    engrave: Optional[EngraveSettings] = None
    vcarve: Optional[VCarveSettings] = None
    facing: Optional[FacingSettings] = None
    rough3d: Optional[Rough3DSettings] = None
    finish3d: Optional[Finish3DSettings] = None

    def __post_init__(self) -> None:
        if self.depth_per_pass <= 0:
            raise ValueError("depth_per_pass must be positive")
        if self.cut_depth < 0:
            raise ValueError("cut_depth must not be negative")

    @property
    def pass_count(self) -> int:
        """Number of depth passes: ``ceil(cut_depth / depth_per_pass)``."""
        # Tolerance keeps 0.3 / 0.1 from rounding up to four passes.
        return max(0, math.ceil(self.cut_depth / self.depth_per_pass - 1e-9))


@dataclass
class Operation:
    """A named cutting task bound to source geometry and settings."""

    id: str
    name: str
    op_type: OperationType
    tool_id: str
    source_object_ids: list[str] = field(default_factory=list)
    settings: OperationSettings = field(default_factory=OperationSettings)
    enabled: bool = True
