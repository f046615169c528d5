"""Post-processor: turns generated toolpaths into a G-code program.

Program layout::

    <program_header> <comments> <program_start> G21|G20 G90 G17
    (per block: tool change when the tool differs, tool comment,
     G0 Z<safe> M3 S<rpm> [G4 P<delay>] [coolant] <motion>)
    M5 [coolant off] G0 Z<safe> G0 X0 Y0 <program_end> M30 <program_trailer>

All coordinates in a ``GeneratedToolpath`` are millimetres; inch output
converts coordinates and feeds on the way out.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from ..core.operation import Coolant
from ..core.tool import Tool
from ..core.toolpath.base import GeneratedToolpath, MotionSegment, MotionType, segment_points
from ..core.units import Units
from .gcode_writer import CommentStyle, arc, comment, dwell, fmt, linear, rapid

logger = logging.getLogger(__name__)

# Chord angle used when arcs must be written as G1 moves.
LINEARIZE_STEP = math.pi / 16

TOOL_WORD = re.compile(r"\bT1\b")
LENGTH_OFFSET_WORD = re.compile(r"\bH1\b")

STANDARD_COOLANT_CODES = {
    Coolant.FLOOD: "M8",
    Coolant.MIST: "M7",
    Coolant.AIR: "",
    Coolant.OFF: "M9",
}


class ArcPlane(Enum):
    XY = "G17"
    XZ = "G18"
    YZ = "G19"


@dataclass
class PostProcessorConfig:
    """Dialect settings for one controller family.

    *program_start* / *program_end* hold only the controller-specific
    extras; the units, positioning, plane, spindle and end-of-program words
    are always written by the post-processor itself.  *program_header* and
    *program_trailer* lines are written verbatim, without line numbers.

    With *modal_axes* set, axis words and feed rates that repeat the previous
    value are left out of motion lines.  *coolant_codes* maps each coolant
    mode to its M-code; an empty code means the controller has no such
    output.
    """

    id: str
    name: str
    program_header: list[str] = field(default_factory=list)
    program_start: list[str] = field(default_factory=list)
    program_end: list[str] = field(default_factory=list)
    program_trailer: list[str] = field(default_factory=list)
    tool_change_start: list[str] = field(default_factory=list)
    tool_change_end: list[str] = field(default_factory=list)
    units: Units = Units.MM
    use_line_numbers: bool = False
    line_number_start: int = 10
    line_number_increment: int = 10
    decimal_places: int = 3
    arc_support: bool = True
    arc_plane: ArcPlane = ArcPlane.XY
    spindle_start_delay: float = 0.0   # seconds
    comment_style: CommentStyle = CommentStyle.SEMICOLON
    file_extension: str = ".nc"
    modal_axes: bool = False
    coolant_codes: dict[Coolant, str] = field(
        default_factory=lambda: dict(STANDARD_COOLANT_CODES))


PRESET_POST_PROCESSORS: dict[str, PostProcessorConfig] = {
    "grbl": PostProcessorConfig(
        id="grbl",
        name="GRBL 1.1",
        tool_change_start=["M0"],
        spindle_start_delay=3.0,
        comment_style=CommentStyle.SEMICOLON,
    ),
    "grbl-hal": PostProcessorConfig(
        id="grbl-hal",
        name="grblHAL",
        program_start=["G54"],
        program_end=["M9"],
        tool_change_start=["M9", "M0"],
        tool_change_end=["G43 H1"],
        decimal_places=4,
        spindle_start_delay=5.0,
        comment_style=CommentStyle.SEMICOLON,
        coolant_codes={**STANDARD_COOLANT_CODES, Coolant.AIR: "M7"},
    ),
    "linuxcnc": PostProcessorConfig(
        id="linuxcnc",
        name="LinuxCNC",
        program_header=["%"],
        program_start=["O1000", "G40", "G49", "G54"],
        program_end=["M9"],
        program_trailer=["%"],
        tool_change_start=["M9", "M6 T1"],
        tool_change_end=["G43 H1"],
        use_line_numbers=True,
        decimal_places=4,
        spindle_start_delay=5.0,
        comment_style=CommentStyle.PARENTHESES,
        file_extension=".ngc",
    ),
    "mach3": PostProcessorConfig(
        id="mach3",
        name="Mach3/Mach4",
        program_start=["G40", "G49", "G54"],
        program_end=["M9"],
        tool_change_start=["M9", "M6 T1"],
        tool_change_end=["G43 H1"],
        use_line_numbers=True,
        decimal_places=4,
        spindle_start_delay=5.0,
        comment_style=CommentStyle.PARENTHESES,
        file_extension=".tap",
    ),
}


def get_post_processor(preset_id: str, **overrides) -> PostProcessorConfig:
    """Copy of a preset, optionally with fields replaced.

    Raises ``KeyError`` for unknown presets.
    """
    try:
        base = PRESET_POST_PROCESSORS[preset_id]
    except KeyError:
        raise KeyError(
            f"Unknown post-processor {preset_id!r}; "
            f"choose from {', '.join(PRESET_POST_PROCESSORS)}"
        ) from None
    config = replace(
        base,
        program_header=list(base.program_header),
        program_start=list(base.program_start),
        program_end=list(base.program_end),
        program_trailer=list(base.program_trailer),
        tool_change_start=list(base.tool_change_start),
        tool_change_end=list(base.tool_change_end),
        coolant_codes=dict(base.coolant_codes),
    )
    return replace(config, **overrides) if overrides else config


@dataclass
class ProgramBlock:
    """One operation's toolpath with the tool that cuts it."""

    toolpath: GeneratedToolpath
    tool: Tool
    tool_number: int = 1
    spindle_speed: Optional[int] = None   # falls back to the toolpath's
    coolant: Coolant = Coolant.OFF


class PostProcessor:
    """Stateful G-code emitter; each ``generate*`` call starts a fresh program."""

    def __init__(self, config: Optional[PostProcessorConfig] = None):
        self.config = config or get_post_processor("grbl")
        self._lines: list[str] = []
        self._line_number = self.config.line_number_start
        self._last_axes: list[Optional[str]] = [None, None, None]
        self._last_feed: Optional[str] = None
        self._coolant = Coolant.OFF

    # ------------------------------------------------------------------
    # Line helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._lines = []
        self._line_number = self.config.line_number_start
        self._last_axes = [None, None, None]
        self._last_feed = None
        self._coolant = Coolant.OFF

    def _add(self, code: str) -> None:
        if self.config.use_line_numbers:
            self._lines.append(f"N{self._line_number} {code}")
            self._line_number += self.config.line_number_increment
        else:
            self._lines.append(code)

    def _comment(self, text: str) -> None:
        line = comment(text, self.config.comment_style)
        if line is not None:
            self._add(line)

    def _u(self, value: float) -> float:
        return self.config.units.from_mm(value)

    @property
    def _dp(self) -> int:
        return self.config.decimal_places

    def _axes(self, x, y, z) -> list[Optional[float]]:
        """Axis values to write; unchanged ones become ``None`` in modal mode."""
        values = [x, y, z]
        for k, v in enumerate(values):
            if v is None:
                continue
            text = fmt(v, self._dp)
            if self.config.modal_axes and text == self._last_axes[k]:
                values[k] = None
            self._last_axes[k] = text
        return values

    def _feed(self, feed: Optional[float]) -> Optional[float]:
        if feed is None:
            return None
        text = fmt(feed, 0)
        if self.config.modal_axes and text == self._last_feed:
            return None
        self._last_feed = text
        return feed

    def _rapid(self, x=None, y=None, z=None) -> None:
        x, y, z = self._axes(x, y, z)
        if x is None and y is None and z is None:
            return
        self._add(rapid(x, y, z, self._dp))

    def _linear(self, x, y, z, feed) -> None:
        x, y, z = self._axes(x, y, z)
        feed = self._feed(feed)
        if x is None and y is None and z is None and feed is None:
            return
        self._add(linear(x, y, z, feed, self._dp))

    def _set_coolant(self, mode: Coolant, covered_by: Sequence[str] = ()) -> None:
        """Switch coolant, skipping a code that a *covered_by* line already emits."""
        codes = self.config.coolant_codes
        if not codes.get(mode):
            mode = Coolant.OFF
        if mode is self._coolant:
            return
        code = codes.get(mode, "")
        if code and code not in covered_by:
            self._add(code)
        self._coolant = mode

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def _emit_segment(self, seg: MotionSegment) -> None:
        x, y, z = (self._u(v) for v in seg.end)
        feed = self._u(seg.feed_rate) if seg.feed_rate is not None else None

        if seg.motion is MotionType.RAPID:
            self._rapid(x, y, z)
        elif seg.motion is MotionType.LINEAR:
            self._linear(x, y, z, feed)
        elif self.config.arc_support and seg.center is not None:
            i = self._u(seg.center[0] - seg.start[0])
            j = self._u(seg.center[1] - seg.start[1])
            dz = z if seg.end[2] != seg.start[2] else None
            self._axes(x, y, z)
            self._add(arc(seg.motion is MotionType.ARC_CW, x, y, i, j, dz,
                          self._feed(feed), self._dp))
        else:
            steps = max(4, math.ceil(seg.sweep / LINEARIZE_STEP))
            for px, py, pz in segment_points(seg, steps)[1:]:
                self._linear(self._u(px), self._u(py), self._u(pz), feed)

        if seg.dwell > 0:
            self._add(dwell(seg.dwell, self._dp))

    def _tool_change(self, tool: Tool, number: int, safe_height: float) -> None:
        self._add("M5")
        self._set_coolant(Coolant.OFF, self.config.tool_change_start)
        self._rapid(z=self._u(safe_height))
        for line in self.config.tool_change_start:
            self._add(TOOL_WORD.sub(f"T{number}", line))
        self._comment(f"Change to tool {number}: {tool.name}")
        for line in self.config.tool_change_end:
            self._add(LENGTH_OFFSET_WORD.sub(f"H{number}", line))
        # The controller may move the machine during the change.
        self._last_axes = [None, None, None]

    def _tool_comment(self, tool: Tool) -> None:
        diameter = fmt(tool.diameter or 0.0, self._dp)
        self._comment(f"Tool: {tool.name} D{diameter}mm")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def work_offset_line(self, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> str:
        """``G10 L20 P1`` line that sets the current position as (x, y, z) in G54."""
        words = " ".join(
            f"{axis}{fmt(self._u(v), self._dp)}" for axis, v in (("X", x), ("Y", y), ("Z", z))
        )
        return f"G10 L20 P1 {words}"

    def generate(
        self,
        toolpath: GeneratedToolpath,
        tool: Tool,
        safe_height: float,
        spindle_speed: Optional[int] = None,
        coolant: Coolant = Coolant.OFF,
    ) -> str:
        """Single-operation program."""
        return self.generate_program(
            [ProgramBlock(toolpath, tool, 1, spindle_speed, coolant)], safe_height)

    def generate_program(self, blocks: Sequence[ProgramBlock], safe_height: float) -> str:
        """Program covering *blocks* in order, with tool changes between tools."""
        self._reset()
        cfg = self.config

        self._lines.extend(cfg.program_header)
        self._comment("Generated by routercam")
        for line in cfg.program_start:
            self._add(line)
        self._add(cfg.units.gcode_modal)
        self._add("G90")
        self._add(cfg.arc_plane.value)

        current_tool: Optional[str] = None
        current_rpm: Optional[int] = None
        for block in blocks:
            if current_tool is not None and block.tool.id != current_tool:
                self._tool_change(block.tool, block.tool_number, safe_height)
                current_rpm = None
            current_tool = block.tool.id
            self._tool_comment(block.tool)

            rpm = block.spindle_speed if block.spindle_speed is not None else block.toolpath.spindle_speed
            self._rapid(z=self._u(safe_height))
            if rpm != current_rpm:
                self._add(f"M3 S{int(rpm)}")
                if cfg.spindle_start_delay > 0:
                    self._add(dwell(cfg.spindle_start_delay, self._dp))
                current_rpm = rpm
            self._set_coolant(block.coolant)

            for seg in block.toolpath.segments:
                self._emit_segment(seg)

        self._add("M5")
        self._set_coolant(Coolant.OFF, cfg.program_end)
        self._rapid(z=self._u(safe_height))
        self._rapid(x=0.0, y=0.0)
        for line in cfg.program_end:
            self._add(line)
        self._add("M30")
        self._lines.extend(cfg.program_trailer)

        logger.debug("Post-processed %d blocks into %d lines (%s)",
                     len(blocks), len(self._lines), cfg.name)
        return "\n".join(self._lines) + "\n"

    def write(self, program: str, path: Path) -> Path:
        """Save *program* to *path*, adding the dialect's extension if missing."""
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(self.config.file_extension)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(program)
        logger.info("Wrote %s", path)
        return path
