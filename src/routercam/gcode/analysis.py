"""Checks and estimates that work on finished G-code text.

These read a program back as the controller would, so they apply equally to
programs written by :class:`~routercam.gcode.post_processor.PostProcessor`
and to files from elsewhere.  Only the words this package emits are
understood: G0-G4, G20/G21, F, M3-M5, M2/M30 and T.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Optional

from ..core.units import MM_PER_INCH

logger = logging.getLogger(__name__)

# Assumed rapid traverse rate, mm/min.
ESTIMATE_RAPID_RATE = 5000.0
# Feed assumed for cutting moves that precede any F word, mm/min.
ESTIMATE_DEFAULT_FEED = 1000.0
DEEP_CUT_LIMIT = 100.0

_COMMENT = re.compile(r"\([^)]*\)|;.*$")
_LINE_NUMBER = re.compile(r"^N\d+\s*", re.IGNORECASE)
_WORD = re.compile(r"([A-Z])\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))", re.IGNORECASE)

# G-codes that act on their own line only and never move along a path.
_NON_MODAL = {4, 10, 28, 30, 53, 92}


def parse_words(line: str) -> list[tuple[str, float]]:
    """Letter/value pairs of one line, with comments and the N word removed."""
    code = _LINE_NUMBER.sub("", _COMMENT.sub("", line).strip())
    return [(letter.upper(), float(value)) for letter, value in _WORD.findall(code)]


@dataclass
class GcodeReport:
    """Findings from :func:`validate_gcode`; messages name the 1-based line."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_gcode(program: str) -> GcodeReport:
    """Lint *program* for mistakes that would ruin a cut.

    Errors:
    - Arc moves without I/J (or R) centre words

    Warnings:
    - Cutting moves before any feed rate has been set
    - Rapid XY moves that end below Z0
    - No spindle start (M3/M4), spindle stop (M5) or program end (M30/M2)
    - Cuts deeper than 100 units
    """
    report = GcodeReport()
    motion: Optional[int] = None
    feed: Optional[float] = None
    z = 0.0
    min_z = 0.0
    spindle_start = spindle_stop = program_end = False

    for number, line in enumerate(program.splitlines(), start=1):
        words = parse_words(line)
        if not words:
            continue
        letters = {letter: value for letter, value in words}
        g_codes = {int(v) for letter, v in words if letter == "G" and v == int(v)}
        m_codes = {int(v) for letter, v in words if letter == "M"}

        spindle_start |= bool(m_codes & {3, 4})
        spindle_stop |= 5 in m_codes
        program_end |= bool(m_codes & {2, 30})
        if "F" in letters:
            feed = letters["F"]

        if g_codes & _NON_MODAL:
            continue
        for g in (0, 1, 2, 3):
            if g in g_codes:
                motion = g
        moves = any(a in letters for a in "XYZ")
        if "Z" in letters:
            z = letters["Z"]
            min_z = min(min_z, z)
        if not moves or motion is None:
            continue

        if motion in (2, 3) and not ({"I", "J"} & letters.keys() or "R" in letters):
            report.errors.append(f"Line {number}: Arc command missing I/J parameters")
        if motion in (1, 2, 3) and feed is None:
            report.warnings.append(f"Line {number}: Feed move without a feed rate")
        if motion == 0 and z < 0 and ("X" in letters or "Y" in letters):
            report.warnings.append(f"Line {number}: Rapid move while below Z0")

    if not spindle_start:
        report.warnings.append("No spindle start command (M3) found")
    if not spindle_stop:
        report.warnings.append("No spindle stop command (M5) found")
    if not program_end:
        report.warnings.append("No program end command (M30/M2) found")
    if min_z < -DEEP_CUT_LIMIT:
        report.warnings.append(f"Deep cut detected: {min_z:g} - verify this is intentional")

    logger.debug("G-code check: %d errors, %d warnings",
                 len(report.errors), len(report.warnings))
    return report


def _arc_length(start, end, i, j, clockwise):
    cx, cy = start[0] + i, start[1] + j
    r = math.hypot(i, j)
    a0 = math.atan2(start[1] - cy, start[0] - cx)
    a1 = math.atan2(end[1] - cy, end[0] - cx)
    sweep = (a0 - a1) if clockwise else (a1 - a0)
    sweep %= 2 * math.pi
    if sweep == 0:
        sweep = 2 * math.pi
    return math.hypot(r * sweep, end[2] - start[2])


def estimate_job_time(
    program: str,
    rapid_rate: float = ESTIMATE_RAPID_RATE,
    default_feed: float = ESTIMATE_DEFAULT_FEED,
) -> float:
    """Run time of *program* in seconds.

    Path length over the active feed (or *rapid_rate* for G0) plus G4 pauses.
    Arcs are measured along the curve.  *rapid_rate* and *default_feed* are
    mm/min and are converted after a G20.  Acceleration is ignored.
    """
    pos = (0.0, 0.0, 0.0)
    motion: Optional[int] = None
    feed: Optional[float] = None
    scale = 1.0
    minutes = 0.0
    seconds = 0.0

    for line in program.splitlines():
        words = parse_words(line)
        if not words:
            continue
        letters = {letter: value for letter, value in words}
        g_codes = {int(v) for letter, v in words if letter == "G" and v == int(v)}

        if 20 in g_codes:
            scale = 1.0 / MM_PER_INCH
        elif 21 in g_codes:
            scale = 1.0
        if "F" in letters:
            feed = letters["F"]
        if 4 in g_codes:
            seconds += letters.get("P", 0.0)
        if g_codes & _NON_MODAL:
            continue
        for g in (0, 1, 2, 3):
            if g in g_codes:
                motion = g
        if motion is None or not any(a in letters for a in "XYZ"):
            continue

        end = (letters.get("X", pos[0]), letters.get("Y", pos[1]), letters.get("Z", pos[2]))
        if motion in (2, 3) and ("I" in letters or "J" in letters):
            length = _arc_length(pos, end, letters.get("I", 0.0), letters.get("J", 0.0),
                                 clockwise=motion == 2)
        else:
            length = math.dist(pos, end)
        rate = rapid_rate * scale if motion == 0 else (feed or default_feed * scale)
        if rate > 0:
            minutes += length / rate
        pos = end

    return minutes * 60.0 + seconds


def split_gcode_by_tool(program: str) -> dict[int, str]:
    """Split *program* into one runnable section per tool number.

    The opening lines that carry no axis, spindle or tool words form a
    preamble that starts every section.  Lines up to the first T word belong
    to tool 1, the tool loaded when the program starts; each T word starts
    (or continues) the section of that tool.  Dialects that change tools
    without a T word give a single section.
    """
    lines = program.splitlines()
    preamble: list[str] = []
    k = 0
    for k, line in enumerate(lines):
        words = parse_words(line)
        if any(letter in "XYZT" or (letter == "M" and value in (3, 4))
               for letter, value in words):
            break
        preamble.append(line)
    else:
        k = len(lines)

    sections: dict[int, list[str]] = {}
    current = 1
    for line in lines[k:]:
        tools = [int(v) for letter, v in parse_words(line) if letter == "T"]
        if tools:
            current = tools[0]
        sections.setdefault(current, []).append(line)

    return {tool: "\n".join(preamble + body) + "\n" for tool, body in sections.items()}
