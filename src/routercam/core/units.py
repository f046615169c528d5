"""Unit system enum and conversion helpers.

The CAM core works in millimetres internally; inch output only changes the
modal word and the numbers handed to the post-processor.
"""

from enum import Enum

MM_PER_INCH = 25.4


class Units(Enum):
    MM = "mm"
    INCH = "inch"

    def to_mm(self, value: float) -> float:
        if self is Units.MM:
            return value
        return value * MM_PER_INCH

    def from_mm(self, value: float) -> float:
        if self is Units.MM:
            return value
        return value / MM_PER_INCH

    def label(self) -> str:
        return "mm" if self is Units.MM else "in"

    @property
    def gcode_modal(self) -> str:
        """G-code modal group 6 word."""
        return "G21" if self is Units.MM else "G20"

    @classmethod
    def parse(cls, text: str) -> "Units":
        """Accept ``"mm"``, ``"in"`` or ``"inch"`` (case-insensitive)."""
        key = text.strip().lower()
        if key in ("in", "inch", "inches"):
            return cls.INCH
        if key in ("mm", "millimeter", "millimetre"):
            return cls.MM
        raise ValueError(f"Unknown units: {text!r}")
