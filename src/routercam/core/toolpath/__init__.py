"""Toolpath generation package."""

from .assembler import calculate_bounding_box, calculate_stats, generate_toolpath
from .base import (
    BoundingBox3D,
    GeneratedToolpath,
    MotionSegment,
    MotionType,
    ToolpathBuilder,
    ToolpathStats,
)

__all__ = [
    "BoundingBox3D",
    "GeneratedToolpath",
    "MotionSegment",
    "MotionType",
    "ToolpathBuilder",
    "ToolpathStats",
    "calculate_bounding_box",
    "calculate_stats",
    "generate_toolpath",
]
