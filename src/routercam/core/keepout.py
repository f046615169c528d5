"""Keepout zones: clamps, fixtures and other areas the tool must avoid."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class KeepoutShape(Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"


@dataclass
class Keepout:
    """A 2D zone extruded up to *height* above the stock top.

    Rectangles are centred on ``(x, y)`` with *width* by *depth* extent;
    circles use *radius*.  Moves above *height* never collide.
    """

    id: str
    name: str
    shape: KeepoutShape
    x: float
    y: float
    height: float
    width: float = 0.0
    depth: float = 0.0
    radius: float = 0.0
    avoid_rapids: bool = True
    avoid_cuts: bool = True

    def contains(self, x: float, y: float, z: float, margin: float = 0.0) -> bool:
        """True when the point is below the zone top and inside it grown by *margin*."""
        if z >= self.height:
            return False
        if self.shape is KeepoutShape.RECTANGLE:
            return (abs(x - self.x) < self.width / 2.0 + margin
                    and abs(y - self.y) < self.depth / 2.0 + margin)
        if self.shape is KeepoutShape.CIRCLE:
            return math.hypot(x - self.x, y - self.y) < self.radius + margin
        raise TypeError(f"Unhandled keepout shape: {self.shape!r}")
