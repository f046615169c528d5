"""Low-level G-code line formatting helpers."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CommentStyle(Enum):
    PARENTHESES = "parentheses"
    SEMICOLON = "semicolon"
    NONE = "none"


def fmt(value: float, decimals: int = 3) -> str:
    """Fixed-decimal number for G-code; never prints ``-0.000``."""
    text = f"{value:.{decimals}f}"
    if text.startswith("-") and float(text) == 0.0:
        text = text[1:]
    return text


def _axes(x: Optional[float], y: Optional[float], z: Optional[float], decimals: int) -> list[str]:
    parts = []
    if x is not None:
        parts.append(f"X{fmt(x, decimals)}")
    if y is not None:
        parts.append(f"Y{fmt(y, decimals)}")
    if z is not None:
        parts.append(f"Z{fmt(z, decimals)}")
    return parts


def rapid(
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G0 rapid traverse."""
    return " ".join(["G0"] + _axes(x, y, z, decimals))


def linear(
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
    f: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G1 linear interpolation.  Feed is written as a whole number."""
    parts = ["G1"] + _axes(x, y, z, decimals)
    if f is not None:
        parts.append(f"F{fmt(f, 0)}")
    return " ".join(parts)


def arc(
    clockwise: bool,
    x: float,
    y: float,
    i: float,
    j: float,
    z: Optional[float] = None,
    f: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G2/G3 arc with I/J centre offsets relative to the arc start."""
    parts = ["G2" if clockwise else "G3"] + _axes(x, y, z, decimals)
    parts.append(f"I{fmt(i, decimals)}")
    parts.append(f"J{fmt(j, decimals)}")
    if f is not None:
        parts.append(f"F{fmt(f, 0)}")
    return " ".join(parts)


def dwell(seconds: float, decimals: int = 3) -> str:
    """G4 pause; GRBL reads P as seconds."""
    return f"G4 P{fmt(seconds, decimals)}"


def comment(text: str, style: CommentStyle = CommentStyle.PARENTHESES) -> Optional[str]:
    """Format *text* as a comment line, or ``None`` when comments are off."""
    if style is CommentStyle.NONE:
        return None
    if style is CommentStyle.SEMICOLON:
        return f"; {text}"
    # Parentheses do not nest in G-code comments.
    cleaned = text.replace("(", "").replace(")", "")
    return f"({cleaned})"
