"""Stock (workpiece blank) definition."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Stock:
    """Rectangular stock sheet, in mm.

    The lower-left corner of the sheet sits at the work origin and Z=0 is
    the **top** of the stock; cutting goes into negative Z.

    Parameters
    ----------
    width, height:
        X and Y size of the sheet.
    thickness:
        Z size of the sheet.
    material:
        Free-form material name, informational only.
    """

    width: float
    height: float
    thickness: float
    material: str = ""

    @property
    def z_top(self) -> float:
        return 0.0

    @property
    def z_bottom(self) -> float:
        return -self.thickness

    @property
    def bounds_2d(self) -> tuple[float, float, float, float]:
        """(xmin, ymin, xmax, ymax) of the stock footprint."""
        return (0.0, 0.0, self.width, self.height)
