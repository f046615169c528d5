"""Hobby CNC router machine profiles.

Travel limits are in millimetres with the origin at the front-left corner
of the work area and Z=0 at the stock top.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Firmware(Enum):
    GRBL = "grbl"
    GRBL_HAL = "grbl-hal"
    MARLIN = "marlin"
    FLUIDNC = "fluid-nc"


@dataclass
class MachineConfig:
    """Travel envelope and traverse rates of one router."""

    name: str
    travel_x: float     # mm
    travel_y: float
    travel_z: float
    rapid_xy: float = 5000.0    # mm/min
    rapid_z: float = 2000.0
    safe_height: float = 10.0   # mm above stock top
    firmware: Firmware = Firmware.GRBL

    def __str__(self) -> str:
        return (
            f"{self.name}  "
            f"X={self.travel_x:g} Y={self.travel_y:g} Z={self.travel_z:g} mm  "
            f"rapid {self.rapid_xy:g}/{self.rapid_z:g} mm/min"
        )


class RouterModel(Enum):
    SHAPEOKO_4 = "Shapeoko 4 Standard"
    XCARVE_1000 = "X-Carve 1000mm"
    ONEFINITY_WOODWORKER = "Onefinity Woodworker"
    MPCNC_PRIMO = "MPCNC Primo"
    CUSTOM = "Custom Machine"


_PROFILES: dict[RouterModel, MachineConfig] = {
    RouterModel.SHAPEOKO_4: MachineConfig(
        name="Shapeoko 4 Standard",
        travel_x=425.0, travel_y=425.0, travel_z=95.0,
        rapid_xy=10000.0, rapid_z=5000.0,
        safe_height=15.0,
    ),
    RouterModel.XCARVE_1000: MachineConfig(
        name="X-Carve 1000mm",
        travel_x=750.0, travel_y=750.0, travel_z=65.0,
        rapid_xy=8000.0, rapid_z=2000.0,
        safe_height=10.0,
    ),
    RouterModel.ONEFINITY_WOODWORKER: MachineConfig(
        name="Onefinity Woodworker",
        travel_x=816.0, travel_y=816.0, travel_z=133.0,
        rapid_xy=10000.0, rapid_z=3000.0,
        safe_height=15.0,
    ),
    RouterModel.MPCNC_PRIMO: MachineConfig(
        name="MPCNC Primo",
        travel_x=600.0, travel_y=600.0, travel_z=80.0,
        rapid_xy=3000.0, rapid_z=1500.0,
        safe_height=10.0,
        firmware=Firmware.MARLIN,
    ),
    RouterModel.CUSTOM: MachineConfig(
        name="Custom Machine",
        travel_x=300.0, travel_y=300.0, travel_z=100.0,
        rapid_xy=5000.0, rapid_z=2000.0,
        safe_height=10.0,
    ),
}


def get_profile(model: RouterModel | str) -> MachineConfig:
    """Look up a preset by enum member or display name.

    Raises ``KeyError`` for unknown names.
    """
    if isinstance(model, str):
        try:
            model = RouterModel(model)
        except ValueError:
            raise KeyError(f"Unknown machine profile: {model!r}") from None
    return _PROFILES[model]


def list_profiles() -> list[MachineConfig]:
    return list(_PROFILES.values())
