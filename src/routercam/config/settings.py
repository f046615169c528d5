"""User preferences persisted to ~/.routercam/settings.json.

A ``Job`` built with :meth:`Job.from_settings` takes its machine, G-code
dialect and output units from here; :meth:`AppSettings.configure_logging`
applies the saved log level.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from ..core.units import Units
from .logging_config import setup_logging
from .machine_profiles import MachineConfig, RouterModel, get_profile


@dataclass
class AppSettings:
    default_machine: str = RouterModel.SHAPEOKO_4.value
    default_post_processor: str = "grbl"
    default_units: str = Units.MM.value
    log_level: str = "INFO"

    @staticmethod
    def _path() -> Path:
        return Path.home() / ".routercam" / "settings.json"

    @property
    def machine(self) -> MachineConfig:
        return get_profile(self.default_machine)

    @property
    def units(self) -> Units:
        return Units.parse(self.default_units)

    def configure_logging(self, log_file: Optional[Path] = None) -> list[logging.Handler]:
        return setup_logging(self.log_level, log_file=log_file)

    def save(self, path: Optional[Path] = None) -> None:
        p = path or self._path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppSettings":
        p = path or cls._path()
        if p.exists():
            data = json.loads(p.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        return cls()
