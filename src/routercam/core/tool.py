"""Router bit definitions and tool library with JSON persistence."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Optional


class ToolType(Enum):
    FLAT_END_MILL = "flat-end-mill"
    BALL_END_MILL = "ball-end-mill"
    BULL_NOSE = "bull-nose"
    V_BIT = "v-bit"
    ENGRAVING_BIT = "engraving-bit"
    DRILL = "drill"
    SURFACING = "surfacing"


@dataclass
class Tool:
    """A cutting tool definition.  Dimensions in mm, rates in mm/min.

    *diameter* may be ``None`` for a record that has not been filled in
    yet; toolpath generation refuses such tools and the safety validator
    reports them.
    """
    id: str
    name: str
    tool_type: ToolType
    diameter: Optional[float]
    flute_count: int = 2
    flute_length: float = 0.0
    overall_length: float = 0.0
    tip_angle: Optional[float] = None   # degrees, V-bits and drills
    default_feed_rate: float = 0.0
    default_plunge_rate: float = 0.0
    default_spindle_speed: int = 0

    @property
    def radius(self) -> float:
        return (self.diameter or 0.0) / 2.0

    @property
    def is_valid(self) -> bool:
        return self.diameter is not None and self.diameter > 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["tool_type"] = self.tool_type.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Tool:
        d = dict(d)
        d["tool_type"] = ToolType(d["tool_type"])
        return cls(**d)


class ToolLibrary:
    """Persistent tool library backed by a JSON file.

    Pass ``path=None`` together with ``persist=False`` for an in-memory
    library.
    """

    def __init__(self, path: Optional[Path] = None, persist: bool = True):
        if path is None and persist:
            path = Path.home() / ".routercam" / "tools.json"
        self._path = path
        self._tools: dict[str, Tool] = {}
        if self._path is not None and self._path.exists():
            self.load()

    def add(self, tool: Tool) -> None:
        self._tools[tool.id] = tool

    def remove(self, tool_id: str) -> None:
        self._tools.pop(tool_id, None)

    def get(self, tool_id: str) -> Optional[Tool]:
        return self._tools.get(tool_id)

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: (t.tool_type.value, t.diameter or 0.0, t.id))

    def save(self) -> None:
        if self._path is None:
            raise RuntimeError("In-memory tool library has no file to save to")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = [t.to_dict() for t in self.list_tools()]
        self._path.write_text(json.dumps(data, indent=2))

    def load(self) -> None:
        data = json.loads(self._path.read_text())
        self._tools = {}
        for d in data:
            tool = Tool.from_dict(d)
            self._tools[tool.id] = tool
