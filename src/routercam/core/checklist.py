"""Operator pre-run checklist."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

from .tool import Tool

if TYPE_CHECKING:
    from ..gcode.validate import SafetyCheckResult


class ChecklistCategory(Enum):
    SAFETY = "safety"
    SETUP = "setup"
    TOOL = "tool"
    WORKHOLDING = "workholding"
    VERIFICATION = "verification"


@dataclass
class ChecklistItem:
    id: str
    label: str
    category: ChecklistCategory
    required: bool = True
    description: str = ""
    checked: bool = False


@dataclass
class JobChecklist:
    items: list[ChecklistItem] = field(default_factory=list)

    @property
    def all_required(self) -> bool:
        return all(i.checked for i in self.items if i.required)

    @property
    def completed_count(self) -> int:
        return sum(1 for i in self.items if i.checked)

    @property
    def total_count(self) -> int:
        return len(self.items)

    def check(self, item_id: str, checked: bool = True) -> None:
        """Tick (or untick) an item.  Raises ``KeyError`` for unknown ids."""
        for item in self.items:
            if item.id == item_id:
                item.checked = checked
                return
        raise KeyError(f"No checklist item {item_id!r}")

    def check_all(self) -> None:
        for item in self.items:
            item.checked = True


def create_default_checklist(tool: Tool) -> JobChecklist:
    """Standard router checklist, with the tool named in the tool item."""
    C = ChecklistCategory
    diameter = f"{tool.diameter:g}mm" if tool.diameter else "unknown diameter"
    items = [
        ChecklistItem("spindle-off", "Spindle is OFF", C.SAFETY,
                      description="Verify spindle is not running before setup"),
        ChecklistItem("estop-accessible", "E-Stop is accessible", C.SAFETY,
                      description="Emergency stop button is within reach"),
        ChecklistItem("safety-glasses", "Safety glasses on", C.SAFETY,
                      description="Wearing appropriate eye protection"),
        ChecklistItem("dust-collection", "Dust collection running", C.SAFETY, required=False,
                      description="Dust collection system is active"),
        ChecklistItem("tool-installed", f"Tool installed: {tool.name}", C.TOOL,
                      description=f"{diameter} {tool.tool_type.value}"),
        ChecklistItem("tool-tight", "Collet/tool holder tight", C.TOOL,
                      description="Tool is securely held in spindle"),
        ChecklistItem("tool-length", "Tool length verified", C.TOOL,
                      description="Sufficient tool stickout for operation"),
        ChecklistItem("stock-secured", "Stock is secured", C.WORKHOLDING,
                      description="Workpiece is clamped or held firmly"),
        ChecklistItem("clamps-clear", "Clamps clear of toolpath", C.WORKHOLDING,
                      description="No clamps in the cutting area"),
        ChecklistItem("wasteboard-ok", "Wasteboard in place", C.WORKHOLDING, required=False,
                      description="Sacrificial surface ready if cutting through"),
        ChecklistItem("origin-set", "Work origin set", C.SETUP,
                      description="XYZ zero position is correct"),
        ChecklistItem("z-zeroed", "Z height zeroed/set", C.SETUP,
                      description="Tool height is zeroed to stock surface"),
        ChecklistItem("dry-run", "Dry run completed", C.VERIFICATION, required=False,
                      description="Ran toolpath with spindle off to verify"),
        ChecklistItem("bounds-verified", "Bounds verified", C.VERIFICATION,
                      description="Toolpath stays within stock and machine limits"),
    ]
    return JobChecklist(items)


def can_start_job(
    checklist: JobChecklist,
    safety: Optional["SafetyCheckResult"] = None,
) -> tuple[bool, list[str]]:
    """Return ``(can_start, missing)``.

    *missing* lists the labels of unchecked required items, followed by the
    messages of any blocking safety errors.
    """
    missing = [i.label for i in checklist.items if i.required and not i.checked]
    if safety is not None:
        missing.extend(e.message for e in safety.errors if e.blocks_execution)
    return (not missing, missing)
