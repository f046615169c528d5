"""Tests for the operator checklist."""

import pytest

from routercam.core.checklist import (
    ChecklistCategory,
    JobChecklist,
    can_start_job,
    create_default_checklist,
)
from routercam.core.tool import Tool, ToolType
from routercam.gcode.validate import SafetyCheckResult, SafetyError


@pytest.fixture
def checklist() -> JobChecklist:
    tool = Tool("flat-6mm", "6mm Flat End Mill", ToolType.FLAT_END_MILL, 6.0)
    return create_default_checklist(tool)


class TestDefaultChecklist:
    def test_counts(self, checklist):
        assert checklist.total_count == 14
        assert sum(1 for i in checklist.items if i.required) == 11
        assert checklist.completed_count == 0

    def test_tool_named(self, checklist):
        item = next(i for i in checklist.items if i.id == "tool-installed")
        assert item.label == "Tool installed: 6mm Flat End Mill"
        assert item.category is ChecklistCategory.TOOL
        assert "6mm" in item.description

    def test_optional_items(self, checklist):
        optional = {i.id for i in checklist.items if not i.required}
        assert optional == {"dust-collection", "wasteboard-ok", "dry-run"}

    def test_unknown_diameter(self):
        blank = Tool("blank", "Blank", ToolType.FLAT_END_MILL, None)
        item = create_default_checklist(blank).items[4]
        assert "unknown diameter" in item.description


class TestChecking:
    def test_check_and_uncheck(self, checklist):
        checklist.check("spindle-off")
        assert checklist.completed_count == 1
        checklist.check("spindle-off", False)
        assert checklist.completed_count == 0

    def test_unknown_item(self, checklist):
        with pytest.raises(KeyError):
            checklist.check("coffee")

    def test_check_all(self, checklist):
        checklist.check_all()
        assert checklist.all_required
        assert checklist.completed_count == checklist.total_count


class TestCanStart:
    def test_nothing_checked(self, checklist):
        ok, missing = can_start_job(checklist)
        assert not ok
        assert len(missing) == 11
        assert missing[0] == "Spindle is OFF"

    def test_optional_items_not_needed(self, checklist):
        for item in checklist.items:
            if item.required:
                checklist.check(item.id)
        assert can_start_job(checklist) == (True, [])

    def test_blocking_safety_error_prevents_start(self, checklist):
        checklist.check_all()
        safety = SafetyCheckResult(errors=[
            SafetyError("STOCK_Z_DEPTH", "Cut depth exceeds stock", blocks_execution=False),
            SafetyError("BOUNDS_X_MAX", "Toolpath exceeds X+ limit"),
        ])
        ok, missing = can_start_job(checklist, safety)
        assert not ok
        assert missing == ["Toolpath exceeds X+ limit"]

    def test_missing_items_listed_before_errors(self, checklist):
        safety = SafetyCheckResult(errors=[SafetyError("TOOL_NO_DIAMETER", "No diameter")])
        _, missing = can_start_job(checklist, safety)
        assert missing[-1] == "No diameter"
        assert len(missing) == 12
