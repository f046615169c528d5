"""Tests for the pre-run safety checks."""

import math

import pytest

from routercam.config.machine_profiles import RouterModel, get_profile
from routercam.core.design import RectangleParams, ShapeType, Transform2D, VectorShape
from routercam.core.keepout import Keepout, KeepoutShape
from routercam.core.operation import LeadSettings, Operation, OperationSettings, OperationType
from routercam.core.stock import Stock
from routercam.core.tool import Tool, ToolType
from routercam.core.toolpath import (
    GeneratedToolpath,
    MotionSegment,
    MotionType,
    calculate_bounding_box,
    calculate_stats,
    generate_toolpath,
)
from routercam.core.toolpath.base import segment_points
from routercam.gcode.validate import (
    CheckCategory,
    Severity,
    keepout_collision,
    perform_safety_checks,
)

R = MotionType.RAPID
G1 = MotionType.LINEAR


def _toolpath(start, *moves) -> GeneratedToolpath:
    """Chain ``(motion, end, feed)`` moves from *start* into a toolpath."""
    segments = []
    pos = start
    for motion, end, feed in moves:
        segments.append(MotionSegment(motion, pos, end, feed))
        pos = end
    return GeneratedToolpath(
        "tp", "op", tuple(segments),
        stats=calculate_stats(segments, 1000.0),
        bounding_box=calculate_bounding_box(segments),
    )


def _square(x=100.0, y=100.0, size=20.0, depth=3.0, feed=1000.0, plunge=300.0):
    return _toolpath(
        (x, y, 10.0),
        (R, (x, y, 2.0), None),
        (G1, (x, y, -depth), plunge),
        (G1, (x + size, y, -depth), feed),
        (G1, (x + size, y + size, -depth), feed),
        (G1, (x, y + size, -depth), feed),
        (G1, (x, y, -depth), feed),
        (R, (x, y, 10.0), None),
    )


@pytest.fixture
def tool() -> Tool:
    return Tool("flat-6mm", "6mm Flat End Mill", ToolType.FLAT_END_MILL, 6.0,
                flute_length=20.0, default_feed_rate=1000.0, default_plunge_rate=300.0)


@pytest.fixture
def stock() -> Stock:
    return Stock(300.0, 300.0, 18.0)


@pytest.fixture
def machine():
    return get_profile(RouterModel.SHAPEOKO_4)


def _errors(result):
    return {e.code: e for e in result.errors}


def _warnings(result):
    return {w.code: w for w in result.warnings}


# ---------------------------------------------------------------------------
# Overall result
# ---------------------------------------------------------------------------


class TestCleanToolpath:
    def test_passes_without_findings(self, tool, stock, machine):
        result = perform_safety_checks(_square(), tool, stock, machine)
        assert result.passed
        assert result.errors == []
        assert result.warnings == []

    def test_every_check_reported(self, tool, stock, machine):
        result = perform_safety_checks(_square(), tool, stock, machine)
        assert [c.id for c in result.checks] == [
            "machine-bounds", "stock-bounds", "cut-depth", "feed-rates",
            "tool-compatibility", "keepouts", "rapid-moves",
        ]
        assert all(c.passed for c in result.checks)
        assert result.checks[0].category is CheckCategory.BOUNDS

    def test_generated_profile_passes(self, tool, stock, machine):
        shape = VectorShape("sq", ShapeType.RECTANGLE, RectangleParams(40.0, 40.0),
                            transform=Transform2D(x=150.0, y=150.0))
        op = Operation("op1", "Outline", OperationType.PROFILE, tool.id, ["sq"],
                       OperationSettings(cut_depth=6.0, depth_per_pass=2.0))
        tp = generate_toolpath(op, tool, [shape], stock.thickness, 5.0)
        result = perform_safety_checks(tp, tool, stock, machine)
        assert result.passed
        assert result.errors == []
        # Toolpaths start from the work origin, which is on the machine edge.
        assert "BOUNDS_MARGIN" in result.codes()


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


class TestBounds:
    def test_beyond_x_travel_blocks(self, tool, stock, machine):
        tp = _square(x=machine.travel_x + 80.0)
        result = perform_safety_checks(tp, tool, stock, machine)
        errors = _errors(result)
        assert "BOUNDS_X_MAX" in errors
        assert errors["BOUNDS_X_MAX"].blocks_execution
        assert not result.passed
        assert "STOCK_X_BOUNDS" in _warnings(result)
        assert not result.checks[0].passed

    def test_negative_y_blocks(self, tool, stock, machine):
        result = perform_safety_checks(_square(y=-50.0), tool, stock, machine)
        assert "BOUNDS_Y_MIN" in _errors(result)
        assert _warnings(result)["STOCK_Y_BOUNDS"].severity is Severity.HIGH

    def test_below_z_travel_blocks(self, tool, stock, machine):
        result = perform_safety_checks(_square(depth=machine.travel_z + 5), tool, stock, machine)
        assert "BOUNDS_Z_MIN" in _errors(result)

    def test_margin_warning_only(self, tool, machine):
        wide_stock = Stock(500.0, 500.0, 18.0)
        tp = _square(x=machine.travel_x - 25.0)    # 5 mm from the X limit
        result = perform_safety_checks(tp, tool, wide_stock, machine)
        assert result.passed
        assert "BOUNDS_MARGIN" in _warnings(result)

    def test_empty_toolpath_has_no_margin_warning(self, tool, stock, machine):
        tp = GeneratedToolpath("tp", "op", messages=("No valid source geometry",))
        result = perform_safety_checks(tp, tool, stock, machine)
        assert "BOUNDS_MARGIN" not in result.codes()
        assert result.checks[0].passed


# ---------------------------------------------------------------------------
# Stock and depth
# ---------------------------------------------------------------------------


class TestDepth:
    def test_cut_through_is_not_blocking(self, stock, machine):
        long_tool = Tool("long", "Long End Mill", ToolType.FLAT_END_MILL, 6.0,
                         flute_length=25.0)
        result = perform_safety_checks(_square(depth=20.0), long_tool, stock, machine)
        errors = _errors(result)
        assert not errors["STOCK_Z_DEPTH"].blocks_execution
        assert "CUT_THROUGH" in _warnings(result)
        assert result.passed

    def test_exceeding_flute_blocks(self, stock, machine):
        short = Tool("short", "Short End Mill", ToolType.FLAT_END_MILL, 6.0, flute_length=10.0)
        result = perform_safety_checks(_square(depth=15.0), short, stock, machine)
        assert _errors(result)["DEPTH_EXCEEDS_FLUTE"].blocks_execution
        assert not result.passed
        assert {"DEPTH_NEAR_FLUTE_LIMIT", "AGGRESSIVE_DEPTH_PER_PASS"} <= result.codes()

    def test_flute_defaults_to_three_diameters(self, stock, machine):
        bare = Tool("bare", "Bare", ToolType.FLAT_END_MILL, 6.0)
        result = perform_safety_checks(_square(depth=16.0), bare, stock, machine)
        assert "DEPTH_EXCEEDS_FLUTE" not in result.codes()
        assert "DEPTH_NEAR_FLUTE_LIMIT" in result.codes()

    def test_depth_per_pass_uses_pass_count(self, tool, stock, machine):
        # Two 5 mm passes are each within the 6 mm diameter.
        tp = _toolpath(
            (100.0, 100.0, 10.0),
            (G1, (100.0, 100.0, -5.0), 300.0),
            (G1, (120.0, 100.0, -5.0), 1000.0),
            (R, (120.0, 100.0, 10.0), None),
            (R, (100.0, 100.0, 10.0), None),
            (G1, (100.0, 100.0, -10.0), 300.0),
            (G1, (120.0, 100.0, -10.0), 1000.0),
            (R, (120.0, 100.0, 10.0), None),
        )
        assert tp.stats.pass_count == 2
        result = perform_safety_checks(tp, tool, stock, machine)
        assert "AGGRESSIVE_DEPTH_PER_PASS" not in result.codes()


# ---------------------------------------------------------------------------
# Feeds and tool
# ---------------------------------------------------------------------------


class TestFeeds:
    def test_high_feed_and_plunge(self, tool, stock, machine):
        result = perform_safety_checks(_square(feed=3000.0, plunge=1000.0), tool, stock, machine)
        warnings = _warnings(result)
        assert "FEED_HIGH" in warnings
        assert "PLUNGE_HIGH" in warnings
        assert "1500" in warnings["FEED_HIGH"].suggestion
        assert result.passed

    def test_feed_above_machine_maximum(self, tool, stock, machine):
        tp = _square(feed=machine.rapid_xy + 2000.0)
        result = perform_safety_checks(tp, tool, stock, machine)
        assert not _errors(result)["FEED_EXCEEDS_MACHINE"].blocks_execution
        assert result.passed

    def test_fallback_limits_without_tool_defaults(self, stock, machine):
        bare = Tool("bare", "Bare", ToolType.FLAT_END_MILL, 6.0, flute_length=20.0)
        ok = perform_safety_checks(_square(feed=1800.0, plunge=450.0), bare, stock, machine)
        assert "FEED_HIGH" not in ok.codes()
        assert "PLUNGE_HIGH" not in ok.codes()
        fast = perform_safety_checks(_square(feed=2500.0, plunge=600.0), bare, stock, machine)
        assert {"FEED_HIGH", "PLUNGE_HIGH"} <= fast.codes()

    def test_tool_without_diameter_blocks(self, stock, machine):
        blank = Tool("blank", "Blank", ToolType.FLAT_END_MILL, None)
        result = perform_safety_checks(_square(), blank, stock, machine)
        assert _errors(result)["TOOL_NO_DIAMETER"].blocks_execution
        assert not result.passed


# ---------------------------------------------------------------------------
# Keepouts
# ---------------------------------------------------------------------------


class TestKeepouts:
    @pytest.fixture
    def clamp(self) -> Keepout:
        return Keepout("k1", "Clamp", KeepoutShape.RECTANGLE, 110.0, 100.0, 20.0,
                       width=4.0, depth=4.0)

    def test_cut_through_keepout_blocks(self, tool, stock, machine, clamp):
        result = perform_safety_checks(_square(), tool, stock, machine, [clamp])
        error = _errors(result)["KEEPOUT_COLLISION"]
        assert error.blocks_execution
        assert "Clamp" in error.message
        assert not result.passed

    def test_rapid_through_keepout_warns(self, tool, stock, machine):
        post = Keepout("k2", "Post", KeepoutShape.CIRCLE, 50.0, 50.0, 20.0, radius=5.0)
        tp = _toolpath((0.0, 0.0, 10.0), (R, (100.0, 100.0, 10.0), None),
                       (G1, (100.0, 100.0, -1.0), 300.0), (R, (100.0, 100.0, 10.0), None))
        result = perform_safety_checks(tp, tool, stock, machine, [post])
        warning = _warnings(result)["KEEPOUT_RAPID_COLLISION"]
        assert warning.severity is Severity.HIGH
        assert warning.location is not None
        assert "KEEPOUT_COLLISION" not in result.codes()

    def test_flags_respected(self, tool, stock, machine, clamp):
        clamp.avoid_cuts = False
        result = perform_safety_checks(_square(), tool, stock, machine, [clamp])
        assert "KEEPOUT_COLLISION" not in result.codes()

    def test_above_keepout_is_clear(self, tool, clamp):
        seg = MotionSegment(R, (100.0, 100.0, 25.0), (120.0, 100.0, 25.0))
        assert keepout_collision(seg, clamp, tool.radius) is None

    def test_arc_checked_along_curve(self, tool):
        # Quarter arc of radius 20; its midpoint lies 5.86 mm off the chord.
        arc = MotionSegment(MotionType.ARC_CCW, (120.0, 100.0, -1.0), (100.0, 120.0, -1.0),
                            1000.0, center=(100.0, 100.0), radius=20.0)
        mid = 100.0 + 20.0 * math.cos(math.pi / 4)
        pin = Keepout("k3", "Pin", KeepoutShape.CIRCLE, mid, mid, 20.0, radius=0.5)
        hit = keepout_collision(arc, pin, tool.radius)
        assert hit is not None
        assert math.hypot(hit[0] - 100.0, hit[1] - 100.0) == pytest.approx(20.0)

    def test_lead_arc_through_keepout_blocks(self, tool, stock, machine):
        shape = VectorShape("sq", ShapeType.RECTANGLE, RectangleParams(40.0, 40.0),
                            transform=Transform2D(x=150.0, y=150.0))
        settings = OperationSettings(
            cut_depth=3.0, depth_per_pass=3.0, use_lead_in_out=True,
            lead=LeadSettings(lead_in_radius=20.0, lead_out_radius=20.0),
        )
        op = Operation("op1", "Outline", OperationType.PROFILE, tool.id, ["sq"], settings)
        tp = generate_toolpath(op, tool, [shape], stock.thickness, 5.0)
        lead_in = next(s for s in tp.segments if s.is_arc)
        x, y, _ = segment_points(lead_in, 2)[1]
        pin = Keepout("k4", "Pin", KeepoutShape.CIRCLE, x, y, 20.0, radius=0.5,
                      avoid_rapids=False)

        result = perform_safety_checks(tp, tool, stock, machine, [pin])
        assert "KEEPOUT_COLLISION" in _errors(result)
        assert not result.passed

    def test_margin_includes_tool_radius(self, tool, clamp):
        # 6 mm off the clamp centre line; the grown half-depth is 2 + 3 + 2 = 7 mm.
        seg = MotionSegment(G1, (100.0, 106.0, -1.0), (120.0, 106.0, -1.0), 1000.0)
        hit = keepout_collision(seg, clamp, tool.radius)
        assert hit is not None
        assert hit[1] == pytest.approx(106.0)
        far = MotionSegment(G1, (100.0, 110.0, -1.0), (120.0, 110.0, -1.0), 1000.0)
        assert keepout_collision(far, clamp, tool.radius) is None


# ---------------------------------------------------------------------------
# Rapids
# ---------------------------------------------------------------------------


class TestRapids:
    def test_rapid_in_material_blocks(self, tool, stock, machine):
        tp = _toolpath((100.0, 100.0, 10.0),
                       (G1, (100.0, 100.0, -3.0), 300.0),
                       (R, (130.0, 100.0, -3.0), None),
                       (R, (130.0, 100.0, 10.0), None))
        result = perform_safety_checks(tp, tool, stock, machine)
        assert _errors(result)["RAPID_IN_MATERIAL"].blocks_execution
        assert not result.passed

    def test_low_rapid_warns(self, tool, stock, machine):
        tp = _toolpath((100.0, 100.0, 10.0),
                       (R, (100.0, 100.0, 2.0), None),
                       (R, (130.0, 100.0, 2.0), None),
                       (G1, (130.0, 100.0, -1.0), 300.0),
                       (R, (130.0, 100.0, 10.0), None))
        result = perform_safety_checks(tp, tool, stock, machine)
        assert "RAPID_NEAR_STOCK" in _warnings(result)
        assert result.passed
