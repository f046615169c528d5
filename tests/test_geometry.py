"""Tests for the 2D geometry kernel."""

import math

import pytest

from routercam.core.geometry import (
    bounds_2d,
    ensure_counter_clockwise,
    is_clockwise,
    max_distance_from,
    offset_polygon,
    path_length,
    point_in_polygon,
    polygon_area,
    polygon_centroid,
    signed_area,
    vertex_mean,
)


@pytest.fixture
def ccw_square():
    """10x10 square centred on the origin, counter-clockwise."""
    return [(-5.0, -5.0), (5.0, -5.0), (5.0, 5.0), (-5.0, 5.0)]


@pytest.fixture
def cw_square(ccw_square):
    return list(reversed(ccw_square))


# ---------------------------------------------------------------------------
# Area and orientation
# ---------------------------------------------------------------------------


class TestArea:
    def test_signed_area_ccw_positive(self, ccw_square):
        assert signed_area(ccw_square) == pytest.approx(100.0)

    def test_signed_area_cw_negative(self, cw_square):
        assert signed_area(cw_square) == pytest.approx(-100.0)

    def test_degenerate_area_is_zero(self):
        assert signed_area([(0, 0), (1, 1)]) == 0.0

    def test_polygon_area_ignores_winding(self, cw_square):
        assert polygon_area(cw_square) == pytest.approx(100.0)

    def test_is_clockwise(self, ccw_square, cw_square):
        assert is_clockwise(cw_square)
        assert not is_clockwise(ccw_square)

    def test_ensure_counter_clockwise(self, cw_square):
        fixed = ensure_counter_clockwise(cw_square)
        assert signed_area(fixed) > 0
        assert cw_square[0] == (-5.0, 5.0)   # input untouched


class TestMeasures:
    def test_bounds(self, ccw_square):
        assert bounds_2d(ccw_square) == (-5.0, -5.0, 5.0, 5.0)

    def test_bounds_empty_raises(self):
        with pytest.raises(ValueError):
            bounds_2d([])

    def test_vertex_mean(self):
        assert vertex_mean([(0, 0), (4, 0), (4, 2)]) == pytest.approx((8 / 3, 2 / 3))

    def test_centroid_of_l_shape(self):
        # Two unit-height bars: 4x1 along X plus 1x3 up the left side.
        shape = [(0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4)]
        cx, cy = polygon_centroid(shape)
        # area 4 at (2, 0.5) + area 3 at (0.5, 2.5)
        assert cx == pytest.approx((4 * 2 + 3 * 0.5) / 7)
        assert cy == pytest.approx((4 * 0.5 + 3 * 2.5) / 7)

    def test_centroid_degenerate_falls_back(self):
        assert polygon_centroid([(0, 0), (2, 0), (4, 0)]) == pytest.approx((2.0, 0.0))

    def test_max_distance(self, ccw_square):
        assert max_distance_from(ccw_square, (0, 0)) == pytest.approx(math.hypot(5, 5))

    def test_path_length_open_and_closed(self, ccw_square):
        assert path_length(ccw_square) == pytest.approx(30.0)
        assert path_length(ccw_square, closed=True) == pytest.approx(40.0)


class TestPointInPolygon:
    def test_inside(self, ccw_square):
        assert point_in_polygon((0, 0), ccw_square)

    def test_outside(self, ccw_square):
        assert not point_in_polygon((6, 0), ccw_square)

    def test_concave_notch(self):
        shape = [(0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4)]
        assert not point_in_polygon((3, 3), shape)
        assert point_in_polygon((0.5, 3), shape)


# ---------------------------------------------------------------------------
# Offsetting
# ---------------------------------------------------------------------------


class TestOffset:
    def test_outward_grows_square(self, ccw_square):
        out = offset_polygon(ccw_square, 3.0)
        assert bounds_2d(out) == pytest.approx((-8.0, -8.0, 8.0, 8.0))

    def test_inward_shrinks_square(self, ccw_square):
        inner = offset_polygon(ccw_square, -2.0)
        assert polygon_area(inner) == pytest.approx(36.0)

    def test_winding_independent(self, ccw_square, cw_square):
        a = offset_polygon(ccw_square, 1.5)
        b = offset_polygon(cw_square, 1.5)
        assert polygon_area(a) == pytest.approx(polygon_area(b))
        assert polygon_area(a) == pytest.approx(13.0 * 13.0)

    def test_preserves_winding(self, cw_square):
        assert is_clockwise(offset_polygon(cw_square, 2.0))

    def test_round_trip_convex(self):
        hexagon = [(math.cos(a) * 10, math.sin(a) * 10)
                   for a in (i * math.pi / 3 for i in range(6))]
        back = offset_polygon(offset_polygon(hexagon, 2.5), -2.5)
        for p, q in zip(hexagon, back):
            assert p == pytest.approx(q, abs=1e-9)

    def test_edges_end_up_at_distance(self):
        triangle = [(0, 0), (10, 0), (0, 10)]
        out = offset_polygon(triangle, 1.0)
        # Bottom edge moves from y=0 to y=-1; left edge from x=0 to x=-1.
        assert out[0] == pytest.approx((-1.0, -1.0))

    def test_duplicate_vertex_does_not_produce_nan(self):
        square = [(0, 0), (10, 0), (10, 0), (10, 10), (0, 10)]
        out = offset_polygon(square, 1.0)
        assert all(math.isfinite(v) for p in out for v in p)

    def test_short_input_returned_unchanged(self):
        assert offset_polygon([(0, 0), (1, 1)], 5.0) == [(0.0, 0.0), (1.0, 1.0)]
