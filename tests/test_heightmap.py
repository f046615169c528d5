"""Tests for heightmap sampling and mesh rasterization."""

import numpy as np
import pytest
import trimesh

from routercam.core.heightmap import Heightmap, heightmap_from_mesh, sample_heightmap


@pytest.fixture
def ramp_map() -> Heightmap:
    """3x3 map getting deeper along X."""
    return Heightmap(np.array([
        [0.0, 0.5, 1.0],
        [0.0, 0.5, 1.0],
        [0.0, 0.5, 1.0],
    ]))


BOUNDS = (0.0, 0.0, 10.0, 10.0)


class TestHeightmap:
    def test_shape(self, ramp_map):
        assert ramp_map.rows == 3
        assert ramp_map.cols == 3
        assert ramp_map.max_value == 1.0

    def test_rejects_1d(self):
        with pytest.raises(ValueError):
            Heightmap(np.zeros(5))

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            Heightmap(np.zeros((0, 3)))


class TestSample:
    def test_corners(self, ramp_map):
        assert sample_heightmap(ramp_map, 0.0, 0.0, BOUNDS, 4.0) == pytest.approx(0.0)
        assert sample_heightmap(ramp_map, 10.0, 10.0, BOUNDS, 4.0) == pytest.approx(4.0)

    def test_nearest_pixel_floors(self, ramp_map):
        # 7.4 / 10 * 2 = 1.48 -> column 1
        assert sample_heightmap(ramp_map, 7.4, 5.0, BOUNDS, 4.0) == pytest.approx(2.0)

    def test_outside_clamps(self, ramp_map):
        assert sample_heightmap(ramp_map, -50.0, 5.0, BOUNDS, 4.0) == pytest.approx(0.0)
        assert sample_heightmap(ramp_map, 50.0, 5.0, BOUNDS, 4.0) == pytest.approx(4.0)

    def test_zero_span_uses_first_pixel(self, ramp_map):
        assert sample_heightmap(ramp_map, 3.0, 3.0, (3.0, 3.0, 3.0, 3.0), 4.0) == 0.0


class TestFromMesh:
    def test_box_top_is_flat(self):
        mesh = trimesh.creation.box(extents=(10.0, 10.0, 2.0))
        hm = heightmap_from_mesh(mesh, resolution=8)
        assert hm.values.shape == (8, 8)
        # Bottom faces are hit too; the top one wins.
        assert np.allclose(hm.values, 0.0)

    def test_wedge_slopes(self):
        vertices = np.array([
            [0, 0, 0], [10, 0, 0], [10, 10, 0], [0, 10, 0],
            [0, 0, 5], [0, 10, 5],
        ], dtype=float)
        faces = np.array([
            [0, 2, 1], [0, 3, 2],        # bottom
            [0, 1, 4], [3, 5, 2],        # sides
            [1, 2, 5], [1, 5, 4],        # sloped top
            [0, 4, 5], [0, 5, 3],        # back wall
        ])
        mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        hm = heightmap_from_mesh(mesh, resolution=11)
        row = hm.values[5]
        assert row[0] == pytest.approx(0.0, abs=1e-4)
        assert row[-1] == pytest.approx(1.0, abs=1e-4)
        assert np.all(np.diff(row) >= -1e-9)

    def test_gap_between_parts_carved_full_depth(self):
        left = trimesh.creation.box(extents=(4.0, 10.0, 3.0))
        left.apply_translation((2.0, 5.0, 1.5))
        right = trimesh.creation.box(extents=(4.0, 10.0, 3.0))
        right.apply_translation((8.0, 5.0, 1.5))
        hm = heightmap_from_mesh(trimesh.util.concatenate([left, right]), resolution=11)
        row = hm.values[5]
        assert row[1] == pytest.approx(0.0)
        assert row[5] == pytest.approx(1.0)
        assert row[9] == pytest.approx(0.0)

    def test_lower_step_is_partial_depth(self):
        base = trimesh.creation.box(extents=(10.0, 10.0, 2.0))
        base.apply_translation((5.0, 5.0, 1.0))
        riser = trimesh.creation.box(extents=(4.0, 10.0, 2.0))
        riser.apply_translation((2.0, 5.0, 3.0))
        hm = heightmap_from_mesh(trimesh.util.concatenate([base, riser]), resolution=11)
        row = hm.values[5]
        assert row[1] == pytest.approx(0.0)
        assert row[8] == pytest.approx(0.5)

    def test_flat_mesh_warns(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
        mesh = trimesh.Trimesh(vertices=vertices, faces=[[0, 1, 2]], process=False)
        with pytest.warns(UserWarning):
            hm = heightmap_from_mesh(mesh, resolution=4)
        assert hm.values[0, 0] == 0.0

    def test_low_resolution_rejected(self):
        mesh = trimesh.creation.box()
        with pytest.raises(ValueError):
            heightmap_from_mesh(mesh, resolution=1)
