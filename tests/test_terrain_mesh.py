"""
Tests for the animated terrain mesh and its frame updates.
"""

import numpy as np
import pytest

from py_terrain.core.errors import ConfigurationError, TerrainStateError
from py_terrain.core.fractal import fractal_unit_array
from py_terrain.core.terrain_mesh import (
    CoordinateMode,
    TerrainConfig,
    TerrainMesh,
    TerrainState,
)


class ConstantNoise:
    """Noise source returning the same value everywhere."""

    def __init__(self, value=1.0):
        self.value = value

    def sample(self, x, y, z):
        return self.value

    def sample_array(self, x, y, z):
        shape = np.broadcast(np.asarray(x), np.asarray(y), np.asarray(z)).shape
        return np.full(shape, self.value, dtype=np.float64)


class TestTerrainConfig:
    """Test mesh configuration."""

    def test_from_values(self):
        config = TerrainConfig.from_values(width=60, height=40, segments=5, octaves=3, amplitude=7.0)
        assert config.grid.segments == 5
        assert config.fractal.octaves == 3
        assert config.coordinate_mode is CoordinateMode.VOLUMETRIC

    def test_mode_from_string(self):
        config = TerrainConfig.from_values(segments=2, coordinate_mode="planar")
        assert config.coordinate_mode is CoordinateMode.PLANAR

    def test_height_gain(self):
        config = TerrainConfig.from_values(segments=2, amplitude=20.0, amplitude_bias=5.0)
        assert config.height_gain == 25.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"segments": 0},
            {"octaves": 0},
            {"width": -1.0},
            {"height": 0.0},
            {"scale": 0.0},
            {"amplitude": -3.0},
            {"scroll_step": float("nan")},
            {"amplitude_bias": "high"},
            {"coordinate_mode": "spiral"},
        ],
    )
    def test_invalid_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            TerrainConfig.from_values(**kwargs)

    def test_mesh_requires_config(self):
        with pytest.raises(ConfigurationError):
            TerrainMesh({"segments": 4})


class TestTerrainMesh:
    """Test mesh lifecycle and per-tick recomputation."""

    @pytest.fixture
    def config(self):
        return TerrainConfig.from_values(
            width=40.0,
            height=30.0,
            segments=8,
            octaves=3,
            persistence=0.5,
            lacunarity=2.0,
            scale=0.08,
            amplitude=10.0,
            amplitude_bias=2.0,
            scroll_step=-0.5,
            seed="mesh-tests",
        )

    @pytest.fixture
    def mesh(self, config):
        return TerrainMesh(config)

    def test_initial_state(self, mesh):
        assert mesh.state is TerrainState.BUILT
        assert mesh.generation == 1
        assert mesh.frame == 0
        assert mesh.scroll_offset == 0.0
        assert mesh.positions.shape == (81, 3)
        assert mesh.indices.shape == (128, 3)
        assert mesh.normals.shape == (81, 3)
        assert np.all(mesh.heights == 0)

    def test_first_tick_goes_live(self, mesh):
        frame = mesh.tick()

        assert frame is not None
        assert mesh.state is TerrainState.LIVE
        assert mesh.frame == 1
        assert frame.frame == 1
        assert frame.generation == 1
        assert mesh.scroll_offset == pytest.approx(-0.5)
        assert frame.scroll_offset == pytest.approx(-0.5)

    def test_scroll_advances_each_tick(self, mesh):
        for _ in range(4):
            mesh.tick()
        assert mesh.scroll_offset == pytest.approx(-2.0)
        assert mesh.frame == 4
        assert mesh.state is TerrainState.LIVE

    def test_heights_follow_volumetric_formula(self, mesh, config):
        mesh.tick()
        mesh.tick()
        s = mesh.scroll_offset
        x = mesh.positions[:, 0].astype(np.float64)
        y = mesh.positions[:, 1].astype(np.float64)

        expected = fractal_unit_array(mesh.noise, x, y + s, s, config.fractal) * 12.0

        np.testing.assert_allclose(mesh.heights, expected.astype(np.float32), rtol=1e-6, atol=1e-5)

    def test_heights_follow_planar_formula(self, config):
        planar = TerrainConfig(
            grid=config.grid,
            fractal=config.fractal,
            amplitude_bias=config.amplitude_bias,
            scroll_step=config.scroll_step,
            seed=config.seed,
            coordinate_mode="planar",
        )
        mesh = TerrainMesh(planar)
        mesh.tick()
        s = mesh.scroll_offset
        x = mesh.positions[:, 0].astype(np.float64)
        y = mesh.positions[:, 1].astype(np.float64)

        expected = fractal_unit_array(mesh.noise, x, y + s, 0.0, config.fractal) * 12.0

        np.testing.assert_allclose(mesh.heights, expected.astype(np.float32), rtol=1e-6, atol=1e-5)

    def test_heights_bounded_by_gain(self, mesh):
        for _ in range(5):
            mesh.tick()
            assert np.all(np.abs(mesh.heights) <= 12.0)

    def test_heights_change_over_time(self, mesh):
        first = mesh.tick().copy()
        second = mesh.tick()
        assert not np.array_equal(first.positions[:, 2], second.positions[:, 2])

    def test_normals_unit_length_after_ticks(self, mesh):
        for _ in range(6):
            frame = mesh.tick()
            lengths = np.linalg.norm(frame.normals, axis=1)
            np.testing.assert_allclose(lengths, 1.0, atol=1e-5)
            assert len(frame.normals) == len(frame.positions)

    def test_topology_fixed_across_ticks(self, mesh):
        xy_before = mesh.positions[:, :2].copy()
        indices_before = mesh.indices.copy()

        for _ in range(3):
            mesh.tick()

        np.testing.assert_array_equal(mesh.positions[:, :2], xy_before)
        np.testing.assert_array_equal(mesh.indices, indices_before)

    def test_published_buffers_read_only(self, mesh):
        frame = mesh.tick()
        with pytest.raises(ValueError):
            frame.positions[0, 2] = 1.0
        with pytest.raises(ValueError):
            frame.normals[0] = 0.0
        with pytest.raises(ValueError):
            mesh.heights[0] = 3.0

    def test_flat_buffers(self, mesh):
        frame = mesh.tick()
        assert frame.flat_positions().shape == (81 * 3,)
        assert frame.flat_normals().shape == (81 * 3,)
        assert frame.flat_indices().shape == (128 * 3,)
        assert frame.flat_indices().dtype == np.uint32

    def test_same_seed_same_frames(self, config):
        a = TerrainMesh(config)
        b = TerrainMesh(config)
        for _ in range(3):
            frame_a = a.tick()
            frame_b = b.tick()
        np.testing.assert_array_equal(frame_a.positions, frame_b.positions)
        np.testing.assert_array_equal(frame_a.normals, frame_b.normals)

    def test_constant_noise_uses_amplitude_and_bias(self, config):
        mesh = TerrainMesh(config, noise=ConstantNoise(1.0))
        mesh.tick()

        np.testing.assert_allclose(mesh.heights, 12.0)
        np.testing.assert_allclose(mesh.normals, np.tile([0.0, 0.0, -1.0], (81, 1)), atol=1e-6)

    def test_positive_scroll_step(self, config):
        forward = TerrainConfig(grid=config.grid, fractal=config.fractal, scroll_step=0.25)
        mesh = TerrainMesh(forward)
        mesh.tick()
        mesh.tick()
        assert mesh.scroll_offset == pytest.approx(0.5)

    def test_resize_rebuilds_topology(self, mesh):
        mesh.tick()
        scroll = mesh.scroll_offset

        generation = mesh.resize(width=100.0, height=50.0, segments=4)

        assert generation == 2
        assert mesh.generation == 2
        assert mesh.state is TerrainState.BUILT
        assert mesh.positions.shape == (25, 3)
        assert mesh.indices.shape == (32, 3)
        assert mesh.grid.width == 100.0
        assert mesh.scroll_offset == scroll

        frame = mesh.tick()
        assert frame.generation == 2
        assert mesh.state is TerrainState.LIVE

    def test_resize_rejects_invalid_grid(self, mesh):
        with pytest.raises(ConfigurationError):
            mesh.resize(width=100.0, height=100.0, segments=0)
        # Failed resize leaves the mesh untouched
        assert mesh.generation == 1
        assert mesh.positions.shape == (81, 3)

    def test_stale_tick_skipped(self, mesh):
        old_generation = mesh.generation
        mesh.tick(expected_generation=old_generation)
        mesh.resize(width=20.0, height=20.0, segments=2)
        frame_count = mesh.frame
        scroll = mesh.scroll_offset

        assert mesh.tick(expected_generation=old_generation) is None
        assert mesh.frame == frame_count
        assert mesh.scroll_offset == scroll
        assert mesh.state is TerrainState.BUILT

        assert mesh.tick(expected_generation=mesh.generation) is not None

    def test_stop(self, mesh):
        mesh.tick()
        mesh.stop()

        assert mesh.state is TerrainState.STOPPED
        assert mesh.tick() is None
        with pytest.raises(TerrainStateError):
            _ = mesh.positions
        with pytest.raises(TerrainStateError):
            mesh.snapshot()
        with pytest.raises(TerrainStateError):
            mesh.resize(width=10.0, height=10.0, segments=2)

        # Stopping twice is harmless
        mesh.stop()
        assert mesh.state is TerrainState.STOPPED
