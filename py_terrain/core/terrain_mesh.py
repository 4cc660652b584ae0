"""
Animated heightfield mesh.

A TerrainMesh owns the vertex, index and normal buffers of one lattice.
Topology (x, y and the index buffer) is fixed per generation; every tick
advances the scroll offset, resamples z from fractal noise and recomputes
smooth normals in place. The renderer only ever sees read-only views.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import numpy as np
import structlog

from .errors import ConfigurationError, TerrainStateError
from .fractal import FractalParams, fractal_unit_array
from .grid_topology import GridConfig, GridTopology, build_grid
from .noise import ImprovedNoise, NoiseSource
from .normals import compute_vertex_normals

logger = structlog.get_logger()


class CoordinateMode(str, Enum):
    """How the scroll offset enters the noise coordinates."""

    VOLUMETRIC = "volumetric"  # (x, y + scroll, scroll)
    PLANAR = "planar"          # (x, y + scroll, 0)


class TerrainState(str, Enum):
    """Lifecycle of a mesh."""

    BUILT = "built"      # topology fixed, heights not yet sampled
    LIVE = "live"        # heights current for the latest tick
    STOPPED = "stopped"  # torn down, buffers released


@dataclass(frozen=True)
class TerrainConfig:
    """Everything a mesh needs at construction time."""

    grid: GridConfig
    fractal: FractalParams = field(default_factory=FractalParams)
    amplitude_bias: float = 0.0
    scroll_step: float = -0.4
    seed: Optional[Union[str, int]] = None
    coordinate_mode: CoordinateMode = CoordinateMode.VOLUMETRIC

    def __post_init__(self):
        for name in ("amplitude_bias", "scroll_step"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite, got {value}")
        try:
            mode = CoordinateMode(self.coordinate_mode)
        except ValueError:
            raise ConfigurationError(
                f"coordinate_mode must be one of {[m.value for m in CoordinateMode]}, "
                f"got {self.coordinate_mode!r}"
            ) from None
        object.__setattr__(self, "coordinate_mode", mode)

    @classmethod
    def from_values(
        cls,
        width: float = 100.0,
        height: float = 100.0,
        segments: int = 50,
        octaves: int = 4,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        scale: float = 0.05,
        amplitude: float = 20.0,
        amplitude_bias: float = 0.0,
        scroll_step: float = -0.4,
        seed: Optional[Union[str, int]] = None,
        coordinate_mode: Union[str, CoordinateMode] = CoordinateMode.VOLUMETRIC,
    ) -> "TerrainConfig":
        """Build from the flat parameter set a scene collaborator supplies."""
        return cls(
            grid=GridConfig(width=width, height=height, segments=segments),
            fractal=FractalParams(
                octaves=octaves,
                persistence=persistence,
                lacunarity=lacunarity,
                scale=scale,
                amplitude=amplitude,
            ),
            amplitude_bias=amplitude_bias,
            scroll_step=scroll_step,
            seed=seed,
            coordinate_mode=coordinate_mode,
        )

    @property
    def height_gain(self) -> float:
        """Multiplier applied to normalized fractal noise."""
        return self.fractal.amplitude + self.amplitude_bias


@dataclass(frozen=True)
class TerrainFrame:
    """
    Buffers published after a tick.

    The arrays are read-only views of the mesh buffers, so they reflect
    later ticks too; call :meth:`copy` to keep a frame.
    """

    generation: int
    frame: int
    scroll_offset: float
    positions: np.ndarray
    normals: np.ndarray
    indices: np.ndarray

    def flat_positions(self) -> np.ndarray:
        return self.positions.reshape(-1)

    def flat_normals(self) -> np.ndarray:
        return self.normals.reshape(-1)

    def flat_indices(self) -> np.ndarray:
        return self.indices.reshape(-1)

    def copy(self) -> "TerrainFrame":
        return TerrainFrame(
            generation=self.generation,
            frame=self.frame,
            scroll_offset=self.scroll_offset,
            positions=self.positions.copy(),
            normals=self.normals.copy(),
            indices=self.indices.copy(),
        )


def _readonly(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.setflags(write=False)
    return view


class TerrainMesh:
    """
    Heightfield mesh driven by an external per-frame tick.

    Example:
        mesh = TerrainMesh(TerrainConfig.from_values(segments=64, seed="dunes"))
        frame = mesh.tick()
        upload(frame.flat_positions(), frame.flat_normals(), frame.flat_indices())
    """

    def __init__(self, config: TerrainConfig, noise: Optional[NoiseSource] = None):
        """
        Args:
            config: Validated terrain configuration
            noise: Noise source; defaults to ImprovedNoise seeded from config.seed
        """
        if not isinstance(config, TerrainConfig):
            raise ConfigurationError(f"expected TerrainConfig, got {type(config).__name__}")

        self.config = config
        self.noise = noise if noise is not None else ImprovedNoise(config.seed)
        self.scroll_offset = 0.0
        self.generation = 0
        self.frame = 0
        self.state = TerrainState.BUILT

        self._positions: Optional[np.ndarray] = None
        self._normals: Optional[np.ndarray] = None
        self._indices: Optional[np.ndarray] = None
        self._xy: Optional[np.ndarray] = None

        self._install(build_grid(config.grid))

        logger.info(
            "Terrain mesh created",
            segments=config.grid.segments,
            octaves=config.fractal.octaves,
            coordinate_mode=config.coordinate_mode.value,
            seed=config.seed,
        )

    def _install(self, topology: GridTopology) -> None:
        """Swap in fully built buffers for a new topology generation."""
        positions = topology.positions
        xy = positions[:, :2].astype(np.float64)
        normals = compute_vertex_normals(positions, topology.indices)

        self._positions = positions
        self._indices = topology.indices
        self._normals = normals
        self._xy = xy
        self.generation += 1
        self.state = TerrainState.BUILT

    def _require_buffers(self) -> None:
        if self.state is TerrainState.STOPPED:
            raise TerrainStateError("terrain mesh has been stopped")

    @property
    def grid(self) -> GridConfig:
        return self.config.grid

    @property
    def positions(self) -> np.ndarray:
        self._require_buffers()
        return _readonly(self._positions)

    @property
    def normals(self) -> np.ndarray:
        self._require_buffers()
        return _readonly(self._normals)

    @property
    def indices(self) -> np.ndarray:
        self._require_buffers()
        return _readonly(self._indices)

    @property
    def heights(self) -> np.ndarray:
        self._require_buffers()
        return _readonly(self._positions[:, 2])

    def sample_heights(self, scroll_offset: float) -> np.ndarray:
        """
        Heights of every vertex for a given scroll offset, without mutating.

        z = fractal_unit(x, y + scroll, w) * (amplitude + amplitude_bias), with
        w = scroll in volumetric mode and 0 in planar mode.
        """
        self._require_buffers()
        x = self._xy[:, 0]
        y = self._xy[:, 1] + scroll_offset
        if self.config.coordinate_mode is CoordinateMode.VOLUMETRIC:
            w = scroll_offset
        else:
            w = 0.0
        unit = fractal_unit_array(self.noise, x, y, w, self.config.fractal)
        return unit * self.config.height_gain

    def tick(self, expected_generation: Optional[int] = None) -> Optional[TerrainFrame]:
        """
        Advance one frame.

        Args:
            expected_generation: Topology generation the caller last saw. A
                mismatch means the topology was rebuilt underneath it and the
                tick is skipped.

        Returns:
            The published frame, or None when the tick was skipped
        """
        if self.state is TerrainState.STOPPED:
            logger.debug("Tick ignored after stop")
            return None

        if expected_generation is not None and expected_generation != self.generation:
            logger.warning(
                "Stale tick skipped",
                expected_generation=expected_generation,
                generation=self.generation,
            )
            return None

        self.scroll_offset += self.config.scroll_step
        self._positions[:, 2] = self.sample_heights(self.scroll_offset)
        compute_vertex_normals(self._positions, self._indices, out=self._normals)

        if self.state is TerrainState.BUILT:
            logger.info("Terrain live", generation=self.generation)
        self.state = TerrainState.LIVE
        self.frame += 1

        logger.debug("Tick", frame=self.frame, scroll_offset=self.scroll_offset)
        return self.snapshot()

    def snapshot(self) -> TerrainFrame:
        """Read-only views of the current buffers."""
        self._require_buffers()
        return TerrainFrame(
            generation=self.generation,
            frame=self.frame,
            scroll_offset=self.scroll_offset,
            positions=_readonly(self._positions),
            normals=_readonly(self._normals),
            indices=_readonly(self._indices),
        )

    def resize(self, width: float, height: float, segments: int) -> int:
        """
        Rebuild topology synchronously for a new extent/resolution.

        The new buffers are complete before they replace the old ones. The
        scroll offset is kept so the animation continues seamlessly.

        Returns:
            The new topology generation
        """
        if self.state is TerrainState.STOPPED:
            raise TerrainStateError("cannot resize a stopped terrain mesh")

        grid = GridConfig(width=width, height=height, segments=segments)
        topology = build_grid(grid)
        self.config = TerrainConfig(
            grid=grid,
            fractal=self.config.fractal,
            amplitude_bias=self.config.amplitude_bias,
            scroll_step=self.config.scroll_step,
            seed=self.config.seed,
            coordinate_mode=self.config.coordinate_mode,
        )
        self._install(topology)

        logger.info(
            "Terrain resized",
            width=width,
            height=height,
            segments=segments,
            generation=self.generation,
        )
        return self.generation

    def stop(self) -> None:
        """Release buffers; later ticks are no-ops and reads raise."""
        if self.state is TerrainState.STOPPED:
            return
        self._positions = None
        self._normals = None
        self._indices = None
        self._xy = None
        self.state = TerrainState.STOPPED
        logger.info("Terrain stopped", frames=self.frame, generation=self.generation)
