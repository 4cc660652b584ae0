"""Regular lattice topology for heightfield meshes."""

import math
from dataclasses import dataclass

import numpy as np
import structlog

from .errors import ConfigurationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GridConfig:
    """World extent and resolution of a square-celled lattice."""

    width: float
    height: float
    segments: int

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive finite number, got {value}")
        if isinstance(self.segments, bool) or not isinstance(self.segments, (int, np.integer)):
            raise ConfigurationError(f"segments must be an integer, got {self.segments!r}")
        if self.segments < 1:
            raise ConfigurationError(f"segments must be >= 1, got {self.segments}")

    @property
    def vertex_count(self) -> int:
        return (self.segments + 1) ** 2

    @property
    def triangle_count(self) -> int:
        return 2 * self.segments ** 2


@dataclass(frozen=True)
class GridTopology:
    """
    Vertex positions and triangle indices of a built lattice.

    Attributes:
        config: Grid the topology was built from
        positions: (vertex_count, 3) float32, z = 0
        indices: (triangle_count, 3) uint32 vertex index triples
    """

    config: GridConfig
    positions: np.ndarray
    indices: np.ndarray


def build_positions(config: GridConfig) -> np.ndarray:
    """
    Vertex positions centered on the origin.

    Vertex ``k = i * (segments + 1) + j`` lies at
    ``x = (i / segments) * width - width / 2`` and
    ``y = (j / segments) * height - height / 2``.

    Args:
        config: Grid configuration

    Returns:
        (vertex_count, 3) float32 array with z left at 0
    """
    segments = config.segments
    n = segments + 1

    i = np.repeat(np.arange(n, dtype=np.float64), n)
    j = np.tile(np.arange(n, dtype=np.float64), n)

    positions = np.zeros((n * n, 3), dtype=np.float32)
    positions[:, 0] = (i / segments) * config.width - config.width / 2
    positions[:, 1] = (j / segments) * config.height - config.height / 2
    return positions


def build_indices(segments: int) -> np.ndarray:
    """
    Triangle connectivity, two triangles per cell.

    For cell (row r, column c) with ``a = r * (segments + 1) + c``,
    ``b = a + 1``, ``c' = a + segments + 1`` and ``d = c' + 1`` the
    triangles ``(a, b, c')`` and ``(b, d, c')`` are emitted in that order.
    The winding decides which face is front-facing.

    Args:
        segments: Cells per axis (>= 1)

    Returns:
        (2 * segments**2, 3) uint32 array
    """
    if isinstance(segments, bool) or not isinstance(segments, (int, np.integer)) or segments < 1:
        raise ConfigurationError(f"segments must be an integer >= 1, got {segments!r}")

    n = segments + 1
    rows, cols = np.meshgrid(
        np.arange(segments, dtype=np.int64), np.arange(segments, dtype=np.int64), indexing="ij"
    )
    a = (rows * n + cols).ravel()
    b = a + 1
    c = a + n
    d = c + 1

    indices = np.empty((2 * segments * segments, 3), dtype=np.uint32)
    indices[0::2] = np.stack([a, b, c], axis=1)
    indices[1::2] = np.stack([b, d, c], axis=1)
    return indices


def build_grid(config: GridConfig) -> GridTopology:
    """
    Build positions and indices for a lattice.

    Building twice from equal configs yields identical arrays.
    """
    positions = build_positions(config)
    indices = build_indices(config.segments)
    indices.setflags(write=False)

    logger.info(
        "Grid built",
        width=config.width,
        height=config.height,
        segments=config.segments,
        vertices=len(positions),
        triangles=len(indices),
    )

    return GridTopology(config=config, positions=positions, indices=indices)
