"""
Coherent 3-D gradient noise.

NumPy implementation of Ken Perlin's improved noise (quintic fade, 12 edge
gradients). Arrays are evaluated element-wise so a whole heightfield can be
sampled in one call each frame.
"""

from typing import Optional, Protocol, Union

import numpy as np
import structlog

from ..utils.random import make_permutation

logger = structlog.get_logger()

ArrayLike = Union[float, np.ndarray]


class NoiseSource(Protocol):
    """Anything that maps (x, y, z) to a bounded, deterministic scalar."""

    def sample(self, x: float, y: float, z: float) -> float: ...

    def sample_array(self, x: ArrayLike, y: ArrayLike, z: ArrayLike) -> np.ndarray: ...


def _fade(t: np.ndarray) -> np.ndarray:
    """Quintic smoothstep 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(t: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _grad(hash_: np.ndarray, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    """Dot product with one of the 12 cube-edge gradients picked by hash."""
    h = hash_ & 15
    u = np.where(h < 8, x, y)
    v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
    return np.where((h & 1) == 0, u, -u) + np.where((h & 2) == 0, v, -v)


class ImprovedNoise:
    """
    Seeded improved Perlin noise in three dimensions.

    The permutation table is built once in the constructor and never changes,
    so identical inputs give identical outputs for the lifetime of the
    instance. Output is clamped to [-1, 1].
    """

    def __init__(self, seed: Optional[Union[str, int]] = None):
        """
        Args:
            seed: None for Ken Perlin's reference table, otherwise a str/int
                  seed fed to the Alea PRNG
        """
        self.seed = seed
        self._perm = make_permutation(seed)
        self._perm.setflags(write=False)
        logger.debug("Noise permutation built", seed=seed)

    def sample(self, x: float, y: float, z: float) -> float:
        """Noise value at a single point."""
        return float(self.sample_array(x, y, z))

    def sample_array(self, x: ArrayLike, y: ArrayLike, z: ArrayLike) -> np.ndarray:
        """
        Noise values for broadcastable coordinate arrays.

        Args:
            x, y, z: Coordinates (scalars or arrays of any broadcastable shape)

        Returns:
            float64 array of the broadcast shape, values in [-1, 1]
        """
        x, y, z = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
        )
        p = self._perm

        fx = np.floor(x)
        fy = np.floor(y)
        fz = np.floor(z)

        # Unit cube containing the point; mod keeps huge inputs in range
        X = np.mod(fx, 256.0).astype(np.int64)
        Y = np.mod(fy, 256.0).astype(np.int64)
        Z = np.mod(fz, 256.0).astype(np.int64)

        x = x - fx
        y = y - fy
        z = z - fz

        u = _fade(x)
        v = _fade(y)
        w = _fade(z)

        A = p[X] + Y
        AA = p[A] + Z
        AB = p[A + 1] + Z
        B = p[X + 1] + Y
        BA = p[B] + Z
        BB = p[B + 1] + Z

        near = _lerp(
            v,
            _lerp(u, _grad(p[AA], x, y, z), _grad(p[BA], x - 1, y, z)),
            _lerp(u, _grad(p[AB], x, y - 1, z), _grad(p[BB], x - 1, y - 1, z)),
        )
        far = _lerp(
            v,
            _lerp(u, _grad(p[AA + 1], x, y, z - 1), _grad(p[BA + 1], x - 1, y, z - 1)),
            _lerp(u, _grad(p[AB + 1], x, y - 1, z - 1), _grad(p[BB + 1], x - 1, y - 1, z - 1)),
        )

        return np.clip(_lerp(w, near, far), -1.0, 1.0)
