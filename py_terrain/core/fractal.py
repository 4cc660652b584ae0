"""
Fractal (multi-octave) noise.

Layers octaves of a noise source with growing frequency and decaying
amplitude, then divides by the summed octave amplitudes so the result is
bounded independently of the octave count.
"""

import math
from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError
from .noise import ArrayLike, NoiseSource


@dataclass(frozen=True)
class FractalParams:
    """Octave layering parameters, validated on construction."""

    octaves: int = 4
    persistence: float = 0.5
    lacunarity: float = 2.0
    scale: float = 0.03
    amplitude: float = 20.0

    def __post_init__(self):
        if isinstance(self.octaves, bool) or not isinstance(self.octaves, (int, np.integer)):
            raise ConfigurationError(f"octaves must be an integer, got {self.octaves!r}")
        if self.octaves < 1:
            raise ConfigurationError(f"octaves must be >= 1, got {self.octaves}")
        if not _finite(self.persistence) or not 0 < self.persistence <= 1:
            raise ConfigurationError(f"persistence must be in (0, 1], got {self.persistence}")
        if not _finite(self.lacunarity) or self.lacunarity <= 1:
            raise ConfigurationError(f"lacunarity must be > 1, got {self.lacunarity}")
        if not _finite(self.scale) or self.scale <= 0:
            raise ConfigurationError(f"scale must be > 0, got {self.scale}")
        if not _finite(self.amplitude) or self.amplitude <= 0:
            raise ConfigurationError(f"amplitude must be > 0, got {self.amplitude}")

    @property
    def amplitude_sum(self) -> float:
        """Sum of per-octave amplitudes (the normalization divisor)."""
        total = 0.0
        amp = 1.0
        for _ in range(self.octaves):
            total += amp
            amp *= self.persistence
        return total


def _finite(value) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def fractal_unit_array(
    noise: NoiseSource, x: ArrayLike, y: ArrayLike, z: ArrayLike, params: FractalParams
) -> np.ndarray:
    """
    Normalized fractal noise in [-1, 1] for coordinate arrays.

    Args:
        noise: Noise source to layer
        x, y, z: Broadcastable coordinates
        params: Octave parameters

    Returns:
        Array of accumulated octaves divided by the amplitude sum
    """
    freq = 1.0
    amp = 1.0
    max_value = 0.0
    value = None

    for _ in range(params.octaves):
        k = freq * params.scale
        octave = noise.sample_array(
            np.multiply(x, k), np.multiply(y, k), np.multiply(z, k)
        ) * amp
        value = octave if value is None else value + octave
        max_value += amp
        freq *= params.lacunarity
        amp *= params.persistence

    return value / max_value


def fractal_array(
    noise: NoiseSource, x: ArrayLike, y: ArrayLike, z: ArrayLike, params: FractalParams
) -> np.ndarray:
    """Fractal noise scaled into [-amplitude, amplitude]."""
    return fractal_unit_array(noise, x, y, z, params) * params.amplitude


def fractal_unit(noise: NoiseSource, x: float, y: float, z: float, params: FractalParams) -> float:
    """Scalar form of :func:`fractal_unit_array`."""
    return float(fractal_unit_array(noise, x, y, z, params))


def fractal(noise: NoiseSource, x: float, y: float, z: float, params: FractalParams) -> float:
    """Scalar fractal noise in [-amplitude, amplitude]."""
    return float(fractal_array(noise, x, y, z, params))
