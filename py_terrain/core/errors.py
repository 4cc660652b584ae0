"""Exception types raised by the terrain engine."""


class TerrainError(Exception):
    """Base class for terrain engine errors."""


class ConfigurationError(TerrainError, ValueError):
    """Invalid grid, fractal or mesh configuration.

    Raised synchronously from constructors and build calls. Values are never
    clamped into range; the caller decides on a fallback.
    """


class TerrainStateError(TerrainError, RuntimeError):
    """Lifecycle operation attempted in a state that does not allow it."""
