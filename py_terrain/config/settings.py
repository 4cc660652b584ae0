import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from dotenv import dotenv_values
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ConfigurationError
from ..core.terrain_mesh import CoordinateMode, TerrainConfig

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_ENV_FILE = BASE_DIR / ".env"


def merge_env_file(env_file: Union[str, Path]) -> int:
    """
    Copy keys from a .env file into os.environ where they are not already set.

    Returns:
        Number of keys added
    """
    env_file = Path(env_file)
    if not env_file.exists():
        return 0

    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v
    return len(missing_keys)


class TerrainSettings(BaseSettings):
    """Terrain defaults pulled from TERRAIN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TERRAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    # Grid Configuration
    width: float = Field(default=100.0, gt=0, description="World extent along x")
    height: float = Field(default=100.0, gt=0, description="World extent along y")
    segments: int = Field(default=50, ge=1, description="Cells per axis")

    # Fractal Configuration
    octaves: int = Field(default=4, ge=1, description="Noise octaves")
    persistence: float = Field(default=0.5, gt=0, le=1, description="Amplitude decay per octave")
    lacunarity: float = Field(default=2.0, gt=1, description="Frequency growth per octave")
    scale: float = Field(default=0.05, gt=0, description="Base noise frequency in world units")
    amplitude: float = Field(default=20.0, gt=0, description="Peak height of normalized noise")

    # Animation Configuration
    amplitude_bias: float = Field(default=0.0, description="Constant added to amplitude for the height gain")
    scroll_step: float = Field(default=-0.4, description="Scroll offset change per tick")
    coordinate_mode: CoordinateMode = Field(
        default=CoordinateMode.VOLUMETRIC, description="volumetric or planar noise mapping"
    )
    seed: Optional[str] = Field(default=None, description="Noise seed; unset uses the reference table")

    def to_terrain_config(self) -> TerrainConfig:
        """Build a validated mesh configuration from these settings."""
        return TerrainConfig.from_values(
            width=self.width,
            height=self.height,
            segments=self.segments,
            octaves=self.octaves,
            persistence=self.persistence,
            lacunarity=self.lacunarity,
            scale=self.scale,
            amplitude=self.amplitude,
            amplitude_bias=self.amplitude_bias,
            scroll_step=self.scroll_step,
            seed=self.seed,
            coordinate_mode=self.coordinate_mode,
        )


def load_settings(env_file: Optional[Union[str, Path]] = None, **overrides) -> TerrainSettings:
    """
    Build settings from the environment, an optional .env file and overrides.

    Raises:
        ConfigurationError: if any value fails validation
    """
    merge_env_file(env_file if env_file is not None else DEFAULT_ENV_FILE)
    try:
        return TerrainSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid terrain settings: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> TerrainSettings:
    """Process-wide settings singleton."""
    return load_settings()
