"""
Scene-side wiring for a terrain mesh.

The scene turns environment signals (frame tick, viewport resize, teardown)
into mesh operations and hands each published frame to its listeners.
Asynchronously loaded extras (fonts, textures, labels) are tracked as
decorations with their own small state machine, separate from the mesh.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from .core.errors import ConfigurationError, TerrainStateError
from .core.noise import NoiseSource
from .core.terrain_mesh import TerrainConfig, TerrainFrame, TerrainMesh

logger = structlog.get_logger()

FrameListener = Callable[[TerrainFrame], None]


class DecorationState(str, Enum):
    """Load state of a deferred decoration."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass
class Decoration:
    """Placeholder for something that finishes loading later."""

    name: str
    state: DecorationState = DecorationState.PENDING
    payload: Any = None
    error: Optional[BaseException] = field(default=None, repr=False)

    def resolve(self, payload: Any) -> None:
        if self.state is not DecorationState.PENDING:
            raise TerrainStateError(f"decoration {self.name!r} already {self.state.value}")
        self.payload = payload
        self.state = DecorationState.READY

    def fail(self, error: BaseException) -> None:
        if self.state is not DecorationState.PENDING:
            raise TerrainStateError(f"decoration {self.name!r} already {self.state.value}")
        self.error = error
        self.state = DecorationState.FAILED


def extent_for_viewport(
    viewport_width: int,
    viewport_height: int,
    base_extent: float = 100.0,
    cell_size: float = 2.0,
) -> Tuple[float, float, int]:
    """
    Derive world extent and segment count from a viewport size.

    The shorter world side is ``base_extent``; the longer one follows the
    viewport aspect ratio. Segments are chosen so cells are at most
    ``cell_size`` wide along the longer side.

    Returns:
        (width, height, segments)
    """
    for name, value in (
        ("viewport_width", viewport_width),
        ("viewport_height", viewport_height),
        ("base_extent", base_extent),
        ("cell_size", cell_size),
    ):
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive number, got {value!r}")

    aspect = viewport_width / viewport_height
    if aspect >= 1:
        width, height = base_extent * aspect, base_extent
    else:
        width, height = base_extent, base_extent / aspect

    segments = max(1, math.ceil(max(width, height) / cell_size))
    return width, height, segments


class TerrainScene:
    """Owns one terrain mesh and relays lifecycle signals to it."""

    def __init__(self, config: TerrainConfig, noise: Optional[NoiseSource] = None):
        self.mesh = TerrainMesh(config, noise)
        self.decorations: Dict[str, Decoration] = {}
        self._listeners: List[FrameListener] = []
        self._torn_down = False

    @classmethod
    def from_settings(cls, settings=None, configure_logs: bool = True) -> "TerrainScene":
        """Build a scene from TerrainSettings (environment defaults when None)."""
        from .config import get_settings
        from .utils.log_config import configure_logging

        settings = settings if settings is not None else get_settings()
        if configure_logs:
            configure_logging(settings.log_level, settings.log_format)
        return cls(settings.to_terrain_config())

    @property
    def generation(self) -> int:
        return self.mesh.generation

    def subscribe(self, listener: FrameListener) -> Callable[[], None]:
        """Register a frame listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_tick(self, generation: Optional[int] = None) -> Optional[TerrainFrame]:
        """Per-frame signal. Skipped ticks are not forwarded to listeners."""
        frame = self.mesh.tick(expected_generation=generation)
        if frame is None:
            return None
        for listener in list(self._listeners):
            listener(frame)
        return frame

    def on_resize(self, width: float, height: float, segments: int) -> int:
        """Resize signal carrying a new extent and resolution."""
        if self._torn_down:
            raise TerrainStateError("scene has been torn down")
        return self.mesh.resize(width, height, segments)

    def on_viewport_resize(
        self,
        viewport_width: int,
        viewport_height: int,
        base_extent: float = 100.0,
        cell_size: float = 2.0,
    ) -> int:
        width, height, segments = extent_for_viewport(
            viewport_width, viewport_height, base_extent, cell_size
        )
        return self.on_resize(width, height, segments)

    def add_decoration(self, name: str) -> Decoration:
        """Register a pending decoration, or return the existing one."""
        if name not in self.decorations:
            self.decorations[name] = Decoration(name=name)
        return self.decorations[name]

    def pending_decorations(self) -> List[Decoration]:
        return [d for d in self.decorations.values() if d.state is DecorationState.PENDING]

    def teardown(self) -> None:
        """Stop the mesh and drop listeners and decorations."""
        if self._torn_down:
            return
        self.mesh.stop()
        self._listeners.clear()
        self.decorations.clear()
        self._torn_down = True
        logger.info("Scene torn down")
