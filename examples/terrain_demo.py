#!/usr/bin/env python3
"""
Simple demo script driving an animated terrain mesh without a renderer.
"""

import numpy as np
from py_terrain.core import TerrainConfig
from py_terrain.scene import TerrainScene


def main():
    """Tick a terrain scene and print per-frame statistics."""
    print("Py-Terrain Animation Demo")
    print("=" * 40)

    config = TerrainConfig.from_values(
        width=100,
        height=100,
        segments=50,
        octaves=4,
        scale=0.05,
        amplitude=20,
        scroll_step=-0.4,
        seed="demo123",
    )
    scene = TerrainScene(config)
    print(f"\nGrid: {len(scene.mesh.positions)} vertices, {len(scene.mesh.indices)} triangles")

    def report(frame):
        heights = frame.positions[:, 2]
        lengths = np.linalg.norm(frame.normals, axis=1)
        print(
            f"  frame {frame.frame:3d}  scroll {frame.scroll_offset:7.2f}  "
            f"height {heights.min():6.2f}..{heights.max():6.2f}  "
            f"normal length {lengths.min():.4f}..{lengths.max():.4f}"
        )

    scene.subscribe(report)

    print("\nTicking 10 frames:")
    for _ in range(10):
        scene.on_tick()

    print("\nResizing to a 16:9 viewport...")
    scene.on_viewport_resize(1280, 720, base_extent=100.0, cell_size=2.5)
    grid = scene.mesh.grid
    print(f"  extent {grid.width:.1f} x {grid.height:.1f}, {grid.segments} segments, generation {scene.generation}")

    for _ in range(3):
        scene.on_tick()

    scene.teardown()
    print("\nScene torn down.")


if __name__ == "__main__":
    main()
