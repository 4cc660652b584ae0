"""Smooth per-vertex normals from averaged face normals."""

from typing import Optional

import numpy as np


def compute_face_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Unnormalized face normals ``(v1 - v0) x (v2 - v0)``.

    The magnitude is twice the triangle area, so summing them into vertices
    gives area-weighted averages.
    """
    v0 = positions[indices[:, 0]].astype(np.float64)
    v1 = positions[indices[:, 1]].astype(np.float64)
    v2 = positions[indices[:, 2]].astype(np.float64)
    return np.cross(v1 - v0, v2 - v0)


def compute_vertex_normals(
    positions: np.ndarray, indices: np.ndarray, out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Accumulate face normals into their three vertices and normalize.

    ``np.add.at`` is unbuffered, so a vertex shared by several triangles
    receives every contribution.

    Args:
        positions: (n, 3) vertex positions
        indices: (m, 3) triangle vertex indices
        out: Optional (n, 3) array written in place

    Returns:
        (n, 3) unit normals (``out`` when given, else a new float32 array)
    """
    face_normals = compute_face_normals(positions, indices)

    accum = np.zeros((len(positions), 3), dtype=np.float64)
    for corner in range(3):
        np.add.at(accum, indices[:, corner], face_normals)

    norms = np.linalg.norm(accum, axis=1, keepdims=True)
    norms[norms == 0] = 1.0  # isolated vertices keep a zero normal
    accum /= norms

    if out is None:
        return accum.astype(np.float32)
    out[...] = accum
    return out
