"""
Core terrain generation functionality.
"""

from .errors import TerrainError, ConfigurationError, TerrainStateError
from .noise import ImprovedNoise, NoiseSource
from .fractal import FractalParams, fractal, fractal_array, fractal_unit, fractal_unit_array
from .grid_topology import GridConfig, GridTopology, build_grid, build_positions, build_indices
from .normals import compute_face_normals, compute_vertex_normals
from .terrain_mesh import CoordinateMode, TerrainConfig, TerrainFrame, TerrainMesh, TerrainState

__all__ = ['TerrainError', 'ConfigurationError', 'TerrainStateError',
           'ImprovedNoise', 'NoiseSource',
           'FractalParams', 'fractal', 'fractal_array', 'fractal_unit', 'fractal_unit_array',
           'GridConfig', 'GridTopology', 'build_grid', 'build_positions', 'build_indices',
           'compute_face_normals', 'compute_vertex_normals',
           'CoordinateMode', 'TerrainConfig', 'TerrainFrame', 'TerrainMesh', 'TerrainState']
