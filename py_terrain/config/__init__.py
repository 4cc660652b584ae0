"""
Configuration for terrain generation.
"""

from .settings import TerrainSettings, get_settings, load_settings, merge_env_file

__all__ = ['TerrainSettings', 'get_settings', 'load_settings', 'merge_env_file']
